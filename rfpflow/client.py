"""
client.py — Python client for the RFPFlow HTTP API

Thin wrapper over ``httpx.Client`` with one method per endpoint. Accepts
both the ``{success, data, error}`` envelope and the older bare
``{rfp: ...}`` / ``{error: ...}`` bodies, and returns the unwrapped data.

Usage:
    with RFPFlowClient("http://localhost:8000") as api:
        rfp = api.create_rfp("I need 20 laptops ...")["rfp"]
        api.send_rfp(rfp["id"], [1, 2])

Called by: scripts, notebooks, integration tests
Depends on: httpx
"""

import httpx


class RFPFlowAPIError(Exception):
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


def unwrap(response: httpx.Response):
    """Return the payload of a response, raising RFPFlowAPIError on failure."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if response.is_error or (isinstance(body, dict) and body.get("success") is False):
        message = None
        if isinstance(body, dict):
            message = body.get("error") or body.get("detail") or body.get("message")
        raise RFPFlowAPIError(response.status_code, str(message or response.reason_phrase))

    if isinstance(body, dict) and "success" in body:
        return body.get("data")
    return body


class RFPFlowClient:
    def __init__(self, base_url: str = "http://localhost:8000", *, timeout: float = 60.0,
                 transport: httpx.BaseTransport | None = None):
        self._http = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self) -> None:
        self._http.close()

    def _get(self, path: str):
        return unwrap(self._http.get(path))

    def _post(self, path: str, json: dict | None = None):
        return unwrap(self._http.post(path, json=json))

    # ── RFPs ─────────────────────────────────────────────────────────

    def parse_rfp(self, text: str) -> dict:
        return self._post("/api/rfps/parse", {"naturalLanguage": text})

    def create_rfp(self, text: str) -> dict:
        return self._post("/api/rfps/create-from-natural-language", {"naturalLanguage": text})

    def list_rfps(self) -> list[dict]:
        data = self._get("/api/rfps")
        return data.get("rfps", []) if isinstance(data, dict) else data

    def get_rfp(self, rfp_id: int) -> dict:
        return self._get(f"/api/rfps/{rfp_id}")

    def send_rfp(self, rfp_id: int, vendor_ids: list[int]) -> dict:
        return self._post("/api/rfps/send", {"rfpId": rfp_id, "vendorIds": vendor_ids})

    # ── Vendors ──────────────────────────────────────────────────────

    def list_vendors(self) -> list[dict]:
        data = self._get("/api/vendors")
        return data.get("vendors", []) if isinstance(data, dict) else data

    def create_vendor(self, **fields) -> dict:
        return self._post("/api/vendors", fields)

    def update_vendor(self, vendor_id: int, **fields) -> dict:
        return unwrap(self._http.put(f"/api/vendors/{vendor_id}", json=fields))

    def delete_vendor(self, vendor_id: int) -> None:
        unwrap(self._http.delete(f"/api/vendors/{vendor_id}"))

    # ── Proposals ────────────────────────────────────────────────────

    def process_reply(self, from_email: str, body: str, subject: str = "",
                      message_id: str | None = None) -> dict:
        return self._post("/api/proposals/process", {
            "fromEmail": from_email,
            "emailSubject": subject,
            "emailBody": body,
            "messageId": message_id,
        })

    def compare(self, rfp_id: int) -> dict:
        return self._get(f"/api/proposals/compare/{rfp_id}")

    def check_emails(self) -> dict:
        return self._post("/api/proposals/check-emails")

    def mock_inbound_email(self, from_email: str, subject: str, body: str) -> dict:
        return self._post("/api/mock/inbound-email", {
            "fromEmail": from_email,
            "subject": subject,
            "body": body,
        })

    def health(self) -> dict:
        return self._get("/health")
