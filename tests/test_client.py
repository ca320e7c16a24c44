"""
test_client.py — Tests for rfpflow/client.py

Uses httpx.MockTransport to serve canned responses; covers both the
success envelope and the bare legacy bodies, and error mapping.

Called by: pytest
Depends on: rfpflow/client.py
"""

import json

import httpx
import pytest

from rfpflow.client import RFPFlowAPIError, RFPFlowClient, unwrap


def _client(handler) -> RFPFlowClient:
    return RFPFlowClient("http://rfpflow.test", transport=httpx.MockTransport(handler))


class TestUnwrap:
    def test_envelope(self):
        resp = httpx.Response(200, json={"success": True, "data": {"rfp": {"id": 1}}})
        assert unwrap(resp) == {"rfp": {"id": 1}}

    def test_bare_body(self):
        assert unwrap(httpx.Response(200, json={"rfp": {"id": 1}})) == {"rfp": {"id": 1}}

    def test_envelope_error(self):
        with pytest.raises(RFPFlowAPIError) as exc:
            unwrap(httpx.Response(404, json={"success": False, "error": "RFP not found"}))
        assert exc.value.status_code == 404
        assert exc.value.message == "RFP not found"

    def test_bare_error(self):
        with pytest.raises(RFPFlowAPIError, match="Failed to send RFP"):
            unwrap(httpx.Response(500, json={"error": "Failed to send RFP"}))

    def test_non_json_error(self):
        with pytest.raises(RFPFlowAPIError) as exc:
            unwrap(httpx.Response(502, text="Bad Gateway"))
        assert exc.value.status_code == 502


class TestClientMethods:
    def test_create_rfp_sends_camel_case(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "data": {"rfp": {"id": 7}}})

        with _client(handler) as api:
            result = api.create_rfp("I need 5 desks")
        assert seen == {
            "path": "/api/rfps/create-from-natural-language",
            "body": {"naturalLanguage": "I need 5 desks"},
        }
        assert result["rfp"]["id"] == 7

    def test_send_rfp(self):
        def handler(request):
            assert json.loads(request.content) == {"rfpId": 1, "vendorIds": [2, 3]}
            return httpx.Response(200, json={"success": True, "data": {"results": []},
                                             "message": "RFP sent to 2 vendor(s)"})

        with _client(handler) as api:
            assert api.send_rfp(1, [2, 3]) == {"results": []}

    def test_list_rfps_accepts_bare_form(self):
        def handler(request):
            return httpx.Response(200, json={"rfps": [{"id": 1}]})

        with _client(handler) as api:
            assert api.list_rfps() == [{"id": 1}]

    def test_delete_vendor_error(self):
        def handler(request):
            assert request.method == "DELETE"
            return httpx.Response(404, json={"success": False, "error": "Vendor not found"})

        with _client(handler) as api:
            with pytest.raises(RFPFlowAPIError, match="Vendor not found"):
                api.delete_vendor(99)

