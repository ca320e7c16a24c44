"""Mailer — outbound RFP email (SMTP) and inbound vendor replies (IMAP).

Purpose:
  The only module that talks to mail servers. ``send`` delivers one
  rendered RFP email and returns its Message-ID; ``fetch_unseen`` pulls
  every unread message from the mailbox, marks it seen, and returns the
  parsed fields.

Business Rules:
  - Missing SMTP/IMAP settings raise at the point of use, never at startup
  - Transport failures on the inbound side are classified into timeout,
    authentication and host-unreachable remediation messages
  - A message that cannot be parsed is skipped, not fatal for the batch

Called by: services/rfp_service.py, services/proposal_service.py, dependencies.py
Depends on: config.py (smtp_*, imap_*)
"""

import imaplib
import re
import smtplib
import socket
from dataclasses import dataclass
from datetime import datetime
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import make_msgid, parsedate_to_datetime

from loguru import logger

from ..config import Settings
from ..exceptions import MailboxError, MailDeliveryError

TIMEOUT_HELP = (
    "Connection to the mail server timed out. Check IMAP_HOST and IMAP_PORT "
    "and that the port is reachable from this server."
)
AUTH_HELP = (
    "The mail server rejected the login. Check IMAP_USER and IMAP_PASSWORD "
    "(Gmail and Outlook accounts need an app password)."
)
HOST_HELP = (
    "Could not reach the mail server. Check that IMAP_HOST is spelled "
    "correctly and the server is online."
)

_TIMEOUT_PATTERNS = re.compile(r"timed?\s*out|timeout|etimedout", re.IGNORECASE)
_AUTH_PATTERNS = re.compile(
    r"authenticat|invalid credentials|login failed|\[auth|bad username|password", re.IGNORECASE
)
_HOST_PATTERNS = re.compile(
    r"getaddrinfo|enotfound|name or service not known|nodename nor servname|"
    r"connection refused|econnrefused|no route to host|unreachable|name resolution",
    re.IGNORECASE,
)
_ANGLE_ADDRESS = re.compile(r"<([^>]+)>")


@dataclass
class InboundEmail:
    message_id: str | None
    subject: str
    body: str
    from_address: str
    date: datetime | None = None


def bare_address(from_header: str) -> str:
    """``"Acme Sales <sales@acme.com>"`` -> ``"sales@acme.com"``."""
    m = _ANGLE_ADDRESS.search(from_header or "")
    return (m.group(1) if m else (from_header or "")).strip().lower()


def classify_mailbox_error(error: Exception) -> str:
    """Map a transport failure onto an actionable message."""
    text = f"{type(error).__name__} {error}"
    if isinstance(error, (socket.timeout, TimeoutError)) or _TIMEOUT_PATTERNS.search(text):
        return TIMEOUT_HELP
    if _AUTH_PATTERNS.search(text):
        return AUTH_HELP
    if isinstance(error, (socket.gaierror, ConnectionRefusedError)) or _HOST_PATTERNS.search(text):
        return HOST_HELP
    return f"Failed to check emails: {error}"


def _to_html(body: str) -> str:
    return body.replace("\n", "<br>")


class Mailer:
    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def can_send(self) -> bool:
        return self.settings.smtp_configured

    @property
    def can_receive(self) -> bool:
        return self.settings.imap_configured

    # ── Outbound ─────────────────────────────────────────────────────

    def send(self, to_address: str, subject: str, body: str) -> str:
        """Send a plain-text + HTML email. Returns the Message-ID."""
        s = self.settings
        if not self.can_send:
            raise MailDeliveryError(
                "Email configuration incomplete. Set SMTP_HOST, SMTP_USER and SMTP_PASSWORD."
            )

        msg = EmailMessage()
        try:
            msg["From"] = s.smtp_from or s.smtp_user
            msg["To"] = to_address
            msg["Subject"] = subject
            msg["Message-ID"] = make_msgid(
                domain=(s.smtp_from or s.smtp_user).rpartition("@")[2] or None
            )
            msg.set_content(body)
            msg.add_alternative(_to_html(body), subtype="html")
        except (ValueError, TypeError) as e:
            logger.error("Could not build email to {!r}: {}", to_address, e)
            raise MailDeliveryError(f"Could not build email: {e}") from e

        try:
            if s.smtp_port == 465:
                server = smtplib.SMTP_SSL(s.smtp_host, s.smtp_port, timeout=s.smtp_timeout)
            else:
                server = smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=s.smtp_timeout)
            with server:
                if s.smtp_port != 465:
                    server.starttls()
                server.login(s.smtp_user, s.smtp_password)
                server.send_message(msg)
        except smtplib.SMTPAuthenticationError as e:
            logger.error("SMTP auth failed for {}: {}", s.smtp_user, e)
            raise MailDeliveryError(
                "Email authentication failed. Please check your SMTP credentials."
            ) from e
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP send to {} failed: {}", to_address, e)
            raise MailDeliveryError(f"Failed to send email: {e}") from e

        logger.info("RFP email sent to {} ({})", to_address, msg["Message-ID"])
        return msg["Message-ID"]

    # ── Inbound ──────────────────────────────────────────────────────

    def fetch_unseen(self) -> list[InboundEmail]:
        """Fetch and mark seen every unread message in the mailbox."""
        s = self.settings
        if not self.can_receive:
            raise MailboxError(
                "IMAP configuration incomplete. Set IMAP_HOST, IMAP_USER and IMAP_PASSWORD."
            )

        emails: list[InboundEmail] = []
        try:
            imap = imaplib.IMAP4_SSL(s.imap_host, s.imap_port, timeout=s.imap_timeout)
        except (imaplib.IMAP4.error, OSError) as e:
            logger.error("IMAP connect to {}:{} failed: {}", s.imap_host, s.imap_port, e)
            raise MailboxError(classify_mailbox_error(e)) from e

        try:
            imap.login(s.imap_user, s.imap_password)
            imap.select(s.imap_mailbox)
            status, data = imap.search(None, "UNSEEN")
            if status != "OK":
                raise MailboxError(f"Mailbox search failed: {status}")
            numbers = data[0].split() if data and data[0] else []
            for num in numbers:
                status, parts = imap.fetch(num, "(BODY.PEEK[])")
                if status != "OK":
                    logger.warning("IMAP fetch {} returned {}", num, status)
                    continue
                raw = next((p[1] for p in parts if isinstance(p, tuple)), None)
                if raw is None:
                    continue
                parsed = _parse_message(raw)
                imap.store(num, "+FLAGS", "\\Seen")
                if parsed:
                    emails.append(parsed)
        except (imaplib.IMAP4.error, OSError) as e:
            logger.error("IMAP mailbox check failed: {}", e)
            raise MailboxError(classify_mailbox_error(e)) from e
        finally:
            try:
                imap.logout()
            except (imaplib.IMAP4.error, OSError):
                pass

        logger.info("Fetched {} unread message(s) from {}", len(emails), s.imap_mailbox)
        return emails


def _parse_message(raw: bytes) -> InboundEmail | None:
    try:
        msg = BytesParser(policy=policy.default).parsebytes(raw)
        part = msg.get_body(preferencelist=("plain", "html"))
        body = part.get_content() if part is not None else ""
        date = None
        if msg["Date"]:
            try:
                date = parsedate_to_datetime(msg["Date"])
            except (TypeError, ValueError):
                date = None
        return InboundEmail(
            message_id=msg["Message-ID"],
            subject=str(msg["Subject"] or ""),
            body=body,
            from_address=str(msg["From"] or ""),
            date=date,
        )
    except (LookupError, ValueError) as e:
        logger.error("Error parsing email: {}", e)
        return None
