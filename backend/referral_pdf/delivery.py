"""
Email delivery of the merged referral PDF.

`ReferralDelivery` wraps a transport with the one-retry policy and reports the
outcome as a boolean so callers can always fall back to a local download.
Transports raise `DeliveryFailure` / `ConfigurationError` and return the
message id on success.
"""

from __future__ import annotations

import base64
import datetime as dt
import html
import logging
import smtplib
import ssl
import time
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Callable, Mapping, Optional, Protocol, Sequence, Tuple

import requests

from .config import SmtpSettings
from .errors import ConfigurationError, DeliveryFailure

logger = logging.getLogger(__name__)

SUBJECT = "CCP: Auto Referral Generated!"
DEFAULT_FILENAME = "Referral_Form.pdf"


class EmailTransport(Protocol):
    def send(
        self,
        pdf_bytes: bytes,
        filename: str,
        payload: Mapping,
        recipients: Optional[Sequence[str]] = None,
    ) -> str:
        ...


def notification_summary(payload: Mapping, today: Optional[dt.date] = None) -> Tuple[str, str]:
    """Plain-text and HTML bodies for the notification email."""
    today = today or dt.date.today()
    display_date = today.strftime("%m/%d/%Y")
    individual = payload.get("individual_name") or "(Unknown Individual)"
    referral_date = payload.get("referral_date") or display_date
    zip_code = payload.get("individual_zip") or ""

    lines = [
        "A new CCP referral has been generated and is attached as a PDF.",
        "",
        f"Date: {display_date}",
        f"Referral Date (form): {referral_date}",
        f"Individual: {individual}",
    ]
    if zip_code:
        lines.append(f"ZIP: {zip_code}")
    lines.extend(["", "This email was sent automatically by the Safe Life CCP Referral system."])

    zip_item = f"<li><strong>ZIP:</strong> {html.escape(str(zip_code))}</li>" if zip_code else ""
    body_html = (
        '<div style="font-family:Arial,Helvetica,sans-serif;line-height:1.5">'
        '<h2 style="margin:0 0 8px">CCP Referral Generated</h2>'
        "<p>A new CCP referral has been generated and is attached as a PDF.</p>"
        "<ul>"
        f"<li><strong>Date:</strong> {display_date}</li>"
        f"<li><strong>Referral Date (form):</strong> {html.escape(str(referral_date))}</li>"
        f"<li><strong>Individual:</strong> {html.escape(str(individual))}</li>"
        f"{zip_item}"
        "</ul>"
        '<p style="margin-top:12px;">This email was sent automatically by the Safe Life CCP Referral system.</p>'
        "</div>"
    )
    return "\n".join(lines), body_html


class SmtpTransport:
    """Sends the PDF through an SMTP server (SSL on 465 or STARTTLS)."""

    def __init__(
        self,
        settings: SmtpSettings,
        recipients: Sequence[str] = (),
        smtp_factory: Optional[Callable[..., smtplib.SMTP]] = None,
    ):
        self.settings = settings
        self.recipients = tuple(recipients)
        self._smtp_factory = smtp_factory

    def build_message(self, pdf_bytes: bytes, filename: str, payload: Mapping, recipients: Sequence[str]) -> MIMEMultipart:
        body_text, body_html = notification_summary(payload)

        message = MIMEMultipart("mixed")
        message["Subject"] = SUBJECT
        message["From"] = self.settings.from_address
        message["To"] = ", ".join(recipients)
        message["Message-ID"] = make_msgid(domain=(self.settings.host or "localhost"))

        alternative = MIMEMultipart("alternative")
        alternative.attach(MIMEText(body_text, "plain"))
        alternative.attach(MIMEText(body_html, "html"))
        message.attach(alternative)

        attachment = MIMEApplication(pdf_bytes, _subtype="pdf")
        attachment.add_header("Content-Disposition", "attachment", filename=filename)
        message.attach(attachment)
        return message

    def _connect(self) -> smtplib.SMTP:
        s = self.settings
        if self._smtp_factory:
            return self._smtp_factory(s.host, s.port)
        if s.secure:
            return smtplib.SMTP_SSL(s.host, s.port, context=ssl.create_default_context())
        server = smtplib.SMTP(s.host, s.port)
        server.starttls(context=ssl.create_default_context())
        return server

    def send(self, pdf_bytes: bytes, filename: str, payload: Mapping, recipients: Optional[Sequence[str]] = None) -> str:
        if not self.settings.configured:
            raise ConfigurationError(
                "SMTP not configured. Please set SMTP_HOST, SMTP_USER, SMTP_PASS "
                "(and optional SMTP_PORT, SMTP_SECURE, SMTP_FROM)."
            )
        to = tuple(recipients or self.recipients)
        if not to:
            raise ConfigurationError("No referral recipients configured. Set REFERRAL_RECIPIENTS.")

        message = self.build_message(pdf_bytes, filename or DEFAULT_FILENAME, payload, to)
        try:
            with self._connect() as server:
                server.login(self.settings.user, self.settings.password)
                server.sendmail(self.settings.from_address, list(to), message.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryFailure(str(exc)) from exc

        logger.info("Referral %s emailed to %d recipient(s)", filename, len(to))
        return message["Message-ID"]


class HttpEmailTransport:
    """Posts the PDF to the `/email-referral` endpoint."""

    def __init__(self, url: str, session: Optional[requests.Session] = None, timeout: Optional[float] = None):
        self.url = url
        self.session = session or requests.Session()
        self.timeout = timeout

    def send(self, pdf_bytes: bytes, filename: str, payload: Mapping, recipients: Optional[Sequence[str]] = None) -> str:
        body = {
            "filename": filename,
            "pdfBase64": base64.b64encode(pdf_bytes).decode("ascii"),
            "payload": dict(payload),
        }
        if recipients:
            body["recipients"] = list(recipients)
        try:
            r = self.session.post(self.url, json=body, timeout=self.timeout)
        except requests.RequestException as exc:
            raise DeliveryFailure(str(exc)) from exc
        if not r.ok:
            raise DeliveryFailure(f"{r.status_code}: {r.text}")
        # the mail is already sent; an odd body must not trigger a resend
        try:
            data = r.json()
        except ValueError:
            logger.warning("Email endpoint returned a non-JSON body")
            return ""
        if not isinstance(data, dict):
            return ""
        return str(data.get("messageId") or "")


class ReferralDelivery:
    """One attempt plus one retry after `retry_delay` seconds; never raises."""

    def __init__(
        self,
        transport: EmailTransport,
        attempts: int = 2,
        retry_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.transport = transport
        self.attempts = max(1, attempts)
        self.retry_delay = retry_delay
        self._sleep = sleep

    def send(self, pdf_bytes: bytes, filename: str, payload: Mapping) -> bool:
        for attempt in range(1, self.attempts + 1):
            try:
                message_id = self.transport.send(pdf_bytes, filename, payload)
                logger.info("Email attempt %d succeeded (%s)", attempt, message_id)
                return True
            except Exception as exc:  # transport errors are reported as False
                logger.warning("Email attempt %d failed: %s", attempt, exc)
            if attempt < self.attempts:
                self._sleep(self.retry_delay)
        logger.error("Email send failed after %d attempts", self.attempts)
        return False
