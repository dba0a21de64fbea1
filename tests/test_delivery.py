import datetime as dt
import email
import smtplib

import pytest

from referral_pdf.config import SmtpSettings
from referral_pdf.delivery import (
    SUBJECT,
    HttpEmailTransport,
    ReferralDelivery,
    SmtpTransport,
    notification_summary,
)
from referral_pdf.errors import ConfigurationError, DeliveryFailure

PDF = b"%PDF-1.7 fake"
PAYLOAD = {"individual_name": "Jane <Smith>", "referral_date": "08/12/2025", "individual_zip": "60148"}
SMTP_SETTINGS = SmtpSettings(host="smtp.example.org", port=465, user="bot@example.org", password="pw")


class ScriptedTransport:
    """Raises or returns the next scripted outcome on every send."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def send(self, pdf_bytes, filename, payload, recipients=None):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeSMTP:
    instances = []

    def __init__(self, host, port, fail=False):
        self.host = host
        self.port = port
        self.fail = fail
        self.sent = []
        self.logged_in = None
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def login(self, user, password):
        self.logged_in = (user, password)

    def sendmail(self, sender, recipients, message):
        if self.fail:
            raise smtplib.SMTPServerDisconnected("connection dropped")
        self.sent.append((sender, recipients, message))


@pytest.fixture(autouse=True)
def _reset_fake_smtp():
    FakeSMTP.instances = []


def test_first_attempt_succeeds_without_sleep():
    transport = ScriptedTransport("<id>")
    sleeps = []
    assert ReferralDelivery(transport, sleep=sleeps.append).send(PDF, "a.pdf", {}) is True
    assert transport.calls == 1
    assert sleeps == []


def test_retries_once_after_delay():
    transport = ScriptedTransport(DeliveryFailure("boom"), "<id>")
    sleeps = []
    delivery = ReferralDelivery(transport, retry_delay=1.0, sleep=sleeps.append)
    assert delivery.send(PDF, "a.pdf", {}) is True
    assert transport.calls == 2
    assert sleeps == [1.0]


def test_gives_up_after_two_attempts():
    transport = ScriptedTransport(DeliveryFailure("one"), ConfigurationError("two"), "<never>")
    sleeps = []
    assert ReferralDelivery(transport, sleep=sleeps.append).send(PDF, "a.pdf", {}) is False
    assert transport.calls == 2
    assert sleeps == [1.0]


def test_notification_summary_escapes_html():
    body_text, body_html = notification_summary(PAYLOAD, today=dt.date(2025, 8, 13))
    assert "Individual: Jane <Smith>" in body_text
    assert "Date: 08/13/2025" in body_text
    assert "ZIP: 60148" in body_text
    assert "Jane &lt;Smith&gt;" in body_html


def test_notification_summary_defaults():
    body_text, _ = notification_summary({}, today=dt.date(2025, 8, 13))
    assert "(Unknown Individual)" in body_text
    assert "Referral Date (form): 08/13/2025" in body_text
    assert "ZIP:" not in body_text


def test_smtp_send_builds_message_with_attachment():
    transport = SmtpTransport(SMTP_SETTINGS, ["intake@example.org"], smtp_factory=FakeSMTP)
    message_id = transport.send(PDF, "Jane_Referral_Form.pdf", PAYLOAD)

    server = FakeSMTP.instances[0]
    assert (server.host, server.port) == ("smtp.example.org", 465)
    assert server.logged_in == ("bot@example.org", "pw")
    sender, recipients, raw = server.sent[0]
    assert sender == "Safe Life CCP <bot@example.org>"
    assert recipients == ["intake@example.org"]

    parsed = email.message_from_string(raw)
    assert parsed["Subject"] == SUBJECT
    assert parsed["Message-ID"] == message_id
    attachments = [part for part in parsed.walk() if part.get_filename()]
    assert attachments[0].get_filename() == "Jane_Referral_Form.pdf"
    assert attachments[0].get_payload(decode=True) == PDF


def test_smtp_explicit_recipients_override_defaults():
    transport = SmtpTransport(SMTP_SETTINGS, ["intake@example.org"], smtp_factory=FakeSMTP)
    transport.send(PDF, "a.pdf", {}, recipients=["other@example.org"])
    assert FakeSMTP.instances[0].sent[0][1] == ["other@example.org"]


def test_smtp_requires_configuration():
    with pytest.raises(ConfigurationError):
        SmtpTransport(SmtpSettings(), ["intake@example.org"]).send(PDF, "a.pdf", {})
    with pytest.raises(ConfigurationError):
        SmtpTransport(SMTP_SETTINGS, [], smtp_factory=FakeSMTP).send(PDF, "a.pdf", {})


def test_smtp_errors_become_delivery_failures():
    transport = SmtpTransport(
        SMTP_SETTINGS,
        ["intake@example.org"],
        smtp_factory=lambda host, port: FakeSMTP(host, port, fail=True),
    )
    with pytest.raises(DeliveryFailure):
        transport.send(PDF, "a.pdf", {})


class FakeResponse:
    def __init__(self, status_code=200, data=None, text=""):
        self.status_code = status_code
        self.ok = status_code < 400
        self._data = data
        self.text = text

    def json(self):
        if isinstance(self._data, Exception):
            raise self._data
        return self._data


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.posts = []

    def post(self, url, json=None, timeout=None):
        self.posts.append((url, json))
        return self.response


def test_http_transport_posts_base64_pdf():
    session = FakeSession(FakeResponse(200, {"ok": True, "messageId": "<abc>"}))
    transport = HttpEmailTransport("http://api/email-referral", session=session)

    assert transport.send(PDF, "a.pdf", PAYLOAD) == "<abc>"
    url, body = session.posts[0]
    assert url == "http://api/email-referral"
    assert body["filename"] == "a.pdf"
    assert body["pdfBase64"] == "JVBERi0xLjcgZmFrZQ=="
    assert "recipients" not in body


def test_http_transport_raises_on_error_status():
    session = FakeSession(FakeResponse(500, text="Email send failed"))
    with pytest.raises(DeliveryFailure, match="500"):
        HttpEmailTransport("http://api/email-referral", session=session).send(PDF, "a.pdf", {})


@pytest.mark.parametrize("data", [ValueError("Expecting value"), ["not", "a", "dict"], None])
def test_http_transport_tolerates_odd_success_body(data):
    session = FakeSession(FakeResponse(200, data))
    assert HttpEmailTransport("http://api/email-referral", session=session).send(PDF, "a.pdf", {}) == ""


def test_odd_success_body_is_not_resent():
    session = FakeSession(FakeResponse(200, ValueError("Expecting value"), text="<html>ok</html>"))
    delivery = ReferralDelivery(HttpEmailTransport("http://api/email-referral", session=session), sleep=lambda s: None)

    assert delivery.send(PDF, "a.pdf", {}) is True
    assert len(session.posts) == 1
