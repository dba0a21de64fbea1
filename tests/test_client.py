import threading

import pytest
import requests

from conftest import blank_pdf
from referral_pdf.client import ReferralClient, referral_filename, sanitize_file_name
from referral_pdf.errors import IntakeError
from referral_pdf.pdf_utils import count_pages

PAYLOAD = {"individual_name": "Jane Smith", "individual_zip": "60148"}


class FakeResponse:
    def __init__(self, status_code=200, content=b"", data=None, text=""):
        self.status_code = status_code
        self.ok = status_code < 400
        self.content = content
        self.text = text
        self._data = data

    def json(self):
        return self._data


class FakeBackend:
    """Answers the three endpoints the client calls, keyed by path."""

    def __init__(self, referral=None, consent=None, email_statuses=(200, 200)):
        self.referral = referral or FakeResponse(content=blank_pdf(2, "R"))
        self.consent = consent or FakeResponse(content=blank_pdf(1, "C"))
        self.email_statuses = list(email_statuses)
        self.calls = []
        self._lock = threading.Lock()

    def post(self, url, json=None, timeout=None):
        with self._lock:
            self.calls.append(url)
        if url.endswith("/fill-referral"):
            return self._resolve(self.referral)
        if url.endswith("/fill-consent"):
            return self._resolve(self.consent)
        status = self.email_statuses.pop(0)
        return FakeResponse(status, data={"ok": True, "messageId": "<id>"}, text="Email send failed")

    @staticmethod
    def _resolve(response):
        if isinstance(response, Exception):
            raise response
        return response


def email_calls(backend):
    return [url for url in backend.calls if url.endswith("/email-referral")]


def test_sanitize_file_name():
    assert sanitize_file_name("Jane / Smith*") == "Jane_Smith"
    assert sanitize_file_name("") == "Referral_Form"
    assert sanitize_file_name(None) == "Referral_Form"


def test_referral_filename():
    assert referral_filename(PAYLOAD) == "Jane_Smith_Referral_Form.pdf"
    assert referral_filename({"individual_name": "???"}) == "Referral_Referral_Form.pdf"


def test_submit_merges_and_emails():
    backend = FakeBackend()
    result = ReferralClient("http://api/", session=backend, retry_delay=0).submit(PAYLOAD)

    assert result.email_ok is True
    assert result.filename == "Jane_Smith_Referral_Form.pdf"
    assert count_pages(result.pdf_bytes) == 3
    assert "http://api/fill-referral" in backend.calls
    assert len(email_calls(backend)) == 1


def test_email_retried_once_then_pdf_still_returned():
    backend = FakeBackend(email_statuses=(500, 500, 200))
    result = ReferralClient("http://api", session=backend, retry_delay=0).submit(PAYLOAD)

    assert result.email_ok is False
    assert count_pages(result.pdf_bytes) == 3
    assert len(email_calls(backend)) == 2


def test_email_succeeds_on_retry():
    backend = FakeBackend(email_statuses=(500, 200))
    result = ReferralClient("http://api", session=backend, retry_delay=0).submit(PAYLOAD)
    assert result.email_ok is True


def test_pdf_endpoint_error_aborts_before_email():
    backend = FakeBackend(consent=FakeResponse(500, text="Missing consent template"))
    with pytest.raises(IntakeError, match="/fill-consent responded 500"):
        ReferralClient("http://api", session=backend, retry_delay=0).submit(PAYLOAD)
    assert email_calls(backend) == []


def test_connection_error_becomes_intake_error():
    backend = FakeBackend(referral=requests.ConnectionError("refused"))
    with pytest.raises(IntakeError, match="PDF generation failed"):
        ReferralClient("http://api", session=backend, retry_delay=0).submit(PAYLOAD)
