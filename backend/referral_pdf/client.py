"""
Submission flow used by the intake form.

Both PDFs are requested concurrently, merged locally, emailed with one retry,
and the merged bytes are always handed back so the user can download them
even when the email could not be sent.
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

import requests

from .delivery import HttpEmailTransport, ReferralDelivery
from .errors import IntakeError
from .pdf_utils import count_pages, merge_pdfs

logger = logging.getLogger(__name__)

REFERRAL_PATH = "/fill-referral"
CONSENT_PATH = "/fill-consent"
EMAIL_PATH = "/email-referral"

_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|]+')


@dataclass(frozen=True)
class SubmissionResult:
    pdf_bytes: bytes
    filename: str
    email_ok: bool


def sanitize_file_name(name) -> str:
    if not name:
        return "Referral_Form"
    cleaned = _UNSAFE_CHARS.sub("", str(name)).strip()
    return re.sub(r"\s+", "_", cleaned)


def referral_filename(payload: Mapping) -> str:
    base = sanitize_file_name(payload.get("individual_name"))
    return f"{base or 'Referral'}_Referral_Form.pdf"


class ReferralClient:
    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        delivery: Optional[ReferralDelivery] = None,
        timeout: Optional[float] = None,
        retry_delay: float = 1.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.delivery = delivery or ReferralDelivery(
            HttpEmailTransport(self.base_url + EMAIL_PATH, session=self.session, timeout=timeout),
            retry_delay=retry_delay,
        )

    def fetch_pdf(self, path: str, payload: Mapping) -> bytes:
        r = self.session.post(self.base_url + path, json=dict(payload), timeout=self.timeout)
        if not r.ok:
            raise IntakeError(f"{path} responded {r.status_code}: {r.text}")
        return r.content

    def fill_both(self, payload: Mapping) -> Tuple[bytes, bytes]:
        with ThreadPoolExecutor(max_workers=2) as pool:
            referral = pool.submit(self.fetch_pdf, REFERRAL_PATH, payload)
            consent = pool.submit(self.fetch_pdf, CONSENT_PATH, payload)
            return referral.result(), consent.result()

    def submit(self, payload: Mapping) -> SubmissionResult:
        try:
            referral_pdf, consent_pdf = self.fill_both(payload)
        except requests.RequestException as exc:
            raise IntakeError(f"PDF generation failed: {exc}") from exc

        merged = merge_pdfs(referral_pdf, consent_pdf)
        filename = referral_filename(payload)
        logger.info("Merged %s (%d pages)", filename, count_pages(merged))

        email_ok = self.delivery.send(merged, filename, payload)
        if not email_ok:
            logger.error("Email send failed after retries; returning PDF for download only")
        return SubmissionResult(merged, filename, email_ok)
