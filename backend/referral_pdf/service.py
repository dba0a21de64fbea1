"""
High-level service that exposes referral/consent PDF filling to the FastAPI layer.

Responsibilities
----------------
* locate the two fixed templates among the candidate asset directories
* map an intake payload onto each template and fill it
* load the ZIP → CCU lookup table for the consent form
* provide demo payloads for manual testing of the endpoints
"""

from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .ccu_lookup import load_ccu_lookup
from .config import CONSENT_TEMPLATES, REFERRAL_TEMPLATES, IntakeSettings
from .demo import PLACEHOLDER_SIGNATURE, consent_demo_payload, referral_demo_payload
from .errors import ResourceNotFound, ValidationError
from .field_mapper import FieldTriple, consent_signatures, consent_triples, referral_triples
from .pdf_utils import decode_data_url, fill_pdf_template
from .template_scanner import TemplateScanner, missing_fields

logger = logging.getLogger(__name__)

REFERRAL = "referral"
CONSENT = "consent"

TEMPLATE_FILES: Dict[str, Tuple[str, ...]] = {
    REFERRAL: REFERRAL_TEMPLATES,
    CONSENT: CONSENT_TEMPLATES,
}

OUTPUT_FILENAMES = {
    REFERRAL: "Referral-Filled.pdf",
    CONSENT: "Consent-Filled.pdf",
}


class ReferralPdfService:
    def __init__(self, settings: Optional[IntakeSettings] = None):
        self.settings = settings or IntakeSettings()
        self.template_scanner = TemplateScanner()

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------
    def template_candidates(self, template_id: str) -> List[Path]:
        try:
            names = TEMPLATE_FILES[template_id]
        except KeyError:
            raise ResourceNotFound(f"Unknown template '{template_id}'") from None
        return [d / name for d in self.settings.asset_dirs() for name in names]

    def resolve_template(self, template_id: str) -> Path:
        candidates = self.template_candidates(template_id)
        for candidate in candidates:
            if candidate.exists():
                return candidate
        names = ", ".join(TEMPLATE_FILES[template_id])
        raise ResourceNotFound(f"Missing {names} in /assets")

    def scan_template(self, template_id: str) -> Dict:
        scan = self.template_scanner.scan_template(self.resolve_template(template_id))
        mapped = [t.name for t in self.triples(template_id, {})]
        scan["unmapped_targets"] = missing_fields(scan, mapped)
        return scan

    # ------------------------------------------------------------------
    # Mapping + filling
    # ------------------------------------------------------------------
    def triples(self, template_id: str, payload: Mapping, today: Optional[dt.date] = None) -> List[FieldTriple]:
        if template_id == REFERRAL:
            return referral_triples(payload)
        if template_id == CONSENT:
            lookup = load_ccu_lookup(self.settings)
            return consent_triples(payload, lookup, today=today, agency_rep_title=self.settings.agency_rep_title)
        raise ResourceNotFound(f"Unknown template '{template_id}'")

    def signatures(self, template_id: str, payload: Mapping) -> Dict[Sequence[str], bytes]:
        if template_id != CONSENT:
            return {}
        decoded = {}
        for field_names, data_url in consent_signatures(payload).items():
            image = decode_data_url(data_url)
            if image:
                decoded[field_names] = image
            else:
                logger.warning("Signature for %s could not be decoded; leaving it blank", field_names[0])
        return decoded

    def fill(self, template_id: str, payload: Mapping, today: Optional[dt.date] = None, flatten: bool = True) -> bytes:
        if not isinstance(payload, Mapping):
            raise ValidationError("Payload must be a JSON object")
        template_path = self.resolve_template(template_id)
        triples = self.triples(template_id, payload, today=today)
        pdf_bytes = fill_pdf_template(
            template_path,
            triples,
            signatures=self.signatures(template_id, payload),
            flatten=flatten,
        )
        logger.info("Generated %s PDF from %s (%d bytes)", template_id, template_path.name, len(pdf_bytes))
        return pdf_bytes

    def fill_referral(self, payload: Mapping) -> bytes:
        return self.fill(REFERRAL, payload)

    def fill_consent(self, payload: Mapping, today: Optional[dt.date] = None) -> bytes:
        return self.fill(CONSENT, payload, today=today)

    # ------------------------------------------------------------------
    # Demo output
    # ------------------------------------------------------------------
    def demo_referral(self) -> bytes:
        return self.fill_referral(referral_demo_payload())

    def demo_consent(self, today: Optional[dt.date] = None) -> bytes:
        today = today or dt.date.today()
        payload = consent_demo_payload(today, signature=PLACEHOLDER_SIGNATURE)
        return self.fill_consent(payload, today=today)
