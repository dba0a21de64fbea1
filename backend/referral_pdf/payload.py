"""
Assembles the intake payload from raw form answers.

The form only asks about the individual; the header, the referrer block and
the computed age are filled in here so both PDFs receive the same values.
"""

from __future__ import annotations

import datetime as dt
from typing import Dict, Mapping, Optional

from .config import ReferrerProfile

# answer keys copied through as-is
ANSWER_FIELDS = (
    "individual_name", "individual_address", "individual_city", "individual_zip",
    "individual_county", "individual_phone", "individual_email", "individual_pref_language",
    "individual_lives_alone", "individual_safety_issues", "individual_safety_desc",
    "facility_name", "facility_address", "facility_type", "facility_other_name",
    "has_spouse", "spouse_name", "spouse_needs_services", "spouse_age",
    "has_caregiver", "caregiver_contact",
    "legal_guardian", "representative_payee", "poa_health", "poa_financial", "rep_contact",
    "other_person_exists", "other_person_name", "other_person_age",
    "hearing_loss", "vision_issues", "alz_dementia", "mental_health",
    "physical_disability", "intellectual_dev_disability", "brain_injury", "pref_comm_method",
    "reason_for_referral", "receives_services", "types_services",
    "problems_with_services", "problems_explain",
    "military_service", "aware_of_referral", "immediate_danger", "danger_explain",
    "immediate_assistance", "assist_explain", "wants_someone_present", "who_present",
    "best_time", "best_phone", "best_email",
    "consent_client_signature", "consent_agency_signature",
)


def parse_iso_date(value) -> Optional[dt.date]:
    if not value:
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    try:
        return dt.date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def iso_to_mmddyyyy(value) -> str:
    day = parse_iso_date(value)
    return day.strftime("%m/%d/%Y") if day else ""


def years_between(dob: dt.date, today: dt.date) -> int:
    years = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        years -= 1
    return years


def age_from_dob(value, today: dt.date) -> str:
    """Whole years since `value`; blank when unparseable or outside 0-120."""
    dob = parse_iso_date(value)
    if dob is None:
        return ""
    years = years_between(dob, today)
    if years < 0 or years > 120:
        return ""
    return str(years)


def build_payload(
    answers: Mapping,
    profile: Optional[ReferrerProfile] = None,
    now: Optional[dt.datetime] = None,
) -> Dict[str, object]:
    profile = profile or ReferrerProfile()
    now = now or dt.datetime.now()

    payload: Dict[str, object] = {
        "referral_date": now.strftime("%m/%d/%Y"),
        "referral_time": now.strftime("%H:%M"),
        "agency_name": profile.agency_name,
        "staff_person": profile.staff_person,
        "referrer_name": profile.name,
        "referrer_phone": profile.phone,
        "referrer_phone_type": profile.phone_type,
        "referrer_email": profile.email,
        "referrer_relationship": profile.relationship,
        "individual_dob": iso_to_mmddyyyy(answers.get("individual_dob")),
        "individual_age": age_from_dob(answers.get("individual_dob"), now.date()),
    }
    for key in ANSWER_FIELDS:
        value = answers.get(key)
        if key == "facility_type":
            payload[key] = [value] if isinstance(value, str) and value else list(value or [])
        else:
            payload[key] = value if value is not None else ""
    payload["consent_agree"] = bool(answers.get("consent_agree"))
    return payload
