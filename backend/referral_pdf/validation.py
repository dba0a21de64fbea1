"""Intake answer validation; returns field -> message for every failing rule."""

from __future__ import annotations

import datetime as dt
import re
from typing import Dict, Mapping, Optional

from .errors import ValidationError
from .payload import parse_iso_date

NAME_RE = re.compile(r"^[A-Za-z .'-]{2,}$")
ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")
PHONE_RE = re.compile(r"^\d{10}$|^\d{3}-\d{3}-\d{4}$")
EMAIL_RE = re.compile(r"^[\w.-]+@([\w-]+\.)+[\w-]{2,}$", re.IGNORECASE)

REQUIRED_FIELDS = (
    "individual_name",
    "individual_dob",
    "individual_address",
    "individual_city",
    "individual_zip",
    "individual_county",
    "individual_phone",
    "individual_email",
)


def _value(answers: Mapping, key: str) -> str:
    value = answers.get(key)
    return "" if value is None else str(value).strip()


def validate_intake(answers: Mapping, today: Optional[dt.date] = None) -> Dict[str, str]:
    today = today or dt.date.today()
    errors: Dict[str, str] = {}

    for key in REQUIRED_FIELDS:
        if not _value(answers, key):
            errors[key] = "This field is required."

    dob = parse_iso_date(_value(answers, "individual_dob"))
    if dob is None or dob >= today:
        errors["individual_dob"] = "Date of birth must be a valid past date."

    if len(_value(answers, "individual_address")) < 5:
        errors["individual_address"] = "Please enter a full street address."
    if not NAME_RE.match(_value(answers, "individual_city")):
        errors["individual_city"] = "Enter a valid city name."
    if not ZIP_RE.match(_value(answers, "individual_zip")):
        errors["individual_zip"] = "Enter a valid ZIP (12345 or 12345-6789)."
    if not NAME_RE.match(_value(answers, "individual_county")):
        errors["individual_county"] = "Enter a valid county."
    if not PHONE_RE.match(_value(answers, "individual_phone")):
        errors["individual_phone"] = "Use 1234567890 or 123-456-7890."
    if not EMAIL_RE.match(_value(answers, "individual_email")):
        errors["individual_email"] = "Enter a valid email address."

    if not answers.get("consent_agree"):
        errors["consent_agree"] = "Please confirm you agree to the consent terms."
    if not answers.get("consent_client_signature") or not answers.get("consent_agency_signature"):
        errors["signatures"] = "Please provide both signatures before submitting."

    return errors


def ensure_valid(answers: Mapping, today: Optional[dt.date] = None) -> None:
    errors = validate_intake(answers, today)
    if errors:
        raise ValidationError(f"{len(errors)} field(s) need attention", errors)
