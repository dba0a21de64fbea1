"""
Payload → PDF form field mapping for the CCP referral and consent templates.

Each schema is a plain function that turns the flat intake payload into an
ordered list of `FieldTriple`s. Compound kinds (yes/no pairs, yes/no/unknown
tri-states, one-of-many groups) expand into one boolean triple per target
checkbox, so the filler only ever deals with text and checkbox values.

Unrecognized yes/no/unknown answers clear every target box. That keeps the
generated form consistent but also hides typos in the source data; the
behaviour is kept as-is for compatibility with already-issued forms.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .ccu_lookup import ccu_outputs_from_zip, normalize_zip

YES_VALUES = frozenset({"1", "true", "yes", "y", "on"})
NO_VALUES = frozenset({"0", "false", "no", "n", "off"})
UNKNOWN_VALUES = frozenset({"u", "unk", "unknown"})

CLIENT_SIGNATURE_FIELDS = ("Signature Block70_es_:signer:signatureblock",)
AGENCY_SIGNATURE_FIELDS = ("Signature Block71_es_:signer:signatureblock",)


class FieldKind(str, Enum):
    TEXT = "text"
    CHECKBOX = "checkbox"
    YES_NO = "yes_no"
    TRI_STATE = "tri_state"
    ONE_OF = "one_of"


@dataclass(frozen=True)
class FieldTriple:
    name: str
    value: Union[str, bool]
    kind: FieldKind = FieldKind.TEXT

    @property
    def is_text(self) -> bool:
        return self.kind is FieldKind.TEXT


# ----------------------------------------------------------------------
# Value normalization
# ----------------------------------------------------------------------
def to_str(value) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value if v is not None)
    return str(value)


def _token(value) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def truthy(value) -> bool:
    return _token(value) in YES_VALUES


def first_of(payload: Mapping, *keys: str):
    """Return the first non-empty value among alias keys, else None."""
    for key in keys:
        value = payload.get(key)
        if value not in (None, "", [], ()):
            return value
    return None


def present_of(payload: Mapping, *keys: str):
    """Return the first alias value that is set at all; an explicit "" does not fall through."""
    for key in keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def format_mmddyyyy(day: dt.date) -> str:
    return day.strftime("%m/%d/%Y")


# ----------------------------------------------------------------------
# Triple builders
# ----------------------------------------------------------------------
def text(name: str, value) -> FieldTriple:
    return FieldTriple(name, to_str(value), FieldKind.TEXT)


def checkbox(name: str, on) -> FieldTriple:
    if not isinstance(on, bool):
        on = truthy(on)
    return FieldTriple(name, on, FieldKind.CHECKBOX)


def yes_no(yes_field: str, no_field: str, value) -> List[FieldTriple]:
    token = _token(value)
    return [
        FieldTriple(yes_field, token in YES_VALUES, FieldKind.YES_NO),
        FieldTriple(no_field, token in NO_VALUES, FieldKind.YES_NO),
    ]


def tri_state(yes_field: str, no_field: str, unknown_field: Optional[str], value) -> List[FieldTriple]:
    token = _token(value)
    triples = [
        FieldTriple(yes_field, token in YES_VALUES, FieldKind.TRI_STATE),
        FieldTriple(no_field, token in NO_VALUES, FieldKind.TRI_STATE),
    ]
    if unknown_field:
        triples.append(FieldTriple(unknown_field, token in UNKNOWN_VALUES, FieldKind.TRI_STATE))
    return triples


def one_of(options: Mapping[str, str], value) -> List[FieldTriple]:
    """options: label -> target field; case-insensitive exact label match."""
    token = _token(value)
    return [
        FieldTriple(field, token == label.lower(), FieldKind.ONE_OF)
        for label, field in options.items()
    ]


# ----------------------------------------------------------------------
# Referral form
# ----------------------------------------------------------------------
FACILITY_CHECKBOXES = (
    ("Assisted Living", ("assisted",)),
    ("Supportive Living Program", ("supportive",)),
    ("Longterm Care Facility Nursing Home", ("long", "nursing")),
    ("Hospital", ("hospital",)),
    ("Hospice Facility", ("hospice",)),
)

REPRESENTATION_FIELDS = (
    ("L_G_Yes", "L_G_No", "L_G_Unk", "legal_guardian"),
    ("Rep_Yes", "Rep_No", "Rep_Unk", "representative_payee"),
    ("POA_Yes", "POA_No", "POA_Unk", "poa_health"),
    ("POAF_Yes", "POAF_No", "POAF_Unk", "poa_financial"),
)

# the form spells the vision "yes" box "Vission"
HEALTH_FIELDS = (
    ("Hearing_loss_Yes", "Hearing_loss_No", "Hearing_loss_Unk", ("hearing_loss",)),
    ("Vission_loss_Yes", "Vision_loss_No", "Vision_loss_Unk", ("vision_issues",)),
    ("Alz_Yes", "Alz_No", "Alz_Unk", ("alz_dementia",)),
    ("MHI_Yes", "MHI_No", "MHI_Unk", ("mental_health",)),
    ("Dis_Yes", "Dis_No", "Dis_Unk", ("physical_disability",)),
    ("I/D_Yes", "I/D_No", "I/D_Unk", ("intellectual_dev_disability", "idd")),
    ("BI_Yes", "BI_No", "BI_Unk", ("brain_injury",)),
)


def _facility_triples(payload: Mapping) -> List[FieldTriple]:
    types = payload.get("facility_type")
    if not isinstance(types, (list, tuple)):
        types = [to_str(types)]
    joined = " | ".join(to_str(t) for t in types).lower()

    triples = [
        checkbox(field, any(word in joined for word in words))
        for field, words in FACILITY_CHECKBOXES
    ]
    other_name = payload.get("facility_other_name")
    is_other = "other" in joined or bool(other_name)
    triples.append(checkbox("Other Name", is_other))
    if is_other:
        triples.append(text("Other Facility Name", other_name or payload.get("facility_type")))
    return triples


def referral_triples(payload: Mapping) -> List[FieldTriple]:
    p = payload
    triples: List[FieldTriple] = []
    add = triples.append
    extend = triples.extend

    # header
    add(text("Referral Date", first_of(p, "referral_date", "referralDate")))
    add(text("Referral Time", first_of(p, "referral_time", "time")))
    add(text("Agency Name", first_of(p, "agency_name", "agencyName")))
    add(text("Staff person taking referral", first_of(p, "staff_person", "staffPerson")))

    # person making the referral
    add(text("Name", p.get("referrer_name")))
    add(text("Phone of Referral Preparer", p.get("referrer_phone")))
    extend(one_of({"cell": "Cell", "home": "Home", "work": "Work"}, p.get("referrer_phone_type")))
    add(text("Email of Referral Preparer", p.get("referrer_email")))
    add(text("Relationship to Individual in need of supports and services", p.get("referrer_relationship")))

    # individual
    add(text("Name_2", p.get("individual_name")))
    add(text("Age", p.get("individual_age")))
    add(text("Date of Birth", p.get("individual_dob")))
    add(text("Address", p.get("individual_address")))
    add(text("City", p.get("individual_city")))
    add(text("Zip Code", p.get("individual_zip")))
    add(text("County", p.get("individual_county")))
    add(text("Phone of Client", p.get("individual_phone")))
    add(text("Email_2", p.get("individual_email")))
    add(text("If not Englishspeaking preferred language", p.get("individual_pref_language")))
    extend(yes_no("Lives_Alone_Yes", "Lives_Alone_No", p.get("individual_lives_alone")))
    extend(yes_no("Safety Issue_Yes", "Safety_issue_No", p.get("individual_safety_issues")))
    add(text("What Safety Issue?", p.get("individual_safety_desc")))

    # facility
    add(text("Facility Name", p.get("facility_name")))
    add(text("Facility Address", p.get("facility_address")))
    extend(_facility_triples(p))

    # spouse & caregiver
    extend(yes_no("Spouse_Yes", "Spouse_No", p.get("has_spouse")))
    add(text("If yes Spouse Name", p.get("spouse_name")))
    extend(yes_no("Spouse needs services_Yes", "Spouse needs services_No", p.get("spouse_needs_services")))
    add(text("Age of spouse", p.get("spouse_age")))
    extend(yes_no(
        "Friend/Family Caregiver_Yes",
        "Friend_Family Caregiver_No",
        present_of(p, "has_caregiver", "caregiver_exists"),
    ))
    add(text("If yes provide contact information if known", p.get("caregiver_contact")))

    # representation
    for yes_field, no_field, unk_field, key in REPRESENTATION_FIELDS:
        extend(tri_state(yes_field, no_field, unk_field, p.get(key)))
    if p.get("rep_contact"):
        add(text("If yes provide contact information if known_2", p.get("rep_contact")))
        add(text("If yes provide contact information if known_3", p.get("rep_contact")))

    # other person in home
    extend(yes_no("Any other needs service_Yes", "Any other needs service_No", p.get("other_person_exists")))
    add(text("Name of other individual if known", p.get("other_person_name")))
    add(text("Age of other individual if known", p.get("other_person_age")))

    # health
    for yes_field, no_field, unk_field, keys in HEALTH_FIELDS:
        extend(tri_state(yes_field, no_field, unk_field, present_of(p, *keys)))
    add(text(
        "If yes preferred method of communication ie Interpreter TTY Relay Services or Braille Assistance",
        p.get("pref_comm_method"),
    ))

    # current services & problems
    add(text("Reason for Referral general concerns", p.get("reason_for_referral")))
    extend(yes_no("Receive any support_Yes", "Receive any support_No", p.get("receives_services")))
    add(text(
        "What support and services does the client recieve now?",
        first_of(p, "types_services", "current_services_types"),
    ))
    extend(yes_no("Problem with current support_Yes", "Problem with current support_No", p.get("problems_with_services")))
    add(text("Explain the problems with current support", p.get("problems_explain")))

    # more questions
    extend(yes_no("Mil_Yes", "Mil_No", p.get("military_service")))
    extend(tri_state("Aware_yes", "Aware_No", "Aware_Unk", p.get("aware_of_referral")))
    extend(tri_state("Danger_Yes", "Danger_No", "Danger_Unk", p.get("immediate_danger")))
    add(text("Is the Individual in immediate danger Yes No Unknown Explain", p.get("danger_explain")))
    extend(yes_no("Imm_Assistance_Yes", "Imm_Assistance_No", p.get("immediate_assistance")))
    add(text("Is the Individual in need of immediate assistance Yes No Explain", p.get("assist_explain")))
    extend(yes_no(
        "Someone Present at time of visit (Yes)",
        "Someone Present at time of visit (No)",
        p.get("wants_someone_present"),
    ))
    add(text("Who does the client wants to be present at time of visit?", p.get("who_present")))

    add(text("Best Time to Contact", p.get("best_time")))
    add(text("Best Phone to contact", p.get("best_phone")))
    add(text("Best Email to contact", p.get("best_email")))
    return triples


# ----------------------------------------------------------------------
# Consent form
# ----------------------------------------------------------------------
def safe_join(parts: Iterable, sep: str = ", ") -> str:
    return sep.join(to_str(part) for part in parts if part)


def consent_address(payload: Mapping) -> str:
    city_county = safe_join([payload.get("individual_city"), payload.get("individual_county")], ", ")
    zip_code = normalize_zip(payload.get("individual_zip"))
    return safe_join([payload.get("individual_address"), city_county, zip_code], " ")


def consent_triples(
    payload: Mapping,
    lookup: Dict[str, Dict],
    today: Optional[dt.date] = None,
    agency_rep_title: str = "Intake Team",
) -> List[FieldTriple]:
    p = payload
    today = today or dt.date.today()
    zip_code = normalize_zip(p.get("individual_zip"))
    ccu = ccu_outputs_from_zip(zip_code, lookup)

    return [
        text("client_Name", p.get("individual_name")),
        text("client_Address", consent_address(p)),
        text("client_Email", p.get("individual_email")),
        text("client_Telephone", p.get("individual_phone") or ""),
        text("client_Cell", p.get("best_phone") or p.get("individual_phone") or ""),
        text("Reasons for Referral", p.get("reason_for_referral")),
        text("Date", p.get("referral_date") or format_mmddyyyy(today)),
        text("Title of the Agency Representative", agency_rep_title),
        text("CCU_Name", ccu.name),
        text("CCU_contact", ccu.contact),
        text("CCU_contact_2", ccu.contact2),
    ]


def consent_signatures(payload: Mapping) -> Dict[Tuple[str, ...], str]:
    """Signature field candidates -> data URL, for the signatures present."""
    signatures: Dict[Tuple[str, ...], str] = {}
    if payload.get("consent_client_signature"):
        signatures[CLIENT_SIGNATURE_FIELDS] = payload["consent_client_signature"]
    if payload.get("consent_agency_signature"):
        signatures[AGENCY_SIGNATURE_FIELDS] = payload["consent_agency_signature"]
    return signatures
