"""Pytest fixtures: small fillable templates built with PyMuPDF and a PNG signature."""

import base64
import json

import fitz
import pytest

from referral_pdf.ccu_lookup import clear_lookup_cache
from referral_pdf.config import IntakeSettings
from referral_pdf.field_mapper import AGENCY_SIGNATURE_FIELDS, CLIENT_SIGNATURE_FIELDS

REFERRAL_TEXT_FIELDS = (
    "Referral Date",
    "Agency Name",
    "Name_2",
    "Age",
    "Date of Birth",
    "City",
    "Zip Code",
    "Other Facility Name",
)
REFERRAL_CHECKBOXES = (
    "Lives_Alone_Yes",
    "Lives_Alone_No",
    "Hospice Facility",
    "Hospital",
    "Other Name",
    "POAF_Unk",
    "Cell",
)
CONSENT_TEXT_FIELDS = (
    "client_Name",
    "client_Address",
    "client_Cell",
    "Date",
    "Title of the Agency Representative",
    "CCU_Name",
    "CCU_contact",
    "CCU_contact_2",
    CLIENT_SIGNATURE_FIELDS[0],
    AGENCY_SIGNATURE_FIELDS[0],
)

LOOKUP = {
    "60148": {
        "ccu_name": "DuPage CCU",
        "ccu_email": "ccu@example.org",
        "ccu_phone": "630-555-0140 or 630-555-0141",
    },
    "60601": {"ccu_name": "Chicago CCU", "ccu_email": "", "ccu_phone": "312-555-0170, 312-555-0171"},
}


def build_form(path, text_fields=(), checkbox_fields=()):
    """Write a one-page fillable PDF with the given field names."""
    doc = fitz.open()
    page = doc.new_page()
    y = 30
    for name in text_fields:
        widget = fitz.Widget()
        widget.field_name = name
        widget.field_type = fitz.PDF_WIDGET_TYPE_TEXT
        widget.field_value = ""
        widget.rect = fitz.Rect(40, y, 400, y + 18)
        page.add_widget(widget)
        y += 24
    for name in checkbox_fields:
        widget = fitz.Widget()
        widget.field_name = name
        widget.field_type = fitz.PDF_WIDGET_TYPE_CHECKBOX
        widget.field_value = False
        widget.rect = fitz.Rect(40, y, 54, y + 14)
        page.add_widget(widget)
        y += 20
    doc.save(str(path))
    doc.close()
    return path


def blank_pdf(pages, label="P"):
    """PDF bytes with `pages` pages, each stamped "<label><n>"."""
    doc = fitz.open()
    for n in range(1, pages + 1):
        page = doc.new_page()
        page.insert_text((72, 72), f"{label}{n}")
    data = doc.tobytes()
    doc.close()
    return data


def form_values(pdf_bytes):
    """Field name -> field_value for every widget in the document."""
    values = {}
    with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
        for page in doc:
            for widget in page.widgets():
                values[widget.field_name] = widget.field_value
    return values


def is_checked(value):
    return value not in (None, "", "Off", False)


@pytest.fixture(autouse=True)
def _fresh_lookup_cache():
    clear_lookup_cache()
    yield
    clear_lookup_cache()


@pytest.fixture
def assets_dir(tmp_path):
    assets = tmp_path / "assets"
    assets.mkdir()
    build_form(assets / "ccp-referral-fillable.pdf", REFERRAL_TEXT_FIELDS, REFERRAL_CHECKBOXES)
    build_form(assets / "Consent-for-Referral-and-Release.pdf", CONSENT_TEXT_FIELDS)
    (assets / "ccu_lookup.json").write_text(json.dumps(LOOKUP), encoding="utf-8")
    return assets


@pytest.fixture
def settings(assets_dir):
    return IntakeSettings(assets_dir=assets_dir, recipients=("intake@example.org",))


@pytest.fixture
def signature_png():
    pix = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, 40, 20), False)
    pix.clear_with(0)
    return pix.tobytes("png")


@pytest.fixture
def signature_data_url(signature_png):
    return "data:image/png;base64," + base64.b64encode(signature_png).decode("ascii")


@pytest.fixture
def intake_payload(signature_data_url):
    return {
        "referral_date": "08/12/2025",
        "referral_time": "14:30",
        "agency_name": "Safe Life Home Health Care",
        "referrer_phone_type": "Cell",
        "individual_name": "Jane Smith",
        "individual_age": "79",
        "individual_dob": "01/10/1946",
        "individual_address": "12 Oak St",
        "individual_city": "Lombard",
        "individual_county": "DuPage",
        "individual_zip": "60148-1234",
        "individual_phone": "630-555-2222",
        "individual_email": "jane@example.com",
        "individual_lives_alone": "Yes",
        "facility_type": ["Hospice Facility", "Other"],
        "facility_other_name": "Memory Care Wing",
        "poa_financial": "Unknown",
        "reason_for_referral": "Needs help at home.",
        "consent_client_signature": signature_data_url,
        "consent_agency_signature": signature_data_url,
    }
