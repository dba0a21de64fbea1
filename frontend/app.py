from dotenv import load_dotenv

load_dotenv(".env.local"); load_dotenv()  # also loads .env if present

# app.py
import base64
import datetime as dt
import os

import streamlit as st

from referral_pdf.client import ReferralClient
from referral_pdf.config import ReferrerProfile
from referral_pdf.errors import IntakeError, ValidationError
from referral_pdf.payload import build_payload
from referral_pdf.validation import ensure_valid

st.set_page_config(page_title="Safe Life CCP Referral", layout="centered")

BACKEND = os.getenv("BACKEND_URL", "http://127.0.0.1:8000")

YES_NO = ["", "Yes", "No"]
YES_NO_UNK = ["", "Yes", "No", "Unknown"]
FACILITY_TYPES = [
    "Assisted Living",
    "Supportive Living Program",
    "Longterm Care Facility Nursing Home",
    "Hospital",
    "Hospice Facility",
    "Other",
]


def png_data_url(upload) -> str:
    if upload is None:
        return ""
    return "data:image/png;base64," + base64.b64encode(upload.getvalue()).decode("ascii")


st.title("CCP Referral")
st.caption("All answers are used only to generate the referral and consent PDFs.")

if "result" not in st.session_state:
    st.session_state.result = None

with st.form("referral_form"):
    st.subheader("Individual")
    answers = {
        "individual_name": st.text_input("Full name"),
        "individual_dob": st.date_input(
            "Date of birth", value=None, min_value=dt.date(1900, 1, 1), max_value=dt.date.today()
        ),
        "individual_address": st.text_input("Street address"),
        "individual_city": st.text_input("City"),
        "individual_zip": st.text_input("ZIP"),
        "individual_county": st.text_input("County"),
        "individual_phone": st.text_input("Phone (123-456-7890)"),
        "individual_email": st.text_input("Email"),
        "individual_pref_language": st.text_input("Preferred language if not English"),
        "individual_lives_alone": st.radio("Lives alone?", YES_NO, horizontal=True),
        "individual_safety_issues": st.radio("Safety issues in the home?", YES_NO, horizontal=True),
        "individual_safety_desc": st.text_input("What safety issue?"),
    }

    st.subheader("Facility")
    answers["facility_name"] = st.text_input("Facility name")
    answers["facility_address"] = st.text_input("Facility address")
    answers["facility_type"] = st.multiselect("Facility type", FACILITY_TYPES)
    answers["facility_other_name"] = st.text_input("Other facility name")

    st.subheader("Spouse & caregiver")
    answers["has_spouse"] = st.radio("Has a spouse?", YES_NO, horizontal=True)
    answers["spouse_name"] = st.text_input("Spouse name")
    answers["spouse_needs_services"] = st.radio("Spouse needs services?", YES_NO, horizontal=True)
    answers["spouse_age"] = st.text_input("Spouse age")
    answers["has_caregiver"] = st.radio("Friend/family caregiver?", YES_NO, horizontal=True)
    answers["caregiver_contact"] = st.text_input("Caregiver contact")

    st.subheader("Representation")
    answers["legal_guardian"] = st.radio("Legal guardian?", YES_NO_UNK, horizontal=True)
    answers["representative_payee"] = st.radio("Representative payee?", YES_NO_UNK, horizontal=True)
    answers["poa_health"] = st.radio("POA for health care?", YES_NO_UNK, horizontal=True)
    answers["poa_financial"] = st.radio("POA for finances?", YES_NO_UNK, horizontal=True)
    answers["rep_contact"] = st.text_input("Representative contact")

    st.subheader("Other person in the home")
    answers["other_person_exists"] = st.radio("Anyone else needing services?", YES_NO, horizontal=True)
    answers["other_person_name"] = st.text_input("Their name")
    answers["other_person_age"] = st.text_input("Their age")

    st.subheader("Health")
    answers["hearing_loss"] = st.radio("Hearing loss", YES_NO_UNK, horizontal=True)
    answers["vision_issues"] = st.radio("Vision loss", YES_NO_UNK, horizontal=True)
    answers["alz_dementia"] = st.radio("Alzheimer's / dementia", YES_NO_UNK, horizontal=True)
    answers["mental_health"] = st.radio("Mental health issue", YES_NO_UNK, horizontal=True)
    answers["physical_disability"] = st.radio("Physical disability", YES_NO_UNK, horizontal=True)
    answers["intellectual_dev_disability"] = st.radio("Intellectual / developmental disability", YES_NO_UNK, horizontal=True)
    answers["brain_injury"] = st.radio("Brain injury", YES_NO_UNK, horizontal=True)
    answers["pref_comm_method"] = st.text_input("Preferred communication method (interpreter, TTY, ...)")

    st.subheader("Services")
    answers["reason_for_referral"] = st.text_area("Reason for referral")
    answers["receives_services"] = st.radio("Receives support now?", YES_NO, horizontal=True)
    answers["types_services"] = st.text_input("Which support and services?")
    answers["problems_with_services"] = st.radio("Problems with current support?", YES_NO, horizontal=True)
    answers["problems_explain"] = st.text_input("Explain the problems")

    st.subheader("More questions")
    answers["military_service"] = st.radio("Military service?", YES_NO, horizontal=True)
    answers["aware_of_referral"] = st.radio("Aware of this referral?", YES_NO_UNK, horizontal=True)
    answers["immediate_danger"] = st.radio("In immediate danger?", YES_NO_UNK, horizontal=True)
    answers["danger_explain"] = st.text_input("Explain the danger")
    answers["immediate_assistance"] = st.radio("Needs immediate assistance?", YES_NO, horizontal=True)
    answers["assist_explain"] = st.text_input("Explain the assistance needed")
    answers["wants_someone_present"] = st.radio("Someone present at the visit?", YES_NO, horizontal=True)
    answers["who_present"] = st.text_input("Who should be present?")
    answers["best_time"] = st.text_input("Best time to contact")
    answers["best_phone"] = st.text_input("Best phone")
    answers["best_email"] = st.text_input("Best email")

    st.subheader("Consent")
    answers["consent_agree"] = st.checkbox("I agree to the consent for referral and release of information")
    client_sig = st.file_uploader("Client signature (PNG)", type=["png"])
    agency_sig = st.file_uploader("Agency signature (PNG)", type=["png"])

    submitted = st.form_submit_button("Generate PDF")

if submitted:
    dob = answers["individual_dob"]
    answers["individual_dob"] = dob.isoformat() if dob else ""
    answers["consent_client_signature"] = png_data_url(client_sig)
    answers["consent_agency_signature"] = png_data_url(agency_sig)

    try:
        ensure_valid(answers)
    except ValidationError as exc:
        for field, msg in exc.errors.items():
            st.error(f"{field.replace('_', ' ')}: {msg}")
    else:
        payload = build_payload(answers, ReferrerProfile.from_env())
        client = ReferralClient(BACKEND)
        with st.spinner("Generating and emailing your referral..."):
            try:
                st.session_state.result = client.submit(payload)
            except IntakeError as e:
                st.session_state.result = None
                st.error(f"Sorry, something went wrong while generating your PDF. Please try again. ({e})")

result = st.session_state.result
if result is not None:
    if result.email_ok:
        st.success("Referral generated and emailed to the intake team.")
    else:
        st.warning("The PDF is ready, but emailing it failed. Please download it and contact support.")
    st.download_button(
        "Download referral PDF",
        result.pdf_bytes,
        file_name=result.filename,
        mime="application/pdf",
    )
