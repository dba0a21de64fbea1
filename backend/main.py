import base64
import binascii
import logging

from dotenv import load_dotenv

load_dotenv(".env.local"); load_dotenv()  # also loads .env if present

import os  # noqa: E402
from typing import Any, List, Optional  # noqa: E402

import requests  # noqa: E402
from fastapi import Body, FastAPI, HTTPException, Request, Response  # noqa: E402
from fastapi.exceptions import RequestValidationError  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from fastapi.responses import JSONResponse, PlainTextResponse  # noqa: E402
from pydantic import BaseModel  # noqa: E402

from referral_pdf import IntakeError, ReferralPdfService, ValidationError  # noqa: E402
from referral_pdf.config import IntakeSettings  # noqa: E402
from referral_pdf.delivery import DEFAULT_FILENAME, SmtpTransport  # noqa: E402
from referral_pdf.service import CONSENT, OUTPUT_FILENAMES, REFERRAL  # noqa: E402

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger("referral_intake")

app = FastAPI(title="CCP Referral Intake")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:8501",
        "http://127.0.0.1:8501",
        "*"
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

settings = IntakeSettings.from_env()
referral_service = ReferralPdfService(settings)
email_transport = SmtpTransport(settings.smtp, settings.recipients)

LEAD_TIMEOUT = float(os.getenv("LEAD_WEBHOOK_TIMEOUT", "30"))


@app.exception_handler(RequestValidationError)
async def invalid_body_handler(request: Request, exc: RequestValidationError):
    return PlainTextResponse(f"Invalid request body: {exc.errors()}", status_code=400)


@app.get("/health")
def health():
    return {"ok": True}


# --- PDF endpoints ------------------------------------------------------------


def _pdf_response(template_id: str, fill) -> Response:
    try:
        pdf_bytes = fill()
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except IntakeError as exc:
        logger.error("Error generating %s PDF: %s", template_id, exc, exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error generating {template_id} PDF: {exc}") from exc
    headers = {"Content-Disposition": f'attachment; filename="{OUTPUT_FILENAMES[template_id]}"'}
    return Response(content=pdf_bytes, media_type="application/pdf", headers=headers)


@app.post("/fill-referral")
def fill_referral(payload: Any = Body(...)):
    return _pdf_response(REFERRAL, lambda: referral_service.fill_referral(payload))


@app.get("/fill-referral")
def fill_referral_demo(demo: Optional[str] = None):
    if not demo:
        raise HTTPException(status_code=405, detail="Use POST, or GET with ?demo=1")
    return _pdf_response(REFERRAL, referral_service.demo_referral)


@app.post("/fill-consent")
def fill_consent(payload: Any = Body(...)):
    return _pdf_response(CONSENT, lambda: referral_service.fill_consent(payload))


@app.get("/fill-consent")
def fill_consent_demo():
    return _pdf_response(CONSENT, referral_service.demo_consent)


@app.get("/templates/{template_id}/scan")
def scan_template(template_id: str):
    try:
        scan = referral_service.scan_template(template_id)
    except IntakeError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"template": template_id, "scan": scan}


# --- Email --------------------------------------------------------------------


class EmailReferralRequest(BaseModel):
    filename: str = DEFAULT_FILENAME
    pdfBase64: Optional[str] = None
    recipients: Optional[List[str]] = None
    payload: dict = {}


@app.post("/email-referral")
def email_referral(req: EmailReferralRequest):
    if not req.pdfBase64:
        raise HTTPException(status_code=400, detail="Missing pdfBase64")
    try:
        pdf_bytes = base64.b64decode(req.pdfBase64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=400, detail="pdfBase64 is not valid base64") from exc

    try:
        message_id = email_transport.send(pdf_bytes, req.filename, req.payload, recipients=req.recipients)
    except IntakeError as exc:
        logger.error("emailReferral error: %s", exc)
        raise HTTPException(status_code=500, detail=f"Email send failed: {exc}") from exc
    return {"ok": True, "messageId": message_id}


# --- Lead capture -------------------------------------------------------------


class LeadRequest(BaseModel):
    name: Optional[Any] = None
    relation: Optional[Any] = None
    birthdate: Optional[Any] = ""
    age: Optional[Any] = ""
    medicaid: Optional[Any] = None
    medicaid_number: Optional[Any] = None
    email: Optional[Any] = None
    address_line1: Optional[Any] = None
    address_line2: Optional[Any] = None
    city: Optional[Any] = None
    state: Optional[Any] = None
    zip: Optional[Any] = None
    county: Optional[Any] = ""
    info: Optional[Any] = None


@app.post("/submit-lead")
def submit_lead(req: LeadRequest):
    if not settings.lead_webhook_url:
        return JSONResponse(status_code=500, content={"error": "LEAD_WEBHOOK_URL is not configured"})

    lead = req.model_dump()
    for key in ("birthdate", "age", "county"):
        lead[key] = lead[key] or ""
    try:
        r = requests.post(settings.lead_webhook_url, json=lead, timeout=LEAD_TIMEOUT)
        if not r.ok:
            raise IntakeError(f"Lead webhook error: {r.status_code} {r.reason}")
    except (requests.RequestException, IntakeError) as exc:
        logger.error("Lead submission failed: %s", exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})
    return {"message": "Lead submitted successfully"}
