"""
FastAPI routes – the registration API surface.

- Final submission (JSON or multipart with insurance card photos)
- Step-local validation backing the wizard's "Next" button
- Insurance card pre-fill from a photo
- Health and email diagnostics
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, File, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from registration.config import settings
from registration.schemas.api import (
    CardExtractionResponse,
    EmailCheckResponse,
    HealthResponse,
    StepInfo,
    StepValidationResponse,
    SubmissionResponse,
)
from registration.services.email import (
    EmailConfigurationError,
    EmailDeliveryError,
    EmailSender,
    get_email_sender,
)
from registration.services.extraction import (
    MANUAL_ENTRY_NOTICE,
    ExtractionError,
    InsuranceCardExtractor,
    get_card_extractor,
)
from registration.services.uploads import CARD_IMAGE_FIELDS, CardImage, UploadRejected
from registration.submission.pipeline import INVALID_MESSAGE, submit_registration
from registration.wizard import FORM_STEPS, get_step, validate_step

logger = logging.getLogger(__name__)

router = APIRouter()


class MalformedSubmission(ValueError):
    pass


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@router.get("/health", response_model=HealthResponse)
def health_check(
    sender: EmailSender = Depends(get_email_sender),
    extractor: InsuranceCardExtractor = Depends(get_card_extractor),
):
    """Reports whether the outbound integrations are configured."""
    return HealthResponse(
        environment=settings.ENVIRONMENT,
        email="configured" if sender.configured else "not configured",
        card_extraction="configured" if extractor.configured else "not configured",
    )


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------

async def _read_submission(request: Request) -> tuple[Any, dict[str, CardImage]]:
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("multipart/form-data"):
        try:
            return await request.json(), {}
        except ValueError as exc:
            raise MalformedSubmission("Request body is not valid JSON") from exc

    form = await request.form()
    raw = form.get("data")
    if not isinstance(raw, str):
        raise MalformedSubmission("Multipart body must include a 'data' field with the form JSON")
    try:
        form_data = json.loads(raw)
    except ValueError as exc:
        raise MalformedSubmission("The 'data' field is not valid JSON") from exc

    attachments = {}
    for name, value in form.multi_items():
        if isinstance(value, str) or name == "data":
            continue
        if name not in CARD_IMAGE_FIELDS:
            logger.warning("Ignoring unexpected upload field '%s'", name)
            continue
        attachments[name] = CardImage(
            filename=value.filename or name,
            content_type=value.content_type or "",
            data=await value.read(),
        )
    return form_data, attachments


@router.post("/submit-registration", response_model=SubmissionResponse)
async def submit(request: Request, sender: EmailSender = Depends(get_email_sender)):
    """
    Validate a completed registration, render it to PDF and email it to the
    practice. Returns 200 on success, 400 for invalid data, 500 otherwise.
    """
    try:
        form_data, attachments = await _read_submission(request)
    except MalformedSubmission as exc:
        body = SubmissionResponse(success=False, message=INVALID_MESSAGE, errors=[f"(body): {exc}"])
        return JSONResponse(status_code=400, content=body.model_dump(exclude_none=True))

    client = {
        "ip": request.headers.get("x-forwarded-for")
        or request.headers.get("x-real-ip")
        or (request.client.host if request.client else "unknown"),
        "user_agent": request.headers.get("user-agent", "unknown"),
    }
    status_code, body = await run_in_threadpool(
        submit_registration, form_data, sender, attachments, client
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


# ---------------------------------------------------------------------------
# Wizard steps
# ---------------------------------------------------------------------------

@router.get("/registration/steps", response_model=list[StepInfo])
def list_steps():
    return [
        StepInfo(id=step.id, title=step.title, sections=list(step.sections))
        for step in FORM_STEPS
    ]


@router.post("/registration/steps/{step_id}/validate", response_model=StepValidationResponse)
def validate_registration_step(step_id: str, data: dict[str, Any] = Body(...)):
    """Validate one wizard step; the client only advances when `valid` is true."""
    try:
        get_step(step_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown step '{step_id}'")
    errors = validate_step(step_id, data)
    return StepValidationResponse(step=step_id, valid=not errors, errors=errors)


# ---------------------------------------------------------------------------
# Insurance card pre-fill
# ---------------------------------------------------------------------------

@router.post("/extract-insurance-card", response_model=CardExtractionResponse)
def extract_insurance_card(
    file: UploadFile = File(...),
    extractor: InsuranceCardExtractor = Depends(get_card_extractor),
):
    """
    Read insurance fields off a photographed card. Any failure degrades to
    manual entry: success is false and the guardian sees a notice.
    """
    image = CardImage(
        filename=file.filename or "card",
        content_type=file.content_type or "",
        # One byte past the limit is enough for check_upload to reject it.
        data=file.file.read(settings.MAX_UPLOAD_BYTES + 1),
    )
    try:
        fields = extractor.extract(image)
    except (ExtractionError, UploadRejected) as exc:
        logger.warning("Card extraction failed for %s: %s", image.filename, exc)
        return CardExtractionResponse(success=False, message=MANUAL_ENTRY_NOTICE)

    if not fields:
        return CardExtractionResponse(success=False, message=MANUAL_ENTRY_NOTICE)
    return CardExtractionResponse(
        success=True,
        fields=fields,
        message="Insurance details were filled in from your card. Please review them.",
    )


# ---------------------------------------------------------------------------
# Email diagnostics
# ---------------------------------------------------------------------------

@router.post("/test-email", response_model=EmailCheckResponse)
def send_test_email(sender: EmailSender = Depends(get_email_sender)):
    """Send a test message to the practice inbox to verify email configuration."""
    try:
        email_id = sender.send_test_email()
    except (EmailConfigurationError, EmailDeliveryError) as exc:
        body = EmailCheckResponse(success=False, message=f"Email test failed: {exc}")
        return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))
    return EmailCheckResponse(success=True, message="Test email sent successfully", emailId=email_id)
