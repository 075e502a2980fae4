"""
The registration submission pipeline.

validate -> stamp -> audit -> render_pdf -> send_email -> seal

Nothing is persisted: the submission is rendered, emailed, sealed to prove it
can be encrypted, and dropped.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from registration.config import settings
from registration.schemas.api import SubmissionResponse
from registration.services.audit import log_action
from registration.services.email import EmailSender
from registration.services.encryption import EncryptionService, generate_submission_id
from registration.services.pdf import render_registration_pdf
from registration.services.uploads import CardImage, upload_errors
from registration.services.validation import RegistrationInvalid, validate_registration
from registration.submission.stages import Pipeline

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = (
    "Registration submitted successfully. You will receive a confirmation email shortly."
)
INVALID_MESSAGE = "Invalid form data"
PDF_FAILED_MESSAGE = "Failed to generate PDF document"
EMAIL_FAILED_MESSAGE = (
    "Failed to send registration to practice. "
    "Please try again or contact the office directly."
)


def unexpected_error_message() -> str:
    return (
        "An unexpected error occurred. Please try again or contact our office at "
        f"{settings.PRACTICE_PHONE}."
    )


# ---------------------------------------------------------------------------
# Stages (each receives and returns a context dict)
# ---------------------------------------------------------------------------


def validate(context: dict[str, Any]) -> dict[str, Any]:
    """Server-side validation of the whole form and of any card photos."""
    errors = validate_registration(context.get("form_data"))
    errors += upload_errors(context.get("attachments", {}))
    if errors:
        logger.info("Submission rejected with %d validation error(s)", len(errors))
        raise RegistrationInvalid(errors)
    return {}


def stamp(context: dict[str, Any]) -> dict[str, Any]:
    submission_id = generate_submission_id()
    record = {
        **context["form_data"],
        "submissionId": submission_id,
        "submissionTimestamp": datetime.now(timezone.utc).isoformat(),
    }
    return {"submission_id": submission_id, "record": record}


def audit(context: dict[str, Any]) -> dict[str, Any]:
    record = context["record"]
    client = context.get("client", {})
    entry = log_action(
        actor="guardian",
        action="FORM_SUBMISSION",
        resource_type="patient_registration",
        resource_id=context["submission_id"],
        detail={
            "patientName": f"{record['patient']['firstName']} {record['patient']['lastName']}",
            "parentEmail": record["parentGuardian1"]["email"],
            "attachments": sorted(context.get("attachments", {})),
            "ip": client.get("ip", "unknown"),
            "userAgent": client.get("user_agent", "unknown"),
        },
    )
    return {"audit_entry": entry}


def render_pdf(context: dict[str, Any]) -> dict[str, Any]:
    pdf_bytes = render_registration_pdf(context["record"], context.get("attachments", {}))
    return {"pdf_bytes": pdf_bytes, "pdf_size": len(pdf_bytes)}


def make_send_email(sender: EmailSender):
    def send_email(context: dict[str, Any]) -> dict[str, Any]:
        return {"email_id": sender.send_registration(context["record"], context["pdf_bytes"])}

    return send_email


def make_seal(encryption: EncryptionService):
    def seal(context: dict[str, Any]) -> dict[str, Any]:
        token = encryption.seal(context["record"])
        logger.info(
            "Submission %s encrypted (%d bytes) and ready for storage",
            context["submission_id"], len(token),
        )
        return {"sealed_size": len(token)}

    return seal


# ---------------------------------------------------------------------------
# Pipeline factory
# ---------------------------------------------------------------------------

def build_submission_pipeline(
    sender: EmailSender, encryption: EncryptionService | None = None
) -> Pipeline:
    """Construct the full submission pipeline."""
    pipeline = Pipeline("registration_submission")
    pipeline.add_stage("validate", validate)
    pipeline.add_stage("stamp", stamp)
    pipeline.add_stage("audit", audit)
    pipeline.add_stage("render_pdf", render_pdf)
    pipeline.add_stage("send_email", make_send_email(sender))
    pipeline.add_stage("seal", make_seal(encryption or EncryptionService()), required=False)
    return pipeline


def submit_registration(
    form_data: Any,
    sender: EmailSender,
    attachments: dict[str, CardImage] | None = None,
    client: dict[str, str] | None = None,
) -> tuple[int, SubmissionResponse]:
    """Run a submission end to end and map the outcome to (HTTP status, response)."""
    pipeline = build_submission_pipeline(sender)
    run = pipeline.run(
        {"form_data": form_data, "attachments": attachments or {}, "client": client or {}}
    )

    failed = run.failed_stage
    if failed is None:
        return 200, SubmissionResponse(
            success=True,
            submissionId=run.context["submission_id"],
            message=SUCCESS_MESSAGE,
        )

    if failed.name == "validate" and isinstance(failed.exception, RegistrationInvalid):
        return 400, SubmissionResponse(
            success=False, message=INVALID_MESSAGE, errors=failed.exception.errors
        )

    log_action(
        actor="system",
        action="FORM_SUBMISSION_ERROR",
        resource_type="patient_registration",
        resource_id=run.context.get("submission_id", "unassigned"),
        detail={"stage": failed.name, "error": failed.error, "run": run.summary()},
    )
    if failed.name == "render_pdf":
        message = PDF_FAILED_MESSAGE
    elif failed.name == "send_email":
        message = EMAIL_FAILED_MESSAGE
    else:
        message = unexpected_error_message()
    return 500, SubmissionResponse(success=False, message=message)
