"""
Practice notification email, sent through the Resend HTTP API.

The HTML and plain-text bodies are literal templates filled from the
validated registration; the PDF transcript travels as an attachment.
"""

from __future__ import annotations

import base64
import logging
from datetime import datetime, timezone
from html import escape
from typing import Any

import httpx

from registration.config import settings

logger = logging.getLogger(__name__)

RESEND_EMAILS_URL = "https://api.resend.com/emails"


class EmailConfigurationError(RuntimeError):
    pass


class EmailDeliveryError(RuntimeError):
    pass


def _name(record: dict[str, Any]) -> str:
    return f"{record.get('firstName', '')} {record.get('lastName', '')}".strip()


def _submitted(data: dict[str, Any]) -> str:
    stamp = data.get("submissionTimestamp")
    try:
        return datetime.fromisoformat(stamp).strftime("%m-%d-%Y %I:%M %p %Z").strip()
    except (TypeError, ValueError):
        return stamp or "N/A"


def _contact_phone(guardian: dict[str, Any]) -> str:
    phones = guardian.get("phoneNumbers") or {}
    return phones.get("cell") or phones.get("home") or phones.get("work") or "Not provided"


def registration_subject(data: dict[str, Any]) -> str:
    return f"New Patient Registration - {_name(data['patient'])}"


def build_email_html(data: dict[str, Any], submission_id: str) -> str:
    def e(value: Any) -> str:
        return escape(str(value if value is not None else ""))

    patient = data["patient"]
    guardian = data["parentGuardian1"]
    primary = data["primaryInsurance"]
    secondary = data.get("secondaryInsurance")
    emergency = data["emergencyContact1"]
    signatory = data.get("consentSignatory") or {}

    ssn_line = (
        f'<p><span class="label">SSN:</span> {e(patient["socialSecurityNumber"])}</p>'
        if patient.get("socialSecurityNumber")
        else ""
    )
    secondary_line = (
        f'<p><span class="label">Secondary Insurance:</span> {e(secondary.get("companyName"))}</p>'
        if secondary
        else ""
    )

    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>New Patient Registration</title>
  <style>
    body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
    .header {{ background-color: #f8f9fa; padding: 20px; border-radius: 5px; margin-bottom: 20px; }}
    .section {{ margin-bottom: 20px; }}
    .label {{ font-weight: bold; color: #555; }}
    .footer {{ background-color: #e9ecef; padding: 15px; border-radius: 5px; margin-top: 30px; font-size: 12px; }}
  </style>
</head>
<body>
  <div class="header">
    <h1>New Patient Registration - {e(settings.PRACTICE_NAME)}</h1>
    <p><strong>Submission ID:</strong> {e(submission_id)}</p>
    <p><strong>Submitted:</strong> {e(_submitted(data))}</p>
  </div>

  <div class="section">
    <h2>Patient Information</h2>
    <p><span class="label">Name:</span> {e(_name(patient))}</p>
    <p><span class="label">Date of Birth:</span> {e(patient.get("dateOfBirth"))}</p>
    <p><span class="label">Gender:</span> {e(patient.get("gender"))}</p>
    {ssn_line}
  </div>

  <div class="section">
    <h2>Primary Parent/Guardian</h2>
    <p><span class="label">Name:</span> {e(_name(guardian))}</p>
    <p><span class="label">Email:</span> {e(guardian.get("email", "").strip())}</p>
    <p><span class="label">Relationship:</span> {e(guardian.get("relationship"))}</p>
    <p><span class="label">Primary Contact:</span> {"Yes" if guardian.get("isPrimaryContact") else "No"}</p>
  </div>

  <div class="section">
    <h2>Insurance Information</h2>
    <p><span class="label">Primary Insurance:</span> {e(primary.get("companyName"))}</p>
    <p><span class="label">Policy Number:</span> {e(primary.get("policyNumber"))}</p>
    <p><span class="label">Subscriber:</span> {e(primary.get("subscriberName"))}</p>
    {secondary_line}
  </div>

  <div class="section">
    <h2>Emergency Contact</h2>
    <p><span class="label">Name:</span> {e(_name(emergency))}</p>
    <p><span class="label">Relationship:</span> {e(emergency.get("relationship"))}</p>
  </div>

  <div class="section">
    <h2>Consents</h2>
    <p><span class="label">Consent to Treatment:</span> {"&#10003; Agreed" if data.get("consentToTreatment") else "&#10007; Not Agreed"}</p>
    <p><span class="label">HIPAA Acknowledgment:</span> {"&#10003; Acknowledged" if data.get("hipaaAcknowledgment") else "&#10007; Not Acknowledged"}</p>
    <p><span class="label">Financial Policy:</span> {"&#10003; Agreed" if data.get("financialPolicyAgreement") else "&#10007; Not Agreed"}</p>
    <p><span class="label">Signed by:</span> {e(signatory.get("signatoryName"))} on {e(signatory.get("dateSigned"))}</p>
  </div>

  <div class="footer">
    <p><strong>Next Steps:</strong></p>
    <ul>
      <li>Review the attached PDF with complete registration details</li>
      <li>Contact the parent/guardian to schedule the first appointment</li>
      <li>Verify insurance information if needed</li>
      <li>Add patient to practice management system</li>
    </ul>
    <p><strong>Contact Information:</strong><br>
    Primary Contact: {e(guardian.get("email", "").strip())}<br>
    Phone: {e(_contact_phone(guardian))}</p>
  </div>
</body>
</html>
"""


def build_email_text(data: dict[str, Any], submission_id: str) -> str:
    patient = data["patient"]
    guardian = data["parentGuardian1"]
    primary = data["primaryInsurance"]
    secondary = data.get("secondaryInsurance")
    emergency = data["emergencyContact1"]

    lines = [
        f"NEW PATIENT REGISTRATION - {settings.PRACTICE_NAME.upper()}",
        "",
        f"Submission ID: {submission_id}",
        f"Submitted: {_submitted(data)}",
        "",
        "PATIENT INFORMATION",
        f"Name: {_name(patient)}",
        f"Date of Birth: {patient.get('dateOfBirth', '')}",
        f"Gender: {patient.get('gender', '')}",
    ]
    if patient.get("socialSecurityNumber"):
        lines.append(f"SSN: {patient['socialSecurityNumber']}")
    lines += [
        "",
        "PRIMARY PARENT/GUARDIAN",
        f"Name: {_name(guardian)}",
        f"Email: {guardian.get('email', '').strip()}",
        f"Relationship: {guardian.get('relationship', '')}",
        f"Primary Contact: {'Yes' if guardian.get('isPrimaryContact') else 'No'}",
        "",
        "INSURANCE INFORMATION",
        f"Primary Insurance: {primary.get('companyName', '')}",
        f"Policy Number: {primary.get('policyNumber', '')}",
        f"Subscriber: {primary.get('subscriberName', '')}",
    ]
    if secondary:
        lines.append(f"Secondary Insurance: {secondary.get('companyName', '')}")
    lines += [
        "",
        "EMERGENCY CONTACT",
        f"Name: {_name(emergency)}",
        f"Relationship: {emergency.get('relationship', '')}",
        "",
        "CONSENTS",
        f"Consent to Treatment: {'AGREED' if data.get('consentToTreatment') else 'NOT AGREED'}",
        "HIPAA Acknowledgment: "
        + ("ACKNOWLEDGED" if data.get("hipaaAcknowledgment") else "NOT ACKNOWLEDGED"),
        f"Financial Policy: {'AGREED' if data.get('financialPolicyAgreement') else 'NOT AGREED'}",
        "",
        "NEXT STEPS:",
        "- Review the attached PDF with complete registration details",
        "- Contact the parent/guardian to schedule the first appointment",
        "- Verify insurance information if needed",
        "- Add patient to practice management system",
        "",
        "Contact Information:",
        f"Primary Contact: {guardian.get('email', '').strip()}",
        f"Phone: {_contact_phone(guardian)}",
    ]
    return "\n".join(lines) + "\n"


class EmailSender:
    """Sends messages through Resend. Pass `client` to reuse or stub the HTTP client."""

    def __init__(
        self,
        api_key: str | None = None,
        from_email: str | None = None,
        practice_email: str | None = None,
        client: httpx.Client | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.from_email = from_email or settings.RESEND_FROM_EMAIL
        self.practice_email = practice_email or settings.PRACTICE_EMAIL
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _post(self, payload: dict[str, Any]) -> str:
        if not self.api_key:
            raise EmailConfigurationError("RESEND_API_KEY is not set")
        headers = {"Authorization": f"Bearer {self.api_key}"}
        client = self._client or httpx.Client(timeout=30.0)
        try:
            response = client.post(RESEND_EMAILS_URL, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("Resend rejected email (%s): %s", exc.response.status_code, exc.response.text)
            raise EmailDeliveryError(f"Email provider returned {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.error("Email transport error: %s", exc)
            raise EmailDeliveryError("Failed to reach email provider") from exc
        finally:
            if self._client is None:
                client.close()
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            # Accepted (2xx) even though the reply has no id.
            logger.warning(
                "Resend accepted email but returned an unreadable body: %r", response.text[:200]
            )
            return ""
        return str(body.get("id") or "")

    def send_registration(self, data: dict[str, Any], pdf_bytes: bytes) -> str:
        """Email the registration with its PDF to the practice inbox; returns the message id."""
        submission_id = data.get("submissionId", "")
        payload = {
            "from": self.from_email,
            "to": [self.practice_email],
            "subject": registration_subject(data),
            "html": build_email_html(data, submission_id),
            "text": build_email_text(data, submission_id),
            "attachments": [
                {
                    "filename": f"patient-registration-{submission_id}.pdf",
                    "content": base64.b64encode(pdf_bytes).decode("ascii"),
                }
            ],
            "headers": {"X-Priority": "1", "Importance": "high"},
        }
        message_id = self._post(payload)
        logger.info("Registration email sent: id=%s submission=%s", message_id, submission_id)
        return message_id

    def send_test_email(self, to: str | None = None) -> str:
        now = datetime.now(timezone.utc).isoformat()
        payload = {
            "from": self.from_email,
            "to": [to or self.practice_email],
            "subject": f"Test Email - {settings.PRACTICE_NAME} Registration System",
            "html": (
                "<h2>Email Test Successful</h2>"
                f"<p>This is a test email from the {escape(settings.PRACTICE_NAME)} "
                "patient registration system.</p>"
                f"<p><strong>Timestamp:</strong> {now}</p>"
                f"<p><strong>From:</strong> {escape(self.from_email)}</p>"
            ),
        }
        return self._post(payload)


def get_email_sender() -> EmailSender:
    """FastAPI dependency; overridden in tests."""
    return EmailSender()
