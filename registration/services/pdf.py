"""
PDF transcript of a registration.

Lines are written top to bottom on a ReportLab canvas; a new page is started
whenever the next line or image would cross the bottom margin.
"""

from __future__ import annotations

import logging
from datetime import datetime
from io import BytesIO
from typing import Any

from reportlab.lib.pagesizes import LETTER
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from registration.config import settings
from registration.services.uploads import CardImage

logger = logging.getLogger(__name__)

MARGIN = 56
LINE_HEIGHT = 15
IMAGE_MAX_HEIGHT = 170
IMAGE_FALLBACK = "(Image could not be displayed in PDF)"


class PdfWriter:
    """Sequential text/image placement with automatic page breaks."""

    def __init__(self, buffer: BytesIO, pagesize=LETTER):
        self.canvas = canvas.Canvas(buffer, pagesize=pagesize)
        self.width, self.height = pagesize
        self.y = self.height - MARGIN
        self.lines: list[str] = []

    @property
    def page_number(self) -> int:
        return self.canvas.getPageNumber()

    def _ensure_room(self, needed: float) -> None:
        if self.y - needed < MARGIN:
            self.canvas.showPage()
            self.y = self.height - MARGIN

    def gap(self, points: float) -> None:
        self.y -= points

    def text(self, text: str, size: int = 10, bold: bool = False, indent: int = 0) -> None:
        font = "Helvetica-Bold" if bold else "Helvetica"
        usable = self.width - 2 * MARGIN - indent
        for line in simpleSplit(text, font, size, usable) or [""]:
            self._ensure_room(LINE_HEIGHT)
            self.canvas.setFont(font, size)
            self.canvas.drawString(MARGIN + indent, self.y - size, line)
            self.y -= LINE_HEIGHT
            self.lines.append(line)

    def section(self, title: str) -> None:
        self.gap(8)
        self.text(title, size=12, bold=True)
        self.gap(3)

    def field(self, label: str, value: Any, indent: int = 0) -> None:
        """Write "Label: value", skipping blank optional values."""
        if value is None or (isinstance(value, str) and not value.strip()):
            return
        self.text(f"{label}: {str(value).strip()}", indent=indent)

    def image(self, title: str, image: CardImage) -> None:
        self.gap(5)
        self.text(title, size=11, bold=True)
        try:
            reader = ImageReader(BytesIO(image.data))
            img_width, img_height = reader.getSize()
            scale = min(
                (self.width - 2 * MARGIN) / img_width, IMAGE_MAX_HEIGHT / img_height, 1.0
            )
            width, height = img_width * scale, img_height * scale
            self._ensure_room(height + 5)
            self.canvas.drawImage(reader, MARGIN, self.y - height, width=width, height=height)
            self.y -= height + 10
        except Exception as exc:
            logger.warning("Could not embed %s (%s): %s", title, image.filename, exc)
            self.text(IMAGE_FALLBACK)

    def finish(self) -> None:
        self.canvas.save()


def _name(record: dict[str, Any]) -> str:
    return f"{record.get('firstName', '')} {record.get('lastName', '')}".strip()


def _submitted_at(data: dict[str, Any]) -> str:
    stamp = data.get("submissionTimestamp")
    if not stamp:
        return "N/A"
    try:
        return datetime.fromisoformat(stamp).strftime("%m-%d-%Y %I:%M %p %Z").strip()
    except ValueError:
        return stamp


def _address(pdf: PdfWriter, address: dict[str, Any]) -> None:
    pdf.text("Address:")
    pdf.text(address.get("street", ""), indent=12)
    pdf.text(
        f"{address.get('city', '')}, {address.get('state', '')} {address.get('zipCode', '')}",
        indent=12,
    )


def _phones(pdf: PdfWriter, phones: dict[str, Any]) -> None:
    pdf.field("Home Phone", phones.get("home"))
    pdf.field("Cell Phone", phones.get("cell"))
    pdf.field("Work Phone", phones.get("work"))


def _guardian(pdf: PdfWriter, title: str, guardian: dict[str, Any]) -> None:
    pdf.section(title)
    pdf.field("Name", _name(guardian))
    pdf.field("Relationship", guardian.get("relationship"))
    pdf.field("Email", guardian.get("email"))
    pdf.field("Primary Contact", "Yes" if guardian.get("isPrimaryContact") else "No")
    _phones(pdf, guardian.get("phoneNumbers") or {})


def _insurance(
    pdf: PdfWriter,
    label: str,
    key: str,
    policy: dict[str, Any],
    attachments: dict[str, CardImage],
) -> None:
    pdf.section(f"{label.upper()} INSURANCE")
    pdf.field("Company", policy.get("companyName"))
    pdf.field("Policy Number", policy.get("policyNumber"))
    pdf.field("Group Number", policy.get("groupNumber"))
    pdf.field("Subscriber", policy.get("subscriberName"))
    pdf.field("Subscriber DOB", policy.get("subscriberDateOfBirth"))
    pdf.field("Subscriber Relationship", policy.get("subscriberRelationship"))
    for side in ("Front", "Back"):
        image = attachments.get(f"{key}.card{side}Image")
        if image is not None:
            pdf.image(f"{label} Insurance Card - {side}", image)


def _emergency_contact(pdf: PdfWriter, title: str, contact: dict[str, Any]) -> None:
    pdf.section(title)
    pdf.field("Name", _name(contact))
    pdf.field("Relationship", contact.get("relationship"))
    _phones(pdf, contact.get("phoneNumbers") or {})


def write_registration(
    pdf: PdfWriter, data: dict[str, Any], attachments: dict[str, CardImage] | None = None
) -> None:
    """Lay out every section of a validated registration."""
    attachments = attachments or {}

    pdf.text(settings.PRACTICE_NAME.upper(), size=16, bold=True)
    pdf.text(f"Phone: {settings.PRACTICE_PHONE}")
    pdf.gap(10)
    pdf.text("PATIENT REGISTRATION FORM", size=14, bold=True)
    pdf.text(f"Submission ID: {data.get('submissionId') or 'N/A'}")
    pdf.text(f"Submitted: {_submitted_at(data)}")
    pdf.gap(6)

    patient = data["patient"]
    pdf.section("PATIENT INFORMATION")
    pdf.field("Name", _name(patient))
    pdf.field("Date of Birth", patient.get("dateOfBirth"))
    pdf.field("Gender", patient.get("gender"))
    pdf.field("SSN", patient.get("socialSecurityNumber"))
    _address(pdf, patient.get("homeAddress") or {})
    _phones(pdf, patient.get("phoneNumbers") or {})
    pdf.field("Email", patient.get("email"))

    _guardian(pdf, "PRIMARY PARENT/GUARDIAN", data["parentGuardian1"])
    if data.get("parentGuardian2"):
        _guardian(pdf, "SECONDARY PARENT/GUARDIAN", data["parentGuardian2"])

    _insurance(pdf, "Primary", "primaryInsurance", data["primaryInsurance"], attachments)
    if data.get("secondaryInsurance"):
        _insurance(pdf, "Secondary", "secondaryInsurance", data["secondaryInsurance"], attachments)

    guarantor = data["guarantor"]
    pdf.section("GUARANTOR INFORMATION")
    pdf.field("Name", _name(guarantor))
    pdf.field("Relationship to Patient", guarantor.get("relationshipToPatient"))
    pdf.field("SSN", guarantor.get("socialSecurityNumber"))
    pdf.field("Phone", guarantor.get("phoneNumber"))
    pdf.field("Email", guarantor.get("email"))
    _address(pdf, guarantor.get("address") or {})
    employer = guarantor.get("employer")
    if employer and any(str(v).strip() for v in employer.values() if v):
        pdf.text("Employer Information:")
        pdf.field("Name", employer.get("name"), indent=12)
        pdf.field("Address", employer.get("address"), indent=12)
        pdf.field("Phone", employer.get("phoneNumber"), indent=12)

    _emergency_contact(pdf, "PRIMARY EMERGENCY CONTACT", data["emergencyContact1"])
    if data.get("emergencyContact2"):
        _emergency_contact(pdf, "SECONDARY EMERGENCY CONTACT", data["emergencyContact2"])

    signatory = data.get("consentSignatory") or {}
    pdf.section("CONSENT SIGNATORY")
    pdf.field("Name", signatory.get("signatoryName"))
    pdf.field("Date of Birth", signatory.get("signatoryDateOfBirth"))
    pdf.field("Electronic Signature", signatory.get("electronicSignature"))
    pdf.field("Date Signed", signatory.get("dateSigned"))

    pdf.section("CONSENTS AND AGREEMENTS")
    pdf.text(f"Consent to Treatment: {'AGREED' if data.get('consentToTreatment') else 'NOT AGREED'}")
    pdf.text(
        "HIPAA Acknowledgment: "
        + ("ACKNOWLEDGED" if data.get("hipaaAcknowledgment") else "NOT ACKNOWLEDGED")
    )
    pdf.text(
        "Financial Policy Agreement: "
        + ("AGREED" if data.get("financialPolicyAgreement") else "NOT AGREED")
    )

    pdf.gap(10)
    pdf.text("This form was submitted electronically.", size=8)
    pdf.text(
        f"For questions, please contact {settings.PRACTICE_NAME} at {settings.PRACTICE_PHONE}.",
        size=8,
    )


def render_registration_pdf(
    data: dict[str, Any], attachments: dict[str, CardImage] | None = None
) -> bytes:
    buffer = BytesIO()
    pdf = PdfWriter(buffer)
    write_registration(pdf, data, attachments)
    pages = pdf.page_number
    pdf.finish()
    logger.info("Rendered PDF for %s: %d page(s)", data.get("submissionId", "unsubmitted"), pages)
    return buffer.getvalue()
