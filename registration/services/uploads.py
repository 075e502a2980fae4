"""Insurance card photo uploads."""

from __future__ import annotations

from dataclasses import dataclass

from registration.config import settings

ALLOWED_IMAGE_TYPES = frozenset(
    {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
)
BLOCKED_EXTENSIONS = (".exe", ".bat", ".cmd", ".scr", ".pif", ".js", ".vbs")

# Multipart field names accepted alongside the JSON form data.
CARD_IMAGE_FIELDS = (
    "primaryInsurance.cardFrontImage",
    "primaryInsurance.cardBackImage",
    "secondaryInsurance.cardFrontImage",
    "secondaryInsurance.cardBackImage",
)


class UploadRejected(ValueError):
    pass


@dataclass(frozen=True)
class CardImage:
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def check_upload(image: CardImage, max_bytes: int | None = None) -> None:
    """Raise UploadRejected if the image is too large, not an image, or looks executable."""
    max_bytes = max_bytes or settings.MAX_UPLOAD_BYTES
    if not image.data:
        raise UploadRejected("File is empty")
    if image.size > max_bytes:
        raise UploadRejected(f"File size must be less than {max_bytes // (1024 * 1024)}MB")
    if (image.content_type or "").lower() not in ALLOWED_IMAGE_TYPES:
        raise UploadRejected("Only JPEG, PNG, GIF and WEBP images are allowed")
    if (image.filename or "").lower().endswith(BLOCKED_EXTENSIONS):
        raise UploadRejected("File type not allowed")


def upload_errors(attachments: dict[str, CardImage]) -> list[str]:
    """Validate every attachment; messages use the same "path: message" shape as form errors."""
    errors = []
    for field, image in attachments.items():
        try:
            check_upload(image)
        except UploadRejected as exc:
            errors.append(f"{field}: {exc}")
    return errors
