"""
Insurance card pre-fill using a vision-capable chat-completions model.

The photographed card is sent as a base64 data URL with a fixed prompt.
If the configured model's HTTP call fails, the fallback model is tried once.
The model's reply is parsed leniently (markdown fences, surrounding prose)
and only fields that exist on the insurance section are returned.
"""

from __future__ import annotations

import base64
import json
import logging
import re
from dataclasses import replace
from io import BytesIO
from typing import Any

import httpx
from PIL import Image, UnidentifiedImageError

from registration.config import settings
from registration.schemas.form import INSURANCE_CARD_FIELDS
from registration.services import dates
from registration.services.uploads import CardImage, check_upload

logger = logging.getLogger(__name__)

FALLBACK_VISION_MODEL = "gpt-4o"

MANUAL_ENTRY_NOTICE = (
    "We couldn't read your card automatically. Please enter your insurance details manually."
)

CARD_PROMPT = """
You are reading a photo of a US health insurance card.
Return ONLY valid JSON with this shape:

{
  "companyName": "insurance company / plan name or null",
  "policyNumber": "member ID / policy number or null",
  "groupNumber": "group number or null",
  "subscriberName": "subscriber / member name or null",
  "subscriberDateOfBirth": "MM-DD-YYYY or null"
}

Rules:
- Copy identifiers exactly as printed, including letters and dashes.
- Use null for anything that is not visible or not legible.
- JSON only. No markdown. No backticks.
"""


class ExtractionError(RuntimeError):
    pass


def _with_detected_type(image: CardImage) -> CardImage:
    mime = (image.content_type or "").lower()
    if mime and "octet-stream" not in mime:
        return image
    # Browsers sometimes upload camera captures without a type.
    try:
        fmt = (Image.open(BytesIO(image.data)).format or "jpeg").lower()
    except UnidentifiedImageError:
        fmt = "jpeg"
    return replace(image, content_type="image/jpeg" if fmt == "jpg" else f"image/{fmt}")


def _data_url(image: CardImage) -> str:
    b64 = base64.b64encode(image.data).decode("ascii")
    return f"data:{image.content_type};base64,{b64}"


def _output_text(resp_json: Any) -> str:
    # Chat Completions structure: choices[0].message.content
    choices = resp_json.get("choices") if isinstance(resp_json, dict) else None
    if not choices or not isinstance(choices, list) or not isinstance(choices[0], dict):
        raise ExtractionError("Vision API response has no choices")
    message = choices[0].get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        raise ExtractionError("Vision API response has no message content")
    return content.strip()


def json_from_text(text: str) -> dict[str, Any]:
    """Parse a JSON object out of model output that may carry fences or prose."""
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?\s*|```\s*$", "", text, flags=re.MULTILINE).strip()

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        match = re.search(r"\{.*\}", text, flags=re.DOTALL)
        if not match:
            raise ExtractionError("No JSON object found in model output")
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise ExtractionError(f"Model output is not valid JSON: {exc}") from exc

    if not isinstance(parsed, dict):
        raise ExtractionError("Model output is not a JSON object")
    return parsed


def card_fields(raw: dict[str, Any]) -> dict[str, str]:
    """Keep populated insurance fields only; dates are normalized to MM-DD-YYYY."""
    fields = {}
    for name in INSURANCE_CARD_FIELDS:
        value = raw.get(name)
        if value is None or not str(value).strip():
            continue
        value = str(value).strip()
        if name == "subscriberDateOfBirth":
            value = dates.from_iso_date(value) or value.replace("/", "-")
            if not dates.is_valid_date(value):
                continue
        fields[name] = value
    return fields


def apply_card_fields(
    insurance: dict[str, Any], fields: dict[str, str], overwrite: bool = False
) -> dict[str, Any]:
    """Return a copy of an insurance section patched with extracted fields.

    Values the guardian already typed are kept unless overwrite is set.
    """
    patched = dict(insurance)
    for name, value in fields.items():
        if name not in INSURANCE_CARD_FIELDS:
            continue
        if overwrite or not str(patched.get(name) or "").strip():
            patched[name] = value
    return patched


class InsuranceCardExtractor:
    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        model: str | None = None,
        fallback_model: str = FALLBACK_VISION_MODEL,
        client: httpx.Client | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.VISION_API_KEY
        self.api_url = api_url or settings.VISION_API_URL
        self.model = model or settings.VISION_MODEL
        self.fallback_model = fallback_model
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _call(self, client: httpx.Client, model: str, data_url: str) -> Any:
        payload = {
            "model": model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": CARD_PROMPT},
                        {"type": "image_url", "image_url": {"url": data_url}},
                    ],
                }
            ],
            "max_tokens": 500,
            "temperature": 0,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        response = client.post(self.api_url, json=payload, headers=headers)
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as exc:
            raise ExtractionError("Vision API returned a non-JSON body") from exc

    def extract(self, image: CardImage) -> dict[str, str]:
        """Return the insurance fields read from a card photo.

        Raises ExtractionError (or UploadRejected for a bad upload).
        """
        if not self.configured:
            raise ExtractionError("VISION_API_KEY is not set")
        image = _with_detected_type(image)
        check_upload(image)
        data_url = _data_url(image)

        client = self._client or httpx.Client(timeout=60.0)
        try:
            try:
                resp_json = self._call(client, self.model, data_url)
            except httpx.HTTPError as exc:
                logger.warning(
                    "Vision model %s failed (%s); retrying with %s",
                    self.model, exc, self.fallback_model,
                )
                try:
                    resp_json = self._call(client, self.fallback_model, data_url)
                except httpx.HTTPError as fallback_exc:
                    raise ExtractionError(f"Vision API unavailable: {fallback_exc}") from fallback_exc
        finally:
            if self._client is None:
                client.close()

        fields = card_fields(json_from_text(_output_text(resp_json)))
        logger.info("Extracted %d insurance field(s) from %s", len(fields), image.filename)
        return fields


def get_card_extractor() -> InsuranceCardExtractor:
    """FastAPI dependency; overridden in tests."""
    return InsuranceCardExtractor()

