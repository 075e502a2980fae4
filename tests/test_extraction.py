"""Tests for insurance card extraction – the vision API is stubbed."""

import json

import httpx
import pytest

from registration.services.extraction import (
    FALLBACK_VISION_MODEL,
    ExtractionError,
    InsuranceCardExtractor,
    apply_card_fields,
    card_fields,
    json_from_text,
)
from registration.services.uploads import CardImage, UploadRejected


def _completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _extractor(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return InsuranceCardExtractor(
        api_key="sk-test", api_url="https://vision.test/v1/chat/completions",
        model="primary-model", client=client,
    )


def test_json_from_text_variants():
    assert json_from_text('{"a": 1}') == {"a": 1}
    assert json_from_text('```json\n{"a": 1}\n```') == {"a": 1}
    assert json_from_text('Here is the card:\n{"a": {"b": 2}}\nHope that helps') == {"a": {"b": 2}}
    with pytest.raises(ExtractionError):
        json_from_text("I could not read the card.")
    with pytest.raises(ExtractionError):
        json_from_text("[1, 2]")


def test_card_fields_filters_and_normalizes():
    fields = card_fields({
        "companyName": " Aetna ",
        "policyNumber": "W123",
        "groupNumber": None,
        "subscriberName": "",
        "subscriberDateOfBirth": "1988-07-04",
        "copay": "$20",
    })
    assert fields == {
        "companyName": "Aetna",
        "policyNumber": "W123",
        "subscriberDateOfBirth": "07-04-1988",
    }
    assert card_fields({"subscriberDateOfBirth": "07/04/1988"}) == {
        "subscriberDateOfBirth": "07-04-1988"
    }
    assert card_fields({"subscriberDateOfBirth": "July 4"}) == {}


def test_apply_card_fields_keeps_typed_values():
    insurance = {"companyName": "Kaiser", "policyNumber": "", "isPrimary": True}
    patched = apply_card_fields(insurance, {"companyName": "Aetna", "policyNumber": "W123"})
    assert patched == {"companyName": "Kaiser", "policyNumber": "W123", "isPrimary": True}
    assert insurance["policyNumber"] == ""  # original untouched

    overwritten = apply_card_fields(insurance, {"companyName": "Aetna"}, overwrite=True)
    assert overwritten["companyName"] == "Aetna"


def test_extract_sends_image_and_parses_reply(png_bytes):
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json=_completion(
            '```json\n{"companyName": "Aetna", "policyNumber": "W123", "groupNumber": null}\n```'
        ))

    fields = _extractor(handler).extract(CardImage("card.png", "image/png", png_bytes))

    assert fields == {"companyName": "Aetna", "policyNumber": "W123"}
    [payload] = seen
    assert payload["model"] == "primary-model"
    image_part = payload["messages"][0]["content"][1]
    assert image_part["image_url"]["url"].startswith("data:image/png;base64,")


def test_falls_back_to_second_model_once(png_bytes):
    models = []

    def handler(request):
        model = json.loads(request.content)["model"]
        models.append(model)
        if model == "primary-model":
            return httpx.Response(503, json={"error": "overloaded"})
        return httpx.Response(200, json=_completion('{"companyName": "Aetna"}'))

    fields = _extractor(handler).extract(CardImage("card.png", "image/png", png_bytes))
    assert fields == {"companyName": "Aetna"}
    assert models == ["primary-model", FALLBACK_VISION_MODEL]


def test_both_models_failing_raises(png_bytes):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    with pytest.raises(ExtractionError):
        _extractor(handler).extract(CardImage("card.png", "image/png", png_bytes))
    assert len(calls) == 2


def test_octet_stream_upload_is_sniffed(png_bytes):
    urls = []

    def handler(request):
        urls.append(json.loads(request.content)["messages"][0]["content"][1]["image_url"]["url"])
        return httpx.Response(200, json=_completion("{}"))

    _extractor(handler).extract(
        CardImage("capture", "application/octet-stream", png_bytes)
    )
    assert urls[0].startswith("data:image/png;base64,")


def test_unconfigured_and_bad_uploads(png_bytes):
    with pytest.raises(ExtractionError):
        InsuranceCardExtractor(api_key="").extract(CardImage("card.png", "image/png", png_bytes))

    def handler(request):
        pytest.fail("should not call the API")

    with pytest.raises(UploadRejected):
        _extractor(handler).extract(CardImage("card.gif", "image/gif", b""))


@pytest.mark.parametrize(
    "body",
    [
        {"choices": [{"message": None}]},
        {"choices": ["oops"]},
        {"choices": []},
        {"choices": [{"message": {"content": None}}]},
        [],
    ],
)
def test_unexpected_reply_shape_raises(png_bytes, body):
    def handler(request):
        return httpx.Response(200, json=body)

    with pytest.raises(ExtractionError):
        _extractor(handler).extract(CardImage("card.png", "image/png", png_bytes))
