"""
JSON Schema validation service.

- Draft 7 validator extended with the form's custom keywords
  (requireAnyOf, minimumAge) and an MM-DD-YYYY format check
- Collects all errors rather than failing on the first one
- Errors are reported as "field.path: message" for the guardian
"""

from __future__ import annotations

import re
from typing import Any, Iterable

import jsonschema
from jsonschema import FormatChecker
from jsonschema.exceptions import ValidationError

from registration.schemas.form import REGISTRATION_SCHEMA, build_schema
from registration.services import dates


class RegistrationInvalid(Exception):
    """Raised when a submission fails validation; carries every error message."""

    def __init__(self, errors: list[str]):
        super().__init__(f"{len(errors)} validation error(s)")
        self.errors = errors


FORMAT_CHECKER = FormatChecker()


@FORMAT_CHECKER.checks("mm-dd-yyyy")
def _is_calendar_date(value: Any) -> bool:
    # Shape errors are reported by "pattern"; only judge well-formed strings here.
    if not isinstance(value, str) or not dates.MMDDYYYY_RE.match(value):
        return True
    return dates.is_valid_date(value)


def _label(name: str) -> str:
    words = re.sub(r"(?<!^)(?=[A-Z])", " ", name).lower()
    return words[:1].upper() + words[1:]


def _required(validator, required, instance, schema):
    if not validator.is_type(instance, "object"):
        return
    for prop in required:
        if prop not in instance:
            yield ValidationError(f"{_label(prop)} is required", path=[prop])


def _require_any_of(validator, fields, instance, schema):
    if not validator.is_type(instance, "object"):
        return
    filled = [
        name for name in fields
        if isinstance(instance.get(name), str) and instance[name].strip()
    ]
    if not filled:
        yield ValidationError(f"At least one of {', '.join(fields)} is required")


def _minimum_age(validator, years, instance, schema):
    if not validator.is_type(instance, "string") or not dates.is_valid_date(instance):
        return
    if dates.calculate_age(instance) < years:
        yield ValidationError(f"Must be at least {years} years old")


RegistrationValidator = jsonschema.validators.extend(
    jsonschema.Draft7Validator,
    validators={
        "required": _required,
        "requireAnyOf": _require_any_of,
        "minimumAge": _minimum_age,
    },
)


def _describe(error: ValidationError) -> str:
    path = ".".join(str(part) for part in error.absolute_path) or "(root)"
    overrides = error.schema.get("errorMessage", {}) if isinstance(error.schema, dict) else {}
    return f"{path}: {overrides.get(error.validator, error.message)}"


def validate_against_schema(data: Any, schema: dict[str, Any]) -> list[str]:
    """
    Validate data against a JSON schema.
    Returns a list of error messages (empty list = valid).
    """
    validator = RegistrationValidator(schema, format_checker=FORMAT_CHECKER)
    return [_describe(error) for error in validator.iter_errors(data)]


def validate_registration(data: Any) -> list[str]:
    return validate_against_schema(data, REGISTRATION_SCHEMA)


def validate_sections(data: Any, sections: Iterable[str]) -> list[str]:
    """Validate only the named top-level sections (one wizard step)."""
    return validate_against_schema(data, build_schema(sections))
