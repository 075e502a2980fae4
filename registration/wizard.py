"""
Multi-step registration wizard.

The form is split into linear steps; "Next" is only allowed once the current
step's sections validate. All section data is aggregated into one object for
the final submission.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from registration.services.validation import validate_registration, validate_sections

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormStep:
    id: str
    title: str
    sections: tuple[str, ...]


FORM_STEPS: tuple[FormStep, ...] = (
    FormStep("patient", "Patient Information", ("patient",)),
    FormStep("parents", "Parent/Guardian Information", ("parentGuardian1", "parentGuardian2")),
    FormStep("insurance", "Insurance Information", ("primaryInsurance", "secondaryInsurance")),
    FormStep("guarantor", "Guarantor Information", ("guarantor",)),
    FormStep("emergency", "Emergency Contacts", ("emergencyContact1", "emergencyContact2")),
    FormStep(
        "consent",
        "Consent & Agreements",
        ("consentToTreatment", "hipaaAcknowledgment", "financialPolicyAgreement", "consentSignatory"),
    ),
)


def get_step(step_id: str) -> FormStep:
    for step in FORM_STEPS:
        if step.id == step_id:
            return step
    raise KeyError(step_id)


def validate_step(step_id: str, data: dict[str, Any]) -> list[str]:
    """Validate only the sections that belong to one step."""
    return validate_sections(data, get_step(step_id).sections)


class RegistrationWizard:
    """Holds the current step and the data entered so far."""

    def __init__(self, data: dict[str, Any] | None = None):
        self.current_index = 0
        self.data: dict[str, Any] = dict(data or {})

    @property
    def current_step(self) -> FormStep:
        return FORM_STEPS[self.current_index]

    @property
    def is_last_step(self) -> bool:
        return self.current_index == len(FORM_STEPS) - 1

    @property
    def progress(self) -> float:
        """Fraction of steps reached, 1/6 on the first step and 1.0 on the last."""
        return (self.current_index + 1) / len(FORM_STEPS)

    def update(self, section_data: dict[str, Any]) -> None:
        self.data.update(section_data)

    def next_step(self) -> list[str]:
        """Validate the current step; advance only when it is valid. Returns the errors."""
        errors = validate_sections(self.data, self.current_step.sections)
        if errors:
            logger.debug("Step '%s' blocked by %d error(s)", self.current_step.id, len(errors))
            return errors
        if not self.is_last_step:
            self.current_index += 1
        return []

    def previous_step(self) -> None:
        if self.current_index > 0:
            self.current_index -= 1

    def collect(self) -> dict[str, Any]:
        """Aggregate every section into the object posted to the submit endpoint."""
        collected = {}
        for step in FORM_STEPS:
            for section in step.sections:
                if self.data.get(section) is not None:
                    collected[section] = self.data[section]
        return collected

    def validate_all(self) -> list[str]:
        return validate_registration(self.collect())
