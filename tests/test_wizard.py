"""Tests for the multi-step wizard – step gating and aggregation."""

from datetime import date

import pytest

from registration.wizard import FORM_STEPS, RegistrationWizard, get_step, validate_step


def test_steps_cover_every_top_level_section():
    sections = [s for step in FORM_STEPS for s in step.sections]
    assert [step.id for step in FORM_STEPS] == [
        "patient", "parents", "insurance", "guarantor", "emergency", "consent",
    ]
    assert len(sections) == len(set(sections)) == 12


def test_next_blocked_until_step_is_valid(registration):
    wizard = RegistrationWizard()
    errors = wizard.next_step()
    assert errors == ["patient: Patient is required"]
    assert wizard.current_step.id == "patient"

    wizard.update({"patient": registration["patient"]})
    assert wizard.next_step() == []
    assert wizard.current_step.id == "parents"


def test_step_validation_ignores_later_sections(registration):
    # Only the patient step is filled in; the other sections don't block it.
    wizard = RegistrationWizard({"patient": registration["patient"]})
    assert wizard.next_step() == []


def test_walk_through_all_steps(registration):
    wizard = RegistrationWizard()
    for step in FORM_STEPS:
        wizard.update({s: registration[s] for s in step.sections if s in registration})
        assert wizard.next_step() == []
    assert wizard.is_last_step
    assert wizard.progress == 1.0
    assert wizard.collect() == registration
    assert wizard.validate_all() == []


def test_previous_step_stops_at_first(registration):
    wizard = RegistrationWizard(registration)
    wizard.next_step()
    wizard.previous_step()
    wizard.previous_step()
    assert wizard.current_index == 0


def test_collect_drops_empty_optional_sections(registration):
    registration["parentGuardian2"] = None
    wizard = RegistrationWizard(registration)
    assert "parentGuardian2" not in wizard.collect()


def test_validate_step_and_unknown_step(registration):
    registration["consentSignatory"]["signatoryDateOfBirth"] = f"05-05-{date.today().year - 10}"
    errors = validate_step("consent", registration)
    assert errors == [
        "consentSignatory.signatoryDateOfBirth: Signatory must be at least 18 years old"
    ]
    with pytest.raises(KeyError):
        get_step("medical-history")
