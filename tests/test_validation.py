"""Tests for JSON schema validation of the registration form."""

from datetime import date, timedelta

from registration.schemas.form import PATIENT_SCHEMA
from registration.services.validation import (
    validate_against_schema,
    validate_registration,
    validate_sections,
)


def test_valid_registration(registration):
    assert validate_registration(registration) == []


def test_missing_required_fields_are_reported_with_paths(registration):
    del registration["patient"]["firstName"]
    del registration["guarantor"]

    errors = validate_registration(registration)
    assert "patient.firstName: First name is required" in errors
    assert "guarantor: Guarantor is required" in errors


def test_blank_required_text_rejected(registration):
    registration["parentGuardian1"]["relationship"] = "   "
    errors = validate_registration(registration)
    assert errors == ["parentGuardian1.relationship: Relationship is required"]


def test_phone_format_rejected(registration):
    registration["patient"]["phoneNumbers"]["cell"] = "925-555-0100"
    errors = validate_registration(registration)
    assert errors == [
        "patient.phoneNumbers.cell: Phone number must be in format (XXX) XXX-XXXX"
    ]


def test_at_least_one_phone_required(registration):
    registration["emergencyContact1"]["phoneNumbers"] = {"home": "", "cell": "", "work": ""}
    errors = validate_registration(registration)
    assert errors == ["emergencyContact1.phoneNumbers: At least one phone number is required"]


def test_guarantor_phone_is_required(registration):
    registration["guarantor"]["phoneNumber"] = ""
    errors = validate_registration(registration)
    assert any(e.startswith("guarantor.phoneNumber:") for e in errors)


def test_date_format_and_calendar(registration):
    registration["patient"]["dateOfBirth"] = "2019-03-22"
    registration["primaryInsurance"]["subscriberDateOfBirth"] = "02-30-1988"
    errors = validate_registration(registration)
    assert "patient.dateOfBirth: Date must be in MM-DD-YYYY format" in errors
    assert "primaryInsurance.subscriberDateOfBirth: Please enter a valid date" in errors


def test_signatory_under_18_rejected(registration):
    registration["consentSignatory"]["signatoryDateOfBirth"] = f"01-01-{date.today().year - 10}"
    errors = validate_registration(registration)
    assert errors == [
        "consentSignatory.signatoryDateOfBirth: Signatory must be at least 18 years old"
    ]


def _eighteenth_birthday(today: date) -> date:
    try:
        return today.replace(year=today.year - 18)
    except ValueError:  # Feb 29
        return today.replace(year=today.year - 18, day=28)


def test_signatory_turning_18_today_is_accepted(registration):
    born = _eighteenth_birthday(date.today())
    registration["consentSignatory"]["signatoryDateOfBirth"] = born.strftime("%m-%d-%Y")
    assert validate_registration(registration) == []


def test_signatory_turning_18_tomorrow_is_rejected(registration):
    born = _eighteenth_birthday(date.today()) + timedelta(days=1)
    registration["consentSignatory"]["signatoryDateOfBirth"] = born.strftime("%m-%d-%Y")
    assert validate_registration(registration) == [
        "consentSignatory.signatoryDateOfBirth: Signatory must be at least 18 years old"
    ]


def test_ssn_state_and_zip_formats(registration):
    registration["guarantor"]["socialSecurityNumber"] = "123456789"
    registration["guarantor"]["address"]["state"] = "Cal"
    registration["guarantor"]["address"]["zipCode"] = "9452"
    errors = validate_registration(registration)
    assert "guarantor.socialSecurityNumber: SSN must be in format XXX-XX-XXXX" in errors
    assert "guarantor.address.state: State must be 2 characters" in errors
    assert "guarantor.address.zipCode: Invalid ZIP code" in errors


def test_consents_must_be_accepted(registration):
    registration["hipaaAcknowledgment"] = False
    errors = validate_registration(registration)
    assert errors == ["hipaaAcknowledgment: HIPAA acknowledgment is required"]


def test_optional_sections_may_be_null_but_are_validated_when_present(registration):
    registration["parentGuardian2"] = None
    registration["secondaryInsurance"] = None
    assert validate_registration(registration) == []

    registration["emergencyContact2"] = {
        "firstName": "Hoa",
        "lastName": "Tran",
        "relationship": "Aunt",
        "phoneNumbers": {},
    }
    errors = validate_registration(registration)
    assert errors == ["emergencyContact2.phoneNumbers: At least one phone number is required"]


def test_invalid_email(registration):
    registration["parentGuardian1"]["email"] = "linh.example.com"
    errors = validate_registration(registration)
    assert errors == ["parentGuardian1.email: Invalid email address"]


def test_invalid_gender():
    record = {
        "firstName": "Ava",
        "lastName": "Nguyen",
        "dateOfBirth": "03-22-2019",
        "gender": "invalid_value",
        "homeAddress": {"street": "1 Main", "city": "Danville", "state": "CA", "zipCode": "94526"},
        "phoneNumbers": {"cell": "(925) 555-0100"},
    }
    errors = validate_against_schema(record, PATIENT_SCHEMA)
    assert errors == ["gender: Please select a gender"]


def test_non_object_body():
    errors = validate_registration(["not", "a", "form"])
    assert len(errors) == 1
    assert errors[0].startswith("(root):")


def test_validate_sections_ignores_other_sections(registration):
    partial = {"patient": registration["patient"]}
    assert validate_sections(partial, ["patient"]) == []
    assert validate_sections(partial, ["guarantor"]) == ["guarantor: Guarantor is required"]
