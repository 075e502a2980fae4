"""
JSON schemas for the patient registration form.

One schema per form section, composed into REGISTRATION_SCHEMA.

Two custom keywords are understood by the validator in
registration.services.validation:
- requireAnyOf: at least one of the listed properties is a non-blank string
- minimumAge:   an MM-DD-YYYY date at least N years in the past

"errorMessage" maps a failing keyword to the message shown to the guardian.
"""

PHONE_PATTERN = r"^\(\d{3}\) \d{3}-\d{4}$"
PHONE_MESSAGE = "Phone number must be in format (XXX) XXX-XXXX"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
DATE_PATTERN = r"^\d{2}-\d{2}-\d{4}$"


def _required_text(message: str) -> dict:
    return {
        "type": "string",
        "pattern": r"\S",
        "errorMessage": {"pattern": message},
    }


OPTIONAL_PHONE: dict = {
    "type": "string",
    "pattern": r"^(\(\d{3}\) \d{3}-\d{4})?$",
    "errorMessage": {"pattern": PHONE_MESSAGE},
}

REQUIRED_PHONE: dict = {
    "type": "string",
    "pattern": PHONE_PATTERN,
    "errorMessage": {"pattern": PHONE_MESSAGE},
}

OPTIONAL_EMAIL: dict = {
    "type": "string",
    "pattern": r"^(\s*[^@\s]+@[^@\s]+\.[^@\s]+\s*)?$",
    "errorMessage": {"pattern": "Invalid email address"},
}

REQUIRED_EMAIL: dict = {
    "type": "string",
    "pattern": r"^\s*[^@\s]+@[^@\s]+\.[^@\s]+\s*$",
    "errorMessage": {"pattern": "Invalid email address"},
}

DATE: dict = {
    "type": "string",
    "pattern": DATE_PATTERN,
    "format": "mm-dd-yyyy",
    "errorMessage": {
        "pattern": "Date must be in MM-DD-YYYY format",
        "format": "Please enter a valid date",
    },
}

OPTIONAL_SSN: dict = {
    "type": "string",
    "pattern": r"^(\d{3}-\d{2}-\d{4})?$",
    "errorMessage": {"pattern": "SSN must be in format XXX-XX-XXXX"},
}

ADDRESS_SCHEMA: dict = {
    "type": "object",
    "required": ["street", "city", "state", "zipCode"],
    "properties": {
        "street": _required_text("Street address is required"),
        "city": _required_text("City is required"),
        "state": {
            "type": "string",
            "pattern": r"^[A-Za-z]{2}$",
            "errorMessage": {"pattern": "State must be 2 characters"},
        },
        "zipCode": {
            "type": "string",
            "pattern": r"^\d{5}(-\d{4})?$",
            "errorMessage": {"pattern": "Invalid ZIP code"},
        },
    },
}


def _phone_numbers(*kinds: str) -> dict:
    return {
        "type": "object",
        "properties": {kind: OPTIONAL_PHONE for kind in kinds},
        "requireAnyOf": list(kinds),
        "errorMessage": {"requireAnyOf": "At least one phone number is required"},
    }


PATIENT_SCHEMA: dict = {
    "title": "Patient",
    "type": "object",
    "required": ["firstName", "lastName", "dateOfBirth", "gender", "homeAddress", "phoneNumbers"],
    "properties": {
        "firstName": _required_text("First name is required"),
        "lastName": _required_text("Last name is required"),
        "dateOfBirth": DATE,
        "gender": {
            "type": "string",
            "enum": ["male", "female", "other", "prefer-not-to-say"],
            "errorMessage": {"enum": "Please select a gender"},
        },
        "socialSecurityNumber": OPTIONAL_SSN,
        "homeAddress": ADDRESS_SCHEMA,
        "phoneNumbers": _phone_numbers("home", "cell"),
        "email": OPTIONAL_EMAIL,
    },
}

PARENT_GUARDIAN_SCHEMA: dict = {
    "title": "Parent/Guardian",
    "type": "object",
    "required": ["firstName", "lastName", "relationship", "phoneNumbers", "email", "isPrimaryContact"],
    "properties": {
        "firstName": _required_text("First name is required"),
        "lastName": _required_text("Last name is required"),
        "relationship": _required_text("Relationship is required"),
        "phoneNumbers": _phone_numbers("home", "cell", "work"),
        "email": REQUIRED_EMAIL,
        "isPrimaryContact": {"type": "boolean"},
    },
}

INSURANCE_SCHEMA: dict = {
    "title": "Insurance policy",
    "type": "object",
    "required": [
        "isPrimary",
        "companyName",
        "policyNumber",
        "subscriberName",
        "subscriberDateOfBirth",
        "subscriberRelationship",
    ],
    "properties": {
        "isPrimary": {"type": "boolean"},
        "companyName": _required_text("Insurance company name is required"),
        "policyNumber": _required_text("Policy number is required"),
        "groupNumber": {"type": "string"},
        "subscriberName": _required_text("Subscriber name is required"),
        "subscriberDateOfBirth": DATE,
        "subscriberRelationship": {
            "type": "string",
            "enum": ["self", "spouse", "child", "parent", "other"],
            "errorMessage": {"enum": "Subscriber relationship is required"},
        },
    },
}

GUARANTOR_SCHEMA: dict = {
    "title": "Guarantor",
    "type": "object",
    "required": ["firstName", "lastName", "relationshipToPatient", "address", "phoneNumber", "email"],
    "properties": {
        "firstName": _required_text("First name is required"),
        "lastName": _required_text("Last name is required"),
        "relationshipToPatient": _required_text("Relationship to patient is required"),
        "socialSecurityNumber": OPTIONAL_SSN,
        "address": ADDRESS_SCHEMA,
        "phoneNumber": REQUIRED_PHONE,
        "email": REQUIRED_EMAIL,
        "employer": {
            "type": ["object", "null"],
            "properties": {
                "name": {"type": "string"},
                "address": {"type": "string"},
                "phoneNumber": OPTIONAL_PHONE,
            },
        },
    },
}

EMERGENCY_CONTACT_SCHEMA: dict = {
    "title": "Emergency contact",
    "type": "object",
    "required": ["firstName", "lastName", "relationship", "phoneNumbers"],
    "properties": {
        "firstName": _required_text("First name is required"),
        "lastName": _required_text("Last name is required"),
        "relationship": _required_text("Relationship is required"),
        "phoneNumbers": _phone_numbers("home", "cell", "work"),
    },
}

CONSENT_SIGNATORY_SCHEMA: dict = {
    "title": "Consent signatory",
    "type": "object",
    "required": ["signatoryName", "signatoryDateOfBirth", "electronicSignature", "dateSigned"],
    "properties": {
        "signatoryName": _required_text("Full name is required"),
        "signatoryDateOfBirth": {
            **DATE,
            "minimumAge": 18,
            "errorMessage": {
                **DATE["errorMessage"],
                "minimumAge": "Signatory must be at least 18 years old",
            },
        },
        "electronicSignature": _required_text("Electronic signature is required"),
        "dateSigned": DATE,
    },
}


def _optional(schema: dict) -> dict:
    return {**schema, "type": ["object", "null"]}


def _must_accept(message: str) -> dict:
    return {"type": "boolean", "const": True, "errorMessage": {"const": message}}


# Top-level keys of the form, in wizard order.
SECTION_SCHEMAS: dict[str, dict] = {
    "patient": PATIENT_SCHEMA,
    "parentGuardian1": PARENT_GUARDIAN_SCHEMA,
    "parentGuardian2": _optional(PARENT_GUARDIAN_SCHEMA),
    "primaryInsurance": INSURANCE_SCHEMA,
    "secondaryInsurance": _optional(INSURANCE_SCHEMA),
    "guarantor": GUARANTOR_SCHEMA,
    "emergencyContact1": EMERGENCY_CONTACT_SCHEMA,
    "emergencyContact2": _optional(EMERGENCY_CONTACT_SCHEMA),
    "consentToTreatment": _must_accept("Consent to treatment is required"),
    "hipaaAcknowledgment": _must_accept("HIPAA acknowledgment is required"),
    "financialPolicyAgreement": _must_accept("Financial policy agreement is required"),
    "consentSignatory": CONSENT_SIGNATORY_SCHEMA,
}

OPTIONAL_SECTIONS = frozenset({"parentGuardian2", "secondaryInsurance", "emergencyContact2"})


def build_schema(sections) -> dict:
    """Compose a draft-07 object schema out of the named top-level sections."""
    sections = list(sections)
    return {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "type": "object",
        "required": [name for name in sections if name not in OPTIONAL_SECTIONS],
        "properties": {name: SECTION_SCHEMAS[name] for name in sections},
    }


REGISTRATION_SCHEMA: dict = {
    **build_schema(SECTION_SCHEMAS),
    "title": "Patient registration",
    "description": "Complete pediatric registration form as submitted by a guardian.",
}

# Fields a photographed insurance card can fill in.
INSURANCE_CARD_FIELDS = (
    "companyName",
    "policyNumber",
    "groupNumber",
    "subscriberName",
    "subscriberDateOfBirth",
)
