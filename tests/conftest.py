"""Shared fixtures – a complete valid registration and stubbed HTTP providers."""

import copy
import json
from io import BytesIO

import httpx
import pytest
from PIL import Image

from registration.services.email import EmailSender

VALID_REGISTRATION = {
    "patient": {
        "firstName": "Ava",
        "lastName": "Nguyen",
        "dateOfBirth": "03-22-2019",
        "gender": "female",
        "socialSecurityNumber": "",
        "homeAddress": {
            "street": "12 Diablo Rd",
            "city": "Danville",
            "state": "CA",
            "zipCode": "94526",
        },
        "phoneNumbers": {"home": "", "cell": "(925) 555-0100"},
        "email": "",
    },
    "parentGuardian1": {
        "firstName": "Linh",
        "lastName": "Nguyen",
        "relationship": "Mother",
        "phoneNumbers": {"cell": "(925) 555-0101", "work": ""},
        "email": "linh.nguyen@example.com",
        "isPrimaryContact": True,
    },
    "primaryInsurance": {
        "isPrimary": True,
        "companyName": "Blue Shield of California",
        "policyNumber": "XEH123456789",
        "groupNumber": "W0051234",
        "subscriberName": "Linh Nguyen",
        "subscriberDateOfBirth": "07-04-1988",
        "subscriberRelationship": "parent",
    },
    "guarantor": {
        "firstName": "Linh",
        "lastName": "Nguyen",
        "relationshipToPatient": "Mother",
        "socialSecurityNumber": "123-45-6789",
        "address": {
            "street": "12 Diablo Rd",
            "city": "Danville",
            "state": "CA",
            "zipCode": "94526-1234",
        },
        "phoneNumber": "(925) 555-0101",
        "email": "linh.nguyen@example.com",
    },
    "emergencyContact1": {
        "firstName": "Minh",
        "lastName": "Tran",
        "relationship": "Grandfather",
        "phoneNumbers": {"home": "(925) 555-0199"},
    },
    "consentToTreatment": True,
    "hipaaAcknowledgment": True,
    "financialPolicyAgreement": True,
    "consentSignatory": {
        "signatoryName": "Linh Nguyen",
        "signatoryDateOfBirth": "07-04-1988",
        "electronicSignature": "Linh Nguyen",
        "dateSigned": "10-18-2026",
    },
}


@pytest.fixture
def registration():
    """A fresh, fully valid registration payload."""
    return copy.deepcopy(VALID_REGISTRATION)


@pytest.fixture
def png_bytes():
    buffer = BytesIO()
    Image.new("RGB", (340, 210), color=(30, 90, 160)).save(buffer, format="PNG")
    return buffer.getvalue()


class Outbox:
    """Records requests sent to the Resend API and answers with a canned status."""

    def __init__(self, status_code=200):
        self.status_code = status_code
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code >= 400:
            return httpx.Response(self.status_code, json={"message": "rejected"})
        return httpx.Response(self.status_code, json={"id": f"email-{len(self.requests)}"})

    @property
    def payloads(self):
        return [json.loads(request.content) for request in self.requests]

    def sender(self) -> EmailSender:
        client = httpx.Client(transport=httpx.MockTransport(self.handler))
        return EmailSender(
            api_key="re_test_key",
            from_email="admin@1to1pediatrics.com",
            practice_email="frontdesk@example.com",
            client=client,
        )


@pytest.fixture
def outbox():
    return Outbox()


@pytest.fixture
def failing_outbox():
    return Outbox(status_code=502)
