"""Pydantic models for API request/response serialization."""

from __future__ import annotations

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------

class SubmissionResponse(BaseModel):
    success: bool
    submissionId: str | None = None
    message: str
    errors: list[str] | None = None


# ---------------------------------------------------------------------------
# Wizard steps
# ---------------------------------------------------------------------------

class StepInfo(BaseModel):
    id: str
    title: str
    sections: list[str]


class StepValidationResponse(BaseModel):
    step: str
    valid: bool
    errors: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Insurance card extraction
# ---------------------------------------------------------------------------

class CardExtractionResponse(BaseModel):
    success: bool
    fields: dict[str, str] = Field(default_factory=dict)
    message: str


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    status: str = "healthy"
    environment: str
    email: str = "configured"
    card_extraction: str = "configured"


class EmailCheckResponse(BaseModel):
    success: bool
    message: str
    emailId: str | None = None
