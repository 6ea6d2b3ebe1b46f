"""Pydantic schemas for forms, public payloads, and submissions.

Wire format is camelCase (``publicId``, ``requireAuth``) to match the web
client; Python attributes stay snake_case.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

FormStatus = Literal["draft", "published", "archived"]


class CamelModel(BaseModel):
    """Base model serializing field names as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PublicFormPayload(CamelModel):
    """Projection of a form that is safe to cache and serve publicly.

    Only the rendering inputs are kept. Ownership, status, and submission
    counters are deliberately absent: those always come from the repository.
    Unknown keys are ignored on validation, which is what strips them.
    """

    form_schema: dict[str, Any] = Field(
        ...,
        alias="schema",
        description="Form structure: field definitions, steps, validation rules.",
    )
    settings: dict[str, Any] = Field(
        default_factory=dict,
        description="Display settings (theme, success message, redirect URL, ...).",
    )
    require_auth: bool = Field(
        False,
        description="Whether respondents must be signed in to submit.",
    )


class PublicFormResponse(PublicFormPayload):
    """Public form payload returned to respondents."""

    public_id: str = Field(..., description="Public identifier used in share links.")


class FormRecord(CamelModel):
    """Authoritative form record as held by the repository."""

    id: str
    public_id: str
    user_id: str
    title: str
    description: str | None = None
    form_schema: dict[str, Any] = Field(default_factory=dict, alias="schema")
    settings: dict[str, Any] = Field(default_factory=dict)
    status: FormStatus = "draft"
    require_auth: bool = False
    max_submissions: int | None = Field(None, ge=1)
    submission_count: int = Field(0, ge=0)
    expires_at: datetime | None = None
    published_at: datetime | None = None
    last_submission_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class FormResponse(FormRecord):
    """Owner view of a form, with the share link once published."""

    public_url: str | None = None


class Pagination(CamelModel):
    """Page window of a list response."""

    page: int
    limit: int
    total: int
    total_pages: int


class FormListResponse(CamelModel):
    """One page of the caller's forms."""

    forms: list[FormResponse]
    pagination: Pagination


class DeleteFormResponse(CamelModel):
    success: bool = True


class FormCreateRequest(CamelModel):
    """Payload for creating a draft form."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    form_schema: dict[str, Any] = Field(default_factory=dict, alias="schema")
    settings: dict[str, Any] = Field(default_factory=dict)
    require_auth: bool = False
    max_submissions: int | None = Field(None, ge=1)
    expires_at: datetime | None = None


class FormUpdateRequest(CamelModel):
    """Partial update of a form. Omitted fields are left unchanged."""

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    form_schema: dict[str, Any] | None = Field(None, alias="schema")
    settings: dict[str, Any] | None = None
    require_auth: bool | None = None
    max_submissions: int | None = Field(None, ge=1)
    expires_at: datetime | None = None


class SubmissionMetadata(CamelModel):
    """Request metadata captured alongside a submission."""

    ip: str | None = None
    user_agent: str | None = None
    referrer: str | None = None
    country: str | None = None
    session_id: str | None = None


class FormSubmission(CamelModel):
    """Stored form submission."""

    id: str
    form_id: str
    data: dict[str, Any]
    metadata: SubmissionMetadata
    status: Literal["pending", "processed", "failed", "spam"] = "processed"
    created_at: datetime


class SubmitResponse(CamelModel):
    """Response returned to a respondent after submitting."""

    success: bool = True
    message: str
    redirect_url: str | None = None


class FormStatsResponse(CamelModel):
    """Live submission counters for a public form."""

    submissions: int
    remaining: int | None = None


class VerifyCredentialsRequest(CamelModel):
    """Credential check request."""

    api_key: str = Field(..., min_length=1)


class VerifyCredentialsResponse(CamelModel):
    """Identity resolved from a valid credential."""

    user_id: str


class RateLimitErrorResponse(CamelModel):
    """Body of 429 responses."""

    error: str = "Too Many Requests"
    message: str
    retry_after: int
