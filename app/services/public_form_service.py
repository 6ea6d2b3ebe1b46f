"""Public (respondent-facing) form reads and submissions.

Reads go through the form cache. Anything depending on mutable counters
(submission acceptance, stats) is always checked against the repository.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from app.adapters.forms.base import AbstractFormRepository
from app.core.errors import GoneAppError, NotFoundAppError
from app.schemas.forms import (
    FormRecord,
    FormStatsResponse,
    PublicFormResponse,
    SubmissionMetadata,
    SubmitResponse,
)
from app.services.form_cache import FormCache, project_payload

logger = logging.getLogger(__name__)

DEFAULT_SUCCESS_MESSAGE = "Thank you for your submission!"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class PublicFormService:
    """Serve published forms and accept submissions."""

    def __init__(
        self,
        repository: AbstractFormRepository,
        cache: FormCache,
        *,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.repository = repository
        self.cache = cache
        self._now = now

    async def _get_existing(self, public_id: str) -> FormRecord:
        form = await self.repository.get_by_public_id(public_id)
        if form is None:
            raise NotFoundAppError(
                code="form_not_found",
                message="Form not found",
                details={"public_id": public_id},
            )
        return form

    def _ensure_accepting(self, form: FormRecord) -> None:
        """Raise unless the form is published, unexpired and under its limit.

        Raises:
            NotFoundAppError: If the form is not published.
            GoneAppError: If the form expired or reached its submission limit.
        """
        details = {"public_id": form.public_id}

        if form.status != "published":
            raise NotFoundAppError(
                code="form_not_published",
                message="Form is not published",
                details=details,
            )

        if form.expires_at and _as_aware(form.expires_at) < self._now():
            raise GoneAppError(
                code="form_expired",
                message="Form has expired",
                details=details,
            )

        if form.max_submissions and form.submission_count >= form.max_submissions:
            raise GoneAppError(
                code="form_submission_limit_reached",
                message="Form has reached submission limit",
                details=details,
            )

    async def get_public_form(self, public_id: str) -> PublicFormResponse:
        """Return the public payload, from cache when possible.

        On a miss the repository is consulted, availability rules are
        enforced, and the projection is cached for the configured TTL.
        """
        cached = await self.cache.get(public_id)
        if cached is not None:
            return PublicFormResponse.model_validate({**cached, "publicId": public_id})

        form = await self._get_existing(public_id)
        self._ensure_accepting(form)

        projection = project_payload(form)
        await self.cache.set(public_id, projection)
        return PublicFormResponse.model_validate({**projection, "publicId": public_id})

    async def submit(
        self,
        public_id: str,
        data: dict[str, Any],
        metadata: SubmissionMetadata,
    ) -> SubmitResponse:
        """Record a submission after fresh availability checks."""
        form = await self._get_existing(public_id)
        self._ensure_accepting(form)

        submission = await self.repository.add_submission(form.id, data, metadata)
        logger.info(
            "form.submission_received",
            extra={
                "form_id": form.id,
                "public_id": public_id,
                "submission_id": submission.id,
                "field_count": len(data),
            },
        )

        return SubmitResponse(
            success=True,
            message=form.settings.get("successMessage") or DEFAULT_SUCCESS_MESSAGE,
            redirect_url=form.settings.get("redirectUrl"),
        )

    async def get_stats(self, public_id: str) -> FormStatsResponse:
        """Return live submission counters straight from the repository."""
        form = await self._get_existing(public_id)
        remaining = None
        if form.max_submissions:
            remaining = max(0, form.max_submissions - form.submission_count)
        return FormStatsResponse(submissions=form.submission_count, remaining=remaining)
