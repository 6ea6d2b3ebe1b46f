from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from app.schemas.forms import FormCreateRequest, FormRecord, FormSubmission, SubmissionMetadata


class AbstractFormRepository(ABC):
    """Interface for the authoritative form store."""

    @abstractmethod
    async def create(self, user_id: str, data: FormCreateRequest) -> FormRecord:
        """Insert a draft form owned by ``user_id`` and return it."""
        ...

    @abstractmethod
    async def get_by_id(self, form_id: str) -> FormRecord | None:
        """Return the form with internal id ``form_id``, if any."""
        ...

    @abstractmethod
    async def get_by_public_id(self, public_id: str) -> FormRecord | None:
        """Return the form shared under ``public_id``, if any."""
        ...

    @abstractmethod
    async def list_by_user(
        self,
        user_id: str,
        *,
        status: str | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[FormRecord], int]:
        """Return one page of the user's forms (latest edit first) and the total count."""
        ...

    @abstractmethod
    async def delete(self, form_id: str) -> FormRecord | None:
        """Remove a form and its submissions. Returns the removed record, if any."""
        ...

    @abstractmethod
    async def update(self, form_id: str, changes: dict[str, Any]) -> FormRecord | None:
        """Apply ``changes`` (snake_case attribute names) and return the new record.

        Returns None when the form does not exist.
        """
        ...

    @abstractmethod
    async def add_submission(
        self,
        form_id: str,
        data: dict[str, Any],
        metadata: SubmissionMetadata,
    ) -> FormSubmission:
        """Store a submission and bump the form's submission counter."""
        ...
