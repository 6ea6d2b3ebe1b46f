"""In-memory form repository (MVP).

Notes:
- Per-process only; data is lost on restart.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import secrets
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

from app.adapters.forms.base import AbstractFormRepository
from app.schemas.forms import FormCreateRequest, FormRecord, FormSubmission, SubmissionMetadata


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_public_id() -> str:
    """Return a 12-character URL-safe public identifier."""
    return secrets.token_hex(6)


class InMemoryFormRepository(AbstractFormRepository):
    """Dict-backed form store."""

    def __init__(self, *, now: Callable[[], datetime] = _utcnow) -> None:
        self._now = now
        self._lock = threading.RLock()
        self._forms: dict[str, FormRecord] = {}
        self._public_index: dict[str, str] = {}
        self._submissions: dict[str, list[FormSubmission]] = {}

    async def create(self, user_id: str, data: FormCreateRequest) -> FormRecord:
        now = self._now()
        with self._lock:
            public_id = generate_public_id()
            while public_id in self._public_index:
                public_id = generate_public_id()

            record = FormRecord(
                id=str(uuid.uuid4()),
                public_id=public_id,
                user_id=user_id,
                title=data.title,
                description=data.description,
                form_schema=data.form_schema,
                settings=data.settings,
                status="draft",
                require_auth=data.require_auth,
                max_submissions=data.max_submissions,
                expires_at=data.expires_at,
                created_at=now,
                updated_at=now,
            )
            self._forms[record.id] = record
            self._public_index[public_id] = record.id
            return record

    def add(self, record: FormRecord) -> FormRecord:
        """Insert a fully built record (seeding and tests)."""
        with self._lock:
            self._forms[record.id] = record
            self._public_index[record.public_id] = record.id
            return record

    async def get_by_id(self, form_id: str) -> FormRecord | None:
        with self._lock:
            return self._forms.get(form_id)

    async def get_by_public_id(self, public_id: str) -> FormRecord | None:
        with self._lock:
            form_id = self._public_index.get(public_id)
            return self._forms.get(form_id) if form_id else None

    async def list_by_user(
        self,
        user_id: str,
        *,
        status: str | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[FormRecord], int]:
        with self._lock:
            owned = [
                form
                for form in self._forms.values()
                if form.user_id == user_id and (status is None or form.status == status)
            ]
        owned.sort(key=lambda form: form.updated_at, reverse=True)
        return owned[offset:offset + limit], len(owned)

    async def delete(self, form_id: str) -> FormRecord | None:
        with self._lock:
            record = self._forms.pop(form_id, None)
            if record is None:
                return None
            self._public_index.pop(record.public_id, None)
            self._submissions.pop(form_id, None)
            return record

    async def update(self, form_id: str, changes: dict[str, Any]) -> FormRecord | None:
        with self._lock:
            record = self._forms.get(form_id)
            if record is None:
                return None
            updated = record.model_copy(update={**changes, "updated_at": self._now()})
            self._forms[form_id] = updated
            return updated

    async def add_submission(
        self,
        form_id: str,
        data: dict[str, Any],
        metadata: SubmissionMetadata,
    ) -> FormSubmission:
        now = self._now()
        with self._lock:
            record = self._forms[form_id]
            submission = FormSubmission(
                id=str(uuid.uuid4()),
                form_id=form_id,
                data=data,
                metadata=metadata,
                status="processed",
                created_at=now,
            )
            self._submissions.setdefault(form_id, []).append(submission)
            self._forms[form_id] = record.model_copy(
                update={
                    "submission_count": record.submission_count + 1,
                    "last_submission_at": now,
                }
            )
            return submission

    def submissions_for(self, form_id: str) -> list[FormSubmission]:
        """Return stored submissions for a form (oldest first)."""
        with self._lock:
            return list(self._submissions.get(form_id, []))
