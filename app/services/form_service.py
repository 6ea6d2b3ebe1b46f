"""Owner-side form operations and their cache side effects.

Cache policy:
- publish: write the record, then pre-warm the cache with the new projection.
- unpublish, archive, delete and explicit clear: invalidate the cached entry.
- update: the cache is left alone. Public readers may see the previous
  version until the entry expires or the form is published again; this keeps
  the hot public path free of write amplification on every edit.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Callable

from app.adapters.forms.base import AbstractFormRepository
from app.core.errors import NotFoundAppError
from app.schemas.forms import (
    FormCreateRequest,
    FormListResponse,
    FormRecord,
    FormResponse,
    FormStatus,
    FormUpdateRequest,
    Pagination,
)
from app.services.form_cache import FormCache

logger = logging.getLogger(__name__)

# Fields a PATCH may explicitly reset to null
_NULLABLE_FIELDS = {"description", "max_submissions", "expires_at"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FormService:
    """Create, edit, publish and unpublish forms owned by a user."""

    def __init__(
        self,
        repository: AbstractFormRepository,
        cache: FormCache,
        *,
        public_app_url: str,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.repository = repository
        self.cache = cache
        self._public_app_url = public_app_url.rstrip("/")
        self._now = now

    def public_url(self, public_id: str) -> str:
        """Return the respondent-facing link for a public form id."""
        return f"{self._public_app_url}/f/{public_id}"

    def _to_response(self, record: FormRecord) -> FormResponse:
        public_url = self.public_url(record.public_id) if record.status == "published" else None
        return FormResponse.model_validate({**record.model_dump(), "public_url": public_url})

    async def _get_owned(self, form_id: str, user_id: str) -> FormRecord:
        record = await self.repository.get_by_id(form_id)
        # Foreign forms look exactly like missing ones
        if record is None or record.user_id != user_id:
            raise NotFoundAppError(
                code="form_not_found",
                message="Form not found",
                details={"form_id": form_id},
            )
        return record

    async def _update_owned(self, form_id: str, user_id: str, changes: dict) -> FormRecord:
        await self._get_owned(form_id, user_id)
        updated = await self.repository.update(form_id, changes)
        if updated is None:
            # Deleted between the ownership check and the write
            raise NotFoundAppError(
                code="form_not_found",
                message="Form not found",
                details={"form_id": form_id},
            )
        return updated

    async def create_form(self, user_id: str, data: FormCreateRequest) -> FormResponse:
        record = await self.repository.create(user_id, data)
        logger.info("form.created", extra={"form_id": record.id, "public_id": record.public_id})
        return self._to_response(record)

    async def list_forms(
        self,
        user_id: str,
        *,
        page: int = 1,
        limit: int = 10,
        status: FormStatus | None = None,
    ) -> FormListResponse:
        """Return one page of the caller's forms, most recently edited first."""
        records, total = await self.repository.list_by_user(
            user_id,
            status=status,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return FormListResponse(
            forms=[self._to_response(record) for record in records],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit),
            ),
        )

    async def get_form(self, form_id: str, user_id: str) -> FormResponse:
        return self._to_response(await self._get_owned(form_id, user_id))

    async def update_form(
        self,
        form_id: str,
        user_id: str,
        data: FormUpdateRequest,
    ) -> FormResponse:
        """Apply a partial update without touching the public cache."""
        changes = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field in _NULLABLE_FIELDS
        }
        updated = await self._update_owned(form_id, user_id, changes)
        logger.info(
            "form.updated",
            extra={"form_id": form_id, "fields": sorted(changes)},
        )
        return self._to_response(updated)

    async def publish_form(self, form_id: str, user_id: str) -> FormResponse:
        """Mark the form published and pre-warm its cache entry.

        Raises:
            NotFoundAppError: If the form does not exist or is not owned by the user.
        """
        now = self._now()
        published = await self._update_owned(
            form_id,
            user_id,
            {"status": "published", "published_at": now},
        )

        cached = await self.cache.set(published.public_id, published)
        logger.info(
            "form.published",
            extra={
                "form_id": form_id,
                "public_id": published.public_id,
                "cache_warmed": cached,
            },
        )
        return self._to_response(published)

    async def unpublish_form(self, form_id: str, user_id: str) -> FormResponse:
        """Return the form to draft and drop its cached payload."""
        draft = await self._update_owned(form_id, user_id, {"status": "draft"})
        await self.cache.invalidate(draft.public_id)
        logger.info(
            "form.unpublished",
            extra={"form_id": form_id, "public_id": draft.public_id},
        )
        return self._to_response(draft)

    async def archive_form(self, form_id: str, user_id: str) -> FormResponse:
        """Retire a form: it stops being public and its cached payload is dropped."""
        archived = await self._update_owned(form_id, user_id, {"status": "archived"})
        await self.cache.invalidate(archived.public_id)
        logger.info(
            "form.archived",
            extra={"form_id": form_id, "public_id": archived.public_id},
        )
        return self._to_response(archived)

    async def delete_form(self, form_id: str, user_id: str) -> None:
        """Remove a form with its submissions and drop its cached payload.

        Raises:
            NotFoundAppError: If the form does not exist or is not owned by the user.
        """
        record = await self._get_owned(form_id, user_id)
        await self.repository.delete(form_id)
        await self.cache.invalidate(record.public_id)
        logger.info(
            "form.deleted",
            extra={"form_id": form_id, "public_id": record.public_id},
        )

    async def clear_form_cache(self, form_id: str, user_id: str) -> bool:
        """Operator action forcing the next public read to hit the repository.

        Returns:
            True if the invalidation reached the store.
        """
        record = await self._get_owned(form_id, user_id)
        return await self.cache.invalidate(record.public_id)
