from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status

from app.core.auth import require_user
from app.core.rate_limit import rate_limit, user_policy
from app.schemas.forms import (
    DeleteFormResponse,
    FormCreateRequest,
    FormListResponse,
    FormResponse,
    FormStatus,
    FormUpdateRequest,
)
from app.services.form_service import FormService

router = APIRouter(
    prefix="/forms",
    tags=["Forms"],
    dependencies=[Depends(rate_limit())],
)


def get_form_service(request: Request) -> FormService:
    return request.app.state.form_service


UserId = Annotated[str, Depends(require_user)]
Service = Annotated[FormService, Depends(get_form_service)]


@router.get("", response_model=FormListResponse)
async def list_forms(
    user_id: UserId,
    service: Service,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    form_status: Annotated[FormStatus | None, Query(alias="status")] = None,
) -> FormListResponse:
    """List the caller's forms, most recently edited first."""
    return await service.list_forms(user_id, page=page, limit=limit, status=form_status)


@router.post("", response_model=FormResponse, status_code=status.HTTP_201_CREATED)
async def create_form(data: FormCreateRequest, user_id: UserId, service: Service) -> FormResponse:
    """Create a draft form owned by the caller."""
    return await service.create_form(user_id, data)


@router.get("/{form_id}", response_model=FormResponse)
async def get_form(form_id: str, user_id: UserId, service: Service) -> FormResponse:
    return await service.get_form(form_id, user_id)


@router.patch("/{form_id}", response_model=FormResponse)
async def update_form(
    form_id: str,
    data: FormUpdateRequest,
    user_id: UserId,
    service: Service,
) -> FormResponse:
    """Edit a form.

    The public cache is not refreshed: respondents keep seeing the cached
    version until it expires, the form is republished, or the cache is
    cleared explicitly.
    """
    return await service.update_form(form_id, user_id, data)


@router.post(
    "/{form_id}/publish",
    response_model=FormResponse,
    dependencies=[Depends(rate_limit(user_policy, scope="user"))],
)
async def publish_form(form_id: str, user_id: UserId, service: Service) -> FormResponse:
    """Publish a form and pre-warm its public cache entry.

    Subject to the per-user ceiling on top of the default per-IP limit.
    """
    return await service.publish_form(form_id, user_id)


@router.post("/{form_id}/unpublish", response_model=FormResponse)
async def unpublish_form(form_id: str, user_id: UserId, service: Service) -> FormResponse:
    """Return a form to draft and drop its cached public payload."""
    return await service.unpublish_form(form_id, user_id)


@router.delete("/{form_id}/cache", status_code=status.HTTP_204_NO_CONTENT)
async def clear_form_cache(form_id: str, user_id: UserId, service: Service) -> None:
    """Force the next public read to load the form from the repository."""
    await service.clear_form_cache(form_id, user_id)


@router.delete("/{form_id}", response_model=DeleteFormResponse)
async def delete_form(form_id: str, user_id: UserId, service: Service) -> DeleteFormResponse:
    """Delete a form and its submissions; its public link stops resolving at once."""
    await service.delete_form(form_id, user_id)
    return DeleteFormResponse()


@router.post("/{form_id}/archive", response_model=FormResponse)
async def archive_form(form_id: str, user_id: UserId, service: Service) -> FormResponse:
    """Archive a form and drop its cached public payload."""
    return await service.archive_form(form_id, user_id)
