from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Request

from app.core.rate_limit import public_policy, rate_limit
from app.schemas.forms import (
    FormStatsResponse,
    PublicFormResponse,
    SubmissionMetadata,
    SubmitResponse,
)
from app.services.public_form_service import PublicFormService

router = APIRouter(
    prefix="/public",
    tags=["Public"],
    dependencies=[Depends(rate_limit()), Depends(rate_limit(public_policy))],
)


def get_public_form_service(request: Request) -> PublicFormService:
    return request.app.state.public_form_service


Service = Annotated[PublicFormService, Depends(get_public_form_service)]


def _submission_metadata(request: Request) -> SubmissionMetadata:
    headers = request.headers
    return SubmissionMetadata(
        ip=headers.get("CF-Connecting-IP") or headers.get("X-Forwarded-For"),
        user_agent=headers.get("User-Agent"),
        referrer=headers.get("Referer"),
        country=headers.get("CF-IPCountry"),
        session_id=headers.get("X-Session-ID"),
    )


@router.get("/{public_id}", response_model=PublicFormResponse)
async def get_public_form(public_id: str, service: Service) -> PublicFormResponse:
    """Fetch a published form for rendering.

    Served from the form cache when possible; on a miss the form is loaded,
    checked for availability (published, not expired, under its submission
    limit) and cached.
    """
    return await service.get_public_form(public_id)


@router.post("/{public_id}/submit", response_model=SubmitResponse)
async def submit_form(
    public_id: str,
    request: Request,
    service: Service,
    data: Annotated[dict[str, Any], Body()],
) -> SubmitResponse:
    """Submit answers to a published form.

    Availability is always re-checked against the repository, never the cache.
    """
    return await service.submit(public_id, data, _submission_metadata(request))


@router.get("/{public_id}/stats", response_model=FormStatsResponse)
async def get_public_form_stats(public_id: str, service: Service) -> FormStatsResponse:
    return await service.get_stats(public_id)
