from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.rate_limit import rate_limit

router = APIRouter(tags=["Health"])

API_NAME = "Form Edge API"
API_VERSION = "1.0.0"


@router.get("/health")
def health_check() -> dict:
    """Liveness check for load balancers; never rate limited.

    Returns:
        dict: ``{"status": "ok"}``.
    """

    return {"status": "ok"}


@router.get("/api/v1", dependencies=[Depends(rate_limit())])
def api_info() -> dict:
    """Describe the API version served under /api/v1."""

    return {"name": API_NAME, "version": API_VERSION}
