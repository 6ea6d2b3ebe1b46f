from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.auth import validate_api_key
from app.core.errors import AuthenticationAppError
from app.core.rate_limit import rate_limit, strict_policy
from app.schemas.forms import VerifyCredentialsRequest, VerifyCredentialsResponse

router = APIRouter(
    prefix="/auth",
    tags=["Auth"],
    dependencies=[Depends(rate_limit())],
)


@router.post(
    "/signin",
    response_model=VerifyCredentialsResponse,
    dependencies=[Depends(rate_limit(strict_policy))],
)
async def signin(body: VerifyCredentialsRequest) -> VerifyCredentialsResponse:
    """Exchange an API key for the user id it is bound to.

    Guarded by the strict per-IP policy: every attempt counts, successful or
    not, which is what caps credential guessing.

    Raises:
        HTTPException: 401 if the key is unknown.
    """
    try:
        user_id = validate_api_key(body.api_key)
    except AuthenticationAppError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.message,
        ) from exc
    return VerifyCredentialsResponse(user_id=user_id)
