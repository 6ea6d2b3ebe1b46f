"""HTTP middleware for request correlation.

Every response carries the request id and the handling duration, and every
log line emitted while the request is in flight is tagged with the same id.
Incoming ids are reused only when they are short printable tokens; anything
else is replaced so clients cannot inject arbitrary text into the logs.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import re
import time
import uuid

from fastapi import Request, Response

from app.core.config import settings
from app.core.logging import clear_request_id, set_request_id

DURATION_HEADER = "X-Request-Duration-ms"
MAX_REQUEST_ID_LENGTH = 128

_REQUEST_ID_PATTERN = re.compile(r"[A-Za-z0-9._:\-]+")


def resolve_request_id(incoming: str | None) -> str:
    """Return ``incoming`` when it is a safe correlation token, else a new UUID."""
    if (
        incoming
        and len(incoming) <= MAX_REQUEST_ID_LENGTH
        and _REQUEST_ID_PATTERN.fullmatch(incoming)
    ):
        return incoming
    return str(uuid.uuid4())


async def request_id_middleware(request: Request, call_next) -> Response:
    """Bind a request id for the duration of the request.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with the request id header (name
            from ``LOG_REQUEST_ID_HEADER``) and the duration header added.
    """
    header_name = settings.log.request_id_header
    request_id = resolve_request_id(request.headers.get(header_name))

    set_request_id(request_id)
    started = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    elapsed_ms = (time.perf_counter() - started) * 1000
    response.headers.update({header_name: request_id, DURATION_HEADER: f"{elapsed_ms:.2f}"})
    return response
