from __future__ import annotations

"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
builds the request-independent collaborators (key-value stores, rate
limiter, form cache, services). Collaborators are attached to ``app.state``
rather than module globals so tests can pass in-memory fakes.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.adapters.forms.base import AbstractFormRepository
from app.adapters.forms.in_memory import InMemoryFormRepository
from app.adapters.kv.base import AbstractKeyValueStore
from app.adapters.kv.factory import create_kv_store
from app.adapters.rate_limit.fixed_window import FixedWindowRateLimiter
from app.api.routes import auth_router, forms_router, health_router, public_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.services.form_cache import FormCache
from app.services.form_service import FormService
from app.services.public_form_service import PublicFormService

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def create_app(
    *,
    rate_limit_store: AbstractKeyValueStore | None = None,
    cache_store: AbstractKeyValueStore | None = None,
    form_repository: AbstractFormRepository | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limit_store: Store for rate-limit counters; defaults to the
            configured backend under the "ratelimit" namespace.
        cache_store: Store for cached public forms; defaults to the
            configured backend under the "cache" namespace.
        form_repository: Authoritative form store; defaults to in-memory.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    if rate_limit_store is None:
        rate_limit_store = create_kv_store("ratelimit")
    if cache_store is None:
        cache_store = create_kv_store("cache")
    if form_repository is None:
        form_repository = InMemoryFormRepository()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await rate_limit_store.close()
        if cache_store is not rate_limit_store:
            await cache_store.close()

    app = FastAPI(
        title="Form Edge API",
        description=(
            "Public form delivery and form publishing API. Public reads are "
            "served from a read-through cache, and every route is guarded by "
            "fixed-window rate limits (per IP, per user for publish actions, "
            "strict for credential checks)."
        ),
        version="1.0.0",
        debug=settings.app.debug,
        lifespan=lifespan,
    )

    app.state.rate_limiter = FixedWindowRateLimiter(
        rate_limit_store,
        timeout_seconds=settings.app.store_timeout_seconds,
    )
    form_cache = FormCache(
        cache_store,
        ttl_seconds=settings.app.form_cache_ttl_seconds,
        timeout_seconds=settings.app.store_timeout_seconds,
    )
    app.state.form_cache = form_cache
    app.state.form_repository = form_repository
    app.state.form_service = FormService(
        form_repository,
        form_cache,
        public_app_url=settings.app.public_app_url,
    )
    app.state.public_form_service = PublicFormService(form_repository, form_cache)

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(forms_router, prefix=API_PREFIX)
    app.include_router(public_router, prefix=API_PREFIX)

    # OpenAPI customizations (security scheme, tags, exemptions)
    apply_openapi_customizations(app)

    logger.info(
        "app.created",
        extra={
            "kv_backend": settings.app.kv_backend,
            "rate_limit_enabled": settings.app.rate_limit_enabled,
            "form_cache_ttl_s": settings.app.form_cache_ttl_seconds,
        },
    )
    return app
