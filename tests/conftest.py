"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any ``app`` import so the global
settings object is built with test values.
"""

import asyncio
import os
from datetime import datetime, timedelta, timezone

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "alice:test-api-key-123,bob:test-api-key-456")
os.environ.setdefault("APP_KV_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.adapters.forms.in_memory import InMemoryFormRepository
from app.adapters.kv.base import AbstractKeyValueStore
from app.adapters.kv.in_memory import InMemoryKeyValueStore
from app.core.app_factory import create_app
from app.schemas.forms import FormRecord

ALICE_HEADERS = {"X-API-Key": "test-api-key-123"}
BOB_HEADERS = {"X-API-Key": "test-api-key-456"}


class FakeClock:
    """Deterministic clock used to drive TTL expiry."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class FailingStore(AbstractKeyValueStore):
    """Store whose every call raises, simulating an unreachable backend."""

    def __init__(self, exc: Exception | None = None) -> None:
        self.exc = exc or ConnectionError("kv backend unreachable")
        self.calls: list[str] = []

    async def get(self, key: str) -> bytes | None:
        self.calls.append("get")
        raise self.exc

    async def put(self, key, value, *, expiration_ttl=None, keep_ttl=False) -> None:
        self.calls.append("put")
        raise self.exc

    async def delete(self, key: str) -> None:
        self.calls.append("delete")
        raise self.exc


class SlowStore(InMemoryKeyValueStore):
    """In-memory store whose reads hang longer than any test timeout."""

    async def get(self, key: str) -> bytes | None:
        await asyncio.sleep(1)
        return await super().get(key)


def make_form(**overrides) -> FormRecord:
    """Build a published form record with sensible defaults."""
    now = datetime.now(timezone.utc)
    base = {
        "id": "form-1",
        "public_id": "abc123",
        "user_id": "alice",
        "title": "Contact us",
        "description": "Say hello",
        "form_schema": {"fields": [{"name": "email", "type": "email"}]},
        "settings": {"theme": "light"},
        "status": "published",
        "require_auth": False,
        "submission_count": 0,
        "published_at": now - timedelta(days=1),
        "created_at": now - timedelta(days=2),
        "updated_at": now - timedelta(days=1),
    }
    base.update(overrides)
    return FormRecord(**base)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv_store(clock: FakeClock) -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(clock=clock)


@pytest.fixture
def repository() -> InMemoryFormRepository:
    return InMemoryFormRepository()


@pytest.fixture
def rate_limit_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(namespace="ratelimit")


@pytest.fixture
def cache_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(namespace="cache")


@pytest.fixture
def app(
    rate_limit_store: InMemoryKeyValueStore,
    cache_store: InMemoryKeyValueStore,
    repository: InMemoryFormRepository,
) -> FastAPI:
    return create_app(
        rate_limit_store=rate_limit_store,
        cache_store=cache_store,
        form_repository=repository,
    )


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
