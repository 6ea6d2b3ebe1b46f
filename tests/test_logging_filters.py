"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

from app.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    redact,
    set_request_id,
)


def _json_logger(name: str) -> tuple[logging.Logger, StringIO]:
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger, stream


def test_sensitive_filter_redacts_api_keys():
    """Ensure SensitiveDataFilter redacts API key fields."""
    logger, stream = _json_logger("test_redaction")

    logger.info(
        "test_event",
        extra={
            "api_key": "sk-secret-123",
            "x-api-key": "another-secret",
            "safe_field": "visible",
        },
    )

    output = stream.getvalue()

    assert "sk-secret-123" not in output
    assert "another-secret" not in output
    assert "[REDACTED]" in output
    assert "visible" in output


def test_sensitive_filter_redacts_client_ips_and_submissions():
    """Ensure client addresses and submission bodies never reach the sink."""
    logger, stream = _json_logger("test_submission_redaction")

    logger.info(
        "form.submission_received",
        extra={
            "client_ip": "203.0.113.7",
            "submission_data": {"email": "someone@example.com"},
            "field_count": 1,
        },
    )

    output = stream.getvalue()

    assert "203.0.113.7" not in output
    assert "someone@example.com" not in output
    assert "field_count" in output


def test_rate_limit_event_fields_pass_through():
    """Verify rate limit log fields are emitted unmodified."""
    logger, stream = _json_logger("test_safe_fields")

    logger.info(
        "rate_limit.allowed",
        extra={
            "key_prefix": "public",
            "identity_hash": "ab12cd34ef56ab78",
            "route": "/api/v1/public/abc123",
            "remaining": 29,
        },
    )

    record = json.loads(stream.getvalue())

    assert record["message"] == "rate_limit.allowed"
    assert record["level"] == "info"
    assert record["route"] == "/api/v1/public/abc123"
    assert record["remaining"] == 29
    assert "[REDACTED]" not in stream.getvalue()


def test_sensitive_filter_redacts_nested_dicts():
    """Ensure nested sensitive fields are redacted."""
    logger, stream = _json_logger("test_nested")

    logger.info(
        "nested_event",
        extra={
            "headers": {
                "x-api-key": "secret-key",
                "CF-Connecting-IP": "198.51.100.1",
                "user-agent": "pytest",
            },
        },
    )

    record = json.loads(stream.getvalue())

    assert record["headers"] == {
        "x-api-key": "[REDACTED]",
        "CF-Connecting-IP": "[REDACTED]",
        "user-agent": "pytest",
    }


def test_request_id_from_context_is_attached():
    """Ensure the bound request id lands on every record."""
    logger, stream = _json_logger("test_request_id")

    set_request_id("req-123")
    try:
        logger.info("with_context")
    finally:
        clear_request_id()
    logger.info("without_context")

    first, second = (json.loads(line) for line in stream.getvalue().splitlines())
    assert first["request_id"] == "req-123"
    assert "request_id" not in second


def test_redact_handles_lists_and_scalars():
    assert redact([{"token": "t"}, 3]) == [{"token": "[REDACTED]"}, 3]
    assert redact("plain") == "plain"
