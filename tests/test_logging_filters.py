"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

from escape_api.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    set_request_id,
)


def _capture(name: str) -> tuple[logging.Logger, StringIO]:
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
    """Ensure SensitiveDataFilter redacts credential fields."""
    logger, stream = _capture("test_redaction")

    logger.info(
        "test_event",
        extra={
            "api_key": "sk-secret-123",
            "authorization": "Bearer another-secret",
            "safe_field": "visible",
        },
    )

    output = stream.getvalue()

    assert "sk-secret-123" not in output
    assert "another-secret" not in output
    assert "[REDACTED]" in output
    assert "visible" in output


def test_sensitive_filter_redacts_prompts_and_answers():
    """Puzzle answers and LLM prompts never reach the log sink."""
    logger, stream = _capture("test_answer_redaction")

    logger.info(
        "judge_event",
        extra={
            "prompt": "Correct answer: echo",
            "user_answer": "an echo",
            "puzzle_id": "p1",
        },
    )

    payload = json.loads(stream.getvalue())

    assert payload["prompt"] == "[REDACTED]"
    assert payload["user_answer"] == "[REDACTED]"
    assert payload["puzzle_id"] == "p1"
    assert "echo" not in stream.getvalue()


def test_sensitive_filter_allows_safe_fields():
    """Verify safe fields pass through unmodified."""
    logger, stream = _capture("test_safe_fields")

    logger.info(
        "safe_event",
        extra={
            "request_id": "req-123",
            "route": "/api/puzzle",
            "status": 200,
            "duration_ms": 150.5,
        },
    )

    output = stream.getvalue()

    assert "req-123" in output
    assert "/api/puzzle" in output
    assert "200" in output
    assert "[REDACTED]" not in output


def test_sensitive_filter_redacts_nested_dicts():
    """Ensure nested sensitive fields are redacted."""
    logger, stream = _capture("test_nested")

    logger.info(
        "nested_event",
        extra={
            "headers": {
                "x-forwarded-for": "203.0.113.7",
                "user-agent": "pytest",
            },
            "safe_data": {
                "count": 5,
                "type": "test",
            },
        },
    )

    output = stream.getvalue()

    assert "203.0.113.7" not in output
    assert "[REDACTED]" in output
    assert "pytest" in output
    assert "test" in output


def test_request_id_from_context_is_attached():
    logger, stream = _capture("test_request_id")

    set_request_id("ctx-42")
    try:
        logger.info("ctx_event")
    finally:
        clear_request_id()

    assert json.loads(stream.getvalue())["request_id"] == "ctx-42"
