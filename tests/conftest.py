"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It selects the testing environment and clears the LLM key so no test can
reach a real provider.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ["LLM_API_KEY"] = ""
os.environ.setdefault("LLM_PROVIDER", "groq")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("APP_RATE_LIMIT_REQUESTS", "3")
os.environ.setdefault("APP_RATE_LIMIT_WINDOW_MS", "300000")

import pytest

from escape_api.api.dependencies import reset_dependencies
from escape_api.core.rate_limit import reset_rate_limiter
from escape_api.utils.metrics import metrics


@pytest.fixture(autouse=True)
def fresh_state():
    """Give every test an empty rate limiter, repository and metrics."""
    reset_rate_limiter()
    reset_dependencies()
    metrics.reset()
    yield
    reset_rate_limiter()
    reset_dependencies()
