"""Tests for global exception handlers.

Domain errors map to their HTTP status with a uniform body; unexpected
errors become a generic 500 that leaks nothing.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from escape_api.core.errors import (
    AppError,
    LLMAppError,
    NotFoundAppError,
    StorageAppError,
    ValidationAppError,
)
from escape_api.core.exception_handlers import (
    error_response,
    general_exception_handler,
    setup_exception_handlers,
    status_code_for,
)

RAISED = {
    "/validation": ValidationAppError(
        code="body_too_large",
        message="Request body too large",
        details={"hint": "send less"},
    ),
    "/not-found": NotFoundAppError(code="puzzle_not_found", message="Puzzle not found"),
    "/llm": LLMAppError(code="llm_request_failed", message="LLM API error"),
    "/storage": StorageAppError(code="leaderboard_insert_failed", message="Insert failed"),
    "/crash": ZeroDivisionError("secret internals"),
}


def raising(exc: Exception):
    async def endpoint():
        raise exc

    return endpoint


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    setup_exception_handlers(app)

    for path, exc in RAISED.items():
        app.add_api_route(path, raising(exc))

    return TestClient(app, raise_server_exceptions=False)


@pytest.mark.parametrize(
    "path,status,code",
    [
        ("/validation", 400, "body_too_large"),
        ("/not-found", 404, "puzzle_not_found"),
        ("/llm", 500, "llm_request_failed"),
        ("/storage", 500, "leaderboard_insert_failed"),
        ("/crash", 500, "internal_server_error"),
    ],
)
def test_error_status_and_body(client: TestClient, path: str, status: int, code: str):
    response = client.get(path)

    assert response.status_code == status
    error = response.json()["error"]
    assert error["code"] == code
    assert "message" in error
    assert "request_id" in error


def test_details_only_when_present(client: TestClient):
    assert client.get("/validation").json()["error"]["details"] == {"hint": "send less"}
    assert "details" not in client.get("/not-found").json()["error"]


def test_unexpected_error_does_not_leak(client: TestClient):
    response = client.get("/crash")

    assert "secret internals" not in response.text
    assert "ZeroDivisionError" not in response.text
    assert "Traceback" not in response.text


def test_base_app_error_defaults_to_400():
    exc = AppError(code="generic", message="generic")

    assert status_code_for(exc) == 400
    assert error_response(exc).status_code == 400


def test_general_handler_called_directly():
    request = AsyncMock()
    request.url.path = "/api/puzzle"
    request.method = "POST"

    response = asyncio.run(
        general_exception_handler(request, RuntimeError("database connection failed"))
    )

    data = json.loads(bytes(response.body).decode())
    assert response.status_code == 500
    assert "database connection" not in data["error"]["message"]


def test_setup_is_idempotent():
    app = FastAPI()

    setup_exception_handlers(app)
    setup_exception_handlers(app)

    assert AppError in app.exception_handlers
    assert Exception in app.exception_handlers
