"""Integration tests for the game endpoints."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from escape_api.adapters.storage import InMemoryGameRepository
from escape_api.core.app_factory import create_app
from escape_api.core.config import settings
from escape_api.core.errors import ValidationAppError
from escape_api.services.leaderboard_service import LeaderboardService
from escape_api.utils.retry import RetryConfig

FAST_RETRY = RetryConfig(max_attempts=2, base_delay_ms=0, max_delay_ms=0, backoff_multiplier=1)


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app())


@pytest.fixture
def unlimited(monkeypatch):
    monkeypatch.setattr(settings.app, "rate_limit_enabled", False)


def ip(addr: str) -> dict[str, str]:
    return {"X-Forwarded-For": addr}


class TestPuzzleEndpoint:
    def test_returns_public_puzzles(self, client: TestClient):
        resp = client.post("/api/puzzle", json={"count": 2}, headers=ip("1.0.0.1"))

        assert resp.status_code == 200
        puzzles = resp.json()["puzzles"]
        assert len(puzzles) == 2
        for puzzle in puzzles:
            assert set(puzzle) == {"id", "type", "question"}
        assert resp.headers["X-RateLimit-Remaining"] == "2"

    def test_empty_body_returns_one_puzzle(self, client: TestClient):
        resp = client.post("/api/puzzle", headers=ip("1.0.0.1"))

        assert resp.status_code == 200
        assert len(resp.json()["puzzles"]) == 1

    def test_exclude_ids(self, client: TestClient):
        resp = client.post(
            "/api/puzzle",
            json={"exclude_ids": ["p1", "p3"]},
            headers=ip("1.0.0.1"),
        )

        assert resp.json()["puzzles"][0]["id"] == "p2"

    @pytest.mark.parametrize(
        "body",
        [
            {"count": 0},
            {"count": 6},
            {"type": "crossword"},
            {"topic": "x" * 101},
        ],
    )
    def test_invalid_body_returns_400_with_headers(self, client: TestClient, body):
        resp = client.post("/api/puzzle", json=body, headers=ip("1.0.0.1"))

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_request"
        assert "X-RateLimit-Limit" in resp.headers

    def test_malformed_json_returns_400(self, client: TestClient):
        resp = client.post(
            "/api/puzzle",
            content=b"{not json",
            headers={**ip("1.0.0.1"), "Content-Type": "application/json"},
        )

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_json"


class TestValidateEndpoint:
    def test_correct_answer(self, client: TestClient):
        resp = client.post(
            "/api/validate",
            json={"puzzleId": "p1", "answer": "Echo"},
            headers=ip("1.0.0.2"),
        )

        assert resp.status_code == 200
        assert resp.json() == {"correct": True}

    def test_wrong_answer_without_llm(self, client: TestClient):
        resp = client.post(
            "/api/validate",
            json={"puzzleId": "p3", "answer": "41"},
            headers=ip("1.0.0.2"),
        )

        assert resp.json() == {"correct": False}

    def test_unknown_puzzle_returns_404(self, client: TestClient):
        resp = client.post(
            "/api/validate",
            json={"puzzleId": "missing", "answer": "x"},
            headers=ip("1.0.0.2"),
        )

        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "puzzle_not_found"
        assert resp.headers["X-RateLimit-Remaining"] == "2"

    def test_missing_fields_return_400(self, client: TestClient):
        resp = client.post("/api/validate", json={"answer": "x"}, headers=ip("1.0.0.2"))

        assert resp.status_code == 400


class TestLeaderboardEndpoints:
    def test_submit_then_list(self, client: TestClient, unlimited):
        for name, seconds in [("Slow", 600), ("Fast", 45), ("Mid", 120)]:
            resp = client.post("/api/leaderboard", json={"name": name, "time_seconds": seconds})
            assert resp.status_code == 200
            assert resp.json() == {"success": True}

        resp = client.get("/api/leaderboard", params={"limit": 2})

        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 3
        assert [e["name"] for e in body["data"]] == ["Fast", "Mid"]

    def test_offset(self, client: TestClient, unlimited):
        for name, seconds in [("A", 10), ("B", 20), ("C", 30)]:
            client.post("/api/leaderboard", json={"name": name, "time_seconds": seconds})

        body = client.get("/api/leaderboard", params={"limit": 5, "offset": 2}).json()

        assert [e["name"] for e in body["data"]] == ["C"]

    def test_rejected_submission_returns_reason(self, client: TestClient):
        resp = client.post(
            "/api/leaderboard",
            json={"name": "Speedy", "time_seconds": 1},
            headers=ip("1.0.0.3"),
        )

        assert resp.status_code == 400
        assert resp.json() == {
            "success": False,
            "error": "Completion time too fast (possible cheat)",
        }
        assert resp.headers["X-RateLimit-Remaining"] == "2"

    def test_huge_integer_time_is_rejected_not_crashing(self, client: TestClient):
        body = b'{"name": "Alice", "time_seconds": 1' + b"0" * 400 + b"}"

        resp = client.post(
            "/api/leaderboard",
            content=body,
            headers={**ip("1.0.0.3"), "Content-Type": "application/json"},
        )

        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "Invalid time format"}
        assert resp.headers["X-RateLimit-Limit"] == "3"
        assert resp.headers["X-RateLimit-Remaining"] == "2"
        assert "X-RateLimit-Reset" in resp.headers

    def test_missing_name_is_rejected(self, client: TestClient):
        resp = client.post("/api/leaderboard", json={"time_seconds": 60}, headers=ip("1.0.0.3"))

        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid name format"

    def test_insert_failure_returns_500(self, client: TestClient):
        repo = MagicMock()
        repo.add_leaderboard_entry = AsyncMock(side_effect=ConnectionError("db down"))
        service = LeaderboardService(repo, retry_config=FAST_RETRY)

        with patch("escape_api.api.routes.leaderboard.get_leaderboard_service", return_value=service):
            resp = client.post(
                "/api/leaderboard",
                json={"name": "Bob", "time_seconds": 60},
                headers=ip("1.0.0.3"),
            )

        assert resp.status_code == 500
        assert resp.json() == {"success": False, "error": "Insert failed"}

    @pytest.mark.parametrize("params", [{"limit": 101}, {"limit": -1}, {"offset": -5}])
    def test_bad_pagination_returns_empty_page(self, client: TestClient, unlimited, params):
        resp = client.get("/api/leaderboard", params=params)

        assert resp.status_code == 400
        assert resp.json() == {"total": 0, "data": []}

    def test_exponent_notation_limit(self, client: TestClient, unlimited):
        for seconds in range(10, 130, 10):
            client.post("/api/leaderboard", json={"name": f"P{seconds}", "time_seconds": seconds})

        resp = client.get("/api/leaderboard", params={"limit": "1e2", "offset": "1.0"})

        assert resp.status_code == 200
        assert len(resp.json()["data"]) == 11

    @pytest.mark.parametrize("params", [{"limit": "2.5"}, {"limit": "inf"}, {"offset": "0.5"}])
    def test_unusable_numbers_return_empty_page(self, client: TestClient, unlimited, params):
        resp = client.get("/api/leaderboard", params=params)

        assert resp.status_code == 400
        assert resp.json() == {"total": 0, "data": []}

    def test_non_numeric_pagination_uses_defaults(self, client: TestClient):
        resp = client.get("/api/leaderboard", params={"limit": "ten"}, headers=ip("1.0.0.4"))

        assert resp.status_code == 200
        assert resp.json() == {"total": 0, "data": []}


class TestRateLimiting:
    def test_fourth_request_is_rejected(self, client: TestClient):
        for expected in ("2", "1", "0"):
            resp = client.get("/api/leaderboard", headers=ip("9.9.9.9"))
            assert resp.status_code == 200
            assert resp.headers["X-RateLimit-Remaining"] == expected

        resp = client.get("/api/leaderboard", headers=ip("9.9.9.9"))

        assert resp.status_code == 429
        assert resp.json() == {
            "success": False,
            "error": "Rate limit exceeded. Please try again later.",
        }
        assert resp.headers["X-RateLimit-Remaining"] == "0"

    def test_quota_is_pooled_across_endpoints(self, client: TestClient):
        headers = ip("9.9.9.8")
        client.post("/api/puzzle", json={}, headers=headers)
        client.post("/api/validate", json={"puzzleId": "p1", "answer": "echo"}, headers=headers)
        client.get("/api/leaderboard", headers=headers)

        resp = client.post(
            "/api/leaderboard",
            json={"name": "Late", "time_seconds": 60},
            headers=headers,
        )

        assert resp.status_code == 429

    def test_rejected_request_does_not_run_handler(self, client: TestClient):
        headers = ip("9.9.9.7")
        for _ in range(3):
            client.get("/api/leaderboard", headers=headers)

        with patch("escape_api.api.routes.leaderboard.get_leaderboard_service") as getter:
            resp = client.post(
                "/api/leaderboard",
                json={"name": "Sneaky", "time_seconds": 60},
                headers=headers,
            )

        assert resp.status_code == 429
        getter.assert_not_called()

    def test_clients_are_isolated(self, client: TestClient):
        for _ in range(4):
            client.get("/api/leaderboard", headers=ip("9.9.9.6"))

        resp = client.get("/api/leaderboard", headers=ip("9.9.9.5"))

        assert resp.status_code == 200

    def test_health_is_not_rate_limited(self, client: TestClient):
        for _ in range(10):
            resp = client.get("/health", headers=ip("9.9.9.4"))
            assert resp.status_code == 200
            assert "X-RateLimit-Limit" not in resp.headers

        assert resp.json() == {"status": "ok", "ai_enabled": False}


def test_openapi_documents_rate_limit_headers(client: TestClient):
    schema = client.get("/openapi.json").json()

    responses = schema["paths"]["/api/leaderboard"]["get"]["responses"]
    assert "X-RateLimit-Remaining" in responses["200"]["headers"]
    assert {t["name"] for t in schema["tags"]} >= {"Puzzle", "Leaderboard", "Health"}
    assert "headers" not in schema["paths"]["/health"]["get"]["responses"]["200"]


def test_unknown_llm_provider_fails_at_startup(monkeypatch):
    monkeypatch.setattr(settings.llm, "provider", "bogus")

    with pytest.raises(ValidationAppError) as exc_info:
        create_app()

    assert exc_info.value.code == "llm_unknown_provider"
