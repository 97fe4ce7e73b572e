"""OpenAPI metadata and customization utilities.

Provides a helper to enrich the generated OpenAPI schema with:
- Tags metadata
- ``X-RateLimit-*`` response headers on every rate limited operation

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from escape_api.core.rate_limit import HEADER_LIMIT, HEADER_REMAINING, HEADER_RESET

RATE_LIMIT_HEADERS: Dict[str, Any] = {
    HEADER_LIMIT: {
        "description": "Requests admitted per window.",
        "schema": {"type": "integer"},
    },
    HEADER_REMAINING: {
        "description": "Requests left in the current window.",
        "schema": {"type": "integer"},
    },
    HEADER_RESET: {
        "description": "Window reset time (ISO-8601, UTC).",
        "schema": {"type": "string", "format": "date-time"},
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata.

    - Adds tags metadata if not present
    - Documents the rate limit headers on every non-health operation
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        # Tags metadata
        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {
                "name": "Puzzle",
                "description": "Puzzle delivery and answer checking.",
            },
            {
                "name": "Leaderboard",
                "description": "Completion times, fastest first.",
            },
            {
                "name": "Health",
                "description": "Liveness check (not rate limited).",
            },
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        paths = schema.get("paths", {})
        for path, methods in paths.items():
            if path.endswith("/health"):
                continue
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                for response in method_obj.get("responses", {}).values():
                    response.setdefault("headers", {}).update(RATE_LIMIT_HEADERS)

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
