"""Self-diagnostics tool.

Exercises both API shapes with the configured credential and reports what happened.
Failures are part of the report rather than a tool error. The token itself is never
included.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from ..errors import SafeError, safe_error_to_dict
from ..identity import VIEWER_QUERY
from ..ratelimit import RateLimitState
from ..registry import ToolDescriptor, ToolRegistry
from ..runtime import Runtime

DIAGNOSE = ToolDescriptor(
    name="diagnose_github_mcp",
    description="Run diagnostics on the GitHub MCP server to debug issues",
)


def _rate(rate: RateLimitState | None) -> dict[str, Any] | None:
    if rate is None:
        return None
    return {"remaining": rate.remaining, "limit": rate.limit, "reset_at": rate.reset_at.isoformat()}


async def _rest_check(runtime: Runtime) -> dict[str, Any]:
    try:
        response = await runtime.github.request(method="GET", path="/user", budget=runtime.budget())
    except SafeError as err:
        return {"status": "error", **safe_error_to_dict(err)}
    user = response.payload if isinstance(response.payload, dict) else {}
    return {
        "status": "success",
        "user_name": user.get("login"),
        "user_id": user.get("id"),
        "scopes": response.headers.get("x-oauth-scopes"),
        "rate_limit": _rate(response.rate),
    }


async def _graphql_check(runtime: Runtime) -> dict[str, Any]:
    try:
        result = await runtime.graphql.execute(query=VIEWER_QUERY, budget=runtime.budget())
    except SafeError as err:
        return {"status": "error", **safe_error_to_dict(err)}
    viewer = result.data.get("viewer")
    viewer = viewer if isinstance(viewer, dict) else {}
    return {
        "status": "success",
        "user_name": viewer.get("login"),
        "user_id": viewer.get("id"),
        "rate_limit": _rate(result.rate),
    }


async def diagnose(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    config = runtime.config
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "token_status": "present" if config.token else "missing",
        "api_base_url": config.api_base_url,
        "graphql_url": config.graphql_url,
        "read_only": config.read_only,
        "max_rate_limit_retries": config.limits.max_rate_limit_retries,
        "rest_api_test": await _rest_check(runtime),
        "graphql_api_test": await _graphql_check(runtime),
    }


def register(registry: ToolRegistry) -> None:
    registry.register(DIAGNOSE, diagnose)
