"""GitHub GraphQL client wrapper.

Provides:
- https-only endpoint and no-redirect behavior
- rate-limit-aware retries shared with the REST client
- finite timeouts
- safe error translation (`type` first, message substrings as fallback)

This client is intended only for fixed query/mutation documents controlled by the server.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from .config import DEFAULT_API_BASE_URL, LimitsConfig
from .errors import RateLimitError, SafeError, UpstreamError, classify_graphql_error, error_from_status
from .github_client import (
    ApiResponse,
    RequestBudget,
    TokenProvider,
    build_api_response,
    build_timeout,
    default_headers,
    require_https,
    send_once,
)
from .ratelimit import RateLimitGuard, RateLimitState


@dataclass(frozen=True, slots=True)
class GraphQLResult:
    """Parsed GraphQL response."""

    data: dict[str, Any]
    rate: RateLimitState | None = None


def _graphql_errors(payload: object) -> list[Any]:
    if isinstance(payload, dict):
        errors = payload.get("errors")
        if isinstance(errors, list):
            return errors
    return []


def _is_rate_limited_error(error: object) -> bool:
    return isinstance(error, dict) and error.get("type") == "RATE_LIMITED"


class GitHubGraphQLClient:
    """Minimal GitHub GraphQL client (POST /graphql only)."""

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        limits: LimitsConfig,
        guard: RateLimitGuard | None = None,
        graphql_url: str = f"{DEFAULT_API_BASE_URL}/graphql",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create a GraphQL client with safe defaults."""
        self._token_provider = token_provider
        self._limits = limits
        self._graphql_url = require_https(graphql_url)
        self._guard = guard or RateLimitGuard(
            max_retries=limits.max_rate_limit_retries,
            low_quota_ratio=limits.low_quota_ratio,
            max_wait_s=limits.max_rate_limit_wait_s,
        )
        self._client = httpx.AsyncClient(follow_redirects=False, transport=transport)

    @property
    def graphql_url(self) -> str:
        """Return the GraphQL endpoint in use."""
        return self._graphql_url

    async def aclose(self) -> None:
        """Close the shared connection pool."""
        await self._client.aclose()

    async def execute(
        self,
        *,
        query: str,
        variables: dict[str, Any] | None = None,
        budget: RequestBudget,
    ) -> GraphQLResult:
        """Execute a fixed GraphQL query/mutation and return parsed data.

        Raises:
            SafeError: Classified GraphQL, HTTP or transport failure.
        """
        if not isinstance(query, str) or not query.strip():
            raise SafeError(code="Internal", message="GraphQL query is missing")

        token = await self._token_provider()
        headers = default_headers(token)
        timeout = build_timeout(self._limits, budget)
        body = {"query": query, "variables": variables or {}}

        async def attempt() -> ApiResponse:
            resp = await send_once(
                self._client,
                "POST",
                self._graphql_url,
                headers=headers,
                timeout=timeout,
                json_body=body,
            )
            response = build_api_response(resp)
            errors = _graphql_errors(response.payload)
            # GitHub reports primary GraphQL quota exhaustion as a 200 with a typed error.
            if errors and _is_rate_limited_error(errors[0]):
                rate = response.rate
                raise RateLimitError(
                    message="GitHub API rate limit exceeded",
                    hint=errors[0].get("message") if isinstance(errors[0].get("message"), str) else None,
                    reset_at=rate.reset_at if rate is not None else None,
                    retry_after_s=response.retry_after_s,
                )
            return response

        response = await self._guard.run(attempt, deadline=budget.deadline)
        if response.status_code >= 400:
            raise error_from_status(response.status_code, hint=response.error_message())

        payload = response.payload
        if not isinstance(payload, dict):
            raise UpstreamError(message="GitHub returned invalid JSON")

        errors = _graphql_errors(payload)
        if errors:
            raise classify_graphql_error(errors[0])

        data = payload.get("data")
        if not isinstance(data, dict):
            raise UpstreamError(message="GitHub GraphQL returned no data")

        return GraphQLResult(data=data, rate=response.rate)
