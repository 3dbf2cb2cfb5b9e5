"""GitHub REST client wrapper.

Provides:
- https-only base URL and no-redirect behavior
- one shared connection pool for all concurrent tool calls
- rate-limit-aware retries (see `ratelimit.RateLimitGuard`); nothing else is retried
- finite timeouts
- safe error translation
"""

from __future__ import annotations

import json
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

from . import __version__
from .config import DEFAULT_API_BASE_URL, LimitsConfig
from .errors import SafeError, TransportError, UpstreamError, error_from_status
from .ratelimit import RateLimitGuard, RateLimitState, parse_retry_after

TokenProvider = Callable[[], Awaitable[str]]


@dataclass(frozen=True, slots=True)
class RequestBudget:
    """Time budget for a single tool call."""

    total_timeout_s: float
    started_at: float = field(default_factory=time.monotonic)

    @property
    def deadline(self) -> float:
        """Return the `time.monotonic()` instant at which the budget expires."""
        return self.started_at + self.total_timeout_s


@dataclass(frozen=True, slots=True)
class ApiResponse:
    """Decoded response plus the quota state it reported."""

    status_code: int
    headers: Mapping[str, str]
    payload: Any
    rate: RateLimitState | None
    retry_after_s: float | None = None

    @property
    def ok(self) -> bool:
        """Return True for 2xx responses."""
        return 200 <= self.status_code < 300

    def error_message(self) -> str | None:
        """Return GitHub's `message` field for error payloads, if any."""
        if isinstance(self.payload, dict) and isinstance(self.payload.get("message"), str):
            return self.payload["message"]
        return None

    @property
    def rate_limited(self) -> bool:
        """Return True when GitHub rejected the request for quota reasons."""
        if self.status_code == 429:
            return True
        if self.status_code != 403:
            return False
        if self.rate is not None and self.rate.exhausted:
            return True
        if self.retry_after_s is not None:
            return True
        message = self.error_message()
        return message is not None and "rate limit" in message.lower()


def path_segment(value: str | int) -> str:
    """Quote a single URL path segment (owner, repo, branch...)."""
    return quote(str(value), safe="")


def build_api_response(resp: httpx.Response) -> ApiResponse:
    """Decode an httpx response into an `ApiResponse`.

    Raises:
        UpstreamError: If a successful response carries invalid JSON.
    """
    payload: Any = None
    if resp.content:
        try:
            payload = resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            if resp.status_code < 400:
                raise UpstreamError(message="GitHub returned invalid JSON", status_code=resp.status_code) from exc
            payload = None
    return ApiResponse(
        status_code=resp.status_code,
        headers=resp.headers,
        payload=payload,
        rate=RateLimitState.from_headers(resp.headers),
        retry_after_s=parse_retry_after(resp.headers),
    )


def default_headers(token: str) -> dict[str, str]:
    """Headers sent with every GitHub API request."""
    return {
        "Authorization": f"Bearer {token}",
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
        "User-Agent": f"github-mcp-server/{__version__}",
    }


def build_timeout(limits: LimitsConfig, budget: RequestBudget) -> httpx.Timeout:
    """Per-request timeout bounded by both the limits and the call budget."""
    return httpx.Timeout(
        timeout=min(budget.total_timeout_s, limits.total_timeout_s),
        connect=limits.connect_timeout_s,
        read=limits.read_timeout_s,
    )


async def send_once(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    headers: dict[str, str],
    timeout: httpx.Timeout,
    json_body: object | None = None,
    params: Mapping[str, str] | None = None,
) -> httpx.Response:
    """Perform one HTTP exchange, translating transport failures."""
    try:
        return await client.request(
            method,
            url,
            headers=headers,
            json=json_body,
            params=params,
            timeout=timeout,
        )
    except httpx.TimeoutException as exc:
        raise TransportError(message="GitHub request timed out") from exc
    except httpx.RequestError as exc:
        raise TransportError(message="Network request failed") from exc


def require_https(url: str) -> str:
    """Return `url` without a trailing slash, rejecting anything but https."""
    normalized = url.rstrip("/")
    if not normalized.startswith("https://"):
        raise SafeError(code="Config", message="Only https GitHub API endpoints are allowed")
    return normalized


class GitHubClient:
    """Minimal GitHub REST client."""

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        limits: LimitsConfig,
        guard: RateLimitGuard | None = None,
        api_base_url: str = DEFAULT_API_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create a GitHub REST client.

        Args:
            token_provider: Async callable that returns the bearer token.
            limits: Timeouts/retry limits.
            guard: Rate-limit guard; one is built from `limits` when omitted.
            api_base_url: https base URL (github.com or an Enterprise `/api/v3`).
            transport: Optional httpx transport for tests.
        """
        self._token_provider = token_provider
        self._limits = limits
        self._api_base_url = require_https(api_base_url)
        self._guard = guard or RateLimitGuard(
            max_retries=limits.max_rate_limit_retries,
            low_quota_ratio=limits.low_quota_ratio,
            max_wait_s=limits.max_rate_limit_wait_s,
        )
        self._client = httpx.AsyncClient(follow_redirects=False, transport=transport)

    @property
    def api_base_url(self) -> str:
        """Return the REST base URL in use."""
        return self._api_base_url

    async def aclose(self) -> None:
        """Close the shared connection pool."""
        await self._client.aclose()

    async def request(
        self,
        *,
        method: str,
        path: str,
        json_body: object | None = None,
        params: Mapping[str, str] | None = None,
        budget: RequestBudget,
        raise_for_status: bool = True,
    ) -> ApiResponse:
        """Make a rate-limit-guarded request and return the decoded response.

        Raises:
            SafeError: Classified GitHub or transport failure.
        """
        url = f"{self._api_base_url}{path}"
        token = await self._token_provider()
        headers = default_headers(token)
        timeout = build_timeout(self._limits, budget)

        async def attempt() -> ApiResponse:
            resp = await send_once(
                self._client,
                method,
                url,
                headers=headers,
                timeout=timeout,
                json_body=json_body,
                params=params,
            )
            return build_api_response(resp)

        response = await self._guard.run(attempt, deadline=budget.deadline)
        if raise_for_status and response.status_code >= 400:
            raise error_from_status(response.status_code, hint=response.error_message())
        return response

    async def request_json(
        self,
        *,
        method: str,
        path: str,
        json_body: object | None = None,
        params: Mapping[str, str] | None = None,
        budget: RequestBudget,
    ) -> object:
        """Make a request and return decoded JSON.

        GitHub APIs may return either an object (dict) or an array (list); empty
        bodies (204) decode to None.
        """
        response = await self.request(
            method=method,
            path=path,
            json_body=json_body,
            params=params,
            budget=budget,
        )
        return response.payload
