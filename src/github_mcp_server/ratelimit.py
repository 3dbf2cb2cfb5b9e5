"""Rate-limit-aware execution guard.

Wraps a single outbound call. After each attempt the guard reads the quota header
triple from that call's own response; quota is never shared between concurrent calls.

- rate-limit rejection, a response reporting zero remaining quota, or `RateLimitError`
  raised by the call: sleep until the reset time (falling back to `2 ** attempt`
  seconds), then retry, up to `max_retries` times
- low remaining quota: log a warning and return the response
- a wait that would overrun the call deadline: fail as a cancellation
- any other error: propagate immediately
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol, TypeVar

from .errors import DeadlineExceededError, RateLimitError

logger = logging.getLogger(__name__)

HEADER_REMAINING = "x-ratelimit-remaining"
HEADER_LIMIT = "x-ratelimit-limit"
HEADER_RESET = "x-ratelimit-reset"
HEADER_RETRY_AFTER = "retry-after"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is None:
        # Plain dicts are case-sensitive; httpx.Headers is not.
        for key, candidate in headers.items():
            if key.lower() == name:
                return candidate
    return value


@dataclass(frozen=True, slots=True)
class RateLimitState:
    """Quota header triple observed on one response."""

    remaining: int
    limit: int
    reset_at: datetime

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> RateLimitState | None:
        """Parse `X-RateLimit-*` headers; None when absent or malformed."""
        remaining_raw = _header(headers, HEADER_REMAINING)
        limit_raw = _header(headers, HEADER_LIMIT)
        reset_raw = _header(headers, HEADER_RESET)
        if remaining_raw is None or limit_raw is None or reset_raw is None:
            return None
        try:
            remaining = int(remaining_raw)
            limit = int(limit_raw)
            reset_at = datetime.fromtimestamp(int(reset_raw), tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None
        return cls(remaining=max(0, remaining), limit=max(0, limit), reset_at=reset_at)

    @property
    def exhausted(self) -> bool:
        """Return True when no requests remain in the current window."""
        return self.remaining == 0

    def is_low(self, ratio: float) -> bool:
        """Return True when remaining quota is below `ratio` of the limit."""
        if self.limit <= 0:
            return False
        return self.remaining / self.limit < ratio


def parse_retry_after(headers: Mapping[str, str]) -> float | None:
    """Return the `Retry-After` delay in seconds (secondary rate limits), if any."""
    raw = _header(headers, HEADER_RETRY_AFTER)
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if value > 0 else None


class QuotaResponse(Protocol):
    """What the guard needs to know about an outbound response."""

    @property
    def rate(self) -> RateLimitState | None: ...

    @property
    def rate_limited(self) -> bool: ...

    @property
    def retry_after_s(self) -> float | None: ...


R = TypeVar("R", bound=QuotaResponse)


class RateLimitGuard:
    """Retry wrapper that absorbs rate-limit exhaustion for one call."""

    def __init__(
        self,
        *,
        max_retries: int = 3,
        low_quota_ratio: float = 0.10,
        max_wait_s: float = 900.0,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        now: Callable[[], datetime] = _utcnow,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        """Create a guard.

        Args:
            max_retries: Rate-limit-triggered retries allowed per call.
            low_quota_ratio: Remaining/limit ratio below which a warning is logged.
            max_wait_s: Longest single wait the guard accepts before giving up.
            sleep: Awaitable sleep (injectable for tests).
            now: UTC clock used against reset timestamps.
            monotonic: Clock used against per-call deadlines.
        """
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self._max_retries = max_retries
        self._low_quota_ratio = low_quota_ratio
        self._max_wait_s = max_wait_s
        self._sleep = sleep
        self._now = now
        self._monotonic = monotonic

    @property
    def max_retries(self) -> int:
        """Return the retry budget per call."""
        return self._max_retries

    def compute_sleep_s(self, *, attempt: int, reset_at: datetime | None, retry_after_s: float | None) -> float:
        """Return how long to wait before retry `attempt` (0-based)."""
        if retry_after_s is not None and retry_after_s > 0:
            return retry_after_s
        if reset_at is not None:
            delta = (reset_at - self._now()).total_seconds()
            if delta > 0:
                return delta
        # Reset already passed (clock skew) or unknown.
        return float(2**attempt)

    def _warn_if_low(self, rate: RateLimitState | None) -> None:
        if rate is None or not rate.is_low(self._low_quota_ratio):
            return
        logger.warning(
            "GitHub API rate limit is low. %d/%d requests remaining. Reset at %s",
            rate.remaining,
            rate.limit,
            rate.reset_at.isoformat(),
        )

    async def run(self, call: Callable[[], Awaitable[R]], *, deadline: float | None = None) -> R:
        """Execute `call` up to `max_retries + 1` times.

        A response counts as exhausted when it was rejected for quota reasons or when
        its own quota triple reports `remaining == 0`.

        Args:
            call: Zero-argument coroutine factory performing one outbound attempt.
            deadline: Optional `time.monotonic()` deadline for the whole call.

        Raises:
            RateLimitError: When the retry budget is spent or the wait exceeds
                `max_wait_s`.
            DeadlineExceededError: When the reset lies beyond the deadline.
            asyncio.CancelledError: When the task is cancelled while waiting.
        """
        last: RateLimitError | None = None
        for attempt in range(self._max_retries + 1):
            try:
                response = await call()
            except RateLimitError as exc:
                last = exc
            else:
                rate = response.rate
                if not response.rate_limited and (rate is None or not rate.exhausted):
                    self._warn_if_low(rate)
                    return response
                last = RateLimitError(
                    message="GitHub API rate limit exceeded",
                    reset_at=rate.reset_at if rate is not None else None,
                    retry_after_s=response.retry_after_s,
                )

            if attempt == self._max_retries:
                break

            sleep_s = self.compute_sleep_s(
                attempt=attempt,
                reset_at=last.reset_at,
                retry_after_s=last.retry_after_s,
            )
            if deadline is not None and self._monotonic() + sleep_s > deadline:
                raise DeadlineExceededError(
                    message="Tool call exceeded its time budget waiting for rate limit reset",
                    hint=_reset_hint(last),
                ) from last
            if sleep_s > self._max_wait_s:
                raise RateLimitError(
                    message="GitHub API rate limit exceeded",
                    hint=_reset_hint(last),
                    reset_at=last.reset_at,
                ) from last

            logger.info(
                "Rate limit exhausted; waiting %.1fs before retry %d/%d",
                sleep_s,
                attempt + 1,
                self._max_retries,
            )
            await self._sleep(sleep_s)

        assert last is not None
        raise RateLimitError(
            message="max retries exceeded waiting for rate limit reset",
            hint=_reset_hint(last),
            reset_at=last.reset_at,
        ) from last


def _reset_hint(err: RateLimitError) -> str | None:
    if err.reset_at is None:
        return err.hint
    return f"Quota resets at {err.reset_at.isoformat()}"
