"""Safe error types and upstream error classification.

Errors returned to agents must be non-secret and stable. Every per-call failure is a
`SafeError` subclass; `tools.dispatch_tool` turns them into tool-error results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class SafeError(Exception):
    """An error safe to expose to agents.

    This must never include secrets (tokens, authorization headers).
    """

    code: str
    message: str
    hint: str | None = None
    status_code: int | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class ValidationError(SafeError):
    """Bad, missing or zero-valued argument. Always caller-correctable, never retried."""

    code: str = field(default="Validation", init=False)
    parameter: str | None = None


@dataclass(frozen=True, slots=True)
class NotFoundError(SafeError):
    """Target resource or account does not exist (or is invisible to the caller)."""

    code: str = field(default="NotFound", init=False)


@dataclass(frozen=True, slots=True)
class PermissionDeniedError(SafeError):
    """The configured credential lacks the scope for the operation."""

    code: str = field(default="Forbidden", init=False)


@dataclass(frozen=True, slots=True)
class RateLimitError(SafeError):
    """Quota exhausted. Surfaced only once the retry budget is spent."""

    code: str = field(default="RateLimited", init=False)
    reset_at: datetime | None = None
    retry_after_s: float | None = None


@dataclass(frozen=True, slots=True)
class TransportError(SafeError):
    """Network or transport failure. Not retried."""

    code: str = field(default="Network", init=False)


@dataclass(frozen=True, slots=True)
class UpstreamError(SafeError):
    """GitHub returned a domain error that is not otherwise classified."""

    code: str = field(default="GitHub", init=False)


@dataclass(frozen=True, slots=True)
class DeadlineExceededError(SafeError):
    """The call ran out of its time budget, including while waiting on a quota reset."""

    code: str = field(default="Cancelled", init=False)


@dataclass(frozen=True, slots=True)
class UnknownToolError(SafeError):
    """No tool with that name is reachable from dispatch."""

    code: str = field(default="UnknownTool", init=False)


def bad_credentials(*, status_code: int) -> PermissionDeniedError:
    """Return a safe error for GitHub 401 responses (token revoked, expired or malformed)."""
    return PermissionDeniedError(
        message="GitHub rejected the configured credentials",
        hint="Check that GITHUB_PERSONAL_ACCESS_TOKEN is valid and not expired",
        status_code=status_code,
    )


def error_from_status(status_code: int, *, hint: str | None = None) -> SafeError:
    """Map a non-rate-limit REST error status onto the error taxonomy."""
    if status_code == 401:
        return bad_credentials(status_code=status_code)
    if status_code == 403:
        return PermissionDeniedError(
            message="Insufficient permissions for this GitHub operation",
            hint=hint,
            status_code=status_code,
        )
    if status_code == 404:
        return NotFoundError(message="GitHub resource not found", hint=hint, status_code=status_code)
    return UpstreamError(message="GitHub request failed", hint=hint, status_code=status_code)


# GraphQL error `type` values GitHub documents for its v4 API.
_GRAPHQL_ERROR_TYPES: dict[str, type[SafeError]] = {
    "NOT_FOUND": NotFoundError,
    "FORBIDDEN": PermissionDeniedError,
    "INSUFFICIENT_SCOPES": PermissionDeniedError,
    "RATE_LIMITED": RateLimitError,
}

_GRAPHQL_MESSAGES: dict[type[SafeError], str] = {
    NotFoundError: "GitHub resource not found",
    PermissionDeniedError: "Insufficient permissions for this GitHub operation",
    RateLimitError: "GitHub API rate limit exceeded",
    UpstreamError: "GitHub GraphQL request failed",
}


def _classify_by_substring(message: str) -> type[SafeError]:
    if "NOT_FOUND" in message or "Could not resolve to a" in message:
        return NotFoundError
    if "FORBIDDEN" in message:
        return PermissionDeniedError
    return UpstreamError


def classify_graphql_error(error: object) -> SafeError:
    """Classify one GraphQL `errors[]` entry.

    The machine-readable `type` wins; message substrings are only consulted when
    GitHub did not send a type.
    """
    hint: str | None = None
    error_type: str | None = None
    if isinstance(error, dict):
        if isinstance(error.get("message"), str):
            hint = error["message"]
        if isinstance(error.get("type"), str):
            error_type = error["type"]

    if error_type is not None:
        cls = _GRAPHQL_ERROR_TYPES.get(error_type, UpstreamError)
    elif hint is not None:
        cls = _classify_by_substring(hint)
    else:
        cls = UpstreamError
    return cls(message=_GRAPHQL_MESSAGES[cls], hint=hint)


def error_text(err: SafeError) -> str:
    """Render an error as the human-readable text carried by a tool-error result."""
    if err.hint:
        return f"{err.message} ({err.hint})"
    return err.message


def safe_error_to_dict(err: SafeError) -> dict[str, Any]:
    """Convert a SafeError into a JSON-friendly dict (for logs and resources)."""
    out: dict[str, Any] = {"ok": False, "code": err.code, "message": err.message}
    if err.hint:
        out["hint"] = err.hint
    return out
