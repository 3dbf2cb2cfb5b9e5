"""Redaction helpers.

Tool arguments are agent-supplied and may carry credentials or large file bodies.
Anything written to logs goes through `redact_value` first.
"""

from __future__ import annotations

import re
from typing import Any

REDACTED = "<redacted>"
MAX_LOGGED_STRING = 256

_CRED_FIELD_NAMES = {
    "token",
    "access_token",
    "authorization",
    "password",
    "private_key",
    "secret",
}

_TOKEN_PREFIXES = (
    "ghp_",
    "gho_",
    "ghu_",
    "ghs_",
    "ghr_",
    "github_pat_",
)

_JWT_LIKE_RE = re.compile(r"^[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+$")


def looks_like_secret_value(value: str) -> bool:
    """Return True if the value looks like a credential.

    Matching rules:
    - token prefix at start after trimming leading whitespace
    - bearer/token authorization prefix, case-insensitive
    - JWT-looking value (conservative)
    """
    if not isinstance(value, str):
        return False
    trimmed = value.lstrip()
    lowered = trimmed.lower()
    if lowered.startswith(("bearer ", "token ")):
        return True
    if lowered.startswith(_TOKEN_PREFIXES):
        return True
    if len(trimmed) >= 40 and _JWT_LIKE_RE.match(trimmed):
        return True
    return False


def looks_like_credential_field_name(field_name: str) -> bool:
    """Return True if a key name looks like a credential field."""
    if not isinstance(field_name, str):
        return False
    return field_name.strip().lower() in _CRED_FIELD_NAMES


def redact_text(text: str) -> str:
    """Return a representation of `text` safe for logs."""
    if not isinstance(text, str):
        return "<non-string>"
    if looks_like_secret_value(text):
        return REDACTED
    if len(text) > MAX_LOGGED_STRING:
        return f"<{len(text)} chars>"
    return text


def redact_value(obj: Any) -> Any:
    """Return a deep copy of a JSON-like value with secrets and large strings masked."""
    if isinstance(obj, dict):
        return {
            k: REDACTED if looks_like_credential_field_name(str(k)) else redact_value(v)
            for k, v in obj.items()
        }
    if isinstance(obj, (list, tuple)):
        return [redact_value(item) for item in obj]
    if isinstance(obj, str):
        return redact_text(obj)
    return obj
