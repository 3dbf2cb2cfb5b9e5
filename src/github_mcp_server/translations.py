"""Overridable tool descriptions.

Every tool description is looked up under a key such as `TOOL_GET_ME_DESCRIPTION`.
Overrides come from, in order of precedence:

- the environment, as `GITHUB_MCP_<KEY>`
- a JSON object file (default: `github-mcp-server-config.json` in the working directory)

Lookups are recorded, so the full key → text map can be exported once the registry
has been built.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path

from .errors import SafeError

logger = logging.getLogger(__name__)

ENV_PREFIX = "GITHUB_MCP_"
DEFAULT_TRANSLATIONS_FILE = Path("github-mcp-server-config.json")


def description_key(tool_name: str) -> str:
    """Return the translation key for a tool's description."""
    return f"TOOL_{tool_name.upper()}_DESCRIPTION"


class Translations:
    """Key → text lookup with defaults, recording every key it resolves."""

    def __init__(self, overrides: Mapping[str, str] | None = None, *, environ: Mapping[str, str] | None = None) -> None:
        self._overrides = dict(overrides or {})
        self._environ = os.environ if environ is None else environ
        self._resolved: dict[str, str] = {}

    def __call__(self, key: str, default: str) -> str:
        value = self._environ.get(f"{ENV_PREFIX}{key}")
        if not value:
            value = self._overrides.get(key) or default
        self._resolved[key] = value
        return value

    def dump(self) -> dict[str, str]:
        """Return every key resolved so far, sorted by key."""
        return dict(sorted(self._resolved.items()))


def load_translations(path: Path | None = None, *, environ: Mapping[str, str] | None = None) -> Translations:
    """Build a `Translations` from an optional JSON file plus the environment.

    A missing file is not an error.

    Raises:
        SafeError: If the file exists but is not a JSON object of strings.
    """
    path = path or DEFAULT_TRANSLATIONS_FILE
    if not path.is_file():
        return Translations(environ=environ)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise SafeError(code="Config", message=f"Could not read translations file {path}") from exc
    if not isinstance(data, dict) or not all(isinstance(v, str) for v in data.values()):
        raise SafeError(code="Config", message=f"Translations file {path} must be a JSON object of strings")
    logger.info("Loaded %d translation overrides from %s", len(data), path)
    return Translations(data, environ=environ)


def export_translations(translations: Translations, path: Path | None = None) -> Path:
    """Write the resolved translation map as pretty-printed JSON and return the path."""
    path = path or DEFAULT_TRANSLATIONS_FILE
    path.write_text(json.dumps(translations.dump(), indent=2) + "\n", encoding="utf-8")
    logger.info("Exported translations to %s", path)
    return path
