"""Structured command logging.

One JSONL event per tool call, written to stderr and optionally to a rotating file.
Events never contain the bearer token; tool arguments are included only when command
logging is enabled, and only after redaction.
"""

from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .safety import redact_value

logger = logging.getLogger(__name__)


def new_correlation_id() -> str:
    """Generate a random correlation id for traceability."""
    return uuid.uuid4().hex


def _now_rfc3339() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class AuditEvent:
    """A single tool-call event."""

    timestamp: str
    correlation_id: str
    tool: str
    target_repo: str
    outcome: str
    reason: str | None
    duration_ms: int | None
    arguments: dict[str, Any] | None = None


class AuditLogger:
    """Writes tool-call events as JSONL to stderr and optionally to a file."""

    def __init__(
        self,
        *,
        sink_path: Path | None,
        include_arguments: bool = False,
        max_bytes: int = 5 * 1024 * 1024,
        max_backups: int = 2,
    ) -> None:
        """Create an audit logger.

        Rotation is best-effort; failures writing the optional file sink must not
        break tool execution.
        """
        self._sink_path = sink_path
        self._include_arguments = include_arguments
        self._max_bytes = max_bytes
        self._max_backups = max_backups

    @property
    def include_arguments(self) -> bool:
        return self._include_arguments

    @property
    def file_sink_enabled(self) -> bool:
        return self._sink_path is not None

    def _rotate_if_needed(self) -> None:
        if self._sink_path is None or not self._sink_path.exists():
            return
        if self._sink_path.stat().st_size < self._max_bytes:
            return

        # log -> log.1 -> log.2
        if self._max_backups > 0:
            Path(f"{self._sink_path}.{self._max_backups}").unlink(missing_ok=True)
            for i in range(self._max_backups, 1, -1):
                src = Path(f"{self._sink_path}.{i - 1}")
                if src.exists():
                    src.replace(Path(f"{self._sink_path}.{i}"))
            self._sink_path.replace(Path(f"{self._sink_path}.1"))
        else:
            self._sink_path.write_text("", encoding="utf-8")

    def write_event(self, event: AuditEvent) -> None:
        """Write an event to stderr and optionally to a JSONL file."""
        payload: dict[str, Any] = {
            "timestamp": event.timestamp,
            "correlation_id": event.correlation_id,
            "tool": event.tool,
            "target_repo": event.target_repo,
            "outcome": event.outcome,
        }
        if event.reason is not None:
            payload["reason"] = event.reason
        if event.duration_ms is not None:
            payload["duration_ms"] = event.duration_ms
        if event.arguments is not None:
            payload["arguments"] = event.arguments

        line = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
        print(line, file=sys.stderr)
        if self._sink_path is None:
            return
        try:
            self._sink_path.parent.mkdir(parents=True, exist_ok=True)
            self._rotate_if_needed()
            with self._sink_path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as exc:
            # The file sink must never fail a tool call.
            logger.warning("Could not write command log file: %s", exc.strerror or type(exc).__name__)

    def measure_start(self) -> float:
        """Return a monotonic start timestamp for duration measurement."""
        return time.monotonic()

    def measure_duration_ms(self, start: float) -> int:
        """Convert a monotonic start timestamp into elapsed milliseconds."""
        return int((time.monotonic() - start) * 1000)

    def build_event(
        self,
        *,
        correlation_id: str,
        tool: str,
        arguments: Mapping[str, Any],
        outcome: str,
        reason: str | None = None,
        duration_ms: int | None = None,
    ) -> AuditEvent:
        """Construct an event, attaching redacted arguments when enabled."""
        return build_event(
            correlation_id=correlation_id,
            tool=tool,
            target_repo=target_repo_from_args(arguments),
            outcome=outcome,
            reason=reason,
            duration_ms=duration_ms,
            arguments=redact_value(dict(arguments)) if self._include_arguments else None,
        )


def target_repo_from_args(arguments: Mapping[str, Any]) -> str:
    """Return `owner/repo` when both are present as non-empty strings."""
    owner = arguments.get("owner")
    repo = arguments.get("repo")
    if isinstance(owner, str) and isinstance(repo, str) and owner and repo:
        return f"{owner}/{repo}"
    return "<none>"


def build_event(
    *,
    correlation_id: str,
    tool: str,
    target_repo: str,
    outcome: str,
    reason: str | None = None,
    duration_ms: int | None = None,
    arguments: dict[str, Any] | None = None,
) -> AuditEvent:
    """Construct an audit event."""
    return AuditEvent(
        timestamp=_now_rfc3339(),
        correlation_id=correlation_id,
        tool=tool,
        target_repo=target_repo,
        outcome=outcome,
        reason=reason,
        duration_ms=duration_ms,
        arguments=arguments,
    )
