"""Registry construction and tool dispatch.

This module:
- builds the sealed tool registry once at startup
- creates a correlation_id per tool call
- enforces declared parameter bounds and the per-call time budget
- writes exactly one command-log event per call
- turns every `SafeError` into an error result; the process never dies on a call
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .audit import new_correlation_id
from .errors import DeadlineExceededError, SafeError, error_text
from .registry import ToolRegistry, Translate
from .runtime import Runtime
from .toolsets import register_all

logger = logging.getLogger(__name__)

# Caller-correctable failures; everything else counts as "failed".
_DENIED_CODES = frozenset({"Validation", "UnknownTool", "Forbidden"})


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Outcome of one tool call: a single text payload, flagged when it is an error."""

    text: str
    is_error: bool = False

    def content(self) -> list[dict[str, str]]:
        return [{"type": "text", "text": self.text}]


def build_registry(*, read_only: bool, translate: Translate | None = None) -> ToolRegistry:
    """Register every tool and seal the registry."""
    registry = ToolRegistry(read_only=read_only, translate=translate)
    register_all(registry)
    return registry.seal()


def serialize_result(payload: object) -> str:
    return json.dumps(payload, indent=2, default=str)


async def dispatch_tool(
    registry: ToolRegistry,
    runtime: Runtime,
    name: str,
    arguments: Mapping[str, Any] | None,
) -> ToolResult:
    """Dispatch a tool call.

    Returns:
        A `ToolResult`; per-call failures come back with `is_error=True`.

    Raises:
        Exception: Anything that is not a `SafeError` (an internal fault) is logged,
            recorded and re-raised.
    """
    correlation_id = new_correlation_id()
    args: Mapping[str, Any] = arguments if isinstance(arguments, Mapping) else {}
    start = runtime.audit.measure_start()

    def record(outcome: str, reason: str | None) -> None:
        runtime.audit.write_event(
            runtime.audit.build_event(
                correlation_id=correlation_id,
                tool=name,
                arguments=args,
                outcome=outcome,
                reason=reason,
                duration_ms=runtime.audit.measure_duration_ms(start),
            )
        )

    try:
        tool = registry.lookup(name)
        tool.descriptor.check_bounds(args)
        async with asyncio.timeout(runtime.config.limits.total_timeout_s):
            payload = await tool.handler(runtime, args)
    except TimeoutError:
        err = DeadlineExceededError(
            message="Tool call exceeded its time budget",
            hint=f"{runtime.config.limits.total_timeout_s:g}s",
        )
        record("failed", err.message)
        return ToolResult(text=error_text(err), is_error=True)
    except asyncio.CancelledError:
        record("cancelled", "Cancelled by client")
        raise
    except SafeError as err:
        logger.info("Tool %s failed (%s): %s", name, err.code, err.message)
        record("denied" if err.code in _DENIED_CODES else "failed", err.message)
        return ToolResult(text=error_text(err), is_error=True)
    except Exception:
        logger.exception("Tool %s raised an internal error", name)
        record("failed", "Internal error")
        raise

    record("succeeded", None)
    return ToolResult(text=serialize_result(payload))
