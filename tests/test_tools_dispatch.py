"""Tool dispatch end to end: binding, outbound calls, error results, command events."""

from __future__ import annotations

import asyncio
import dataclasses
import json
import time
from typing import Any

import httpx
import pytest
from github_mcp_server.audit import AuditEvent, AuditLogger
from github_mcp_server.config import LimitsConfig, ServerConfig
from github_mcp_server.registry import ToolDescriptor, ToolRegistry
from github_mcp_server.runtime import Runtime, build_runtime
from github_mcp_server.tools import build_registry, dispatch_tool


class RecordingAudit(AuditLogger):
    def __init__(self) -> None:
        super().__init__(sink_path=None)
        self.events: list[AuditEvent] = []

    def write_event(self, event: AuditEvent) -> None:
        self.events.append(event)


def _runtime(handler, *, total_timeout_s: float = 60.0) -> tuple[Runtime, RecordingAudit]:
    config = ServerConfig(token="ghp_secret_value", limits=LimitsConfig(total_timeout_s=total_timeout_s))
    runtime = build_runtime(config, transport=httpx.MockTransport(handler))
    audit = RecordingAudit()
    return dataclasses.replace(runtime, audit=audit), audit


ISSUE = {"number": 42, "title": "Crash on start", "state": "open"}


@pytest.mark.asyncio
async def test_get_issue_makes_one_call_and_serializes_payload() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=ISSUE)

    runtime, audit = _runtime(handler)
    registry = build_registry(read_only=False)
    try:
        result = await dispatch_tool(
            registry, runtime, "get_issue", {"owner": "acme", "repo": "app", "issue_number": "42"}
        )
    finally:
        await runtime.aclose()

    assert result.is_error is False
    assert json.loads(result.text) == ISSUE
    assert len(seen) == 1
    assert seen[0].method == "GET"
    assert seen[0].url.path == "/repos/acme/app/issues/42"
    assert [e.outcome for e in audit.events] == ["succeeded"]
    assert audit.events[0].target_repo == "acme/app"


@pytest.mark.asyncio
async def test_missing_parameter_is_error_result_without_outbound_call() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    runtime, audit = _runtime(handler)
    registry = build_registry(read_only=False)
    try:
        result = await dispatch_tool(registry, runtime, "get_issue", {"repo": "app", "issue_number": 42})
    finally:
        await runtime.aclose()

    assert result.is_error is True
    assert result.text == "missing required parameter: owner"
    assert result.content() == [{"type": "text", "text": "missing required parameter: owner"}]
    assert [(e.outcome, e.reason) for e in audit.events] == [("denied", "missing required parameter: owner")]


@pytest.mark.asyncio
async def test_not_found_issue_names_the_number() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Not Found"})

    runtime, audit = _runtime(handler)
    registry = build_registry(read_only=False)
    try:
        result = await dispatch_tool(
            registry, runtime, "get_issue", {"owner": "acme", "repo": "app", "issue_number": 42}
        )
    finally:
        await runtime.aclose()

    assert result.is_error is True
    assert "#42" in result.text
    assert "ghp_secret_value" not in result.text
    assert audit.events[0].outcome == "failed"


@pytest.mark.asyncio
async def test_out_of_bounds_per_page_is_rejected_before_any_call() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    runtime, _audit = _runtime(handler)
    registry = build_registry(read_only=False)
    try:
        result = await dispatch_tool(
            registry, runtime, "list_issues", {"owner": "acme", "repo": "app", "perPage": 150}
        )
    finally:
        await runtime.aclose()

    assert result.is_error is True
    assert result.text == "parameter perPage must be between 1 and 100"


@pytest.mark.asyncio
async def test_mutating_tool_in_read_only_mode_looks_unknown() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    runtime, audit = _runtime(handler)
    registry = build_registry(read_only=True)
    try:
        hidden = await dispatch_tool(registry, runtime, "create_issue", {"owner": "a", "repo": "b", "title": "t"})
        unknown = await dispatch_tool(registry, runtime, "no_such_tool", {})
    finally:
        await runtime.aclose()

    assert hidden.is_error and unknown.is_error
    assert hidden.text == "unknown tool: create_issue"
    assert unknown.text == "unknown tool: no_such_tool"
    assert [e.outcome for e in audit.events] == ["denied", "denied"]


@pytest.mark.asyncio
async def test_call_exceeding_budget_is_cancelled_error() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200, json=ISSUE)

    runtime, audit = _runtime(handler, total_timeout_s=0.05)
    registry = build_registry(read_only=False)
    try:
        result = await dispatch_tool(
            registry, runtime, "get_issue", {"owner": "acme", "repo": "app", "issue_number": 1}
        )
    finally:
        await runtime.aclose()

    assert result.is_error is True
    assert result.text.startswith("Tool call exceeded its time budget")
    assert audit.events[0].outcome == "failed"


@pytest.mark.asyncio
async def test_internal_errors_are_recorded_and_reraised() -> None:
    async def broken(runtime: Any, arguments: Any) -> object:
        raise KeyError("boom")

    registry = ToolRegistry()
    registry.register(ToolDescriptor(name="broken", description="Always fails."), broken)
    registry.seal()

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    runtime, audit = _runtime(handler)
    try:
        with pytest.raises(KeyError):
            await dispatch_tool(registry, runtime, "broken", {})
    finally:
        await runtime.aclose()

    assert [(e.outcome, e.reason) for e in audit.events] == [("failed", "Internal error")]


@pytest.mark.asyncio
async def test_concurrent_calls_are_independent() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        number = int(request.url.path.rsplit("/", 1)[-1])
        if number == 2:
            return httpx.Response(404, json={"message": "Not Found"})
        return httpx.Response(200, json={"number": number})

    runtime, audit = _runtime(handler)
    registry = build_registry(read_only=False)
    try:
        results = await asyncio.gather(
            *(
                dispatch_tool(registry, runtime, "get_issue", {"owner": "o", "repo": "r", "issue_number": n})
                for n in (1, 2, 3)
            )
        )
    finally:
        await runtime.aclose()

    assert [r.is_error for r in results] == [False, True, False]
    assert json.loads(results[2].text) == {"number": 3}
    assert len({e.correlation_id for e in audit.events}) == 3


@pytest.mark.asyncio
async def test_quota_reset_beyond_time_budget_is_a_cancellation() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        headers = {
            "x-ratelimit-remaining": "0",
            "x-ratelimit-limit": "5000",
            "x-ratelimit-reset": str(int(time.time()) + 600),
        }
        return httpx.Response(200, headers=headers, json=ISSUE)

    runtime, audit = _runtime(handler, total_timeout_s=30.0)
    registry = build_registry(read_only=False)
    try:
        result = await dispatch_tool(
            registry, runtime, "get_issue", {"owner": "acme", "repo": "app", "issue_number": 42}
        )
    finally:
        await runtime.aclose()

    assert result.is_error is True
    assert result.text.startswith("Tool call exceeded its time budget waiting for rate limit reset")
    assert calls == 1
    assert [e.outcome for e in audit.events] == ["failed"]
