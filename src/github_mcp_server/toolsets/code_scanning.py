"""Code scanning alert tools."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..params import ParamKind, ParameterSpec, bind, optional_string, require_int, require_string
from ..registry import ToolDescriptor, ToolRegistry
from ..runtime import Runtime
from .common import OWNER, REPO, drop_empty, expect_dict, expect_list, repo_path

GET_CODE_SCANNING_ALERT = ToolDescriptor(
    name="get_code_scanning_alert",
    description="Get details of a specific code scanning alert in a GitHub repository.",
    params=(
        OWNER,
        REPO,
        ParameterSpec("alertNumber", ParamKind.INTEGER, "The number of the alert", required=True, minimum=1),
    ),
)

_STATE = ParameterSpec(
    "state",
    ParamKind.STRING,
    "State of the code scanning alerts to list",
    default="open",
    enum=("open", "closed", "dismissed", "fixed"),
)

LIST_CODE_SCANNING_ALERTS = ToolDescriptor(
    name="list_code_scanning_alerts",
    description="List code scanning alerts in a GitHub repository.",
    params=(
        OWNER,
        REPO,
        ParameterSpec("ref", ParamKind.STRING, "The Git reference for the results you want to list"),
        _STATE,
        ParameterSpec(
            "severity",
            ParamKind.STRING,
            "Only code scanning alerts with this severity will be returned",
            enum=("critical", "high", "medium", "low", "warning", "note", "error"),
        ),
        ParameterSpec("tool_name", ParamKind.STRING, "The name of the tool used for code scanning"),
    ),
)


async def get_code_scanning_alert(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    owner = require_string(arguments, "owner")
    repo = require_string(arguments, "repo")
    alert_number = require_int(arguments, "alertNumber")

    data = await runtime.github.request_json(
        method="GET",
        path=repo_path(owner, repo, "code-scanning", "alerts", alert_number),
        budget=runtime.budget(),
    )
    return expect_dict(data, "code scanning alert")


async def list_code_scanning_alerts(runtime: Runtime, arguments: Mapping[str, Any]) -> list[Any]:
    owner = require_string(arguments, "owner")
    repo = require_string(arguments, "repo")
    query = drop_empty(
        {
            "ref": optional_string(arguments, "ref"),
            "state": bind(arguments, _STATE),
            "severity": optional_string(arguments, "severity"),
            "tool_name": optional_string(arguments, "tool_name"),
        }
    )

    data = await runtime.github.request_json(
        method="GET",
        path=repo_path(owner, repo, "code-scanning", "alerts"),
        params=query,
        budget=runtime.budget(),
    )
    return expect_list(data, "code scanning alerts")


def register(registry: ToolRegistry) -> None:
    registry.register(GET_CODE_SCANNING_ALERT, get_code_scanning_alert)
    registry.register(LIST_CODE_SCANNING_ALERTS, list_code_scanning_alerts)
