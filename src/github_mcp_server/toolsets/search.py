"""Code and user search tools."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..params import ParamKind, ParameterSpec, optional_string, pagination_params, pagination_specs, require_string
from ..registry import ToolDescriptor, ToolRegistry
from ..runtime import Runtime
from .common import ORDER, drop_empty, expect_dict, page_query

SEARCH_CODE = ToolDescriptor(
    name="search_code",
    description="Search for code across GitHub repositories.",
    params=(
        ParameterSpec("q", ParamKind.STRING, "Search query using GitHub code search syntax", required=True),
        ParameterSpec("sort", ParamKind.STRING, "Sort field ('indexed' only)"),
        ORDER,
        *pagination_specs(),
    ),
)

SEARCH_USERS = ToolDescriptor(
    name="search_users",
    description="Search for GitHub users.",
    params=(
        ParameterSpec("q", ParamKind.STRING, "Search query using GitHub users search syntax", required=True),
        ParameterSpec("sort", ParamKind.STRING, "Sort field", enum=("followers", "repositories", "joined")),
        ORDER,
        *pagination_specs(),
    ),
)


async def _search(runtime: Runtime, arguments: Mapping[str, Any], *, kind: str) -> dict[str, Any]:
    query = drop_empty(
        {
            "q": require_string(arguments, "q"),
            "sort": optional_string(arguments, "sort"),
            "order": optional_string(arguments, "order"),
        }
    )
    query.update(page_query(pagination_params(arguments)))
    data = await runtime.github.request_json(
        method="GET",
        path=f"/search/{kind}",
        params=query,
        budget=runtime.budget(),
    )
    return expect_dict(data, f"{kind} search")


async def search_code(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    return await _search(runtime, arguments, kind="code")


async def search_users(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    return await _search(runtime, arguments, kind="users")


def register(registry: ToolRegistry) -> None:
    registry.register(SEARCH_CODE, search_code)
    registry.register(SEARCH_USERS, search_users)
