"""User tools."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..params import ParamKind, ParameterSpec, optional_string
from ..registry import ToolDescriptor, ToolRegistry
from ..runtime import Runtime
from .common import expect_dict

GET_ME = ToolDescriptor(
    name="get_me",
    description='Get details of the authenticated GitHub user. Use this when a request includes "me", "my"...',
    params=(ParameterSpec("reason", ParamKind.STRING, "Optional: reason the session was created"),),
)


async def get_me(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    optional_string(arguments, "reason")
    data = await runtime.github.request_json(method="GET", path="/user", budget=runtime.budget())
    return expect_dict(data, "user")


def register(registry: ToolRegistry) -> None:
    registry.register(GET_ME, get_me)
