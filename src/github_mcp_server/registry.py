"""Tool registry.

Holds the ordered name → (descriptor, handler) table. The registry has two states:

- building: tools may be registered
- sealed: dispatch-only; the table is frozen into a read-only mapping

Read-only registries silently skip mutating descriptors at registration time, so a
mutating tool is never reachable from dispatch and looks exactly like an unknown name.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterator, Mapping
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any

from .errors import UnknownToolError, ValidationError
from .params import ParamKind, ParameterSpec, coerce_int
from .translations import description_key

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Any, Mapping[str, Any]], Awaitable[object]]
Translate = Callable[[str, str], str]


@dataclass(frozen=True, slots=True)
class ToolDescriptor:
    """Public contract of one tool."""

    name: str
    description: str
    params: tuple[ParameterSpec, ...] = ()
    mutating: bool = False

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("tool name must be non-empty")
        seen: set[str] = set()
        for spec in self.params:
            if spec.name in seen:
                raise ValueError(f"duplicate parameter {spec.name!r} in tool {self.name!r}")
            seen.add(spec.name)

    def input_schema(self) -> dict[str, Any]:
        """Return the JSON Schema advertised for this tool."""
        schema: dict[str, Any] = {
            "type": "object",
            "properties": {spec.name: spec.to_json_schema() for spec in self.params},
        }
        required = [spec.name for spec in self.params if spec.required]
        if required:
            schema["required"] = required
        return schema

    def check_bounds(self, arguments: Mapping[str, Any]) -> None:
        """Enforce declared numeric bounds.

        Absent, null and zero values are treated as not supplied; the binder decides
        what they mean.

        Raises:
            ValidationError: If a supplied number falls outside its declared bounds.
        """
        for spec in self.params:
            if spec.kind is not ParamKind.INTEGER:
                continue
            if spec.minimum is None and spec.maximum is None:
                continue
            raw = arguments.get(spec.name)
            if raw is None:
                continue
            value = coerce_int(spec.name, raw)
            if value == 0:
                continue
            below = spec.minimum is not None and value < spec.minimum
            above = spec.maximum is not None and value > spec.maximum
            if not (below or above):
                continue
            if spec.minimum is not None and spec.maximum is not None:
                message = f"parameter {spec.name} must be between {spec.minimum} and {spec.maximum}"
            elif spec.minimum is not None:
                message = f"parameter {spec.name} must be >= {spec.minimum}"
            else:
                message = f"parameter {spec.name} must be <= {spec.maximum}"
            raise ValidationError(message=message, parameter=spec.name)


@dataclass(frozen=True, slots=True)
class RegisteredTool:
    """A descriptor paired with its handler."""

    descriptor: ToolDescriptor
    handler: ToolHandler


class ToolRegistry:
    """Ordered tool table with read-only filtering and a one-way seal."""

    def __init__(self, *, read_only: bool = False, translate: Translate | None = None) -> None:
        self._read_only = read_only
        self._translate = translate
        self._building: dict[str, RegisteredTool] | None = {}
        self._table: Mapping[str, RegisteredTool] = MappingProxyType({})

    @property
    def read_only(self) -> bool:
        return self._read_only

    @property
    def sealed(self) -> bool:
        return self._building is None

    def register(self, descriptor: ToolDescriptor, handler: ToolHandler) -> bool:
        """Add a tool while building.

        The description passes through `translate` first, for every tool, so an export
        lists mutating tools even from a read-only registry.

        Returns:
            False when the tool was skipped because it mutates and the registry is
            read-only, True otherwise.

        Raises:
            RuntimeError: If the registry is already sealed.
            ValueError: If a tool with the same name is already registered.
        """
        if self._building is None:
            raise RuntimeError("tool registry is sealed")
        if self._translate is not None:
            key = description_key(descriptor.name)
            descriptor = replace(descriptor, description=self._translate(key, descriptor.description))
        if self._read_only and descriptor.mutating:
            logger.debug("Skipping mutating tool %s in read-only mode", descriptor.name)
            return False
        if descriptor.name in self._building:
            raise ValueError(f"tool {descriptor.name!r} is already registered")
        self._building[descriptor.name] = RegisteredTool(descriptor=descriptor, handler=handler)
        return True

    def seal(self) -> ToolRegistry:
        """Freeze the table. Irreversible."""
        if self._building is None:
            raise RuntimeError("tool registry is already sealed")
        self._table = MappingProxyType(dict(self._building))
        self._building = None
        logger.info("Tool registry sealed with %d tools (read_only=%s)", len(self._table), self._read_only)
        return self

    def _require_sealed(self) -> Mapping[str, RegisteredTool]:
        if self._building is not None:
            raise RuntimeError("tool registry must be sealed before dispatch")
        return self._table

    def lookup(self, name: str) -> RegisteredTool:
        """Return the tool registered under `name`.

        Raises:
            UnknownToolError: If no such tool is reachable.
        """
        tool = self._require_sealed().get(name)
        if tool is None:
            raise UnknownToolError(message=f"unknown tool: {name}")
        return tool

    def descriptors(self) -> list[ToolDescriptor]:
        """Return descriptors in registration order."""
        return [tool.descriptor for tool in self._require_sealed().values()]

    def names(self) -> list[str]:
        return list(self._require_sealed().keys())

    def __len__(self) -> int:
        if self._building is not None:
            return len(self._building)
        return len(self._table)

    def __contains__(self, name: object) -> bool:
        return name in self._require_sealed()

    def __iter__(self) -> Iterator[RegisteredTool]:
        return iter(self._require_sealed().values())
