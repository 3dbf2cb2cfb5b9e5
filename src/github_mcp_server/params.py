"""Typed parameter binding for tool arguments.

Tool arguments arrive as a loosely-typed JSON mapping. The helpers here extract one
value at a time, check its dynamic type, and raise `ValidationError` naming the
parameter on any mismatch.

Required parameters are "present and non-zero": an empty string, a zero number or
`False` is reported exactly like an absent key. Optional helpers return the type's
zero value when the key is absent (or explicitly null).
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, NamedTuple

from .errors import ValidationError

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 30
MAX_PER_PAGE = 100


class ParamKind(str, Enum):
    """Dynamic kinds a tool parameter can declare."""

    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    STRING_ARRAY = "string_array"
    OBJECT_ARRAY = "object_array"


_JSON_TYPES: dict[ParamKind, str] = {
    ParamKind.STRING: "string",
    ParamKind.INTEGER: "number",
    ParamKind.BOOLEAN: "boolean",
    ParamKind.STRING_ARRAY: "array",
    ParamKind.OBJECT_ARRAY: "array",
}


@dataclass(frozen=True, slots=True)
class ParameterSpec:
    """Declared shape of one tool parameter.

    `minimum`/`maximum` are declarative bounds for integer parameters. They are published
    in the tool's input schema and checked at dispatch; the binder never clamps.
    `item_properties` documents the string fields of each element of an object array.
    """

    name: str
    kind: ParamKind
    description: str = ""
    required: bool = False
    default: Any = None
    minimum: int | None = None
    maximum: int | None = None
    enum: tuple[str, ...] | None = None
    item_properties: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("parameter name must be non-empty")
        if (self.minimum is not None or self.maximum is not None) and self.kind is not ParamKind.INTEGER:
            raise ValueError(f"bounds are only valid for integer parameters ({self.name})")
        if self.minimum is not None and self.maximum is not None and self.minimum > self.maximum:
            raise ValueError(f"minimum exceeds maximum for parameter {self.name}")

    def to_json_schema(self) -> dict[str, Any]:
        """Return the JSON Schema fragment advertised in `tools/list`."""
        schema: dict[str, Any] = {"type": _JSON_TYPES[self.kind]}
        if self.kind is ParamKind.STRING_ARRAY:
            schema["items"] = {"type": "string"}
        if self.kind is ParamKind.OBJECT_ARRAY:
            schema["items"] = {
                "type": "object",
                "properties": {prop: {"type": "string"} for prop in self.item_properties},
            }
        if self.description:
            schema["description"] = self.description
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        if self.enum:
            schema["enum"] = list(self.enum)
        if self.default is not None:
            schema["default"] = self.default
        return schema


class Pagination(NamedTuple):
    """Page selection for list endpoints."""

    page: int
    per_page: int


def _type_name(value: object) -> str:
    if value is None:
        return "null"
    return type(value).__name__


def _missing(name: str) -> ValidationError:
    return ValidationError(message=f"missing required parameter: {name}", parameter=name)


def _wrong_type(name: str, expected: str, value: object) -> ValidationError:
    return ValidationError(
        message=f"parameter {name} is not of type {expected}, is {_type_name(value)}",
        parameter=name,
    )


def coerce_int(name: str, value: object) -> int:
    """Normalize an int, integral float, or decimal string to `int`.

    Raises:
        ValidationError: If the value is not a whole number in any accepted encoding.
    """
    # bool is an int subclass; a JSON true/false is never a number.
    if isinstance(value, bool):
        raise ValidationError(
            message=f"invalid type for {name}, expected number, got bool",
            parameter=name,
        )
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise ValidationError(message=f"parameter {name} must be a whole number", parameter=name)
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip(), 10)
        except ValueError as exc:
            raise ValidationError(
                message=f"failed to parse {name} as int: {value!r}",
                parameter=name,
            ) from exc
    raise ValidationError(
        message=f"invalid type for {name}, expected number, got {_type_name(value)}",
        parameter=name,
    )


def require_string(args: Mapping[str, Any], name: str) -> str:
    """Return a present, non-empty string argument."""
    if name not in args:
        raise _missing(name)
    value = args[name]
    if not isinstance(value, str):
        raise _wrong_type(name, "string", value)
    if value == "":
        raise _missing(name)
    return value


def require_int(args: Mapping[str, Any], name: str) -> int:
    """Return a present, non-zero integer argument (any accepted numeric encoding)."""
    if name not in args:
        raise _missing(name)
    value = coerce_int(name, args[name])
    if value == 0:
        raise _missing(name)
    return value


def require_bool(args: Mapping[str, Any], name: str) -> bool:
    """Return a present boolean argument that is `True`."""
    if name not in args:
        raise _missing(name)
    value = args[name]
    if not isinstance(value, bool):
        raise _wrong_type(name, "boolean", value)
    if not value:
        raise _missing(name)
    return value


def optional_string_ok(args: Mapping[str, Any], name: str) -> tuple[str, bool]:
    """Return `(value, present)`; `("", False)` when the key is absent or null."""
    if name not in args or args[name] is None:
        return "", False
    value = args[name]
    if not isinstance(value, str):
        raise _wrong_type(name, "string", value)
    return value, True


def optional_string(args: Mapping[str, Any], name: str) -> str:
    """Return a string argument, or `""` when absent."""
    value, _ = optional_string_ok(args, name)
    return value


def optional_bool_ok(args: Mapping[str, Any], name: str) -> tuple[bool, bool]:
    """Return `(value, present)`; `(False, False)` when the key is absent or null."""
    if name not in args or args[name] is None:
        return False, False
    value = args[name]
    if not isinstance(value, bool):
        raise _wrong_type(name, "boolean", value)
    return value, True


def optional_bool(args: Mapping[str, Any], name: str) -> bool:
    """Return a boolean argument, or `False` when absent."""
    value, _ = optional_bool_ok(args, name)
    return value


def optional_int(args: Mapping[str, Any], name: str) -> int:
    """Return an integer argument, or `0` when absent."""
    if name not in args or args[name] is None:
        return 0
    return coerce_int(name, args[name])


def optional_int_with_default(args: Mapping[str, Any], name: str, default: int) -> int:
    """Like `optional_int`, but a zero (or absent) value yields `default`."""
    value = optional_int(args, name)
    if value == 0:
        return default
    return value


def optional_string_array(args: Mapping[str, Any], name: str) -> list[str]:
    """Return a list of strings; `[]` when absent.

    Accepts a list whose every element is a string. Anything else is rejected.
    """
    if name not in args or args[name] is None:
        return []
    value = args[name]
    if not isinstance(value, (list, tuple)):
        raise ValidationError(
            message=f"parameter {name} could not be coerced to a string array, is {_type_name(value)}",
            parameter=name,
        )
    out: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValidationError(
                message=f"parameter {name} is not of type string array, contains {_type_name(item)}",
                parameter=name,
            )
        out.append(item)
    return out


def optional_object_array(args: Mapping[str, Any], name: str) -> list[dict[str, Any]]:
    """Return a list of JSON objects; `[]` when absent."""
    if name not in args or args[name] is None:
        return []
    value = args[name]
    if not isinstance(value, (list, tuple)):
        raise _wrong_type(name, "array", value)
    out: list[dict[str, Any]] = []
    for item in value:
        if not isinstance(item, Mapping):
            raise ValidationError(
                message=f"parameter {name} is not of type object array, contains {_type_name(item)}",
                parameter=name,
            )
        out.append(dict(item))
    return out


def pagination_params(args: Mapping[str, Any]) -> Pagination:
    """Return `(page, per_page)` with defaults `(1, 30)` for absent or zero values."""
    page = optional_int_with_default(args, "page", DEFAULT_PAGE)
    per_page = optional_int_with_default(args, "perPage", DEFAULT_PER_PAGE)
    return Pagination(page=page, per_page=per_page)


def pagination_specs() -> tuple[ParameterSpec, ParameterSpec]:
    """Declared `page`/`perPage` parameters for paginated tools."""
    return (
        ParameterSpec(
            "page",
            ParamKind.INTEGER,
            description="Page number for pagination (min 1)",
            minimum=1,
        ),
        ParameterSpec(
            "perPage",
            ParamKind.INTEGER,
            description=f"Results per page for pagination (min 1, max {MAX_PER_PAGE})",
            minimum=1,
            maximum=MAX_PER_PAGE,
        ),
    )


def bind(args: Mapping[str, Any], spec: ParameterSpec) -> Any:
    """Bind one declared parameter from `args` according to its kind and required-ness.

    Absent optional parameters fall back to `spec.default` when one is declared; an
    empty string counts as absent.
    """
    if spec.kind is ParamKind.STRING:
        if spec.required:
            return require_string(args, spec.name)
        value = optional_string(args, spec.name)
        if not value and spec.default is not None:
            return spec.default
        return value

    if spec.kind is ParamKind.INTEGER:
        if spec.required:
            return require_int(args, spec.name)
        if spec.default is not None:
            return optional_int_with_default(args, spec.name, spec.default)
        return optional_int(args, spec.name)

    if spec.kind is ParamKind.BOOLEAN:
        if spec.required:
            return require_bool(args, spec.name)
        flag, present = optional_bool_ok(args, spec.name)
        if not present and spec.default is not None:
            return bool(spec.default)
        return flag

    items: list[Any]
    if spec.kind is ParamKind.OBJECT_ARRAY:
        items = optional_object_array(args, spec.name)
    else:
        items = optional_string_array(args, spec.name)
    if spec.required and not items:
        raise _missing(spec.name)
    return items
