"""Parameter binding: required/optional helpers, numeric coercion, pagination."""

from __future__ import annotations

import pytest
from github_mcp_server.errors import ValidationError
from github_mcp_server.params import (
    Pagination,
    ParamKind,
    ParameterSpec,
    bind,
    coerce_int,
    optional_bool,
    optional_bool_ok,
    optional_int_with_default,
    optional_object_array,
    optional_string,
    optional_string_array,
    optional_string_ok,
    pagination_params,
    pagination_specs,
    require_bool,
    require_int,
    require_string,
)


@pytest.mark.parametrize("args", [{}, {"owner": ""}])
def test_require_string_rejects_missing_and_empty(args: dict) -> None:
    with pytest.raises(ValidationError) as exc:
        require_string(args, "owner")

    assert exc.value.message == "missing required parameter: owner"
    assert exc.value.parameter == "owner"
    assert exc.value.code == "Validation"


def test_require_string_rejects_wrong_type() -> None:
    with pytest.raises(ValidationError) as exc:
        require_string({"owner": 5}, "owner")

    assert "parameter owner is not of type string" in exc.value.message


def test_require_string_returns_value() -> None:
    assert require_string({"owner": "acme"}, "owner") == "acme"


@pytest.mark.parametrize("raw", [5, 5.0, "5", " 5 "])
def test_numeric_encodings_normalize_to_same_int(raw: object) -> None:
    assert require_int({"n": raw}, "n") == 5
    assert coerce_int("n", raw) == 5


def test_large_integers_are_preserved() -> None:
    assert coerce_int("n", 2**40) == 2**40
    assert coerce_int("n", str(2**40)) == 2**40


@pytest.mark.parametrize("raw", [True, 1.5, float("nan"), "five", [5], None])
def test_coerce_int_rejects_non_numbers(raw: object) -> None:
    with pytest.raises(ValidationError) as exc:
        coerce_int("n", raw)

    assert exc.value.parameter == "n"


@pytest.mark.parametrize("raw", [0, 0.0, "0"])
def test_require_int_treats_zero_as_missing(raw: object) -> None:
    with pytest.raises(ValidationError) as exc:
        require_int({"issue_number": raw}, "issue_number")

    assert exc.value.message == "missing required parameter: issue_number"


def test_require_bool_treats_false_as_missing() -> None:
    assert require_bool({"confirm": True}, "confirm") is True
    with pytest.raises(ValidationError) as exc:
        require_bool({"confirm": False}, "confirm")
    assert exc.value.message == "missing required parameter: confirm"
    with pytest.raises(ValidationError):
        require_bool({"confirm": "true"}, "confirm")


def test_optional_string_absent_present_and_wrong_type() -> None:
    assert optional_string({}, "body") == ""
    assert optional_string_ok({}, "body") == ("", False)
    assert optional_string_ok({"body": None}, "body") == ("", False)
    assert optional_string_ok({"body": ""}, "body") == ("", True)
    with pytest.raises(ValidationError) as exc:
        optional_string({"body": 3}, "body")
    assert exc.value.message == "parameter body is not of type string, is int"


def test_optional_bool_companion_form() -> None:
    assert optional_bool({}, "draft") is False
    assert optional_bool_ok({"draft": False}, "draft") == (False, True)
    with pytest.raises(ValidationError):
        optional_bool({"draft": "yes"}, "draft")


def test_optional_string_array() -> None:
    assert optional_string_array({}, "labels") == []
    assert optional_string_array({"labels": None}, "labels") == []
    assert optional_string_array({"labels": ["bug", "ui"]}, "labels") == ["bug", "ui"]
    assert optional_string_array({"labels": ("bug",)}, "labels") == ["bug"]
    with pytest.raises(ValidationError):
        optional_string_array({"labels": ["bug", 1]}, "labels")
    with pytest.raises(ValidationError):
        optional_string_array({"labels": "bug"}, "labels")


def test_optional_object_array() -> None:
    files = [{"path": "a.txt", "content": "x"}]
    assert optional_object_array({"files": files}, "files") == files
    with pytest.raises(ValidationError):
        optional_object_array({"files": ["a.txt"]}, "files")


def test_pagination_defaults() -> None:
    assert pagination_params({}) == Pagination(page=1, per_page=30)
    assert pagination_params({"page": 0, "perPage": "0"}) == (1, 30)
    assert pagination_params({"page": 3.0, "perPage": "50"}) == (3, 50)


def test_pagination_never_clamps() -> None:
    assert pagination_params({"perPage": 150}).per_page == 150
    assert optional_int_with_default({"perPage": 150}, "perPage", 30) == 150


def test_pagination_specs_declare_bounds() -> None:
    page, per_page = pagination_specs()
    assert (page.name, page.minimum, page.maximum) == ("page", 1, None)
    assert (per_page.name, per_page.minimum, per_page.maximum) == ("perPage", 1, 100)
    assert per_page.to_json_schema()["maximum"] == 100


def test_parameter_spec_rejects_bounds_on_non_integer() -> None:
    with pytest.raises(ValueError):
        ParameterSpec("q", ParamKind.STRING, minimum=1)
    with pytest.raises(ValueError):
        ParameterSpec("n", ParamKind.INTEGER, minimum=5, maximum=1)


def test_bind_by_kind_and_default() -> None:
    state = ParameterSpec("state", ParamKind.STRING, default="open")
    assert bind({}, state) == "open"
    assert bind({"state": "closed"}, state) == "closed"
    assert bind({"state": ""}, state) == "open"
    assert bind({"state": None}, state) == "open"

    number = ParameterSpec("issue_number", ParamKind.INTEGER, required=True)
    assert bind({"issue_number": "7"}, number) == 7

    labels = ParameterSpec("labels", ParamKind.STRING_ARRAY, required=True)
    with pytest.raises(ValidationError) as exc:
        bind({"labels": []}, labels)
    assert exc.value.message == "missing required parameter: labels"


def test_json_schema_for_arrays() -> None:
    labels = ParameterSpec("labels", ParamKind.STRING_ARRAY, "Labels")
    files = ParameterSpec("files", ParamKind.OBJECT_ARRAY, item_properties=("path", "content"))

    assert labels.to_json_schema() == {"type": "array", "items": {"type": "string"}, "description": "Labels"}
    assert files.to_json_schema()["items"]["properties"] == {"path": {"type": "string"}, "content": {"type": "string"}}
