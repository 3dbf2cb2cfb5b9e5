"""Issue tools (REST)."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..errors import NotFoundError
from ..params import (
    ParamKind,
    ParameterSpec,
    optional_int,
    optional_string,
    optional_string_array,
    optional_string_ok,
    pagination_params,
    pagination_specs,
    require_int,
    require_string,
)
from ..registry import ToolDescriptor, ToolRegistry
from ..runtime import Runtime
from .common import (
    DIRECTION,
    ISSUE_NUMBER,
    ORDER,
    OWNER,
    REPO,
    drop_empty,
    expect_dict,
    expect_list,
    page_query,
    repo_path,
)

_STATE_FILTER = ParameterSpec("state", ParamKind.STRING, "Filter by state", enum=("open", "closed", "all"))

GET_ISSUE = ToolDescriptor(
    name="get_issue",
    description="Get details of a specific issue in a GitHub repository.",
    params=(OWNER, REPO, ISSUE_NUMBER),
)

LIST_ISSUES = ToolDescriptor(
    name="list_issues",
    description="List issues in a GitHub repository with filtering options.",
    params=(
        OWNER,
        REPO,
        _STATE_FILTER,
        ParameterSpec("labels", ParamKind.STRING_ARRAY, "Filter by labels"),
        ParameterSpec("sort", ParamKind.STRING, "Sort by", enum=("created", "updated", "comments")),
        DIRECTION,
        ParameterSpec("since", ParamKind.STRING, "Filter by date (ISO 8601 timestamp)"),
        *pagination_specs(),
    ),
)

SEARCH_ISSUES = ToolDescriptor(
    name="search_issues",
    description="Search for issues and pull requests across GitHub repositories.",
    params=(
        ParameterSpec("q", ParamKind.STRING, "Search query using GitHub issues search syntax", required=True),
        ParameterSpec(
            "sort",
            ParamKind.STRING,
            "Sort field (defaults to best match)",
            enum=(
                "comments",
                "reactions",
                "reactions-+1",
                "reactions--1",
                "reactions-smile",
                "reactions-thinking_face",
                "reactions-heart",
                "reactions-tada",
                "interactions",
                "created",
                "updated",
            ),
        ),
        ORDER,
        *pagination_specs(),
    ),
)

GET_ISSUE_COMMENTS = ToolDescriptor(
    name="get_issue_comments",
    description="Get comments for a GitHub issue.",
    params=(OWNER, REPO, ISSUE_NUMBER, *pagination_specs()),
)

CREATE_ISSUE = ToolDescriptor(
    name="create_issue",
    description="Create a new issue in a GitHub repository.",
    params=(
        OWNER,
        REPO,
        ParameterSpec("title", ParamKind.STRING, "Issue title", required=True),
        ParameterSpec("body", ParamKind.STRING, "Issue body content"),
        ParameterSpec("assignees", ParamKind.STRING_ARRAY, "Usernames to assign to this issue"),
        ParameterSpec("labels", ParamKind.STRING_ARRAY, "Labels to apply to this issue"),
        ParameterSpec("milestone", ParamKind.INTEGER, "Milestone number", minimum=1),
    ),
    mutating=True,
)

ADD_ISSUE_COMMENT = ToolDescriptor(
    name="add_issue_comment",
    description="Add a comment to an existing issue.",
    params=(
        OWNER,
        REPO,
        ISSUE_NUMBER,
        ParameterSpec("body", ParamKind.STRING, "Comment text", required=True),
    ),
    mutating=True,
)

UPDATE_ISSUE = ToolDescriptor(
    name="update_issue",
    description="Update an existing issue in a GitHub repository.",
    params=(
        OWNER,
        REPO,
        ISSUE_NUMBER,
        ParameterSpec("title", ParamKind.STRING, "New title"),
        ParameterSpec("body", ParamKind.STRING, "New description"),
        ParameterSpec("state", ParamKind.STRING, "New state", enum=("open", "closed")),
        ParameterSpec("labels", ParamKind.STRING_ARRAY, "New labels"),
        ParameterSpec("assignees", ParamKind.STRING_ARRAY, "New assignees"),
        ParameterSpec("milestone", ParamKind.INTEGER, "New milestone number", minimum=1),
    ),
    mutating=True,
)


async def get_issue(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    owner = require_string(arguments, "owner")
    repo = require_string(arguments, "repo")
    issue_number = require_int(arguments, "issue_number")

    try:
        data = await runtime.github.request_json(
            method="GET",
            path=repo_path(owner, repo, "issues", issue_number),
            budget=runtime.budget(),
        )
    except NotFoundError as exc:
        raise NotFoundError(
            message=f"issue #{issue_number} not found in {owner}/{repo}",
            hint=exc.hint,
            status_code=exc.status_code,
        ) from exc
    return expect_dict(data, "issue")


async def list_issues(runtime: Runtime, arguments: Mapping[str, Any]) -> list[Any]:
    owner = require_string(arguments, "owner")
    repo = require_string(arguments, "repo")
    query = drop_empty(
        {
            "state": optional_string(arguments, "state"),
            "labels": optional_string_array(arguments, "labels"),
            "sort": optional_string(arguments, "sort"),
            "direction": optional_string(arguments, "direction"),
            "since": optional_string(arguments, "since"),
        }
    )
    query.update(page_query(pagination_params(arguments)))

    data = await runtime.github.request_json(
        method="GET",
        path=repo_path(owner, repo, "issues"),
        params=query,
        budget=runtime.budget(),
    )
    return expect_list(data, "issue list")


async def search_issues(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    q = require_string(arguments, "q")
    query = drop_empty(
        {
            "q": q,
            "sort": optional_string(arguments, "sort"),
            "order": optional_string(arguments, "order"),
        }
    )
    query.update(page_query(pagination_params(arguments)))

    data = await runtime.github.request_json(
        method="GET",
        path="/search/issues",
        params=query,
        budget=runtime.budget(),
    )
    return expect_dict(data, "issue search")


async def get_issue_comments(runtime: Runtime, arguments: Mapping[str, Any]) -> list[Any]:
    owner = require_string(arguments, "owner")
    repo = require_string(arguments, "repo")
    issue_number = require_int(arguments, "issue_number")

    data = await runtime.github.request_json(
        method="GET",
        path=repo_path(owner, repo, "issues", issue_number, "comments"),
        params=page_query(pagination_params(arguments)),
        budget=runtime.budget(),
    )
    return expect_list(data, "issue comments")


async def create_issue(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    owner = require_string(arguments, "owner")
    repo = require_string(arguments, "repo")
    payload: dict[str, Any] = {"title": require_string(arguments, "title")}

    body = optional_string(arguments, "body")
    if body:
        payload["body"] = body
    assignees = optional_string_array(arguments, "assignees")
    if assignees:
        payload["assignees"] = assignees
    labels = optional_string_array(arguments, "labels")
    if labels:
        payload["labels"] = labels
    milestone = optional_int(arguments, "milestone")
    if milestone:
        payload["milestone"] = milestone

    data = await runtime.github.request_json(
        method="POST",
        path=repo_path(owner, repo, "issues"),
        json_body=payload,
        budget=runtime.budget(),
    )
    return expect_dict(data, "issue")


async def add_issue_comment(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    owner = require_string(arguments, "owner")
    repo = require_string(arguments, "repo")
    issue_number = require_int(arguments, "issue_number")
    body = require_string(arguments, "body")

    data = await runtime.github.request_json(
        method="POST",
        path=repo_path(owner, repo, "issues", issue_number, "comments"),
        json_body={"body": body},
        budget=runtime.budget(),
    )
    return expect_dict(data, "comment")


async def update_issue(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    owner = require_string(arguments, "owner")
    repo = require_string(arguments, "repo")
    issue_number = require_int(arguments, "issue_number")

    payload: dict[str, Any] = {}
    for key in ("title", "body", "state"):
        value, present = optional_string_ok(arguments, key)
        if present:
            payload[key] = value
    # Arrays are sent when supplied, even empty, so labels/assignees can be cleared.
    for key in ("labels", "assignees"):
        if arguments.get(key) is not None:
            payload[key] = optional_string_array(arguments, key)
    milestone = optional_int(arguments, "milestone")
    if milestone:
        payload["milestone"] = milestone

    data = await runtime.github.request_json(
        method="PATCH",
        path=repo_path(owner, repo, "issues", issue_number),
        json_body=payload,
        budget=runtime.budget(),
    )
    return expect_dict(data, "issue")


def register(registry: ToolRegistry) -> None:
    registry.register(GET_ISSUE, get_issue)
    registry.register(SEARCH_ISSUES, search_issues)
    registry.register(LIST_ISSUES, list_issues)
    registry.register(GET_ISSUE_COMMENTS, get_issue_comments)
    registry.register(CREATE_ISSUE, create_issue)
    registry.register(ADD_ISSUE_COMMENT, add_issue_comment)
    registry.register(UPDATE_ISSUE, update_issue)
