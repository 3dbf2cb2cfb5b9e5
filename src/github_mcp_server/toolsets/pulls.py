"""Pull request tools (REST)."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..errors import NotFoundError, UpstreamError, ValidationError
from ..params import (
    ParamKind,
    ParameterSpec,
    optional_bool_ok,
    optional_object_array,
    optional_string,
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
    OWNER,
    PULL_NUMBER,
    REPO,
    drop_empty,
    expect_dict,
    expect_list,
    page_query,
    repo_path,
)

GET_PULL_REQUEST = ToolDescriptor(
    name="get_pull_request",
    description="Get details of a specific pull request.",
    params=(OWNER, REPO, PULL_NUMBER),
)

LIST_PULL_REQUESTS = ToolDescriptor(
    name="list_pull_requests",
    description="List and filter repository pull requests.",
    params=(
        OWNER,
        REPO,
        ParameterSpec("state", ParamKind.STRING, "Filter by state", enum=("open", "closed", "all")),
        ParameterSpec("head", ParamKind.STRING, "Filter by head user/org and branch"),
        ParameterSpec("base", ParamKind.STRING, "Filter by base branch"),
        ParameterSpec("sort", ParamKind.STRING, "Sort by", enum=("created", "updated", "popularity", "long-running")),
        DIRECTION,
        *pagination_specs(),
    ),
)

GET_PULL_REQUEST_FILES = ToolDescriptor(
    name="get_pull_request_files",
    description="Get the list of files changed in a pull request.",
    params=(OWNER, REPO, PULL_NUMBER, *pagination_specs()),
)

GET_PULL_REQUEST_STATUS = ToolDescriptor(
    name="get_pull_request_status",
    description="Get the combined status of all status checks for a pull request.",
    params=(OWNER, REPO, PULL_NUMBER),
)

GET_PULL_REQUEST_COMMENTS = ToolDescriptor(
    name="get_pull_request_comments",
    description="Get the review comments on a pull request.",
    params=(OWNER, REPO, PULL_NUMBER, *pagination_specs()),
)

GET_PULL_REQUEST_REVIEWS = ToolDescriptor(
    name="get_pull_request_reviews",
    description="Get the reviews on a pull request.",
    params=(OWNER, REPO, PULL_NUMBER, *pagination_specs()),
)

CREATE_PULL_REQUEST = ToolDescriptor(
    name="create_pull_request",
    description="Create a new pull request in a GitHub repository.",
    params=(
        OWNER,
        REPO,
        ParameterSpec("title", ParamKind.STRING, "PR title", required=True),
        ParameterSpec("body", ParamKind.STRING, "PR description"),
        ParameterSpec("head", ParamKind.STRING, "Branch containing changes", required=True),
        ParameterSpec("base", ParamKind.STRING, "Branch to merge into", required=True),
        ParameterSpec("draft", ParamKind.BOOLEAN, "Create as draft PR"),
        ParameterSpec("maintainer_can_modify", ParamKind.BOOLEAN, "Allow maintainer edits"),
    ),
    mutating=True,
)

UPDATE_PULL_REQUEST = ToolDescriptor(
    name="update_pull_request",
    description="Update an existing pull request in a GitHub repository.",
    params=(
        OWNER,
        REPO,
        PULL_NUMBER,
        ParameterSpec("title", ParamKind.STRING, "New title"),
        ParameterSpec("body", ParamKind.STRING, "New description"),
        ParameterSpec("state", ParamKind.STRING, "New state", enum=("open", "closed")),
        ParameterSpec("base", ParamKind.STRING, "New base branch name"),
        ParameterSpec("maintainer_can_modify", ParamKind.BOOLEAN, "Allow maintainer edits"),
    ),
    mutating=True,
)

MERGE_PULL_REQUEST = ToolDescriptor(
    name="merge_pull_request",
    description="Merge a pull request.",
    params=(
        OWNER,
        REPO,
        PULL_NUMBER,
        ParameterSpec("commit_title", ParamKind.STRING, "Title for merge commit"),
        ParameterSpec("commit_message", ParamKind.STRING, "Extra detail for merge commit"),
        ParameterSpec("merge_method", ParamKind.STRING, "Merge method", enum=("merge", "squash", "rebase")),
    ),
    mutating=True,
)

UPDATE_PULL_REQUEST_BRANCH = ToolDescriptor(
    name="update_pull_request_branch",
    description="Update a pull request branch with the latest changes from the base branch.",
    params=(
        OWNER,
        REPO,
        PULL_NUMBER,
        ParameterSpec("expectedHeadSha", ParamKind.STRING, "The expected SHA of the pull request's HEAD ref"),
    ),
    mutating=True,
)

_REVIEW_EVENTS = ("APPROVE", "REQUEST_CHANGES", "COMMENT")

CREATE_PULL_REQUEST_REVIEW = ToolDescriptor(
    name="create_pull_request_review",
    description="Create a review on a pull request.",
    params=(
        OWNER,
        REPO,
        PULL_NUMBER,
        ParameterSpec("body", ParamKind.STRING, "Review comment text"),
        ParameterSpec("event", ParamKind.STRING, "Review action to perform", required=True, enum=_REVIEW_EVENTS),
        ParameterSpec("commitId", ParamKind.STRING, "SHA of commit to review"),
        ParameterSpec(
            "comments",
            ParamKind.OBJECT_ARRAY,
            "Line-specific comments; each needs path and body plus position or line",
            item_properties=("path", "body", "side", "start_side"),
        ),
    ),
    mutating=True,
)


def _pull_path(arguments: Mapping[str, Any], *parts: str) -> str:
    owner = require_string(arguments, "owner")
    repo = require_string(arguments, "repo")
    pull_number = require_int(arguments, "pullNumber")
    return repo_path(owner, repo, "pulls", pull_number, *parts)


async def get_pull_request(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    owner = require_string(arguments, "owner")
    repo = require_string(arguments, "repo")
    pull_number = require_int(arguments, "pullNumber")
    try:
        data = await runtime.github.request_json(
            method="GET",
            path=repo_path(owner, repo, "pulls", pull_number),
            budget=runtime.budget(),
        )
    except NotFoundError as exc:
        raise NotFoundError(
            message=f"pull request #{pull_number} not found in {owner}/{repo}",
            hint=exc.hint,
            status_code=exc.status_code,
        ) from exc
    return expect_dict(data, "pull request")


async def list_pull_requests(runtime: Runtime, arguments: Mapping[str, Any]) -> list[Any]:
    owner = require_string(arguments, "owner")
    repo = require_string(arguments, "repo")
    query = drop_empty(
        {
            "state": optional_string(arguments, "state"),
            "head": optional_string(arguments, "head"),
            "base": optional_string(arguments, "base"),
            "sort": optional_string(arguments, "sort"),
            "direction": optional_string(arguments, "direction"),
        }
    )
    query.update(page_query(pagination_params(arguments)))

    data = await runtime.github.request_json(
        method="GET",
        path=repo_path(owner, repo, "pulls"),
        params=query,
        budget=runtime.budget(),
    )
    return expect_list(data, "pull request list")


async def get_pull_request_files(runtime: Runtime, arguments: Mapping[str, Any]) -> list[Any]:
    data = await runtime.github.request_json(
        method="GET",
        path=_pull_path(arguments, "files"),
        params=page_query(pagination_params(arguments)),
        budget=runtime.budget(),
    )
    return expect_list(data, "pull request files")


async def get_pull_request_status(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    owner = require_string(arguments, "owner")
    repo = require_string(arguments, "repo")
    pr = expect_dict(
        await runtime.github.request_json(method="GET", path=_pull_path(arguments), budget=runtime.budget()),
        "pull request",
    )
    head = pr.get("head")
    sha = head.get("sha") if isinstance(head, dict) else None
    if not isinstance(sha, str) or not sha:
        raise UpstreamError(message="Pull request has no head commit")

    data = await runtime.github.request_json(
        method="GET",
        path=repo_path(owner, repo, "commits", sha, "status"),
        budget=runtime.budget(),
    )
    return expect_dict(data, "combined status")


async def get_pull_request_comments(runtime: Runtime, arguments: Mapping[str, Any]) -> list[Any]:
    data = await runtime.github.request_json(
        method="GET",
        path=_pull_path(arguments, "comments"),
        params=page_query(pagination_params(arguments)),
        budget=runtime.budget(),
    )
    return expect_list(data, "pull request comments")


async def get_pull_request_reviews(runtime: Runtime, arguments: Mapping[str, Any]) -> list[Any]:
    data = await runtime.github.request_json(
        method="GET",
        path=_pull_path(arguments, "reviews"),
        params=page_query(pagination_params(arguments)),
        budget=runtime.budget(),
    )
    return expect_list(data, "pull request reviews")


async def create_pull_request(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    owner = require_string(arguments, "owner")
    repo = require_string(arguments, "repo")
    payload: dict[str, Any] = {
        "title": require_string(arguments, "title"),
        "head": require_string(arguments, "head"),
        "base": require_string(arguments, "base"),
    }
    body = optional_string(arguments, "body")
    if body:
        payload["body"] = body
    for key in ("draft", "maintainer_can_modify"):
        flag, present = optional_bool_ok(arguments, key)
        if present:
            payload[key] = flag

    data = await runtime.github.request_json(
        method="POST",
        path=repo_path(owner, repo, "pulls"),
        json_body=payload,
        budget=runtime.budget(),
    )
    return expect_dict(data, "pull request")


async def update_pull_request(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    path = _pull_path(arguments)
    payload: dict[str, Any] = {}
    for key in ("title", "body", "state", "base"):
        value, present = optional_string_ok(arguments, key)
        if present:
            payload[key] = value
    flag, present = optional_bool_ok(arguments, "maintainer_can_modify")
    if present:
        payload["maintainer_can_modify"] = flag
    if not payload:
        raise ValidationError(message="no update parameters provided")

    data = await runtime.github.request_json(method="PATCH", path=path, json_body=payload, budget=runtime.budget())
    return expect_dict(data, "pull request")


async def merge_pull_request(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    path = _pull_path(arguments, "merge")
    payload: dict[str, Any] = {}
    for key in ("commit_title", "commit_message", "merge_method"):
        value = optional_string(arguments, key)
        if value:
            payload[key] = value

    data = await runtime.github.request_json(method="PUT", path=path, json_body=payload, budget=runtime.budget())
    return expect_dict(data, "merge")


async def update_pull_request_branch(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    path = _pull_path(arguments, "update-branch")
    payload: dict[str, Any] = {}
    expected = optional_string(arguments, "expectedHeadSha")
    if expected:
        payload["expected_head_sha"] = expected

    # 202 Accepted: GitHub schedules the update asynchronously.
    response = await runtime.github.request(method="PUT", path=path, json_body=payload, budget=runtime.budget())
    if isinstance(response.payload, dict):
        return response.payload
    return {"message": "Updating pull request branch", "status_code": response.status_code}


def _review_comments(arguments: Mapping[str, Any]) -> list[dict[str, Any]]:
    comments = optional_object_array(arguments, "comments")
    for comment in comments:
        path = comment.get("path")
        body = comment.get("body")
        if not isinstance(path, str) or not path or not isinstance(body, str) or not body:
            raise ValidationError(message="each comment must have a path and a body", parameter="comments")
        if comment.get("position") is None and comment.get("line") is None:
            raise ValidationError(message="each comment must have either position or line", parameter="comments")
    return comments


async def create_pull_request_review(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    path = _pull_path(arguments, "reviews")
    event = require_string(arguments, "event")
    if event not in _REVIEW_EVENTS:
        raise ValidationError(message=f"parameter event must be one of {', '.join(_REVIEW_EVENTS)}", parameter="event")

    payload: dict[str, Any] = {"event": event}
    body = optional_string(arguments, "body")
    if body:
        payload["body"] = body
    commit_id = optional_string(arguments, "commitId")
    if commit_id:
        payload["commit_id"] = commit_id
    comments = _review_comments(arguments)
    if comments:
        payload["comments"] = comments

    data = await runtime.github.request_json(method="POST", path=path, json_body=payload, budget=runtime.budget())
    return expect_dict(data, "review")


def register(registry: ToolRegistry) -> None:
    registry.register(GET_PULL_REQUEST, get_pull_request)
    registry.register(LIST_PULL_REQUESTS, list_pull_requests)
    registry.register(GET_PULL_REQUEST_FILES, get_pull_request_files)
    registry.register(GET_PULL_REQUEST_STATUS, get_pull_request_status)
    registry.register(GET_PULL_REQUEST_COMMENTS, get_pull_request_comments)
    registry.register(GET_PULL_REQUEST_REVIEWS, get_pull_request_reviews)
    registry.register(MERGE_PULL_REQUEST, merge_pull_request)
    registry.register(UPDATE_PULL_REQUEST_BRANCH, update_pull_request_branch)
    registry.register(CREATE_PULL_REQUEST_REVIEW, create_pull_request_review)
    registry.register(CREATE_PULL_REQUEST, create_pull_request)
    registry.register(UPDATE_PULL_REQUEST, update_pull_request)
