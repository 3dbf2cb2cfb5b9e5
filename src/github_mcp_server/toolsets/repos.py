"""Repository tools (REST): contents, commits, branches and repository creation."""

from __future__ import annotations

import base64
import binascii
from collections.abc import Mapping
from typing import Any

from ..errors import SafeError, UpstreamError, ValidationError
from ..params import (
    ParamKind,
    ParameterSpec,
    optional_bool_ok,
    optional_object_array,
    optional_string,
    pagination_params,
    pagination_specs,
    require_string,
)
from ..registry import ToolDescriptor, ToolRegistry
from ..runtime import Runtime
from .common import OWNER, REPO, content_path, expect_dict, expect_list, page_query, repo_path

SEARCH_REPOSITORIES = ToolDescriptor(
    name="search_repositories",
    description="Search for GitHub repositories.",
    params=(
        ParameterSpec("query", ParamKind.STRING, "Search query", required=True),
        *pagination_specs(),
    ),
)

GET_FILE_CONTENTS = ToolDescriptor(
    name="get_file_contents",
    description="Get the contents of a file or directory from a GitHub repository.",
    params=(
        OWNER,
        REPO,
        ParameterSpec("path", ParamKind.STRING, "Path to file/directory", required=True),
        ParameterSpec("branch", ParamKind.STRING, "Branch to get contents from"),
    ),
)

LIST_COMMITS = ToolDescriptor(
    name="list_commits",
    description="Get list of commits of a branch in a GitHub repository.",
    params=(
        OWNER,
        REPO,
        ParameterSpec("sha", ParamKind.STRING, "Branch name or commit SHA"),
        *pagination_specs(),
    ),
)

CREATE_OR_UPDATE_FILE = ToolDescriptor(
    name="create_or_update_file",
    description="Create or update a single file in a GitHub repository.",
    params=(
        OWNER,
        REPO,
        ParameterSpec("path", ParamKind.STRING, "Path where to create/update the file", required=True),
        ParameterSpec("content", ParamKind.STRING, "Content of the file", required=True),
        ParameterSpec("message", ParamKind.STRING, "Commit message", required=True),
        ParameterSpec("branch", ParamKind.STRING, "Branch to create/update the file in", required=True),
        ParameterSpec("sha", ParamKind.STRING, "SHA of file being replaced (for updates)"),
    ),
    mutating=True,
)

CREATE_REPOSITORY = ToolDescriptor(
    name="create_repository",
    description="Create a new GitHub repository in your account.",
    params=(
        ParameterSpec("name", ParamKind.STRING, "Repository name", required=True),
        ParameterSpec("description", ParamKind.STRING, "Repository description"),
        ParameterSpec("private", ParamKind.BOOLEAN, "Whether repo should be private"),
        ParameterSpec("autoInit", ParamKind.BOOLEAN, "Initialize with README"),
    ),
    mutating=True,
)

FORK_REPOSITORY = ToolDescriptor(
    name="fork_repository",
    description="Fork a GitHub repository to your account or specified organization.",
    params=(
        OWNER,
        REPO,
        ParameterSpec("organization", ParamKind.STRING, "Organization to fork to"),
    ),
    mutating=True,
)

CREATE_BRANCH = ToolDescriptor(
    name="create_branch",
    description="Create a new branch in a GitHub repository.",
    params=(
        OWNER,
        REPO,
        ParameterSpec("branch", ParamKind.STRING, "Name for new branch", required=True),
        ParameterSpec("from_branch", ParamKind.STRING, "Source branch (defaults to repo default)"),
    ),
    mutating=True,
)

PUSH_FILES = ToolDescriptor(
    name="push_files",
    description="Push multiple files to a GitHub repository in a single commit.",
    params=(
        OWNER,
        REPO,
        ParameterSpec("branch", ParamKind.STRING, "Branch to push to", required=True),
        ParameterSpec(
            "files",
            ParamKind.OBJECT_ARRAY,
            "Array of file objects to push, each object with path (string) and content (string)",
            required=True,
            item_properties=("path", "content"),
        ),
        ParameterSpec("message", ParamKind.STRING, "Commit message", required=True),
    ),
    mutating=True,
)


def _sha_of(data: object, key: str, what: str) -> str:
    obj = expect_dict(data, what).get(key)
    sha = obj.get("sha") if isinstance(obj, dict) else None
    if not isinstance(sha, str) or not sha:
        raise UpstreamError(message=f"Unexpected {what} response")
    return sha


def _decode_file(data: dict[str, Any], *, max_bytes: int) -> dict[str, Any]:
    size = data.get("size")
    if isinstance(size, int) and size > max_bytes:
        raise ValidationError(message="file exceeds size limit", parameter="path")

    out = {k: data.get(k) for k in ("name", "path", "sha", "size", "html_url", "type")}
    content_b64 = data.get("content")
    if data.get("encoding") != "base64" or not isinstance(content_b64, str):
        # Large files (>1 MB) come back without inline content.
        out["content"] = None
        out["download_url"] = data.get("download_url")
        return out

    try:
        raw = base64.b64decode(content_b64.encode("ascii"), validate=False)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise UpstreamError(message="Unexpected file content encoding") from exc
    if len(raw) > max_bytes:
        raise ValidationError(message="file exceeds size limit", parameter="path")

    try:
        out["content"] = raw.decode("utf-8")
        out["encoding"] = "utf-8"
    except UnicodeDecodeError:
        out["content"] = base64.b64encode(raw).decode("ascii")
        out["encoding"] = "base64"
    return out


async def search_repositories(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    query = {"q": require_string(arguments, "query")}
    query.update(page_query(pagination_params(arguments)))
    data = await runtime.github.request_json(
        method="GET",
        path="/search/repositories",
        params=query,
        budget=runtime.budget(),
    )
    return expect_dict(data, "repository search")


async def get_file_contents(runtime: Runtime, arguments: Mapping[str, Any]) -> object:
    owner = require_string(arguments, "owner")
    repo = require_string(arguments, "repo")
    path = require_string(arguments, "path")
    branch = optional_string(arguments, "branch")

    data = await runtime.github.request_json(
        method="GET",
        path=repo_path(owner, repo, "contents", content_path(path)),
        params={"ref": branch} if branch else None,
        budget=runtime.budget(),
    )
    if isinstance(data, list):
        return data
    return _decode_file(expect_dict(data, "file"), max_bytes=runtime.config.limits.get_file_max_bytes)


async def list_commits(runtime: Runtime, arguments: Mapping[str, Any]) -> list[Any]:
    owner = require_string(arguments, "owner")
    repo = require_string(arguments, "repo")
    query = page_query(pagination_params(arguments))
    sha = optional_string(arguments, "sha")
    if sha:
        query["sha"] = sha

    data = await runtime.github.request_json(
        method="GET",
        path=repo_path(owner, repo, "commits"),
        params=query,
        budget=runtime.budget(),
    )
    return expect_list(data, "commit list")


async def create_or_update_file(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    owner = require_string(arguments, "owner")
    repo = require_string(arguments, "repo")
    path = require_string(arguments, "path")
    content = require_string(arguments, "content")
    payload: dict[str, Any] = {
        "message": require_string(arguments, "message"),
        "branch": require_string(arguments, "branch"),
        "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
    }
    sha = optional_string(arguments, "sha")
    if sha:
        payload["sha"] = sha

    data = await runtime.github.request_json(
        method="PUT",
        path=repo_path(owner, repo, "contents", content_path(path)),
        json_body=payload,
        budget=runtime.budget(),
    )
    return expect_dict(data, "file update")


async def create_repository(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    payload: dict[str, Any] = {"name": require_string(arguments, "name")}
    description = optional_string(arguments, "description")
    if description:
        payload["description"] = description
    private, present = optional_bool_ok(arguments, "private")
    if present:
        payload["private"] = private
    auto_init, present = optional_bool_ok(arguments, "autoInit")
    if present:
        payload["auto_init"] = auto_init

    data = await runtime.github.request_json(
        method="POST",
        path="/user/repos",
        json_body=payload,
        budget=runtime.budget(),
    )
    return expect_dict(data, "repository")


async def fork_repository(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    owner = require_string(arguments, "owner")
    repo = require_string(arguments, "repo")
    organization = optional_string(arguments, "organization")

    # 202 Accepted: the fork is created asynchronously.
    response = await runtime.github.request(
        method="POST",
        path=repo_path(owner, repo, "forks"),
        json_body={"organization": organization} if organization else {},
        budget=runtime.budget(),
    )
    if isinstance(response.payload, dict):
        return response.payload
    return {"message": "Fork is in progress", "status_code": response.status_code}


async def _default_branch(runtime: Runtime, owner: str, repo: str) -> str:
    data = expect_dict(
        await runtime.github.request_json(method="GET", path=repo_path(owner, repo), budget=runtime.budget()),
        "repository",
    )
    branch = data.get("default_branch")
    if not isinstance(branch, str) or not branch:
        raise UpstreamError(message="Repository has no default branch")
    return branch


async def _branch_head_sha(runtime: Runtime, owner: str, repo: str, branch: str) -> str:
    data = await runtime.github.request_json(
        method="GET",
        path=repo_path(owner, repo, "git", "ref", "heads", content_path(branch)),
        budget=runtime.budget(),
    )
    return _sha_of(data, "object", "ref")


async def create_branch(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    owner = require_string(arguments, "owner")
    repo = require_string(arguments, "repo")
    branch = require_string(arguments, "branch")
    from_branch = optional_string(arguments, "from_branch") or await _default_branch(runtime, owner, repo)

    sha = await _branch_head_sha(runtime, owner, repo, from_branch)
    try:
        data = await runtime.github.request_json(
            method="POST",
            path=repo_path(owner, repo, "git", "refs"),
            json_body={"ref": f"refs/heads/{branch}", "sha": sha},
            budget=runtime.budget(),
        )
    except SafeError as exc:
        if exc.status_code == 422 and exc.hint and "reference already exists" in exc.hint.lower():
            raise ValidationError(message="Branch already exists", parameter="branch") from exc
        raise
    return expect_dict(data, "ref")


def _push_entries(arguments: Mapping[str, Any], *, max_files: int) -> list[dict[str, Any]]:
    files = optional_object_array(arguments, "files")
    if not files:
        raise ValidationError(message="missing required parameter: files", parameter="files")
    if len(files) > max_files:
        raise ValidationError(message=f"too many files (max {max_files})", parameter="files")

    entries: list[dict[str, Any]] = []
    for item in files:
        path = item.get("path")
        content = item.get("content")
        if not isinstance(path, str) or not path:
            raise ValidationError(message="each file must have a path", parameter="files")
        if not isinstance(content, str):
            raise ValidationError(message=f"file {path} must have string content", parameter="files")
        entries.append({"path": path.strip("/"), "mode": "100644", "type": "blob", "content": content})
    return entries


async def push_files(runtime: Runtime, arguments: Mapping[str, Any]) -> dict[str, Any]:
    owner = require_string(arguments, "owner")
    repo = require_string(arguments, "repo")
    branch = require_string(arguments, "branch")
    entries = _push_entries(arguments, max_files=runtime.config.limits.push_files_max_files)
    message = require_string(arguments, "message")

    head_sha = await _branch_head_sha(runtime, owner, repo, branch)
    base_tree_sha = _sha_of(
        await runtime.github.request_json(
            method="GET",
            path=repo_path(owner, repo, "git", "commits", head_sha),
            budget=runtime.budget(),
        ),
        "tree",
        "commit",
    )

    tree = expect_dict(
        await runtime.github.request_json(
            method="POST",
            path=repo_path(owner, repo, "git", "trees"),
            json_body={"base_tree": base_tree_sha, "tree": entries},
            budget=runtime.budget(),
        ),
        "tree",
    )
    tree_sha = tree.get("sha")
    if not isinstance(tree_sha, str):
        raise UpstreamError(message="Unexpected tree response")

    commit = expect_dict(
        await runtime.github.request_json(
            method="POST",
            path=repo_path(owner, repo, "git", "commits"),
            json_body={"message": message, "tree": tree_sha, "parents": [head_sha]},
            budget=runtime.budget(),
        ),
        "commit-create",
    )
    commit_sha = commit.get("sha")
    if not isinstance(commit_sha, str):
        raise UpstreamError(message="Unexpected commit-create response")

    data = await runtime.github.request_json(
        method="PATCH",
        path=repo_path(owner, repo, "git", "refs", "heads", content_path(branch)),
        json_body={"sha": commit_sha, "force": False},
        budget=runtime.budget(),
    )
    return expect_dict(data, "ref")


def register(registry: ToolRegistry) -> None:
    registry.register(SEARCH_REPOSITORIES, search_repositories)
    registry.register(GET_FILE_CONTENTS, get_file_contents)
    registry.register(LIST_COMMITS, list_commits)
    registry.register(CREATE_OR_UPDATE_FILE, create_or_update_file)
    registry.register(CREATE_REPOSITORY, create_repository)
    registry.register(FORK_REPOSITORY, fork_repository)
    registry.register(CREATE_BRANCH, create_branch)
    registry.register(PUSH_FILES, push_files)
