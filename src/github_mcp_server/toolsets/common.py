"""Parameter declarations and response helpers shared by the toolsets."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from ..errors import UpstreamError
from ..github_client import path_segment
from ..params import Pagination, ParamKind, ParameterSpec

OWNER = ParameterSpec("owner", ParamKind.STRING, "Repository owner", required=True)
REPO = ParameterSpec("repo", ParamKind.STRING, "Repository name", required=True)
ISSUE_NUMBER = ParameterSpec("issue_number", ParamKind.INTEGER, "Issue number", required=True, minimum=1)
PULL_NUMBER = ParameterSpec("pullNumber", ParamKind.INTEGER, "Pull request number", required=True, minimum=1)
ORDER = ParameterSpec("order", ParamKind.STRING, "Sort order", enum=("asc", "desc"))
DIRECTION = ParameterSpec("direction", ParamKind.STRING, "Sort direction", enum=("asc", "desc"))


def repo_path(owner: str, repo: str, *parts: str | int) -> str:
    """Return `/repos/{owner}/{repo}[/part...]` with each segment quoted."""
    path = f"/repos/{path_segment(owner)}/{path_segment(repo)}"
    for part in parts:
        path += f"/{part}"
    return path


def content_path(path: str) -> str:
    """Quote a repository file path, keeping its directory separators."""
    return quote(path.strip("/"), safe="/")


def page_query(pagination: Pagination) -> dict[str, str]:
    return {"page": str(pagination.page), "per_page": str(pagination.per_page)}


def drop_empty(values: dict[str, Any]) -> dict[str, str]:
    """Stringify query parameters, dropping unset ("" / None / []) values."""
    out: dict[str, str] = {}
    for key, value in values.items():
        if value is None or value == "" or value == []:
            continue
        if isinstance(value, list):
            out[key] = ",".join(value)
        elif isinstance(value, bool):
            out[key] = "true" if value else "false"
        else:
            out[key] = str(value)
    return out


def expect_dict(data: object, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise UpstreamError(message=f"Unexpected {what} response")
    return data


def expect_list(data: object, what: str) -> list[Any]:
    if not isinstance(data, list):
        raise UpstreamError(message=f"Unexpected {what} response")
    return data
