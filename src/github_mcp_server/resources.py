"""MCP resources: non-secret server status and repository content templates."""

from __future__ import annotations

import base64
import binascii
import json
import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import unquote

from . import __version__
from .errors import NotFoundError, UpstreamError, ValidationError
from .registry import ToolRegistry
from .runtime import Runtime
from .toolsets.common import content_path, expect_dict, repo_path

STATUS_URI = "github-mcp://server-status"

_REPO = r"^repo://(?P<owner>[^/]+)/(?P<repo>[^/]+)"
_PATH = r"/contents(?:/(?P<path>.*))?$"


@dataclass(frozen=True, slots=True)
class ContentTemplate:
    """A repository content URI template and the pattern that parses it."""

    name: str
    uri_template: str
    description: str
    pattern: re.Pattern[str]


CONTENT_TEMPLATES: tuple[ContentTemplate, ...] = (
    ContentTemplate(
        name="repository_content",
        uri_template="repo://{owner}/{repo}/contents{/path*}",
        description="Repository Content",
        pattern=re.compile(_REPO + _PATH),
    ),
    ContentTemplate(
        name="repository_content_branch",
        uri_template="repo://{owner}/{repo}/refs/heads/{branch}/contents{/path*}",
        description="Repository Content for specific branch",
        pattern=re.compile(_REPO + r"/refs/heads/(?P<branch>.+?)" + _PATH),
    ),
    ContentTemplate(
        name="repository_content_commit",
        uri_template="repo://{owner}/{repo}/sha/{sha}/contents{/path*}",
        description="Repository Content for specific commit",
        pattern=re.compile(_REPO + r"/sha/(?P<sha>[^/]+)" + _PATH),
    ),
    ContentTemplate(
        name="repository_content_tag",
        uri_template="repo://{owner}/{repo}/refs/tags/{tag}/contents{/path*}",
        description="Repository Content for specific tag",
        pattern=re.compile(_REPO + r"/refs/tags/(?P<tag>.+?)" + _PATH),
    ),
    ContentTemplate(
        name="repository_content_pr",
        uri_template="repo://{owner}/{repo}/refs/pull/{prNumber}/head/contents{/path*}",
        description="Repository Content for specific pull request",
        pattern=re.compile(_REPO + r"/refs/pull/(?P<pr>[0-9]+)/head" + _PATH),
    ),
)


@dataclass(frozen=True, slots=True)
class ContentRef:
    """Parsed repository content URI."""

    owner: str
    repo: str
    path: str
    ref: str | None = None
    pr_number: int | None = None


def parse_content_uri(uri: str) -> ContentRef:
    """Parse a `repo://` URI.

    Raises:
        NotFoundError: If the URI matches no content template.
    """
    for template in CONTENT_TEMPLATES:
        match = template.pattern.match(uri)
        if match is None:
            continue
        groups = match.groupdict()
        ref = groups.get("branch") or groups.get("tag") or groups.get("sha")
        pr = groups.get("pr")
        return ContentRef(
            owner=unquote(groups["owner"]),
            repo=unquote(groups["repo"]),
            path=unquote(groups.get("path") or ""),
            ref=unquote(ref) if ref else None,
            pr_number=int(pr) if pr else None,
        )
    raise NotFoundError(message="Unknown resource")


async def _pull_head_sha(runtime: Runtime, target: ContentRef) -> str:
    pr = expect_dict(
        await runtime.github.request_json(
            method="GET",
            path=repo_path(target.owner, target.repo, "pulls", target.pr_number or 0),
            budget=runtime.budget(),
        ),
        "pull request",
    )
    head = pr.get("head")
    sha = head.get("sha") if isinstance(head, dict) else None
    if not isinstance(sha, str) or not sha:
        raise UpstreamError(message="Pull request has no head commit")
    return sha


async def read_content(runtime: Runtime, uri: str) -> str | bytes:
    """Read a repository file (text or bytes) or a directory listing (JSON text)."""
    target = parse_content_uri(uri)
    ref = target.ref
    if target.pr_number is not None:
        ref = await _pull_head_sha(runtime, target)

    path = repo_path(target.owner, target.repo, "contents")
    if target.path:
        path += "/" + content_path(target.path)
    data = await runtime.github.request_json(
        method="GET",
        path=path,
        params={"ref": ref} if ref else None,
        budget=runtime.budget(),
    )

    if isinstance(data, list):
        listing = [
            {"name": entry.get("name"), "path": entry.get("path"), "type": entry.get("type")}
            for entry in data
            if isinstance(entry, dict)
        ]
        return json.dumps(listing, indent=2)

    file_obj = expect_dict(data, "file")
    size = file_obj.get("size")
    if isinstance(size, int) and size > runtime.config.limits.get_file_max_bytes:
        raise ValidationError(message="file exceeds size limit")
    content = file_obj.get("content")
    if file_obj.get("encoding") != "base64" or not isinstance(content, str):
        raise UpstreamError(message="Unexpected file content encoding")
    try:
        raw = base64.b64decode(content.encode("ascii"), validate=False)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise UpstreamError(message="Unexpected file content encoding") from exc
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw


def server_status(runtime: Runtime, registry: ToolRegistry) -> str:
    """Non-secret configuration and limits, as JSON text."""
    config = runtime.config
    status: dict[str, Any] = {
        "server": "github-mcp-server",
        "version": __version__,
        "read_only": config.read_only,
        "api_base_url": config.api_base_url,
        "graphql_url": config.graphql_url,
        "tools_available": len(registry),
        "tool_names": registry.names(),
        "limits": {
            "total_timeout_s": config.limits.total_timeout_s,
            "max_rate_limit_retries": config.limits.max_rate_limit_retries,
            "low_quota_ratio": config.limits.low_quota_ratio,
            "get_file_max_bytes": config.limits.get_file_max_bytes,
            "push_files_max_files": config.limits.push_files_max_files,
        },
        "command_logging": {
            "enabled": config.enable_command_logging,
            "file_sink_enabled": runtime.audit.file_sink_enabled,
        },
    }
    viewer = runtime.viewer.cached
    if viewer is not None:
        status["authenticated_as"] = viewer.login
    return json.dumps(status, indent=2)
