"""Resources: content URI parsing, content reads, server status."""

from __future__ import annotations

import base64
import json

import httpx
import pytest
from github_mcp_server.config import ServerConfig
from github_mcp_server.errors import NotFoundError
from github_mcp_server.resources import ContentRef, parse_content_uri, read_content, server_status
from github_mcp_server.runtime import build_runtime
from github_mcp_server.tools import build_registry


@pytest.mark.parametrize(
    ("uri", "expected"),
    [
        ("repo://o/r/contents", ContentRef(owner="o", repo="r", path="")),
        ("repo://o/r/contents/src/main.py", ContentRef(owner="o", repo="r", path="src/main.py")),
        (
            "repo://o/r/refs/heads/feature/x/contents/README.md",
            ContentRef(owner="o", repo="r", path="README.md", ref="feature/x"),
        ),
        ("repo://o/r/sha/abc123/contents/a.txt", ContentRef(owner="o", repo="r", path="a.txt", ref="abc123")),
        ("repo://o/r/refs/tags/v1.0/contents/a.txt", ContentRef(owner="o", repo="r", path="a.txt", ref="v1.0")),
        ("repo://o/r/refs/pull/12/head/contents/a.txt", ContentRef(owner="o", repo="r", path="a.txt", pr_number=12)),
        ("repo://o/r/contents/my%20file.txt", ContentRef(owner="o", repo="r", path="my file.txt")),
    ],
)
def test_parse_content_uri(uri: str, expected: ContentRef) -> None:
    assert parse_content_uri(uri) == expected


@pytest.mark.parametrize("uri", ["repo://o/r", "https://github.com/o/r", "repo://o/r/blob/main/a.txt"])
def test_parse_unknown_uri(uri: str) -> None:
    with pytest.raises(NotFoundError):
        parse_content_uri(uri)


@pytest.mark.asyncio
async def test_read_content_for_pull_request_uses_head_sha() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/repos/o/r/pulls/12":
            return httpx.Response(200, json={"head": {"sha": "deadbeef"}})
        encoded = base64.b64encode(b"print('hi')\n").decode("ascii")
        return httpx.Response(200, json={"size": 12, "encoding": "base64", "content": encoded})

    runtime = build_runtime(ServerConfig(token="t"), transport=httpx.MockTransport(handler))
    try:
        content = await read_content(runtime, "repo://o/r/refs/pull/12/head/contents/main.py")
    finally:
        await runtime.aclose()

    assert content == "print('hi')\n"
    assert seen[1].url.path == "/repos/o/r/contents/main.py"
    assert seen[1].url.params["ref"] == "deadbeef"


@pytest.mark.asyncio
async def test_read_content_binary_and_directory() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/img.png"):
            return httpx.Response(
                200, json={"size": 3, "encoding": "base64", "content": base64.b64encode(b"\x89\xff\x00").decode()}
            )
        return httpx.Response(200, json=[{"name": "img.png", "path": "img.png", "type": "file", "sha": "x"}])

    runtime = build_runtime(ServerConfig(token="t"), transport=httpx.MockTransport(handler))
    try:
        binary = await read_content(runtime, "repo://o/r/contents/img.png")
        listing = await read_content(runtime, "repo://o/r/contents")
    finally:
        await runtime.aclose()

    assert binary == b"\x89\xff\x00"
    assert json.loads(listing) == [{"name": "img.png", "path": "img.png", "type": "file"}]


@pytest.mark.asyncio
async def test_server_status_has_no_secrets() -> None:
    runtime = build_runtime(ServerConfig(token="ghp_secret_value", read_only=True))
    registry = build_registry(read_only=True)
    try:
        status = json.loads(server_status(runtime, registry))
    finally:
        await runtime.aclose()

    assert status["read_only"] is True
    assert status["tools_available"] == len(registry)
    assert "create_issue" not in status["tool_names"]
    assert "authenticated_as" not in status
    assert "ghp_secret_value" not in json.dumps(status)
