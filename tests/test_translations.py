"""Tool description overrides: lookup precedence, registry wiring, export."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest
from github_mcp_server import __main__ as cli
from github_mcp_server.errors import SafeError
from github_mcp_server.server import tool_definitions
from github_mcp_server.tools import build_registry
from github_mcp_server.translations import (
    Translations,
    description_key,
    export_translations,
    load_translations,
)


def test_description_key() -> None:
    assert description_key("get_me") == "TOOL_GET_ME_DESCRIPTION"


def test_default_when_nothing_overrides() -> None:
    t = Translations(environ={})

    assert t("TOOL_GET_ME_DESCRIPTION", "Get me") == "Get me"
    assert t.dump() == {"TOOL_GET_ME_DESCRIPTION": "Get me"}


def test_environment_beats_file_overrides() -> None:
    t = Translations(
        {"TOOL_GET_ME_DESCRIPTION": "from file", "TOOL_GET_ISSUE_DESCRIPTION": "issue from file"},
        environ={"GITHUB_MCP_TOOL_GET_ME_DESCRIPTION": "from env"},
    )

    assert t("TOOL_GET_ME_DESCRIPTION", "default") == "from env"
    assert t("TOOL_GET_ISSUE_DESCRIPTION", "default") == "issue from file"


def test_load_translations_from_file(tmp_path: Path) -> None:
    path = tmp_path / "overrides.json"
    path.write_text(json.dumps({"TOOL_GET_ME_DESCRIPTION": "Who am I"}), encoding="utf-8")

    t = load_translations(path, environ={})

    assert t("TOOL_GET_ME_DESCRIPTION", "default") == "Who am I"


def test_missing_file_is_not_an_error(tmp_path: Path) -> None:
    t = load_translations(tmp_path / "absent.json", environ={})

    assert t("K", "default") == "default"


@pytest.mark.parametrize("content", ["not json", "[]", '{"K": 1}'])
def test_malformed_file_is_config_error(tmp_path: Path, content: str) -> None:
    path = tmp_path / "overrides.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(SafeError) as exc:
        load_translations(path, environ={})

    assert exc.value.code == "Config"


def test_registry_publishes_overridden_descriptions() -> None:
    t = Translations({"TOOL_GET_ME_DESCRIPTION": "Custom get_me text"}, environ={})

    tools = {tool.name: tool for tool in tool_definitions(build_registry(read_only=True, translate=t))}

    assert tools["get_me"].description == "Custom get_me text"
    assert tools["get_issue"].description == t.dump()["TOOL_GET_ISSUE_DESCRIPTION"]


def test_read_only_registry_still_records_mutating_keys() -> None:
    t = Translations(environ={})

    registry = build_registry(read_only=True, translate=t)

    assert "create_issue" not in registry
    assert "TOOL_CREATE_ISSUE_DESCRIPTION" in t.dump()


def test_export_writes_every_tool(tmp_path: Path) -> None:
    t = Translations(environ={})
    registry = build_registry(read_only=False, translate=t)

    path = export_translations(t, tmp_path / "out.json")

    exported = json.loads(path.read_text(encoding="utf-8"))
    assert set(exported) == {description_key(name) for name in registry.names()}
    assert list(exported) == sorted(exported)


def test_export_translations_flag(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"TOOL_GET_ME_DESCRIPTION": "Kept override"}), encoding="utf-8")
    monkeypatch.delenv("GITHUB_PERSONAL_ACCESS_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_MCP_TOOL_GET_ME_DESCRIPTION", raising=False)
    monkeypatch.setattr(cli, "configure_logging", lambda *a, **k: None)
    monkeypatch.setattr(
        sys, "argv", ["github-mcp-server", "--export-translations", "--translations-file", str(path)]
    )

    cli.main()

    exported = json.loads(path.read_text(encoding="utf-8"))
    assert exported["TOOL_GET_ME_DESCRIPTION"] == "Kept override"
    assert "TOOL_MERGE_PULL_REQUEST_DESCRIPTION" in exported


def test_export_flags_parse() -> None:
    args = cli.parse_args(["--export-translations", "--translations-file", "/tmp/t.json"])

    assert args.export_translations is True
    assert args.translations_file == Path("/tmp/t.json")
