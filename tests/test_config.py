"""Foundational tests: configuration loading from environment and CLI overrides."""

from __future__ import annotations

from pathlib import Path

import pytest
from github_mcp_server.config import (
    DEFAULT_API_BASE_URL,
    ServerConfig,
    apply_cli_overrides,
    load_config_from_env,
    resolve_api_urls,
)
from github_mcp_server.errors import SafeError

_ENV_VARS = (
    "GITHUB_PERSONAL_ACCESS_TOKEN",
    "GH_HOST",
    "GITHUB_MCP_READ_ONLY",
    "GITHUB_MCP_LOG_FILE",
    "GITHUB_MCP_ENABLE_COMMAND_LOGGING",
    "GITHUB_MCP_MAX_RATE_LIMIT_RETRIES",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_missing_token_is_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_PERSONAL_ACCESS_TOKEN", "   ")

    with pytest.raises(SafeError) as exc:
        load_config_from_env()

    assert exc.value.code == "Config"
    assert "GITHUB_PERSONAL_ACCESS_TOKEN" in exc.value.message


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_PERSONAL_ACCESS_TOKEN", "ghp_example")

    config = load_config_from_env()

    assert config.token == "ghp_example"
    assert config.read_only is False
    assert config.api_base_url == DEFAULT_API_BASE_URL
    assert config.graphql_url == "https://api.github.com/graphql"
    assert config.log_file is None
    assert config.limits.max_rate_limit_retries == 3


def test_token_is_not_in_repr(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_PERSONAL_ACCESS_TOKEN", "ghp_supersecret")

    assert "ghp_supersecret" not in repr(load_config_from_env())


def test_env_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("GITHUB_PERSONAL_ACCESS_TOKEN", "ghp_example")
    monkeypatch.setenv("GH_HOST", "github.example.com")
    monkeypatch.setenv("GITHUB_MCP_READ_ONLY", "true")
    monkeypatch.setenv("GITHUB_MCP_LOG_FILE", str(tmp_path / "server.log"))
    monkeypatch.setenv("GITHUB_MCP_ENABLE_COMMAND_LOGGING", "1")
    monkeypatch.setenv("GITHUB_MCP_MAX_RATE_LIMIT_RETRIES", "5")

    config = load_config_from_env()

    assert config.read_only is True
    assert config.api_base_url == "https://github.example.com/api/v3"
    assert config.graphql_url == "https://github.example.com/api/graphql"
    assert config.log_file == tmp_path / "server.log"
    assert config.enable_command_logging is True
    assert config.limits.max_rate_limit_retries == 5


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("GITHUB_MCP_LOG_FILE", "relative.log"),
        ("GITHUB_MCP_MAX_RATE_LIMIT_RETRIES", "-1"),
        ("GITHUB_MCP_MAX_RATE_LIMIT_RETRIES", "many"),
        ("GH_HOST", "http://github.example.com"),
    ],
)
def test_invalid_env_values(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv("GITHUB_PERSONAL_ACCESS_TOKEN", "ghp_example")
    monkeypatch.setenv(name, value)

    with pytest.raises(SafeError) as exc:
        load_config_from_env()

    assert exc.value.code == "Config"


@pytest.mark.parametrize("host", [None, "", "github.com", "https://github.com/", "https://api.github.com"])
def test_resolve_api_urls_for_dotcom(host: str | None) -> None:
    assert resolve_api_urls(host) == (DEFAULT_API_BASE_URL, f"{DEFAULT_API_BASE_URL}/graphql")


def test_cli_overrides_layer_on_env(tmp_path: Path) -> None:
    base = ServerConfig(token="ghp_example")

    config = apply_cli_overrides(
        base,
        read_only=True,
        gh_host="https://ghe.corp",
        log_file=tmp_path / "x.log",
        enable_command_logging=True,
    )

    assert config.read_only is True
    assert config.api_base_url == "https://ghe.corp/api/v3"
    assert config.log_file == tmp_path / "x.log"
    assert config.enable_command_logging is True
    assert config.token == "ghp_example"


def test_cli_flags_never_relax_env() -> None:
    base = ServerConfig(token="ghp_example", read_only=True)

    assert apply_cli_overrides(base) is base
    assert apply_cli_overrides(base, read_only=False).read_only is True


def test_cli_log_file_must_be_absolute() -> None:
    with pytest.raises(SafeError):
        apply_cli_overrides(ServerConfig(token="t"), log_file=Path("relative.log"))


def test_cli_arguments() -> None:
    from github_mcp_server.__main__ import parse_args

    args = parse_args(["--read-only", "--gh-host", "ghe.corp", "--log-file", "/tmp/x.log"])

    assert args.read_only is True
    assert args.gh_host == "ghe.corp"
    assert args.log_file == Path("/tmp/x.log")
    assert args.enable_command_logging is False
    assert args.test is False
