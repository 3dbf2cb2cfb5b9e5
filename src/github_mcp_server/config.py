"""Configuration loading for github-mcp-server.

Configuration is supplied by the host environment (e.g., MCP client config) and CLI flags,
never by the agent. The bearer token is a secret and must never be emitted to agents,
logs, or audit reasons.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from .errors import SafeError

DEFAULT_API_BASE_URL = "https://api.github.com"


@dataclass(frozen=True, slots=True)
class LimitsConfig:
    """Non-functional safety limits."""

    # Network
    total_timeout_s: float = 60.0
    connect_timeout_s: float = 5.0
    read_timeout_s: float = 30.0

    # Rate limiting
    max_rate_limit_retries: int = 3
    low_quota_ratio: float = 0.10
    max_rate_limit_wait_s: float = 900.0

    # Payload limits
    get_file_max_bytes: int = 1024 * 1024
    push_files_max_files: int = 50


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """Process-wide configuration, fixed at startup."""

    token: str = field(repr=False)
    read_only: bool = False
    api_base_url: str = DEFAULT_API_BASE_URL
    graphql_url: str = f"{DEFAULT_API_BASE_URL}/graphql"
    log_file: Path | None = None
    enable_command_logging: bool = False
    audit_max_bytes: int = 5 * 1024 * 1024
    audit_max_backups: int = 2
    limits: LimitsConfig = field(default_factory=LimitsConfig)


def _parse_bool(value: str | None) -> bool:
    if value is None:
        return False
    normalized = value.strip().lower()
    return normalized in {"1", "true", "yes", "on"}


def _parse_non_negative_int(name: str, value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value.strip())
    except ValueError as exc:
        raise SafeError(code="Config", message=f"{name} must be an integer") from exc
    if parsed < 0:
        raise SafeError(code="Config", message=f"{name} must be >= 0")
    return parsed


def resolve_api_urls(host: str | None) -> tuple[str, str]:
    """Return (REST base URL, GraphQL URL) for github.com or a GitHub Enterprise host."""
    if not host:
        return DEFAULT_API_BASE_URL, f"{DEFAULT_API_BASE_URL}/graphql"

    normalized = host.strip().rstrip("/")
    if "://" not in normalized:
        normalized = f"https://{normalized}"
    if not normalized.startswith("https://"):
        raise SafeError(code="Config", message="GH_HOST must use https")

    if normalized in {"https://github.com", DEFAULT_API_BASE_URL}:
        return DEFAULT_API_BASE_URL, f"{DEFAULT_API_BASE_URL}/graphql"
    return f"{normalized}/api/v3", f"{normalized}/api/graphql"


def load_config_from_env() -> ServerConfig:
    """Load and validate configuration from environment variables.

    Raises:
        SafeError: If configuration is missing/invalid.
    """
    token = os.getenv("GITHUB_PERSONAL_ACCESS_TOKEN")
    if not token or not token.strip():
        raise SafeError(
            code="Config",
            message="Missing required configuration (GITHUB_PERSONAL_ACCESS_TOKEN)",
        )

    api_base_url, graphql_url = resolve_api_urls(os.getenv("GH_HOST"))

    log_file_raw = os.getenv("GITHUB_MCP_LOG_FILE")
    log_file: Path | None = None
    if log_file_raw:
        p = Path(log_file_raw)
        if not p.is_absolute():
            raise SafeError(code="Config", message="GITHUB_MCP_LOG_FILE must be an absolute path when set")
        log_file = p

    retries = _parse_non_negative_int(
        "GITHUB_MCP_MAX_RATE_LIMIT_RETRIES",
        os.getenv("GITHUB_MCP_MAX_RATE_LIMIT_RETRIES"),
        LimitsConfig().max_rate_limit_retries,
    )

    return ServerConfig(
        token=token.strip(),
        read_only=_parse_bool(os.getenv("GITHUB_MCP_READ_ONLY")),
        api_base_url=api_base_url,
        graphql_url=graphql_url,
        log_file=log_file,
        enable_command_logging=_parse_bool(os.getenv("GITHUB_MCP_ENABLE_COMMAND_LOGGING")),
        limits=LimitsConfig(max_rate_limit_retries=retries),
    )


def apply_cli_overrides(
    config: ServerConfig,
    *,
    read_only: bool = False,
    gh_host: str | None = None,
    log_file: Path | None = None,
    enable_command_logging: bool = False,
) -> ServerConfig:
    """Return a copy of `config` with CLI flags layered on top of the environment.

    Boolean flags can only switch a setting on; they never relax what the host set.
    """
    changes: dict[str, object] = {}
    if read_only:
        changes["read_only"] = True
    if enable_command_logging:
        changes["enable_command_logging"] = True
    if gh_host:
        changes["api_base_url"], changes["graphql_url"] = resolve_api_urls(gh_host)
    if log_file is not None:
        if not log_file.is_absolute():
            raise SafeError(code="Config", message="--log-file must be an absolute path")
        changes["log_file"] = log_file
    if not changes:
        return config
    return replace(config, **changes)
