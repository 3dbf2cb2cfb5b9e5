"""Per-server runtime dependencies shared (read-only) across tool calls."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import httpx

from .audit import AuditLogger
from .config import ServerConfig
from .github_client import GitHubClient, RequestBudget
from .github_graphql_client import GitHubGraphQLClient
from .identity import IdentityResolver, ViewerCache


@dataclass(frozen=True, slots=True)
class Runtime:
    """Clients and configuration handed to every tool handler."""

    config: ServerConfig
    audit: AuditLogger
    github: GitHubClient
    graphql: GitHubGraphQLClient
    viewer: ViewerCache
    identity: IdentityResolver

    def budget(self) -> RequestBudget:
        """Return a fresh time budget for one outbound request."""
        return RequestBudget(total_timeout_s=self.config.limits.total_timeout_s)

    async def aclose(self) -> None:
        """Release the shared connection pools."""
        await self.github.aclose()
        await self.graphql.aclose()


def command_log_path(config: ServerConfig) -> Path | None:
    """JSONL sink for command events, written next to the log file."""
    if config.log_file is None or not config.enable_command_logging:
        return None
    return config.log_file.with_name(f"{config.log_file.name}.commands.jsonl")


def build_runtime(config: ServerConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> Runtime:
    """Wire clients, identity resolution and command logging from `config`."""

    async def token_provider() -> str:
        return config.token

    audit = AuditLogger(
        sink_path=command_log_path(config),
        include_arguments=config.enable_command_logging,
        max_bytes=config.audit_max_bytes,
        max_backups=config.audit_max_backups,
    )
    github = GitHubClient(
        token_provider=token_provider,
        limits=config.limits,
        api_base_url=config.api_base_url,
        transport=transport,
    )
    graphql = GitHubGraphQLClient(
        token_provider=token_provider,
        limits=config.limits,
        graphql_url=config.graphql_url,
        transport=transport,
    )
    viewer = ViewerCache(graphql)
    return Runtime(
        config=config,
        audit=audit,
        github=github,
        graphql=graphql,
        viewer=viewer,
        identity=IdentityResolver.default(graphql, viewer),
    )
