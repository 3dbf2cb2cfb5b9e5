"""Identity resolution order: caller, then individual account, then group account."""

from __future__ import annotations

from typing import Any

import pytest
from github_mcp_server.errors import NotFoundError, PermissionDeniedError, SafeError
from github_mcp_server.github_client import RequestBudget
from github_mcp_server.github_graphql_client import GraphQLResult
from github_mcp_server.identity import (
    ORGANIZATION_QUERY,
    USER_QUERY,
    VIEWER_QUERY,
    AccountKind,
    IdentityResolver,
    ViewerCache,
)


class DummyGraphQL:
    def __init__(self, results: dict[str, Any]) -> None:
        self._results = results
        self.calls: list[tuple[str, dict[str, Any] | None]] = []

    async def execute(self, *, query: str, variables: dict[str, Any] | None = None, budget: RequestBudget):
        self.calls.append((query, variables))
        result = self._results[query]
        if isinstance(result, SafeError):
            raise result
        return GraphQLResult(data=result)


VIEWER = {"viewer": {"id": "U_me", "login": "Octocat"}}


def _budget() -> RequestBudget:
    return RequestBudget(total_timeout_s=30.0)


async def _resolver(results: dict[str, Any]) -> tuple[IdentityResolver, DummyGraphQL]:
    graphql = DummyGraphQL(results)
    viewer = ViewerCache(graphql)
    await viewer.get(budget=_budget())
    graphql.calls.clear()
    return IdentityResolver.default(graphql, viewer), graphql


@pytest.mark.asyncio
async def test_own_login_resolves_without_outbound_calls() -> None:
    resolver, graphql = await _resolver({VIEWER_QUERY: VIEWER})

    identity = await resolver.resolve("octocat", budget=_budget())

    assert identity.kind is AccountKind.INDIVIDUAL
    assert identity.node_id == "U_me"
    assert identity.login == "Octocat"
    assert graphql.calls == []


@pytest.mark.asyncio
async def test_other_user_resolves_with_single_lookup() -> None:
    resolver, graphql = await _resolver(
        {VIEWER_QUERY: VIEWER, USER_QUERY: {"user": {"id": "U_hubot", "login": "hubot"}}}
    )

    identity = await resolver.resolve("hubot", budget=_budget())

    assert identity.kind is AccountKind.INDIVIDUAL
    assert identity.node_id == "U_hubot"
    assert [q for q, _ in graphql.calls] == [USER_QUERY]


@pytest.mark.asyncio
async def test_organization_resolves_after_user_lookup_in_order() -> None:
    resolver, graphql = await _resolver(
        {
            VIEWER_QUERY: VIEWER,
            USER_QUERY: NotFoundError(message="GitHub resource not found"),
            ORGANIZATION_QUERY: {"organization": {"id": "O_acme", "login": "acme"}},
        }
    )

    identity = await resolver.resolve("acme", budget=_budget())

    assert identity.kind is AccountKind.GROUP
    assert identity.node_id == "O_acme"
    assert graphql.calls == [(USER_QUERY, {"login": "acme"}), (ORGANIZATION_QUERY, {"login": "acme"})]


@pytest.mark.asyncio
async def test_empty_node_id_falls_through() -> None:
    resolver, graphql = await _resolver(
        {
            VIEWER_QUERY: VIEWER,
            USER_QUERY: {"user": None},
            ORGANIZATION_QUERY: {"organization": {"id": "O_acme", "login": "acme"}},
        }
    )

    identity = await resolver.resolve("acme", budget=_budget())

    assert identity.kind is AccountKind.GROUP
    assert len(graphql.calls) == 2


@pytest.mark.asyncio
async def test_unknown_login_is_not_found() -> None:
    resolver, graphql = await _resolver(
        {
            VIEWER_QUERY: VIEWER,
            USER_QUERY: NotFoundError(message="GitHub resource not found"),
            ORGANIZATION_QUERY: PermissionDeniedError(message="Insufficient permissions"),
        }
    )

    with pytest.raises(NotFoundError) as exc:
        await resolver.resolve("ghost", budget=_budget())

    assert exc.value.message == "could not find user or organization with login: ghost"
    assert len(graphql.calls) == 2


@pytest.mark.asyncio
async def test_viewer_is_fetched_once() -> None:
    graphql = DummyGraphQL({VIEWER_QUERY: VIEWER})
    viewer = ViewerCache(graphql)

    first = await viewer.get(budget=_budget())
    second = await viewer.get(budget=_budget())

    assert first is second
    assert viewer.cached is first
    assert graphql.calls == [(VIEWER_QUERY, None)]


@pytest.mark.asyncio
async def test_viewer_failure_falls_through_to_lookups() -> None:
    graphql = DummyGraphQL(
        {
            VIEWER_QUERY: PermissionDeniedError(message="Insufficient permissions"),
            USER_QUERY: {"user": {"id": "U_hubot", "login": "hubot"}},
        }
    )
    resolver = IdentityResolver.default(graphql, ViewerCache(graphql))

    identity = await resolver.resolve("hubot", budget=_budget())

    assert identity.node_id == "U_hubot"
    assert [q for q, _ in graphql.calls] == [VIEWER_QUERY, USER_QUERY]


@pytest.mark.asyncio
async def test_viewer_without_id_is_upstream_error() -> None:
    viewer = ViewerCache(DummyGraphQL({VIEWER_QUERY: {"viewer": None}}))

    with pytest.raises(SafeError) as exc:
        await viewer.get(budget=_budget())

    assert exc.value.code == "GitHub"
    assert viewer.cached is None


def test_resolver_requires_strategies() -> None:
    with pytest.raises(ValueError):
        IdentityResolver([])
