"""Account identity resolution.

Maps a login to a GraphQL node id and an account kind by trying an ordered list of
strategies, cheapest first:

1. the authenticated caller (cached once per session, no extra outbound call)
2. an individual account (`user(login:)`)
3. a group account (`organization(login:)`)

The first strategy that yields a non-empty node id wins. Branches run strictly in
order; a later branch only runs when every earlier one came back empty.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from .errors import NotFoundError, SafeError, UpstreamError
from .github_client import RequestBudget
from .github_graphql_client import GraphQLResult

logger = logging.getLogger(__name__)

VIEWER_QUERY = "query { viewer { id login } }"
USER_QUERY = "query($login: String!) { user(login: $login) { id login } }"
ORGANIZATION_QUERY = "query($login: String!) { organization(login: $login) { id login } }"


class AccountKind(str, Enum):
    """Whether a login names a person or an organization."""

    INDIVIDUAL = "individual"
    GROUP = "group"


@dataclass(frozen=True, slots=True)
class AccountIdentity:
    """A resolved account."""

    kind: AccountKind
    node_id: str
    login: str


class GraphQLExecutor(Protocol):
    """The subset of `GitHubGraphQLClient` the resolver depends on."""

    async def execute(
        self,
        *,
        query: str,
        variables: dict[str, Any] | None = None,
        budget: RequestBudget,
    ) -> GraphQLResult: ...


class ResolverStrategy(Protocol):
    """One step of the resolution order."""

    async def try_resolve(self, login: str, *, budget: RequestBudget) -> AccountIdentity | None: ...


def _node(data: dict[str, Any], key: str) -> tuple[str, str]:
    node = data.get(key)
    if not isinstance(node, dict):
        return "", ""
    node_id = node.get("id")
    login = node.get("login")
    return (
        node_id if isinstance(node_id, str) else "",
        login if isinstance(login, str) else "",
    )


class ViewerCache:
    """Caller identity, fetched at most once per session."""

    def __init__(self, graphql: GraphQLExecutor) -> None:
        self._graphql = graphql
        self._identity: AccountIdentity | None = None
        self._lock = asyncio.Lock()

    @property
    def cached(self) -> AccountIdentity | None:
        """Return the identity if it has already been fetched."""
        return self._identity

    async def get(self, *, budget: RequestBudget) -> AccountIdentity:
        """Return the authenticated caller, querying `viewer` on first use."""
        if self._identity is not None:
            return self._identity
        async with self._lock:
            if self._identity is None:
                result = await self._graphql.execute(query=VIEWER_QUERY, budget=budget)
                node_id, login = _node(result.data, "viewer")
                if not node_id or not login:
                    raise UpstreamError(message="GitHub did not return the authenticated user")
                self._identity = AccountIdentity(kind=AccountKind.INDIVIDUAL, node_id=node_id, login=login)
        return self._identity


class ViewerStrategy:
    """Match the login against the authenticated caller."""

    def __init__(self, viewer: ViewerCache) -> None:
        self._viewer = viewer

    async def try_resolve(self, login: str, *, budget: RequestBudget) -> AccountIdentity | None:
        try:
            identity = await self._viewer.get(budget=budget)
        except SafeError as exc:
            logger.debug("Viewer lookup failed (%s); falling through", exc.code)
            return None
        # GitHub logins are case-insensitive.
        if identity.login.casefold() != login.casefold():
            return None
        return identity


class AccountLookupStrategy:
    """Query a single account type by login."""

    def __init__(self, graphql: GraphQLExecutor, *, kind: AccountKind, field: str, query: str) -> None:
        self._graphql = graphql
        self._kind = kind
        self._field = field
        self._query = query

    @property
    def kind(self) -> AccountKind:
        return self._kind

    async def try_resolve(self, login: str, *, budget: RequestBudget) -> AccountIdentity | None:
        try:
            result = await self._graphql.execute(
                query=self._query,
                variables={"login": login},
                budget=budget,
            )
        except SafeError as exc:
            logger.debug("%s lookup for %s failed (%s)", self._field, login, exc.code)
            return None
        node_id, resolved_login = _node(result.data, self._field)
        if not node_id:
            return None
        return AccountIdentity(kind=self._kind, node_id=node_id, login=resolved_login or login)


def user_lookup(graphql: GraphQLExecutor) -> AccountLookupStrategy:
    return AccountLookupStrategy(graphql, kind=AccountKind.INDIVIDUAL, field="user", query=USER_QUERY)


def organization_lookup(graphql: GraphQLExecutor) -> AccountLookupStrategy:
    return AccountLookupStrategy(graphql, kind=AccountKind.GROUP, field="organization", query=ORGANIZATION_QUERY)


class IdentityResolver:
    """Ordered, first-success-wins account resolution."""

    def __init__(self, strategies: Sequence[ResolverStrategy]) -> None:
        if not strategies:
            raise ValueError("at least one resolver strategy is required")
        self._strategies = tuple(strategies)

    @classmethod
    def default(cls, graphql: GraphQLExecutor, viewer: ViewerCache) -> IdentityResolver:
        """Return the standard caller → user → organization resolver."""
        return cls([ViewerStrategy(viewer), user_lookup(graphql), organization_lookup(graphql)])

    async def resolve(self, login: str, *, budget: RequestBudget) -> AccountIdentity:
        """Resolve `login` to an account.

        Raises:
            NotFoundError: When no strategy yields a node id.
        """
        for strategy in self._strategies:
            identity = await strategy.try_resolve(login, budget=budget)
            if identity is not None:
                return identity
        raise NotFoundError(message=f"could not find user or organization with login: {login}")
