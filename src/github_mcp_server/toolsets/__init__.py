"""Tool descriptors and handlers, grouped by GitHub resource area."""

from __future__ import annotations

from ..registry import ToolRegistry
from . import code_scanning, diagnostics, issues, projects, pulls, repos, search, users

# Registration order is the order tools are listed to clients.
TOOLSETS = (issues, pulls, projects, repos, search, users, code_scanning, diagnostics)


def register_all(registry: ToolRegistry) -> None:
    """Register every toolset; mutating tools are skipped by read-only registries."""
    for toolset in TOOLSETS:
        toolset.register(registry)
