"""MCP server that validates Git provider connections and discovers repositories."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx
from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from git_discovery.discovery.registry import DiscoveryRegistry
from git_discovery.settings import DiscoverySettings
from git_discovery.tools.discover import (
    discover_repositories,
    list_repositories_page,
    test_connection,
)
from git_discovery.tools.validate import provider_guidance, validate_connection
from git_discovery.validation.base import CredentialValidatorPort
from git_discovery.validation.validator import DefaultCredentialValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AppContext:
    """Shared state across all tool invocations.

    The HTTP client is owned by the lifespan; adapters only borrow it.
    """

    http_client: httpx.AsyncClient
    validator: CredentialValidatorPort
    discovery: DiscoveryRegistry


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Manage shared adapter lifecycle -- the composition root."""
    settings = DiscoverySettings.from_env()
    logger.debug("Starting with %r", settings)
    async with settings.build_http_client() as http_client:
        yield AppContext(
            http_client=http_client,
            validator=DefaultCredentialValidator(),
            discovery=DiscoveryRegistry.default(http_client, settings),
        )


mcp = FastMCP(
    "git-discovery",
    instructions=(
        "git-discovery checks connection settings for GitHub, GitLab and Bitbucket "
        "and lists the repositories an account can access.\n\n"
        "### Recommended workflow\n"
        "1. **validate_connection** - Check the provider, URLs, username and "
        "password/token offline. Fix every reported error before going further; "
        "mention warnings to the user.\n"
        "2. **test_connection** - Make one authenticated call to confirm the "
        "credentials are accepted.\n"
        "3. **discover_repositories** - List repositories, optionally scoped to an "
        "organization/group/workspace, a search query, or filters "
        "(language, forks, archived, stars, size, last update).\n"
        "4. **list_repositories_page** - Browse large accounts one page at a time.\n\n"
        "Use **provider_guidance** when the user is unsure what to enter.\n\n"
        "### Key principles\n"
        "- Never echo passwords or tokens back to the user.\n"
        "- When a call fails, relay the 'suggestion' field; if 'recoverable' is "
        "true the same call may succeed later (respect 'retry_after').\n"
        "- Supported providers: github, gitlab, bitbucket."
    ),
    lifespan=app_lifespan,
)

# ─── Read-only tools ──────────────────────────────────────────
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(validate_connection)
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(provider_guidance)
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=True))(test_connection)
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=True))(
    discover_repositories
)
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=True))(
    list_repositories_page
)
