"""test_connection, discover_repositories and list_repositories_page tools."""

from __future__ import annotations

import logging
from datetime import datetime

from mcp.server.fastmcp import Context

from git_discovery.errors import DiscoveryError
from git_discovery.models import RepositoryFilter
from git_discovery.tools._helpers import (
    connection_from_args,
    get_context,
    unsupported_provider,
    validation_failure,
)

logger = logging.getLogger(__name__)


def _invalid_argument(message: str) -> dict[str, object]:
    return {"success": False, "error_kind": "invalid_argument", "error": message}


def _parse_date(value: str, name: str) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"{name} must be an ISO-8601 date, got '{value}'") from exc


async def test_connection(
    provider: str,
    username: str,
    password: str,
    ctx: Context,
    base_url: str = "",
    api_url: str = "",
    verify_ssl: bool = True,
) -> dict[str, object]:
    """Verify that a Git provider accepts the given credentials.

    Validates the settings first (no request is sent for an invalid
    connection), then makes one lightweight authenticated API call.

    Args:
        provider: "github", "gitlab" or "bitbucket".
        username: Account name on the provider.
        password: Password, personal access token or app password.
        base_url: Web URL of the instance; defaults to the public site.
        api_url: REST API root; derived from base_url when empty.
        verify_ssl: Set False only for self-signed test instances.

    Returns:
        success flag and a message. Validation failures include the errors.
    """
    app = get_context(ctx)
    with connection_from_args(
        provider,
        username,
        password,
        base_url=base_url,
        api_url=api_url,
        verify_ssl=verify_ssl,
    ) as config:
        verdict = app.validator.validate_connection(config)
        if not verdict.is_valid:
            return validation_failure(verdict)

        adapter = app.discovery.for_connection(config)
        if adapter is None:
            return unsupported_provider(config)

        name = config.provider.display_name
        ok = await adapter.test_connection(config)
        return {
            "success": ok,
            "provider": config.provider.value,
            "api_url": config.api_url,
            "message": (
                f"Connected to {name} as {config.username}"
                if ok
                else f"{name} rejected the connection. Check the URL and credentials."
            ),
            "warnings": list(verdict.warnings),
        }


async def discover_repositories(
    provider: str,
    username: str,
    password: str,
    ctx: Context,
    base_url: str = "",
    api_url: str = "",
    verify_ssl: bool = True,
    organization: str = "",
    query: str = "",
    languages: list[str] | None = None,
    include_private: bool | None = None,
    include_forks: bool | None = None,
    include_archived: bool | None = None,
    updated_after: str = "",
    updated_before: str = "",
    min_stars: int | None = None,
    min_size_kb: int | None = None,
    max_size_kb: int | None = None,
    owner_type: str = "",
) -> dict[str, object]:
    """List repositories visible to a Git provider account.

    Without ``organization`` or ``query`` this lists every repository the
    account can access. The remaining arguments narrow the result; all of
    them must match.

    Args:
        provider: "github", "gitlab" or "bitbucket".
        username: Account name on the provider.
        password: Password, personal access token or app password.
        base_url: Web URL of the instance; defaults to the public site.
        api_url: REST API root; derived from base_url when empty.
        verify_ssl: Set False only for self-signed test instances.
        organization: Organization (GitHub), group (GitLab) or workspace
            (Bitbucket) to list instead of the account's own repositories.
        query: Text to search for in repository names; also narrows an
            organization listing.
        languages: Keep only repositories in one of these languages.
        include_private: False drops private repositories.
        include_forks: False drops forks.
        include_archived: False drops archived repositories.
        updated_after: ISO-8601 date; keep repositories active since then.
        updated_before: ISO-8601 date; keep repositories active until then.
        min_stars: Minimum star count.
        min_size_kb: Minimum repository size in KB.
        max_size_kb: Maximum repository size in KB.
        owner_type: "user", "organization", "group" or "team".

    Returns:
        success flag, count and repository metadata, or a classified error
        (error_kind, suggestion, recoverable) when the provider call failed.
    """
    app = get_context(ctx)
    try:
        repository_filter = RepositoryFilter(
            search_query=query.strip() or None,
            languages=frozenset(languages) if languages else None,
            include_private=include_private,
            include_forks=include_forks,
            include_archived=include_archived,
            updated_after=_parse_date(updated_after, "updated_after"),
            updated_before=_parse_date(updated_before, "updated_before"),
            min_size=min_size_kb,
            max_size=max_size_kb,
            min_stars=min_stars,
            owner_type=owner_type or None,
        )
    except ValueError as exc:
        return _invalid_argument(str(exc))

    with connection_from_args(
        provider,
        username,
        password,
        base_url=base_url,
        api_url=api_url,
        verify_ssl=verify_ssl,
    ) as config:
        verdict = app.validator.validate_connection(config)
        if not verdict.is_valid:
            return validation_failure(verdict)

        adapter = app.discovery.for_connection(config)
        if adapter is None:
            return unsupported_provider(config)

        try:
            if organization.strip():
                repositories = await adapter.discover_organization_repositories(
                    config, organization
                )
            elif query.strip():
                repositories = await adapter.search_repositories(config, query)
            else:
                repositories = await adapter.discover_repositories_with_filter(
                    config, repository_filter
                )
        except DiscoveryError as exc:
            await ctx.info(f"Repository discovery failed: {exc}")
            return {"success": False, **exc.to_dict()}

    if organization.strip() or query.strip():
        repositories = [r for r in repositories if repository_filter.matches(r)]

    return {
        "success": True,
        "provider": config.provider.value,
        "count": len(repositories),
        "repositories": [r.to_dict() for r in repositories],
    }


async def list_repositories_page(
    provider: str,
    username: str,
    password: str,
    ctx: Context,
    base_url: str = "",
    api_url: str = "",
    verify_ssl: bool = True,
    page: int = 1,
    per_page: int = 30,
) -> dict[str, object]:
    """Fetch one page of the repositories visible to a Git provider account.

    Args:
        provider: "github", "gitlab" or "bitbucket".
        username: Account name on the provider.
        password: Password, personal access token or app password.
        base_url: Web URL of the instance; defaults to the public site.
        api_url: REST API root; derived from base_url when empty.
        verify_ssl: Set False only for self-signed test instances.
        page: 1-based page number.
        per_page: Page size, clamped to the provider's maximum (100).

    Returns:
        The page's repositories plus has_more, total_count (when the
        provider reports it) and a human-readable summary.
    """
    if page < 1:
        return _invalid_argument(f"page must be >= 1, got {page}")

    app = get_context(ctx)
    with connection_from_args(
        provider,
        username,
        password,
        base_url=base_url,
        api_url=api_url,
        verify_ssl=verify_ssl,
    ) as config:
        verdict = app.validator.validate_connection(config)
        if not verdict.is_valid:
            return validation_failure(verdict)

        adapter = app.discovery.for_connection(config)
        if adapter is None:
            return unsupported_provider(config)

        try:
            result = await adapter.discover_repositories_page(config, page, per_page)
        except DiscoveryError as exc:
            await ctx.info(f"Repository page fetch failed: {exc}")
            return {"success": False, **exc.to_dict()}

    return {"success": True, "provider": config.provider.value, **result.to_dict()}
