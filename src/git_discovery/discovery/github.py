"""GitHub (github.com and Enterprise Server) discovery adapter.

API docs: https://docs.github.com/en/rest/repos/repos
Pagination follows the ``Link`` response header (``rel="next"``/``rel="last"``).
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import parse_qs, quote, urlparse

import httpx

from git_discovery.discovery.common import (
    BaseDiscoveryClient,
    PageRequest,
    PageResult,
    parse_int,
    parse_timestamp,
)
from git_discovery.models import ConnectionConfig, ProviderType, RepositoryMetadata

logger = logging.getLogger(__name__)


def _page_from_url(url: str | None) -> int | None:
    if not url:
        return None
    values = parse_qs(urlparse(url).query).get("page")
    return parse_int(values[0]) if values else None


class GitHubDiscoveryClient(BaseDiscoveryClient):
    """Lists repositories visible to the authenticated GitHub user."""

    provider = ProviderType.GITHUB
    max_per_page = 100
    accept = "application/vnd.github+json"
    empty_on_unknown_organization = True

    async def _list_request(
        self,
        http: httpx.AsyncClient,
        config: ConnectionConfig,
    ) -> PageRequest:
        return PageRequest(
            f"{config.api_root}/user/repos",
            {"sort": "full_name", "per_page": self.default_per_page},
        )

    def _organization_request(self, config: ConnectionConfig, organization_id: str) -> PageRequest:
        return PageRequest(
            f"{config.api_root}/orgs/{quote(organization_id, safe='')}/repos",
            {"sort": "full_name", "per_page": self.default_per_page},
        )

    async def _page_request(
        self,
        http: httpx.AsyncClient,
        config: ConnectionConfig,
        page: int,
        per_page: int,
    ) -> PageRequest:
        return PageRequest(
            f"{config.api_root}/user/repos",
            {"sort": "full_name", "per_page": per_page, "page": page},
        )

    # GitHub's /search/repositories is token-based and can miss substring
    # matches, so search uses the base class's local filtering.

    def _parse_page(self, response: httpx.Response, request: PageRequest) -> PageResult:
        data = response.json()
        items = data.get("items", []) if isinstance(data, dict) else data
        total_count = data.get("total_count") if isinstance(data, dict) else None

        links = response.links
        next_url = links.get("next", {}).get("url")
        current_page = parse_int(request.params.get("page"), 1)
        if "last" in links:
            total_pages = _page_from_url(links["last"].get("url"))
        elif next_url is None and items:
            total_pages = current_page
        else:
            total_pages = None

        # Link URLs already carry every query parameter.
        next_request = PageRequest(next_url) if next_url else None
        return PageResult(
            repositories=self._parse_items(items),
            next_request=next_request,
            total_count=parse_int(total_count),
            total_pages=total_pages,
        )

    def _parse_repository(self, raw: dict[str, Any]) -> RepositoryMetadata | None:
        repo_id = raw.get("id")
        name = raw.get("name")
        if repo_id is None or not name:
            logger.debug("Skipping GitHub repository without id/name: %r", raw.get("full_name"))
            return None

        owner = raw.get("owner") or {}
        owner_type = "organization" if owner.get("type") == "Organization" else "user"
        return RepositoryMetadata(
            id=str(repo_id),
            name=name,
            full_name=raw.get("full_name", name),
            provider=ProviderType.GITHUB,
            description=raw.get("description"),
            clone_url=raw.get("clone_url", ""),
            web_url=raw.get("html_url", ""),
            default_branch=raw.get("default_branch") or "main",
            is_private=bool(raw.get("private", False)),
            is_fork=bool(raw.get("fork", False)),
            is_archived=bool(raw.get("archived", False)),
            language=raw.get("language"),
            size=parse_int(raw.get("size"), 0) or 0,
            star_count=parse_int(raw.get("stargazers_count"), 0) or 0,
            fork_count=parse_int(raw.get("forks_count"), 0) or 0,
            created_at=parse_timestamp(raw.get("created_at")),
            updated_at=parse_timestamp(raw.get("updated_at")),
            last_activity_at=parse_timestamp(raw.get("pushed_at")),
            owner_id=str(owner.get("id", "")),
            owner_name=owner.get("login", ""),
            owner_type=owner_type,
            topics=tuple(raw.get("topics") or ()),
        )
