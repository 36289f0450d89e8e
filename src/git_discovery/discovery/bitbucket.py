"""Bitbucket Cloud discovery adapter.

API docs: https://developer.atlassian.com/cloud/bitbucket/rest/api-group-repositories/
Organizations are workspaces. Responses are paged envelopes with ``values``,
``size`` (total), ``page`` and a ``next`` cursor URL.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from git_discovery.discovery.common import (
    BaseDiscoveryClient,
    PageRequest,
    PageResult,
    parse_int,
    parse_timestamp,
)
from git_discovery.models import (
    ConnectionConfig,
    ProviderType,
    RepositoryMetadata,
    pages_for,
)

logger = logging.getLogger(__name__)


def _escape_query(query: str) -> str:
    return query.replace("\\", "\\\\").replace('"', '\\"')


def _https_clone_url(links: dict[str, Any]) -> str:
    for link in links.get("clone") or ():
        if isinstance(link, dict) and link.get("name") == "https":
            return link.get("href", "")
    return ""


class BitbucketDiscoveryClient(BaseDiscoveryClient):
    """Lists repositories of the authenticated user's Bitbucket workspace."""

    provider = ProviderType.BITBUCKET
    max_per_page = 100
    # Bitbucket answers 404 both for missing and for inaccessible workspaces.
    empty_on_unknown_organization = False

    async def _current_workspace(self, http: httpx.AsyncClient, config: ConnectionConfig) -> str:
        """Workspace slug of the authenticated user, from ``GET /user``."""
        response = await self._get(
            http,
            config,
            PageRequest(f"{config.api_root}/user"),
            "resolve current user",
        )
        data = response.json()
        username = data.get("username") if isinstance(data, dict) else None
        if not username:
            logger.debug("Bitbucket /user returned no username; using %s", config.username)
            return config.username or ""
        return username

    def _workspace_url(self, config: ConnectionConfig, workspace: str) -> str:
        return f"{config.api_root}/repositories/{quote(workspace, safe='')}"

    async def _list_request(
        self,
        http: httpx.AsyncClient,
        config: ConnectionConfig,
    ) -> PageRequest:
        workspace = await self._current_workspace(http, config)
        return PageRequest(
            self._workspace_url(config, workspace),
            {"pagelen": self.default_per_page},
        )

    def _organization_request(self, config: ConnectionConfig, organization_id: str) -> PageRequest:
        return PageRequest(
            self._workspace_url(config, organization_id),
            {"pagelen": self.default_per_page},
        )

    async def _search_request(
        self,
        http: httpx.AsyncClient,
        config: ConnectionConfig,
        query: str,
    ) -> PageRequest | None:
        workspace = await self._current_workspace(http, config)
        return PageRequest(
            self._workspace_url(config, workspace),
            {"q": f'name ~ "{_escape_query(query)}"', "pagelen": self.default_per_page},
        )

    async def _page_request(
        self,
        http: httpx.AsyncClient,
        config: ConnectionConfig,
        page: int,
        per_page: int,
    ) -> PageRequest:
        workspace = await self._current_workspace(http, config)
        return PageRequest(
            self._workspace_url(config, workspace),
            {"pagelen": per_page, "page": page},
        )

    def _parse_page(self, response: httpx.Response, request: PageRequest) -> PageResult:
        data = response.json()
        if not isinstance(data, dict):
            return PageResult(repositories=[])

        next_url = data.get("next")
        total_count = parse_int(data.get("size"))
        pagelen = parse_int(data.get("pagelen")) or parse_int(request.params.get("pagelen"))
        total_pages = None
        if total_count is not None and pagelen:
            total_pages = pages_for(total_count, pagelen)

        return PageResult(
            repositories=self._parse_items(data.get("values")),
            next_request=PageRequest(next_url) if next_url else None,
            total_count=total_count,
            total_pages=total_pages,
        )

    def _parse_repository(self, raw: dict[str, Any]) -> RepositoryMetadata | None:
        uuid = raw.get("uuid")
        full_name = raw.get("full_name") or ""
        if not uuid or not full_name:
            logger.debug("Skipping Bitbucket repository without uuid/full_name: %r", raw.get("name"))
            return None

        workspace, _, slug = full_name.partition("/")
        links = raw.get("links") or {}
        owner = raw.get("owner") or {}
        mainbranch = raw.get("mainbranch") or {}
        updated_at = parse_timestamp(raw.get("updated_on"))
        return RepositoryMetadata(
            id=uuid,
            name=slug or raw.get("name", ""),
            full_name=full_name,
            provider=ProviderType.BITBUCKET,
            description=raw.get("description") or None,
            clone_url=_https_clone_url(links),
            web_url=(links.get("html") or {}).get("href", ""),
            default_branch=mainbranch.get("name") or "main",
            is_private=bool(raw.get("is_private", True)),
            is_fork=raw.get("parent") is not None,
            # API 2.0 has no archived flag.
            is_archived=False,
            language=raw.get("language") or None,
            # Bytes in the API, KB in the model.
            size=(parse_int(raw.get("size"), 0) or 0) // 1024,
            created_at=parse_timestamp(raw.get("created_on")),
            updated_at=updated_at,
            last_activity_at=updated_at,
            owner_id=owner.get("uuid", ""),
            owner_name=workspace,
            owner_type=(owner.get("type") or "user").lower(),
        )
