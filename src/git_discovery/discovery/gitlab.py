"""GitLab (gitlab.com and self-managed) discovery adapter.

API docs: https://docs.gitlab.com/ee/api/projects.html
Pagination uses the ``X-Next-Page``, ``X-Total`` and ``X-Total-Pages`` headers.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from git_discovery.auth import private_token_header
from git_discovery.discovery.common import (
    BaseDiscoveryClient,
    PageRequest,
    PageResult,
    parse_int,
    parse_timestamp,
)
from git_discovery.models import ConnectionConfig, ProviderType, RepositoryMetadata

logger = logging.getLogger(__name__)

_NAMESPACE_KINDS = {"group": "group", "user": "user"}


class GitLabDiscoveryClient(BaseDiscoveryClient):
    """Lists projects the authenticated GitLab user is a member of."""

    provider = ProviderType.GITLAB
    max_per_page = 100
    empty_on_unknown_organization = True

    def _auth_headers(self, config: ConnectionConfig) -> dict[str, str]:
        # GitLab's REST API authenticates personal access tokens, not Basic.
        return private_token_header(config)

    def _membership_params(self, per_page: int) -> dict[str, str | int]:
        return {
            "membership": "true",
            "order_by": "id",
            "sort": "asc",
            "per_page": per_page,
        }

    async def _list_request(
        self,
        http: httpx.AsyncClient,
        config: ConnectionConfig,
    ) -> PageRequest:
        return PageRequest(
            f"{config.api_root}/projects",
            self._membership_params(self.default_per_page),
        )

    def _organization_request(self, config: ConnectionConfig, organization_id: str) -> PageRequest:
        return PageRequest(
            f"{config.api_root}/groups/{quote(organization_id, safe='')}/projects",
            {
                "include_subgroups": "true",
                "order_by": "id",
                "sort": "asc",
                "per_page": self.default_per_page,
            },
        )

    async def _search_request(
        self,
        http: httpx.AsyncClient,
        config: ConnectionConfig,
        query: str,
    ) -> PageRequest | None:
        params = self._membership_params(self.default_per_page)
        params["search"] = query
        return PageRequest(f"{config.api_root}/projects", params)

    async def _page_request(
        self,
        http: httpx.AsyncClient,
        config: ConnectionConfig,
        page: int,
        per_page: int,
    ) -> PageRequest:
        params = self._membership_params(per_page)
        params["page"] = page
        return PageRequest(f"{config.api_root}/projects", params)

    def _parse_page(self, response: httpx.Response, request: PageRequest) -> PageResult:
        data = response.json()
        next_page = parse_int(response.headers.get("X-Next-Page"))
        next_request = None
        if next_page is not None:
            next_request = PageRequest(request.url, {**request.params, "page": next_page})
        return PageResult(
            repositories=self._parse_items(data),
            next_request=next_request,
            total_count=parse_int(response.headers.get("X-Total")),
            total_pages=parse_int(response.headers.get("X-Total-Pages")),
        )

    def _parse_repository(self, raw: dict[str, Any]) -> RepositoryMetadata | None:
        project_id = raw.get("id")
        name = raw.get("name")
        if project_id is None or not name:
            logger.debug("Skipping GitLab project without id/name: %r", raw.get("web_url"))
            return None

        namespace = raw.get("namespace") or {}
        statistics = raw.get("statistics") or {}
        repository_size = statistics.get("repository_size", raw.get("repository_size"))
        return RepositoryMetadata(
            id=str(project_id),
            name=name,
            full_name=raw.get("path_with_namespace", name),
            provider=ProviderType.GITLAB,
            description=raw.get("description"),
            clone_url=raw.get("http_url_to_repo", ""),
            web_url=raw.get("web_url", ""),
            default_branch=raw.get("default_branch") or "main",
            is_private=raw.get("visibility", "private") != "public",
            is_fork=raw.get("forked_from_project") is not None,
            is_archived=bool(raw.get("archived", False)),
            # Bytes in the API, KB in the model.
            size=(parse_int(repository_size, 0) or 0) // 1024,
            star_count=parse_int(raw.get("star_count"), 0) or 0,
            fork_count=parse_int(raw.get("forks_count"), 0) or 0,
            created_at=parse_timestamp(raw.get("created_at")),
            updated_at=parse_timestamp(raw.get("updated_at")),
            last_activity_at=parse_timestamp(raw.get("last_activity_at")),
            owner_id=str(namespace.get("id", "")),
            owner_name=namespace.get("path", ""),
            owner_type=_NAMESPACE_KINDS.get(namespace.get("kind", ""), "user"),
            topics=tuple(raw.get("topics") or raw.get("tag_list") or ()),
        )
