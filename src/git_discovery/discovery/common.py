"""Shared machinery for provider discovery adapters.

BaseDiscoveryClient implements the provider-agnostic parts of
RepositoryDiscoveryPort once -- pagination loops, page clamping, filtering,
error classification and per-connection HTTP client selection. Subclasses
describe only their endpoints and payload shapes.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, ClassVar

import httpx

from git_discovery.auth import authorization_header
from git_discovery.errors import (
    AuthFailureError,
    DiscoveryError,
    NetworkError,
    NotFoundError,
    ProviderApiError,
    RateLimitedError,
)
from git_discovery.models import (
    ConnectionConfig,
    DiscoveryPage,
    ProviderType,
    RepositoryFilter,
    RepositoryMetadata,
    pages_for,
)
from git_discovery.settings import DiscoverySettings
from git_discovery.validation.validator import validate_connection

logger = logging.getLogger(__name__)

_DEFAULT_PER_PAGE = 100


@dataclass(frozen=True, slots=True)
class PageRequest:
    """A single upstream GET: absolute URL plus query parameters."""

    url: str
    params: dict[str, str | int] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class PageResult:
    """A parsed upstream page and the request for the page after it, if any."""

    repositories: list[RepositoryMetadata]
    next_request: PageRequest | None = None
    total_count: int | None = None
    total_pages: int | None = None


# ─── Payload helpers ─────────────────────────────────────────


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware datetime (UTC if naive)."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable timestamp: %r", value)
        return None
    return parsed.replace(tzinfo=UTC) if parsed.tzinfo is None else parsed


def parse_int(value: object, default: int | None = None) -> int | None:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _error_message(response: httpx.Response) -> str:
    """Best-effort extraction of the provider's error message."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if not isinstance(body, dict):
        return ""
    message = body.get("message")
    if isinstance(message, str):
        return message
    error = body.get("error")
    if isinstance(error, dict):
        return str(error.get("message", ""))
    if isinstance(error, str):
        return error
    return ""


def _retry_after(response: httpx.Response) -> int | None:
    retry_after = parse_int(response.headers.get("Retry-After"))
    if retry_after is not None:
        return retry_after
    reset_epoch = parse_int(response.headers.get("X-RateLimit-Reset"))
    if reset_epoch is not None:
        return max(0, int(reset_epoch - time.time()))
    return None


def _is_rate_limited(response: httpx.Response) -> bool:
    if response.status_code == 429:
        return True
    if response.status_code != 403:
        return False
    if response.headers.get("X-RateLimit-Remaining") == "0":
        return True
    return "rate limit" in response.text.lower()


def classify_response(
    response: httpx.Response,
    *,
    provider: ProviderType,
    operation: str,
) -> DiscoveryError | None:
    """Map a non-success response to a classified DiscoveryError.

    Returns None for 2xx responses.
    """
    status = response.status_code
    if 200 <= status < 300:
        return None

    name = provider.display_name
    detail = _error_message(response)
    message = f"{name} API error during {operation} (HTTP {status})"
    if detail:
        message += f": {detail}"

    if _is_rate_limited(response):
        retry_after = _retry_after(response)
        suggestion = (
            f"Please wait {retry_after} seconds before retrying."
            if retry_after is not None
            else ""
        )
        return RateLimitedError(
            message,
            provider=name,
            suggestion=suggestion,
            status_code=status,
            retry_after=retry_after,
        )
    if status == 401:
        return AuthFailureError(
            message,
            provider=name,
            suggestion="Authentication failed - check your username and password or token.",
            status_code=status,
        )
    if status == 403:
        return AuthFailureError(
            message,
            provider=name,
            suggestion="Access forbidden - ensure your account can view these repositories.",
            status_code=status,
        )
    if status == 404:
        return NotFoundError(message, provider=name, status_code=status)
    return ProviderApiError(message, provider=name, status_code=status)


def _require_config(config: ConnectionConfig | None) -> ConnectionConfig:
    if config is None:
        raise ValueError("config is required")
    return config


# ─── Base adapter ────────────────────────────────────────────


class BaseDiscoveryClient:
    """Provider-agnostic half of a RepositoryDiscoveryPort adapter.

    Subclasses set the class attributes and implement the request/parse
    hooks. Instances hold only the shared HTTP client and settings, so one
    adapter can serve concurrent calls for different connections.
    """

    provider: ClassVar[ProviderType]
    max_per_page: ClassVar[int] = 100
    accept: ClassVar[str] = "application/json"
    # Whether a 404 for an organization means "no repositories" (True) or
    # is surfaced as NotFoundError (False).
    empty_on_unknown_organization: ClassVar[bool] = True

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: DiscoverySettings | None = None,
    ) -> None:
        self._http = http_client
        self._settings = settings or DiscoverySettings()

    # ── Capabilities ─────────────────────────────────────────

    @property
    def supported_provider(self) -> ProviderType:
        return self.provider

    @property
    def max_repositories_per_call(self) -> int:
        return self.max_per_page

    @property
    def supports_advanced_filtering(self) -> bool:
        # Filters are applied client-side over the full listing, so every
        # RepositoryFilter dimension is honoured.
        return True

    def supports_connection(self, config: ConnectionConfig | None) -> bool:
        return (
            config is not None
            and config.provider == self.provider
            and validate_connection(config).is_valid
        )

    # ── Operations ───────────────────────────────────────────

    async def test_connection(self, config: ConnectionConfig) -> bool:
        _require_config(config)
        name = self.provider.display_name
        try:
            async with self._client_for(config) as http:
                response = await http.get(
                    f"{config.api_root}/user",
                    headers=self._headers(config),
                )
        except Exception as exc:
            logger.warning("%s connection test failed: %s", name, type(exc).__name__)
            return False

        if response.status_code == 200:
            logger.info("%s connection test successful for %s", name, config.base_url)
            return True
        logger.warning("%s connection test failed with HTTP %d", name, response.status_code)
        return False

    async def discover_all_repositories(
        self,
        config: ConnectionConfig,
    ) -> list[RepositoryMetadata]:
        _require_config(config)
        async with self._client_for(config) as http:
            request = await self._list_request(http, config)
            repositories = await self._collect(http, config, request, "list repositories")
        logger.info(
            "Discovered %d repositories from %s",
            len(repositories),
            self.provider.display_name,
        )
        return repositories

    async def discover_organization_repositories(
        self,
        config: ConnectionConfig,
        organization_id: str,
    ) -> list[RepositoryMetadata]:
        _require_config(config)
        if not organization_id or not organization_id.strip():
            raise ValueError("organization_id is required")
        organization_id = organization_id.strip()

        async with self._client_for(config) as http:
            request = self._organization_request(config, organization_id)
            try:
                return await self._collect(
                    http, config, request, f"list repositories of '{organization_id}'"
                )
            except NotFoundError:
                if not self.empty_on_unknown_organization:
                    raise
                logger.info(
                    "%s organization '%s' not found; returning no repositories",
                    self.provider.display_name,
                    organization_id,
                )
                return []

    async def search_repositories(
        self,
        config: ConnectionConfig,
        query: str,
    ) -> list[RepositoryMetadata]:
        _require_config(config)
        if not query or not query.strip():
            raise ValueError("query is required")
        query = query.strip()

        async with self._client_for(config) as http:
            request = await self._search_request(http, config, query)
            if request is None:
                request = await self._list_request(http, config)
                repositories = await self._collect(http, config, request, "search repositories")
                return [r for r in repositories if RepositoryFilter(search_query=query).matches(r)]
            return await self._collect(http, config, request, "search repositories")

    async def discover_repositories_with_filter(
        self,
        config: ConnectionConfig,
        repository_filter: RepositoryFilter | None,
    ) -> list[RepositoryMetadata]:
        repositories = await self.discover_all_repositories(config)
        if repository_filter is None or not repository_filter.has_active_criteria:
            return repositories
        matched = [r for r in repositories if repository_filter.matches(r)]
        logger.debug(
            "Filter %s kept %d of %d repositories",
            repository_filter.active_dimensions(),
            len(matched),
            len(repositories),
        )
        return matched

    async def discover_repositories_page(
        self,
        config: ConnectionConfig,
        page: int,
        per_page: int,
    ) -> DiscoveryPage:
        _require_config(config)
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        per_page = max(1, min(per_page, self.max_per_page))

        async with self._client_for(config) as http:
            request = await self._page_request(http, config, page, per_page)
            try:
                response = await self._get(http, config, request, "fetch repositories page")
            except NotFoundError:
                # Some providers answer 404 for an out-of-range page.
                if page > 1:
                    return DiscoveryPage.empty(page, per_page)
                raise

        result = self._parse_page(response, request)
        repositories = tuple(result.repositories[:per_page])
        total_pages = result.total_pages
        if total_pages is None and result.total_count is not None:
            total_pages = pages_for(result.total_count, per_page)
        return DiscoveryPage(
            repositories=repositories,
            page=page,
            per_page=per_page,
            has_more=bool(repositories) and result.next_request is not None,
            total_count=result.total_count,
            total_pages=total_pages,
        )

    # ── Provider hooks ───────────────────────────────────────

    async def _list_request(
        self,
        http: httpx.AsyncClient,
        config: ConnectionConfig,
    ) -> PageRequest:
        raise NotImplementedError

    def _organization_request(self, config: ConnectionConfig, organization_id: str) -> PageRequest:
        raise NotImplementedError

    async def _search_request(
        self,
        http: httpx.AsyncClient,
        config: ConnectionConfig,
        query: str,
    ) -> PageRequest | None:
        """Upstream search request, or None to filter the full listing locally."""
        return None

    async def _page_request(
        self,
        http: httpx.AsyncClient,
        config: ConnectionConfig,
        page: int,
        per_page: int,
    ) -> PageRequest:
        raise NotImplementedError

    def _parse_page(self, response: httpx.Response, request: PageRequest) -> PageResult:
        raise NotImplementedError

    def _parse_repository(self, raw: dict[str, Any]) -> RepositoryMetadata | None:
        raise NotImplementedError

    def _auth_headers(self, config: ConnectionConfig) -> dict[str, str]:
        return {"Authorization": authorization_header(config)}

    # ── HTTP plumbing ────────────────────────────────────────

    @property
    def default_per_page(self) -> int:
        return min(_DEFAULT_PER_PAGE, self.max_per_page)

    def _headers(self, config: ConnectionConfig) -> dict[str, str]:
        return {"Accept": self.accept, **self._auth_headers(config)}

    @asynccontextmanager
    async def _client_for(self, config: ConnectionConfig) -> AsyncIterator[httpx.AsyncClient]:
        """Yield the shared client, or a throwaway one when SSL checks are off."""
        if config.verify_ssl:
            yield self._http
            return
        async with self._settings.build_http_client(verify=False) as client:
            yield client

    async def _get(
        self,
        http: httpx.AsyncClient,
        config: ConnectionConfig,
        request: PageRequest,
        operation: str,
    ) -> httpx.Response:
        name = self.provider.display_name
        try:
            response = await http.get(
                request.url,
                params=request.params or None,
                headers=self._headers(config),
            )
        except httpx.TimeoutException as exc:
            raise NetworkError(
                f"Timed out connecting to {name} during {operation}",
                provider=name,
            ) from exc
        except (httpx.TransportError, httpx.InvalidURL) as exc:
            raise NetworkError(
                f"Failed to reach {name} during {operation}: {exc}",
                provider=name,
            ) from exc

        error = classify_response(response, provider=self.provider, operation=operation)
        if error is not None:
            logger.warning("%s", error)
            raise error
        return response

    async def _collect(
        self,
        http: httpx.AsyncClient,
        config: ConnectionConfig,
        request: PageRequest,
        operation: str,
    ) -> list[RepositoryMetadata]:
        """Follow pagination from ``request`` and return de-duplicated results."""
        repositories: list[RepositoryMetadata] = []
        seen: set[str] = set()
        max_pages = self._settings.max_pages
        pages = 0
        current: PageRequest | None = request

        while current is not None:
            response = await self._get(http, config, current, operation)
            result = self._parse_page(response, current)
            pages += 1
            for repo in result.repositories:
                if repo.id in seen:
                    continue
                seen.add(repo.id)
                repositories.append(repo)

            if not result.repositories:
                break
            current = result.next_request
            if current is not None and max_pages is not None and pages >= max_pages:
                logger.warning(
                    "Stopped %s after %d pages (max_pages); results are truncated",
                    operation,
                    pages,
                )
                break

        return repositories

    def _parse_items(self, items: object) -> list[RepositoryMetadata]:
        if not isinstance(items, list):
            return []
        repositories: list[RepositoryMetadata] = []
        for raw in items:
            if not isinstance(raw, dict):
                continue
            repo = self._parse_repository(raw)
            if repo is not None:
                repositories.append(repo)
        return repositories
