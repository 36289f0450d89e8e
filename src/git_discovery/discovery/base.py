"""Port: provider-agnostic repository discovery."""

from __future__ import annotations

from typing import Protocol

from git_discovery.models import (
    ConnectionConfig,
    DiscoveryPage,
    ProviderType,
    RepositoryFilter,
    RepositoryMetadata,
)


class RepositoryDiscoveryPort(Protocol):
    """Port implemented once per Git hosting provider.

    Every I/O operation is a coroutine; cancelling the awaiting task aborts
    the in-flight request. Failures of listing/search operations raise a
    ``DiscoveryError`` subclass -- an empty list always means "no results".
    """

    async def test_connection(self, config: ConnectionConfig) -> bool:
        """Make a lightweight authenticated call; False on any ordinary failure."""
        ...

    async def discover_all_repositories(
        self,
        config: ConnectionConfig,
    ) -> list[RepositoryMetadata]:
        """Every repository the authenticated principal can access, in stable order."""
        ...

    async def discover_organization_repositories(
        self,
        config: ConnectionConfig,
        organization_id: str,
    ) -> list[RepositoryMetadata]:
        """Repositories of one organization/group/workspace."""
        ...

    async def search_repositories(
        self,
        config: ConnectionConfig,
        query: str,
    ) -> list[RepositoryMetadata]:
        """Free-text search; never stricter than substring-on-name."""
        ...

    async def discover_repositories_with_filter(
        self,
        config: ConnectionConfig,
        repository_filter: RepositoryFilter | None,
    ) -> list[RepositoryMetadata]:
        """All repositories matching every active predicate of the filter."""
        ...

    async def discover_repositories_page(
        self,
        config: ConnectionConfig,
        page: int,
        per_page: int,
    ) -> DiscoveryPage:
        """One 1-based page; ``per_page`` is clamped to the advertised maximum."""
        ...

    @property
    def supported_provider(self) -> ProviderType: ...

    def supports_connection(self, config: ConnectionConfig | None) -> bool:
        """Provider matches and the config passes structural validation (no I/O)."""
        ...

    @property
    def max_repositories_per_call(self) -> int: ...

    @property
    def supports_advanced_filtering(self) -> bool: ...
