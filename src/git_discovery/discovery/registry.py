"""DiscoveryRegistry -- selects the discovery adapter for a provider or connection."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx

from git_discovery.discovery.base import RepositoryDiscoveryPort
from git_discovery.discovery.bitbucket import BitbucketDiscoveryClient
from git_discovery.discovery.github import GitHubDiscoveryClient
from git_discovery.discovery.gitlab import GitLabDiscoveryClient
from git_discovery.models import ConnectionConfig, ProviderType
from git_discovery.settings import DiscoverySettings

logger = logging.getLogger(__name__)


@dataclass
class DiscoveryRegistry:
    """Maps each ProviderType to the adapter that serves it.

    One adapter per provider; registering a second one for the same provider
    replaces the first.
    """

    _adapters: dict[ProviderType, RepositoryDiscoveryPort] = field(default_factory=dict)

    @classmethod
    def default(
        cls,
        http_client: httpx.AsyncClient,
        settings: DiscoverySettings | None = None,
    ) -> DiscoveryRegistry:
        """Registry with the built-in GitHub, GitLab and Bitbucket adapters."""
        registry = cls()
        registry.register(GitHubDiscoveryClient(http_client, settings))
        registry.register(GitLabDiscoveryClient(http_client, settings))
        registry.register(BitbucketDiscoveryClient(http_client, settings))
        return registry

    def register(self, adapter: RepositoryDiscoveryPort) -> None:
        provider = adapter.supported_provider
        if provider in self._adapters:
            logger.debug("Replacing discovery adapter for %s", provider.display_name)
        self._adapters[provider] = adapter

    def for_provider(self, provider: ProviderType | None) -> RepositoryDiscoveryPort | None:
        if provider is None:
            return None
        return self._adapters.get(provider)

    def for_connection(self, config: ConnectionConfig | None) -> RepositoryDiscoveryPort | None:
        """Adapter for the connection's provider, if it accepts the connection."""
        if config is None:
            return None
        adapter = self.for_provider(config.provider)
        if adapter is None or not adapter.supports_connection(config):
            return None
        return adapter

    def supported_providers(self) -> list[ProviderType]:
        return sorted(self._adapters, key=lambda p: p.value)

    def is_supported(self, provider: ProviderType | None) -> bool:
        return provider is not None and provider in self._adapters
