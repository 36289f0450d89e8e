"""Ports: per-provider validation rules and the credential validator."""

from __future__ import annotations

from typing import Protocol

from git_discovery.models import (
    ConnectionConfig,
    ProviderType,
    SecretBuffer,
    ValidationVerdict,
    VerdictBuilder,
)


class ProviderRule(Protocol):
    """Validation behaviour owned by a single provider type."""

    @property
    def provider(self) -> ProviderType: ...

    def url_shape_matches(self, url: str) -> bool:
        """Return True if ``url`` is an acceptable base URL for this provider."""
        ...

    def advisory_checks(self, config: ConnectionConfig, builder: VerdictBuilder) -> None:
        """Add provider-specific warnings or info. Must never add errors."""
        ...

    def guidance_text(self) -> str:
        """Static, human-readable setup guidance."""
        ...


class CredentialValidatorPort(Protocol):
    """Port for structural validation of connection configurations."""

    def validate_connection(self, config: ConnectionConfig | None) -> ValidationVerdict: ...

    def validate_credentials(
        self,
        username: str | None,
        secret: SecretBuffer | None,
    ) -> ValidationVerdict: ...

    def is_valid_url_for_provider(self, provider: ProviderType | None, url: str | None) -> bool: ...

    def get_validation_suggestions(self, provider: ProviderType | str | None) -> str: ...
