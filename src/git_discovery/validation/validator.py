"""Structural validation of Git provider connection configurations.

Pure functions: no I/O, no shared state, never raise for malformed input.
Every check runs and accumulates into a fresh VerdictBuilder, so one call
reports every problem at once.
"""

from __future__ import annotations

import logging
import re

from git_discovery.models import (
    ConnectionConfig,
    ProviderType,
    SecretBuffer,
    ValidationVerdict,
    VerdictBuilder,
)
from git_discovery.validation.rules import get_rule

logger = logging.getLogger(__name__)

_USERNAME_RE = re.compile(r"[a-zA-Z0-9._-]+")
_MAX_USERNAME_LENGTH = 100
_MIN_SECRET_LENGTH = 1
_MAX_SECRET_LENGTH = 1000
_SCHEMES = ("http://", "https://")


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def validate_connection(config: ConnectionConfig | None) -> ValidationVerdict:
    """Validate a connection configuration.

    Args:
        config: The configuration to check. ``None`` is reported as invalid.

    Returns:
        A ValidationVerdict; ``is_valid`` is True iff no errors were found.
    """
    if config is None:
        return ValidationVerdict.invalid("Connection cannot be null")

    builder = VerdictBuilder()

    if config.provider is None:
        builder.add_error("Provider type is required")

    _check_base_url(config.provider, config.base_url, builder)
    _check_api_url(config.api_url, builder)
    _check_username(config.username, builder)
    _check_secret(config.secret, builder)

    rule = get_rule(config.provider)
    if rule is not None:
        rule.advisory_checks(config, builder)

    verdict = builder.build()
    logger.debug(
        "Validated %r: %d error(s), %d warning(s)",
        config,
        len(verdict.errors),
        len(verdict.warnings),
    )
    return verdict


def validate_credentials(
    username: str | None,
    secret: SecretBuffer | None,
) -> ValidationVerdict:
    """Validate only the username and secret, e.g. during password rotation."""
    builder = VerdictBuilder()
    _check_username(username, builder)
    _check_secret(secret, builder)
    return builder.build()


def is_valid_url_for_provider(provider: ProviderType | None, url: str | None) -> bool:
    """Quick URL-shape check without running full validation."""
    if _is_blank(url):
        return False
    rule = get_rule(provider)
    if rule is None:
        return False
    return rule.url_shape_matches(url)


def get_validation_suggestions(provider: ProviderType | str | None) -> str:
    """Return static setup guidance for a provider.

    Accepts a ProviderType or its name; never raises.
    """
    if provider is None or provider == "":
        return "Please select a Git provider type"
    if isinstance(provider, str) and not isinstance(provider, ProviderType):
        provider = ProviderType.parse(provider)
    rule = get_rule(provider)
    if rule is None:
        return "Please select a supported Git provider"
    return rule.guidance_text()


# ─── Individual checks ───────────────────────────────────────


def _check_base_url(
    provider: ProviderType | None,
    base_url: str | None,
    builder: VerdictBuilder,
) -> None:
    if _is_blank(base_url):
        builder.add_error("Base URL is required")
        return
    if not base_url.startswith(_SCHEMES):
        builder.add_error("URL must start with http:// or https://")
        return
    if provider is not None and not is_valid_url_for_provider(provider, base_url):
        name = provider.display_name if isinstance(provider, ProviderType) else str(provider)
        builder.add_error(f"URL format is not valid for {name}")


def _check_api_url(api_url: str | None, builder: VerdictBuilder) -> None:
    # API endpoints are not shape-checked: Enterprise/Server installs vary.
    if _is_blank(api_url):
        builder.add_error("API URL is required")
    elif not api_url.startswith(_SCHEMES):
        builder.add_error("API URL must start with http:// or https://")


def _check_username(username: str | None, builder: VerdictBuilder) -> None:
    if _is_blank(username):
        builder.add_error("Username is required")
    elif len(username) > _MAX_USERNAME_LENGTH:
        builder.add_error(
            f"Username is too long (maximum {_MAX_USERNAME_LENGTH} characters)"
        )
    elif _USERNAME_RE.fullmatch(username) is None:
        builder.add_error(
            "Username contains invalid characters "
            "(only letters, numbers, dots, hyphens, and underscores allowed)"
        )


def _check_secret(secret: SecretBuffer | None, builder: VerdictBuilder) -> None:
    if secret is None or len(secret) == 0:
        builder.add_error("Password is required")
    elif secret.char_count() < _MIN_SECRET_LENGTH:
        builder.add_error("Password is too short")
    elif secret.char_count() > _MAX_SECRET_LENGTH:
        builder.add_error("Password is too long")
    elif secret.contains_null():
        # NUL bytes truncate or smuggle data through native/C-level calls.
        builder.add_error("Password contains invalid characters")


class DefaultCredentialValidator:
    """Adapter for CredentialValidatorPort over the module functions."""

    def validate_connection(self, config: ConnectionConfig | None) -> ValidationVerdict:
        return validate_connection(config)

    def validate_credentials(
        self,
        username: str | None,
        secret: SecretBuffer | None,
    ) -> ValidationVerdict:
        return validate_credentials(username, secret)

    def is_valid_url_for_provider(self, provider: ProviderType | None, url: str | None) -> bool:
        return is_valid_url_for_provider(provider, url)

    def get_validation_suggestions(self, provider: ProviderType | str | None) -> str:
        return get_validation_suggestions(provider)
