"""validate_connection and provider_guidance tools -- offline checks, no network I/O."""

from __future__ import annotations

from mcp.server.fastmcp import Context

from git_discovery.models import ProviderType
from git_discovery.tools._helpers import connection_from_args, get_context


async def validate_connection(
    provider: str,
    username: str,
    password: str,
    ctx: Context,
    base_url: str = "",
    api_url: str = "",
    verify_ssl: bool = True,
    self_hosted: bool = False,
) -> dict[str, object]:
    """Check a Git provider connection's settings without contacting the provider.

    Every problem is reported at once: missing or malformed URLs, a username
    with invalid characters, an empty or oversized password, plus warnings
    (e.g. SSL verification disabled for github.com) and informational notes.

    Args:
        provider: "github", "gitlab" or "bitbucket".
        username: Account name on the provider.
        password: Password, personal access token or app password.
            Never echoed back.
        base_url: Web URL of the instance. Defaults to the provider's
            public site (github.com, gitlab.com, bitbucket.org).
        api_url: REST API root. Derived from base_url when empty.
        verify_ssl: Set False only for self-signed test instances.
        self_hosted: Mark the connection as a self-hosted instance.

    Returns:
        valid flag, errors, warnings, info and a one-line-per-finding summary.
    """
    app = get_context(ctx)
    with connection_from_args(
        provider,
        username,
        password,
        base_url=base_url,
        api_url=api_url,
        verify_ssl=verify_ssl,
        self_hosted=self_hosted,
    ) as config:
        verdict = app.validator.validate_connection(config)
        return {
            "provider": config.provider.value if config.provider else provider,
            "base_url": config.base_url,
            "api_url": config.api_url,
            "self_hosted": config.self_hosted,
            **verdict.to_dict(),
            "summary": verdict.summary(),
        }


async def provider_guidance(
    provider: str,
    ctx: Context,
    url: str = "",
) -> dict[str, object]:
    """Explain what to enter when connecting to a Git provider.

    Args:
        provider: "github", "gitlab" or "bitbucket".
        url: Optional base URL to check against the provider's accepted
            URL shapes (e.g. GitHub Enterprise must end in /api/v3).

    Returns:
        Setup guidance text, the supported providers, and ``url_valid``
        when a URL was given.
    """
    app = get_context(ctx)
    provider_type = ProviderType.parse(provider)
    result: dict[str, object] = {
        "provider": provider_type.value if provider_type else provider,
        "supported": app.discovery.is_supported(provider_type),
        "guidance": app.validator.get_validation_suggestions(provider_type or provider),
        "supported_providers": [p.value for p in app.discovery.supported_providers()],
    }
    if provider_type is not None:
        result["default_base_url"] = provider_type.default_web_url
        result["default_api_url"] = provider_type.default_api_url
    if url:
        result["url_valid"] = app.validator.is_valid_url_for_provider(provider_type, url)
    return result
