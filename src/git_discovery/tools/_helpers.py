"""Helpers shared by the tool functions."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from mcp.server.fastmcp import Context

from git_discovery.errors import UnsupportedError
from git_discovery.models import ConnectionConfig, ProviderType, SecretBuffer, ValidationVerdict

if TYPE_CHECKING:
    from git_discovery.server import AppContext


def get_context(ctx: Context) -> AppContext:
    """Extract AppContext from FastMCP's lifespan context.

    Raises TypeError if the lifespan context is not an AppContext instance.
    This catches misconfiguration early with a clear error message.
    """
    from git_discovery.server import AppContext

    app = ctx.request_context.lifespan_context
    if not isinstance(app, AppContext):
        msg = (
            f"Expected AppContext in lifespan_context, got {type(app).__name__}. "
            "Is the server configured with app_lifespan?"
        )
        raise TypeError(msg)
    return app


@contextmanager
def connection_from_args(
    provider: str,
    username: str,
    password: str,
    *,
    base_url: str = "",
    api_url: str = "",
    verify_ssl: bool = True,
    self_hosted: bool = False,
) -> Iterator[ConnectionConfig]:
    """Build a ConnectionConfig from tool arguments.

    The password is copied into a SecretBuffer that is wiped when the block
    exits, whatever the outcome. An unknown provider yields a config with
    ``provider=None`` so validation reports it instead of raising.
    """
    secret = SecretBuffer.from_str(password or "")
    try:
        provider_type = ProviderType.parse(provider)
        if provider_type is None:
            config = ConnectionConfig(
                provider=None,
                base_url=base_url or None,
                api_url=api_url or None,
                username=username or None,
                secret=secret,
                verify_ssl=verify_ssl,
                self_hosted=self_hosted,
            )
        else:
            config = ConnectionConfig.for_provider(
                provider_type,
                username,
                secret,
                base_url=base_url or None,
                api_url=api_url or None,
                verify_ssl=verify_ssl,
            )
            if self_hosted and not config.self_hosted:
                config = dataclasses.replace(config, self_hosted=True)
        yield config
    finally:
        secret.wipe()


def validation_failure(verdict: ValidationVerdict) -> dict[str, object]:
    """Tool response for a connection that failed structural validation."""
    return {
        "success": False,
        "error_kind": "invalid_connection",
        "error": "Connection configuration is invalid",
        **verdict.to_dict(),
    }


def unsupported_provider(config: ConnectionConfig) -> dict[str, object]:
    name = config.provider.display_name if config.provider else "unknown provider"
    error = UnsupportedError(f"No repository discovery available for {name}", provider=name)
    return {"success": False, **error.to_dict()}
