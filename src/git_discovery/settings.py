"""Runtime settings read from the environment by the composition root."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

_ENV_PREFIX = "GIT_DISCOVERY_"


@dataclass(frozen=True, slots=True)
class DiscoverySettings:
    """HTTP and pagination settings shared by every provider adapter.

    Attributes:
        timeout_seconds: Read/write/pool timeout for upstream calls.
        connect_timeout_seconds: TCP/TLS connect timeout.
        retries: Connect retries performed by the httpx transport.
        max_pages: Upper bound on pages followed by full listings
            (None = follow until the provider reports no more pages).
        user_agent: User-Agent sent to every provider.
    """

    timeout_seconds: float = 30.0
    connect_timeout_seconds: float = 10.0
    retries: int = 3
    max_pages: int | None = None
    user_agent: str = "git-discovery"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> DiscoverySettings:
        env = os.environ if environ is None else environ
        defaults = cls()
        max_pages = _read_int(env, "MAX_PAGES", None)
        return cls(
            timeout_seconds=_read_float(env, "TIMEOUT", defaults.timeout_seconds),
            connect_timeout_seconds=_read_float(
                env, "CONNECT_TIMEOUT", defaults.connect_timeout_seconds
            ),
            retries=max(0, _read_int(env, "RETRIES", defaults.retries) or 0),
            max_pages=max_pages if max_pages and max_pages > 0 else None,
            user_agent=env.get(f"{_ENV_PREFIX}USER_AGENT", "").strip() or defaults.user_agent,
        )

    def build_http_client(self, *, verify: bool = True) -> httpx.AsyncClient:
        """Create an AsyncClient configured from these settings."""
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_seconds, connect=self.connect_timeout_seconds),
            follow_redirects=True,
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            transport=httpx.AsyncHTTPTransport(retries=self.retries, verify=verify),
            headers={"User-Agent": self.user_agent},
        )


def _read_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(f"{_ENV_PREFIX}{name}", "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s%s=%r; using %s", _ENV_PREFIX, name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s%s=%r; using %s", _ENV_PREFIX, name, raw, default)
        return default
    return value


def _read_int(env: Mapping[str, str], name: str, default: int | None) -> int | None:
    raw = env.get(f"{_ENV_PREFIX}{name}", "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s%s=%r; using %s", _ENV_PREFIX, name, raw, default)
        return default
