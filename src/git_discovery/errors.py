"""Exception hierarchy for git-discovery.

All exceptions inherit from GitDiscoveryError (single catch point).
Validation never raises -- problems are reported through ValidationVerdict.
Discovery failures carry a DiscoveryErrorKind so callers can tell an empty
result from a failed call.
"""

from __future__ import annotations

from enum import StrEnum


class GitDiscoveryError(Exception):
    """Base exception for all git-discovery errors."""


class DiscoveryErrorKind(StrEnum):
    AUTH_FAILURE = "auth_failure"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    NETWORK_ERROR = "network_error"
    UNSUPPORTED = "unsupported"
    API_ERROR = "api_error"


_RECOVERABLE_KINDS = frozenset(
    {
        DiscoveryErrorKind.NETWORK_ERROR,
        DiscoveryErrorKind.RATE_LIMITED,
        DiscoveryErrorKind.API_ERROR,
    }
)

_DEFAULT_SUGGESTIONS: dict[DiscoveryErrorKind, str] = {
    DiscoveryErrorKind.AUTH_FAILURE: "Verify your username and password or token are correct.",
    DiscoveryErrorKind.NOT_FOUND: "Check the URL, the organization name and your permissions.",
    DiscoveryErrorKind.RATE_LIMITED: "Wait for the rate limit window to reset before retrying.",
    DiscoveryErrorKind.NETWORK_ERROR: "Check your network connection and the server URL.",
    DiscoveryErrorKind.UNSUPPORTED: "Choose a provider that supports this operation.",
    DiscoveryErrorKind.API_ERROR: "The provider returned an unexpected error. Retry later.",
}


class DiscoveryError(GitDiscoveryError):
    """A repository discovery call failed.

    Attributes:
        kind: Classified cause of the failure.
        provider: Display name of the provider, when known.
        suggestion: Human-readable recovery hint.
        status_code: Upstream HTTP status, when the failure came from a response.
        retry_after: Seconds the provider asked us to wait (rate limits only).
    """

    kind: DiscoveryErrorKind = DiscoveryErrorKind.API_ERROR

    def __init__(
        self,
        message: str,
        *,
        provider: str = "",
        suggestion: str = "",
        status_code: int | None = None,
        retry_after: int | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.suggestion = suggestion or _DEFAULT_SUGGESTIONS[self.kind]
        self.status_code = status_code
        self.retry_after = retry_after

    @property
    def recoverable(self) -> bool:
        """True when retrying the same call later may succeed."""
        return self.kind in _RECOVERABLE_KINDS

    def user_message(self) -> str:
        prefix = f"{self.provider}: " if self.provider else ""
        return f"{prefix}{self}\n\nSuggestion: {self.suggestion}"

    def to_dict(self) -> dict[str, object]:
        return {
            "error_kind": self.kind.value,
            "error": str(self),
            "provider": self.provider,
            "suggestion": self.suggestion,
            "recoverable": self.recoverable,
            "status_code": self.status_code,
            "retry_after": self.retry_after,
        }


class AuthFailureError(DiscoveryError):
    """Credentials were rejected or lack permission for the resource."""

    kind = DiscoveryErrorKind.AUTH_FAILURE


class NotFoundError(DiscoveryError):
    """The requested resource (organization, workspace, endpoint) does not exist."""

    kind = DiscoveryErrorKind.NOT_FOUND


class RateLimitedError(DiscoveryError):
    """The provider's API rate limit is exhausted."""

    kind = DiscoveryErrorKind.RATE_LIMITED


class NetworkError(DiscoveryError):
    """The provider could not be reached (DNS, TLS, timeout, connection reset)."""

    kind = DiscoveryErrorKind.NETWORK_ERROR


class UnsupportedError(DiscoveryError):
    """The provider or connection is not supported by the selected adapter."""

    kind = DiscoveryErrorKind.UNSUPPORTED


class ProviderApiError(DiscoveryError):
    """The provider answered with an unexpected status or payload."""

    kind = DiscoveryErrorKind.API_ERROR
