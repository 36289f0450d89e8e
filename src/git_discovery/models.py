"""Domain models for git-discovery.

Value types are frozen dataclasses -- no mutation after creation. The one
deliberate exception is SecretBuffer, which owns a wipeable byte buffer so a
credential's lifetime in memory can be bounded by the caller.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from urllib.parse import urlsplit

# ─── Providers ────────────────────────────────────────────────


class ProviderType(StrEnum):
    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"

    @property
    def display_name(self) -> str:
        return _PROVIDER_DEFAULTS[self][0]

    @property
    def default_api_url(self) -> str:
        return _PROVIDER_DEFAULTS[self][1]

    @property
    def default_web_url(self) -> str:
        return _PROVIDER_DEFAULTS[self][2]

    @property
    def self_hosted_api_suffix(self) -> str:
        """Path appended to a self-hosted base URL to reach the REST API."""
        return _SELF_HOSTED_API_SUFFIX[self]

    def is_public_url(self, url: str) -> bool:
        """True if ``url`` points at the provider's hosted service (web or API)."""
        return (urlsplit(url).hostname or "") in _PUBLIC_HOSTS[self]

    @classmethod
    def parse(cls, value: str | None) -> ProviderType | None:
        """Case-insensitive lookup by value or member name; None if unknown."""
        if not value:
            return None
        normalized = value.strip().lower()
        for member in cls:
            if normalized in (member.value, member.name.lower()):
                return member
        return None


# (display name, default API URL, default web URL)
_PROVIDER_DEFAULTS: dict[ProviderType, tuple[str, str, str]] = {
    ProviderType.GITHUB: ("GitHub", "https://api.github.com", "https://github.com"),
    ProviderType.GITLAB: ("GitLab", "https://gitlab.com/api/v4", "https://gitlab.com"),
    ProviderType.BITBUCKET: (
        "Bitbucket",
        "https://api.bitbucket.org/2.0",
        "https://bitbucket.org",
    ),
}

_SELF_HOSTED_API_SUFFIX: dict[ProviderType, str] = {
    ProviderType.GITHUB: "/api/v3",  # GitHub Enterprise
    ProviderType.GITLAB: "/api/v4",
    ProviderType.BITBUCKET: "/rest/api/1.0",  # Bitbucket Server
}

_PUBLIC_HOSTS: dict[ProviderType, frozenset[str]] = {
    ProviderType.GITHUB: frozenset({"github.com", "www.github.com", "api.github.com"}),
    ProviderType.GITLAB: frozenset({"gitlab.com", "www.gitlab.com"}),
    ProviderType.BITBUCKET: frozenset(
        {"bitbucket.org", "www.bitbucket.org", "api.bitbucket.org"}
    ),
}


# ─── Credentials ──────────────────────────────────────────────


class SecretBuffer:
    """A password or token held as a mutable, wipeable UTF-8 byte buffer.

    Use as a context manager to scope the secret's lifetime::

        with SecretBuffer.from_str(token) as secret:
            config = ConnectionConfig.for_provider(ProviderType.GITHUB, "me", secret)
            ...

    The buffer is zero-filled on exit. ``repr`` never shows the content.
    """

    __slots__ = ("_data", "_wiped")

    def __init__(self, data: bytes | bytearray = b"") -> None:
        self._data = bytearray(data)
        self._wiped = False

    @classmethod
    def from_str(cls, value: str) -> SecretBuffer:
        return cls(value.encode("utf-8"))

    def __len__(self) -> int:
        return len(self._data)

    def char_count(self) -> int:
        """Number of characters, counted from UTF-8 lead bytes without decoding."""
        return sum(1 for b in self._data if b & 0xC0 != 0x80)

    def __bool__(self) -> bool:
        return len(self._data) > 0

    def __repr__(self) -> str:
        state = "wiped" if self._wiped else f"{len(self._data)} bytes"
        return f"SecretBuffer(<redacted>, {state})"

    def __enter__(self) -> SecretBuffer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.wipe()

    @property
    def wiped(self) -> bool:
        return self._wiped

    def contains_null(self) -> bool:
        return 0 in self._data

    def reveal(self) -> str:
        """Return the secret as text for the HTTP layer.

        The returned string is immutable and outlives ``wipe()`` -- keep its
        scope as short as possible.
        """
        if self._wiped:
            raise ValueError("Secret has already been wiped")
        return self._data.decode("utf-8")

    def to_bytearray(self) -> bytearray:
        """Return an independent copy the caller is responsible for wiping."""
        if self._wiped:
            raise ValueError("Secret has already been wiped")
        return bytearray(self._data)

    def wipe(self) -> None:
        for i in range(len(self._data)):
            self._data[i] = 0
        self._data.clear()
        self._wiped = True


@dataclass(frozen=True, slots=True)
class ConnectionConfig:
    """Connection settings for one Git hosting provider.

    Owned by the caller and lent to the validator and discovery adapters,
    neither of which mutates it. The secret is excluded from ``repr``.
    """

    provider: ProviderType | None
    base_url: str | None = None
    api_url: str | None = None
    username: str | None = None
    secret: SecretBuffer | None = field(default=None, repr=False, compare=False)
    verify_ssl: bool = True
    self_hosted: bool = False

    @classmethod
    def for_provider(
        cls,
        provider: ProviderType,
        username: str,
        secret: SecretBuffer,
        *,
        base_url: str | None = None,
        api_url: str | None = None,
        verify_ssl: bool = True,
    ) -> ConnectionConfig:
        """Build a config, filling default URLs for the provider.

        A base URL on a host other than the provider's public service marks
        the connection as self-hosted; its API URL is derived from the base URL
        unless given. A base URL that already ends in the API suffix (as
        GitHub Enterprise URLs do) is not suffixed twice.
        """
        base = base_url or provider.default_web_url
        self_hosted = not provider.is_public_url(base)
        if api_url is None:
            if self_hosted:
                suffix = provider.self_hosted_api_suffix
                api_url = base.rstrip("/").removesuffix(suffix) + suffix
            else:
                api_url = provider.default_api_url
        return cls(
            provider=provider,
            base_url=base,
            api_url=api_url,
            username=username,
            secret=secret,
            verify_ssl=verify_ssl,
            self_hosted=self_hosted,
        )

    @property
    def api_root(self) -> str:
        return (self.api_url or "").rstrip("/")


# ─── Validation ───────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ValidationVerdict:
    """Outcome of a validation pass. Valid iff there are no errors."""

    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    info: tuple[str, ...] = ()

    @classmethod
    def invalid(cls, message: str) -> ValidationVerdict:
        return cls(errors=(message,))

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def has_info(self) -> bool:
        return bool(self.info)

    def summary(self) -> str:
        lines: list[str] = []
        lines.extend(f"Error: {m}" for m in self.errors)
        lines.extend(f"Warning: {m}" for m in self.warnings)
        lines.extend(f"Info: {m}" for m in self.info)
        if not lines:
            return "Connection configuration is valid"
        return "\n".join(lines)

    def to_dict(self) -> dict[str, object]:
        return {
            "valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "info": list(self.info),
        }


@dataclass(slots=True)
class VerdictBuilder:
    """Accumulates findings for one validation pass, then freezes them."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    info: list[str] = field(default_factory=list)

    def add_error(self, message: str) -> VerdictBuilder:
        self.errors.append(message)
        return self

    def add_warning(self, message: str) -> VerdictBuilder:
        self.warnings.append(message)
        return self

    def add_info(self, message: str) -> VerdictBuilder:
        self.info.append(message)
        return self

    def build(self) -> ValidationVerdict:
        return ValidationVerdict(
            errors=tuple(self.errors),
            warnings=tuple(self.warnings),
            info=tuple(self.info),
        )


# ─── Discovery ────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class RepositoryMetadata:
    """A repository as reported by a provider adapter."""

    id: str
    name: str
    full_name: str
    provider: ProviderType
    description: str | None = None
    clone_url: str = ""
    web_url: str = ""
    default_branch: str = "main"
    is_private: bool = False
    is_fork: bool = False
    is_archived: bool = False
    language: str | None = None
    size: int = 0  # KB
    star_count: int = 0
    fork_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_activity_at: datetime | None = None
    owner_id: str = ""
    owner_name: str = ""
    owner_type: str = "user"  # user, organization, group, team
    topics: tuple[str, ...] = ()

    @property
    def visibility(self) -> str:
        return "private" if self.is_private else "public"

    @property
    def most_recent_activity(self) -> datetime | None:
        candidates = [d for d in (self.updated_at, self.last_activity_at) if d is not None]
        return max(candidates) if candidates else None

    @property
    def formatted_size(self) -> str:
        if self.size < 1024:
            return f"{self.size} KB"
        if self.size < 1024 * 1024:
            return f"{self.size / 1024:.1f} MB"
        return f"{self.size / (1024 * 1024):.1f} GB"

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["provider"] = self.provider.value
        data["topics"] = list(self.topics)
        for key in ("created_at", "updated_at", "last_activity_at"):
            value = data[key]
            data[key] = value.isoformat() if value is not None else None
        return data


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with provider timestamps."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


@dataclass(frozen=True, slots=True)
class RepositoryFilter:
    """Optional predicates combined with AND. ``None`` means no constraint.

    The ``include_*`` flags only ever exclude: ``False`` drops repositories
    with that property, ``True`` and ``None`` keep them.
    """

    search_query: str | None = None
    languages: frozenset[str] | None = None
    include_private: bool | None = None
    include_forks: bool | None = None
    include_archived: bool | None = None
    updated_after: datetime | None = None
    updated_before: datetime | None = None
    min_size: int | None = None
    max_size: int | None = None
    min_stars: int | None = None
    owner_type: str | None = None

    def active_dimensions(self) -> list[str]:
        """Names of the predicates that constrain the result."""
        active: list[str] = []
        if self.search_query and self.search_query.strip():
            active.append("search_query")
        if self.languages:
            active.append("languages")
        for name in (
            "include_private",
            "include_forks",
            "include_archived",
            "updated_after",
            "updated_before",
            "min_size",
            "max_size",
            "min_stars",
        ):
            if getattr(self, name) is not None:
                active.append(name)
        if self.owner_type and self.owner_type.strip():
            active.append("owner_type")
        return active

    @property
    def has_active_criteria(self) -> bool:
        return bool(self.active_dimensions())

    def matches(self, repo: RepositoryMetadata) -> bool:
        if self.search_query and self.search_query.strip():
            query = self.search_query.strip().lower()
            haystacks = (repo.name, repo.full_name, repo.description or "")
            if not any(query in h.lower() for h in haystacks):
                return False

        if self.languages and (repo.language is None or repo.language not in self.languages):
            return False

        if self.include_private is False and repo.is_private:
            return False
        if self.include_forks is False and repo.is_fork:
            return False
        if self.include_archived is False and repo.is_archived:
            return False

        # Repositories without any activity timestamp are not excluded by date.
        activity = repo.most_recent_activity
        if activity is not None:
            if self.updated_after is not None and activity < _as_utc(self.updated_after):
                return False
            if self.updated_before is not None and activity > _as_utc(self.updated_before):
                return False

        if self.min_size is not None and repo.size < self.min_size:
            return False
        if self.max_size is not None and repo.size > self.max_size:
            return False
        if self.min_stars is not None and repo.star_count < self.min_stars:
            return False

        if self.owner_type and self.owner_type.strip():
            return repo.owner_type.lower() == self.owner_type.strip().lower()
        return True


@dataclass(frozen=True, slots=True)
class DiscoveryPage:
    """One page of a paginated listing plus cursor state."""

    repositories: tuple[RepositoryMetadata, ...]
    page: int
    per_page: int
    has_more: bool = False
    total_count: int | None = None
    total_pages: int | None = None

    @classmethod
    def empty(cls, page: int, per_page: int) -> DiscoveryPage:
        return cls(repositories=(), page=page, per_page=per_page, has_more=False)

    @property
    def count(self) -> int:
        return len(self.repositories)

    @property
    def is_first_page(self) -> bool:
        return self.page == 1

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def start_index(self) -> int:
        """1-based position of the first repository on this page."""
        return (self.page - 1) * self.per_page + 1

    @property
    def end_index(self) -> int:
        end = self.start_index + self.count - 1
        if self.total_count is not None:
            end = min(end, self.total_count)
        return end

    def summary(self) -> str:
        if self.count == 0:
            return "No repositories found"
        total = self.total_count if self.total_count is not None else "?"
        return f"{self.start_index}-{self.end_index} of {total} repositories"

    def to_dict(self) -> dict[str, object]:
        return {
            "repositories": [r.to_dict() for r in self.repositories],
            "page": self.page,
            "per_page": self.per_page,
            "has_more": self.has_more,
            "total_count": self.total_count,
            "total_pages": self.total_pages,
            "summary": self.summary(),
        }


def pages_for(total_count: int, per_page: int) -> int:
    """Number of pages needed to show ``total_count`` items."""
    if total_count <= 0 or per_page <= 0:
        return 0
    return math.ceil(total_count / per_page)
