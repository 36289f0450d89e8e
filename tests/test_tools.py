"""Tests for the MCP tool functions (tools/validate.py, tools/discover.py)."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from git_discovery.discovery.registry import DiscoveryRegistry
from git_discovery.errors import NotFoundError, RateLimitedError
from git_discovery.models import DiscoveryPage, ProviderType, RepositoryFilter, RepositoryMetadata
from git_discovery.server import AppContext
from git_discovery.tools._helpers import connection_from_args, get_context
from git_discovery.tools.discover import discover_repositories, list_repositories_page
from git_discovery.tools.discover import test_connection as _tool_test_connection
from git_discovery.tools.validate import provider_guidance, validate_connection
from git_discovery.validation.validator import DefaultCredentialValidator

# --- Helpers ---------------------------------------------------------------


def _make_adapter(provider: ProviderType = ProviderType.GITHUB) -> MagicMock:
    adapter = MagicMock()
    adapter.supported_provider = provider
    adapter.supports_connection.return_value = True
    adapter.test_connection = AsyncMock(return_value=True)
    adapter.discover_all_repositories = AsyncMock(return_value=[])
    adapter.discover_organization_repositories = AsyncMock(return_value=[])
    adapter.search_repositories = AsyncMock(return_value=[])
    adapter.discover_repositories_with_filter = AsyncMock(return_value=[])
    adapter.discover_repositories_page = AsyncMock()
    return adapter


def _make_ctx(adapter: MagicMock | None = None) -> MagicMock:
    registry = DiscoveryRegistry()
    if adapter is not None:
        registry.register(adapter)
    app = MagicMock(spec=AppContext)
    app.validator = DefaultCredentialValidator()
    app.discovery = registry
    ctx = MagicMock()
    ctx.request_context.lifespan_context = app
    ctx.info = AsyncMock()
    ctx.error = AsyncMock()
    return ctx


def _repo(name: str, **overrides: object) -> RepositoryMetadata:
    fields: dict[str, object] = {
        "id": name,
        "name": name,
        "full_name": f"acme/{name}",
        "provider": ProviderType.GITHUB,
        "star_count": 5,
        "updated_at": datetime(2024, 5, 1, tzinfo=UTC),
    }
    fields.update(overrides)
    return RepositoryMetadata(**fields)


# --- helpers ----------------------------------------------------------------


class TestHelpers:
    def test_get_context_rejects_wrong_type(self):
        ctx = MagicMock()
        ctx.request_context.lifespan_context = object()
        with pytest.raises(TypeError, match="AppContext"):
            get_context(ctx)

    def test_connection_from_args_wipes_secret(self):
        with connection_from_args("github", "octocat", "token") as config:
            secret = config.secret
            assert secret.reveal() == "token"
        assert secret.wiped

    def test_connection_from_args_wipes_on_error(self):
        with pytest.raises(RuntimeError):
            with connection_from_args("github", "octocat", "token") as config:
                secret = config.secret
                raise RuntimeError("boom")
        assert secret.wiped

    def test_unknown_provider_keeps_fields(self):
        with connection_from_args("svn", "me", "pw", base_url="https://svn.example") as config:
            assert config.provider is None
            assert config.base_url == "https://svn.example"

    def test_self_hosted_flag(self):
        with connection_from_args("gitlab", "me", "pw", self_hosted=True) as config:
            assert config.self_hosted is True

    def test_enterprise_api_base_is_valid_and_not_suffixed_twice(self):
        with connection_from_args(
            "github", "octocat", "token", base_url="https://ghe.corp.example/api/v3"
        ) as config:
            assert config.api_url == "https://ghe.corp.example/api/v3"
            assert DefaultCredentialValidator().validate_connection(config).is_valid


# --- validate_connection / provider_guidance --------------------------------


class TestValidateConnectionTool:
    async def test_valid(self):
        result = await validate_connection("github", "octocat", "token", _make_ctx())
        assert result["valid"] is True
        assert result["errors"] == []
        assert result["api_url"] == "https://api.github.com"
        assert result["summary"] == "Connection configuration is valid"
        assert "token" not in str(result)

    async def test_reports_errors(self):
        result = await validate_connection("github", "john doe", "", _make_ctx())
        assert result["valid"] is False
        assert "Password is required" in result["errors"]
        assert len(result["errors"]) == 2

    async def test_unknown_provider(self):
        result = await validate_connection(
            "svn", "me", "pw", _make_ctx(), base_url="https://svn.example", api_url="https://svn.example"
        )
        assert "Provider type is required" in result["errors"]

    async def test_ssl_warning(self):
        result = await validate_connection("github", "octocat", "token", _make_ctx(), verify_ssl=False)
        assert result["valid"] is True
        assert len(result["warnings"]) == 1


class TestProviderGuidanceTool:
    async def test_known_provider(self):
        ctx = _make_ctx(_make_adapter(ProviderType.BITBUCKET))
        result = await provider_guidance("bitbucket", ctx, url="https://bitbucket.org/team")
        assert result["supported"] is True
        assert result["guidance"].startswith("For Bitbucket:")
        assert result["url_valid"] is True
        assert result["default_api_url"] == "https://api.bitbucket.org/2.0"

    async def test_unknown_provider(self):
        result = await provider_guidance("svn", _make_ctx())
        assert result["supported"] is False
        assert result["guidance"] == "Please select a supported Git provider"
        assert "url_valid" not in result


# --- test_connection --------------------------------------------------------


class TestTestConnectionTool:
    async def test_success(self):
        adapter = _make_adapter()
        result = await _tool_test_connection("github", "octocat", "token", _make_ctx(adapter))
        assert result["success"] is True
        assert result["message"] == "Connected to GitHub as octocat"
        config = adapter.test_connection.await_args.args[0]
        assert config.secret.wiped

    async def test_rejected(self):
        adapter = _make_adapter()
        adapter.test_connection.return_value = False
        result = await _tool_test_connection("github", "octocat", "token", _make_ctx(adapter))
        assert result["success"] is False
        assert "rejected" in result["message"]

    async def test_invalid_connection_not_sent(self):
        adapter = _make_adapter()
        result = await _tool_test_connection("github", "", "token", _make_ctx(adapter))
        assert result["success"] is False
        assert result["error_kind"] == "invalid_connection"
        assert "Username is required" in result["errors"]
        adapter.test_connection.assert_not_awaited()

    async def test_unsupported_provider(self):
        result = await _tool_test_connection("gitlab", "tanuki", "token", _make_ctx())
        assert result["success"] is False
        assert result["error_kind"] == "unsupported"


# --- discover_repositories --------------------------------------------------


class TestDiscoverRepositoriesTool:
    async def test_lists_with_filter(self):
        adapter = _make_adapter()
        adapter.discover_repositories_with_filter.return_value = [_repo("api")]
        result = await discover_repositories(
            "github",
            "octocat",
            "token",
            _make_ctx(adapter),
            include_forks=False,
            languages=["Python"],
            updated_after="2024-01-01",
        )
        assert result["success"] is True
        assert result["count"] == 1
        assert result["repositories"][0]["full_name"] == "acme/api"
        _, repo_filter = adapter.discover_repositories_with_filter.await_args.args
        assert isinstance(repo_filter, RepositoryFilter)
        assert repo_filter.include_forks is False
        assert repo_filter.languages == frozenset({"Python"})
        assert repo_filter.updated_after == datetime(2024, 1, 1)

    async def test_organization_scope_applies_filter(self):
        adapter = _make_adapter()
        adapter.discover_organization_repositories.return_value = [
            _repo("popular", star_count=50),
            _repo("quiet", star_count=1),
        ]
        result = await discover_repositories(
            "github", "octocat", "token", _make_ctx(adapter), organization="acme", min_stars=10
        )
        assert [r["name"] for r in result["repositories"]] == ["popular"]
        assert adapter.discover_organization_repositories.await_args.args[1] == "acme"

    async def test_organization_scope_applies_query(self):
        adapter = _make_adapter()
        adapter.discover_organization_repositories.return_value = [
            _repo("api-gateway"),
            _repo("billing"),
        ]
        result = await discover_repositories(
            "github", "octocat", "token", _make_ctx(adapter), organization="acme", query="api"
        )
        assert [r["name"] for r in result["repositories"]] == ["api-gateway"]
        adapter.search_repositories.assert_not_awaited()

    async def test_query_uses_search(self):
        adapter = _make_adapter()
        adapter.search_repositories.return_value = [_repo("api-gateway")]
        result = await discover_repositories(
            "github", "octocat", "token", _make_ctx(adapter), query="api"
        )
        assert result["count"] == 1
        adapter.search_repositories.assert_awaited_once()
        adapter.discover_repositories_with_filter.assert_not_awaited()

    async def test_discovery_error_is_classified(self):
        adapter = _make_adapter()
        adapter.discover_repositories_with_filter.side_effect = RateLimitedError(
            "slow down", provider="GitHub", retry_after=60
        )
        result = await discover_repositories("github", "octocat", "token", _make_ctx(adapter))
        assert result["success"] is False
        assert result["error_kind"] == "rate_limited"
        assert result["recoverable"] is True
        assert result["retry_after"] == 60

    async def test_bad_date(self):
        adapter = _make_adapter()
        result = await discover_repositories(
            "github", "octocat", "token", _make_ctx(adapter), updated_before="last week"
        )
        assert result["error_kind"] == "invalid_argument"
        assert "updated_before" in result["error"]
        adapter.discover_repositories_with_filter.assert_not_awaited()

    async def test_secret_wiped_after_call(self):
        adapter = _make_adapter()
        await discover_repositories("github", "octocat", "token", _make_ctx(adapter))
        config = adapter.discover_repositories_with_filter.await_args.args[0]
        assert config.secret.wiped


# --- list_repositories_page -------------------------------------------------


class TestListRepositoriesPageTool:
    async def test_returns_page(self):
        adapter = _make_adapter()
        adapter.discover_repositories_page.return_value = DiscoveryPage(
            (_repo("a"),), page=1, per_page=30, has_more=True, total_count=31
        )
        result = await list_repositories_page("github", "octocat", "token", _make_ctx(adapter))
        assert result["success"] is True
        assert result["has_more"] is True
        assert result["summary"] == "1-1 of 31 repositories"
        assert adapter.discover_repositories_page.await_args.args[1:] == (1, 30)

    async def test_page_below_one(self):
        adapter = _make_adapter()
        result = await list_repositories_page(
            "github", "octocat", "token", _make_ctx(adapter), page=0
        )
        assert result["error_kind"] == "invalid_argument"
        adapter.discover_repositories_page.assert_not_awaited()

    async def test_not_found(self):
        adapter = _make_adapter()
        adapter.discover_repositories_page.side_effect = NotFoundError("gone", provider="GitHub")
        result = await list_repositories_page("github", "octocat", "token", _make_ctx(adapter))
        assert result["success"] is False
        assert result["error_kind"] == "not_found"
