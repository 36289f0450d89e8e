"""Tests for the GitLab discovery adapter (discovery/gitlab.py)."""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest

from git_discovery.discovery.gitlab import GitLabDiscoveryClient
from git_discovery.errors import AuthFailureError
from git_discovery.models import ConnectionConfig, ProviderType

# ── Fixture data ──────────────────────────────────────────────────

GITLAB_PROJECT_FIXTURE = {
    "id": 3,
    "name": "Diaspora Client",
    "path_with_namespace": "diaspora/diaspora-client",
    "description": "Client for the diaspora network",
    "default_branch": "main",
    "visibility": "internal",
    "http_url_to_repo": "https://gitlab.com/diaspora/diaspora-client.git",
    "web_url": "https://gitlab.com/diaspora/diaspora-client",
    "namespace": {"id": 2, "path": "diaspora", "kind": "group"},
    "archived": True,
    "star_count": 4,
    "forks_count": 1,
    "statistics": {"repository_size": 2 * 1024 * 1024},
    "created_at": "2013-09-30T13:46:02Z",
    "updated_at": "2013-09-30T13:46:02Z",
    "last_activity_at": "2013-10-02T11:00:00.000Z",
    "topics": ["ruby"],
}


def _project(project_id: int, name: str, **overrides: object) -> dict:
    raw = {**GITLAB_PROJECT_FIXTURE, "id": project_id, "name": name}
    raw.update(overrides)
    return raw


def _response(data: object, status_code: int = 200, **headers: str) -> httpx.Response:
    return httpx.Response(status_code, json=data, headers=headers)


def _make_client(*responses: httpx.Response) -> tuple[GitLabDiscoveryClient, AsyncMock]:
    http = AsyncMock(spec=httpx.AsyncClient)
    http.get.side_effect = list(responses)
    return GitLabDiscoveryClient(http), http


# ═══════════════════════════════════════════════════════════════════


class TestParsing:
    def test_parse_project(self):
        client, _ = _make_client()
        repo = client._parse_repository(GITLAB_PROJECT_FIXTURE)
        assert repo.id == "3"
        assert repo.provider is ProviderType.GITLAB
        assert repo.full_name == "diaspora/diaspora-client"
        assert repo.clone_url == "https://gitlab.com/diaspora/diaspora-client.git"
        assert repo.is_private is True
        assert repo.is_fork is False
        assert repo.is_archived is True
        assert repo.size == 2048
        assert repo.owner_name == "diaspora"
        assert repo.owner_type == "group"
        assert repo.owner_id == "2"
        assert repo.topics == ("ruby",)

    def test_public_visibility(self):
        client, _ = _make_client()
        assert client._parse_repository(_project(1, "p", visibility="public")).is_private is False

    def test_fork_detection(self):
        client, _ = _make_client()
        raw = _project(1, "p", forked_from_project={"id": 99})
        assert client._parse_repository(raw).is_fork is True

    def test_user_namespace(self):
        client, _ = _make_client()
        raw = _project(1, "p", namespace={"id": 5, "path": "tanuki", "kind": "user"})
        assert client._parse_repository(raw).owner_type == "user"


class TestDiscoverAll:
    async def test_follows_next_page_header(self, gitlab_config):
        client, http = _make_client(
            _response([_project(1, "a"), _project(2, "b")], **{"X-Next-Page": "2", "X-Total": "3"}),
            _response([_project(3, "c")], **{"X-Next-Page": "", "X-Total": "3"}),
        )
        repos = await client.discover_all_repositories(gitlab_config)

        assert [r.name for r in repos] == ["a", "b", "c"]
        first, second = http.get.await_args_list
        assert first.args[0] == "https://gitlab.com/api/v4/projects"
        assert first.kwargs["params"] == {
            "membership": "true",
            "order_by": "id",
            "sort": "asc",
            "per_page": 100,
        }
        assert second.kwargs["params"]["page"] == 2

    async def test_uses_private_token(self, gitlab_config):
        client, http = _make_client(_response([]))
        await client.discover_all_repositories(gitlab_config)
        headers = http.get.await_args.kwargs["headers"]
        assert headers["PRIVATE-TOKEN"] == "s3cret-token"
        assert "Authorization" not in headers

    async def test_self_managed_instance(self, secret):
        config = ConnectionConfig.for_provider(
            ProviderType.GITLAB, "tanuki", secret, base_url="https://git.corp.example"
        )
        client, http = _make_client(_response([]))
        await client.discover_all_repositories(config)
        assert http.get.await_args.args[0] == "https://git.corp.example/api/v4/projects"

    async def test_unauthorized(self, gitlab_config):
        client, _ = _make_client(_response({"message": "401 Unauthorized"}, 401))
        with pytest.raises(AuthFailureError):
            await client.discover_all_repositories(gitlab_config)


class TestGroupsAndSearch:
    async def test_group_projects(self, gitlab_config):
        client, http = _make_client(_response([_project(1, "svc")]))
        repos = await client.discover_organization_repositories(gitlab_config, "acme/platform")
        assert len(repos) == 1
        assert http.get.await_args.args[0] == "https://gitlab.com/api/v4/groups/acme%2Fplatform/projects"

    async def test_unknown_group_is_empty(self, gitlab_config):
        client, _ = _make_client(_response({"message": "404 Group Not Found"}, 404))
        assert await client.discover_organization_repositories(gitlab_config, "ghost") == []

    async def test_search_uses_api(self, gitlab_config):
        client, http = _make_client(_response([_project(1, "diaspora-client")]))
        repos = await client.search_repositories(gitlab_config, "diaspora")
        assert len(repos) == 1
        params = http.get.await_args.kwargs["params"]
        assert params["search"] == "diaspora"
        assert params["membership"] == "true"


class TestPage:
    async def test_page_metadata_from_headers(self, gitlab_config):
        client, http = _make_client(
            _response(
                [_project(i, f"p{i}") for i in range(20)],
                **{"X-Next-Page": "3", "X-Total": "45", "X-Total-Pages": "3"},
            )
        )
        page = await client.discover_repositories_page(gitlab_config, 2, 20)
        assert http.get.await_args.kwargs["params"]["page"] == 2
        assert page.count == 20
        assert page.has_more is True
        assert page.total_count == 45
        assert page.total_pages == 3
        assert page.summary() == "21-40 of 45 repositories"

    async def test_beyond_last_page(self, gitlab_config):
        client, _ = _make_client(_response([], **{"X-Next-Page": "", "X-Total": "45"}))
        page = await client.discover_repositories_page(gitlab_config, 9, 20)
        assert page.count == 0
        assert page.has_more is False
