"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from git_discovery.models import ConnectionConfig, ProviderType, SecretBuffer


@pytest.fixture
def secret() -> Iterator[SecretBuffer]:
    """A secret wiped after the test, the way callers are expected to scope it."""
    with SecretBuffer.from_str("s3cret-token") as buffer:
        yield buffer


@pytest.fixture
def github_config(secret: SecretBuffer) -> ConnectionConfig:
    return ConnectionConfig.for_provider(ProviderType.GITHUB, "octocat", secret)


@pytest.fixture
def gitlab_config(secret: SecretBuffer) -> ConnectionConfig:
    return ConnectionConfig.for_provider(ProviderType.GITLAB, "tanuki", secret)


@pytest.fixture
def bitbucket_config(secret: SecretBuffer) -> ConnectionConfig:
    return ConnectionConfig.for_provider(ProviderType.BITBUCKET, "bucketeer", secret)
