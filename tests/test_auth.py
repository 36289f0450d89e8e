"""Tests for authentication header construction (auth.py)."""

from __future__ import annotations

import base64
from unittest.mock import patch

import pytest

from git_discovery.auth import authorization_header, basic_auth_header, private_token_header
from git_discovery.models import ConnectionConfig, ProviderType, SecretBuffer


class TestBasicAuthHeader:
    def test_encodes_username_and_secret(self):
        header = basic_auth_header("octocat", SecretBuffer.from_str("p@ss:word"))
        assert header.startswith("Basic ")
        assert base64.b64decode(header[6:]) == b"octocat:p@ss:word"

    def test_secret_survives_header_building(self):
        secret = SecretBuffer.from_str("token")
        basic_auth_header("octocat", secret)
        assert secret.reveal() == "token"

    def test_scratch_buffers_are_wiped(self):
        wiped: list[bytes] = []

        def _record(buffer: bytearray) -> None:
            for i in range(len(buffer)):
                buffer[i] = 0
            wiped.append(bytes(buffer))

        with patch("git_discovery.auth._wipe", side_effect=_record):
            basic_auth_header("octocat", SecretBuffer.from_str("token"))

        assert len(wiped) == 2
        assert all(set(buf) == {0} for buf in wiped)

    @pytest.mark.parametrize(("username", "secret"), [("", "pw"), ("user", "")])
    def test_missing_credentials(self, username, secret):
        with pytest.raises(ValueError, match="required"):
            basic_auth_header(username, SecretBuffer.from_str(secret))


class TestConnectionHeaders:
    def test_authorization_header(self, github_config):
        assert authorization_header(github_config) == basic_auth_header(
            "octocat", github_config.secret
        )

    def test_authorization_header_without_secret(self):
        config = ConnectionConfig(provider=ProviderType.GITHUB, username="octocat")
        with pytest.raises(ValueError, match="no credentials"):
            authorization_header(config)

    def test_private_token_header(self, gitlab_config):
        assert private_token_header(gitlab_config) == {"PRIVATE-TOKEN": "s3cret-token"}
