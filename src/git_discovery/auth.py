"""Authentication header construction from wipeable secrets."""

from __future__ import annotations

import base64

from git_discovery.models import ConnectionConfig, SecretBuffer


def _wipe(buffer: bytearray) -> None:
    for i in range(len(buffer)):
        buffer[i] = 0


def basic_auth_header(username: str, secret: SecretBuffer) -> str:
    """Build an HTTP Basic ``Authorization`` value.

    The ``username:secret`` bytes are assembled in a scratch bytearray that
    is zero-filled before returning; only the encoded header string survives.
    """
    if not username or not secret:
        raise ValueError("Username and secret are required for Basic authentication")
    raw = bytearray(username.encode("utf-8"))
    raw += b":"
    secret_bytes = secret.to_bytearray()
    try:
        raw += secret_bytes
        return "Basic " + base64.b64encode(raw).decode("ascii")
    finally:
        _wipe(secret_bytes)
        _wipe(raw)


def authorization_header(config: ConnectionConfig) -> str:
    """Authorization value for a connection (Basic with username and secret)."""
    if config.secret is None or not config.username:
        raise ValueError("Connection has no credentials")
    return basic_auth_header(config.username, config.secret)


def private_token_header(config: ConnectionConfig) -> dict[str, str]:
    """GitLab ``PRIVATE-TOKEN`` header for a personal access token."""
    if not config.secret:
        raise ValueError("Connection has no credentials")
    return {"PRIVATE-TOKEN": config.secret.reveal()}
