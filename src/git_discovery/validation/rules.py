"""Provider rules: URL shapes, advisory checks and setup guidance.

Adding a provider means adding one rule class and registering it in
PROVIDER_RULES -- the validator itself never branches on provider type.
"""

from __future__ import annotations

import re

from git_discovery.models import ConnectionConfig, ProviderType, VerdictBuilder
from git_discovery.validation.base import ProviderRule

# Any host name (self-hosted instances), optionally with a port.
_GENERIC_HOST = r"[\w.-]+(?::\d+)?"

_GITHUB_URL_RE = re.compile(
    rf"https?://(api\.)?github\.com(/.*)?|https?://{_GENERIC_HOST}/api/v3(/.*)?"
)
_GITLAB_URL_RE = re.compile(
    rf"https?://(www\.)?gitlab\.com(/.*)?|https?://{_GENERIC_HOST}(/.*)?"
)
_BITBUCKET_URL_RE = re.compile(
    rf"https?://(api\.)?bitbucket\.org(/.*)?|https?://{_GENERIC_HOST}(/.*)?"
)


class GitHubRule:
    provider = ProviderType.GITHUB

    def url_shape_matches(self, url: str) -> bool:
        return _GITHUB_URL_RE.fullmatch(url) is not None

    def advisory_checks(self, config: ConnectionConfig, builder: VerdictBuilder) -> None:
        if config.base_url and "github.com" in config.base_url and not config.verify_ssl:
            builder.add_warning(
                "SSL verification is disabled for GitHub.com - this is not recommended"
            )

    def guidance_text(self) -> str:
        return (
            "For GitHub:\n"
            "• Use github.com for GitHub.com or your GitHub Enterprise URL\n"
            "• Username should be your GitHub username\n"
            "• Password should be a Personal Access Token (recommended) "
            "or your account password"
        )


class GitLabRule:
    provider = ProviderType.GITLAB

    def url_shape_matches(self, url: str) -> bool:
        return _GITLAB_URL_RE.fullmatch(url) is not None

    def advisory_checks(self, config: ConnectionConfig, builder: VerdictBuilder) -> None:
        if config.self_hosted:
            builder.add_info("Self-hosted GitLab instance detected")

    def guidance_text(self) -> str:
        return (
            "For GitLab:\n"
            "• Use gitlab.com for GitLab.com or your self-hosted GitLab URL\n"
            "• Username should be your GitLab username\n"
            "• Password should be a Personal Access Token or your account password"
        )


class BitbucketRule:
    provider = ProviderType.BITBUCKET

    def url_shape_matches(self, url: str) -> bool:
        return _BITBUCKET_URL_RE.fullmatch(url) is not None

    def advisory_checks(self, config: ConnectionConfig, builder: VerdictBuilder) -> None:
        if config.base_url and "bitbucket.org" in config.base_url:
            builder.add_info(
                "Using Bitbucket Cloud - consider using App Passwords "
                "instead of account passwords"
            )

    def guidance_text(self) -> str:
        return (
            "For Bitbucket:\n"
            "• Use bitbucket.org for Bitbucket Cloud or your Bitbucket Server URL\n"
            "• Username should be your Bitbucket username\n"
            "• Password should be an App Password (recommended) or your account password"
        )


PROVIDER_RULES: dict[ProviderType, ProviderRule] = {
    rule.provider: rule for rule in (GitHubRule(), GitLabRule(), BitbucketRule())
}


def get_rule(provider: object) -> ProviderRule | None:
    """Return the rule registered for ``provider``, or None if unsupported."""
    if not isinstance(provider, ProviderType):
        return None
    return PROVIDER_RULES.get(provider)
