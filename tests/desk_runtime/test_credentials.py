"""Tests for credential selection and the git environment they produce."""

from __future__ import annotations

import base64

import pytest

from pmdesk.desk_runtime.models.enums import AuthKind
from pmdesk.desk_runtime.sync.credentials import (
    BATCH_SSH_COMMAND,
    AnonymousCredentials,
    Credentials,
    allowed_kinds,
    credential_env,
)


class FixedCredentials:
    def __init__(self, creds: Credentials | None) -> None:
        self.creds = creds
        self.seen: list[tuple[str, frozenset[AuthKind]]] = []

    def credentials(self, url: str, allowed: frozenset[AuthKind]) -> Credentials | None:
        self.seen.append((url, allowed))
        return self.creds


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://github.com/org/repo.git", {AuthKind.DEFAULT, AuthKind.USERPASS}),
        ("HTTP://host/repo", {AuthKind.DEFAULT, AuthKind.USERPASS}),
        ("ssh://git@host:22/org/repo.git", {AuthKind.DEFAULT, AuthKind.SSH_KEY}),
        ("git@github.com:org/repo.git", {AuthKind.DEFAULT, AuthKind.SSH_KEY}),
        ("/srv/git/repo.git", {AuthKind.DEFAULT}),
        ("file:///srv/git/repo.git", {AuthKind.DEFAULT}),
        ("C:\\repos\\thing", {AuthKind.DEFAULT}),
    ],
)
def test_allowed_kinds(url: str, expected: set[AuthKind]) -> None:
    assert allowed_kinds(url) == frozenset(expected)


def test_anonymous_env_is_non_interactive() -> None:
    env = credential_env(AnonymousCredentials(), "https://host/repo.git")
    assert env["GIT_TERMINAL_PROMPT"] == "0"
    assert env["GIT_SSH_COMMAND"] == BATCH_SSH_COMMAND
    assert "GIT_CONFIG_COUNT" not in env


def test_no_url_skips_provider() -> None:
    provider = FixedCredentials(Credentials(AuthKind.USERPASS, "u", "p"))
    env = credential_env(provider, None)
    assert provider.seen == []
    assert "GIT_CONFIG_COUNT" not in env


def test_userpass_becomes_auth_header() -> None:
    provider = FixedCredentials(Credentials(AuthKind.USERPASS, username="alice", secret="s3cret"))
    env = credential_env(provider, "https://host/repo.git")

    assert provider.seen == [("https://host/repo.git", frozenset({AuthKind.DEFAULT, AuthKind.USERPASS}))]
    assert env["GIT_CONFIG_COUNT"] == "1"
    assert env["GIT_CONFIG_KEY_0"] == "http.extraHeader"
    token = base64.b64encode(b"alice:s3cret").decode("ascii")
    assert env["GIT_CONFIG_VALUE_0"] == f"Authorization: Basic {token}"


def test_ssh_key_sets_identity() -> None:
    provider = FixedCredentials(Credentials(AuthKind.SSH_KEY, key_path="/home/me/.ssh/id ed25519"))
    env = credential_env(provider, "git@host:org/repo.git")

    assert env["GIT_SSH_COMMAND"].startswith(BATCH_SSH_COMMAND)
    assert "-i '/home/me/.ssh/id ed25519'" in env["GIT_SSH_COMMAND"]


def test_disallowed_kind_is_ignored() -> None:
    provider = FixedCredentials(Credentials(AuthKind.SSH_KEY, key_path="/k"))
    env = credential_env(provider, "https://host/repo.git")
    assert env["GIT_SSH_COMMAND"] == BATCH_SSH_COMMAND


def test_default_kind_adds_nothing() -> None:
    assert Credentials(AuthKind.DEFAULT).to_env() == {}
    assert Credentials(AuthKind.SSH_KEY).to_env() == {}
