"""Pluggable credentials for git network operations.

The sync engine asks a ``CredentialProvider`` for credentials once per
network command, passing the remote URL and the credential kinds its
transport accepts.  Returning ``None`` lets git run with its own
configuration (credential helpers, ssh agent), always non-interactively.

Credentials reach git through the environment only (``GIT_CONFIG_*`` and
``GIT_SSH_COMMAND``), never through the command line, so secrets do not
show up in process listings.
"""

from __future__ import annotations

import base64
import shlex
from dataclasses import dataclass
from typing import Protocol

from pmdesk.desk_runtime.models.enums import AuthKind

BATCH_SSH_COMMAND = "ssh -o BatchMode=yes"

# Never prompt on a terminal; a missing credential is a failed command.
NON_INTERACTIVE_ENV = {
    "GIT_TERMINAL_PROMPT": "0",
    "GIT_SSH_COMMAND": BATCH_SSH_COMMAND,
    "GCM_INTERACTIVE": "never",
}


@dataclass(frozen=True)
class Credentials:
    kind: AuthKind
    username: str | None = None
    secret: str | None = None
    key_path: str | None = None

    def to_env(self) -> dict[str, str]:
        """Environment overrides that make git present these credentials."""
        if self.kind is AuthKind.USERPASS:
            token = base64.b64encode(f"{self.username or ''}:{self.secret or ''}".encode()).decode("ascii")
            return {
                "GIT_CONFIG_COUNT": "1",
                "GIT_CONFIG_KEY_0": "http.extraHeader",
                "GIT_CONFIG_VALUE_0": f"Authorization: Basic {token}",
            }
        if self.kind is AuthKind.SSH_KEY and self.key_path:
            key = shlex.quote(self.key_path)
            return {"GIT_SSH_COMMAND": f"{BATCH_SSH_COMMAND} -o IdentitiesOnly=yes -i {key}"}
        return {}


class CredentialProvider(Protocol):
    def credentials(self, url: str, allowed: frozenset[AuthKind]) -> Credentials | None: ...


class AnonymousCredentials:
    """Default provider: supplies nothing, git falls back to its own setup."""

    def credentials(self, url: str, allowed: frozenset[AuthKind]) -> Credentials | None:
        return None


def allowed_kinds(url: str) -> frozenset[AuthKind]:
    """Credential kinds the transport for *url* can use."""
    lowered = url.strip().lower()
    if lowered.startswith(("https://", "http://")):
        return frozenset({AuthKind.DEFAULT, AuthKind.USERPASS})
    if lowered.startswith("ssh://") or _is_scp_like(lowered):
        return frozenset({AuthKind.DEFAULT, AuthKind.SSH_KEY})
    return frozenset({AuthKind.DEFAULT})


def credential_env(provider: CredentialProvider, url: str | None) -> dict[str, str]:
    """Full environment overrides for one network command against *url*."""
    env = dict(NON_INTERACTIVE_ENV)
    if not url:
        return env
    allowed = allowed_kinds(url)
    creds = provider.credentials(url, allowed)
    if creds is not None and creds.kind in allowed:
        env.update(creds.to_env())
    return env


def _is_scp_like(url: str) -> bool:
    # user@host:path, but not a Windows drive letter or a URL
    if "://" in url or ":" not in url:
        return False
    head = url.split(":", 1)[0]
    return len(head) > 1 and "/" not in head
