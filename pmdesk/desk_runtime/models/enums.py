"""Shared enumerations used across the desk runtime."""

from __future__ import annotations

from enum import StrEnum

# -- Workspace ---------------------------------------------------------------


class ThemeMode(StrEnum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"
    CUSTOM = "custom"


class SupportedIdeKind(StrEnum):
    VSCODE = "vscode"
    VISUAL_STUDIO = "visual_studio"
    JETBRAINS = "jetbrains"
    CUSTOM = "custom"


# -- Directory types ---------------------------------------------------------


class DirectoryTypeKind(StrEnum):
    """Built-in kinds plus ``custom`` for user-created types."""

    CODE = "code"
    DOCS = "docs"
    UI_DESIGN = "ui_design"
    PROJECT_PLANNING = "project_planning"
    CUSTOM = "custom"


# -- Git ---------------------------------------------------------------------


class NetworkState(StrEnum):
    """Remote reachability observed by the last status check."""

    ONLINE = "online"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


class RepoOrigin(StrEnum):
    """How a repository record came to exist."""

    LOCAL = "local"
    CLONED = "cloned"


class SnapshotState(StrEnum):
    """Working-tree state according to the cached status snapshot."""

    CLEAN = "clean"
    DIRTY = "dirty"
    UNKNOWN = "unknown"


class AuthKind(StrEnum):
    """Credential types a git transport may accept."""

    DEFAULT = "default"
    USERPASS = "userpass"
    SSH_KEY = "ssh_key"
