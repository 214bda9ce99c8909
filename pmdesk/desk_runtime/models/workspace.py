"""Workspace data models.

A workspace is a root directory plus its dedicated SQLite database.  The
process-wide recent-workspaces cache lives outside any workspace, in the
per-user config directory.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from pmdesk.desk_runtime.models.enums import SupportedIdeKind, ThemeMode


class IdeConfig(BaseModel):
    """An IDE executable that can open a repository."""

    kind: SupportedIdeKind
    name: str
    exe_path: str
    args: list[str] | None = None


class WorkspaceSettings(BaseModel):
    """Per-workspace settings blob (``workspace_meta['settings']``)."""

    theme_mode: ThemeMode = ThemeMode.SYSTEM
    custom_theme_id: str | None = None
    default_ide: IdeConfig | None = None


class RecentWorkspace(BaseModel):
    """One entry of the recent-workspaces cache."""

    path: str
    db_path: str
    last_opened_at: datetime
    alias: str | None = None


class WorkspaceInfo(BaseModel):
    """Metadata returned when a workspace is opened."""

    path: str
    db_path: str
    last_opened_at: datetime
    alias: str | None = None
    settings: WorkspaceSettings = Field(default_factory=WorkspaceSettings)
