"""API request / response schemas for the operation surface.

These thin schemas sit between HTTP and the managers.  They are separate
from the domain models in ``project.py`` / ``git.py`` / ``workspace.py``
because they serve a different purpose:

- **Create** schemas validate user input and provide defaults.
- **Update** schemas allow partial updates via ``exclude_unset``.

Nested structured types (``ProjectDisplay``, ``IdeConfig``, ...) are reused
from the domain models for validation.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from pmdesk.desk_runtime.models.enums import ThemeMode
from pmdesk.desk_runtime.models.git import GitCloneInput
from pmdesk.desk_runtime.models.project import ProjectDisplay
from pmdesk.desk_runtime.models.workspace import IdeConfig

# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


class WorkspaceOpen(BaseModel):
    path: str


class RecentAliasUpdate(BaseModel):
    path: str
    alias: str | None = None


class RecentRemove(BaseModel):
    path: str


class WorkspaceSettingsUpdate(BaseModel):
    """Partial settings update -- only fields explicitly set are merged."""

    theme_mode: ThemeMode | None = None
    custom_theme_id: str | None = None
    default_ide: IdeConfig | None = None


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------


class ProjectCreate(BaseModel):
    """Input for creating a project; the directory is ``<workspace>/<name>``."""

    name: str
    description: str | None = None
    display: ProjectDisplay | None = None


class ProjectUpdate(BaseModel):
    """Partial update -- only fields explicitly set by the caller are applied.

    Routers should use ``body.model_dump(exclude_unset=True)`` to extract
    only the provided fields.
    """

    name: str | None = None
    description: str | None = None
    display: ProjectDisplay | None = None
    ide_override: IdeConfig | None = None


# ---------------------------------------------------------------------------
# Directory types
# ---------------------------------------------------------------------------


class DirectoryTypeCreate(BaseModel):
    name: str
    category: str | None = None
    sort_order: int = 100


class DirectoryTypeUpdate(BaseModel):
    """Partial update.  ``kind`` is immutable, so it is rejected outright."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    category: str | None = None
    sort_order: int | None = None


class ProjectDirectoryUpsert(BaseModel):
    dir_type_id: str
    relative_path: str


# ---------------------------------------------------------------------------
# Git
# ---------------------------------------------------------------------------


class GitRepoCreate(BaseModel):
    project_id: str
    name: str = Field(min_length=1)


class GitRepoClone(GitCloneInput):
    project_id: str


class GitRepoUpdate(BaseModel):
    custom_name: str | None = None
    description: str | None = None


class WatchRequest(BaseModel):
    repo_id: str | None = Field(default=None, description="Omit to watch every repository in the workspace.")


class WatchResponse(BaseModel):
    ok: bool
    watching: list[str] = Field(default_factory=list, description="Active watch keys; '*' means all repositories.")


class RepoNameResponse(BaseModel):
    name: str
