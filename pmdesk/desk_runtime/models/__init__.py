"""Data models for the desk runtime."""

from pmdesk.desk_runtime.models.api import (
    DirectoryTypeCreate,
    DirectoryTypeUpdate,
    GitRepoClone,
    GitRepoCreate,
    GitRepoUpdate,
    ProjectCreate,
    ProjectDirectoryUpsert,
    ProjectUpdate,
    RecentAliasUpdate,
    RecentRemove,
    RepoNameResponse,
    WatchRequest,
    WatchResponse,
    WorkspaceOpen,
    WorkspaceSettingsUpdate,
)
from pmdesk.desk_runtime.models.enums import (
    AuthKind,
    DirectoryTypeKind,
    NetworkState,
    RepoOrigin,
    SnapshotState,
    SupportedIdeKind,
    ThemeMode,
)
from pmdesk.desk_runtime.models.git import GitCloneInput, GitPullResult, GitRepository, GitRepoStatus
from pmdesk.desk_runtime.models.project import DirectoryType, Project, ProjectDirectory, ProjectDisplay
from pmdesk.desk_runtime.models.workspace import IdeConfig, RecentWorkspace, WorkspaceInfo, WorkspaceSettings

__all__ = [
    "AuthKind",
    "DirectoryType",
    "DirectoryTypeCreate",
    "DirectoryTypeKind",
    "DirectoryTypeUpdate",
    "GitCloneInput",
    "GitPullResult",
    "GitRepoClone",
    "GitRepoCreate",
    "GitRepoStatus",
    "GitRepoUpdate",
    "GitRepository",
    "IdeConfig",
    "NetworkState",
    "Project",
    "ProjectCreate",
    "ProjectDirectory",
    "ProjectDirectoryUpsert",
    "ProjectDisplay",
    "ProjectUpdate",
    "RecentAliasUpdate",
    "RecentRemove",
    "RecentWorkspace",
    "RepoNameResponse",
    "RepoOrigin",
    "SnapshotState",
    "SupportedIdeKind",
    "ThemeMode",
    "WatchRequest",
    "WatchResponse",
    "WorkspaceInfo",
    "WorkspaceOpen",
    "WorkspaceSettings",
    "WorkspaceSettingsUpdate",
]
