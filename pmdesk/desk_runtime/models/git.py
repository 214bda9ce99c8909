"""Git repository data models.

``GitRepoStatus`` is a point-in-time snapshot, stored as JSON on the
repository row (``last_status_json``) and overwritten by every network-enabled
status check.  ``GitRepository`` is the registry view of a row, with the
snapshot decoded and the derived ``origin`` / ``status_state`` filled in.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from pmdesk.desk_runtime.models.blob import load_blob
from pmdesk.desk_runtime.models.enums import NetworkState, RepoOrigin, SnapshotState

if TYPE_CHECKING:
    from pmdesk.desk_runtime.db import tables


class GitRepoStatus(BaseModel):
    """Dirty / ahead / behind / reachability reading for one repository."""

    repo_id: str
    branch: str | None = None
    dirty: bool = False
    ahead: int = 0
    behind: int = 0
    last_checked_at: datetime
    network: NetworkState = NetworkState.UNKNOWN
    last_error: str | None = None
    readable: bool = Field(
        default=True, description="False when the working tree could not be read; other readings are defaults."
    )


class GitPullResult(BaseModel):
    """Outcome of a pull.  Network failures are reported here, not raised."""

    ok: bool
    message: str | None = None
    synced_at: datetime | None = None


class GitRepository(BaseModel):
    id: str
    project_id: str
    name: str
    path: str
    remote_url: str | None = None
    branch: str | None = None
    custom_name: str | None = None
    description: str | None = None
    last_sync_at: datetime | None = None
    last_status_checked_at: datetime | None = None
    last_status: GitRepoStatus | None = None
    origin: RepoOrigin = RepoOrigin.LOCAL
    status_state: SnapshotState = SnapshotState.UNKNOWN
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: tables.GitRepository) -> GitRepository:
        snapshot = load_blob(GitRepoStatus, row.last_status_json, field=f"git_repositories[{row.id}].last_status_json")
        if snapshot is None or not snapshot.readable:
            state = SnapshotState.UNKNOWN
        else:
            state = SnapshotState.DIRTY if snapshot.dirty else SnapshotState.CLEAN
        return cls(
            id=row.id,
            project_id=row.project_id,
            name=row.name,
            path=row.path,
            remote_url=row.remote_url,
            branch=row.branch,
            custom_name=row.custom_name,
            description=row.description,
            last_sync_at=row.last_sync_at,
            last_status_checked_at=row.last_status_checked_at,
            last_status=snapshot,
            origin=RepoOrigin.CLONED if row.remote_url else RepoOrigin.LOCAL,
            status_state=state,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class GitCloneInput(BaseModel):
    """Clone request: remote URL and directory name under the project."""

    remote_url: str = Field(min_length=1)
    target_dir_name: str = Field(min_length=1)
    branch: str | None = None
