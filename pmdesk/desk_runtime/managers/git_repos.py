"""Git repository registry (database side only).

Repository rows are written by the sync engine after the on-disk work
(init / clone) has succeeded; this module never touches git itself.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pmdesk.desk_runtime.db.tables import GitRepository, utcnow
from pmdesk.desk_runtime.errors import AlreadyExistsError, InvalidInputError, NotFoundError
from pmdesk.desk_runtime.models.api import GitRepoUpdate
from pmdesk.desk_runtime.models.git import GitRepoStatus

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


async def list_repositories(db: AsyncSession, project_id: str) -> list[GitRepository]:
    """Repositories of one project, oldest first."""
    result = await db.execute(
        select(GitRepository)
        .where(GitRepository.project_id == project_id)
        .order_by(GitRepository.created_at, GitRepository.name)
    )
    return list(result.scalars().all())


async def list_all_repository_ids(db: AsyncSession) -> list[str]:
    result = await db.execute(select(GitRepository.id).order_by(GitRepository.created_at))
    return list(result.scalars().all())


async def get_repository(db: AsyncSession, repo_id: str) -> GitRepository:
    """Get a repository by ID.  Raises ``NotFoundError`` if missing."""
    repo = await db.get(GitRepository, repo_id)
    if repo is None:
        raise NotFoundError(f"Repository '{repo_id}' not found.", id=repo_id)
    return repo


async def find_by_path(db: AsyncSession, path: str) -> GitRepository | None:
    return await db.scalar(select(GitRepository).where(GitRepository.path == path))


async def insert_repository(
    db: AsyncSession,
    *,
    project_id: str,
    name: str,
    path: str,
    remote_url: str | None = None,
    branch: str | None = None,
    last_sync_at: datetime | None = None,
) -> GitRepository:
    """Register a repository.  Raises ``AlreadyExistsError`` if *path* is taken."""
    if await find_by_path(db, path) is not None:
        raise AlreadyExistsError(f"Repository path is already registered: {path}", path=path)

    repo = GitRepository(
        id=str(uuid.uuid4()),
        project_id=project_id,
        name=name,
        path=path,
        remote_url=remote_url,
        branch=branch,
        last_sync_at=last_sync_at,
    )
    db.add(repo)
    await db.commit()
    await db.refresh(repo)
    return repo


async def update_repository(db: AsyncSession, repo_id: str, body: GitRepoUpdate) -> GitRepository:
    """Set the user-facing label and description."""
    repo = await get_repository(db, repo_id)

    changes = body.model_dump(exclude_unset=True)
    if not changes:
        return repo
    for key, value in changes.items():
        setattr(repo, key, (value or "").strip() or None)

    await db.commit()
    await db.refresh(repo)
    return repo


async def mark_synced(db: AsyncSession, repo_id: str, synced_at: datetime) -> GitRepository:
    repo = await get_repository(db, repo_id)
    repo.last_sync_at = synced_at
    await db.commit()
    await db.refresh(repo)
    return repo


async def save_status_snapshot(db: AsyncSession, status: GitRepoStatus) -> GitRepository:
    """Overwrite the cached snapshot and ``last_status_checked_at``.

    The branch column follows the snapshot when the check could read one.
    """
    repo = await get_repository(db, status.repo_id)
    repo.last_status_json = status.model_dump_json()
    repo.last_status_checked_at = status.last_checked_at
    if status.branch:
        repo.branch = status.branch
    repo.updated_at = utcnow()
    await db.commit()
    await db.refresh(repo)
    return repo


def extract_repo_name(url: str) -> str:
    """Derive a directory name from a remote URL.

    >>> extract_repo_name("https://github.com/org/repo.git")
    'repo'
    >>> extract_repo_name("git@github.com:org/tool.git")
    'tool'
    """
    value = (url or "").strip().rstrip("/\\")
    if not value:
        raise InvalidInputError("Remote URL must not be empty.")

    if _SCHEME_RE.match(value):
        tail = value.split("://", 1)[1]
        # host only, no path component
        if "/" not in tail:
            raise InvalidInputError(f"Cannot derive a repository name from {url!r}", url=url)
    else:
        tail = value

    name = re.split(r"[/\\:]", tail)[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if not name or name in {".", ".."}:
        raise InvalidInputError(f"Cannot derive a repository name from {url!r}", url=url)
    return name
