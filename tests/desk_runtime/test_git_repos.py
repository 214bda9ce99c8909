"""Tests for the git repository registry (no git invocations)."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from pmdesk.desk_runtime.errors import AlreadyExistsError, InvalidInputError, NotFoundError
from pmdesk.desk_runtime.managers import git_repos
from pmdesk.desk_runtime.models.api import GitRepoUpdate
from pmdesk.desk_runtime.models.enums import NetworkState, RepoOrigin, SnapshotState
from pmdesk.desk_runtime.models.git import GitRepository, GitRepoStatus


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://github.com/org/repo.git", "repo"),
        ("https://github.com/org/repo", "repo"),
        ("https://github.com/org/repo/", "repo"),
        ("git@github.com:org/r.git", "r"),
        ("git@host:tool.git", "tool"),
        ("ssh://git@host:2222/group/sub/proj.git", "proj"),
        ("file:///srv/git/local.git", "local"),
        ("/srv/git/bare.git", "bare"),
    ],
)
def test_extract_repo_name(url: str, expected: str) -> None:
    assert git_repos.extract_repo_name(url) == expected


@pytest.mark.parametrize("url", ["", "   ", "https://github.com", "https://host/.git", "git@host:"])
def test_extract_repo_name_rejects(url: str) -> None:
    with pytest.raises(InvalidInputError):
        git_repos.extract_repo_name(url)


async def test_insert_and_list(db: AsyncSession) -> None:
    a = await git_repos.insert_repository(db, project_id="p1", name="a", path="/ws/p1/a")
    await git_repos.insert_repository(db, project_id="p1", name="b", path="/ws/p1/b", remote_url="file:///r.git")
    await git_repos.insert_repository(db, project_id="p2", name="c", path="/ws/p2/c")

    rows = await git_repos.list_repositories(db, "p1")
    assert [r.name for r in rows] == ["a", "b"]

    views = [GitRepository.from_row(r) for r in rows]
    assert [v.origin for v in views] == [RepoOrigin.LOCAL, RepoOrigin.CLONED]
    assert all(v.status_state == SnapshotState.UNKNOWN for v in views)
    assert (await git_repos.find_by_path(db, "/ws/p1/a")).id == a.id


async def test_duplicate_path(db: AsyncSession) -> None:
    await git_repos.insert_repository(db, project_id="p1", name="a", path="/ws/p1/a")
    with pytest.raises(AlreadyExistsError):
        await git_repos.insert_repository(db, project_id="p1", name="a2", path="/ws/p1/a")


async def test_update_labels(db: AsyncSession) -> None:
    row = await git_repos.insert_repository(db, project_id="p1", name="a", path="/ws/p1/a")
    row = await git_repos.update_repository(db, row.id, GitRepoUpdate(custom_name="API", description="backend"))
    assert (row.custom_name, row.description) == ("API", "backend")

    row = await git_repos.update_repository(db, row.id, GitRepoUpdate(custom_name=""))
    assert row.custom_name is None
    assert row.description == "backend"

    with pytest.raises(NotFoundError):
        await git_repos.update_repository(db, "missing", GitRepoUpdate(custom_name="x"))


async def test_snapshot_overwrites_previous(db: AsyncSession) -> None:
    row = await git_repos.insert_repository(db, project_id="p1", name="a", path="/ws/p1/a")
    t1 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
    t2 = datetime(2026, 3, 1, 12, 5, tzinfo=UTC)

    await git_repos.save_status_snapshot(
        db, GitRepoStatus(repo_id=row.id, branch="main", dirty=True, last_checked_at=t1, network=NetworkState.ONLINE)
    )
    row = await git_repos.save_status_snapshot(
        db, GitRepoStatus(repo_id=row.id, branch="dev", behind=2, last_checked_at=t2, network=NetworkState.OFFLINE)
    )

    view = GitRepository.from_row(row)
    assert view.last_status_checked_at == t2
    assert view.branch == "dev"
    assert view.status_state == SnapshotState.CLEAN
    assert view.last_status is not None
    assert (view.last_status.behind, view.last_status.network) == (2, NetworkState.OFFLINE)


async def test_corrupt_snapshot_reads_as_unknown(db: AsyncSession) -> None:
    row = await git_repos.insert_repository(db, project_id="p1", name="a", path="/ws/p1/a")
    row.last_status_json = "not json"
    await db.commit()

    view = GitRepository.from_row(await git_repos.get_repository(db, row.id))
    assert view.last_status is None
    assert view.status_state == SnapshotState.UNKNOWN


async def test_unreadable_snapshot_reads_as_unknown(db: AsyncSession) -> None:
    row = await git_repos.insert_repository(db, project_id="p1", name="a", path="/ws/p1/a", branch="main")
    checked = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
    row = await git_repos.save_status_snapshot(
        db, GitRepoStatus(repo_id=row.id, last_checked_at=checked, last_error="Not a git repository", readable=False)
    )

    view = GitRepository.from_row(row)
    assert view.status_state == SnapshotState.UNKNOWN
    assert view.branch == "main"
    assert view.last_status_checked_at == checked
