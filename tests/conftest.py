"""Shared test fixtures: temporary workspaces and local git remotes.

Every test gets its own config directory (recent-workspaces cache) and
workspace root under ``tmp_path``; nothing touches the user's real
configuration.  Git tests use bare repositories on disk as remotes, so they
need a ``git`` executable but no network.
"""

from __future__ import annotations

import subprocess
from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from pmdesk.desk_runtime.context import AppContext
from pmdesk.desk_runtime.managers import projects, workspaces
from pmdesk.desk_runtime.models.api import ProjectCreate
from pmdesk.desk_runtime.models.workspace import WorkspaceInfo
from pmdesk.desk_runtime.settings import _get_settings_cached
from pmdesk.desk_runtime.store.recent import RecentWorkspaceStore
from pmdesk.desk_runtime.sync.engine import GitSyncEngine

_IDENTITY = ("-c", "user.name=pmdesk-tests", "-c", "user.email=tests@pmdesk.invalid", "-c", "commit.gpgsign=false")


def git(*args: str, cwd: Path) -> str:
    """Run git synchronously in a test and return stdout."""
    result = subprocess.run(
        ["git", *_IDENTITY, *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        timeout=30,
        check=True,
    )
    return result.stdout


def commit_file(repo: Path, name: str, content: str, message: str | None = None) -> None:
    (repo / name).write_text(content, encoding="utf-8")
    git("add", name, cwd=repo)
    git("commit", "-q", "-m", message or f"update {name}", cwd=repo)


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point the config dir at tmp and drop any cached settings."""
    monkeypatch.setenv("PMDESK_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.delenv("PMDESK_WORKSPACE", raising=False)
    _get_settings_cached.cache_clear()


# ---------------------------------------------------------------------------
# Workspace fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def workspace_dir(tmp_path: Path) -> Path:
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def recent_store(tmp_path: Path) -> RecentWorkspaceStore:
    return RecentWorkspaceStore(tmp_path / "config" / "recent_workspaces.json")


@pytest.fixture
async def ctx() -> AsyncIterator[AppContext]:
    context = AppContext()
    yield context
    await context.close()


@pytest.fixture
async def opened(ctx: AppContext, recent_store: RecentWorkspaceStore, workspace_dir: Path) -> WorkspaceInfo:
    """The temporary workspace, opened and active."""
    return await workspaces.open_or_create(ctx, recent_store, str(workspace_dir))


@pytest.fixture
async def db(ctx: AppContext, opened: WorkspaceInfo) -> AsyncIterator[AsyncSession]:
    """A session on the opened workspace (holds the registry lock for the test)."""
    async with ctx.session() as session:
        yield session


@pytest.fixture
async def project_id(ctx: AppContext, opened: WorkspaceInfo) -> str:
    async with ctx.session() as session:
        project = await projects.create_project(session, ProjectCreate(name="alpha"))
    return project.id


@pytest.fixture
async def sync_engine(ctx: AppContext) -> AsyncIterator[GitSyncEngine]:
    engine = GitSyncEngine(ctx, network_timeout=30.0, watch_interval=0.05, watch_concurrency=2)
    yield engine
    await engine.stop_watches()


# ---------------------------------------------------------------------------
# Git remotes
# ---------------------------------------------------------------------------


@pytest.fixture
def remote_repo(tmp_path: Path) -> Path:
    """A bare repository with one commit on ``main``, usable as a clone URL."""
    seed = tmp_path / "seed"
    seed.mkdir()
    git("init", "-q", cwd=seed)
    git("symbolic-ref", "HEAD", "refs/heads/main", cwd=seed)
    commit_file(seed, "README.md", "# seed\n", "initial commit")

    bare = tmp_path / "remote.git"
    git("clone", "-q", "--bare", str(seed), str(bare), cwd=tmp_path)
    return bare


@pytest.fixture
def push_to_remote(tmp_path: Path, remote_repo: Path):
    """Return a helper that adds a commit on the remote's ``main``."""
    writer = tmp_path / "writer"
    git("clone", "-q", str(remote_repo), str(writer), cwd=tmp_path)

    def _push(name: str = "CHANGES.md", content: str = "remote change\n") -> None:
        commit_file(writer, name, content)
        git("push", "-q", "origin", "main", cwd=writer)

    return _push


@pytest.fixture
def run_git():
    """The synchronous ``git(*args, cwd=...)`` helper."""
    return git


@pytest.fixture
def commit():
    """The ``commit_file(repo, name, content)`` helper."""
    return commit_file
