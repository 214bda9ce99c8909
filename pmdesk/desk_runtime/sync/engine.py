"""Git synchronization engine.

Creates, clones, pulls and inspects the repositories registered in the
active workspace, and keeps their cached status snapshots current.

Concurrency
-----------

- Git commands never run while the registry lock is held: each operation
  reads what it needs in one short session, runs git, then writes the
  outcome in another session bound to the same workspace
  (``session(expect=state)``).  If the workspace was switched in between,
  the write fails with ``WorkspaceNotReadyError`` instead of landing in the
  wrong database.
- Pulls and status checks of one repository are serialized by a
  per-repository lock; init and clone lock on the target path.
- Network commands are killed after ``network_timeout`` seconds.
"""

from __future__ import annotations

import asyncio
import weakref
from functools import partial
from pathlib import Path

from anyio import to_thread
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from pmdesk.desk_runtime.context import AppContext
from pmdesk.desk_runtime.db.tables import utcnow
from pmdesk.desk_runtime.errors import (
    AlreadyExistsError,
    CloneError,
    GitError,
    GitInitError,
    InvalidInputError,
    RemoteNotFoundError,
    RepoOpenError,
)
from pmdesk.desk_runtime.managers import git_repos, projects
from pmdesk.desk_runtime.models.api import WatchResponse
from pmdesk.desk_runtime.models.enums import NetworkState
from pmdesk.desk_runtime.models.git import GitCloneInput, GitPullResult, GitRepoStatus, GitRepository
from pmdesk.desk_runtime.sync import gitops
from pmdesk.desk_runtime.sync.credentials import AnonymousCredentials, CredentialProvider, credential_env
from pmdesk.desk_runtime.sync.gitops import GitCommandError
from pmdesk.desk_runtime.sync.watcher import StatusWatcher

ORIGIN = "origin"


class GitSyncEngine:
    def __init__(
        self,
        ctx: AppContext,
        credentials: CredentialProvider | None = None,
        *,
        network_timeout: float = 60.0,
        watch_interval: float = 300.0,
        watch_concurrency: int = 4,
    ) -> None:
        self._ctx = ctx
        self._credentials = credentials or AnonymousCredentials()
        self.network_timeout = network_timeout
        # Entries vanish once no operation holds or awaits the lock.
        self._repo_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()
        self._path_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()
        self.watcher = StatusWatcher(
            self._watched_check,
            self._all_repository_ids,
            interval=watch_interval,
            concurrency=watch_concurrency,
        )
        # Watches belong to one workspace; they must end before it is released.
        ctx.add_switch_hook(self.stop_watches)

    # -- Create ----------------------------------------------------------------

    async def create_local(self, project_id: str, name: str) -> GitRepository:
        """Initialise an empty repository at ``<project>/<name>`` on branch ``main``."""
        state = self._ctx.require_active()
        name = projects.validate_segment(name, what="Repository name")
        async with self._ctx.session(expect=state) as db:
            project = await projects.get_project(db, project_id)
            repo_path = Path(project.project_path) / name
            await _ensure_unregistered(db, repo_path)

        async with self._path_lock(repo_path):
            if await to_thread.run_sync(partial(_is_occupied, repo_path)):
                msg = f"Target directory is not empty: {repo_path}"
                raise AlreadyExistsError(msg, path=str(repo_path))
            try:
                await gitops.init_repository(repo_path, gitops.INITIAL_BRANCH)
            except GitCommandError as exc:
                raise GitInitError(exc.message, path=str(repo_path)) from exc

            async with self._ctx.session(expect=state) as db:
                row = await git_repos.insert_repository(
                    db,
                    project_id=project_id,
                    name=name,
                    path=str(repo_path),
                    branch=gitops.INITIAL_BRANCH,
                )
                repo = GitRepository.from_row(row)

        logger.info("Repository created: {} ({})", repo.name, repo.path)
        return repo

    async def clone(self, project_id: str, body: GitCloneInput) -> GitRepository:
        """Clone ``body.remote_url`` into ``<project>/<target_dir_name>``.

        If the clone fails but the target already holds a repository, that
        repository is registered instead.
        """
        state = self._ctx.require_active()
        url = body.remote_url.strip()
        if not url:
            raise InvalidInputError("Remote URL must not be empty.")
        name = projects.validate_segment(body.target_dir_name, what="Target directory name")
        async with self._ctx.session(expect=state) as db:
            project = await projects.get_project(db, project_id)
            repo_path = Path(project.project_path) / name
            await _ensure_unregistered(db, repo_path)

        async with self._path_lock(repo_path):
            env = credential_env(self._credentials, url)
            try:
                await gitops.clone_repository(
                    url, repo_path, branch=body.branch, env=env, timeout=self.network_timeout
                )
            except GitCommandError as exc:
                if not await gitops.is_repository_root(repo_path):
                    raise CloneError(exc.message, url=url, path=str(repo_path)) from exc
                logger.warning("Clone into {} failed ({}); using the existing repository", repo_path, exc.message)

            try:
                branch = await gitops.current_branch(repo_path)
                remote_url = await gitops.first_remote_url(repo_path)
            except GitCommandError as exc:
                raise RepoOpenError(exc.message, path=str(repo_path)) from exc

            now = utcnow()
            async with self._ctx.session(expect=state) as db:
                row = await git_repos.insert_repository(
                    db,
                    project_id=project_id,
                    name=name,
                    path=str(repo_path),
                    remote_url=remote_url,
                    branch=branch,
                    last_sync_at=now,
                )
                repo = GitRepository.from_row(row)

        logger.info("Repository cloned: {} -> {}", url, repo.path)
        return repo

    # -- Sync ------------------------------------------------------------------

    async def pull(self, repo_id: str) -> GitPullResult:
        """Fetch from ``origin`` and fast-forward a clean working tree.

        Missing repository, unopenable path and missing ``origin`` raise;
        network failures are reported as ``ok=False``.
        """
        state = self._ctx.require_active()
        async with self._ctx.session(expect=state) as db:
            row = await git_repos.get_repository(db, repo_id)
            path = Path(row.path)

        async with self._repo_lock(repo_id):
            await _require_repository(path)
            url = await gitops.remote_url(path, ORIGIN)
            if url is None:
                msg = f"Repository has no '{ORIGIN}' remote: {path}"
                raise RemoteNotFoundError(msg, id=repo_id, remote=ORIGIN)

            branch = await gitops.current_branch(path)
            env = credential_env(self._credentials, url)
            try:
                advertised = await gitops.remote_heads(path, ORIGIN, env=env, timeout=self.network_timeout)
                wanted = [b for b in _branch_candidates(branch) if b in advertised]
                if not wanted:
                    names = ", ".join(_branch_candidates(branch))
                    message = f"Nothing to fetch: '{ORIGIN}' has none of the branches {names}."
                    logger.info("Pull of {}: {}", path, message)
                    return GitPullResult(ok=True, message=message)
                await gitops.fetch(path, ORIGIN, wanted, env=env, timeout=self.network_timeout)
            except GitCommandError as exc:
                logger.warning("Pull of {} failed: {}", path, exc.message)
                return GitPullResult(ok=False, message=exc.message)

            synced_at = utcnow()
            async with self._ctx.session(expect=state) as db:
                await git_repos.mark_synced(db, repo_id, synced_at)

            message = await self._fast_forward(path, branch)

        logger.info("Repository pulled: {} ({})", path, message)
        return GitPullResult(ok=True, message=message, synced_at=synced_at)

    async def status(self, repo_id: str, allow_network: bool = False) -> GitRepoStatus:
        """Read branch and dirtiness; with *allow_network* also reachability and ahead/behind.

        Only network-enabled checks are persisted.  The working tree is never
        modified.
        """
        state = self._ctx.require_active()
        async with self._ctx.session(expect=state) as db:
            row = await git_repos.get_repository(db, repo_id)
            path = Path(row.path)

        async with self._repo_lock(repo_id):
            try:
                branch, dirty = await _read_working_tree(repo_id, path)
            except GitError as exc:
                if allow_network:
                    # The cached snapshot must not keep claiming clean/dirty.
                    failed = GitRepoStatus(
                        repo_id=repo_id, last_checked_at=utcnow(), last_error=exc.message, readable=False
                    )
                    async with self._ctx.session(expect=state) as db:
                        await git_repos.save_status_snapshot(db, failed)
                raise

            if not allow_network:
                return GitRepoStatus(repo_id=repo_id, branch=branch, dirty=dirty, last_checked_at=utcnow())

            network, ahead, behind, error = await self._remote_state(path, branch)
            status = GitRepoStatus(
                repo_id=repo_id,
                branch=branch,
                dirty=dirty,
                ahead=ahead,
                behind=behind,
                last_checked_at=utcnow(),
                network=network,
                last_error=error,
            )
            async with self._ctx.session(expect=state) as db:
                await git_repos.save_status_snapshot(db, status)

        logger.debug(
            "Status {}: branch={} dirty={} +{}/-{} network={}", path, branch, dirty, ahead, behind, network
        )
        return status

    # -- Watch -----------------------------------------------------------------

    async def watch_start(self, repo_id: str | None = None) -> WatchResponse:
        """Check *repo_id* (every repository when ``None``) every ``watch_interval`` seconds."""
        state = self._ctx.require_active()
        if repo_id is not None:
            async with self._ctx.session(expect=state) as db:
                await git_repos.get_repository(db, repo_id)
        self.watcher.start(repo_id)
        return WatchResponse(ok=True, watching=self.watcher.watching)

    async def watch_stop(self, repo_id: str | None = None) -> WatchResponse:
        await self.watcher.stop(repo_id)
        return WatchResponse(ok=True, watching=self.watcher.watching)

    async def stop_watches(self) -> None:
        await self.watcher.stop_all()

    async def _watched_check(self, repo_id: str) -> None:
        await self.status(repo_id, allow_network=True)

    async def _all_repository_ids(self) -> list[str]:
        async with self._ctx.session() as db:
            return await git_repos.list_all_repository_ids(db)

    # -- Internals -------------------------------------------------------------

    async def _remote_state(self, path: Path, branch: str | None) -> tuple[NetworkState, int, int, str | None]:
        """Reachability of ``origin`` and ahead/behind against the upstream.

        Never raises for git failures: they degrade to zero counts plus an error.
        """
        url = await gitops.remote_url(path, ORIGIN)
        if url is None:
            return NetworkState.UNKNOWN, 0, 0, f"Remote '{ORIGIN}' is not configured."

        env = credential_env(self._credentials, url)
        try:
            await gitops.fetch(path, ORIGIN, env=env, timeout=self.network_timeout)
        except GitCommandError as exc:
            return NetworkState.OFFLINE, 0, 0, exc.message

        try:
            upstream = await gitops.upstream_of(path, branch, ORIGIN)
            if upstream is None:
                return NetworkState.ONLINE, 0, 0, f"Branch '{branch or 'HEAD'}' has no upstream."
            ahead, behind = await gitops.ahead_behind(path, upstream)
        except GitCommandError as exc:
            return NetworkState.ONLINE, 0, 0, exc.message
        return NetworkState.ONLINE, ahead, behind, None

    async def _fast_forward(self, path: Path, branch: str | None) -> str:
        if branch is None:
            return "Fetched; HEAD is detached, nothing merged."
        try:
            upstream = await gitops.upstream_of(path, branch, ORIGIN)
            if upstream is None:
                return f"Fetched; branch '{branch}' has no upstream, nothing merged."
            if await gitops.is_dirty(path):
                return "Fetched; working tree has local changes, not merged."
            await gitops.fast_forward(path, upstream)
        except GitCommandError as exc:
            return f"Fetched; fast-forward not possible: {exc.message}"
        return f"Pulled {upstream} into {branch}."

    def _repo_lock(self, repo_id: str) -> asyncio.Lock:
        return self._repo_locks.setdefault(repo_id, asyncio.Lock())

    def _path_lock(self, path: Path) -> asyncio.Lock:
        return self._path_locks.setdefault(str(path), asyncio.Lock())


async def _require_repository(path: Path) -> None:
    if not await gitops.is_repository_root(path):
        msg = f"Not a git repository: {path}"
        raise RepoOpenError(msg, path=str(path))


async def _read_working_tree(repo_id: str, path: Path) -> tuple[str | None, bool]:
    """Current branch and dirty flag.  Raises ``RepoOpenError`` / ``GitError``."""
    await _require_repository(path)
    try:
        return await gitops.current_branch(path), await gitops.is_dirty(path)
    except GitCommandError as exc:
        raise GitError(exc.message, id=repo_id, path=str(path)) from exc


def _branch_candidates(branch: str | None) -> list[str]:
    candidates = [branch] if branch else []
    candidates += [b for b in gitops.DEFAULT_BRANCH_CANDIDATES if b != branch]
    return candidates


def _is_occupied(path: Path) -> bool:
    """Whether *path* exists and is anything but an empty directory."""
    if not path.exists():
        return False
    if not path.is_dir():
        return True
    return any(path.iterdir())


async def _ensure_unregistered(db: AsyncSession, repo_path: Path) -> None:
    if await git_repos.find_by_path(db, str(repo_path)) is not None:
        msg = f"Repository path is already registered: {repo_path}"
        raise AlreadyExistsError(msg, path=str(repo_path))
