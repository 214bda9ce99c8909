"""Git repository endpoints (RPC-style).

Registry reads go through ``DbSession``; anything that runs git goes
through the sync engine, which manages its own short sessions so that no
request holds the registry lock while waiting on the network.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from pmdesk.desk_runtime.deps import DbSession, SyncEngine
from pmdesk.desk_runtime.managers import git_repos
from pmdesk.desk_runtime.models.api import (
    GitRepoClone,
    GitRepoCreate,
    GitRepoUpdate,
    RepoNameResponse,
    WatchRequest,
    WatchResponse,
)
from pmdesk.desk_runtime.models.git import GitPullResult, GitRepoStatus, GitRepository

router = APIRouter(prefix="/git", tags=["git"])


@router.get("/repos/list", response_model=list[GitRepository])
async def list_repositories(db: DbSession, project_id: str = Query(...)) -> list[GitRepository]:
    """Repositories registered under a project."""
    return [GitRepository.from_row(row) for row in await git_repos.list_repositories(db, project_id)]


@router.get("/repos/{repo_id}/get", response_model=GitRepository)
async def get_repository(repo_id: str, db: DbSession) -> GitRepository:
    return GitRepository.from_row(await git_repos.get_repository(db, repo_id))


@router.post("/repos/create", response_model=GitRepository, status_code=status.HTTP_201_CREATED)
async def create_repository(body: GitRepoCreate, engine: SyncEngine) -> GitRepository:
    """Initialise a new local repository inside a project."""
    return await engine.create_local(body.project_id, body.name)


@router.post("/repos/clone", response_model=GitRepository, status_code=status.HTTP_201_CREATED)
async def clone_repository(body: GitRepoClone, engine: SyncEngine) -> GitRepository:
    """Clone a remote repository into a project."""
    return await engine.clone(body.project_id, body)


@router.post("/repos/{repo_id}/update", response_model=GitRepository)
async def update_repository(repo_id: str, body: GitRepoUpdate, db: DbSession) -> GitRepository:
    """Set the repository's display name and description."""
    return GitRepository.from_row(await git_repos.update_repository(db, repo_id, body))


@router.post("/repos/{repo_id}/pull", response_model=GitPullResult)
async def pull_repository(repo_id: str, engine: SyncEngine) -> GitPullResult:
    """Fetch from origin; network failures come back as ``ok=false``."""
    return await engine.pull(repo_id)


@router.get("/repos/{repo_id}/status", response_model=GitRepoStatus)
async def repository_status(repo_id: str, engine: SyncEngine) -> GitRepoStatus:
    """Local-only status: branch and dirtiness, nothing persisted."""
    return await engine.status(repo_id, allow_network=False)


@router.post("/repos/{repo_id}/check", response_model=GitRepoStatus)
async def check_repository(repo_id: str, engine: SyncEngine) -> GitRepoStatus:
    """Full status including the remote; the result is cached on the repository."""
    return await engine.status(repo_id, allow_network=True)


# -- Watch -------------------------------------------------------------------


@router.post("/watch/start", response_model=WatchResponse)
async def watch_start(body: WatchRequest, engine: SyncEngine) -> WatchResponse:
    return await engine.watch_start(body.repo_id)


@router.post("/watch/stop", response_model=WatchResponse)
async def watch_stop(body: WatchRequest, engine: SyncEngine) -> WatchResponse:
    return await engine.watch_stop(body.repo_id)


# -- Helpers -----------------------------------------------------------------


@router.get("/extract-name", response_model=RepoNameResponse)
async def extract_name(url: str = Query(...)) -> RepoNameResponse:
    """Suggest a target directory name for a remote URL."""
    return RepoNameResponse(name=git_repos.extract_repo_name(url))
