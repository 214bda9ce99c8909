"""Workspace endpoints (RPC-style).

All write operations use POST; reads use GET.  Opening a workspace swaps
the active database for every other router.
"""

from __future__ import annotations

from fastapi import APIRouter, status

from pmdesk.desk_runtime.deps import Context, DbSession, RecentStore
from pmdesk.desk_runtime.managers import workspaces
from pmdesk.desk_runtime.models.api import RecentAliasUpdate, RecentRemove, WorkspaceOpen, WorkspaceSettingsUpdate
from pmdesk.desk_runtime.models.workspace import RecentWorkspace, WorkspaceInfo, WorkspaceSettings

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


@router.post("/open", response_model=WorkspaceInfo)
async def open_workspace(body: WorkspaceOpen, ctx: Context, recent: RecentStore) -> WorkspaceInfo:
    """Open (creating its database on first use) and activate a workspace."""
    return await workspaces.open_or_create(ctx, recent, body.path)


@router.get("/current", response_model=WorkspaceInfo)
async def current_workspace(ctx: Context, recent: RecentStore) -> WorkspaceInfo:
    return await workspaces.current(ctx, recent)


# -- Recent ------------------------------------------------------------------


@router.get("/recent/list", response_model=list[RecentWorkspace])
async def list_recent(recent: RecentStore) -> list[RecentWorkspace]:
    """Recently opened workspaces, most recent first."""
    return await workspaces.list_recent(recent)


@router.post("/recent/alias", response_model=RecentWorkspace)
async def update_alias(body: RecentAliasUpdate, recent: RecentStore) -> RecentWorkspace:
    return await workspaces.update_alias(recent, body.path, body.alias)


@router.post("/recent/remove", status_code=status.HTTP_204_NO_CONTENT)
async def remove_recent(body: RecentRemove, recent: RecentStore) -> None:
    """Forget a workspace.  Its directory and database are left alone."""
    await workspaces.remove_from_recent(recent, body.path)


# -- Settings ----------------------------------------------------------------


@router.get("/settings/get", response_model=WorkspaceSettings)
async def get_settings(db: DbSession) -> WorkspaceSettings:
    return await workspaces.get_settings(db)


@router.post("/settings/update", response_model=WorkspaceSettings)
async def update_settings(body: WorkspaceSettingsUpdate, db: DbSession) -> WorkspaceSettings:
    """Merge the provided fields into the workspace settings."""
    return await workspaces.update_settings(db, body)
