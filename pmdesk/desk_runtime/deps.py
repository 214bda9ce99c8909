"""FastAPI dependency injection for the workspace context and services.

Usage in route handlers::

    @router.post("/things")
    async def create_thing(db: DbSession, thing: ThingCreate) -> ThingResponse:
        ...

``DbSession`` raises ``NoActiveWorkspaceError`` (HTTP 503) when no
workspace is open; the app's exception handler renders it.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from pmdesk.desk_runtime.context import AppContext
from pmdesk.desk_runtime.store.recent import RecentWorkspaceStore
from pmdesk.desk_runtime.sync.engine import GitSyncEngine


def get_context(request: Request) -> AppContext:
    return request.app.state.context


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield a session on the active workspace, holding the registry lock.

    The route handler commits; anything uncommitted is discarded when the
    session closes.
    """
    ctx: AppContext = request.app.state.context
    async with ctx.session() as session:
        yield session


def get_sync_engine(request: Request) -> GitSyncEngine:
    return request.app.state.sync_engine


def get_recent_store(request: Request) -> RecentWorkspaceStore:
    return request.app.state.recent_store


# -- Annotated type aliases for concise route signatures ---------------------

Context = Annotated[AppContext, Depends(get_context)]
"""Annotated dependency: the process-wide application context."""

DbSession = Annotated[AsyncSession, Depends(get_db)]
"""Annotated dependency: session on the active workspace (closed after request)."""

SyncEngine = Annotated[GitSyncEngine, Depends(get_sync_engine)]
"""Annotated dependency: the shared git sync engine."""

RecentStore = Annotated[RecentWorkspaceStore, Depends(get_recent_store)]
"""Annotated dependency: the recent-workspaces cache."""
