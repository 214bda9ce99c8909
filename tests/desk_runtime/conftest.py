"""Shared fixtures for desk-runtime HTTP tests."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient

from pmdesk.desk_runtime.app import app
from pmdesk.desk_runtime.context import AppContext
from pmdesk.desk_runtime.store.recent import RecentWorkspaceStore
from pmdesk.desk_runtime.sync.engine import GitSyncEngine


@pytest.fixture
async def client(
    ctx: AppContext, recent_store: RecentWorkspaceStore, sync_engine: GitSyncEngine
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the app with per-test services.

    The app lifespan does NOT run under ``ASGITransport``, so the state
    fields it would set are pre-set from the ``ctx`` / ``recent_store`` /
    ``sync_engine`` fixtures (which also clean up after the test).
    """
    app.state.context = ctx
    app.state.recent_store = recent_store
    app.state.sync_engine = sync_engine

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
