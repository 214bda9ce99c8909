"""Workspace registry operations.

Opening a workspace validates the root directory, swaps the active database
in ``AppContext`` and records the path in the recent-workspaces cache.
Workspace settings live in the workspace's own ``workspace_meta`` table.
"""

from __future__ import annotations

import contextlib
from functools import partial
from pathlib import Path

from anyio import to_thread
from loguru import logger
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from pmdesk.desk_runtime.context import AppContext
from pmdesk.desk_runtime.db.tables import WorkspaceMeta, utcnow
from pmdesk.desk_runtime.errors import NotWritableError, WorkspacePathError
from pmdesk.desk_runtime.models.api import WorkspaceSettingsUpdate
from pmdesk.desk_runtime.models.blob import load_blob
from pmdesk.desk_runtime.models.workspace import RecentWorkspace, WorkspaceInfo, WorkspaceSettings
from pmdesk.desk_runtime.store.recent import RecentWorkspaceStore

WRITE_PROBE_NAME = ".app_test_write"

SETTINGS_KEY = "settings"
LAST_OPENED_KEY = "last_opened"


def validate_workspace_path(path: str | Path) -> Path:
    """Check that *path* is an existing, writable directory; return it resolved.

    Writability is probed by creating and removing a marker file.
    """
    root = Path(path).expanduser()
    if not root.exists():
        msg = f"Workspace path does not exist: {root}"
        raise WorkspacePathError(msg, path=str(root))
    if not root.is_dir():
        msg = f"Workspace path must be a directory: {root}"
        raise WorkspacePathError(msg, path=str(root))

    probe = root / WRITE_PROBE_NAME
    try:
        probe.write_text("test", encoding="utf-8")
    except OSError as exc:
        msg = f"Workspace directory is not writable: {root} ({exc.strerror or exc})"
        raise NotWritableError(msg, path=str(root)) from exc
    finally:
        with contextlib.suppress(OSError):
            probe.unlink()
    return root.resolve()


async def open_or_create(ctx: AppContext, recent: RecentWorkspaceStore, path: str) -> WorkspaceInfo:
    """Open *path* as the active workspace, initialising it on first use."""
    root = await to_thread.run_sync(partial(validate_workspace_path, path))
    state = await ctx.open_workspace(root)

    now = utcnow()
    async with ctx.session(expect=state) as db:
        await _put_meta(db, LAST_OPENED_KEY, str(root))
        await db.commit()
        settings = await get_settings(db)

    alias: str | None = None
    try:
        entry = await recent.touch(str(root), now)
        alias = entry.alias
    except OSError as exc:
        logger.warning("Could not update recent workspaces {}: {}", recent.path, exc)

    return WorkspaceInfo(
        path=str(root),
        db_path=str(state.db_path),
        last_opened_at=now,
        alias=alias,
        settings=settings,
    )


async def current(ctx: AppContext, recent: RecentWorkspaceStore) -> WorkspaceInfo:
    """Describe the active workspace.  Raises ``NoActiveWorkspaceError`` if none."""
    state = ctx.require_active()
    async with ctx.session(expect=state) as db:
        settings = await get_settings(db)
    entry = await recent.get(str(state.root))
    return WorkspaceInfo(
        path=str(state.root),
        db_path=str(state.db_path),
        last_opened_at=state.opened_at,
        alias=entry.alias if entry else None,
        settings=settings,
    )


# -- Recent cache ----------------------------------------------------------------


async def list_recent(recent: RecentWorkspaceStore) -> list[RecentWorkspace]:
    """Recent workspaces, most recent first.  Paths are not checked for existence."""
    return await recent.entries()


async def update_alias(recent: RecentWorkspaceStore, path: str, alias: str | None) -> RecentWorkspace:
    """Raises ``NotFoundError`` if *path* is not in the cache."""
    return await recent.update_alias(path, alias)


async def remove_from_recent(recent: RecentWorkspaceStore, path: str) -> None:
    """Raises ``NotFoundError`` if *path* is not in the cache."""
    await recent.remove(path)


# -- Settings --------------------------------------------------------------------


async def get_settings(db: AsyncSession) -> WorkspaceSettings:
    """Persisted settings, or defaults when none (or unparseable ones) are stored."""
    row = await db.get(WorkspaceMeta, SETTINGS_KEY)
    settings = load_blob(WorkspaceSettings, row.value if row else None, field="workspace_meta.settings")
    return settings or WorkspaceSettings()


async def update_settings(db: AsyncSession, body: WorkspaceSettingsUpdate) -> WorkspaceSettings:
    """Merge the explicitly provided fields into the stored settings."""
    settings = await get_settings(db)
    changes = body.model_dump(exclude_unset=True)
    merged = settings.model_copy(update={key: getattr(body, key) for key in changes})
    await _put_meta(db, SETTINGS_KEY, merged.model_dump_json())
    await db.commit()
    return merged


async def _put_meta(db: AsyncSession, key: str, value: str) -> None:
    now = utcnow()
    stmt = sqlite_insert(WorkspaceMeta).values(key=key, value=value, updated_at=now)
    stmt = stmt.on_conflict_do_update(index_elements=["key"], set_={"value": value, "updated_at": now})
    await db.execute(stmt)
