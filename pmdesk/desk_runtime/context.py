"""Application context: the one active workspace and its database handle.

Replaces a process-global connection with an explicit object constructed
once at startup (``app.state.context``) and handed to every manager and
the sync engine.

Invariants
----------

- At most one workspace is active; it owns exactly one SQLAlchemy engine
  (one SQLite connection).
- Every registry read/write runs inside ``session()``, which holds the
  context lock for one transaction only.  Git network I/O never runs under
  this lock.
- ``open_workspace`` disposes the previous engine *before* creating the new
  one, and does both while holding the lock, so concurrent registry calls
  block until the switch completes instead of seeing a half-swapped handle.
- Long-running operations capture the ``WorkspaceState`` they started with
  and pass it back as ``session(expect=...)``; if the workspace changed in
  the meantime they fail with ``WorkspaceNotReadyError`` rather than write
  into another workspace's database.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from pmdesk.desk_runtime.db.engine import create_engine, create_session_factory, database_path, init_schema
from pmdesk.desk_runtime.db.tables import utcnow
from pmdesk.desk_runtime.errors import (
    FilesystemError,
    NoActiveWorkspaceError,
    PersistenceError,
    WorkspaceNotReadyError,
)

SwitchHook = Callable[[], Awaitable[None]]

_ROOT_KEY = "workspace_root"


@dataclass
class WorkspaceState:
    """The open workspace and the engine bound to its database."""

    root: Path
    db_path: Path
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    opened_at: datetime = field(default_factory=utcnow)


class AppContext:
    """Owner of the active workspace for the process lifetime."""

    def __init__(self) -> None:
        self._state: WorkspaceState | None = None
        self._lock = asyncio.Lock()
        self._switch_hooks: list[SwitchHook] = []

    # -- Query -----------------------------------------------------------------

    @property
    def active(self) -> WorkspaceState | None:
        return self._state

    def require_active(self) -> WorkspaceState:
        """Return the active workspace.  Raises ``NoActiveWorkspaceError`` if none."""
        if self._state is None:
            raise NoActiveWorkspaceError
        return self._state

    # -- Lifecycle -------------------------------------------------------------

    def add_switch_hook(self, hook: SwitchHook) -> None:
        """Register a coroutine run before the active workspace is released."""
        self._switch_hooks.append(hook)

    async def open_workspace(self, root: Path) -> WorkspaceState:
        """Swap the active workspace to *root*, creating its database if new.

        The caller validates *root*.  On failure no workspace is active.
        """
        await self._run_switch_hooks()

        async with self._lock:
            await self._release()

            db_path = database_path(root)
            try:
                db_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                msg = f"Cannot create {db_path.parent}: {exc}"
                raise FilesystemError(msg, path=str(db_path.parent)) from exc

            engine = create_engine(db_path)
            try:
                await init_schema(engine)
            except SQLAlchemyError as exc:
                await engine.dispose()
                msg = f"Failed to initialise workspace database {db_path}: {exc}"
                raise PersistenceError(msg, path=str(db_path)) from exc

            self._state = WorkspaceState(
                root=root,
                db_path=db_path,
                engine=engine,
                session_factory=create_session_factory(engine),
            )

        logger.info("Workspace opened: {} (db={})", root, db_path)
        return self._state

    async def close(self) -> None:
        """Release the active workspace, if any."""
        await self._run_switch_hooks()
        async with self._lock:
            await self._release()

    async def _release(self) -> None:
        # Caller holds self._lock.
        state, self._state = self._state, None
        if state is not None:
            await state.engine.dispose()
            logger.info("Workspace released: {}", state.root)

    async def _run_switch_hooks(self) -> None:
        for hook in self._switch_hooks:
            await hook()

    # -- Sessions --------------------------------------------------------------

    @asynccontextmanager
    async def session(self, *, expect: WorkspaceState | None = None) -> AsyncIterator[AsyncSession]:
        """Yield a session on the active workspace, holding the context lock.

        SQLAlchemy failures are rolled back and re-raised as ``PersistenceError``.
        """
        async with self._lock:
            state = self._state
            if state is None:
                raise NoActiveWorkspaceError
            if expect is not None and state is not expect:
                raise WorkspaceNotReadyError

            db = state.session_factory(info={_ROOT_KEY: state.root})
            try:
                yield db
            except SQLAlchemyError as exc:
                await db.rollback()
                msg = f"Database error: {exc}"
                raise PersistenceError(msg) from exc
            finally:
                await db.close()


def workspace_root(db: AsyncSession) -> Path:
    """Root directory of the workspace *db* belongs to."""
    root = db.info.get(_ROOT_KEY)
    if root is None:
        raise NoActiveWorkspaceError
    return root
