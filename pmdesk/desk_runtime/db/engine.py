"""Async SQLAlchemy engine, session factory and schema bootstrap.

Uses aiosqlite with the ``sqlite+aiosqlite://`` URL.  A workspace database
is an embedded file, so the engine keeps exactly one connection open
(``StaticPool``); callers serialize access through ``AppContext``.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger
from sqlalchemy import event
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pmdesk.desk_runtime.db.tables import Base, DirectoryType, utcnow

APP_DIR_NAME = ".app"
DB_FILE_NAME = "app.db"

# (kind, display name, category, sort_order).  The kind doubles as the row id,
# which is what makes re-seeding an insert-if-absent no-op.
BUILTIN_DIRECTORY_TYPES: tuple[tuple[str, str, str, int], ...] = (
    ("code", "Code", "code", 1),
    ("docs", "Docs", "docs", 2),
    ("ui_design", "UI Design", "ui_design", 3),
    ("project_planning", "Project Planning", "project_planning", 4),
)


def database_path(workspace_root: str | Path) -> Path:
    """Location of a workspace's database: ``<root>/.app/app.db``."""
    return Path(workspace_root) / APP_DIR_NAME / DB_FILE_NAME


def create_engine(db_path: str | Path, **kwargs: object) -> AsyncEngine:
    """Create an async SQLite engine for one workspace database.

    Default parameters:

    - **poolclass=StaticPool**: one shared connection for the process.
    - **busy timeout 30s**: wait instead of failing if the file is briefly
      locked by an external reader (e.g. a DB browser).

    All defaults can be overridden via *kwargs*.
    """
    defaults = {
        "echo": False,
        "poolclass": StaticPool,
        "connect_args": {"timeout": 30},
    }
    defaults.update(kwargs)  # type: ignore[arg-type]
    engine = create_async_engine(f"sqlite+aiosqlite:///{Path(db_path)}", **defaults)

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, _record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to *engine*.

    ``expire_on_commit=False`` so that ORM instances remain usable after
    commit without triggering lazy loads (important for async code where
    implicit IO is forbidden).
    """
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_schema(engine: AsyncEngine) -> None:
    """Create missing tables and seed the built-in directory types.

    Safe to run on every open: ``create_all`` skips existing tables and the
    seed uses ``INSERT ... ON CONFLICT DO NOTHING``.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

        now = utcnow()
        stmt = sqlite_insert(DirectoryType).on_conflict_do_nothing(index_elements=["id"])
        result = await conn.execute(
            stmt,
            [
                {
                    "id": kind,
                    "kind": kind,
                    "name": name,
                    "category": category,
                    "sort_order": sort_order,
                    "created_at": now,
                    "updated_at": now,
                }
                for kind, name, category, sort_order in BUILTIN_DIRECTORY_TYPES
            ],
        )
    if result.rowcount and result.rowcount > 0:
        logger.info("Seeded {} built-in directory types", result.rowcount)
