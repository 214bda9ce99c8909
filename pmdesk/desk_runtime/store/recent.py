"""Recent-workspaces cache.

A small JSON file in the per-user config directory, independent of any
workspace database::

    {config_dir}/recent_workspaces.json

The list is ordered most recent first, deduplicated by path and capped at
``RECENT_LIMIT`` entries.  Paths are never validated -- the cache is purely
informational.

Uses ``anyio.to_thread.run_sync`` for non-blocking file I/O.

Writes are atomic: data is written to a temporary file in the same directory,
then renamed to the target path.  This prevents corrupt reads if the process
crashes mid-write.  A file that cannot be read or parsed is treated as an
empty cache.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from datetime import datetime
from functools import partial
from pathlib import Path

import anyio
from anyio import to_thread
from loguru import logger
from pydantic import TypeAdapter, ValidationError

from pmdesk.desk_runtime.db.engine import database_path
from pmdesk.desk_runtime.errors import NotFoundError
from pmdesk.desk_runtime.models.workspace import RecentWorkspace

RECENT_LIMIT = 10

_entries = TypeAdapter(list[RecentWorkspace])


class RecentWorkspaceStore:
    """File-backed list of recently opened workspaces.

    Mutations are serialized by an in-process lock so two concurrent opens
    cannot interleave their read-modify-write cycles.
    """

    def __init__(self, path: str | Path, limit: int = RECENT_LIMIT) -> None:
        self._path = Path(path)
        self._limit = limit
        self._lock = anyio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    # -- Read ------------------------------------------------------------------

    async def entries(self) -> list[RecentWorkspace]:
        return await to_thread.run_sync(partial(_load, self._path))

    async def get(self, path: str) -> RecentWorkspace | None:
        for entry in await self.entries():
            if entry.path == path:
                return entry
        return None

    # -- Write -----------------------------------------------------------------

    async def touch(self, path: str, opened_at: datetime) -> RecentWorkspace:
        """Move *path* to the front (inserting it if new), keeping its alias."""
        async with self._lock:
            entries = await self.entries()
            previous = next((e for e in entries if e.path == path), None)
            entry = RecentWorkspace(
                path=path,
                db_path=str(database_path(path)),
                last_opened_at=opened_at,
                alias=previous.alias if previous else None,
            )
            entries = [entry, *(e for e in entries if e.path != path)][: self._limit]
            await self._save(entries)
        return entry

    async def update_alias(self, path: str, alias: str | None) -> RecentWorkspace:
        """Set or clear the alias.  Raises ``NotFoundError`` if *path* is not cached."""
        async with self._lock:
            entries = await self.entries()
            for entry in entries:
                if entry.path == path:
                    entry.alias = alias or None
                    await self._save(entries)
                    return entry
        raise NotFoundError(f"Workspace '{path}' is not in the recent list.", path=path)

    async def remove(self, path: str) -> None:
        """Drop *path*.  Raises ``NotFoundError`` if it is not cached."""
        async with self._lock:
            entries = await self.entries()
            remaining = [e for e in entries if e.path != path]
            if len(remaining) == len(entries):
                raise NotFoundError(f"Workspace '{path}' is not in the recent list.", path=path)
            await self._save(remaining)

    async def _save(self, entries: list[RecentWorkspace]) -> None:
        data = _entries.dump_json(entries, indent=2).decode("utf-8")
        await to_thread.run_sync(partial(_atomic_write, self._path, data))


# -- Sync helpers (run in thread pool) -----------------------------------------


def _load(path: Path) -> list[RecentWorkspace]:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except OSError as exc:
        logger.warning("Cannot read recent workspaces {}: {}", path, exc)
        return []
    try:
        return _entries.validate_json(raw)
    except ValidationError:
        logger.warning("Recent workspaces file {} is corrupt; starting empty", path)
        return []


def _atomic_write(path: Path, data: str) -> None:
    """Write data atomically: temp file + rename.

    Ensures readers never see a partially-written file.  The temp file is
    created in the same directory so ``os.replace`` is atomic on POSIX.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up temp file on any failure.
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise
