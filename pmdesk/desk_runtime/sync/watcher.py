"""Periodic background status checks.

One asyncio task per watch key: a repository id, or ``ALL`` for every
repository of the active workspace.  Each tick runs the check callback for
the key's repositories, with three guarantees:

- a repository is never checked twice at the same time, even when it is
  covered by several keys (repositories already in flight are skipped for
  that tick);
- at most ``concurrency`` checks run at once across all keys;
- stopping a key halts scheduling but lets a check that already started
  finish; ``stop`` returns once it has.

A failing check is logged and never ends the loop.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from loguru import logger

from pmdesk.desk_runtime.errors import DeskError

ALL = "*"

CheckFn = Callable[[str], Awaitable[object]]
ListFn = Callable[[], Awaitable[list[str]]]


class StatusWatcher:
    def __init__(
        self,
        check: CheckFn,
        list_all: ListFn,
        *,
        interval: float = 300.0,
        concurrency: int = 4,
    ) -> None:
        self._check = check
        self._list_all = list_all
        self._interval = interval
        self._semaphore = asyncio.Semaphore(max(1, concurrency))
        self._tasks: dict[str, tuple[asyncio.Task[None], asyncio.Event]] = {}
        self._in_flight: set[str] = set()

    # -- Query -----------------------------------------------------------------

    @property
    def watching(self) -> list[str]:
        return sorted(key for key, (task, _) in self._tasks.items() if not task.done())

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    # -- Control ---------------------------------------------------------------

    def start(self, repo_id: str | None = None) -> bool:
        """Start watching *repo_id* (all repositories when ``None``).

        Returns ``False`` if that key is already being watched.
        """
        key = repo_id or ALL
        current = self._tasks.get(key)
        if current is not None and not current[0].done():
            return False

        stop = asyncio.Event()
        task = asyncio.create_task(self._loop(key, stop), name=f"git-watch:{key}")
        self._tasks[key] = (task, stop)
        logger.info("Watcher: started {} (interval={}s)", key, self._interval)
        return True

    async def stop(self, repo_id: str | None = None) -> bool:
        """Stop one key.  Returns ``False`` if it was not being watched."""
        entry = self._tasks.pop(repo_id or ALL, None)
        if entry is None:
            return False
        task, stop = entry
        stop.set()
        await task
        return True

    async def stop_all(self) -> None:
        entries = list(self._tasks.values())
        self._tasks.clear()
        for _, stop in entries:
            stop.set()
        if entries:
            await asyncio.gather(*(task for task, _ in entries))
            logger.info("Watcher: stopped {} watch(es)", len(entries))

    # -- Loop ------------------------------------------------------------------

    async def _loop(self, key: str, stop: asyncio.Event) -> None:
        while not stop.is_set():
            try:
                await self._tick(key, stop)
            except Exception:
                logger.exception("Watcher: tick for {} failed", key)
            try:
                await asyncio.wait_for(stop.wait(), timeout=self._interval)
            except TimeoutError:
                continue
        logger.info("Watcher: stopped {}", key)

    async def _tick(self, key: str, stop: asyncio.Event) -> None:
        if key == ALL:
            try:
                repo_ids = await self._list_all()
            except DeskError as exc:
                logger.warning("Watcher: cannot list repositories: {}", exc.message)
                return
        else:
            repo_ids = [key]

        pending = []
        for repo_id in repo_ids:
            if repo_id in self._in_flight:
                logger.debug("Watcher: {} still being checked, skipping this tick", repo_id)
                continue
            self._in_flight.add(repo_id)
            pending.append(self._run_check(repo_id, stop))
        if pending:
            await asyncio.gather(*pending)

    async def _run_check(self, repo_id: str, stop: asyncio.Event) -> None:
        try:
            async with self._semaphore:
                if stop.is_set():
                    return
                await self._check(repo_id)
        except DeskError as exc:
            logger.warning("Watcher: status check for {} failed: {}", repo_id, exc.message)
        except Exception:
            logger.exception("Watcher: unexpected error checking {}", repo_id)
        finally:
            self._in_flight.discard(repo_id)
