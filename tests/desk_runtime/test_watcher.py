"""Unit tests for StatusWatcher scheduling, with stub checks instead of git."""

from __future__ import annotations

import asyncio

import pytest

from pmdesk.desk_runtime.errors import NotFoundError
from pmdesk.desk_runtime.sync.watcher import ALL, StatusWatcher


class SlowCheck:
    """Records calls; each check blocks until released."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.running: dict[str, int] = {}
        self.max_parallel_per_repo = 0
        self.max_parallel = 0
        self.release = asyncio.Event()
        self.finished: list[str] = []

    async def __call__(self, repo_id: str) -> None:
        self.calls.append(repo_id)
        self.running[repo_id] = self.running.get(repo_id, 0) + 1
        self.max_parallel_per_repo = max(self.max_parallel_per_repo, self.running[repo_id])
        self.max_parallel = max(self.max_parallel, sum(self.running.values()))
        try:
            await self.release.wait()
        finally:
            self.running[repo_id] -= 1
        self.finished.append(repo_id)


def _lister(ids: list[str]):
    async def _list() -> list[str]:
        return list(ids)

    return _list


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


async def test_single_repo_ticks_repeatedly() -> None:
    calls: list[str] = []

    async def check(repo_id: str) -> None:
        calls.append(repo_id)

    watcher = StatusWatcher(check, _lister([]), interval=0.01)
    assert watcher.start("r1") is True
    await _wait_for(lambda: len(calls) >= 3)
    assert await watcher.stop("r1") is True

    assert set(calls) == {"r1"}
    assert watcher.watching == []


async def test_start_twice_is_a_noop() -> None:
    check = SlowCheck()
    watcher = StatusWatcher(check, _lister([]), interval=0.01)
    assert watcher.start("r1") is True
    assert watcher.start("r1") is False
    assert watcher.watching == ["r1"]
    check.release.set()
    await watcher.stop_all()


async def test_in_flight_repo_is_never_checked_twice() -> None:
    check = SlowCheck()
    watcher = StatusWatcher(check, _lister(["r1", "r2"]), interval=0.01, concurrency=4)

    # Two keys cover r1; several ticks pass while the first check is blocked.
    watcher.start(ALL)
    watcher.start("r1")
    await _wait_for(lambda: {"r1", "r2"} <= set(check.running))
    await asyncio.sleep(0.05)

    assert check.max_parallel_per_repo == 1
    assert check.calls.count("r1") == 1

    check.release.set()
    await watcher.stop_all()


async def test_concurrency_is_capped() -> None:
    check = SlowCheck()
    watcher = StatusWatcher(check, _lister(["a", "b", "c", "d"]), interval=0.01, concurrency=2)

    watcher.start()
    await _wait_for(lambda: len(check.calls) >= 2)
    await asyncio.sleep(0.05)
    assert check.max_parallel == 2

    check.release.set()
    await watcher.stop_all()
    assert check.max_parallel == 2


async def test_stop_lets_in_flight_check_finish() -> None:
    check = SlowCheck()
    watcher = StatusWatcher(check, _lister([]), interval=0.01)
    watcher.start("r1")
    await _wait_for(lambda: check.running.get("r1") == 1)

    stopping = asyncio.create_task(watcher.stop("r1"))
    await asyncio.sleep(0.02)
    assert not stopping.done()

    check.release.set()
    assert await stopping is True
    assert check.finished == ["r1"]
    assert watcher.in_flight == frozenset()


async def test_stop_skips_queued_checks() -> None:
    check = SlowCheck()
    watcher = StatusWatcher(check, _lister(["a", "b", "c"]), interval=0.01, concurrency=1)
    watcher.start()
    await _wait_for(lambda: len(check.calls) == 1)

    stopping = asyncio.create_task(watcher.stop())
    await asyncio.sleep(0.02)
    check.release.set()
    await stopping

    # Only the check already running when stop was requested ran.
    assert len(check.calls) == 1


async def test_failing_check_does_not_end_the_loop() -> None:
    attempts: list[str] = []

    async def check(repo_id: str) -> None:
        attempts.append(repo_id)
        if len(attempts) == 1:
            raise NotFoundError("gone")
        if len(attempts) == 2:
            raise RuntimeError("boom")

    watcher = StatusWatcher(check, _lister([]), interval=0.01)
    watcher.start("r1")
    await _wait_for(lambda: len(attempts) >= 3)
    await watcher.stop("r1")


async def test_stop_unknown_key() -> None:
    watcher = StatusWatcher(SlowCheck(), _lister([]), interval=0.01)
    assert await watcher.stop("nope") is False


@pytest.mark.parametrize("concurrency", [0, -1])
async def test_concurrency_floor(concurrency: int) -> None:
    calls: list[str] = []

    async def check(repo_id: str) -> None:
        calls.append(repo_id)

    watcher = StatusWatcher(check, _lister(["a"]), interval=0.01, concurrency=concurrency)
    watcher.start()
    await _wait_for(lambda: len(calls) >= 1)
    await watcher.stop_all()
