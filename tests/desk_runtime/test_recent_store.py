"""Unit tests for RecentWorkspaceStore.

No workspace database required -- uses a temporary directory.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from pmdesk.desk_runtime.errors import NotFoundError
from pmdesk.desk_runtime.store.recent import RECENT_LIMIT, RecentWorkspaceStore

T0 = datetime(2026, 1, 1, tzinfo=UTC)


@pytest.fixture
def store(tmp_path) -> RecentWorkspaceStore:
    return RecentWorkspaceStore(tmp_path / "recent.json")


async def test_missing_file_is_empty(store: RecentWorkspaceStore) -> None:
    assert await store.entries() == []


async def test_touch_orders_most_recent_first(store: RecentWorkspaceStore) -> None:
    await store.touch("/ws/a", T0)
    await store.touch("/ws/b", T0 + timedelta(minutes=1))
    await store.touch("/ws/a", T0 + timedelta(minutes=2))

    entries = await store.entries()
    assert [e.path for e in entries] == ["/ws/a", "/ws/b"]
    assert entries[0].last_opened_at == T0 + timedelta(minutes=2)
    assert entries[0].db_path.endswith("app.db")


async def test_touch_caps_the_list(store: RecentWorkspaceStore) -> None:
    for i in range(RECENT_LIMIT + 3):
        await store.touch(f"/ws/{i}", T0 + timedelta(minutes=i))

    entries = await store.entries()
    assert len(entries) == RECENT_LIMIT
    assert entries[0].path == f"/ws/{RECENT_LIMIT + 2}"
    assert "/ws/0" not in {e.path for e in entries}


async def test_alias_survives_reopen(store: RecentWorkspaceStore) -> None:
    await store.touch("/ws/a", T0)
    await store.update_alias("/ws/a", "Home")
    await store.touch("/ws/a", T0 + timedelta(hours=1))

    entry = await store.get("/ws/a")
    assert entry is not None
    assert entry.alias == "Home"


async def test_blank_alias_clears(store: RecentWorkspaceStore) -> None:
    await store.touch("/ws/a", T0)
    await store.update_alias("/ws/a", "Home")
    updated = await store.update_alias("/ws/a", "")
    assert updated.alias is None


async def test_unknown_path_raises(store: RecentWorkspaceStore) -> None:
    with pytest.raises(NotFoundError):
        await store.update_alias("/nowhere", "x")
    with pytest.raises(NotFoundError):
        await store.remove("/nowhere")


async def test_remove(store: RecentWorkspaceStore) -> None:
    await store.touch("/ws/a", T0)
    await store.touch("/ws/b", T0)
    await store.remove("/ws/a")
    assert [e.path for e in await store.entries()] == ["/ws/b"]


async def test_corrupt_file_is_treated_as_empty(store: RecentWorkspaceStore) -> None:
    store.path.write_text("{not json", encoding="utf-8")
    assert await store.entries() == []

    # And the next write replaces it with valid content.
    await store.touch("/ws/a", T0)
    assert [e.path for e in await store.entries()] == ["/ws/a"]


async def test_write_leaves_no_temp_files(store: RecentWorkspaceStore) -> None:
    await store.touch("/ws/a", T0)
    leftovers = [p.name for p in store.path.parent.iterdir() if p.suffix == ".tmp"]
    assert leftovers == []
