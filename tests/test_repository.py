import asyncio
import json
import re
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from wellbeing.errors import StorageIOError
from wellbeing.journal import JournalRepository
from wellbeing.moods import MoodRepository
from wellbeing.repository import generate_id


def test_generate_id_format(clock):
    new_id = generate_id("mood", clock)
    millis = int(clock.now().timestamp() * 1000)
    assert re.fullmatch(rf"mood_{millis}_[a-z0-9]{{9}}", new_id)


def test_insert_then_load_by_id_round_trips(store, clock):
    repo = MoodRepository(store, clock)

    async def flow():
        created = await repo.create_entry("u1", "calm", 4, notes="quiet evening")
        loaded = await repo.load_by_id("u1", created.id)
        return created, loaded

    created, loaded = asyncio.run(flow())
    assert loaded == created
    assert loaded.user_id == "u1"
    assert loaded.created_at == loaded.updated_at == clock.now()


def test_collection_is_stored_under_namespaced_key_in_camel_case(store, clock):
    repo = MoodRepository(store, clock)

    async def flow():
        await repo.create_entry("u1", "happy", 7)
        return await store.get("@app:mood_entries:u1"), await store.get("@app:mood_entries:u2")

    raw, other_user = asyncio.run(flow())
    assert other_user is None
    stored = json.loads(raw)
    assert len(stored) == 1
    assert stored[0]["userId"] == "u1"
    assert stored[0]["schemaVersion"] == 1
    assert "notes" not in stored[0]


def test_update_missing_id_returns_none_and_leaves_bytes_untouched(store, clock):
    repo = JournalRepository(store, clock)

    async def flow():
        await repo.create_entry("u1", "Day one", "it rained")
        before = await store.get("@app:journal_entries:u1")
        result = await repo.update("u1", "nonexistent-id", {"title": "nope"})
        after = await store.get("@app:journal_entries:u1")
        return result, before, after

    result, before, after = asyncio.run(flow())
    assert result is None
    assert before == after


def test_update_is_a_shallow_merge(store, clock):
    repo = JournalRepository(store, clock)

    async def flow():
        entry = await repo.create_entry("u1", "Trip", "went hiking", tags=["outdoors", "weekend"])
        clock.advance(timedelta(minutes=5))
        updated = await repo.update("u1", entry.id, {"tags": ["travel"], "id": "hijacked", "userId": "someone"})
        return entry, updated

    entry, updated = asyncio.run(flow())
    # Lists are replaced, not merged
    assert updated.tags == ["travel"]
    assert updated.id == entry.id
    assert updated.user_id == "u1"
    assert updated.title == "Trip"
    assert updated.updated_at == entry.updated_at + timedelta(minutes=5)
    assert updated.created_at == entry.created_at


def test_update_accepts_wire_names(store, clock):
    repo = JournalRepository(store, clock)

    async def flow():
        entry = await repo.create_entry("u1", "t", "c")
        return await repo.update("u1", entry.id, {"isFavorite": True})

    assert asyncio.run(flow()).is_favorite is True


def test_delete_twice_returns_true_both_times(store, clock):
    repo = MoodRepository(store, clock)

    async def flow():
        keep = await repo.create_entry("u1", "happy", 6)
        gone = await repo.create_entry("u1", "sad", 3)
        first = await repo.delete("u1", gone.id)
        after_first = await store.get("@app:mood_entries:u1")
        second = await repo.delete("u1", gone.id)
        after_second = await store.get("@app:mood_entries:u1")
        remaining = await repo.load_all("u1")
        return keep, first, second, after_first, after_second, remaining

    keep, first, second, after_first, after_second, remaining = asyncio.run(flow())
    assert first is True
    assert second is True
    assert after_first == after_second
    assert [e.id for e in remaining] == [keep.id]


def test_delete_on_empty_collection_still_returns_true(store, clock):
    repo = MoodRepository(store, clock)
    assert asyncio.run(repo.delete("u1", "never-existed")) is True


def test_corrupt_collection_reads_as_empty(store, clock):
    repo = MoodRepository(store, clock)

    async def flow():
        await store.set("@app:mood_entries:u1", "{not json")
        return await repo.load_all("u1"), await repo.load_by_id("u1", "anything")

    entries, single = asyncio.run(flow())
    assert entries == []
    assert single is None


def test_invalid_record_drops_whole_collection(store, clock):
    repo = MoodRepository(store, clock)
    payload = json.dumps([{"id": "m1", "userId": "u1", "mood": "happy"}])  # intensity/date missing

    async def flow():
        await store.set("@app:mood_entries:u1", payload)
        return await repo.load_all("u1")

    assert asyncio.run(flow()) == []


def test_insert_over_corrupt_collection_replaces_it(store, clock):
    repo = MoodRepository(store, clock)

    async def flow():
        await store.set("@app:mood_entries:u1", "[[[")
        created = await repo.create_entry("u1", "neutral", 5)
        return created, await repo.load_all("u1")

    created, entries = asyncio.run(flow())
    assert entries == [created]


def test_missing_optional_fields_get_defaults(store, clock):
    repo = JournalRepository(store, clock)
    legacy = [{
        "id": "journal_1",
        "userId": "u1",
        "title": "Old",
        "content": "from an older build",
        "date": "2025-01-01T10:00:00.000Z",
        "createdAt": "2025-01-01T10:00:00.000Z",
        "updatedAt": "2025-01-01T10:00:00.000Z",
    }]

    async def flow():
        await store.set("@app:journal_entries:u1", json.dumps(legacy))
        return await repo.load_all("u1")

    [entry] = asyncio.run(flow())
    assert entry.tags == []
    assert entry.is_favorite is False
    assert entry.schema_version == 1


def test_storage_errors_propagate(clock):
    broken = AsyncMock()
    broken.get.side_effect = StorageIOError("disk unavailable")
    repo = MoodRepository(broken, clock)

    with pytest.raises(StorageIOError):
        asyncio.run(repo.load_all("u1"))
    with pytest.raises(StorageIOError):
        asyncio.run(repo.create_entry("u1", "happy", 5))


def test_failed_write_propagates(store, clock):
    repo = MoodRepository(store, clock)
    store.set = AsyncMock(side_effect=StorageIOError("read-only"))

    with pytest.raises(StorageIOError):
        asyncio.run(repo.create_entry("u1", "happy", 5))
