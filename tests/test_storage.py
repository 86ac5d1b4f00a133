"""Tests for the in-memory and file-backed document stores."""

from __future__ import annotations

import pytest

from kavalan.storage.file_storage import FileDocumentStore
from kavalan.storage.memory_storage import MemoryDocumentStore


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryDocumentStore()
    return FileDocumentStore(base_dir=tmp_path / "store")


@pytest.mark.asyncio
async def test_get_set_update(store):
    assert await store.get("boats", "TN01-AB123") is None
    await store.set("boats", "TN01-AB123", {"boat_id": "TN01-AB123", "active": True})
    assert await store.update("boats", "TN01-AB123", {"active": False}) is True
    assert await store.get("boats", "TN01-AB123") == {"boat_id": "TN01-AB123", "active": False}
    assert await store.update("boats", "TN09-ZZ999", {"active": False}) is False


@pytest.mark.asyncio
async def test_all_lists_documents(store):
    assert await store.all("ports") == []
    await store.set("ports", "chennai", {"id": "chennai"})
    await store.set("ports", "enayam", {"id": "enayam"})
    assert sorted(d["id"] for d in await store.all("ports")) == ["chennai", "enayam"]


@pytest.mark.asyncio
async def test_sub_collection_keeps_insertion_order(store):
    for i in range(3):
        await store.append("threads", "TN01-AB123_TN02-CD456", "messages", {"id": f"m{i}", "n": i})
    items = await store.items("threads", "TN01-AB123_TN02-CD456", "messages")
    assert [i["id"] for i in items] == ["m0", "m1", "m2"]
    assert await store.items("threads", "other", "messages") == []


@pytest.mark.asyncio
async def test_update_item(store):
    await store.append("threads", "t1", "messages", {"id": "m1", "read": False})
    await store.append("threads", "t1", "messages", {"id": "m2", "read": False})

    assert await store.update_item("threads", "t1", "messages", "m2", {"read": True}) is True
    assert await store.update_item("threads", "t1", "messages", "m9", {"read": True}) is False

    items = await store.items("threads", "t1", "messages")
    assert [i["read"] for i in items] == [False, True]


@pytest.mark.asyncio
async def test_clear(store):
    await store.append("backups", "TN02-CD456", "messages", {"id": "a"})
    await store.append("backups", "TN02-CD456", "messages", {"id": "b"})
    assert await store.clear("backups", "TN02-CD456", "messages") == 2
    assert await store.items("backups", "TN02-CD456", "messages") == []
    assert await store.clear("backups", "TN02-CD456", "messages") == 0


@pytest.mark.asyncio
async def test_returned_values_are_copies(store):
    await store.set("boats", "b1", {"tags": ["x"]})
    doc = await store.get("boats", "b1")
    doc["tags"].append("y")
    assert (await store.get("boats", "b1"))["tags"] == ["x"]


def test_writable(store):
    assert store.writable() is True


@pytest.mark.asyncio
async def test_file_store_survives_reopen(tmp_path):
    first = FileDocumentStore(base_dir=tmp_path)
    await first.set("sos_cases", "case-1", {"id": "case-1", "message": "நீர் கசிவு"})
    await first.append("audit", "case-1", "events", {"id": "e1", "action": "created"})

    second = FileDocumentStore(base_dir=tmp_path)
    assert (await second.get("sos_cases", "case-1"))["message"] == "நீர் கசிவு"
    assert [e["action"] for e in await second.items("audit", "case-1", "events")] == ["created"]


@pytest.mark.parametrize("key", ["../escape", "a/b", "", ".hidden"])
def test_file_store_rejects_unsafe_keys(tmp_path, key):
    store = FileDocumentStore(base_dir=tmp_path)
    with pytest.raises(ValueError):
        store._doc_path("boats", key)


@pytest.mark.asyncio
@pytest.mark.parametrize("key", ["no such case", "a/b", "../escape"])
async def test_file_store_reads_of_unsafe_keys_find_nothing(tmp_path, key):
    store = FileDocumentStore(base_dir=tmp_path)
    assert await store.get("sos_cases", key) is None
    assert await store.update("sos_cases", key, {"status": "resolved"}) is False
    assert await store.items("audit", key, "events") == []
    assert await store.update_item("audit", key, "events", "e1", {"read": True}) is False
    assert await store.clear("audit", key, "events") == 0

    with pytest.raises(ValueError):
        await store.set("sos_cases", key, {"id": key})
