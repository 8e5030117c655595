"""Tests for persistence adapters"""

import json
import os
from unittest.mock import AsyncMock

import pytest

from prompt_trainer.config.settings import Settings
from prompt_trainer.storage.persistence import (
    JsonFilePersistence,
    MemoryPersistence,
    build_persistence,
)
from prompt_trainer.storage.redis_store import RedisPersistence


@pytest.mark.asyncio
async def test_memory_store_operations():
    """Test memory save/load/remove"""
    store = MemoryPersistence()

    assert await store.load("favorites") is None

    value = ["a", "b"]
    await store.save("favorites", value)
    value.append("c")

    # Stored copy is independent of the caller's object
    assert await store.load("favorites") == ["a", "b"]

    await store.remove("favorites", "missing")
    assert await store.load("favorites") is None


@pytest.mark.asyncio
async def test_file_store_operations(tmp_path):
    """Test file save/load/remove and on-disk layout"""
    store = JsonFilePersistence(str(tmp_path / "data"))
    await store.connect()

    await store.save("promptHistory", [{"id": "1"}])
    await store.save("currentPrompt", "draft text")

    assert await store.load("promptHistory") == [{"id": "1"}]
    assert await store.load("currentPrompt") == "draft text"
    assert json.loads((tmp_path / "data" / "promptHistory.json").read_text()) == [{"id": "1"}]

    await store.save("promptHistory", [])
    assert await store.load("promptHistory") == []

    await store.remove("promptHistory", "currentPrompt", "neverWritten")
    assert await store.load("promptHistory") is None
    assert await store.load("currentPrompt") is None

    # No temporary files left behind
    assert list((tmp_path / "data").iterdir()) == []


@pytest.mark.asyncio
async def test_file_store_corrupt_slot_raises(tmp_path):
    """Test that an unreadable slot surfaces as ValueError"""
    store = JsonFilePersistence(str(tmp_path))
    (tmp_path / "favorites.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError):
        await store.load("favorites")


@pytest.mark.asyncio
async def test_file_store_failed_remove_keeps_every_slot(tmp_path, monkeypatch):
    """Test that a failure partway through a clear leaves all slots on disk"""
    store = JsonFilePersistence(str(tmp_path))
    await store.connect()
    await store.save("promptHistory", [{"id": "1"}])
    await store.save("promptTemplates", [{"id": "t"}])

    real_replace = os.replace
    moves = []

    def failing_replace(src, dst):
        if str(dst).endswith(".removing"):
            moves.append(dst)
            if len(moves) == 2:
                raise PermissionError("disk is read-only")
        return real_replace(src, dst)

    monkeypatch.setattr(os, "replace", failing_replace)

    with pytest.raises(OSError):
        await store.remove("promptHistory", "promptTemplates")

    monkeypatch.undo()
    assert await store.load("promptHistory") == [{"id": "1"}]
    assert await store.load("promptTemplates") == [{"id": "t"}]
    assert sorted(p.name for p in tmp_path.iterdir()) == ["promptHistory.json", "promptTemplates.json"]


@pytest.mark.asyncio
async def test_redis_store_without_connection():
    """Test that an unconnected Redis store degrades instead of crashing"""
    store = RedisPersistence()

    assert await store.load("favorites") is None
    await store.save("favorites", ["a"])
    await store.remove("favorites")
    assert await store.health_check() is False


@pytest.mark.asyncio
async def test_redis_store_operations():
    """Test key prefixing, JSON encoding and single-call removal"""
    client = AsyncMock()
    client.get.return_value = json.dumps(["t1"])
    store = RedisPersistence(client=client)

    await store.save("favorites", ["t1"])
    client.set.assert_awaited_once_with("prompt_trainer:favorites", json.dumps(["t1"]))

    assert await store.load("favorites") == ["t1"]
    client.get.assert_awaited_once_with("prompt_trainer:favorites")

    await store.remove("promptHistory", "promptTemplates", "favorites")
    client.delete.assert_awaited_once_with(
        "prompt_trainer:promptHistory",
        "prompt_trainer:promptTemplates",
        "prompt_trainer:favorites",
    )

    client.get.return_value = None
    assert await store.load("currentPrompt") is None


def test_build_persistence_selects_backend(tmp_path):
    """Test backend selection from settings"""
    assert isinstance(build_persistence(Settings(storage_backend="memory")), MemoryPersistence)
    assert isinstance(build_persistence(Settings(storage_backend="redis")), RedisPersistence)

    file_store = build_persistence(Settings(storage_backend="file", data_dir=str(tmp_path)))
    assert isinstance(file_store, JsonFilePersistence)
    assert file_store.data_dir == tmp_path

    # Unknown names fall back to file storage
    assert isinstance(build_persistence(Settings(storage_backend="sqlite")), JsonFilePersistence)
