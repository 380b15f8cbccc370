"""Tests for LocalStorageBackend."""

from __future__ import annotations

import asyncio
import io
import os
from unittest.mock import patch

import pytest

from microshop.config.settings import StorageSettings
from microshop.core.storage.file import (
    InvalidPathError,
    LimitExceededError,
    LocalStorageBackend,
    ObjectNotFoundError,
    StorageIOError,
)

MB = 1024 * 1000


@pytest.fixture
def storage_dir(tmp_path):
    """Storage root that does not exist yet."""
    return tmp_path / "imagestore"


@pytest.fixture
def storage_backend(storage_dir):
    """Create LocalStorageBackend instance with a 5MB limit."""
    return LocalStorageBackend(storage_dir, 5 * MB)


def leftover_files(root):
    return sorted(
        os.path.relpath(os.path.join(folder, name), root)
        for folder, _, files in os.walk(root)
        for name in files
    )


def test_root_is_created(storage_dir):
    LocalStorageBackend(storage_dir, 10)

    assert storage_dir.is_dir()


def test_from_settings(storage_dir):
    backend = LocalStorageBackend.from_settings(
        StorageSettings(base_path=str(storage_dir), max_file_size=123, chunk_size=8))

    assert backend.base_path == storage_dir
    assert backend.max_file_size == 123
    assert backend.chunk_size == 8


def test_non_positive_limit_is_rejected(storage_dir):
    with pytest.raises(ValueError):
        LocalStorageBackend(storage_dir, 0)


def test_uncreatable_root(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_bytes(b"")

    with pytest.raises(StorageIOError):
        LocalStorageBackend(blocker / "imagestore", 10)


@pytest.mark.asyncio
async def test_save_and_get_round_trip(storage_backend, storage_dir):
    """4MB under a 5MB limit is stored and read back unchanged."""
    content = os.urandom(4 * MB)

    stored = await storage_backend.save(1, "meow.png", io.BytesIO(content))

    assert stored.collection_id == 1
    assert stored.filename == "meow.png"
    assert stored.size_bytes == len(content)
    assert stored.path == "1/meow.png"
    assert (storage_dir / "1" / "meow.png").is_file()

    with await storage_backend.get(storage_backend.resolve(1, "meow.png")) as f:
        assert f.read() == content


@pytest.mark.asyncio
async def test_oversized_save_leaves_nothing(storage_backend, storage_dir):
    """6MB under a 5MB limit fails and leaves no file or directory."""
    with pytest.raises(LimitExceededError):
        await storage_backend.save(1, "meow.png", io.BytesIO(b"\0" * (6 * MB)))

    assert not (storage_dir / "1" / "meow.png").exists()
    assert not (storage_dir / "1").exists()
    assert leftover_files(storage_dir) == []


@pytest.mark.asyncio
async def test_save_at_exact_limit(storage_dir):
    backend = LocalStorageBackend(storage_dir, 10)

    stored = await backend.save(2, "dog.jpg", io.BytesIO(b"0123456789"))

    assert stored.size_bytes == 10


@pytest.mark.asyncio
async def test_traversal_is_rejected_before_any_io(storage_backend, storage_dir):
    source = io.BytesIO(b"root:x:0:0")

    with patch("os.replace") as replace, patch("builtins.open") as opener:
        with pytest.raises(InvalidPathError):
            await storage_backend.save(1, "../../etc/passwd", source)

    opener.assert_not_called()
    replace.assert_not_called()
    assert source.tell() == 0
    assert list(storage_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_second_save_overwrites(storage_backend):
    await storage_backend.save(1, "meow.png", io.BytesIO(b"first version"))
    stored = await storage_backend.save(1, "meow.png", io.BytesIO(b"second"))

    assert stored.size_bytes == 6
    with await storage_backend.open_object(1, "meow.png") as f:
        assert f.read() == b"second"


@pytest.mark.asyncio
async def test_failed_save_keeps_existing_directory(storage_dir):
    backend = LocalStorageBackend(storage_dir, 4)
    await backend.save(1, "cat.png", io.BytesIO(b"ok"))

    with pytest.raises(LimitExceededError):
        await backend.save(1, "dog.png", io.BytesIO(b"too long"))

    assert leftover_files(storage_dir) == [os.path.join("1", "cat.png")]


@pytest.mark.asyncio
async def test_failed_move_cleans_up(storage_backend, storage_dir):
    with patch(
        "microshop.core.storage.file.local_backend.os.replace",
        side_effect=PermissionError("read-only"),
    ):
        with pytest.raises(StorageIOError):
            await storage_backend.save(3, "meow.png", io.BytesIO(b"data"))

    assert leftover_files(storage_dir) == []
    assert not (storage_dir / "3").exists()


@pytest.mark.asyncio
async def test_collection_id_string_form(storage_backend, storage_dir):
    stored = await storage_backend.save("007", "meow.png", io.BytesIO(b"data"))

    assert stored.collection_id == 7
    assert (storage_dir / "7" / "meow.png").exists()


@pytest.mark.asyncio
async def test_get_missing_object(storage_backend):
    with pytest.raises(ObjectNotFoundError):
        await storage_backend.get(storage_backend.resolve(9, "nothing.png"))


@pytest.mark.asyncio
async def test_get_directory_is_not_found(storage_backend, storage_dir):
    (storage_dir / "4").mkdir()

    with pytest.raises(ObjectNotFoundError):
        await storage_backend.get(storage_dir / "4")


@pytest.mark.asyncio
async def test_concurrent_saves_to_same_key(storage_backend):
    """Last writer wins; the result is one of the inputs, never a mix."""
    contents = [bytes([n]) * 50_000 for n in range(5)]

    await asyncio.gather(*(
        storage_backend.save(1, "race.png", io.BytesIO(content))
        for content in contents
    ))

    with await storage_backend.open_object(1, "race.png") as f:
        assert f.read() in contents


def test_allocate_collection_id(storage_backend, storage_dir):
    assert storage_backend.allocate_collection_id() == 1
    assert storage_backend.allocate_collection_id() == 2

    (storage_dir / "10").mkdir()
    (storage_dir / "notes").mkdir()
    assert storage_backend.allocate_collection_id() == 11


def test_release_collection(storage_backend, storage_dir):
    collection_id = storage_backend.allocate_collection_id()

    assert storage_backend.release_collection(collection_id)
    assert not (storage_dir / str(collection_id)).exists()


@pytest.mark.asyncio
async def test_release_keeps_non_empty_collection(storage_backend, storage_dir):
    await storage_backend.save(5, "cat.png", io.BytesIO(b"meow"))

    assert not storage_backend.release_collection(5)
    assert (storage_dir / "5" / "cat.png").exists()
