import os
from unittest.mock import patch

import pytest

from hdfs_watcher.core.domain_objects import DirectoryEntry
from hdfs_watcher.core.exceptions import ListingError, StorageError
from hdfs_watcher.storage.local_storage import LocalFileStorage, LocalUrlBuilder


class RemovingScandir:
    """Wraps os.scandir and deletes one file just before it is yielded."""

    def __init__(self, path, doomed):
        self._scanner = os.scandir(path)
        self._doomed = doomed

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self._scanner.close()

    def __iter__(self):
        for entry in self._scanner:
            if entry.name == self._doomed:
                os.remove(entry.path)
            yield entry


def scandir_removing(doomed):
    async def scandir(path):
        return RemovingScandir(path, doomed)

    return scandir


@pytest.mark.asyncio
class TestLocalFileStorage:
    async def test_initialize_creates_directory(self, tmp_path):
        root = tmp_path / "watch"
        storage = LocalFileStorage(str(root))

        await storage.initialize()

        assert root.is_dir()

    async def test_lists_regular_files_only(self, tmp_path):
        (tmp_path / "a.txt").write_bytes(b"hello")
        (tmp_path / "sub").mkdir()
        os.utime(tmp_path / "a.txt", ns=(1_700_000_000_123_456_789, 1_700_000_000_123_456_789))
        storage = LocalFileStorage(str(tmp_path))

        entries = await storage.list_entries()

        assert len(entries) == 1
        entry = entries[0]
        assert entry.name == "a.txt"
        assert entry.size == 5
        assert entry.modification_time == 1_700_000_000_123
        assert entry.source_tag == "local"

    async def test_missing_directory_raises_listing_error(self, tmp_path):
        storage = LocalFileStorage(str(tmp_path / "missing"))

        with pytest.raises(ListingError):
            await storage.list_entries()

    async def test_file_deleted_during_listing_is_skipped(self, tmp_path):
        (tmp_path / "keep.txt").write_bytes(b"keep")
        (tmp_path / "gone.txt").write_bytes(b"gone")
        storage = LocalFileStorage(str(tmp_path))

        with patch("aiofiles.os.scandir", new=scandir_removing("gone.txt")):
            entries = await storage.list_entries()

        assert [e.name for e in entries] == ["keep.txt"]


    async def test_store_and_load(self, tmp_path):
        storage = LocalFileStorage(str(tmp_path))

        stored = await storage.store("report.csv", b"1,2,3")
        loaded = await storage.load("report.csv")

        assert stored == loaded
        assert loaded.read_bytes() == b"1,2,3"

    async def test_store_rejects_empty_file(self, tmp_path):
        storage = LocalFileStorage(str(tmp_path))

        with pytest.raises(StorageError):
            await storage.store("empty.txt", b"")

    async def test_store_rejects_path_escape(self, tmp_path):
        storage = LocalFileStorage(str(tmp_path / "root"))
        await storage.initialize()

        with pytest.raises(StorageError):
            await storage.store("../outside.txt", b"data")

    async def test_load_missing_file(self, tmp_path):
        storage = LocalFileStorage(str(tmp_path))

        with pytest.raises(StorageError):
            await storage.load("nope.txt")


def test_empty_root_rejected():
    with pytest.raises(StorageError):
        LocalFileStorage("  ")


def test_local_url_builder_encodes_name():
    builder = LocalUrlBuilder("http://localhost:8080/")
    entry = DirectoryEntry(name="my report (1).pdf", size=1, modification_time=1, source_tag="local")

    assert builder.build(entry) == "http://localhost:8080/files/my%20report%20%281%29.pdf"
