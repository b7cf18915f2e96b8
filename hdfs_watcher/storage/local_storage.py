"""
Local filesystem storage used in pseudo-operational (pseudoop) mode.
"""

import logging
import os
from pathlib import Path
from typing import List

import aiofiles
import aiofiles.os

from hdfs_watcher.core.domain_objects import DirectoryEntry
from hdfs_watcher.core.exceptions import ListingError, StorageError
from hdfs_watcher.utils.url_utils import build_file_url

LOCAL_SOURCE_TAG = "local"
FILES_PATH = "/files"


class LocalFileStorage:
    """
    Flat directory of files on the local disk.

    Acts as the DirectoryLister in local mode and backs the upload and
    download endpoints.
    """

    def __init__(self, root_directory: str):
        if not root_directory or not root_directory.strip():
            raise StorageError("Local storage path cannot be empty in pseudoop mode")
        self.root = Path(root_directory)

    async def initialize(self) -> None:
        """Create the storage directory if needed and check that it is writable."""
        await aiofiles.os.makedirs(self.root, exist_ok=True)
        if not await aiofiles.os.path.isdir(self.root):
            raise StorageError(f"Local storage path is not a directory: {self.root}")
        if not await aiofiles.os.access(self.root, os.W_OK):
            raise StorageError(f"Local storage path is not writable: {self.root}")
        logging.info(f"Local storage initialized at: {self.root}")

    async def list_entries(self) -> List[DirectoryEntry]:
        try:
            if not await aiofiles.os.path.isdir(self.root):
                raise ListingError(str(self.root), "directory does not exist")

            entries = []
            with await aiofiles.os.scandir(self.root) as scanner:
                for dir_entry in scanner:
                    try:
                        if not dir_entry.is_file():
                            continue
                        stat_result = dir_entry.stat()
                    except FileNotFoundError:
                        logging.debug(f"File disappeared during listing: {dir_entry.name}")
                        continue
                    entries.append(
                        DirectoryEntry(
                            name=dir_entry.name,
                            size=stat_result.st_size,
                            modification_time=stat_result.st_mtime_ns // 1_000_000,
                            source_tag=LOCAL_SOURCE_TAG,
                            path=str(self.root),
                        )
                    )
        except OSError as e:
            raise ListingError(str(self.root), str(e)) from e

        logging.debug(f"Discovered {len(entries)} local files in {self.root}")
        return entries

    async def store(self, filename: str, content: bytes) -> Path:
        """
        Write an uploaded file into the storage directory.

        Raises:
            StorageError: If the file is empty or the name escapes the directory.
        """
        if not content:
            raise StorageError("Cannot store empty file")
        target = self._resolve(filename)

        async with aiofiles.open(target, "wb") as f:
            await f.write(content)

        logging.info(f"Stored file {target.name} ({len(content)} bytes)")
        return target

    async def load(self, filename: str) -> Path:
        """Return the path of a stored file, raising StorageError when missing."""
        target = self._resolve(filename)
        if not await aiofiles.os.path.isfile(target):
            raise StorageError(f"File not found: {filename}")
        return target

    def _resolve(self, filename: str) -> Path:
        if not filename or not filename.strip():
            raise StorageError("Filename cannot be null or empty")
        root = self.root.resolve()
        target = (root / filename).resolve()
        if target.parent != root:
            raise StorageError("Cannot store file with relative path outside current directory")
        return target


class LocalUrlBuilder:
    """Builds ``{public_app_uri}/files/{name}`` download links served by this app."""

    def __init__(self, public_app_uri: str):
        self.public_app_uri = public_app_uri

    def build(self, entry: DirectoryEntry) -> str:
        return build_file_url(self.public_app_uri, FILES_PATH, entry.name)
