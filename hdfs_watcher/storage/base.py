from typing import List, Protocol, runtime_checkable

from hdfs_watcher.core.domain_objects import DirectoryEntry


@runtime_checkable
class DirectoryLister(Protocol):
    """Lists the files currently present in the watched location(s)."""

    async def list_entries(self) -> List[DirectoryEntry]:
        """
        Raises:
            ListingError: If the backing store cannot be reached or read.
        """
        ...


@runtime_checkable
class UrlBuilder(Protocol):
    """Builds the public URL at which an entry can be retrieved."""

    def build(self, entry: DirectoryEntry) -> str: ...
