import logging
from typing import Optional, Tuple

from hdfs_watcher.core.domain_objects import DirectoryEntry, SendResult, utc_now
from hdfs_watcher.notifications.base import NotificationSink
from hdfs_watcher.storage.base import UrlBuilder
from hdfs_watcher.storage.local_storage import LOCAL_SOURCE_TAG, LocalFileStorage
from hdfs_watcher.storage.webhdfs import WebHdfsClient, source_tag_for


class UploadService:
    """
    Stores an uploaded file in the watched location and announces it right away.

    In pseudoop mode the file lands in local storage, otherwise it is written to
    the first configured HDFS directory. The poller will also pick the file up;
    consumers see at-least-once delivery either way.
    """

    def __init__(
        self,
        url_builder: UrlBuilder,
        sink: NotificationSink,
        local_storage: Optional[LocalFileStorage] = None,
        webhdfs_client: Optional[WebHdfsClient] = None,
        upload_path: str = "/",
    ):
        if local_storage is None and webhdfs_client is None:
            raise ValueError("UploadService needs either local storage or a WebHDFS client")
        self.url_builder = url_builder
        self.sink = sink
        self.local_storage = local_storage
        self.webhdfs_client = webhdfs_client
        self.upload_path = upload_path

    async def upload(self, filename: str, content: bytes) -> Tuple[str, SendResult]:
        """
        Raises:
            StorageError / UploadError: If the file could not be written.
        """
        if self.local_storage is not None:
            await self.local_storage.store(filename, content)
            entry = self._entry(filename, content, LOCAL_SOURCE_TAG, str(self.local_storage.root))
        else:
            await self.webhdfs_client.upload_file(self.upload_path, filename, content)
            entry = self._entry(filename, content, source_tag_for(self.upload_path), self.upload_path)

        url = self.url_builder.build(entry)
        result = await self.sink.send(url)
        if result.success:
            logging.info(f"Upload of {filename} announced: {url}")
        else:
            logging.warning(f"Upload of {filename} stored but notification failed: {result.error}")
        return url, result

    @staticmethod
    def _entry(filename: str, content: bytes, source_tag: str, path: str) -> DirectoryEntry:
        return DirectoryEntry(
            name=filename,
            size=len(content),
            modification_time=int(utc_now().timestamp() * 1000),
            source_tag=source_tag,
            path=path,
        )
