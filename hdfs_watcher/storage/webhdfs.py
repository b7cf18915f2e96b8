"""
WebHDFS REST access: directory listing, OPEN links and file upload.
"""

import logging
from typing import List, Optional
from urllib.parse import urlsplit

import httpx

from hdfs_watcher.core.domain_objects import DirectoryEntry
from hdfs_watcher.core.exceptions import ConfigurationError, ListingError, UploadError
from hdfs_watcher.utils.url_utils import encode_filename, encode_path

DEFAULT_WEBHDFS_BASE = "http://localhost:9000"
WEBHDFS_PREFIX = "/webhdfs/v1"


def resolve_webhdfs_base(webhdfs_uri: str, hdfs_uri: str) -> str:
    """
    Pick the HTTP base URL of the namenode.

    webhdfs_uri wins when set. Otherwise hdfs_uri is converted: hdfs://host:port
    becomes http://host:port and http(s) URIs keep their scheme. Any path part
    is dropped.
    """
    if webhdfs_uri and webhdfs_uri.strip():
        return webhdfs_uri.strip().rstrip("/")

    if hdfs_uri and hdfs_uri.strip():
        parts = urlsplit(hdfs_uri.strip())
        if parts.netloc:
            scheme = parts.scheme if parts.scheme in ("http", "https") else "http"
            return f"{scheme}://{parts.netloc}"

    return DEFAULT_WEBHDFS_BASE


def source_tag_for(path: str) -> str:
    """'/' -> 'root', '/data/in' -> 'data/in'."""
    tag = path.lstrip("/")
    return tag or "root"


class WebHdfsClient:
    """Thin async client over the WebHDFS REST API."""

    def __init__(
        self,
        base_uri: str,
        user: str,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not user or not user.strip():
            raise ConfigurationError("hdfs_user must be set when not running in pseudoop mode")
        self.base_uri = base_uri.rstrip("/")
        self.user = user.strip()
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def operation_url(self, path: str, operation: str, encoded_name: str = "") -> str:
        url = f"{self.base_uri}{WEBHDFS_PREFIX}{encode_path(path)}"
        if encoded_name:
            url = f"{url}/{encoded_name}"
        elif not encode_path(path):
            url = f"{url}/"
        return f"{url}?op={operation}&user.name={self.user}"

    def _client(self, **kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout_seconds, transport=self._transport, **kwargs
        )

    async def list_status(self, path: str) -> List[dict]:
        """
        Return the raw FileStatus objects of a directory.

        Raises:
            ListingError: On connection errors, non-200 answers or malformed JSON.
        """
        url = self.operation_url(path, "LISTSTATUS")
        try:
            async with self._client() as client:
                response = await client.get(url)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise ListingError(path, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ListingError(path, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise ListingError(path, f"invalid JSON response: {e}") from e

        try:
            statuses = data["FileStatuses"]["FileStatus"]
        except (KeyError, TypeError) as e:
            raise ListingError(path, "response has no FileStatuses.FileStatus") from e
        if not isinstance(statuses, list):
            raise ListingError(path, "FileStatuses.FileStatus is not a list")
        return statuses

    async def upload_file(self, path: str, filename: str, content: bytes) -> str:
        """
        Create (or overwrite) a file in two steps: the namenode answers the
        CREATE request with a 307 redirect to a datanode, which receives the bytes.

        Returns:
            The WebHDFS path of the new file.

        Raises:
            UploadError: If either step does not answer with the expected status.
        """
        if not content:
            raise UploadError(filename, "file is empty")

        create_url = self.operation_url(path, "CREATE", encode_filename(filename))
        create_url = f"{create_url}&overwrite=true"

        try:
            async with self._client(follow_redirects=False) as client:
                response = await client.put(create_url, content=b"")
                if response.status_code != 307:
                    raise UploadError(
                        filename, f"expected 307 from namenode, got {response.status_code}"
                    )
                location = response.headers.get("location")
                if not location:
                    raise UploadError(filename, "namenode redirect has no Location header")

                response = await client.put(
                    location,
                    content=content,
                    headers={"Content-Type": "application/octet-stream"},
                )
                if response.status_code != 201:
                    raise UploadError(
                        filename, f"expected 201 from datanode, got {response.status_code}"
                    )
        except httpx.HTTPError as e:
            raise UploadError(filename, f"{type(e).__name__}: {e}") from e

        target = f"{path.rstrip('/')}/{filename}"
        logging.info(f"Uploaded {filename} to WebHDFS at {target} ({len(content)} bytes)")
        return target


class WebHdfsDirectoryLister:
    """
    Lists every configured HDFS directory.

    The listing is all-or-nothing: one unreachable directory fails the whole
    call so a partial view is never mistaken for the full one.
    """

    def __init__(self, client: WebHdfsClient, paths: List[str]):
        if not paths:
            raise ConfigurationError("At least one HDFS path must be configured")
        self.client = client
        self.paths = paths

    async def list_entries(self) -> List[DirectoryEntry]:
        entries: List[DirectoryEntry] = []
        for path in self.paths:
            statuses = await self.client.list_status(path)
            tag = source_tag_for(path)
            for status in statuses:
                if status.get("type") != "FILE":
                    continue
                try:
                    entries.append(
                        DirectoryEntry(
                            name=status["pathSuffix"],
                            size=int(status.get("length", 0)),
                            modification_time=int(status.get("modificationTime", 0)),
                            source_tag=tag,
                            path=path,
                        )
                    )
                except (KeyError, TypeError, ValueError) as e:
                    raise ListingError(path, f"malformed FileStatus entry: {status!r}") from e
            logging.debug(f"Found {len(statuses)} entries in HDFS path {path}")
        return entries


class WebHdfsUrlBuilder:
    """Builds ``{base}/webhdfs/v1{path}/{name}?op=OPEN&user.name={user}`` links."""

    def __init__(self, client: WebHdfsClient):
        self.client = client

    def build(self, entry: DirectoryEntry) -> str:
        return self.client.operation_url(entry.path or "/", "OPEN", encode_filename(entry.name))
