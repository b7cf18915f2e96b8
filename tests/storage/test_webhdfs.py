"""
Tests for the WebHDFS client, lister and URL builder using httpx.MockTransport.
"""

import httpx
import pytest

from hdfs_watcher.core.domain_objects import DirectoryEntry
from hdfs_watcher.core.exceptions import ConfigurationError, ListingError, UploadError
from hdfs_watcher.storage.webhdfs import (
    WebHdfsClient,
    WebHdfsDirectoryLister,
    WebHdfsUrlBuilder,
    resolve_webhdfs_base,
    source_tag_for,
)


def list_status_body(*statuses):
    return {"FileStatuses": {"FileStatus": list(statuses)}}


def file_status(name, length=10, mtime=1_700_000_000_000, type_="FILE"):
    return {"pathSuffix": name, "length": length, "modificationTime": mtime, "type": type_}


def make_client(handler):
    return WebHdfsClient("http://namenode:9870", "hdfs", transport=httpx.MockTransport(handler))


class TestBaseResolution:
    def test_webhdfs_uri_wins(self):
        assert resolve_webhdfs_base("http://nn:9870/", "hdfs://other:8020") == "http://nn:9870"

    def test_hdfs_scheme_becomes_http(self):
        assert resolve_webhdfs_base("", "hdfs://namenode:8020/user/data") == "http://namenode:8020"

    def test_https_scheme_kept(self):
        assert resolve_webhdfs_base("", "https://namenode:9871/x") == "https://namenode:9871"

    def test_default(self):
        assert resolve_webhdfs_base("", "") == "http://localhost:9000"

    def test_source_tags(self):
        assert source_tag_for("/") == "root"
        assert source_tag_for("/data/in") == "data/in"


class TestClient:
    def test_user_is_required(self):
        with pytest.raises(ConfigurationError):
            WebHdfsClient("http://nn:9870", "")

    def test_operation_urls(self):
        client = WebHdfsClient("http://nn:9870", "hdfs")

        assert client.operation_url("/", "LISTSTATUS") == "http://nn:9870/webhdfs/v1/?op=LISTSTATUS&user.name=hdfs"
        assert (
            client.operation_url("/data in", "OPEN", "a.txt")
            == "http://nn:9870/webhdfs/v1/data%20in/a.txt?op=OPEN&user.name=hdfs"
        )


@pytest.mark.asyncio
class TestLister:
    async def test_lists_files_of_every_path(self):
        requests = []

        def handler(request: httpx.Request):
            requests.append(request)
            if request.url.path == "/webhdfs/v1/data/a":
                return httpx.Response(200, json=list_status_body(file_status("one.csv"), file_status("dir", type_="DIRECTORY")))
            return httpx.Response(200, json=list_status_body(file_status("two.csv", length=20)))

        lister = WebHdfsDirectoryLister(make_client(handler), ["/data/a", "/data/b"])

        entries = await lister.list_entries()

        assert [(e.name, e.size, e.source_tag, e.path) for e in entries] == [
            ("one.csv", 10, "data/a", "/data/a"),
            ("two.csv", 20, "data/b", "/data/b"),
        ]
        assert requests[0].url.params["op"] == "LISTSTATUS"
        assert requests[0].url.params["user.name"] == "hdfs"

    async def test_any_failing_path_fails_the_listing(self):
        def handler(request: httpx.Request):
            if request.url.path.endswith("/b"):
                return httpx.Response(500)
            return httpx.Response(200, json=list_status_body(file_status("one.csv")))

        lister = WebHdfsDirectoryLister(make_client(handler), ["/a", "/b"])

        with pytest.raises(ListingError) as exc_info:
            await lister.list_entries()
        assert "HTTP 500" in str(exc_info.value)

    async def test_connection_error_becomes_listing_error(self):
        def handler(request: httpx.Request):
            raise httpx.ConnectError("refused", request=request)

        lister = WebHdfsDirectoryLister(make_client(handler), ["/"])

        with pytest.raises(ListingError):
            await lister.list_entries()

    async def test_malformed_json_becomes_listing_error(self):
        def handler(request: httpx.Request):
            return httpx.Response(200, json={"unexpected": True})

        lister = WebHdfsDirectoryLister(make_client(handler), ["/"])

        with pytest.raises(ListingError):
            await lister.list_entries()


@pytest.mark.asyncio
class TestUpload:
    async def test_create_redirect_then_put(self):
        seen = []

        def handler(request: httpx.Request):
            seen.append((request.method, str(request.url), request.content))
            if request.url.host == "namenode":
                return httpx.Response(307, headers={"Location": "http://datanode:9864/webhdfs/v1/in/a.txt?op=CREATE"})
            return httpx.Response(201)

        client = make_client(handler)

        target = await client.upload_file("/in", "a.txt", b"payload")

        assert target == "/in/a.txt"
        assert seen[0][0] == "PUT"
        assert "op=CREATE" in seen[0][1] and "overwrite=true" in seen[0][1]
        assert seen[0][2] == b""
        assert seen[1] == ("PUT", "http://datanode:9864/webhdfs/v1/in/a.txt?op=CREATE", b"payload")

    async def test_missing_redirect_fails(self):
        client = make_client(lambda request: httpx.Response(200))

        with pytest.raises(UploadError):
            await client.upload_file("/in", "a.txt", b"payload")

    async def test_datanode_error_fails(self):
        def handler(request: httpx.Request):
            if request.url.host == "namenode":
                return httpx.Response(307, headers={"Location": "http://datanode:9864/x"})
            return httpx.Response(403)

        with pytest.raises(UploadError):
            await make_client(handler).upload_file("/in", "a.txt", b"payload")

    async def test_empty_upload_rejected(self):
        with pytest.raises(UploadError):
            await make_client(lambda request: httpx.Response(201)).upload_file("/in", "a.txt", b"")


def test_url_builder_uses_entry_path():
    builder = WebHdfsUrlBuilder(WebHdfsClient("http://nn:9870", "hdfs"))
    entry = DirectoryEntry(name="q1 (final).csv", size=1, modification_time=1, source_tag="reports", path="/reports")

    assert builder.build(entry) == (
        "http://nn:9870/webhdfs/v1/reports/q1%20%28final%29.csv?op=OPEN&user.name=hdfs"
    )
