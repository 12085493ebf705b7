"""
Tests for the aiohttp chunk transport against a live in-process server.
"""

import hashlib
from typing import Any, Dict, List, Tuple

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from chunkwise.application.uploader import create_session, upload_file
from chunkwise.core.domain.chunks import ChunkDescriptor
from chunkwise.core.domain.exceptions import ServerError, TransportError
from chunkwise.core.interfaces.upload import SessionState
from chunkwise.core.services.chunk_index import RemoteChunkIndex
from chunkwise.infrastructure.clients.http import HttpChunkTransport, _stream_with_progress
from chunkwise.infrastructure.config.models import ChunkingConfig, ServerConfig, UploaderConfig

from conftest import file_content


class ChunkStore:
    """Minimal chunk store server used as the remote end."""

    def __init__(self) -> None:
        self.chunks: Dict[str, bytes] = {}
        self.fields: List[Dict[str, str]] = []
        self.merged: Dict[str, bytes] = {}
        self.merge_requests: List[Dict[str, Any]] = []
        self.fail: Dict[str, int] = {}
        self.raw_list_body: Any = None
        self.merge_body = None

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/api/upload/chunks", self.handle_list)
        app.router.add_post("/api/upload/chunk", self.handle_chunk)
        app.router.add_post("/api/upload/merge", self.handle_merge)
        return app

    def _failure(self, path: str) -> Any:
        status = self.fail.get(path)
        if status:
            return web.Response(status=status, text="boom")
        return None

    async def handle_list(self, request: web.Request) -> web.StreamResponse:
        failure = self._failure(request.path)
        if failure is not None:
            return failure
        if self.raw_list_body is not None:
            return web.Response(text=self.raw_list_body)
        fingerprint = request.query["hash"]
        names = sorted(n for n in self.chunks if n.startswith(f"{fingerprint}-"))
        return web.json_response({"chunks": names})

    async def handle_chunk(self, request: web.Request) -> web.StreamResponse:
        # Consume the body before failing so the client sees the status.
        form = await request.post()
        failure = self._failure(request.path)
        if failure is not None:
            return failure
        upload = form["chunk"]
        self.chunks[str(form["filename"])] = upload.file.read()
        self.fields.append({
            "upload_name": upload.filename,
            "content_type": upload.content_type,
            **{key: str(form[key]) for key in ("hash", "filename", "index", "totalChunks")}
        })
        return web.json_response({"ok": True})

    async def handle_merge(self, request: web.Request) -> web.StreamResponse:
        body = await request.json()
        failure = self._failure(request.path)
        if failure is not None:
            return failure
        self.merge_requests.append(body)
        fingerprint = body["hash"]
        self.merged[body["filename"]] = b"".join(
            self.chunks[f"{fingerprint}-{i}"] for i in range(body["totalChunks"])
        )
        if self.merge_body is not None:
            return web.Response(text=self.merge_body)
        return web.json_response({"url": f"/files/{body['filename']}"})


@pytest.fixture
async def server() -> Tuple[ChunkStore, TestServer]:
    """Run a chunk store on a random local port."""
    store = ChunkStore()
    test_server = TestServer(store.app())
    await test_server.start_server()
    yield store, test_server
    await test_server.close()


@pytest.fixture
def store(server) -> ChunkStore:
    return server[0]


@pytest.fixture
def server_config(server) -> ServerConfig:
    test_server = server[1]
    return ServerConfig(base_url=f"http://{test_server.host}:{test_server.port}/", progress_step=4096)


@pytest.fixture
async def http_transport(server_config) -> HttpChunkTransport:
    transport = HttpChunkTransport(server_config)
    await transport.start()
    yield transport
    await transport.stop()


def descriptor(index: int = 1, size: int = 10) -> ChunkDescriptor:
    return ChunkDescriptor(index=index, name=f"abc-{index}", start=0, end=size,
                           total_chunks=3, fingerprint="abc")


class TestStreamWithProgress:
    """Test cases for the progress-reporting upload body."""

    async def test_reports_increasing_percentages(self):
        reports: List[int] = []
        data = bytes(range(256)) * 40

        pieces = [p async for p in _stream_with_progress(data, 1000, reports.append)]

        assert b"".join(pieces) == data
        assert len(pieces) == 11
        assert reports == sorted(set(reports))
        assert reports[-1] == 100

    async def test_empty_body_reports_complete(self):
        reports: List[int] = []

        pieces = [p async for p in _stream_with_progress(b"", 1000, reports.append)]

        assert pieces == []
        assert reports == [100]


class TestHttpChunkTransport:
    """Test cases for HttpChunkTransport."""

    async def test_list_chunks(self, store, http_transport):
        store.chunks = {"abc-0": b"x", "abc-2": b"y", "zzz-0": b"z"}

        assert await http_transport.list_chunks("abc") == ["abc-0", "abc-2"]

    @pytest.mark.parametrize("body", ['{"other": 1}', '{"chunks": "abc-0"}', "", "not json"])
    async def test_list_chunks_tolerates_odd_bodies(self, store, http_transport, body):
        store.raw_list_body = body

        assert await http_transport.list_chunks("abc") == []

    async def test_list_chunks_server_error(self, store, http_transport):
        store.fail["/api/upload/chunks"] = 500

        with pytest.raises(ServerError) as exc_info:
            await http_transport.list_chunks("abc")

        assert exc_info.value.status == 500
        assert exc_info.value.details == "boom"

    async def test_connection_refused(self):
        async with HttpChunkTransport(ServerConfig(base_url="http://127.0.0.1:1", connect_timeout=2)) as transport:
            with pytest.raises(TransportError):
                await transport.list_chunks("abc")

    async def test_upload_chunk_sends_multipart_fields(self, store, http_transport):
        data = file_content(20_000)
        reports: List[int] = []

        result = await http_transport.upload_chunk(descriptor(1, len(data)), data, reports.append)

        assert result == {"ok": True}
        assert store.chunks["abc-1"] == data
        assert store.fields == [{
            "upload_name": "abc-1",
            "content_type": "application/octet-stream",
            "hash": "abc",
            "filename": "abc-1",
            "index": "1",
            "totalChunks": "3",
        }]
        assert reports == sorted(reports)
        assert reports[-1] == 100

    async def test_upload_chunk_server_error(self, store, http_transport):
        store.fail["/api/upload/chunk"] = 503

        with pytest.raises(ServerError) as exc_info:
            await http_transport.upload_chunk(descriptor(), b"0123456789")

        assert exc_info.value.status == 503
        assert store.chunks == {}

    async def test_merge(self, store, http_transport):
        store.chunks = {"abc-0": b"ab", "abc-1": b"cd", "abc-2": b"e"}

        result = await http_transport.merge("abc", "letters.txt", 3)

        assert result == {"url": "/files/letters.txt"}
        assert store.merge_requests == [{"hash": "abc", "filename": "letters.txt", "totalChunks": 3}]
        assert store.merged["letters.txt"] == b"abcde"

    @pytest.mark.parametrize("body, expected", [
        ("", {}),
        ("merged", {}),
        ("[1, 2]", {"data": [1, 2]}),
    ])
    async def test_merge_response_bodies(self, store, http_transport, body, expected):
        store.chunks = {"abc-0": b"a"}
        store.merge_body = body

        assert await http_transport.merge("abc", "a.txt", 1) == expected

    async def test_merge_server_error(self, store, http_transport):
        store.fail["/api/upload/merge"] = 500

        with pytest.raises(ServerError):
            await http_transport.merge("abc", "a.txt", 1)

    async def test_remote_index_over_http(self, store, http_transport):
        store.chunks = {"abc-0": b"x"}
        assert await RemoteChunkIndex(http_transport).list_chunks("abc") == {"abc-0"}

        store.fail["/api/upload/chunks"] = 502
        assert await RemoteChunkIndex(http_transport).list_chunks("abc") == set()

    async def test_lifecycle_and_health(self, server_config):
        transport = HttpChunkTransport(server_config)

        health = await transport.check_health()
        assert health["healthy"] is False

        await transport.start()
        health = await transport.check_health()
        assert health["healthy"] is True
        assert health["details"]["base_url"] == server_config.base_url.rstrip("/")

        await transport.stop()
        assert (await transport.check_health())["status"] == "closed"

    async def test_caller_session_is_not_closed(self, store, server_config):
        async with aiohttp.ClientSession() as client:
            async with HttpChunkTransport(server_config, session=client) as transport:
                await transport.list_chunks("abc")
            assert not client.closed

    async def test_request_counters(self, store, http_transport):
        await http_transport.list_chunks("abc")
        await http_transport.upload_chunk(descriptor(0, 4), b"abcd")
        store.fail["/api/upload/chunks"] = 500
        with pytest.raises(ServerError):
            await http_transport.list_chunks("abc")

        details = (await http_transport.check_health())["details"]
        assert details["requests"] == 3
        assert details["failed_requests"] == 1
        assert details["chunks_uploaded"] == 1
        assert details["bytes_uploaded"] == 4


class TestEndToEnd:
    """Full uploads through the HTTP transport."""

    @pytest.fixture
    def config(self, server_config) -> UploaderConfig:
        return UploaderConfig(server=server_config, chunking=ChunkingConfig(chunk_size=1024))

    async def test_upload_resumes_from_stored_chunks(self, store, config, make_file):
        path = make_file(5000)
        content = file_content(5000)
        fingerprint = hashlib.md5(content).hexdigest()
        store.chunks[f"{fingerprint}-0"] = content[:1024]
        store.chunks[f"{fingerprint}-3"] = content[3072:4096]

        async with HttpChunkTransport(config.server) as transport:
            upload = create_session(transport, config)
            upload.set_file(path)
            assert await upload.start() is True
            assert upload.state == SessionState.COMPLETED

        assert sorted(f["index"] for f in store.fields) == ["1", "2", "4"]
        assert store.merged["payload.bin"] == content

    async def test_upload_file_helper(self, store, config, make_file):
        path = make_file(3000, name="report.pdf")

        assert await upload_file(path, config) is True

        assert store.merged["report.pdf"] == file_content(3000)
        assert len(store.fields) == 3
