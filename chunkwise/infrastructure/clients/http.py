"""
HTTP chunk store transport using aiohttp.

Talks to a server exposing the chunk listing, chunk upload and merge
endpoints. Network failures surface as TransportError and non-success
responses as ServerError.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

import aiohttp
from aiohttp import ClientError, ClientSession, ClientTimeout

from ...core.domain.chunks import ChunkDescriptor
from ...core.domain.exceptions import ServerError, TransportError
from ...core.interfaces.lifecycle import IHealthCheckable, IStartable, IStoppable
from ...core.interfaces.upload import IChunkTransport
from ..config.models import ServerConfig

logger = logging.getLogger(__name__)


async def _stream_with_progress(
    data: bytes,
    step: int,
    on_progress: Optional[Callable[[int], None]]
) -> AsyncIterator[bytes]:
    """Yield data in slices, reporting the percentage handed to the writer."""
    total = len(data)
    view = memoryview(data)
    sent = 0
    last_percent = -1

    if total == 0 and on_progress:
        on_progress(100)

    while sent < total:
        piece = bytes(view[sent:sent + step])
        yield piece
        sent += len(piece)

        percent = sent * 100 // total
        if on_progress and percent != last_percent:
            on_progress(percent)
            last_percent = percent


class HttpChunkTransport(IChunkTransport, IStartable, IStoppable, IHealthCheckable):
    """
    aiohttp-based chunk store client.

    The client session is created lazily and reused for every request.
    A session passed in by the caller is never closed by the transport.
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        session: Optional[ClientSession] = None
    ):
        self._config = config or ServerConfig()
        self._session = session
        self._owns_session = session is None
        self._stats = {
            "requests": 0,
            "failed_requests": 0,
            "chunks_uploaded": 0,
            "bytes_uploaded": 0
        }

    @property
    def base_url(self) -> str:
        return self._config.base_url.rstrip('/')

    async def __aenter__(self) -> 'HttpChunkTransport':
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        """Open the HTTP session."""
        await self._ensure_session()

    async def stop(self) -> None:
        """Close the HTTP session if the transport created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
            logger.debug("Closed HTTP session")
        if self._owns_session:
            self._session = None

    async def check_health(self) -> Dict[str, Any]:
        """Report session state and request counters."""
        open_session = self._session is not None and not self._session.closed
        return {
            "healthy": open_session,
            "status": "open" if open_session else "closed",
            "details": {
                "base_url": self.base_url,
                **self._stats
            }
        }

    async def list_chunks(self, fingerprint: str) -> List[str]:
        """GET the names of chunks already stored for a fingerprint."""
        data = await self._request(
            "GET",
            self._config.list_path,
            params={"hash": fingerprint}
        )

        chunks = data.get("chunks")
        if not isinstance(chunks, list):
            return []
        return [str(name) for name in chunks]

    async def upload_chunk(
        self,
        chunk: ChunkDescriptor,
        data: bytes,
        on_progress: Optional[Callable[[int], None]] = None
    ) -> Dict[str, Any]:
        """POST one chunk as multipart form data."""
        form = aiohttp.FormData()
        form.add_field(
            "chunk",
            _stream_with_progress(data, self._config.progress_step, on_progress),
            filename=chunk.name,
            content_type="application/octet-stream"
        )
        form.add_field("hash", chunk.fingerprint)
        form.add_field("filename", chunk.name)
        form.add_field("index", str(chunk.index))
        form.add_field("totalChunks", str(chunk.total_chunks))

        result = await self._request("POST", self._config.upload_path, data=form)

        self._stats["chunks_uploaded"] += 1
        self._stats["bytes_uploaded"] += len(data)
        logger.debug(f"Uploaded chunk {chunk.name} ({len(data)} bytes)")
        return result

    async def merge(self, fingerprint: str, filename: str, total_chunks: int) -> Dict[str, Any]:
        """POST the merge request for a fully uploaded file."""
        result = await self._request(
            "POST",
            self._config.merge_path,
            json={"hash": fingerprint, "filename": filename, "totalChunks": total_chunks}
        )
        logger.info(f"Server merged {filename} from {total_chunks} chunks")
        return result

    async def _ensure_session(self) -> ClientSession:
        if self._session is None or self._session.closed:
            if not self._owns_session:
                raise TransportError("HTTP session supplied by the caller is closed")
            timeout = ClientTimeout(
                total=self._config.timeout,
                connect=self._config.connect_timeout
            )
            self._session = ClientSession(timeout=timeout)
            logger.debug(f"Created HTTP session for {self.base_url}")
        return self._session

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        session = await self._ensure_session()
        url = f"{self.base_url}{path}"
        self._stats["requests"] += 1

        try:
            async with session.request(method, url, **kwargs) as response:
                body = (await response.read()).decode("utf-8", errors="replace")
                if not 200 <= response.status < 300:
                    raise ServerError(
                        response.status,
                        f"{method} {path} failed: HTTP {response.status} {response.reason or ''}".rstrip(),
                        details=body[:500] or None
                    )
        except ServerError:
            self._stats["failed_requests"] += 1
            raise
        except (ClientError, asyncio.TimeoutError) as e:
            self._stats["failed_requests"] += 1
            raise TransportError(f"{method} {path} failed: {str(e) or type(e).__name__}") from e

        return self._parse_body(body)

    @staticmethod
    def _parse_body(body: str) -> Dict[str, Any]:
        """Parsed JSON object, or an empty dict for empty or unparsable bodies."""
        if not body.strip():
            return {}
        try:
            parsed = json.loads(body)
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {"data": parsed}
