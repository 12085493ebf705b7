"""
Upload session state machine.

This module provides the resumable upload session: it fingerprints the
file, plans its chunks, skips the ones the server already holds, drives the
transfer scheduler and finally asks the server to merge the chunks.
"""

import asyncio
import logging
import os
from collections import deque
from typing import Any, Deque, Dict, FrozenSet, List, Optional, Set, Tuple, Union

from ..domain.chunks import ChunkDescriptor, FileHandle, PreparedUpload, UploadResult
from ..domain.exceptions import (
    AlreadyUploadingError, EmptyFileError, InvalidStateError, NoFileError
)
from ..interfaces.upload import IChunkTransport, IUploadSession, SessionState, UploadCallbacks
from .chunk_index import RemoteChunkIndex
from .chunker import Chunker
from .hasher import ContentHasher
from .scheduler import DEFAULT_CONCURRENCY, TransferScheduler

logger = logging.getLogger(__name__)


class UploadSession(IUploadSession):
    """
    A single resumable file upload.

    Chunk bookkeeping (the pending queue and the uploaded set) survives
    failures, so a failed session can simply be started again. Only
    cancel() discards it.

    If the task driving the upload is itself cancelled (for example on
    Ctrl-C), the session moves to FAILED without calling on_error, since
    nothing went wrong with the upload. Chunks that were in flight are put
    back at the front of the pending queue.
    """

    def __init__(
        self,
        transport: IChunkTransport,
        concurrency: int = DEFAULT_CONCURRENCY,
        hasher: Optional[ContentHasher] = None,
        chunker: Optional[Chunker] = None,
        scheduler: Optional[TransferScheduler] = None,
        callbacks: Optional[UploadCallbacks] = None
    ):
        """
        Initialize upload session.

        Args:
            transport: Chunk store transport
            concurrency: Maximum simultaneous chunk transfers
            hasher: Content hasher (default 2MB reads)
            chunker: Chunker (default 5MB chunks, at most 100)
            scheduler: Transfer scheduler (default: immediate infinite retry)
            callbacks: Consumer notification hooks
        """
        if concurrency <= 0:
            raise ValueError(f"concurrency must be positive, got {concurrency}")

        self._transport = transport
        self._concurrency = concurrency
        self._hasher = hasher or ContentHasher()
        self._chunker = chunker or Chunker()
        self._scheduler = scheduler or TransferScheduler(transport)
        self._index = RemoteChunkIndex(transport)
        self._callbacks = callbacks or UploadCallbacks()

        self._state = SessionState.IDLE
        self._file: Optional[FileHandle] = None
        self._fingerprint: Optional[str] = None
        self._plan: List[ChunkDescriptor] = []
        self._pending: Deque[ChunkDescriptor] = deque()
        self._uploaded: Set[str] = set()
        self._task: Optional[asyncio.Task[bool]] = None
        self._merging = False
        # Identifies the current drive; replaced on cancel so stale drives stand down.
        self._token: Optional[object] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def file(self) -> Optional[FileHandle]:
        return self._file

    @property
    def fingerprint(self) -> Optional[str]:
        return self._fingerprint

    @property
    def concurrency(self) -> int:
        return self._concurrency

    @property
    def pending(self) -> Tuple[ChunkDescriptor, ...]:
        """Snapshot of chunks not yet confirmed, in dispatch order."""
        return tuple(self._pending)

    @property
    def uploaded(self) -> FrozenSet[str]:
        """Snapshot of chunk names confirmed on the server."""
        return frozenset(self._uploaded)

    @property
    def total_chunks(self) -> int:
        return len(self._plan)

    def set_file(self, file: Union[FileHandle, str, 'os.PathLike[str]']) -> None:
        """
        Select the file to upload.

        Replaces any previous file together with its fingerprint and chunk
        bookkeeping.

        Raises:
            InvalidStateError: If an upload is in progress
            ReadError: If a path was given and the file cannot be accessed
        """
        if self._state.is_active:
            raise InvalidStateError(f"Cannot change file while {self._state.value}")

        self._file = file if isinstance(file, FileHandle) else FileHandle.from_path(file)
        self._fingerprint = None
        self._reset_bookkeeping()
        self._state = SessionState.IDLE
        logger.debug(f"Selected file {self._file.name} ({self._file.size} bytes)")

    async def calculate_hash(self) -> str:
        """Fingerprint the selected file and remember the result."""
        if self._file is None:
            raise NoFileError()

        self._fingerprint = await self._hasher.hash(self._file)
        return self._fingerprint

    async def prepare(self) -> PreparedUpload:
        """
        Fingerprint, plan and subtract the chunks the server already holds.

        Raises:
            NoFileError: If no file is selected
            AlreadyUploadingError: If an upload is in progress
            EmptyFileError: If the file has no content
        """
        if self._state.is_active:
            raise AlreadyUploadingError()
        return await self._prepare(self._token)

    async def start(self) -> bool:
        """
        Upload the selected file.

        Returns:
            True once the server has merged the file, False if the upload
            was paused or cancelled before that

        Raises:
            NoFileError: If no file is selected
            AlreadyUploadingError: If an upload is already in progress
        """
        if self._state.is_active:
            raise AlreadyUploadingError()
        if self._file is None:
            raise NoFileError()

        self._state = SessionState.PREPARING
        if self._scheduler.is_paused:
            self._scheduler.resume()
        # Each start gets the full retry budget back.
        self._scheduler.clear_failures()

        logger.info(f"Starting upload of {self._file.name}")
        return await self._drive(prepare=True)

    def pause(self) -> bool:
        """Stop dispatching chunks. Transfers already in flight finish."""
        if self._state != SessionState.UPLOADING:
            logger.warning(f"Cannot pause upload while {self._state.value}")
            return False
        if self._merging:
            logger.warning(f"Cannot pause upload of {self._describe()}: merge already requested")
            return False

        self._scheduler.pause()
        self._state = SessionState.PAUSED
        logger.info(f"Paused upload of {self._describe()}")
        return True

    async def resume(self) -> bool:
        """
        Continue a paused upload over the remaining chunks.

        Returns:
            True once the server has merged the file, False if the session
            was not paused or was paused or cancelled again
        """
        if self._state != SessionState.PAUSED:
            logger.warning(f"Cannot resume upload while {self._state.value}")
            return False

        self._state = SessionState.UPLOADING
        self._scheduler.resume()
        logger.info(f"Resumed upload of {self._describe()}")

        if self._task is not None and not self._task.done():
            # The previous drive is still draining in-flight chunks and picks up again.
            return await asyncio.shield(self._task)
        return await self._drive(prepare=False)

    def cancel(self) -> bool:
        """
        Abandon the upload and discard all chunk bookkeeping.

        In-flight transfers are not aborted; their results are ignored.
        Nothing is deleted on the server.
        """
        if self._state.is_terminal:
            return False

        self._token = None
        self._scheduler.cancel()
        self._reset_bookkeeping()
        self._state = SessionState.CANCELLED
        logger.info(f"Cancelled upload of {self._describe()}")
        return True

    def get_progress(self) -> Dict[str, Any]:
        """Get detailed progress information."""
        total = len(self._plan)
        uploaded = len(self._uploaded)
        return {
            "state": self._state.value,
            "filename": self._file.name if self._file else None,
            "file_size": self._file.size if self._file else 0,
            "hash": self._fingerprint,
            "chunks_total": total,
            "chunks_uploaded": uploaded,
            "chunks_pending": len(self._pending),
            "chunks_in_flight": self._scheduler.in_flight,
            "percent": uploaded * 100 // total if total else 0
        }

    async def _drive(self, prepare: bool) -> bool:
        token = object()
        self._token = token
        self._task = asyncio.create_task(self._run(token, prepare))
        return await self._task

    async def _run(self, token: object, prepare: bool) -> bool:
        assert self._file is not None
        try:
            if prepare:
                await self._prepare(token)
                if self._token is not token:
                    return False
                self._state = SessionState.UPLOADING

            await self._scheduler.run(
                self._file,
                self._pending,
                self._uploaded,
                self._concurrency,
                on_chunk_progress=self._callbacks.on_chunk_progress,
                on_overall_progress=self._callbacks.on_progress
            )

            if self._token is not token or self._pending or self._scheduler.is_paused:
                return False

            assert self._fingerprint is not None
            self._merging = True
            try:
                await self._transport.merge(self._fingerprint, self._file.name, len(self._plan))
            finally:
                self._merging = False
            if self._token is not token:
                return False
        except asyncio.CancelledError:
            if self._token is token:
                self._state = SessionState.FAILED
            raise
        except Exception as e:
            if self._token is not token:
                logger.debug(f"Ignoring error from abandoned upload of {self._file.name}: {e}")
                return False

            self._state = SessionState.FAILED
            logger.error(f"Upload of {self._file.name} failed: {e}")
            if self._callbacks.on_error:
                self._callbacks.on_error(e)
            raise

        self._state = SessionState.COMPLETED
        logger.info(f"Upload completed: {self._file.name} ({self._fingerprint})")
        if self._callbacks.on_success:
            self._callbacks.on_success(UploadResult(hash=self._fingerprint, filename=self._file.name))
        return True

    async def _prepare(self, token: Optional[object]) -> PreparedUpload:
        if self._file is None:
            raise NoFileError()

        source = self._file
        fingerprint = self._fingerprint or await self._hasher.hash(source)
        plan = self._chunker.plan(source, fingerprint)
        if not plan:
            raise EmptyFileError(f"{source.name} is empty, nothing to upload")

        remote = await self._index.list_chunks(fingerprint)

        if self._token is not token or self._file is not source:
            # Cancelled or re-targeted while we were waiting on I/O.
            return self._summary(fingerprint, plan, 0, len(plan))

        names = {chunk.name for chunk in plan}
        uploaded = (self._uploaded | remote) & names

        self._fingerprint = fingerprint
        self._plan = plan
        self._uploaded = uploaded
        self._pending = deque(chunk for chunk in plan if chunk.name not in uploaded)

        logger.info(
            f"Prepared {source.name}: {len(plan)} chunks, "
            f"{len(uploaded)} already uploaded, {len(self._pending)} remaining"
        )
        return self._summary(fingerprint, plan, len(uploaded), len(self._pending))

    @staticmethod
    def _summary(fingerprint: str, plan: List[ChunkDescriptor], uploaded: int, remaining: int) -> PreparedUpload:
        return PreparedUpload(
            hash=fingerprint,
            total_chunks=len(plan),
            uploaded_chunks=uploaded,
            remaining_chunks=remaining
        )

    def _reset_bookkeeping(self) -> None:
        self._plan = []
        self._pending = deque()
        self._uploaded = set()

    def _describe(self) -> str:
        return self._file.name if self._file else "<no file>"
