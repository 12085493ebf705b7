"""
Upload interfaces for the chunkwise engine.

This module defines the session state machine states, the consumer callback
bundle, and the contracts for the chunk store transport and the upload
session.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..domain.chunks import ChunkDescriptor, ChunkProgress, UploadProgress, UploadResult


class SessionState(Enum):
    """Upload session state enumeration."""
    IDLE = "idle"
    PREPARING = "preparing"
    UPLOADING = "uploading"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        """True while a start has been issued and not yet settled."""
        return self in (SessionState.PREPARING, SessionState.UPLOADING, SessionState.PAUSED)

    @property
    def is_terminal(self) -> bool:
        """True once the session has completed or been cancelled."""
        return self in (SessionState.COMPLETED, SessionState.CANCELLED)


ProgressCallback = Callable[[UploadProgress], Any]
ChunkProgressCallback = Callable[[ChunkProgress], Any]


@dataclass
class UploadCallbacks:
    """
    Consumer notification hooks.

    All hooks are optional and invoked synchronously on the event loop.
    Exceptions raised inside a hook are not caught.
    """
    on_progress: Optional[ProgressCallback] = None
    on_chunk_progress: Optional[ChunkProgressCallback] = None
    on_success: Optional[Callable[[UploadResult], Any]] = None
    on_error: Optional[Callable[[BaseException], Any]] = None


class IChunkTransport(ABC):
    """
    Interface to the remote chunk store.

    Implementations raise TransportError for network failures and
    ServerError for non-success responses.
    """

    @abstractmethod
    async def list_chunks(self, fingerprint: str) -> List[str]:
        """Return the names of chunks already stored for a fingerprint."""
        pass

    @abstractmethod
    async def upload_chunk(
        self,
        chunk: ChunkDescriptor,
        data: bytes,
        on_progress: Optional[Callable[[int], None]] = None
    ) -> Dict[str, Any]:
        """
        Upload one chunk.

        Args:
            chunk: Descriptor of the chunk being sent
            data: Chunk bytes
            on_progress: Called with an integer percentage as bytes are sent

        Returns:
            Parsed response body, or an empty dict
        """
        pass

    @abstractmethod
    async def merge(self, fingerprint: str, filename: str, total_chunks: int) -> Dict[str, Any]:
        """Ask the server to assemble the uploaded chunks into the file."""
        pass


class IUploadSession(ABC):
    """Interface for a single resumable file upload."""

    @abstractmethod
    async def start(self) -> bool:
        """Prepare and upload the file. True once the server has merged it."""
        pass

    @abstractmethod
    def pause(self) -> bool:
        """Stop dispatching new chunks."""
        pass

    @abstractmethod
    async def resume(self) -> bool:
        """Continue a paused upload."""
        pass

    @abstractmethod
    def cancel(self) -> bool:
        """Abandon the upload and discard its bookkeeping."""
        pass

    @abstractmethod
    def get_progress(self) -> Dict[str, Any]:
        """Get detailed progress information."""
        pass
