"""
chunkwise - resumable, content-addressed chunked file uploads.

Files are fingerprinted, split into deterministic chunks named after the
fingerprint, and uploaded with bounded concurrency. Chunks the server
already holds are skipped, so an interrupted upload resumes where it left
off.
"""

__version__ = "0.1.0"

# Public API exports
from .core.domain.chunks import (
    FileHandle, ChunkDescriptor, UploadProgress, ChunkProgress, UploadResult, PreparedUpload
)
from .core.domain.exceptions import (
    UploadError, NoFileError, AlreadyUploadingError, InvalidStateError, EmptyFileError,
    ReadError, TransportError, ServerError, RetryExhaustedError, ConfigError
)
from .core.interfaces.upload import IChunkTransport, IUploadSession, SessionState, UploadCallbacks
from .core.services import (
    ContentHasher, Chunker, RemoteChunkIndex, TransferScheduler, RetryPolicy, UploadSession
)
from .infrastructure.clients.http import HttpChunkTransport
from .infrastructure.config.models import UploaderConfig
from .application.uploader import create_session, upload_file

__all__ = [
    "FileHandle",
    "ChunkDescriptor",
    "UploadProgress",
    "ChunkProgress",
    "UploadResult",
    "PreparedUpload",
    "UploadError",
    "NoFileError",
    "AlreadyUploadingError",
    "InvalidStateError",
    "EmptyFileError",
    "ReadError",
    "TransportError",
    "ServerError",
    "RetryExhaustedError",
    "ConfigError",
    "IChunkTransport",
    "IUploadSession",
    "SessionState",
    "UploadCallbacks",
    "ContentHasher",
    "Chunker",
    "RemoteChunkIndex",
    "TransferScheduler",
    "RetryPolicy",
    "UploadSession",
    "HttpChunkTransport",
    "UploaderConfig",
    "create_session",
    "upload_file",
]
