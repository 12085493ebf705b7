"""
Domain models for the upload engine.
"""

from .chunks import (
    FileHandle, ChunkDescriptor, UploadProgress, ChunkProgress,
    UploadResult, PreparedUpload
)
from .exceptions import (
    ErrorCode, UploadError, ConfigError, NoFileError, AlreadyUploadingError,
    InvalidStateError, EmptyFileError, ReadError, TransportError, ServerError,
    RetryExhaustedError
)

__all__ = [
    "FileHandle",
    "ChunkDescriptor",
    "UploadProgress",
    "ChunkProgress",
    "UploadResult",
    "PreparedUpload",
    "ErrorCode",
    "UploadError",
    "ConfigError",
    "NoFileError",
    "AlreadyUploadingError",
    "InvalidStateError",
    "EmptyFileError",
    "ReadError",
    "TransportError",
    "ServerError",
    "RetryExhaustedError",
]
