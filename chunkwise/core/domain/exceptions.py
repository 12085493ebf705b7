"""
Exception taxonomy for the upload engine.

Every error raised by chunkwise derives from UploadError and carries an
ErrorCode so callers can branch on the failure class without string matching.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(Enum):
    """Upload error codes."""
    UNKNOWN_ERROR = 10000
    CONFIG_ERROR = 10001
    NO_FILE = 10100
    ALREADY_UPLOADING = 10101
    INVALID_STATE = 10102
    EMPTY_FILE = 10103
    READ_ERROR = 10200
    TRANSPORT_ERROR = 10300
    SERVER_ERROR = 10301
    RETRY_EXHAUSTED = 10302


class UploadError(Exception):
    """Base upload error."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Any] = None
    ):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(message)


class ConfigError(UploadError):
    """Invalid or unreadable configuration."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(ErrorCode.CONFIG_ERROR, message, details)


class NoFileError(UploadError):
    """No file was selected before start."""

    def __init__(self, message: str = "No file selected", details: Any = None):
        super().__init__(ErrorCode.NO_FILE, message, details)


class AlreadyUploadingError(UploadError):
    """start() was called while an upload is in progress."""

    def __init__(self, message: str = "Upload already in progress", details: Any = None):
        super().__init__(ErrorCode.ALREADY_UPLOADING, message, details)


class InvalidStateError(UploadError):
    """Operation is not legal in the session's current state."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(ErrorCode.INVALID_STATE, message, details)


class EmptyFileError(UploadError):
    """The selected file has no content to chunk."""

    def __init__(self, message: str = "File is empty", details: Any = None):
        super().__init__(ErrorCode.EMPTY_FILE, message, details)


class ReadError(UploadError):
    """The source file could not be read. Fatal for the session."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(ErrorCode.READ_ERROR, message, details)


class TransportError(UploadError):
    """Network-level failure talking to the chunk store."""

    def __init__(self, message: str, details: Any = None,
                 code: ErrorCode = ErrorCode.TRANSPORT_ERROR):
        super().__init__(code, message, details)


class ServerError(UploadError):
    """The chunk store answered with a non-success status."""

    def __init__(self, status: int, message: Optional[str] = None, details: Any = None):
        self.status = status
        super().__init__(
            ErrorCode.SERVER_ERROR,
            message or f"Server responded with HTTP {status}",
            details
        )


class RetryExhaustedError(TransportError):
    """A chunk failed more times than the retry policy allows."""

    def __init__(self, chunk_name: str, attempts: int, last_error: Optional[BaseException] = None):
        self.chunk_name = chunk_name
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Chunk {chunk_name} failed after {attempts} attempts",
            details=str(last_error) if last_error else None,
            code=ErrorCode.RETRY_EXHAUSTED
        )
