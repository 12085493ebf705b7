"""
Core interfaces for the upload engine.
"""

from .lifecycle import IStartable, IStoppable, IHealthCheckable
from .upload import (
    SessionState, UploadCallbacks, IChunkTransport, IUploadSession,
    ProgressCallback, ChunkProgressCallback
)

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "SessionState",
    "UploadCallbacks",
    "IChunkTransport",
    "IUploadSession",
    "ProgressCallback",
    "ChunkProgressCallback",
]
