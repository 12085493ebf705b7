"""
Upload engine services.

This module provides content hashing, chunk planning, the remote chunk
index, the transfer scheduler and the upload session state machine.
"""

from .hasher import ContentHasher
from .chunker import Chunker
from .chunk_index import RemoteChunkIndex
from .scheduler import TransferScheduler, RetryPolicy
from .session import UploadSession

__all__ = [
    "ContentHasher",
    "Chunker",
    "RemoteChunkIndex",
    "TransferScheduler",
    "RetryPolicy",
    "UploadSession",
]
