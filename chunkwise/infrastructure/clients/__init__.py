"""
Transport clients for the chunk store.
"""

from .http import HttpChunkTransport

__all__ = [
    "HttpChunkTransport",
]
