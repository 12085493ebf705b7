"""
Query for chunks the server already holds.
"""

import logging
from typing import Set

from ..domain.exceptions import ServerError, TransportError
from ..interfaces.upload import IChunkTransport

logger = logging.getLogger(__name__)


class RemoteChunkIndex:
    """
    Read-only view of the chunks stored for a fingerprint.

    The answer is only an optimization: when the store cannot be reached the
    index reports nothing stored and the session uploads every chunk.
    """

    def __init__(self, transport: IChunkTransport):
        self._transport = transport

    async def list_chunks(self, fingerprint: str) -> Set[str]:
        """Names of chunks already stored, or an empty set on failure."""
        try:
            names = await self._transport.list_chunks(fingerprint)
        except (TransportError, ServerError) as e:
            logger.warning(f"Could not list uploaded chunks for {fingerprint}, uploading all: {e}")
            return set()

        return set(names)
