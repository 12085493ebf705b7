"""
Content fingerprinting.
"""

import hashlib
import logging

import aiofiles

from ..domain.chunks import FileHandle
from ..domain.exceptions import ReadError

logger = logging.getLogger(__name__)

DEFAULT_READ_SIZE = 2 * 1024 * 1024  # 2MB


class ContentHasher:
    """
    Computes the MD5 fingerprint of a file.

    The file is read sequentially in fixed increments so peak memory stays
    bounded by ``read_size`` whatever the file size.
    """

    def __init__(self, read_size: int = DEFAULT_READ_SIZE):
        if read_size <= 0:
            raise ValueError(f"read_size must be positive, got {read_size}")
        self._read_size = read_size

    @property
    def read_size(self) -> int:
        return self._read_size

    async def hash(self, source: FileHandle) -> str:
        """
        Fingerprint the file content.

        Args:
            source: File to hash

        Returns:
            Lowercase hex digest

        Raises:
            ReadError: If any increment cannot be read
        """
        digest = hashlib.md5()
        remaining = source.size

        try:
            async with aiofiles.open(source.path, 'rb') as f:
                while remaining > 0:
                    block = await f.read(min(self._read_size, remaining))
                    if not block:
                        raise ReadError(
                            f"Unexpected end of file while hashing {source.name}: "
                            f"{remaining} bytes missing"
                        )
                    digest.update(block)
                    remaining -= len(block)
        except OSError as e:
            raise ReadError(f"Failed to read {source.name} while hashing: {e}") from e

        fingerprint = digest.hexdigest()
        logger.debug(f"Fingerprint of {source.name} ({source.size} bytes): {fingerprint}")
        return fingerprint
