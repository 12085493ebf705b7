"""
Deterministic file partitioning.
"""

from typing import List

from ..domain.chunks import ChunkDescriptor, FileHandle

DEFAULT_CHUNK_SIZE = 5 * 1024 * 1024  # 5MB
DEFAULT_MAX_CHUNK_COUNT = 100


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


class Chunker:
    """
    Splits a file into an ordered sequence of named byte ranges.

    Chunks use the preferred size unless that would exceed the maximum
    chunk count, in which case the size grows to ``ceil(size / max_count)``.
    Planning depends only on the file size and the fingerprint, so the same
    file always produces the same plan.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_chunk_count: int = DEFAULT_MAX_CHUNK_COUNT
    ):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if max_chunk_count <= 0:
            raise ValueError(f"max_chunk_count must be positive, got {max_chunk_count}")

        self._chunk_size = chunk_size
        self._max_chunk_count = max_chunk_count

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def max_chunk_count(self) -> int:
        return self._max_chunk_count

    def chunk_size_for(self, file_size: int) -> int:
        """Chunk size used for a file of the given size."""
        if _ceil_div(file_size, self._chunk_size) > self._max_chunk_count:
            return _ceil_div(file_size, self._max_chunk_count)
        return self._chunk_size

    def chunk_count_for(self, file_size: int) -> int:
        """Number of chunks a file of the given size is split into."""
        return _ceil_div(file_size, self.chunk_size_for(file_size))

    def plan(self, source: FileHandle, fingerprint: str) -> List[ChunkDescriptor]:
        """
        Partition a file into chunk descriptors.

        Args:
            source: File to partition
            fingerprint: Content fingerprint used as the chunk name prefix

        Returns:
            Descriptors in index order; empty for a zero-byte file
        """
        file_size = source.size
        chunk_size = self.chunk_size_for(file_size)
        total_chunks = _ceil_div(file_size, chunk_size)

        chunks = []
        for index in range(total_chunks):
            start = index * chunk_size
            end = min(start + chunk_size, file_size)
            chunks.append(ChunkDescriptor(
                index=index,
                name=f"{fingerprint}-{index}",
                start=start,
                end=end,
                total_chunks=total_chunks,
                fingerprint=fingerprint
            ))

        return chunks
