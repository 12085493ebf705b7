"""
Chunk and file domain models.

These are the immutable value types the upload engine passes around: the
source file reference, the chunk descriptors produced by the chunker, and
the progress snapshots delivered to session callbacks.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

import aiofiles

from .exceptions import ReadError


@dataclass(frozen=True)
class FileHandle:
    """
    Reference to the source file and its total byte length.

    The file is treated as immutable for the lifetime of a session. Every
    range read opens its own descriptor, so concurrent reads of disjoint
    ranges never share a file position.
    """

    path: Path
    """Absolute path of the source file."""

    size: int
    """Total file length in bytes."""

    name: str
    """Original file name, sent to the server on merge."""

    @classmethod
    def from_path(cls, path: Union[str, os.PathLike]) -> 'FileHandle':
        """Stat a file and build a handle for it."""
        file_path = Path(path).expanduser().resolve()
        try:
            stat = file_path.stat()
        except OSError as e:
            raise ReadError(f"Cannot access {file_path}: {e}", details=str(file_path)) from e

        if not file_path.is_file():
            raise ReadError(f"Not a regular file: {file_path}", details=str(file_path))

        return cls(path=file_path, size=stat.st_size, name=file_path.name)

    async def read_range(self, start: int, end: int) -> bytes:
        """Read the half-open byte range [start, end)."""
        if start < 0 or end < start or end > self.size:
            raise ReadError(
                f"Invalid range [{start}, {end}) for {self.name} ({self.size} bytes)"
            )

        try:
            async with aiofiles.open(self.path, 'rb') as f:
                await f.seek(start)
                data = await f.read(end - start)
        except OSError as e:
            raise ReadError(f"Failed to read {self.name} [{start}, {end}): {e}") from e

        if len(data) != end - start:
            raise ReadError(
                f"Short read from {self.name}: expected {end - start} bytes, got {len(data)}"
            )
        return data


@dataclass(frozen=True)
class ChunkDescriptor:
    """A named, contiguous byte range of the source file."""

    index: int
    name: str
    start: int
    end: int
    total_chunks: int
    fingerprint: str

    @property
    def size(self) -> int:
        """Chunk length in bytes."""
        return self.end - self.start

    @property
    def byte_range(self) -> Tuple[int, int]:
        """Half-open byte range covered by this chunk."""
        return (self.start, self.end)


@dataclass(frozen=True)
class UploadProgress:
    """Overall progress snapshot."""
    uploaded: int
    total: int
    percent: int


@dataclass(frozen=True)
class ChunkProgress:
    """Byte-level progress of a single chunk transfer."""
    index: int
    filename: str
    percent: int


@dataclass(frozen=True)
class UploadResult:
    """Delivered to the success callback once the server has merged the file."""
    hash: str
    filename: str


@dataclass(frozen=True)
class PreparedUpload:
    """Outcome of the preparation phase."""
    hash: str
    total_chunks: int
    uploaded_chunks: int
    remaining_chunks: int
