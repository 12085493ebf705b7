"""
Tests for content fingerprinting.
"""

import hashlib
from pathlib import Path

import pytest

from chunkwise.core.domain.chunks import FileHandle
from chunkwise.core.domain.exceptions import ReadError
from chunkwise.core.services.hasher import DEFAULT_READ_SIZE, ContentHasher

from conftest import file_content


class TestContentHasher:
    """Test cases for ContentHasher."""

    async def test_matches_md5_of_content(self, make_file):
        path = make_file(300_000)

        fingerprint = await ContentHasher().hash(FileHandle.from_path(path))

        assert fingerprint == hashlib.md5(file_content(300_000)).hexdigest()

    async def test_small_read_size_gives_same_digest(self, make_file):
        path = make_file(100_003)
        source = FileHandle.from_path(path)

        whole = await ContentHasher().hash(source)
        pieces = await ContentHasher(read_size=1000).hash(source)

        assert whole == pieces

    async def test_empty_file(self, make_file):
        path = make_file(0)

        fingerprint = await ContentHasher().hash(FileHandle.from_path(path))

        assert fingerprint == hashlib.md5(b"").hexdigest()

    async def test_deterministic(self, make_file):
        source = FileHandle.from_path(make_file(4096))
        hasher = ContentHasher()

        assert await hasher.hash(source) == await hasher.hash(source)

    async def test_missing_file_raises_read_error(self, tmp_path: Path):
        source = FileHandle(path=tmp_path / "gone.bin", size=10, name="gone.bin")

        with pytest.raises(ReadError):
            await ContentHasher().hash(source)

    async def test_truncated_file_raises_read_error(self, make_file):
        path = make_file(100)
        source = FileHandle(path=path, size=200, name=path.name)

        with pytest.raises(ReadError, match="Unexpected end of file"):
            await ContentHasher(read_size=64).hash(source)

    def test_default_read_size(self):
        assert ContentHasher().read_size == DEFAULT_READ_SIZE == 2 * 1024 * 1024

    @pytest.mark.parametrize("read_size", [0, -1])
    def test_invalid_read_size(self, read_size):
        with pytest.raises(ValueError):
            ContentHasher(read_size=read_size)
