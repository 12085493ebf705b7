"""
Tests for the remote chunk index.
"""

import pytest

from chunkwise.core.domain.exceptions import ServerError, TransportError
from chunkwise.core.services.chunk_index import RemoteChunkIndex

from conftest import FakeChunkTransport


class TestRemoteChunkIndex:
    """Test cases for RemoteChunkIndex."""

    async def test_returns_stored_names(self):
        transport = FakeChunkTransport(stored={"abc-0", "abc-2", "other-0"})

        names = await RemoteChunkIndex(transport).list_chunks("abc")

        assert names == {"abc-0", "abc-2"}

    async def test_nothing_stored(self, transport):
        assert await RemoteChunkIndex(transport).list_chunks("abc") == set()

    @pytest.mark.parametrize("error", [
        TransportError("connection refused"),
        ServerError(503),
    ])
    async def test_failure_degrades_to_empty(self, error):
        transport = FakeChunkTransport(stored={"abc-0"}, list_error=error)

        assert await RemoteChunkIndex(transport).list_chunks("abc") == set()

    async def test_unexpected_error_propagates(self):
        transport = FakeChunkTransport(list_error=RuntimeError("bug"))

        with pytest.raises(RuntimeError):
            await RemoteChunkIndex(transport).list_chunks("abc")
