"""
Shared fixtures for the chunkwise test suite.
"""

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import pytest

from chunkwise.core.domain.chunks import ChunkDescriptor
from chunkwise.core.domain.exceptions import TransportError
from chunkwise.core.interfaces.upload import IChunkTransport


def file_content(size: int) -> bytes:
    """Deterministic, non-repeating-per-chunk test content."""
    pattern = bytes((i * 7 + i // 251) % 256 for i in range(4096))
    repeats = size // len(pattern) + 1
    return (pattern * repeats)[:size]


async def wait_until(condition: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the event loop until condition() holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.001)


class FakeChunkTransport(IChunkTransport):
    """
    In-memory chunk store.

    ``fail_plan`` maps chunk names to the number of times their upload
    should fail before succeeding. Setting ``gate`` to an unset event holds
    every upload until the event is set; ``merge_gate`` does the same for
    merge requests.
    """

    def __init__(
        self,
        stored: Optional[Set[str]] = None,
        fail_plan: Optional[Dict[str, int]] = None,
        list_error: Optional[Exception] = None,
        merge_error: Optional[Exception] = None
    ):
        self.stored: Set[str] = set(stored or ())
        self.fail_plan: Dict[str, int] = dict(fail_plan or {})
        self.list_error = list_error
        self.merge_error = merge_error
        self.gate: Optional[asyncio.Event] = None
        self.merge_gate: Optional[asyncio.Event] = None
        self.upload_calls: List[str] = []
        self.received: Dict[str, bytes] = {}
        self.merge_calls: List[Tuple[str, str, int]] = []
        self.events: List[Any] = []
        self.active = 0
        self.max_active = 0

    async def list_chunks(self, fingerprint: str) -> List[str]:
        if self.list_error is not None:
            raise self.list_error
        return sorted(name for name in self.stored if name.startswith(f"{fingerprint}-"))

    async def upload_chunk(
        self,
        chunk: ChunkDescriptor,
        data: bytes,
        on_progress: Optional[Callable[[int], None]] = None
    ) -> Dict[str, Any]:
        self.upload_calls.append(chunk.name)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(0)

            if on_progress:
                on_progress(50)

            remaining = self.fail_plan.get(chunk.name, 0)
            if remaining:
                self.fail_plan[chunk.name] = remaining - 1
                raise TransportError(f"injected failure for {chunk.name}")

            if on_progress:
                on_progress(100)
            self.stored.add(chunk.name)
            self.received[chunk.name] = data
            return {"ok": True}
        finally:
            self.active -= 1

    async def merge(self, fingerprint: str, filename: str, total_chunks: int) -> Dict[str, Any]:
        self.merge_calls.append((fingerprint, filename, total_chunks))
        self.events.append(("merge", fingerprint))
        if self.merge_gate is not None:
            await self.merge_gate.wait()
        if self.merge_error is not None:
            raise self.merge_error
        return {"merged": True}


@pytest.fixture
def transport() -> FakeChunkTransport:
    """Create an empty in-memory chunk store."""
    return FakeChunkTransport()


@pytest.fixture
def make_file(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing deterministic test files of a given size."""

    def _make(size: int, name: str = "payload.bin") -> Path:
        path = tmp_path / name
        path.write_bytes(file_content(size))
        return path

    return _make
