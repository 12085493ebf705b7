"""
Uploader assembly.

This module builds upload sessions from the uploader configuration and
offers a one-call helper for uploading a single file over HTTP.
"""

import logging
import os
from typing import Optional, Union

from ..core.domain.chunks import FileHandle
from ..core.interfaces.upload import IChunkTransport, UploadCallbacks
from ..core.services.chunker import Chunker
from ..core.services.hasher import ContentHasher
from ..core.services.scheduler import RetryPolicy, TransferScheduler
from ..core.services.session import UploadSession
from ..infrastructure.clients.http import HttpChunkTransport
from ..infrastructure.config.models import UploaderConfig

logger = logging.getLogger(__name__)


def create_session(
    transport: IChunkTransport,
    config: Optional[UploaderConfig] = None,
    callbacks: Optional[UploadCallbacks] = None
) -> UploadSession:
    """
    Build an upload session configured from an UploaderConfig.

    Args:
        transport: Chunk store transport
        config: Uploader configuration (defaults when omitted)
        callbacks: Consumer notification hooks

    Returns:
        A session in the IDLE state with no file selected
    """
    config = config or UploaderConfig()

    retry_policy = RetryPolicy(
        base_delay=config.transfer.retry_base_delay,
        max_delay=config.transfer.retry_max_delay,
        max_attempts=config.transfer.max_attempts
    )

    return UploadSession(
        transport,
        concurrency=config.transfer.concurrency,
        hasher=ContentHasher(read_size=config.chunking.hash_read_size),
        chunker=Chunker(
            chunk_size=config.chunking.chunk_size,
            max_chunk_count=config.chunking.max_chunk_count
        ),
        scheduler=TransferScheduler(transport, retry_policy),
        callbacks=callbacks
    )


async def upload_file(
    path: Union[FileHandle, str, 'os.PathLike[str]'],
    config: Optional[UploaderConfig] = None,
    callbacks: Optional[UploadCallbacks] = None
) -> bool:
    """
    Upload one file to the configured server.

    Args:
        path: File to upload
        config: Uploader configuration
        callbacks: Consumer notification hooks

    Returns:
        True once the server has merged the file
    """
    config = config or UploaderConfig()

    async with HttpChunkTransport(config.server) as transport:
        upload = create_session(transport, config, callbacks)
        upload.set_file(path)
        logger.info(f"Uploading {path} to {config.server.base_url}")
        return await upload.start()
