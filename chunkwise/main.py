"""
Main entry point for chunkwise.

This module provides the command-line interface for uploading files and
inspecting how a file would be fingerprinted and chunked.
"""

import asyncio
import logging
import sys
from typing import Optional

import typer

from .application.uploader import upload_file
from .core.domain.chunks import ChunkProgress, FileHandle, UploadProgress, UploadResult
from .core.domain.exceptions import UploadError
from .core.interfaces.upload import UploadCallbacks
from .core.services.chunker import Chunker
from .core.services.hasher import ContentHasher
from .infrastructure.config.loader import ConfigLoader
from .infrastructure.config.models import UploaderConfig
from .infrastructure.logging.setup import setup_logging

# Create CLI application
cli = typer.Typer(
    name="chunkwise",
    help="Resumable chunked file uploader with content-addressed chunks"
)

logger = logging.getLogger(__name__)


def _load_config(config_file: Optional[str]) -> UploaderConfig:
    try:
        return ConfigLoader().load_config(config_file)
    except UploadError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=1)


def _open_file(path: str) -> FileHandle:
    try:
        return FileHandle.from_path(path)
    except UploadError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


@cli.command()
def upload(
    file: str = typer.Argument(..., help="File to upload"),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
    server: Optional[str] = typer.Option(
        None, "--server", "-s", help="Server base URL"
    ),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-n", help="Simultaneous chunk uploads"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level"
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Enable debug logging"
    )
) -> None:
    """Upload a file, skipping chunks the server already has."""

    config = _load_config(config_file)

    # Override with command line arguments
    if server:
        config.server.base_url = server
    if concurrency:
        config.transfer.concurrency = concurrency
    if log_level:
        config.logging.level = log_level.upper()
    if debug:
        config.debug = True
    if config.debug:
        config.logging.level = "DEBUG"

    setup_logging(config.logging)
    source = _open_file(file)

    def on_progress(progress: UploadProgress) -> None:
        typer.echo(f"[{progress.percent:3d}%] {progress.uploaded}/{progress.total} chunks")

    def on_chunk_progress(progress: ChunkProgress) -> None:
        logger.debug(f"Chunk {progress.index}: {progress.percent}%")

    def on_success(result: UploadResult) -> None:
        typer.echo(f"Uploaded {result.filename} ({result.hash})")

    callbacks = UploadCallbacks(
        on_progress=on_progress,
        on_chunk_progress=on_chunk_progress,
        on_success=on_success
    )

    try:
        completed = asyncio.run(upload_file(source, config, callbacks))
    except KeyboardInterrupt:
        typer.echo("Upload interrupted; run the same command again to resume.", err=True)
        raise typer.Exit(code=130)
    except UploadError as e:
        typer.echo(f"Upload failed: {e}", err=True)
        raise typer.Exit(code=1)

    if not completed:
        typer.echo("Upload did not complete.", err=True)
        raise typer.Exit(code=1)


@cli.command()
def plan(
    file: str = typer.Argument(..., help="File to inspect"),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    )
) -> None:
    """Show the fingerprint and chunk layout of a file."""

    config = _load_config(config_file)
    source = _open_file(file)

    hasher = ContentHasher(read_size=config.chunking.hash_read_size)
    chunker = Chunker(
        chunk_size=config.chunking.chunk_size,
        max_chunk_count=config.chunking.max_chunk_count
    )

    try:
        fingerprint = asyncio.run(hasher.hash(source))
    except UploadError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    chunks = chunker.plan(source, fingerprint)
    typer.echo(f"File: {source.name} ({source.size} bytes)")
    typer.echo(f"Hash: {fingerprint}")
    typer.echo(f"Chunk size: {chunker.chunk_size_for(source.size)} bytes, {len(chunks)} chunks")
    for chunk in chunks:
        typer.echo(f"  {chunk.name}  [{chunk.start}, {chunk.end})  {chunk.size} bytes")


@cli.command()
def fingerprint(
    file: str = typer.Argument(..., help="File to hash"),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    )
) -> None:
    """Print the content fingerprint of a file."""

    config = _load_config(config_file)
    source = _open_file(file)
    hasher = ContentHasher(read_size=config.chunking.hash_read_size)
    try:
        typer.echo(asyncio.run(hasher.hash(source)))
    except UploadError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


@cli.command()
def init_config(
    output: str = typer.Option(
        "chunkwise.yaml", "--output", "-o", help="Output configuration file"
    ),
    format: str = typer.Option(
        "yaml", "--format", "-f", help="Configuration format (yaml/json)"
    )
) -> None:
    """Generate a default configuration file."""

    config = UploaderConfig()
    config_loader = ConfigLoader()

    try:
        config_loader.save_config(config, output, format)
        typer.echo(f"Default configuration saved to {output}")
    except UploadError as e:
        typer.echo(f"Error saving configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
def validate_config(
    config_file: str = typer.Argument(..., help="Configuration file to validate")
) -> None:
    """Validate a configuration file."""

    config_loader = ConfigLoader()

    try:
        config = config_loader.load_config(config_file)
        typer.echo(f"Configuration file {config_file} is valid")
        typer.echo(f"Server: {config.server.base_url}")
        typer.echo(f"Concurrency: {config.transfer.concurrency}")
    except UploadError as e:
        typer.echo(f"Configuration validation failed: {e}", err=True)
        sys.exit(1)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
