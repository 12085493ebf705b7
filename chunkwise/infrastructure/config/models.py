"""
Configuration models and data structures.

This module defines the configuration models used by the uploader,
providing defaults and validation for configuration values.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from ...core.domain.exceptions import ConfigError


@dataclass
class ServerConfig:
    """Chunk store endpoint configuration."""
    base_url: str = "http://localhost:3000"
    timeout: float = 300.0
    connect_timeout: float = 10.0
    list_path: str = "/api/upload/chunks"
    upload_path: str = "/api/upload/chunk"
    merge_path: str = "/api/upload/merge"
    progress_step: int = 64 * 1024

    def validate(self) -> None:
        if not self.base_url.startswith(("http://", "https://")):
            raise ConfigError(f"server.base_url must be an http(s) URL, got {self.base_url!r}")
        if self.timeout <= 0 or self.connect_timeout <= 0:
            raise ConfigError("server timeouts must be positive")
        if self.progress_step <= 0:
            raise ConfigError("server.progress_step must be positive")


@dataclass
class ChunkingConfig:
    """Chunk planning and hashing configuration."""
    chunk_size: int = 5 * 1024 * 1024  # 5MB
    max_chunk_count: int = 100
    hash_read_size: int = 2 * 1024 * 1024  # 2MB

    def validate(self) -> None:
        if self.chunk_size <= 0:
            raise ConfigError("chunking.chunk_size must be positive")
        if self.max_chunk_count <= 0:
            raise ConfigError("chunking.max_chunk_count must be positive")
        if self.hash_read_size <= 0:
            raise ConfigError("chunking.hash_read_size must be positive")


@dataclass
class TransferConfig:
    """Transfer scheduling configuration."""
    concurrency: int = 3
    retry_base_delay: float = 0.0
    retry_max_delay: float = 30.0
    max_attempts: Optional[int] = None

    def validate(self) -> None:
        if self.concurrency <= 0:
            raise ConfigError("transfer.concurrency must be positive")
        if self.retry_base_delay < 0 or self.retry_max_delay < 0:
            raise ConfigError("transfer retry delays must not be negative")
        if self.max_attempts is not None and self.max_attempts <= 0:
            raise ConfigError("transfer.max_attempts must be positive when set")


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_directory: str = "logs"
    max_file_size: str = "10 MB"
    backup_count: int = 5
    console_enabled: bool = True
    file_enabled: bool = False

    def validate(self) -> None:
        if self.level.upper() not in ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigError(f"Unknown log level: {self.level}")


@dataclass
class UploaderConfig:
    """Main uploader configuration."""

    debug: bool = False
    """Force DEBUG logging regardless of logging.level."""

    server: ServerConfig = field(default_factory=ServerConfig)
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    transfer: TransferConfig = field(default_factory=TransferConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    config_file_path: Optional[str] = None

    def validate(self) -> None:
        """Validate every section, raising ConfigError on the first problem."""
        self.server.validate()
        self.chunking.validate()
        self.transfer.validate()
        self.logging.validate()

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        result = asdict(self)
        result.pop('config_file_path', None)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UploaderConfig':
        """Create configuration from dictionary."""
        try:
            server_config = ServerConfig(**data.get('server', {}))
            chunking_config = ChunkingConfig(**data.get('chunking', {}))
            transfer_config = TransferConfig(**data.get('transfer', {}))
            logging_config = LoggingConfig(**data.get('logging', {}))
        except TypeError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        config = cls(
            debug=data.get('debug', False),
            server=server_config,
            chunking=chunking_config,
            transfer=transfer_config,
            logging=logging_config,
            config_file_path=data.get('config_file_path')
        )
        config.validate()
        return config
