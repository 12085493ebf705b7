"""
Configuration models and loading.
"""

from .models import UploaderConfig, ServerConfig, ChunkingConfig, TransferConfig, LoggingConfig
from .loader import ConfigLoader

__all__ = [
    "UploaderConfig",
    "ServerConfig",
    "ChunkingConfig",
    "TransferConfig",
    "LoggingConfig",
    "ConfigLoader",
]
