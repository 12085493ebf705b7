"""
Application layer: wiring the upload engine from configuration.
"""

from .uploader import create_session, upload_file

__all__ = [
    "create_session",
    "upload_file",
]
