"""
files.fm uploader

Uploads local files and folder trees to files.fm, mirroring the local
directory structure remotely, and exposes the uploads as MCP tools.
"""

from .client import FilesFmClient
from .config import Credentials, Settings, load_settings
from .engine import FolderUploadEngine, UploadContext
from .errors import (
    ConfigurationError,
    FilesFmError,
    FolderCreateError,
    ListFolderError,
    LoginError,
    TraversalError,
    UploadError,
)
from .models import RemoteFolder, UploadResult
from .path_mapper import PathMapper


def main():
    """Main entry point for the package."""
    from .client import logger
    from .server import mcp

    logger.info("Starting files.fm uploader MCP server...")
    mcp.run()


__all__ = [
    "main",
    "ConfigurationError",
    "Credentials",
    "FilesFmClient",
    "FilesFmError",
    "FolderCreateError",
    "FolderUploadEngine",
    "ListFolderError",
    "LoginError",
    "PathMapper",
    "RemoteFolder",
    "Settings",
    "TraversalError",
    "UploadContext",
    "UploadError",
    "UploadResult",
    "load_settings",
]
