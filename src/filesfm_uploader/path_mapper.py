"""
Mapping from local directories to the remote folders created for them.
"""

import os
from pathlib import Path

from .client import RemoteClient, logger
from .config import Credentials
from .models import RemoteFolder


def _cache_key(path: str | Path) -> str:
    return os.path.abspath(path)


class PathMapper:
    """
    Resolves the remote folder a local directory uploads into.

    Each directory's folder is created at most once; later lookups are
    answered from the cache without a remote call. Entries are only added,
    never removed.
    """

    def __init__(self, client: RemoteClient):
        self._client = client
        # Cache for local directory -> remote folder to avoid re-creating folders
        self._folders: dict[str, RemoteFolder] = {}

    def __contains__(self, local_dir: str | Path) -> bool:
        return _cache_key(local_dir) in self._folders

    def __len__(self) -> int:
        return len(self._folders)

    def get(self, local_dir: str | Path) -> RemoteFolder | None:
        return self._folders.get(_cache_key(local_dir))

    def seed(self, local_dir: str | Path, folder: RemoteFolder) -> None:
        """Register a folder that already exists remotely."""
        self._folders[_cache_key(local_dir)] = folder

    async def resolve(
        self, local_dir: str | Path, parent: RemoteFolder, credentials: Credentials
    ) -> RemoteFolder:
        """
        Return the remote folder for a local directory, creating it if needed.

        Args:
            local_dir: The local directory
            parent: The remote folder the new folder is created in
            credentials: Account credentials for the create call

        Raises:
            FolderCreateError: If the folder has to be created and creation fails
        """
        key = _cache_key(local_dir)
        cached = self._folders.get(key)
        if cached is not None:
            logger.debug(f"Folder exists: {key} (hash: {cached.hash})")
            return cached

        folder = await self._client.create_folder(
            os.path.basename(key), parent.hash, credentials
        )
        self._folders[key] = folder
        return folder
