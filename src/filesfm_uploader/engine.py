"""
Recursive folder upload engine.

Mirrors a local directory tree onto the remote service: every local
directory gets a remote folder, every regular file is uploaded into the
folder of its own directory. Operations run strictly one at a time.
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path

from .client import RemoteClient, logger
from .config import Credentials
from .errors import ConfigurationError, FolderCreateError, TraversalError, UploadError
from .models import LocalEntry, RemoteFolder, UploadResult, UploadTask, scan_local_tree
from .path_mapper import PathMapper
from .progress import NullProgressSink, ProgressSink, ProgressTracker


@dataclass
class UploadContext:
    """State of one upload invocation, passed explicitly through the run."""

    credentials: Credentials
    base_folder: RemoteFolder
    path_mapper: PathMapper
    want_hashes: bool = False
    cancel_event: asyncio.Event | None = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


class FolderUploadEngine:
    """
    Uploads single files and whole folder trees.

    Failures of individual files are recorded and skipped. A folder that
    can't be created fails its whole subtree, but its siblings are still
    processed. Only missing configuration or a missing root aborts a run.
    """

    def __init__(self, client: RemoteClient, progress: ProgressSink | None = None):
        self._client = client
        self._progress = progress or NullProgressSink()

    async def upload_single_file(
        self,
        local_path: str | Path,
        folder_hash: str,
        folder_key: str,
        want_hash: bool = False,
    ) -> UploadResult:
        """
        Upload one file directly into a known folder.

        No folders are created; the given folder hash and key are used as is.

        Args:
            local_path: Local path to the file
            folder_hash: Target folder hash
            folder_key: Add key (or edit key) of the target folder
            want_hash: Record the content hash returned by the service

        Returns:
            UploadResult for the single file
        """
        local_path = Path(local_path).absolute()

        with ProgressTracker(self._progress, f"Uploading {local_path.name}", total=1) as tracker:
            if not folder_hash or not folder_key:
                logger.error("Upload aborted: target folder hash and key are required")
                return UploadResult.aborted(
                    str(local_path), "Target folder hash and key are required"
                )
            if not local_path.is_file():
                logger.error(f"Upload aborted: file not found: {local_path}")
                return UploadResult.aborted(str(local_path), f"File not found: {local_path}")

            result = UploadResult(hashes=[] if want_hash else None)
            entry = LocalEntry(path=local_path, is_dir=False, size=local_path.stat().st_size)
            folder = RemoteFolder(hash=folder_hash, add_key=folder_key)

            result.identifier = await self._upload_one(
                UploadTask(entry=entry, folder=folder), want_hash, result, tracker
            )

        return result

    async def upload_folder_recursive(
        self,
        local_root: str | Path,
        remote_parent_hash: str,
        credentials: Credentials,
        want_hashes: bool = False,
        path_mapper: PathMapper | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> UploadResult:
        """
        Upload a local folder, including subfolders, under a remote folder.

        A remote folder named after the local root is created inside the
        remote parent, and the local structure is mirrored beneath it.

        Args:
            local_root: Local folder to upload
            remote_parent_hash: Hash of the remote folder to upload into
            credentials: Account credentials for folder creation
            want_hashes: Record the content hash of every uploaded file
            path_mapper: Mapper to reuse folders created by an earlier run
            cancel_event: When set, no new operations are started

        Returns:
            UploadResult covering every file and folder of the tree
        """
        local_root = Path(local_root).absolute()

        with ProgressTracker(
            self._progress, f"Uploading folder {local_root.name}", total=0
        ) as tracker:
            try:
                if not remote_parent_hash:
                    raise ConfigurationError("Remote parent folder hash is required")
                if not credentials.username or not credentials.password:
                    raise ConfigurationError("Username and password are required")
                if not local_root.is_dir():
                    raise TraversalError(f"Folder not found: {local_root}")
                root = scan_local_tree(local_root)
            except (ConfigurationError, TraversalError) as e:
                logger.error(f"Folder upload aborted: {e}")
                return UploadResult.aborted(str(local_root), str(e))
            except OSError as e:
                logger.error(f"Folder upload aborted: cannot read {local_root}: {e}")
                return UploadResult.aborted(str(local_root), f"Cannot read {local_root}: {e}")

            tracker.total = root.file_count
            context = UploadContext(
                credentials=credentials,
                base_folder=RemoteFolder(hash=remote_parent_hash),
                path_mapper=path_mapper if path_mapper is not None else PathMapper(self._client),
                want_hashes=want_hashes,
                cancel_event=cancel_event,
            )
            result = UploadResult(hashes=[] if want_hashes else None)

            logger.info(
                f"Uploading folder {local_root} ({tracker.total} files) "
                f"into {remote_parent_hash}"
            )
            await self._upload_directory(root, context.base_folder, context, result, tracker)

        if result.cancelled:
            logger.warning(
                f"Folder upload of {local_root.name} cancelled: "
                f"{result.files_succeeded}/{tracker.total} files uploaded"
            )
        elif result.success:
            logger.info(
                f"Folder upload of {local_root.name} completed: "
                f"{result.files_succeeded} uploaded, {result.folders_created} folders created"
            )
        else:
            logger.warning(
                f"Folder upload of {local_root.name} completed with errors: "
                f"{result.files_succeeded} uploaded, {result.files_failed} failed, "
                f"{len(result.folder_failures)} folders failed"
            )
        return result

    async def _upload_directory(
        self,
        entry: LocalEntry,
        parent: RemoteFolder,
        context: UploadContext,
        result: UploadResult,
        tracker: ProgressTracker,
    ) -> None:
        """Upload one directory level, then recurse into its subdirectories."""
        if context.cancelled:
            result.cancelled = True
            return

        try:
            if entry.error:
                raise TraversalError(entry.error)
            if not entry.path.is_dir():
                raise TraversalError(f"Folder vanished: {entry.path}")
            existed = entry.path in context.path_mapper
            folder = await context.path_mapper.resolve(entry.path, parent, context.credentials)
        except (FolderCreateError, TraversalError) as e:
            # Nothing below this directory can be uploaded
            result.record_failure(str(entry.path), str(e), kind="folder")
            logger.error(f"Skipping {entry.path}: {e}")
            tracker.advance(f"Failed to create folder {entry.name}", count=entry.file_count)
            return

        if not existed:
            result.folders_created += 1

        for file_entry in entry.files:
            if context.cancelled:
                result.cancelled = True
                return
            task = UploadTask(entry=file_entry, folder=folder)
            await self._upload_one(task, context.want_hashes, result, tracker)

        for child in entry.directories:
            await self._upload_directory(child, folder, context, result, tracker)
            if result.cancelled:
                return

    async def _upload_one(
        self,
        task: UploadTask,
        want_hash: bool,
        result: UploadResult,
        tracker: ProgressTracker,
    ) -> str | None:
        """Upload one file and record the outcome; returns the identifier on success."""
        path = task.entry.path
        try:
            if task.entry.error:
                raise TraversalError(task.entry.error)
            if not path.is_file():
                raise TraversalError(f"File vanished: {path}")
            identifier = await self._client.upload_file(
                path, task.folder.hash, task.key, want_hash=want_hash
            )
        except (UploadError, TraversalError) as e:
            result.record_failure(str(path), str(e))
            logger.error(f"Failed to upload {path}: {e}")
            tracker.advance(f"Failed {path.name}")
            return None

        result.record_success(str(path), identifier)
        logger.debug(f"Uploaded: {path} -> {task.folder.hash}")
        tracker.advance(f"Uploaded {path.name}")
        return identifier
