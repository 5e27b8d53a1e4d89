"""
Upload manager for the files.fm uploader.

Runs file and folder uploads in the background and keeps their status.
"""

import asyncio
import uuid
from pathlib import Path
from typing import Callable

from .client import FilesFmClient, logger
from .config import Settings, load_settings
from .engine import FolderUploadEngine
from .errors import TraversalError
from .models import ProgressEvent, UploadJob, UploadResult


class JobProgressSink:
    """Mirrors engine progress onto an upload job."""

    def __init__(self, job: UploadJob):
        self._job = job

    def emit(self, event: ProgressEvent) -> None:
        self._job.total_files = event.total
        self._job.completed_files = event.completed


class UploadManager:
    """
    Manages background uploads from the local system to files.fm.

    Settings are loaded for every upload, so each run gets its own
    credentials, client and folder cache.
    """

    def __init__(
        self,
        settings_loader: Callable[[], Settings] = load_settings,
        client_factory: Callable[[Settings], FilesFmClient] = FilesFmClient.from_settings,
    ):
        self._settings_loader = settings_loader
        self._client_factory = client_factory
        self._uploads: dict[str, UploadJob] = {}

    def get_upload(self, upload_id: str) -> UploadJob | None:
        """Get an upload job by ID."""
        return self._uploads.get(upload_id)

    def list_uploads(self) -> list[UploadJob]:
        """List all upload jobs."""
        return list(self._uploads.values())

    async def start_upload(
        self,
        local_path: str,
        folder_hash: str | None = None,
        folder_key: str | None = None,
        want_hash: bool = False,
    ) -> UploadJob:
        """
        Start a background upload of a single file.

        Args:
            local_path: Local path to the file to upload
            folder_hash: Target folder hash (defaults to the configured base folder)
            folder_key: Key of the target folder (defaults to the configured key)
            want_hash: Ask the service for the file's content hash

        Returns:
            UploadJob with upload_id for tracking progress

        Raises:
            ConfigurationError: If the settings are incomplete
            TraversalError: If the file doesn't exist
        """
        settings = self._settings_loader()

        local_file = Path(local_path)
        if not local_file.exists():
            raise TraversalError(f"File not found: {local_path}")
        if not local_file.is_file():
            raise TraversalError(f"Not a file: {local_path}")

        job = UploadJob(
            upload_id=f"upload-{str(uuid.uuid4())[:8]}",
            kind="file",
            local_path=str(local_file.absolute()),
            remote_hash=folder_hash or settings.base_folder_hash,
            total_files=1,
        )
        self._uploads[job.upload_id] = job

        job.task = asyncio.create_task(
            self._run_file_upload(job, settings, folder_key or settings.folder_key, want_hash)
        )

        logger.info(f"Started upload {job.upload_id}: {job.name} -> {job.remote_hash}")
        return job

    async def start_folder_upload(
        self,
        local_path: str,
        parent_hash: str | None = None,
        want_hashes: bool = False,
    ) -> UploadJob:
        """
        Start a background upload of an entire folder.

        Args:
            local_path: Local path to the folder to upload
            parent_hash: Remote folder to upload into (defaults to the base folder)
            want_hashes: Record the content hash of every uploaded file

        Returns:
            UploadJob with upload_id for tracking progress

        Raises:
            ConfigurationError: If the settings are incomplete
            TraversalError: If the folder doesn't exist
        """
        settings = self._settings_loader()

        local_folder = Path(local_path)
        if not local_folder.exists():
            raise TraversalError(f"Folder not found: {local_path}")
        if not local_folder.is_dir():
            raise TraversalError(f"Not a folder: {local_path}")

        job = UploadJob(
            upload_id=f"folder-upload-{str(uuid.uuid4())[:8]}",
            kind="folder",
            local_path=str(local_folder.absolute()),
            remote_hash=parent_hash or settings.base_folder_hash,
        )
        self._uploads[job.upload_id] = job

        job.task = asyncio.create_task(self._run_folder_upload(job, settings, want_hashes))

        logger.info(f"Started folder upload {job.upload_id}: {job.name} -> {job.remote_hash}")
        return job

    async def _run_file_upload(
        self, job: UploadJob, settings: Settings, folder_key: str, want_hash: bool
    ) -> None:
        """Background coroutine that performs a single file upload."""
        job.status = "uploading"
        client = self._client_factory(settings)

        try:
            engine = FolderUploadEngine(client, JobProgressSink(job))
            result = await engine.upload_single_file(
                job.local_path, job.remote_hash, folder_key, want_hash=want_hash
            )
            self._finish(job, result)
        except Exception as e:
            job.status = "error"
            job.error_message = str(e)
            logger.error(f"Upload {job.upload_id} failed: {e}")
        finally:
            await client.close()

    async def _run_folder_upload(
        self, job: UploadJob, settings: Settings, want_hashes: bool
    ) -> None:
        """Background coroutine that uploads a folder tree."""
        job.status = "uploading"
        client = self._client_factory(settings)

        try:
            engine = FolderUploadEngine(client, JobProgressSink(job))
            result = await engine.upload_folder_recursive(
                job.local_path,
                job.remote_hash,
                settings.credentials,
                want_hashes=want_hashes,
                cancel_event=job.cancel_event,
            )
            self._finish(job, result)
        except Exception as e:
            job.status = "error"
            job.error_message = str(e)
            logger.error(f"Folder upload {job.upload_id} failed: {e}")
        finally:
            await client.close()

    def _finish(self, job: UploadJob, result: UploadResult) -> None:
        job.result = result

        if result.cancelled:
            job.status = "cancelled"
            job.error_message = "Cancelled by user"
        elif any(f.kind == "run" for f in result.failures):
            job.status = "error"
            job.error_message = result.failures[0].error
        else:
            job.status = "completed"
            if not result.success:
                job.error_message = (
                    f"{result.files_failed} files and "
                    f"{len(result.folder_failures)} folders failed to upload"
                )

        logger.info(
            f"Upload {job.upload_id} {job.status}: "
            f"{result.files_succeeded}/{result.files_attempted} files uploaded"
        )

    def cancel_upload(self, upload_id: str) -> bool:
        """
        Cancel a running upload.

        Folder uploads stop before their next file or folder and keep what was
        uploaded so far; a single file upload is cancelled immediately.
        """
        job = self._uploads.get(upload_id)
        if job is None or job.task is None or job.task.done():
            return False

        if job.kind == "folder":
            job.cancel_event.set()
        else:
            job.task.cancel()
            job.status = "cancelled"
            job.error_message = "Cancelled by user"
        logger.info(f"Upload {upload_id} cancelled")
        return True

    def clear_completed(self) -> int:
        """Remove finished uploads from the list."""
        to_remove = [
            uid for uid, job in self._uploads.items()
            if job.status in ("completed", "error", "cancelled")
        ]
        for uid in to_remove:
            del self._uploads[uid]
        return len(to_remove)


# Global upload manager instance
upload_manager = UploadManager()
