"""
files.fm uploader MCP server - Tool definitions.

This module defines the MCP tools for uploading to files.fm.
"""

from typing import Any

from mcp.server.fastmcp import FastMCP

from .client import FilesFmClient, logger
from .config import load_settings
from .errors import FilesFmError
from .models import UploadJob
from .upload_manager import upload_manager

# Initialize the MCP server
mcp = FastMCP("filesfm-uploader")


def _job_summary(job: UploadJob) -> dict[str, Any]:
    summary: dict[str, Any] = {
        "upload_id": job.upload_id,
        "type": job.kind,
        "name": job.name,
        "local_path": job.local_path,
        "remote_hash": job.remote_hash,
        "status": job.status,
        "completed_files": job.completed_files,
        "total_files": job.total_files,
        "progress_percent": round(job.progress_percent, 1),
    }
    if job.error_message:
        summary["error_message"] = job.error_message
    return summary


@mcp.tool()
async def upload_file(
    local_path: str,
    folder_hash: str | None = None,
    folder_key: str | None = None,
    return_hash: bool = False,
) -> dict[str, Any]:
    """
    Upload a single file from the local system to files.fm.

    The upload runs in the background. No folders are created; the file goes
    straight into the target folder.

    Args:
        local_path: Local path to the file to upload
        folder_hash: Target folder hash (defaults to the configured base folder)
        folder_key: Add key of the target folder (defaults to the configured key)
        return_hash: If True, record the content hash returned by files.fm

    Returns:
        Dictionary with upload_id and initial status information
    """
    try:
        job = await upload_manager.start_upload(
            local_path=local_path,
            folder_hash=folder_hash,
            folder_key=folder_key,
            want_hash=return_hash,
        )
    except FilesFmError as e:
        return {"error": str(e)}

    return {
        **_job_summary(job),
        "message": f"Upload started. Use get_upload_status('{job.upload_id}') to check progress.",
    }


@mcp.tool()
async def upload_folder(
    local_path: str,
    parent_hash: str | None = None,
    return_hashes: bool = False,
) -> dict[str, Any]:
    """
    Upload an entire folder from the local system to files.fm.

    A remote folder is created for the local folder and for each of its
    subfolders, preserving the directory structure. The upload runs in the
    background.

    Args:
        local_path: Local path to the folder to upload
        parent_hash: Remote folder to create the new folder in (defaults to the base folder)
        return_hashes: If True, record the content hash of every uploaded file

    Returns:
        Dictionary with upload_id and initial status information
    """
    try:
        job = await upload_manager.start_folder_upload(
            local_path=local_path,
            parent_hash=parent_hash,
            want_hashes=return_hashes,
        )
    except FilesFmError as e:
        return {"error": str(e)}

    return {
        **_job_summary(job),
        "message": f"Folder upload started. Use get_upload_status('{job.upload_id}') to check progress.",
    }


@mcp.tool()
async def get_upload_status(upload_id: str) -> dict[str, Any]:
    """
    Get the status and progress of an upload (file or folder).

    Once the upload has finished, the result lists every failed file or
    folder and, if requested, the content hash of every uploaded file.

    Args:
        upload_id: The upload ID returned from upload_file or upload_folder

    Returns:
        Dictionary with current upload status, progress, and the result
    """
    job = upload_manager.get_upload(upload_id)

    if job is None:
        return {
            "error": f"Upload '{upload_id}' not found",
            "available_uploads": [u.upload_id for u in upload_manager.list_uploads()],
        }

    status = _job_summary(job)
    if job.result is not None:
        status["result"] = job.result.to_dict()
    return status


@mcp.tool()
async def list_uploads() -> dict[str, Any]:
    """
    List all active and recent uploads with their status.

    Returns:
        Dictionary containing list of all uploads and summary statistics
    """
    uploads = upload_manager.list_uploads()

    upload_list = []
    for job in uploads:
        upload_list.append({
            "upload_id": job.upload_id,
            "type": job.kind,
            "name": job.name,
            "status": job.status,
            "progress_percent": round(job.progress_percent, 1),
            "files": f"{job.completed_files}/{job.total_files}",
        })

    # Count by status
    status_counts: dict[str, int] = {}
    for job in uploads:
        status_counts[job.status] = status_counts.get(job.status, 0) + 1

    return {
        "uploads": upload_list,
        "total_count": len(upload_list),
        "status_counts": status_counts,
    }


@mcp.tool()
async def cancel_upload(upload_id: str) -> dict[str, Any]:
    """
    Cancel an in-progress upload (file or folder).

    A folder upload stops before its next file or folder and keeps what was
    already uploaded.

    Args:
        upload_id: The upload ID to cancel

    Returns:
        Dictionary indicating success or failure
    """
    if upload_manager.cancel_upload(upload_id):
        return {
            "success": True,
            "message": f"Upload '{upload_id}' has been cancelled",
        }

    job = upload_manager.get_upload(upload_id)
    if job is not None:
        return {
            "success": False,
            "error": f"Upload '{upload_id}' is not running (status: {job.status})",
        }
    return {
        "success": False,
        "error": f"Upload '{upload_id}' not found",
    }


@mcp.tool()
async def list_folder(
    folder_hash: str | None = None,
    include_folders: bool = False,
) -> dict[str, Any]:
    """
    List the contents of a folder on files.fm.

    Args:
        folder_hash: The folder hash to list (defaults to the configured base folder)
        include_folders: If True, include subfolders in the listing

    Returns:
        Dictionary containing the folder hash and its entries (name, hash, size)
    """
    try:
        settings = load_settings()
        folder_hash = folder_hash or settings.base_folder_hash
        async with FilesFmClient.from_settings(settings) as client:
            entries = await client.list_folder(folder_hash, include_folders=include_folders)
    except FilesFmError as e:
        logger.error(f"Listing folder failed: {e}")
        return {"error": str(e)}

    return {
        "folder_hash": folder_hash,
        "contents": [
            {"name": e.name, "hash": e.hash, "size": e.size, "is_folder": e.is_folder}
            for e in entries
        ],
        "count": len(entries),
    }


@mcp.tool()
async def login() -> dict[str, Any]:
    """
    Check the configured credentials by logging in to files.fm.

    Returns:
        Dictionary with the account's base folder hash, if the service returned one
    """
    try:
        settings = load_settings()
        async with FilesFmClient.from_settings(settings) as client:
            session = await client.login(settings.credentials)
    except FilesFmError as e:
        logger.error(f"Login failed: {e}")
        return {"success": False, "error": str(e)}

    return {
        "success": True,
        "username": settings.credentials.username,
        "base_folder_hash": session.base_folder_hash,
        "configured_base_folder_hash": settings.base_folder_hash,
    }
