"""
Data models for the files.fm uploader.

Contains remote folder identities, local tree snapshots, upload results and
the status records used to track background uploads.
"""

import asyncio
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Alphanumeric content hash returned by the save endpoint when requested
FILE_HASH_PATTERN = re.compile(r"^[a-zA-Z0-9]{6,}$")

# Literal body returned by the save endpoint on plain success
ACKNOWLEDGEMENT = "d"


@dataclass(frozen=True)
class RemoteFolder:
    """A folder on the remote service and the keys needed to write into it."""

    hash: str
    add_key: str | None = None
    edit_key: str | None = None

    @property
    def upload_key(self) -> str | None:
        """Key presented when uploading into this folder."""
        return self.add_key or self.edit_key


@dataclass(frozen=True)
class LocalEntry:
    """Read-only snapshot of a local file or directory."""

    path: Path
    is_dir: bool
    size: int = 0
    children: tuple["LocalEntry", ...] = ()
    # Set when the entry could not be read while scanning
    error: str | None = None

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def files(self) -> list["LocalEntry"]:
        return sorted((c for c in self.children if not c.is_dir), key=lambda c: c.name)

    @property
    def directories(self) -> list["LocalEntry"]:
        return sorted((c for c in self.children if c.is_dir), key=lambda c: c.name)

    @property
    def file_count(self) -> int:
        if not self.is_dir:
            return 1
        return sum(child.file_count for child in self.children)


def scan_local_tree(path: Path) -> LocalEntry:
    """
    Take a snapshot of a local file or directory tree.

    Symlinked directories are not followed. A child that cannot be read
    while scanning stays in the snapshot with its error set, so the upload
    can report it.

    Raises:
        OSError: If the root itself cannot be read
    """
    path = Path(path).absolute()
    if not path.is_dir():
        return LocalEntry(path=path, is_dir=False, size=path.stat().st_size)

    children: list[LocalEntry] = []
    with os.scandir(path) as entries:
        for entry in entries:
            child_path = Path(entry.path)
            is_dir = False
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                if is_dir:
                    children.append(scan_local_tree(child_path))
                elif entry.is_file():
                    children.append(
                        LocalEntry(path=child_path, is_dir=False, size=entry.stat().st_size)
                    )
            except OSError as e:
                error = f"Cannot read {child_path}: {e}"
                children.append(LocalEntry(path=child_path, is_dir=is_dir, error=error))

    return LocalEntry(path=path, is_dir=True, children=tuple(children))


@dataclass(frozen=True)
class UploadTask:
    """One file bound to the remote folder it uploads into."""

    entry: LocalEntry
    folder: RemoteFolder

    @property
    def key(self) -> str | None:
        return self.folder.upload_key


@dataclass(frozen=True)
class FailureRecord:
    """A failed file, folder or run, with the reason."""

    local_path: str
    error: str
    kind: str = "file"  # file, folder, run


@dataclass
class UploadResult:
    """Aggregate outcome of one top-level upload invocation."""

    files_attempted: int = 0
    files_succeeded: int = 0
    hashes: list[tuple[str, str]] | None = None
    failures: list[FailureRecord] = field(default_factory=list)
    folders_created: int = 0
    cancelled: bool = False
    # Acknowledgement or hash returned for a single file upload
    identifier: str | None = None

    @property
    def success(self) -> bool:
        return not self.failures and not self.cancelled

    @property
    def files_failed(self) -> int:
        return self.files_attempted - self.files_succeeded

    @property
    def file_failures(self) -> list[FailureRecord]:
        return [f for f in self.failures if f.kind == "file"]

    @property
    def folder_failures(self) -> list[FailureRecord]:
        return [f for f in self.failures if f.kind == "folder"]

    def record_success(self, local_path: str, identifier: str) -> None:
        self.files_attempted += 1
        self.files_succeeded += 1
        if self.hashes is not None:
            self.hashes.append((local_path, identifier))

    def record_failure(self, local_path: str, error: str, kind: str = "file") -> None:
        if kind == "file":
            self.files_attempted += 1
        self.failures.append(FailureRecord(local_path=local_path, error=error, kind=kind))

    @classmethod
    def aborted(cls, local_path: str, error: str) -> "UploadResult":
        """Result of a run that failed before any work was done."""
        result = cls()
        result.record_failure(local_path, error, kind="run")
        return result

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "files_attempted": self.files_attempted,
            "files_succeeded": self.files_succeeded,
            "files_failed": self.files_failed,
            "folders_created": self.folders_created,
            "failures": [
                {"local_path": f.local_path, "error": f.error, "kind": f.kind}
                for f in self.failures
            ],
        }
        if self.hashes is not None:
            data["hashes"] = [{"local_path": p, "hash": h} for p, h in self.hashes]
        if self.identifier is not None:
            data["identifier"] = self.identifier
        if self.cancelled:
            data["cancelled"] = True
        return data


# Classified responses of the save endpoint


@dataclass(frozen=True)
class Acknowledged:
    """Plain success; the service returned the literal acknowledgement."""

    identifier: str = ACKNOWLEDGEMENT


@dataclass(frozen=True)
class HashReturned:
    """Success with the content hash of the stored file."""

    file_hash: str

    @property
    def identifier(self) -> str:
        return self.file_hash


@dataclass(frozen=True)
class Malformed:
    """A 2xx response whose body is not an acknowledgement or a hash."""

    raw_body: str


@dataclass(frozen=True)
class HttpError:
    """A non-success HTTP status."""

    status_code: int


UploadResponse = Acknowledged | HashReturned | Malformed | HttpError


def classify_upload_response(status_code: int, body: str) -> UploadResponse:
    """Classify a save endpoint response into one of the response variants."""
    if not 200 <= status_code < 300:
        return HttpError(status_code)

    text = body.strip()
    if text == ACKNOWLEDGEMENT:
        return Acknowledged()
    if FILE_HASH_PATTERN.match(text):
        return HashReturned(text)
    return Malformed(body)


@dataclass(frozen=True)
class RemoteEntry:
    """One item of a remote folder listing."""

    name: str
    hash: str
    size: int = 0
    is_folder: bool = False


@dataclass(frozen=True)
class LoginSession:
    """Session returned by the login call."""

    session_token: str
    base_folder_hash: str | None = None
    folder_key: str | None = None


@dataclass(frozen=True)
class ProgressEvent:
    """Progress of a tracked operation, counted in files."""

    activity: str
    total: int
    completed: int
    elapsed: float
    done: bool = False


@dataclass
class UploadJob:
    """Represents an active or completed background upload."""

    upload_id: str
    kind: str  # file, folder
    local_path: str
    remote_hash: str
    total_files: int = 0
    completed_files: int = 0
    status: str = "pending"  # pending, uploading, completed, error, cancelled
    error_message: str | None = None
    result: UploadResult | None = None
    task: asyncio.Task | None = field(default=None, repr=False)
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    @property
    def name(self) -> str:
        return Path(self.local_path).name

    @property
    def progress_percent(self) -> float:
        """Calculate upload progress as a percentage of files processed."""
        if self.total_files == 0:
            return 100.0 if self.status == "completed" else 0.0
        return (self.completed_files / self.total_files) * 100
