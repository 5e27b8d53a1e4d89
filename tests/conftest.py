"""Pytest fixtures for files.fm uploader tests."""
import os
from pathlib import Path

import pytest

from filesfm_uploader.config import Credentials, Settings
from filesfm_uploader.errors import FolderCreateError, UploadError
from filesfm_uploader.models import RemoteFolder


class FakeRemoteClient:
    """In-memory remote client that records every call in order."""

    def __init__(self, fail_folders=(), fail_files=(), edit_key_only=False):
        self.calls = []
        self.fail_folders = set(fail_folders)
        self.fail_files = set(fail_files)
        self.edit_key_only = edit_key_only
        self.on_upload = None
        self.closed = False
        self._created = 0

    @property
    def created(self):
        return [c for c in self.calls if c[0] == "create"]

    @property
    def uploaded(self):
        return [c for c in self.calls if c[0] == "upload"]

    async def create_folder(self, name, parent_hash, credentials):
        self.calls.append(("create", name, parent_hash))
        if name in self.fail_folders:
            raise FolderCreateError(f"Creating folder '{name}' failed: simulated")
        self._created += 1
        folder_hash = f"{name}{self._created:03d}"
        if self.edit_key_only:
            return RemoteFolder(hash=folder_hash, edit_key=f"edit-{name}")
        return RemoteFolder(hash=folder_hash, add_key=f"add-{name}")

    async def upload_file(self, local_path, folder_hash, key, want_hash=False):
        name = Path(local_path).name
        self.calls.append(("upload", name, folder_hash, key))
        if self.on_upload is not None:
            self.on_upload(name)
        if name in self.fail_files:
            raise UploadError(f"Upload of {name} failed: simulated network error")
        if want_hash:
            return f"h{len(self.calls):05d}"
        return "d"

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_client():
    return FakeRemoteClient()


@pytest.fixture
def credentials():
    return Credentials(username="alice", password="secret")


@pytest.fixture
def settings(credentials):
    return Settings(
        credentials=credentials,
        base_folder_hash="base001",
        folder_key="basekey",
        api_host="https://api.test",
    )


@pytest.fixture
def make_tree(tmp_path):
    """Create files from a list of relative paths; entries ending in "/" are empty folders."""

    def _make(root_name, paths):
        root = tmp_path / root_name
        root.mkdir()
        for rel in paths:
            target = root / rel
            if rel.endswith("/"):
                target.mkdir(parents=True, exist_ok=True)
            else:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(f"content of {rel}")
        return root

    return _make


@pytest.fixture
def deny_listing(monkeypatch):
    """Directory names added to the returned set can't be listed with os.scandir."""
    real_scandir = os.scandir
    denied = set()

    def scandir(path="."):
        if Path(path).name in denied:
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", scandir)
    return denied
