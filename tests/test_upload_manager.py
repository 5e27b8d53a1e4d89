"""Tests for background uploads and the MCP tools."""
import pytest

from conftest import FakeRemoteClient
from filesfm_uploader.errors import ConfigurationError, TraversalError
from filesfm_uploader.progress import ProgressTracker
from filesfm_uploader.upload_manager import UploadManager


@pytest.fixture
def manager_with_client(settings):
    client = FakeRemoteClient()
    manager = UploadManager(
        settings_loader=lambda: settings,
        client_factory=lambda s: client,
    )
    return manager, client


class TestUploadManager:

    @pytest.mark.asyncio
    async def test_folder_upload_completes(self, manager_with_client, make_tree):
        manager, client = manager_with_client
        root = make_tree("root", ["a.txt", "sub/b.txt"])

        job = await manager.start_folder_upload(str(root), want_hashes=True)
        await job.task

        assert job.status == "completed"
        assert job.remote_hash == "base001"
        assert job.total_files == 2
        assert job.completed_files == 2
        assert job.progress_percent == 100.0
        assert job.result.success is True
        assert len(job.result.hashes) == 2
        assert client.created[0] == ("create", "root", "base001")
        assert client.closed is True

    @pytest.mark.asyncio
    async def test_file_upload_uses_configured_folder(self, manager_with_client, make_tree):
        manager, client = manager_with_client
        root = make_tree("root", ["a.txt"])

        job = await manager.start_upload(str(root / "a.txt"))
        await job.task

        assert job.status == "completed"
        assert client.calls == [("upload", "a.txt", "base001", "basekey")]

    @pytest.mark.asyncio
    async def test_partial_failure(self, settings, make_tree):
        client = FakeRemoteClient(fail_files={"b.txt"})
        manager = UploadManager(lambda: settings, lambda s: client)
        root = make_tree("root", ["a.txt", "b.txt"])

        job = await manager.start_folder_upload(str(root))
        await job.task

        assert job.status == "completed"
        assert job.result.success is False
        assert "1 files" in job.error_message

    @pytest.mark.asyncio
    async def test_missing_folder(self, manager_with_client, tmp_path):
        manager, _ = manager_with_client

        with pytest.raises(TraversalError):
            await manager.start_folder_upload(str(tmp_path / "missing"))
        assert manager.list_uploads() == []

    @pytest.mark.asyncio
    async def test_configuration_error(self, tmp_path):
        def broken():
            raise ConfigurationError("Missing configuration: FILESFM_USERNAME")

        manager = UploadManager(settings_loader=broken)

        with pytest.raises(ConfigurationError):
            await manager.start_folder_upload(str(tmp_path))

    @pytest.mark.asyncio
    async def test_cancel_folder_upload(self, manager_with_client, make_tree):
        manager, client = manager_with_client
        root = make_tree("root", ["a.txt", "b.txt", "c.txt"])

        job = await manager.start_folder_upload(str(root))
        client.on_upload = lambda name: manager.cancel_upload(job.upload_id)
        await job.task

        assert job.status == "cancelled"
        assert job.result.cancelled is True
        assert [c[1] for c in client.uploaded] == ["a.txt"]
        assert manager.cancel_upload(job.upload_id) is False

    @pytest.mark.asyncio
    async def test_clear_completed(self, manager_with_client, make_tree):
        manager, _ = manager_with_client
        root = make_tree("root", ["a.txt"])

        job = await manager.start_folder_upload(str(root))
        await job.task

        assert manager.clear_completed() == 1
        assert manager.get_upload(job.upload_id) is None


class TestProgressTracker:

    def test_finish_only_once(self):
        events = []

        class Sink:
            def emit(self, event):
                events.append(event)

        with ProgressTracker(Sink(), "Uploading", total=2) as tracker:
            tracker.advance("one")
            tracker.finish()

        assert [e.done for e in events] == [False, True]
        assert events[-1].activity == "Uploading"


class TestServerTools:

    @pytest.fixture
    def server(self, monkeypatch, manager_with_client):
        from filesfm_uploader import server

        manager, _ = manager_with_client
        monkeypatch.setattr(server, "upload_manager", manager)
        return server

    @pytest.mark.asyncio
    async def test_upload_folder_and_status(self, server, make_tree):
        root = make_tree("root", ["a.txt", "sub/b.txt"])

        started = await server.upload_folder(str(root), return_hashes=True)
        job = server.upload_manager.get_upload(started["upload_id"])
        await job.task
        status = await server.get_upload_status(started["upload_id"])

        assert started["type"] == "folder"
        assert status["status"] == "completed"
        assert status["result"]["success"] is True
        assert len(status["result"]["hashes"]) == 2

    @pytest.mark.asyncio
    async def test_upload_file_not_found(self, server, tmp_path):
        result = await server.upload_file(str(tmp_path / "missing.txt"))
        assert "error" in result

    @pytest.mark.asyncio
    async def test_unknown_upload(self, server):
        status = await server.get_upload_status("nope")
        cancelled = await server.cancel_upload("nope")

        assert "not found" in status["error"]
        assert cancelled["success"] is False

    @pytest.mark.asyncio
    async def test_list_uploads(self, server, make_tree):
        root = make_tree("root", ["a.txt"])
        started = await server.upload_file(str(root / "a.txt"))
        await server.upload_manager.get_upload(started["upload_id"]).task

        listing = await server.list_uploads()

        assert listing["total_count"] == 1
        assert listing["status_counts"] == {"completed": 1}
        assert listing["uploads"][0]["files"] == "1/1"
