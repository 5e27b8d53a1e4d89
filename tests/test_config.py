"""Tests for settings loading."""
import json

import pytest

from filesfm_uploader.config import DEFAULT_API_HOST, load_settings
from filesfm_uploader.errors import ConfigurationError

FULL_ENV = {
    "FILESFM_USERNAME": "alice",
    "FILESFM_PASSWORD": "secret",
    "FILESFM_BASE_FOLDER_HASH": "base001",
    "FILESFM_FOLDER_KEY": "basekey",
}


@pytest.fixture
def settings_file(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({
        "Username": "bob",
        "Password": "hunter2",
        "BaseFolderHash": "filebase",
        "FolderKey": "filekey",
    }))
    return path


class TestLoadSettings:

    def test_from_environment(self):
        settings = load_settings(environ=FULL_ENV)

        assert settings.credentials.username == "alice"
        assert settings.credentials.password == "secret"
        assert settings.base_folder_hash == "base001"
        assert settings.folder_key == "basekey"
        assert settings.api_host == DEFAULT_API_HOST
        assert settings.access_type == "LINK"

    def test_from_file(self, settings_file):
        settings = load_settings(environ={"FILESFM_CONFIG": str(settings_file)})

        assert settings.credentials.username == "bob"
        assert settings.base_folder_hash == "filebase"
        assert settings.folder_key == "filekey"

    def test_environment_overrides_file(self, settings_file):
        settings = load_settings(
            environ={"FILESFM_USERNAME": "alice"}, config_path=settings_file
        )

        assert settings.credentials.username == "alice"
        assert settings.credentials.password == "hunter2"

    def test_missing_values(self):
        env = dict(FULL_ENV, FILESFM_FOLDER_KEY="")

        with pytest.raises(ConfigurationError, match="FILESFM_FOLDER_KEY"):
            load_settings(environ=env)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError, match="not valid JSON"):
            load_settings(environ={}, config_path=path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot read"):
            load_settings(environ={}, config_path=tmp_path / "nope.json")

    def test_access_type(self):
        settings = load_settings(environ=dict(FULL_ENV, FILESFM_ACCESS_TYPE="private"))
        assert settings.access_type == "PRIVATE"

        with pytest.raises(ConfigurationError):
            load_settings(environ=dict(FULL_ENV, FILESFM_ACCESS_TYPE="PUBLIC"))

    def test_password_not_in_repr(self):
        settings = load_settings(environ=FULL_ENV)
        assert "secret" not in repr(settings)
