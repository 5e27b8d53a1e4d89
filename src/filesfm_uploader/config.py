"""
Configuration for the files.fm uploader.

Settings come from environment variables, optionally layered over a JSON
settings file of the form {"Username", "Password", "BaseFolderHash", "FolderKey"}.
Environment variables take precedence over the file.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from .errors import ConfigurationError

DEFAULT_API_HOST = "https://api.files.fm"

# Access type flag sent when creating folders
ACCESS_TYPES = ("LINK", "PRIVATE")

# Uploads of large files can take minutes; other calls are short
REQUEST_TIMEOUT = 30.0
UPLOAD_TIMEOUT = 600.0

# Environment variable -> key in the JSON settings file
ENV_TO_FILE_KEYS = {
    "FILESFM_USERNAME": "Username",
    "FILESFM_PASSWORD": "Password",
    "FILESFM_BASE_FOLDER_HASH": "BaseFolderHash",
    "FILESFM_FOLDER_KEY": "FolderKey",
}


@dataclass(frozen=True)
class Credentials:
    """Account credentials sent with folder creation and login calls."""

    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


@dataclass(frozen=True)
class Settings:
    """Everything needed to start an upload run."""

    credentials: Credentials
    base_folder_hash: str
    folder_key: str
    api_host: str = DEFAULT_API_HOST
    access_type: str = "LINK"
    request_timeout: float = REQUEST_TIMEOUT
    upload_timeout: float = UPLOAD_TIMEOUT


def read_settings_file(path: str | Path) -> dict[str, Any]:
    """Read the JSON settings file."""
    try:
        with open(path, encoding="utf-8-sig") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read settings file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Settings file {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {path} must contain a JSON object")
    return data


def load_settings(
    environ: Mapping[str, str] | None = None,
    config_path: str | Path | None = None,
) -> Settings:
    """
    Load settings from the environment and the optional settings file.

    Args:
        environ: Environment mapping (defaults to os.environ)
        config_path: JSON settings file (defaults to $FILESFM_CONFIG)

    Raises:
        ConfigurationError: If credentials or the base folder identity are incomplete
    """
    if environ is None:
        environ = os.environ
    if config_path is None:
        config_path = environ.get("FILESFM_CONFIG")

    file_values = read_settings_file(config_path) if config_path else {}

    values: dict[str, str] = {}
    for env_name, file_key in ENV_TO_FILE_KEYS.items():
        value = environ.get(env_name) or file_values.get(file_key) or ""
        values[env_name] = str(value).strip()

    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ConfigurationError(
            f"Missing configuration: {', '.join(missing)} "
            "(set the environment variables or FILESFM_CONFIG)"
        )

    access_type = environ.get("FILESFM_ACCESS_TYPE", "LINK").upper()
    if access_type not in ACCESS_TYPES:
        raise ConfigurationError(
            f"Invalid FILESFM_ACCESS_TYPE '{access_type}', must be LINK or PRIVATE"
        )

    api_host = environ.get("FILESFM_API_HOST", DEFAULT_API_HOST).rstrip("/")

    return Settings(
        credentials=Credentials(
            username=values["FILESFM_USERNAME"],
            password=values["FILESFM_PASSWORD"],
        ),
        base_folder_hash=values["FILESFM_BASE_FOLDER_HASH"],
        folder_key=values["FILESFM_FOLDER_KEY"],
        api_host=api_host,
        access_type=access_type,
    )
