"""
files.fm API client and logging configuration.

Issues the login, folder creation, file upload and folder listing calls.
Every call is a single request; there is no retry logic here.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Protocol

import httpx

from .config import DEFAULT_API_HOST, REQUEST_TIMEOUT, UPLOAD_TIMEOUT, Credentials, Settings
from .errors import FolderCreateError, ListFolderError, LoginError, UploadError
from .models import (
    Acknowledged,
    HashReturned,
    HttpError,
    LoginSession,
    RemoteEntry,
    RemoteFolder,
    classify_upload_response,
)

# Configure logging to stderr (critical for MCP servers using stdio transport)
# stdout is reserved for JSON-RPC messages, so all logging must go to stderr
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)
logger = logging.getLogger("filesfm-uploader")

# httpx logs full request URLs at INFO
logging.getLogger("httpx").setLevel(logging.WARNING)

LOGIN_ENDPOINT = "/api_login.php"
CREATE_FOLDER_ENDPOINT = "/api_create_folder.php"
SAVE_FILE_ENDPOINT = "/save_file.php"
LIST_FOLDER_ENDPOINT = "/api_get_file_list.php"

SESSION_COOKIE = "PHPSESSID"


class RemoteClient(Protocol):
    """The remote operations the upload engine depends on."""

    async def create_folder(
        self, name: str, parent_hash: str, credentials: Credentials
    ) -> RemoteFolder:
        ...

    async def upload_file(
        self, local_path: Path, folder_hash: str, key: str, want_hash: bool = False
    ) -> str:
        ...


def parse_key_value_pairs(text: str) -> dict[str, str]:
    """
    Parse a semicolon-delimited "key=value" string.

    Pieces without an "=" (such as a leading "OK") are ignored.
    """
    pairs: dict[str, str] = {}
    for piece in text.split(";"):
        name, sep, value = piece.partition("=")
        if sep and name.strip():
            pairs[name.strip()] = value.strip()
    return pairs


class FilesFmClient:
    """
    Client for the files.fm HTTP API.

    Folders are identified by an opaque hash; writing into a folder needs its
    add key (or edit key). Both keys are returned when a folder is created.
    """

    def __init__(
        self,
        api_host: str = DEFAULT_API_HOST,
        access_type: str = "LINK",
        request_timeout: float = REQUEST_TIMEOUT,
        upload_timeout: float = UPLOAD_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self._api_host = api_host.rstrip("/")
        self._access_type = access_type
        self._request_timeout = request_timeout
        self._upload_timeout = upload_timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "FilesFmClient":
        return cls(
            api_host=settings.api_host,
            access_type=settings.access_type,
            request_timeout=settings.request_timeout,
            upload_timeout=settings.upload_timeout,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._request_timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "FilesFmClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def login(self, credentials: Credentials) -> LoginSession:
        """
        Log in and return the session token and the account's base folder.

        The response body is a semicolon-delimited list of key=value pairs;
        the session token is also set as a cookie on the HTTP client.

        Raises:
            LoginError: If the request fails or no session token is returned
        """
        client = await self._get_client()
        params = {"user": credentials.username, "pass": credentials.password}

        logger.info(f"Logging in as {credentials.username}")

        try:
            response = await client.post(f"{self._api_host}{LOGIN_ENDPOINT}", data=params)
        except httpx.HTTPError as e:
            raise LoginError(f"Login request failed: {e}") from e

        if response.is_error:
            raise LoginError(f"Login failed with HTTP {response.status_code}")

        pairs = parse_key_value_pairs(response.text)
        if "error" in pairs:
            raise LoginError(f"Login failed: {pairs['error']}")

        token = response.cookies.get(SESSION_COOKIE) or pairs.get(SESSION_COOKIE)
        if not token:
            raise LoginError("No session token returned from login")

        return LoginSession(
            session_token=token,
            base_folder_hash=pairs.get("hash"),
            folder_key=pairs.get("key"),
        )

    async def create_folder(
        self, name: str, parent_hash: str, credentials: Credentials
    ) -> RemoteFolder:
        """
        Create a folder under a parent folder.

        The service does not deduplicate by name; calling this twice creates
        two folders.

        Raises:
            FolderCreateError: On a network failure, an error status, or a
                response without a hash or without any key
        """
        client = await self._get_client()
        params = {
            "user": credentials.username,
            "pass": credentials.password,
            "folder_name": name,
            "parent_hash": parent_hash,
            "access_type": self._access_type,
        }

        logger.debug(f"Creating folder '{name}' under {parent_hash}")

        try:
            response = await client.post(
                f"{self._api_host}{CREATE_FOLDER_ENDPOINT}", data=params
            )
        except httpx.TimeoutException as e:
            raise FolderCreateError(f"Creating folder '{name}' timed out") from e
        except httpx.HTTPError as e:
            raise FolderCreateError(f"Creating folder '{name}' failed: {e}") from e

        if response.is_error:
            raise FolderCreateError(
                f"Creating folder '{name}' failed with HTTP {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise FolderCreateError(
                f"Creating folder '{name}' returned a non-JSON response"
            ) from e

        if not isinstance(data, dict):
            raise FolderCreateError(f"Creating folder '{name}' returned an unexpected payload")
        if data.get("error"):
            raise FolderCreateError(f"Creating folder '{name}' failed: {data['error']}")

        folder_hash = data.get("hash")
        add_key = data.get("add_key") or None
        edit_key = data.get("edit_key") or None
        if not folder_hash:
            raise FolderCreateError(f"Creating folder '{name}' returned no hash")
        if add_key is None and edit_key is None:
            raise FolderCreateError(f"Creating folder '{name}' returned no add_key or edit_key")

        logger.info(f"Created folder: {name} (hash: {folder_hash})")
        return RemoteFolder(hash=str(folder_hash), add_key=add_key, edit_key=edit_key)

    async def upload_file(
        self, local_path: Path, folder_hash: str, key: str, want_hash: bool = False
    ) -> str:
        """
        Upload a file into a folder using POST multipart/form-data.

        Args:
            local_path: Local path to the file
            folder_hash: Target folder hash
            key: The folder's add key (or edit key)
            want_hash: Ask the service to return the file's content hash

        Returns:
            "d" on plain success, or the content hash when want_hash is set

        Raises:
            UploadError: If the file can't be read, the request fails, or the
                response is neither an acknowledgement nor a hash
        """
        client = await self._get_client()
        local_path = Path(local_path)

        params = {"up_id": folder_hash, "key": key}
        if want_hash:
            params["get_file_hash"] = "1"

        try:
            with open(local_path, "rb") as f:
                files = {"file": (local_path.name, f, "application/octet-stream")}
                response = await client.post(
                    f"{self._api_host}{SAVE_FILE_ENDPOINT}",
                    params=params,
                    files=files,
                    timeout=self._upload_timeout,
                )
        except OSError as e:
            raise UploadError(f"Cannot read {local_path}: {e}") from e
        except httpx.TimeoutException as e:
            raise UploadError(f"Upload of {local_path.name} timed out") from e
        except httpx.HTTPError as e:
            raise UploadError(f"Upload of {local_path.name} failed: {e}") from e

        outcome = classify_upload_response(response.status_code, response.text)
        if isinstance(outcome, (Acknowledged, HashReturned)):
            return outcome.identifier
        if isinstance(outcome, HttpError):
            raise UploadError(
                f"Upload of {local_path.name} failed with HTTP {outcome.status_code}"
            )

        body = outcome.raw_body.strip()
        if not body:
            raise UploadError(f"Upload of {local_path.name} returned an empty response")
        raise UploadError(
            f"Upload of {local_path.name} returned an unexpected response: {body[:200]}"
        )

    async def list_folder(
        self, folder_hash: str, include_folders: bool = False
    ) -> list[RemoteEntry]:
        """
        List the contents of a remote folder.

        Raises:
            ListFolderError: If the request fails or the payload isn't a listing
        """
        client = await self._get_client()
        params: dict[str, Any] = {"hash": folder_hash}
        if include_folders:
            params["include_folders"] = 1

        try:
            response = await client.get(f"{self._api_host}{LIST_FOLDER_ENDPOINT}", params=params)
        except httpx.HTTPError as e:
            raise ListFolderError(f"Listing folder {folder_hash} failed: {e}") from e

        if response.is_error:
            raise ListFolderError(
                f"Listing folder {folder_hash} failed with HTTP {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ListFolderError(f"Listing folder {folder_hash} returned a non-JSON response") from e

        if isinstance(data, dict):
            if data.get("error"):
                raise ListFolderError(f"Listing folder {folder_hash} failed: {data['error']}")
            items = list(data.values())
        elif isinstance(data, list):
            items = data
        else:
            raise ListFolderError(f"Listing folder {folder_hash} returned an unexpected payload")

        entries = []
        for item in items:
            if not isinstance(item, dict) or "name" not in item or "hash" not in item:
                raise ListFolderError(f"Listing folder {folder_hash} returned a malformed entry")
            try:
                size = int(item.get("size") or 0)
            except (TypeError, ValueError) as e:
                raise ListFolderError(
                    f"Listing folder {folder_hash} returned a non-numeric size for {item['name']}"
                ) from e
            entries.append(
                RemoteEntry(
                    name=str(item["name"]),
                    hash=str(item["hash"]),
                    size=size,
                    is_folder=bool(item.get("is_folder") or item.get("type") == "folder"),
                )
            )

        logger.info(f"Listed {len(entries)} items in folder {folder_hash}")
        return entries
