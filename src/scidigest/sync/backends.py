"""
Remote object stores -- where the encrypted library travels.

Each store is a flat, app-private folder of named JSON objects that can
be listed by name, read by id, created and overwritten by id. The sync
engine keeps exactly one object per library under a well-known name.

Local: a directory (USB drive, NAS mount, a folder another tool syncs).
GDrive: the Google Drive v3 appDataFolder, reached over REST with a
bearer token taken from the environment.
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import requests
from pydantic import ValidationError

from .models import RemoteFile, SyncBackendConfig, SyncBackendType

logger = logging.getLogger("scidigest.sync.backends")

DRIVE_API = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_API = "https://www.googleapis.com/upload/drive/v3"
MULTIPART_BOUNDARY = "-------314159265358979323846"


class RemoteStoreError(RuntimeError):
    """Raised when the remote store rejects or cannot serve a request."""


class RemoteStore(ABC):
    """Folder-scoped blob store."""

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[RemoteFile]:
        """First object called *name*, or None."""

    @abstractmethod
    def get(self, file_id: str) -> Any:
        """Parsed JSON content of an object.

        Raises:
            RemoteStoreError: If the object is missing or unreadable.
        """

    @abstractmethod
    def create(self, name: str, content: str) -> RemoteFile:
        """Create a new object called *name* holding *content*."""

    @abstractmethod
    def update(self, file_id: str, content: str) -> RemoteFile:
        """Overwrite the object *file_id* with *content*."""

    @abstractmethod
    def available(self) -> bool:
        """Check if this store is currently usable."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable store name."""


class LocalFolderStore(RemoteStore):
    """Objects as files in a local directory.

    Object ids are random; each object is ``<id>.json`` with a sidecar
    ``<id>.meta.json`` recording its name.
    """

    def __init__(self, folder: Path):
        self.folder = folder.expanduser()

    @property
    def name(self) -> str:
        return "local"

    def available(self) -> bool:
        try:
            self.folder.mkdir(parents=True, exist_ok=True)
        except OSError:
            return False
        return self.folder.is_dir()

    def _content_path(self, file_id: str) -> Path:
        return self.folder / f"{file_id}.json"

    def _meta_path(self, file_id: str) -> Path:
        return self.folder / f"{file_id}.meta.json"

    def _write(self, file_id: str, name: str, content: str) -> RemoteFile:
        self.folder.mkdir(parents=True, exist_ok=True)
        modified = datetime.now(timezone.utc)
        tmp_path = self.folder / f".{file_id}.json.tmp"
        tmp_path.write_text(content, encoding="utf-8")
        os.replace(tmp_path, self._content_path(file_id))
        remote = RemoteFile(id=file_id, name=name, modified_time=modified)
        self._meta_path(file_id).write_text(remote.model_dump_json(), encoding="utf-8")
        return remote

    def find_by_name(self, name: str) -> Optional[RemoteFile]:
        if not self.folder.exists():
            return None
        for meta_path in sorted(self.folder.glob("*.meta.json")):
            try:
                remote = RemoteFile.model_validate_json(meta_path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.warning("Skipping unreadable object metadata %s: %s", meta_path.name, exc)
                continue
            if remote.name == name and self._content_path(remote.id).exists():
                return remote
        return None

    def get(self, file_id: str) -> Any:
        path = self._content_path(file_id)
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise RemoteStoreError(f"Cannot read object {file_id}: {exc}") from exc

    def create(self, name: str, content: str) -> RemoteFile:
        remote = self._write(uuid.uuid4().hex, name, content)
        logger.info("Created %s in %s", name, self.folder)
        return remote

    def update(self, file_id: str, content: str) -> RemoteFile:
        meta_path = self._meta_path(file_id)
        if not meta_path.exists():
            raise RemoteStoreError(f"No such object: {file_id}")
        existing = RemoteFile.model_validate_json(meta_path.read_text(encoding="utf-8"))
        remote = self._write(file_id, existing.name, content)
        logger.info("Updated %s in %s", existing.name, self.folder)
        return remote


class DriveAppDataStore(RemoteStore):
    """Google Drive appDataFolder over the v3 REST API.

    Args:
        token: OAuth access token with the ``drive.appdata`` scope.
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, token: Optional[str], timeout: float = 30.0):
        self._token = token
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "gdrive"

    def available(self) -> bool:
        return bool(self._token)

    def _request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, str]] = None,
        data: Optional[bytes] = None,
        content_type: Optional[str] = None,
    ) -> requests.Response:
        """Send an authenticated request.

        Raises:
            RemoteStoreError: On missing token, transport failure or an
                HTTP error status.
        """
        if not self._token:
            raise RemoteStoreError("Google Drive not configured: no access token")

        headers = {"Authorization": f"Bearer {self._token}"}
        if content_type:
            headers["Content-Type"] = content_type

        try:
            resp = requests.request(
                method, url, params=params, data=data, headers=headers, timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise RemoteStoreError(f"Drive {method} {url}: {exc}") from exc

        if resp.status_code >= 400:
            raise RemoteStoreError(
                f"Drive {method} {url}: {resp.status_code} {resp.text}"
            )
        return resp

    @staticmethod
    def _multipart(metadata: dict[str, Any], content: str) -> bytes:
        delimiter = f"\r\n--{MULTIPART_BOUNDARY}\r\n"
        close_delim = f"\r\n--{MULTIPART_BOUNDARY}--"
        body = (
            delimiter
            + "Content-Type: application/json\r\n\r\n"
            + json.dumps(metadata)
            + delimiter
            + "Content-Type: application/json\r\n\r\n"
            + content
            + close_delim
        )
        return body.encode("utf-8")

    @staticmethod
    def _json(resp: requests.Response, what: str) -> dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as exc:
            raise RemoteStoreError(f"Drive {what}: response is not JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise RemoteStoreError(f"Drive {what}: expected an object, got {type(data).__name__}")
        return data

    @staticmethod
    def _to_remote(data: Any) -> RemoteFile:
        if not isinstance(data, dict) or not data.get("id"):
            raise RemoteStoreError(f"Drive returned file metadata without an id: {data!r}")
        try:
            return RemoteFile(
                id=data["id"],
                name=data.get("name", ""),
                modified_time=data.get("modifiedTime"),
            )
        except ValidationError as exc:
            raise RemoteStoreError(f"Drive returned invalid file metadata: {exc}") from exc

    def find_by_name(self, name: str) -> Optional[RemoteFile]:
        resp = self._request(
            "GET",
            f"{DRIVE_API}/files",
            params={
                "spaces": "appDataFolder",
                "fields": "files(id, name, modifiedTime)",
                "q": f"name = '{name}'",
            },
        )
        files = self._json(resp, "list").get("files") or []
        if not isinstance(files, list):
            raise RemoteStoreError("Drive list: 'files' is not a list")
        return self._to_remote(files[0]) if files else None

    def get(self, file_id: str) -> Any:
        resp = self._request("GET", f"{DRIVE_API}/files/{file_id}", params={"alt": "media"})
        try:
            return resp.json()
        except ValueError as exc:
            raise RemoteStoreError(f"Object {file_id} is not JSON: {exc}") from exc

    def create(self, name: str, content: str) -> RemoteFile:
        metadata = {"name": name, "mimeType": "application/json", "parents": ["appDataFolder"]}
        resp = self._request(
            "POST",
            f"{DRIVE_UPLOAD_API}/files",
            params={"uploadType": "multipart", "fields": "id, name, modifiedTime"},
            data=self._multipart(metadata, content),
            content_type=f"multipart/related; boundary={MULTIPART_BOUNDARY}",
        )
        return self._to_remote(self._json(resp, "create"))

    def update(self, file_id: str, content: str) -> RemoteFile:
        metadata = {"mimeType": "application/json"}
        resp = self._request(
            "PATCH",
            f"{DRIVE_UPLOAD_API}/files/{file_id}",
            params={"uploadType": "multipart", "fields": "id, name, modifiedTime"},
            data=self._multipart(metadata, content),
            content_type=f"multipart/related; boundary={MULTIPART_BOUNDARY}",
        )
        return self._to_remote(self._json(resp, "update"))


def create_remote_store(config: SyncBackendConfig, home: Path) -> RemoteStore:
    """Factory function to create the configured remote store.

    Args:
        config: Backend configuration.
        home: Library home directory.

    Returns:
        Instantiated RemoteStore.

    Raises:
        ValueError: If the backend type is not supported.
    """
    if config.backend_type == SyncBackendType.LOCAL:
        folder = config.local_path or home / "sync" / "remote"
        return LocalFolderStore(Path(folder))
    if config.backend_type == SyncBackendType.GDRIVE:
        return DriveAppDataStore(os.environ.get(config.token_env_var))
    raise ValueError(f"Unsupported backend: {config.backend_type}")
