"""
Cloud Sync -- encrypted, whole-library replication.

    push  ->  build backup envelope -> encrypt with sync key -> create or update remote object
    pull  ->  find remote object -> download -> decrypt -> import into the store

There is exactly one remote object per library, found by a fixed name.
Whoever uploads last wins: nothing is merged and divergence is never
detected. Each call is a single attempt; retries belong to the caller.

upload(), download() and pull() never raise. Failures come back as
False / None / a failed ImportResult and land in the error status, so a
status badge can be driven without exception handling.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Optional

from pydantic import ValidationError

from ..models import ImportResult
from ..storage import SYNC_STATE_KEY, StorageError
from .backends import RemoteStore
from .cipher import decrypt_data, encrypt_data
from .models import SYNC_FILENAME, RemoteFile, SyncState, SyncStatus

if TYPE_CHECKING:
    from ..store import LibraryStore

logger = logging.getLogger("scidigest.sync.engine")

StatusListener = Callable[[SyncStatus], None]


class CloudSync:
    """Moves the library to and from a remote store, always encrypted.

    Args:
        store: Library store providing the data and the sync key.
        remote: Remote object store.
        filename: Well-known name of the library's remote object.
    """

    def __init__(self, store: "LibraryStore", remote: RemoteStore, filename: str = SYNC_FILENAME):
        self.store = store
        self.remote = remote
        self.filename = filename
        self._status = SyncStatus.DISCONNECTED
        self._listeners: list[StatusListener] = []
        self.state = self._load_state()

    # ── Status ─────────────────────────────────────────────────────────

    @property
    def status(self) -> SyncStatus:
        return self._status

    def on_status_change(self, listener: StatusListener) -> Callable[[], None]:
        """Observe status transitions. Returns a disposer."""
        self._listeners.append(listener)

        def dispose() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return dispose

    def _set_status(self, status: SyncStatus) -> None:
        if status == self._status:
            return
        logger.debug("Sync status %s -> %s", self._status.value, status.value)
        self._status = status
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception as exc:
                logger.error("Sync status listener failed: %s", exc)

    def connect(self) -> SyncStatus:
        """Enable syncing: make sure a sync key exists and the remote is usable."""
        if not self.remote.available():
            logger.warning("Remote store %s not available", self.remote.name)
            self._set_status(SyncStatus.DISCONNECTED)
            return self._status
        self.store.get_sync_key(create=True)
        self._set_status(SyncStatus.SYNCED)
        logger.info("Connected to %s", self.remote.name)
        return self._status

    def disconnect(self) -> None:
        self._set_status(SyncStatus.DISCONNECTED)

    # ── Bookkeeping ────────────────────────────────────────────────────

    def _load_state(self) -> SyncState:
        try:
            data = self.store.storage.get_json(SYNC_STATE_KEY)
            if isinstance(data, dict):
                return SyncState(**data)
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning("Failed to load sync state: %s", exc)
        return SyncState()

    def _save_state(self) -> None:
        try:
            self.store.storage.set(SYNC_STATE_KEY, self.state.model_dump_json(indent=2))
        except StorageError as exc:
            logger.warning("Failed to save sync state: %s", exc)

    # ── Transport ──────────────────────────────────────────────────────

    def find_sync_file(self) -> Optional[RemoteFile]:
        """Locate the library's remote object.

        Raises:
            RemoteStoreError: If the remote cannot be listed.
        """
        return self.remote.find_by_name(self.filename)

    def upload(self, payload: Any) -> bool:
        """Encrypt *payload* and write it to the remote object.

        Creates the object on first upload and overwrites it afterwards.
        Plaintext is never uploaded.

        Returns:
            True on success; False on a missing sync key or any failure.
        """
        sync_key = self.store.get_sync_key(create=False)
        if not sync_key:
            logger.warning("Upload skipped: no sync key on this device")
            return False

        try:
            existing = self.find_sync_file()
            ciphertext = encrypt_data(json.dumps(payload), sync_key)
            body = json.dumps({"ciphertext": ciphertext, "encrypted": True})
            if existing is not None:
                remote = self.remote.update(existing.id, body)
            else:
                remote = self.remote.create(self.filename, body)
        except Exception as exc:
            logger.error("Cloud upload failed: %s", exc)
            self.state.last_error = str(exc)
            return False

        self.state.remote_file_id = remote.id
        logger.info("Uploaded %s to %s (%d bytes)", self.filename, self.remote.name, len(body))
        return True

    def download(self, file_id: str) -> Any:
        """Fetch and decrypt a remote object.

        Payloads without the encrypted marker predate encryption and are
        returned as stored.

        Returns:
            The decoded payload, or None on a missing sync key or any failure.
        """
        sync_key = self.store.get_sync_key(create=False)
        if not sync_key:
            logger.warning("Download skipped: no sync key on this device")
            return None

        try:
            payload = self.remote.get(file_id)
            if isinstance(payload, dict) and payload.get("ciphertext") and payload.get("encrypted"):
                return json.loads(decrypt_data(payload["ciphertext"], sync_key))
            return payload
        except Exception as exc:
            logger.error("Cloud download failed: %s", exc)
            self.state.last_error = str(exc)
            return None

    # ── Orchestration ──────────────────────────────────────────────────

    def push(self) -> bool:
        """Upload the full library if sync is connected and healthy.

        Only runs from the ``synced`` state; returns False otherwise
        without touching the remote.
        """
        if self._status != SyncStatus.SYNCED:
            logger.debug("Push skipped: status is %s", self._status.value)
            return False

        self._set_status(SyncStatus.SYNCING)
        payload = self.store.build_backup().model_dump(mode="json", by_alias=True)
        success = self.upload(payload)

        if success:
            self.state.last_push = datetime.now(timezone.utc)
            self.state.push_count += 1
            self.state.last_error = None
        self._save_state()
        self._set_status(SyncStatus.SYNCED if success else SyncStatus.ERROR)
        return success

    def pull(self) -> Optional[ImportResult]:
        """Replace the local library with the remote copy.

        Returns:
            The import result, or None when there is nothing to pull or
            the download failed.
        """
        if self._status == SyncStatus.DISCONNECTED:
            logger.debug("Pull skipped: disconnected")
            return None

        self._set_status(SyncStatus.SYNCING)
        try:
            existing = self.find_sync_file()
        except Exception as exc:
            logger.error("Cloud pull failed: %s", exc)
            self.state.last_error = str(exc)
            self._save_state()
            self._set_status(SyncStatus.ERROR)
            return None

        if existing is None:
            logger.info("No remote library found on %s", self.remote.name)
            self._set_status(SyncStatus.SYNCED)
            return None

        payload = self.download(existing.id)
        if payload is None:
            self._save_state()
            self._set_status(SyncStatus.ERROR)
            return None

        try:
            result = self.store.import_backup(payload)
        except Exception as exc:
            logger.error("Cloud pull failed while importing: %s", exc)
            result = ImportResult(success=False, error=str(exc))

        if result.success:
            self.state.last_pull = datetime.now(timezone.utc)
            self.state.pull_count += 1
            self.state.last_error = None
            self.state.remote_file_id = existing.id
        else:
            self.state.last_error = result.error
        self._save_state()
        self._set_status(SyncStatus.SYNCED if result.success else SyncStatus.ERROR)
        return result

    def status_report(self) -> dict[str, Any]:
        """Current status plus persisted bookkeeping."""
        return {
            "status": self._status.value,
            "backend": self.remote.name,
            "available": self.remote.available(),
            "has_key": self.store.get_sync_key(create=False) is not None,
            "state": self.state.model_dump(mode="json"),
        }
