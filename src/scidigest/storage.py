"""
Durable key/value storage for the library.

A directory of small JSON files, one per key, standing in for browser
local storage. Writes go to a hidden temporary file that is then renamed
over the target, so a reader never sees a half-written value. An
optional byte quota mirrors the few-megabyte ceiling browsers impose.

Layout:
    ~/.scidigest/storage/
    ├── scidigest_data_v1.json
    ├── scidigest_interests_v1.json
    ├── scidigest_feeds_v1.json
    ├── scidigest_ai_config_v1.json
    ├── scidigest_sync_key.json
    └── scidigest_sync_state.json
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Iterable, Optional, Union

logger = logging.getLogger("scidigest.storage")

DATA_KEY = "scidigest_data_v1"
INTERESTS_KEY = "scidigest_interests_v1"
FEEDS_KEY = "scidigest_feeds_v1"
AI_CONFIG_KEY = "scidigest_ai_config_v1"
SYNC_KEY = "scidigest_sync_key"
SYNC_STATE_KEY = "scidigest_sync_state"

DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024


class StorageError(Exception):
    """Raised when a value cannot be written to storage."""


class StorageQuotaError(StorageError):
    """Raised when a write would push storage past its quota."""


class FileStorage:
    """JSON file per key under a single directory.

    Args:
        root: Directory holding the key files.
        quota_bytes: Maximum combined size of all values. None disables it.
    """

    def __init__(self, root: Path, quota_bytes: Optional[int] = DEFAULT_QUOTA_BYTES) -> None:
        self.root = root.expanduser()
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def initialize(self) -> None:
        """Create the storage directory."""
        self.root.mkdir(parents=True, exist_ok=True)

    def get(self, key: str) -> Optional[str]:
        """Raw stored text for *key*, or None when absent."""
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def get_json(self, key: str) -> Any:
        """Parsed value for *key*, or None when absent.

        Raises:
            json.JSONDecodeError: If the stored text is not valid JSON.
            OSError: If the file cannot be read.
        """
        raw = self.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: str) -> None:
        """Atomically replace the value stored under *key*.

        Raises:
            StorageQuotaError: If the write would exceed the quota.
            StorageError: If the filesystem rejects the write.
        """
        encoded = value.encode("utf-8")
        self.check_quota({key: value})

        path = self._path(key)
        tmp_path = self.root / f".{key}.json.tmp"
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(encoded)
            os.replace(tmp_path, path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to write '{key}': {exc}") from exc

        logger.debug("Wrote %s (%d bytes)", key, len(encoded))

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value, indent=2))

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self) -> list[str]:
        if not self.root.exists():
            return []
        return sorted(p.stem for p in self.root.glob("*.json"))

    def clear(self) -> None:
        """Remove every stored key."""
        for key in self.keys():
            self.remove(key)
        logger.info("Storage cleared: %s", self.root)

    def check_quota(self, updates: dict[str, str]) -> None:
        """Fail if writing every value in *updates* would exceed the quota.

        Raises:
            StorageQuotaError: If the combined result would not fit.
        """
        if self.quota_bytes is None:
            return
        incoming = sum(len(value.encode("utf-8")) for value in updates.values())
        projected = self.used_bytes(exclude=updates.keys()) + incoming
        if projected > self.quota_bytes:
            names = ", ".join(sorted(updates))
            raise StorageQuotaError(
                f"Storage quota exceeded writing {names}: "
                f"{projected} > {self.quota_bytes} bytes"
            )

    def used_bytes(self, exclude: Union[str, Iterable[str], None] = None) -> int:
        """Combined size of all stored values, optionally skipping some keys."""
        skipped = {exclude} if isinstance(exclude, str) else set(exclude or ())
        total = 0
        for key in self.keys():
            if key in skipped:
                continue
            try:
                total += self._path(key).stat().st_size
            except OSError:
                continue
        return total
