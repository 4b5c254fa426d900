"""
Library Store: the single source of truth for all user data.

One versioned Document lives in storage beside a handful of auxiliary
values (interests, feeds, AI preferences, the sync key). Every mutator
follows the same shape: load a snapshot, change it, save it, return it.

Loading never fails. Missing, unreadable or corrupt data yields a fresh
default Document; older documents are repaired field by field, and a
record that cannot be repaired is set aside rather than lost. When the
stored schema version differs from the running one, the document is
migrated forward and its diagnostic log is reset to a single entry
recording the transition.

Saving is the only operation that raises, with StorageError or
StorageQuotaError, so callers must not assume success.

Usage:
    store = LibraryStore.open(home)
    dispose = store.subscribe(lambda doc: print(len(doc.articles)))
    store.add_article(Article(title="Attention Is All You Need"))
    dispose()
    store.teardown()
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar, Union

from pydantic import ValidationError

from . import SCHEMA_VERSION
from .config import AppConfig, load_config, resolve_home
from .models import (
    DEFAULT_QUEUE_ID,
    LEGACY_VERSION,
    LOG_CAPACITY,
    USAGE_CAPACITY,
    AIConfig,
    Article,
    BackupEnvelope,
    Book,
    Document,
    Feed,
    ImportResult,
    LibraryModel,
    LogEntry,
    LogSeverity,
    Note,
    Shelf,
    SocialProfiles,
    UsageEvent,
    default_document,
    default_queue_shelf,
)
from .storage import (
    AI_CONFIG_KEY,
    DATA_KEY,
    FEEDS_KEY,
    INTERESTS_KEY,
    SYNC_KEY,
    FileStorage,
    StorageError,
)
from .sync.cipher import generate_sync_key
from .usage import UsageStats, summarize_usage

logger = logging.getLogger("scidigest.store")

M = TypeVar("M", bound=LibraryModel)
Listener = Callable[[Document], None]

DEFAULT_INTERESTS = [
    "Machine Learning",
    "Deep Learning",
    "Signal Processing",
    "Statistical Processing",
    "Bayesian Analysis",
    "Biosignal Processing",
    "Wearables",
    "Physiology",
    "Sports Medicine",
    "Infectious Diseases",
]

FEEDBACK_WINDOW_DAYS = 30

_SYNC_KEY_RE = re.compile(r"[0-9a-f]{32}")

# Collections that older documents may carry as null.
_REPAIRABLE_KEYS = (
    "articles", "books", "notes", "shelves", "logs",
    "usageHistory", "feedbackSubmissions", "socialProfiles", "trackedAuthors",
)

# Entity collections validated record by record on load.
_ENTITY_LISTS: dict[str, type[LibraryModel]] = {
    "articles": Article,
    "books": Book,
    "notes": Note,
    "shelves": Shelf,
    "logs": LogEntry,
    "usageHistory": UsageEvent,
    "usage_history": UsageEvent,
}

QUARANTINE_KEY = "quarantined"
UNREADABLE_KEY = f"{DATA_KEY}_unreadable"


def _quarantine_invalid(raw: dict[str, Any]) -> dict[str, list[Any]]:
    """Strip records that fail validation out of *raw*, returning them by key."""
    rejected: dict[str, list[Any]] = {}
    for key, model in _ENTITY_LISTS.items():
        if key not in raw:
            continue
        items = raw[key]
        if not isinstance(items, list):
            logger.warning("Stored %s is not a list, setting it aside", key)
            rejected.setdefault(key, []).append(raw.pop(key))
            continue
        kept = []
        for item in items:
            try:
                model.model_validate(item)
            except ValidationError as exc:
                logger.warning(
                    "Setting aside invalid %s entry %r: %s",
                    key, item.get("id") if isinstance(item, dict) else item, exc,
                )
                rejected.setdefault(key, []).append(item)
            else:
                kept.append(item)
        raw[key] = kept
    return rejected


def _validate_document(raw: dict[str, Any], rejected: dict[str, list[Any]]) -> Optional[Document]:
    """Validate *raw*, setting aside top-level fields that still fail once."""
    try:
        return Document.model_validate(raw)
    except ValidationError as exc:
        failed = {err["loc"][0] for err in exc.errors() if err["loc"]}
    names = {info.alias: name for name, info in Document.model_fields.items() if info.alias}
    bad_keys = (failed | {names[key] for key in failed if key in names}) & set(raw)
    if not bad_keys:
        return None
    for key in sorted(bad_keys):
        logger.warning("Setting aside invalid library field %s", key)
        rejected.setdefault(key, []).append(raw.pop(key))
    try:
        return Document.model_validate(raw)
    except ValidationError:
        return None


def _merge_quarantine(document: Document, rejected: dict[str, list[Any]]) -> dict[str, list[Any]]:
    existing = (document.model_extra or {}).get(QUARANTINE_KEY)
    merged: dict[str, list[Any]] = {}
    if isinstance(existing, dict):
        merged = {k: list(v) for k, v in existing.items() if isinstance(v, list)}
    for key, items in rejected.items():
        merged.setdefault(key, []).extend(items)
    return merged


def default_feeds() -> list[Feed]:
    """Starter feeds for a new library."""
    return [
        Feed(id="f1", name="arXiv Machine Learning", url="https://arxiv.org/list/cs.LG/recent"),
        Feed(id="f2", name="Nature Machine Intelligence", url="https://www.nature.com/natmachintell/"),
        Feed(id="f3", name="HuggingFace Daily Papers", url="https://huggingface.co/papers"),
        Feed(id="f4", name="Tensorflow Blog", url="https://blog.tensorflow.org/", active=False),
    ]


class StoreClosedError(RuntimeError):
    """Raised when a torn-down store is asked to change state."""


def _apply_updates(model: M, updates: dict[str, Any]) -> M:
    """Return a validated copy of *model* with *updates* merged in.

    Keys may be attribute names or their camelCase aliases. The id never
    changes.
    """
    fields = type(model).model_fields
    by_alias = {info.alias: name for name, info in fields.items() if info.alias}
    data = model.model_dump()
    for key, value in updates.items():
        data[by_alias.get(key, key)] = value
    data["id"] = getattr(model, "id")
    return type(model).model_validate(data)


class LibraryStore:
    """Versioned, self-repairing store for the research library.

    Args:
        storage: Key/value storage area backing this store.
    """

    def __init__(self, storage: FileStorage) -> None:
        self.storage = storage
        self._listeners: list[Listener] = []
        self._closed = False

    @classmethod
    def open(cls, home: Optional[Path] = None, config: Optional[AppConfig] = None) -> "LibraryStore":
        """Build and initialize a store for a library home directory."""
        home_path = resolve_home(home)
        cfg = config or load_config(home_path)
        storage = FileStorage(home_path / cfg.storage_dir, quota_bytes=cfg.storage_quota_bytes)
        store = cls(storage)
        store.init()
        return store

    # ── Lifecycle ──────────────────────────────────────────────────────

    def init(self) -> Document:
        """Prepare storage and run the first load (including migration)."""
        self.storage.initialize()
        self._closed = False
        document = self.load()
        if self.storage.get(DATA_KEY) is None:
            self._write(document)
        logger.info(
            "Library opened at %s: %d articles, schema v%s",
            self.storage.root, len(document.articles), document.version,
        )
        return document

    def teardown(self) -> None:
        """Drop all listeners and refuse further mutations."""
        self._listeners.clear()
        self._closed = True
        logger.debug("Library store closed: %s", self.storage.root)

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreClosedError("Library store has been torn down")

    # ── Change notification ────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* for change notifications.

        Returns:
            A disposer; calling it unsubscribes the listener.
        """
        self._listeners.append(listener)

        def dispose() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return dispose

    def _notify(self, document: Document) -> None:
        for listener in list(self._listeners):
            try:
                listener(document.model_copy(deep=True))
            except Exception as exc:
                logger.error("Change listener failed: %s", exc)

    # ── Document load / save ───────────────────────────────────────────

    def load(self) -> Document:
        """Return a snapshot of the current Document.

        Never raises. Changes to the snapshot are not persisted until it
        is passed to :meth:`save`.

        Entities that fail validation are dropped from their collection
        and kept verbatim under the document's ``quarantined`` extra, so
        one bad record never costs the rest of the library. Text that
        cannot be read as a document at all is copied aside under
        ``UNREADABLE_KEY`` before a fresh default is returned.
        """
        try:
            text = self.storage.get(DATA_KEY)
        except (OSError, ValueError) as exc:
            logger.warning("Stored library unreadable, starting fresh: %s", exc)
            return default_document()
        if text is None:
            return default_document()

        try:
            raw = json.loads(text)
        except ValueError as exc:
            logger.warning("Stored library is not valid JSON, starting fresh: %s", exc)
            self._preserve_unreadable(text)
            return default_document()
        if not isinstance(raw, dict):
            logger.warning("Stored library is not an object, starting fresh")
            self._preserve_unreadable(text)
            return default_document()

        for key in _REPAIRABLE_KEYS:
            if key in raw and raw[key] is None:
                del raw[key]
        raw.setdefault("version", LEGACY_VERSION)

        rejected = _quarantine_invalid(raw)
        document = _validate_document(raw, rejected)
        if document is None:
            logger.warning("Stored library failed validation, starting fresh")
            self._preserve_unreadable(text)
            return default_document()

        if rejected:
            setattr(document, QUARANTINE_KEY, _merge_quarantine(document, rejected))

        if document.find_shelf(DEFAULT_QUEUE_ID) is None:
            document.shelves.insert(0, default_queue_shelf())

        migrated = document.version != SCHEMA_VERSION
        if migrated:
            self._migrate(document)
        if migrated or rejected:
            self._write_repaired(document)
        return document

    get_data = load

    def _migrate(self, document: Document) -> None:
        """Move *document* to the running schema version.

        The diagnostic history is discarded and replaced with one entry
        naming the transition.
        """
        previous = document.version
        document.version = SCHEMA_VERSION
        document.logs = [
            LogEntry(
                level=LogSeverity.INFO,
                message=f"Library upgraded from v{previous} to v{SCHEMA_VERSION}; log history reset.",
                context={"from": previous, "to": SCHEMA_VERSION},
            )
        ]
        logger.info("Migrated library from v%s to v%s", previous, SCHEMA_VERSION)

    def _write_repaired(self, document: Document) -> None:
        """Persist a migrated or repaired document without notifying."""
        if self._closed:
            logger.debug("Store closed, repaired library kept in memory only")
            return
        try:
            self._write(document)
        except StorageError as exc:
            logger.error("Could not persist repaired library: %s", exc)

    def _preserve_unreadable(self, text: str) -> None:
        if self._closed:
            return
        try:
            if self.storage.get(UNREADABLE_KEY) != text:
                self.storage.set(UNREADABLE_KEY, text)
                logger.warning("Unreadable library copied to %s", UNREADABLE_KEY)
        except (OSError, ValueError, StorageError) as exc:
            logger.error("Could not keep a copy of the unreadable library: %s", exc)

    def _write(self, document: Document) -> None:
        self.storage.set(DATA_KEY, document.model_dump_json(by_alias=True))

    def save(self, document: Document) -> Document:
        """Persist *document*, stamp last-modified, notify listeners.

        Raises:
            StorageQuotaError: If the document no longer fits.
            StorageError: If the write fails.
            StoreClosedError: If the store was torn down.
        """
        self._ensure_open()
        document.last_modified = datetime.now(timezone.utc)
        self._write(document)
        self._notify(document)
        return document

    save_data = save

    # ── Articles ───────────────────────────────────────────────────────

    def add_article(self, article: Article) -> Document:
        """Put *article* at the top of the library."""
        document = self.load()
        document.articles.insert(0, article)
        logger.debug("Added article %s: %s", article.id, article.title)
        return self.save(document)

    def update_article(self, article_id: str, updates: dict[str, Any]) -> Document:
        """Merge *updates* into the article with *article_id*."""
        document = self.load()
        document.articles = [
            _apply_updates(a, updates) if a.id == article_id else a
            for a in document.articles
        ]
        return self.save(document)

    def rate_article(self, article_id: str, rating: int) -> Document:
        """Set a rating: -1 dismisses, 0 un-triages, 1 through 10 scores.

        Raises:
            ValueError: If the rating is outside -1..10.
        """
        if not -1 <= rating <= 10:
            raise ValueError(f"Rating must be between -1 and 10, got {rating}")
        return self.update_article(article_id, {"rating": rating})

    def dismiss_article(self, article_id: str) -> Document:
        return self.rate_article(article_id, -1)

    def add_read_time(self, article_id: str, seconds: int) -> Document:
        """Accumulate reading time on an article."""
        document = self.load()
        article = document.find_article(article_id)
        if article is not None and seconds > 0:
            article.user_read_time += int(seconds)
        return self.save(document)

    # ── Books ──────────────────────────────────────────────────────────

    def add_books(self, books: list[Book]) -> Document:
        """Prepend *books* to the reading list, keeping their order."""
        document = self.load()
        document.books = list(books) + document.books
        return self.save(document)

    def update_book(self, book_id: str, updates: dict[str, Any]) -> Document:
        document = self.load()
        document.books = [
            _apply_updates(b, updates) if b.id == book_id else b
            for b in document.books
        ]
        return self.save(document)

    # ── Notes ──────────────────────────────────────────────────────────

    def add_note(self, note: Note) -> Document:
        document = self.load()
        document.notes.insert(0, note)
        return self.save(document)

    def update_note(self, note_id: str, updates: dict[str, Any]) -> Document:
        """Merge *updates* into a note and refresh its last-edited stamp."""
        document = self.load()
        stamped = {**updates, "last_edited": datetime.now(timezone.utc)}
        document.notes = [
            _apply_updates(n, stamped) if n.id == note_id else n
            for n in document.notes
        ]
        return self.save(document)

    def delete_note(self, note_id: str) -> Document:
        """Remove a note and every article's reference to it."""
        document = self.load()
        document.notes = [n for n in document.notes if n.id != note_id]
        for article in document.articles:
            article.note_ids = [nid for nid in article.note_ids if nid != note_id]
        return self.save(document)

    def link_note_to_article(self, note_id: str, article_id: str) -> Document:
        """Link a note and an article on both sides in one save."""
        document = self.load()
        note = document.find_note(note_id)
        article = document.find_article(article_id)
        if note is not None and article_id not in note.article_ids:
            note.article_ids.append(article_id)
        if article is not None and note_id not in article.note_ids:
            article.note_ids.append(note_id)
        return self.save(document)

    def unlink_note_from_article(self, note_id: str, article_id: str) -> Document:
        document = self.load()
        note = document.find_note(note_id)
        article = document.find_article(article_id)
        if note is not None:
            note.article_ids = [aid for aid in note.article_ids if aid != article_id]
        if article is not None:
            article.note_ids = [nid for nid in article.note_ids if nid != note_id]
        return self.save(document)

    # ── Shelves ────────────────────────────────────────────────────────

    def add_shelf(self, shelf: Shelf) -> Document:
        document = self.load()
        if document.find_shelf(shelf.id) is not None:
            logger.info("Shelf %s already exists", shelf.id)
            return document
        document.shelves.append(shelf)
        return self.save(document)

    def delete_shelf(self, shelf_id: str) -> Document:
        """Delete a shelf; its items stay in the library.

        The default queue shelf cannot be deleted; asking to do so
        changes nothing.
        """
        document = self.load()
        if shelf_id == DEFAULT_QUEUE_ID or document.find_shelf(shelf_id) is None:
            return document
        document.shelves = [s for s in document.shelves if s.id != shelf_id]
        for item in [*document.articles, *document.books]:
            item.shelf_ids = [sid for sid in item.shelf_ids if sid != shelf_id]
        return self.save(document)

    def add_to_shelf(self, item_id: str, shelf_id: str = DEFAULT_QUEUE_ID) -> Document:
        """Place an article or book on a shelf (the queue by default).

        Raises:
            ValueError: If the shelf does not exist.
        """
        document = self.load()
        if document.find_shelf(shelf_id) is None:
            raise ValueError(f"Unknown shelf: {shelf_id}")
        item = document.find_article(item_id) or document.find_book(item_id)
        if item is not None and shelf_id not in item.shelf_ids:
            item.shelf_ids.append(shelf_id)
        return self.save(document)

    def remove_from_shelf(self, item_id: str, shelf_id: str = DEFAULT_QUEUE_ID) -> Document:
        document = self.load()
        item = document.find_article(item_id) or document.find_book(item_id)
        if item is not None:
            item.shelf_ids = [sid for sid in item.shelf_ids if sid != shelf_id]
        return self.save(document)

    # ── Profile & tracking ─────────────────────────────────────────────

    def save_social_profiles(self, profiles: SocialProfiles) -> Document:
        document = self.load()
        document.social_profiles = profiles
        return self.save(document)

    def track_author(self, name: str) -> Document:
        document = self.load()
        if name not in document.tracked_authors:
            document.tracked_authors.append(name)
        return self.save(document)

    def untrack_author(self, name: str) -> Document:
        document = self.load()
        document.tracked_authors = [a for a in document.tracked_authors if a != name]
        return self.save(document)

    def track_feedback_submission(self) -> Document:
        document = self.load()
        document.feedback_submissions.append(datetime.now(timezone.utc))
        return self.save(document)

    def get_monthly_feedback_count(self, now: Optional[datetime] = None) -> int:
        """Feedback submissions within the trailing thirty days."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=FEEDBACK_WINDOW_DAYS)
        return sum(1 for ts in self.load().feedback_submissions if ts > cutoff)

    # ── Diagnostics & telemetry ────────────────────────────────────────

    def add_log(
        self,
        level: Union[LogSeverity, str],
        message: str,
        context: Optional[dict[str, Any]] = None,
    ) -> Document:
        """Record an in-app diagnostic entry, newest first.

        Debug entries are dropped unless debug mode is on in the AI
        configuration at the moment of the call.
        """
        severity = LogSeverity(level)
        if severity is LogSeverity.DEBUG and not self.get_ai_config().debug_mode:
            return self.load()

        document = self.load()
        document.logs.insert(0, LogEntry(level=severity, message=message, context=context))
        del document.logs[LOG_CAPACITY:]
        return self.save(document)

    def clear_logs(self) -> Document:
        document = self.load()
        document.logs = []
        return self.save(document)

    def track_usage(self, event: UsageEvent) -> Document:
        """Record one AI call, keeping the most recent events only."""
        document = self.load()
        document.usage_history.insert(0, event)
        del document.usage_history[USAGE_CAPACITY:]
        return self.save(document)

    def get_usage_stats(self) -> UsageStats:
        return summarize_usage(self.load().usage_history)

    # ── Auxiliary stores ───────────────────────────────────────────────

    def _read_aux(self, key: str) -> Any:
        try:
            return self.storage.get_json(key)
        except (OSError, ValueError) as exc:
            logger.warning("Stored %s unreadable, using defaults: %s", key, exc)
            return None

    def get_interests(self) -> list[str]:
        stored = self._read_aux(INTERESTS_KEY)
        if not isinstance(stored, list):
            return list(DEFAULT_INTERESTS)
        return [str(i) for i in stored]

    def save_interests(self, interests: list[str]) -> None:
        self._ensure_open()
        self.storage.set_json(INTERESTS_KEY, list(interests))

    def get_feeds(self) -> list[Feed]:
        stored = self._read_aux(FEEDS_KEY)
        if not isinstance(stored, list):
            return default_feeds()
        try:
            return [Feed.model_validate(f) for f in stored]
        except ValidationError as exc:
            logger.warning("Stored feeds invalid, using defaults: %s", exc)
            return default_feeds()

    def save_feeds(self, feeds: list[Feed]) -> None:
        self._ensure_open()
        self.storage.set_json(FEEDS_KEY, [f.to_json_dict() for f in feeds])

    def add_feed(self, feed: Feed) -> list[Feed]:
        """Append a feed unless one with the same url is already present."""
        feeds = self.get_feeds()
        wanted = feed.url.strip().rstrip("/").lower()
        if any(f.url.strip().rstrip("/").lower() == wanted for f in feeds):
            logger.info("Feed already monitored: %s", feed.url)
            return feeds
        feeds.append(feed)
        self.save_feeds(feeds)
        return feeds

    def remove_feed(self, feed_id: str) -> list[Feed]:
        feeds = [f for f in self.get_feeds() if f.id != feed_id]
        self.save_feeds(feeds)
        return feeds

    def get_ai_config(self) -> AIConfig:
        stored = self._read_aux(AI_CONFIG_KEY)
        if not isinstance(stored, dict):
            return AIConfig()
        try:
            return AIConfig.model_validate(stored)
        except ValidationError as exc:
            logger.warning("Stored AI config invalid, using defaults: %s", exc)
            return AIConfig()

    def save_ai_config(self, config: AIConfig) -> None:
        self._ensure_open()
        self.storage.set_json(AI_CONFIG_KEY, config.to_json_dict())

    # ── Sync key ───────────────────────────────────────────────────────

    def get_sync_key(self, create: bool = True) -> Optional[str]:
        """Return the device sync key, generating one on first use.

        Args:
            create: Generate and persist a key when none exists.

        Returns:
            The 32-character hex key, or None when absent and *create*
            is False.
        """
        key = self._read_aux(SYNC_KEY)
        if isinstance(key, str) and key:
            return key
        if not create:
            return None
        key = generate_sync_key()
        self.storage.set_json(SYNC_KEY, key)
        logger.info("Generated new sync key")
        return key

    def set_sync_key(self, key: str) -> None:
        """Adopt a sync key from another device.

        Raises:
            ValueError: If *key* is not 32 hex characters.
        """
        normalized = key.strip().lower()
        if not _SYNC_KEY_RE.fullmatch(normalized):
            raise ValueError("Sync key must be 32 hexadecimal characters")
        self._ensure_open()
        self.storage.set_json(SYNC_KEY, normalized)

    # ── Backup ─────────────────────────────────────────────────────────

    def build_backup(self) -> BackupEnvelope:
        """Bundle the Document with the auxiliary stores."""
        return BackupEnvelope(
            version=SCHEMA_VERSION,
            data=self.load(),
            interests=self.get_interests(),
            feeds=self.get_feeds(),
            ai_config=self.get_ai_config(),
        )

    def export_backup(self) -> str:
        """Serialize :meth:`build_backup` as pretty JSON."""
        return self.build_backup().model_dump_json(by_alias=True, indent=2)

    def import_backup(self, payload: Union[str, bytes, dict[str, Any]]) -> ImportResult:
        """Replace local state with a backup envelope.

        The envelope must carry ``data`` and ``interests``. Everything is
        validated and checked against the quota before anything is
        written. A rejected payload leaves local state exactly as it was,
        and a write that fails partway is rolled back.
        """
        self._ensure_open()
        if isinstance(payload, (str, bytes)):
            try:
                parsed = json.loads(payload)
            except ValueError as exc:
                logger.error("Backup import failed: invalid JSON: %s", exc)
                return ImportResult(success=False, error=f"Invalid JSON: {exc}")
        else:
            parsed = payload

        if not isinstance(parsed, dict) or parsed.get("data") is None or parsed.get("interests") is None:
            logger.error("Backup import rejected: missing 'data' or 'interests'")
            return ImportResult(success=False, error="Backup must contain 'data' and 'interests'")

        imported_version = parsed.get("version") or LEGACY_VERSION
        try:
            document = Document.model_validate(parsed["data"])
            if not isinstance(parsed["interests"], list):
                raise TypeError("'interests' must be a list")
            interests = [str(i) for i in parsed["interests"]]
            feeds = (
                [Feed.model_validate(f) for f in parsed["feeds"]]
                if parsed.get("feeds") is not None else None
            )
            raw_ai_config = parsed.get("aiConfig", parsed.get("ai_config"))
            ai_config = AIConfig.model_validate(raw_ai_config) if raw_ai_config else None
        except (ValidationError, TypeError) as exc:
            logger.error("Backup import rejected: %s", exc)
            return ImportResult(success=False, error=str(exc))

        document.last_modified = datetime.now(timezone.utc)
        updates = {
            DATA_KEY: document.model_dump_json(by_alias=True),
            INTERESTS_KEY: json.dumps(interests, indent=2),
        }
        if feeds is not None:
            updates[FEEDS_KEY] = json.dumps([f.to_json_dict() for f in feeds], indent=2)
        if ai_config is not None:
            updates[AI_CONFIG_KEY] = json.dumps(ai_config.to_json_dict(), indent=2)

        try:
            previous = {key: self.storage.get(key) for key in updates}
        except OSError as exc:
            logger.error("Backup import failed reading current state: %s", exc)
            return ImportResult(success=False, error=str(exc))

        try:
            self.storage.check_quota(updates)
            for key, value in updates.items():
                self.storage.set(key, value)
        except StorageError as exc:
            logger.error("Backup import failed while writing, restoring previous state: %s", exc)
            self._restore(previous)
            return ImportResult(success=False, error=str(exc))

        self._notify(document)
        upgraded = imported_version != SCHEMA_VERSION
        logger.info(
            "Imported backup v%s (%d articles)%s",
            imported_version, len(document.articles), " with upgrade" if upgraded else "",
        )
        return ImportResult(success=True, upgraded=upgraded)

    def _restore(self, previous: dict[str, Optional[str]]) -> None:
        """Put back raw values captured before a multi-key write.

        Every key is removed before any is rewritten, so the restored
        total never exceeds what fitted before.
        """
        for key in previous:
            self.storage.remove(key)
        for key, value in previous.items():
            if value is None:
                continue
            try:
                self.storage.set(key, value)
            except StorageError as exc:
                logger.error("Could not restore %s: %s", key, exc)

    # ── Reset ──────────────────────────────────────────────────────────

    def factory_reset(self) -> Document:
        """Erase every stored value, sync key included. Irreversible."""
        self._ensure_open()
        self.storage.clear()
        fresh = default_document()
        logger.warning("Factory reset: all library data erased from %s", self.storage.root)
        self._notify(fresh)
        return fresh

    # ── Summary ────────────────────────────────────────────────────────

    def summary(self) -> dict[str, Any]:
        """Counts for status displays."""
        document = self.load()
        queued = sum(1 for a in document.articles if DEFAULT_QUEUE_ID in a.shelf_ids)
        return {
            "version": document.version,
            "last_modified": document.last_modified.isoformat(),
            "articles": len(document.articles),
            "dismissed": sum(1 for a in document.articles if a.is_dismissed),
            "queued": queued,
            "books": len(document.books),
            "notes": len(document.notes),
            "shelves": len(document.shelves),
            "logs": len(document.logs),
            "usage_events": len(document.usage_history),
            "read_time_seconds": sum(a.user_read_time for a in document.articles),
            "storage_bytes": self.storage.used_bytes(),
        }
