"""
Pydantic models for the research library.

Everything the library persists is described here: the root Document,
the entities it owns, the auxiliary stores that live beside it, and the
backup envelope that carries all of them between devices.

Python attributes are snake_case. On disk every key is camelCase, so a
document written by any earlier release keeps loading. Unknown keys are
kept as extras rather than discarded.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from . import SCHEMA_VERSION

DEFAULT_QUEUE_ID = "default-queue"
LEGACY_VERSION = "1.0.0"
LOG_CAPACITY = 100
USAGE_CAPACITY = 200


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class LibraryModel(BaseModel):
    """Base for every persisted model: camelCase on disk, extras preserved."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize with on-disk key names."""
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class FeedSourceType(str, Enum):
    """Where an article was discovered."""

    HUGGINGFACE = "HuggingFace"
    NATURE = "Nature"
    TENSORFLOW = "Tensorflow Blog"
    MEDIUM = "Medium"
    GOODREADS = "GoodReads"
    MANUAL = "Manual"
    GOOGLE_SCHOLAR = "Google Scholar"
    ARXIV = "arXiv"


class Sentiment(str, Enum):
    POSITIVE = "Positive"
    NEUTRAL = "Neutral"
    NEGATIVE = "Negative"
    UNKNOWN = "Unknown"


class LogSeverity(str, Enum):
    """Severity of an in-app diagnostic entry."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    DEBUG = "debug"


class RecommendationBias(str, Enum):
    """How adventurous AI recommendations should be."""

    CONSERVATIVE = "conservative"
    BALANCED = "balanced"
    EXPERIMENTAL = "experimental"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

class UserReviews(LibraryModel):
    """Community reception of a paper."""

    sentiment: Sentiment = Sentiment.UNKNOWN
    summary: str = ""
    last_updated: Optional[str] = None
    citation_count: Optional[int] = None
    cited_by_url: Optional[str] = None


class GroundingSource(LibraryModel):
    """A web source backing an AI-generated claim."""

    title: str = ""
    uri: str = ""


class Article(LibraryModel):
    """A tracked paper.

    Rating sentinels: 0 means untriaged, -1 means dismissed, 1 through 10
    is the user's score. Articles are never hard-deleted.
    """

    id: str = Field(default_factory=_new_id)
    title: str
    authors: list[str] = Field(default_factory=list)
    abstract: str = ""
    date: str = ""
    year: str = ""
    source: Union[FeedSourceType, str] = Field(default=FeedSourceType.MANUAL, union_mode="left_to_right")
    rating: int = 0
    pdf_url: Optional[str] = None
    user_reviews: UserReviews = Field(default_factory=UserReviews)
    tags: list[str] = Field(default_factory=list)
    is_bookmarked: bool = False
    is_tracked: bool = False
    notes: str = ""
    note_ids: list[str] = Field(default_factory=list)
    shelf_ids: list[str] = Field(default_factory=list)
    user_read_time: int = 0
    references: Optional[list[str]] = None
    grounding_sources: Optional[list[GroundingSource]] = None

    @field_validator("abstract", "date", "year", "notes", mode="before")
    @classmethod
    def _text_or_blank(cls, v: Any) -> Any:
        """Older clients stored numeric years and null text fields."""
        if v is None:
            return ""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(int(v)) if float(v).is_integer() else str(v)
        return v

    @field_validator("rating", "user_read_time", mode="before")
    @classmethod
    def _round_number(cls, v: Any) -> Any:
        if isinstance(v, float):
            return int(round(v))
        return v

    @property
    def is_dismissed(self) -> bool:
        return self.rating == -1

    @property
    def source_label(self) -> str:
        """Display name of the source, known feed type or free text."""
        return self.source.value if isinstance(self.source, FeedSourceType) else str(self.source)


class Book(LibraryModel):
    """A book on the reading list."""

    id: str = Field(default_factory=_new_id)
    title: str
    author: str = ""
    rating: int = 0
    date_added: datetime = Field(default_factory=_now)
    price: Optional[str] = None
    amazon_url: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    shelf_ids: list[str] = Field(default_factory=list)


class Note(LibraryModel):
    """Free-text annotation, linkable to any number of articles."""

    id: str = Field(default_factory=_new_id)
    title: str = "Untitled"
    content: str = ""
    last_edited: datetime = Field(default_factory=_now)
    article_ids: list[str] = Field(default_factory=list)


class Shelf(LibraryModel):
    """A named, coloured collection of articles and books."""

    id: str = Field(default_factory=_new_id)
    name: str
    color: str = "#6366f1"
    created_at: datetime = Field(default_factory=_now)


class Feed(LibraryModel):
    """A monitored source url."""

    id: str = Field(default_factory=_new_id)
    name: str
    url: str
    active: bool = True


class LogEntry(LibraryModel):
    """One entry of the in-app diagnostic buffer."""

    id: str = Field(default_factory=_new_id)
    timestamp: datetime = Field(default_factory=_now, alias="date")
    level: LogSeverity = Field(default=LogSeverity.INFO, alias="type")
    message: str
    version: str = SCHEMA_VERSION
    context: Optional[dict[str, Any]] = None


class UsageEvent(LibraryModel):
    """Telemetry for a single generative-AI call."""

    id: str = Field(default_factory=_new_id)
    timestamp: datetime = Field(default_factory=_now)
    feature: str
    model: str = ""
    prompt_tokens: int = 0
    candidates_tokens: int = 0
    total_tokens: int = 0
    latency_ms: float = 0.0
    success: bool = True
    error: Optional[str] = None


class SocialProfiles(LibraryModel):
    """Public research profiles of the user; extra profile urls allowed."""

    google_scholar: Optional[str] = None


class AIConfig(LibraryModel):
    """User preferences for the AI collaborator."""

    recommendation_bias: RecommendationBias = RecommendationBias.BALANCED
    reviewer2_prompt: Optional[str] = None
    feedback_url: Optional[str] = None
    monthly_token_limit: int = 1_000_000
    debug_mode: bool = False


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------

def default_queue_shelf() -> Shelf:
    """The permanent inbox shelf."""
    return Shelf(id=DEFAULT_QUEUE_ID, name="Reading Queue", color="#6366f1")


class Document(LibraryModel):
    """The single root aggregate persisted per storage area.

    A stored document without a version predates versioning and is
    treated as ``1.0.0``.
    """

    version: str = LEGACY_VERSION
    last_modified: datetime = Field(default_factory=_now)
    articles: list[Article] = Field(default_factory=list)
    books: list[Book] = Field(default_factory=list)
    notes: list[Note] = Field(default_factory=list)
    shelves: list[Shelf] = Field(default_factory=lambda: [default_queue_shelf()])
    logs: list[LogEntry] = Field(default_factory=list)
    usage_history: list[UsageEvent] = Field(default_factory=list)
    feedback_submissions: list[datetime] = Field(default_factory=list)
    social_profiles: SocialProfiles = Field(default_factory=SocialProfiles)
    tracked_authors: list[str] = Field(default_factory=list)

    def find_article(self, article_id: str) -> Optional[Article]:
        return next((a for a in self.articles if a.id == article_id), None)

    def find_book(self, book_id: str) -> Optional[Book]:
        return next((b for b in self.books if b.id == book_id), None)

    def find_note(self, note_id: str) -> Optional[Note]:
        return next((n for n in self.notes if n.id == note_id), None)

    def find_shelf(self, shelf_id: str) -> Optional[Shelf]:
        return next((s for s in self.shelves if s.id == shelf_id), None)


def default_document() -> Document:
    """A brand-new document at the running schema version."""
    return Document(version=SCHEMA_VERSION)


# ---------------------------------------------------------------------------
# Backup envelope
# ---------------------------------------------------------------------------

class BackupEnvelope(LibraryModel):
    """Everything needed to rebuild a library on another device."""

    version: str = SCHEMA_VERSION
    data: Document
    interests: list[str]
    feeds: list[Feed] = Field(default_factory=list)
    ai_config: AIConfig = Field(default_factory=AIConfig)
    timestamp: datetime = Field(default_factory=_now)


class ImportResult(BaseModel):
    """Outcome of a backup import. Failures leave local state untouched."""

    success: bool
    upgraded: bool = False
    error: Optional[str] = None
