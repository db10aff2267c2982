"""Canonical Pydantic models shared across all bookbite modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Configuration models** -- loaded from JSON config files and the environment:
    :class:`RequestConfig`, :class:`StreamConfig`, :class:`CacheConfig`,
    and :class:`ClientConfig`.

**Transport models** -- describe one outgoing call or one incoming frame:
    :class:`HTTPMethod`, :class:`RequestDescriptor`, :class:`StreamEvent`.

**Domain models** -- decoded from API responses and persisted by the cache:
    :class:`Book`, :class:`Summary`, :class:`BookCategory`,
    :class:`SearchPage`, :class:`ChatConversation`, :class:`BookRating`,
    and friends.

Wire names follow the server: snake_case for entity fields, camelCase for
pagination and job payloads. Where the Python attribute differs from the wire
name the field carries an ``alias``; all models accept either spelling
(``populate_by_name``) and the cache always writes ``by_alias`` so files
round-trip through :meth:`model_validate`.
"""

from __future__ import annotations

import enum
import json
from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

# --- Timestamps ---

_FRACTIONAL_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"
_PLAIN_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def parse_timestamp(value: Any) -> datetime:
    """Parse a server timestamp, trying fractional seconds before plain ISO-8601.

    The server emits ``2024-05-01T12:30:45.123456+00:00`` for database rows
    but plain ``2024-05-01T12:30:45Z`` elsewhere, so both are accepted.

    Raises:
        ValueError: Naming the offending string when neither format matches.
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Invalid date format: {value!r}")
    for fmt in (_FRACTIONAL_FORMAT, _PLAIN_FORMAT):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValueError(f"Invalid date format: {value}")


Timestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]
"""A ``datetime`` field decoded with :func:`parse_timestamp`."""


# --- Config ---


class DataSource(str, enum.Enum):
    """Which :class:`~bookbite.repository.base.BookRepository` variant to build."""

    REMOTE = "remote"
    LOCAL = "local"
    HYBRID = "hybrid"


class MalformedFramePolicy(str, enum.Enum):
    """What the chat stream does with a ``data:`` line it cannot decode."""

    SKIP = "skip"
    FAIL = "fail"


class RequestConfig(BaseModel):
    """Settings for request/response calls."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_retries: int = Field(
        default=3, ge=0, description="Extra attempts after a transport failure"
    )
    backoff_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Linear backoff unit; attempt N waits N * backoff_seconds",
    )


class StreamConfig(BaseModel):
    """Settings for the server-sent-event chat stream."""

    timeout: float = Field(
        default=120.0, description="Stream timeout in seconds (connect and per read)"
    )
    malformed_frames: MalformedFramePolicy = Field(
        default=MalformedFramePolicy.SKIP,
        description="skip: ignore undecodable frames; fail: abort the stream",
    )


class CacheConfig(BaseModel):
    """Persistent response cache settings."""

    enabled: bool = Field(default=True, description="Enable write-through caching")
    directory: Optional[str] = Field(
        default=None, description="Cache root; defaults to the XDG cache directory"
    )
    expiration_days: int = Field(
        default=7, description="Age used by opportunistic sweeps"
    )
    max_size_mb: int = Field(default=100, description="Size used by size-based eviction")


class ClientConfig(BaseModel):
    """Top-level configuration, persisted at ``~/.config/bookbite/config.json``.

    Loaded by :func:`~bookbite.config.load_client_config`, which layers
    environment variables and a project-local ``bookbite.json`` on top of
    the user file. See that function for the precedence chain.
    """

    base_url: str = Field(
        default="http://localhost:3000/api", description="API root; paths are relative"
    )
    auth_token: Optional[str] = Field(
        default=None, description="Bearer token sent as the Authorization header"
    )
    data_source: DataSource = DataSource.REMOTE
    request: RequestConfig = Field(default_factory=RequestConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    verbose: bool = False


# --- Transport ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods used by the content API."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


def encode_json_body(payload: Any) -> bytes:
    """Serialise a model, mapping, or list into a UTF-8 JSON request body."""
    if isinstance(payload, BaseModel):
        return payload.model_dump_json(by_alias=True).encode("utf-8")
    return json.dumps(payload, ensure_ascii=False).encode("utf-8")


class RequestDescriptor(BaseModel):
    """Everything needed to send one request. Built fresh for every call.

    ``path`` is relative to the configured base URL and may carry its own
    query string; ``params`` are merged into it by :mod:`httpx`.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    method: HTTPMethod = HTTPMethod.GET
    body: Optional[bytes] = None
    headers: dict[str, str] = Field(default_factory=dict)
    params: dict[str, Any] = Field(default_factory=dict)
    timeout: Optional[float] = Field(
        default=None, description="Overrides the configured timeout when set"
    )

    @classmethod
    def build(
        cls,
        path: str,
        method: HTTPMethod = HTTPMethod.GET,
        json_body: Any = None,
        headers: Optional[dict[str, str]] = None,
        params: Optional[dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> RequestDescriptor:
        body = encode_json_body(json_body) if json_body is not None else None
        return cls(
            path=path,
            method=method,
            body=body,
            headers=dict(headers or {}),
            params={k: v for k, v in (params or {}).items() if v is not None},
            timeout=timeout,
        )


class StreamEventType(str, enum.Enum):
    CHUNK = "chunk"
    COMPLETE = "complete"
    ERROR = "error"


class StreamEvent(BaseModel):
    """One decoded ``data:`` frame of the chat stream."""

    type: StreamEventType
    content: str = ""
    error: Optional[str] = None

    @field_validator("content", mode="before")
    @classmethod
    def _content_default(cls, value: Any) -> Any:
        return "" if value is None else value


# --- Books ---


class Book(BaseModel):
    """A book as returned by ``GET books/{id}`` and the list endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    subtitle: Optional[str] = None
    authors: list[str] = Field(default_factory=list)
    isbn10: Optional[str] = None
    isbn13: Optional[str] = None
    published_year: Optional[int] = None
    publisher: Optional[str] = None
    categories: list[str] = Field(default_factory=list)
    cover_url: Optional[str] = None
    description: Optional[str] = None
    source_attribution: list[str] = Field(default_factory=list)
    popularity_rank: Optional[int] = None
    is_featured: bool = False
    is_nyt_bestseller: bool = False
    nyt_rank: Optional[int] = None
    nyt_weeks_on_list: Optional[int] = None
    nyt_list: Optional[str] = None

    @field_validator("authors", "categories", "source_attribution", mode="before")
    @classmethod
    def _lists_default(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("is_featured", "is_nyt_bestseller", mode="before")
    @classmethod
    def _flag_default(cls, value: Any) -> Any:
        return False if value is None else value

    @property
    def formatted_authors(self) -> str:
        return ", ".join(self.authors)

    @property
    def nyt_bestseller_info(self) -> Optional[str]:
        """Short badge text such as ``"NYT #3 • 12 weeks"``."""
        if not self.is_nyt_bestseller:
            return None
        parts: list[str] = []
        if self.nyt_rank is not None:
            parts.append(f"NYT #{self.nyt_rank}")
        if self.nyt_weeks_on_list is not None and self.nyt_weeks_on_list > 1:
            parts.append(f"{self.nyt_weeks_on_list} weeks")
        return " • ".join(parts) or None


class BookCategory(BaseModel):
    """A library category with the number of books filed under it."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    book_count: Optional[int] = Field(default=None, alias="count")


class PaginationInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")
    has_more: bool = Field(alias="hasMore")


class SearchPage(BaseModel):
    """One page of ``GET books/search`` results."""

    results: list[Book] = Field(default_factory=list)
    pagination: Optional[PaginationInfo] = None

    @property
    def has_more(self) -> bool:
        return self.pagination.has_more if self.pagination else False


class BooksPage(BaseModel):
    """Envelope used by ``GET books``, the curated lists, and category listings."""

    model_config = ConfigDict(populate_by_name=True)

    books: list[Book] = Field(default_factory=list)
    total: Optional[int] = None
    page: Optional[int] = None
    limit: Optional[int] = None
    total_pages: Optional[int] = Field(default=None, alias="totalPages")


# --- Summaries ---


class Confidence(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SummaryStyle(str, enum.Enum):
    BRIEF = "brief"
    FULL = "full"


class KeyIdea(BaseModel):
    id: str
    idea: str
    tags: list[str] = Field(default_factory=list)
    confidence: Confidence
    sources: list[str] = Field(default_factory=list)


class ApplicationPoint(BaseModel):
    id: str
    action: str
    tags: list[str] = Field(default_factory=list)


class Citation(BaseModel):
    source: str
    url: Optional[str] = None


class Summary(BaseModel):
    """A generated book summary as returned by ``GET summaries/book/{id}``."""

    id: str
    book_id: str
    one_sentence_hook: str
    key_ideas: list[KeyIdea] = Field(default_factory=list)
    how_to_apply: list[ApplicationPoint] = Field(default_factory=list)
    common_pitfalls: list[str] = Field(default_factory=list)
    critiques: list[str] = Field(default_factory=list)
    who_should_read: str = ""
    limitations: str = ""
    citations: list[Citation] = Field(default_factory=list)
    read_time_minutes: int = 0
    style: SummaryStyle = SummaryStyle.FULL
    extended_summary: Optional[str] = None


class JobStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class SummaryGenerationJob(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    book_id: str = Field(alias="bookId")
    status: JobStatus
    message: Optional[str] = None


# --- Chat ---


class MessageRole(str, enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatConversation(BaseModel):
    id: str
    book_id: str
    title: Optional[str] = None
    created_at: Timestamp
    updated_at: Timestamp


class ChatMessage(BaseModel):
    id: str
    conversation_id: str
    role: MessageRole
    content: str
    created_at: Timestamp
    is_pending: bool = False

    @field_validator("is_pending", mode="before")
    @classmethod
    def _pending_default(cls, value: Any) -> Any:
        return False if value is None else value


class ChatResponse(BaseModel):
    conversation: Optional[ChatConversation] = None
    messages: list[ChatMessage] = Field(default_factory=list)
    message: Optional[str] = None


# --- Ratings ---


class RatingDistribution(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    one: Optional[int] = Field(default=None, alias="1")
    two: Optional[int] = Field(default=None, alias="2")
    three: Optional[int] = Field(default=None, alias="3")
    four: Optional[int] = Field(default=None, alias="4")
    five: Optional[int] = Field(default=None, alias="5")


class BookRating(BaseModel):
    average: float
    count: int
    distribution: Optional[RatingDistribution] = None
    source: str


class BookRatingResponse(BaseModel):
    rating: BookRating


# --- Request bodies ---


class ImportBookRequest(BaseModel):
    isbn: str


class GenerateSummaryRequest(BaseModel):
    style: SummaryStyle = SummaryStyle.FULL


class SendMessageRequest(BaseModel):
    message: str


# --- Cache ---


class CacheInfo(BaseModel):
    """Snapshot of the cache directory returned by :meth:`CacheStore.info`."""

    directory: str
    size_bytes: int
    entry_count: int
    formatted_size: str
