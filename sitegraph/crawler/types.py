"""Core type definitions for the traversal engine.

This module is intentionally dependency-light so other crawler modules can import
shared enums and records without introducing cycles.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class LinkStatus(str, Enum):
    """Visitation state of one link record."""

    UNVISITED = "unvisited"
    TRYING = "trying"
    VISITED = "visited"
    VISITED_WITH_ERROR = "visited_with_error"
    SHOULD_NOT_VISIT = "should_not_visit"


TERMINAL_STATUSES = frozenset(
    {
        LinkStatus.VISITED,
        LinkStatus.VISITED_WITH_ERROR,
        LinkStatus.SHOULD_NOT_VISIT,
    }
)


class FetchBackend(str, Enum):
    """Backend used to fetch page documents."""

    REQUESTS = "requests"
    SELENIUM = "selenium"


class ContentKind(str, Enum):
    """Coarse content categories derived from the Content-Type header."""

    HTML = "html"
    TEXT = "text"
    BINARY = "binary"
    UNKNOWN = "unknown"


class UrlScope(str, Enum):
    """Position of a URL relative to the traversal root host."""

    INTERNAL = "internal"
    EXTERNAL = "external"


class MergeOutcome(str, Enum):
    """What happened to a discovered child link when merged into the table."""

    INSERTED = "inserted"
    MERGED = "merged"
    SKIPPED_NEAR_DUPLICATE = "skipped_near_duplicate"


class MetaKey(str, Enum):
    """Known metadata keys stored on a link record."""

    TITLE = "title"
    META_DESCRIPTION = "meta_description"
    META_KEYWORDS = "meta_keywords"
    CANONICAL_LINK = "canonical_link"
    H1_COUNT = "h1_count"
    H1_CONTENTS = "h1_contents"
    H2_COUNT = "h2_count"
    H2_CONTENTS = "h2_contents"
    LINKS_TEXT = "links_text"
    HREF = "href"
    ORIGINAL_URLS = "original_urls"


SEQUENCE_META_KEYS = frozenset(
    {
        MetaKey.H1_CONTENTS,
        MetaKey.H2_CONTENTS,
        MetaKey.ORIGINAL_URLS,
    }
)

INTEGER_META_KEYS = frozenset({MetaKey.H1_COUNT, MetaKey.H2_COUNT})


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string for manifests."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def infer_content_kind(content_type: str | None) -> ContentKind:
    """Infer coarse content kind from an HTTP Content-Type value."""

    normalized = (content_type or "").split(";", maxsplit=1)[0].strip().lower()

    if normalized in {"text/html", "application/xhtml+xml"}:
        return ContentKind.HTML
    if normalized.startswith("text/"):
        return ContentKind.TEXT
    if normalized:
        return ContentKind.BINARY
    return ContentKind.UNKNOWN


@dataclass(frozen=True, slots=True)
class HeaderResult:
    """Outcome of a header probe against one URL."""

    status_code: int
    status_text: str
    content_type: str | None
    final_url: str | None = None

    @property
    def content_kind(self) -> ContentKind:
        return infer_content_kind(self.content_type)

    @property
    def is_html(self) -> bool:
        return self.content_kind == ContentKind.HTML


__all__ = [
    "ContentKind",
    "FetchBackend",
    "HeaderResult",
    "INTEGER_META_KEYS",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "LinkStatus",
    "MergeOutcome",
    "MetaKey",
    "SEQUENCE_META_KEYS",
    "TERMINAL_STATUSES",
    "UrlScope",
    "infer_content_kind",
    "utc_now_iso",
]
