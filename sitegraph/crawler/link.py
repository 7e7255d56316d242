"""Per-URL link record and its visitation state machine."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Iterable
from urllib.parse import urlsplit
import weakref

from .types import (
    INTEGER_META_KEYS,
    SEQUENCE_META_KEYS,
    TERMINAL_STATUSES,
    JSONDict,
    JSONValue,
    LinkStatus,
    MetaKey,
    UrlScope,
)
from .url import (
    SKIP_HREF_PREFIXES,
    canonical_key,
    classify_url,
    host_from_url,
    is_crawlable_url,
    resolve_url,
    strip_fragment,
)


class LinkStateError(ValueError):
    """Raised on a status transition the state machine does not allow."""


_ALLOWED_TRANSITIONS: dict[LinkStatus, frozenset[LinkStatus]] = {
    LinkStatus.UNVISITED: frozenset({LinkStatus.TRYING, LinkStatus.SHOULD_NOT_VISIT}),
    # TRYING -> SHOULD_NOT_VISIT only happens when a failing link turns out
    # to be rejected by the filter policy.
    LinkStatus.TRYING: frozenset(
        {
            LinkStatus.VISITED,
            LinkStatus.VISITED_WITH_ERROR,
            LinkStatus.SHOULD_NOT_VISIT,
        }
    ),
}


def _meta_key(key: MetaKey | str) -> MetaKey | str:
    if isinstance(key, MetaKey):
        return key
    try:
        return MetaKey(key)
    except ValueError:
        return key


@dataclass(slots=True)
class MetaInfo:
    """Typed metadata for one link; unknown keys land in `extra`."""

    title: str | None = None
    meta_description: str | None = None
    meta_keywords: str | None = None
    canonical_link: str | None = None
    h1_count: int | None = None
    h1_contents: list[str] | None = None
    h2_count: int | None = None
    h2_contents: list[str] | None = None
    links_text: str | None = None
    href: str | None = None
    original_urls: list[str] | None = None
    extra: dict[str, JSONValue] = field(default_factory=dict)

    def get(self, key: MetaKey | str, default: Any = None) -> Any:
        resolved = _meta_key(key)
        if isinstance(resolved, MetaKey):
            value = getattr(self, resolved.value)
            return default if value is None else value
        return self.extra.get(resolved, default)

    def set(self, key: MetaKey | str, value: Any) -> None:
        resolved = _meta_key(key)
        if not isinstance(resolved, MetaKey):
            self.extra[resolved] = value
            return

        if value is None:
            setattr(self, resolved.value, None)
            return

        if resolved in SEQUENCE_META_KEYS:
            if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
                raise TypeError(f"Metadata '{resolved.value}' expects a sequence, got {value!r}")
            setattr(self, resolved.value, [str(item) for item in value])
            return

        if resolved in INTEGER_META_KEYS:
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"Metadata '{resolved.value}' expects an int, got {value!r}")
            setattr(self, resolved.value, value)
            return

        setattr(self, resolved.value, str(value))

    def add(self, key: MetaKey | str, value: Any) -> None:
        resolved = _meta_key(key)
        if not isinstance(resolved, MetaKey):
            current = self.extra.setdefault(resolved, [])
            if not isinstance(current, list):
                raise TypeError(f"Metadata '{resolved}' holds a scalar value and cannot be appended to")
            current.append(value)
            return

        if resolved not in SEQUENCE_META_KEYS:
            raise TypeError(f"Metadata '{resolved.value}' is not sequence-valued")

        current_list = getattr(self, resolved.value)
        if current_list is None:
            current_list = []
            setattr(self, resolved.value, current_list)
        current_list.append(str(value))

    def to_json(self) -> JSONDict:
        payload: JSONDict = {}
        for item in fields(self):
            if item.name == "extra":
                continue
            value = getattr(self, item.name)
            if value is None:
                continue
            payload[item.name] = list(value) if isinstance(value, list) else value
        payload.update(self.extra)
        return payload


class Link:
    """One unique URL discovered during a traversal.

    The link table owns every record; `parent` is only a weak back-reference
    to the page the link was first found on.
    """

    def __init__(self, url: str, parent: Link | None = None) -> None:
        absolute = resolve_url(url, parent.absolute_url if parent is not None else None)
        if absolute is None:
            raise ValueError(f"Cannot resolve link URL {url!r}")

        self.original_url = url
        self.absolute_url = strip_fragment(absolute)
        self.canonical_key = canonical_key(absolute)
        self.key_without_query = canonical_key(absolute, include_query=False)

        self._parent_ref = weakref.ref(parent) if parent is not None else None
        self._parent_url = parent.absolute_url if parent is not None else None
        self.root_host = parent.root_host if parent is not None else host_from_url(self.absolute_url)

        self.status = LinkStatus.UNVISITED
        self.status_reason: str | None = None
        self.status_code: int | None = None
        self.status_text: str | None = None
        self.content_type: str | None = None
        self.crawl_depth: int | None = None
        self.error_info: int | str | None = None
        self.meta = MetaInfo()

    def __repr__(self) -> str:
        return f"Link({self.absolute_url!r}, status={self.status.value}, depth={self.crawl_depth})"

    def __str__(self) -> str:
        return self.absolute_url

    @property
    def parent(self) -> Link | None:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @property
    def parent_url(self) -> str | None:
        return self._parent_url

    @property
    def path(self) -> str:
        return urlsplit(self.absolute_url).path or "/"

    @property
    def scope(self) -> UrlScope:
        return classify_url(self.absolute_url, self.root_host)

    def is_external(self) -> bool:
        return self.scope == UrlScope.EXTERNAL

    def is_crawlable(self) -> bool:
        """Crawlable when neither the raw string nor the resolved URL is a pseudo-link."""

        raw = self.original_url.strip()
        if raw.startswith("#") or raw.lower().startswith(SKIP_HREF_PREFIXES):
            return False
        return is_crawlable_url(self.absolute_url)

    def has_crawlable_status(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 400

    @property
    def should_not_visit(self) -> bool:
        return self.status == LinkStatus.SHOULD_NOT_VISIT

    @property
    def is_visited(self) -> bool:
        return self.status == LinkStatus.VISITED

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def set_crawl_depth(self, depth: int) -> bool:
        """Record the depth the link was first seen at. Later depths are ignored."""

        if depth < 0:
            raise ValueError("depth must be >= 0")
        if self.crawl_depth is not None:
            return False
        self.crawl_depth = depth
        return True

    def _transition(self, target: LinkStatus) -> bool:
        if self.status in TERMINAL_STATUSES:
            return False
        if target not in _ALLOWED_TRANSITIONS.get(self.status, frozenset()):
            raise LinkStateError(
                f"Cannot move {self.absolute_url} from {self.status.value} to {target.value}"
            )
        self.status = target
        return True

    def mark_trying(self) -> bool:
        return self._transition(LinkStatus.TRYING)

    def mark_visited(self) -> bool:
        return self._transition(LinkStatus.VISITED)

    def mark_visited_with_error(self, error_info: int | str) -> bool:
        changed = self._transition(LinkStatus.VISITED_WITH_ERROR)
        if changed:
            self.error_info = error_info
        return changed

    def mark_should_not_visit(self, reason: str | None = None) -> bool:
        changed = self._transition(LinkStatus.SHOULD_NOT_VISIT)
        if changed:
            self.status_reason = reason
        return changed

    def get_meta_info(self, key: MetaKey | str, default: Any = None) -> Any:
        return self.meta.get(key, default)

    def set_meta_info(self, key: MetaKey | str, value: Any) -> None:
        self.meta.set(key, value)

    def add_meta_info(self, key: MetaKey | str, value: Any) -> None:
        self.meta.add(key, value)

    def merge_encounter(self, other: Link) -> None:
        """Fold a later reference to the same page into this record.

        Status and fetch results stay untouched; anchor metadata is
        last-write-wins.
        """

        known = self.meta.original_urls or []
        if other.original_url != self.original_url and other.original_url not in known:
            self.meta.add(MetaKey.ORIGINAL_URLS, other.original_url)

        if other.meta.links_text is not None:
            self.meta.links_text = other.meta.links_text
        if other.meta.href is not None:
            self.meta.href = other.meta.href

    def to_json(self) -> JSONDict:
        return {
            "full_url": self.absolute_url,
            "path": self.path,
            "meta_info": self.meta.to_json(),
            "parent_url": self.parent_url,
            "status_code": self.status_code,
            "status": self.status.value,
            "content_type": self.content_type,
            "error_info": self.error_info,
            "crawl_depth": self.crawl_depth,
        }


__all__ = [
    "Link",
    "LinkStateError",
    "MetaInfo",
]
