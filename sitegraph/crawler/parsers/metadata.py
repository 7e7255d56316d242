"""Page metadata extraction: title, meta tags, canonical link, headings."""

from __future__ import annotations

import re

from ..document import Document
from ..link import Link
from ..types import MetaKey


_TAG_RE = re.compile(r"<[^>]*>")

HEADING_KEYS: tuple[tuple[str, MetaKey, MetaKey], ...] = (
    ("h1", MetaKey.H1_COUNT, MetaKey.H1_CONTENTS),
    ("h2", MetaKey.H2_COUNT, MetaKey.H2_CONTENTS),
)


def strip_tags(value: str | None) -> str:
    return _TAG_RE.sub("", value or "").strip()


def _meta_content(document: Document, name: str) -> str:
    # Last matching tag wins, mirroring how browsers resolve duplicates.
    content = ""
    for element in document.select(f'meta[name="{name}" i]'):
        content = strip_tags(element.attr("content"))
    return content


def extract_metadata(document: Document, link: Link) -> None:
    """Overwrite the page metadata of `link` from `document`.

    Every field is reset on each call, so running it twice on the same
    document gives the same result.
    """

    title = document.select_one("title")
    link.set_meta_info(MetaKey.TITLE, strip_tags(title.text()) if title is not None else "")
    link.set_meta_info(MetaKey.META_DESCRIPTION, _meta_content(document, "description"))
    link.set_meta_info(MetaKey.META_KEYWORDS, _meta_content(document, "keywords"))

    canonical = document.select_one('link[rel~="canonical"]')
    if canonical is not None:
        link.set_meta_info(MetaKey.CANONICAL_LINK, (canonical.attr("href") or "").strip())

    for selector, count_key, contents_key in HEADING_KEYS:
        contents = [element.text() for element in document.select(selector)]
        link.set_meta_info(count_key, len(contents))
        link.set_meta_info(contents_key, contents)


__all__ = [
    "extract_metadata",
    "strip_tags",
]
