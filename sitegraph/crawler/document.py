"""Queryable document handles over parsed HTML."""

from __future__ import annotations

from typing import Iterator

from bs4 import BeautifulSoup
from bs4.element import Tag


class Element:
    """One element matched by a document query."""

    __slots__ = ("_tag",)

    def __init__(self, tag: Tag) -> None:
        self._tag = tag

    @property
    def name(self) -> str:
        return self._tag.name

    def attr(self, name: str, default: str | None = None) -> str | None:
        value = self._tag.get(name)
        if value is None:
            return default
        # bs4 returns multi-valued attributes (rel, class) as lists.
        if isinstance(value, list):
            return " ".join(value)
        return str(value)

    def text(self) -> str:
        return " ".join(self._tag.get_text().split())

    def html(self) -> str:
        return self._tag.decode_contents().strip()


class Document:
    """Parsed HTML page exposing CSS-selector queries."""

    def __init__(self, soup: BeautifulSoup, *, url: str | None = None) -> None:
        self._soup = soup
        self.url = url

    @classmethod
    def from_html(cls, html: str | bytes, *, url: str | None = None) -> "Document":
        if isinstance(html, bytes):
            html = html.decode("utf-8", errors="replace")
        return cls(BeautifulSoup(html, "lxml"), url=url)

    def select(self, selector: str) -> Iterator[Element]:
        """Yield matching elements lazily in document order."""

        for tag in self._soup.select(selector):
            yield Element(tag)

    def select_one(self, selector: str) -> Element | None:
        tag = self._soup.select_one(selector)
        return None if tag is None else Element(tag)

    def count(self, selector: str) -> int:
        return len(self._soup.select(selector))


__all__ = [
    "Document",
    "Element",
]
