"""Child link discovery from a fetched page."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from ..document import Document
from ..filters import FilterPolicy
from ..frontier import LinkTable
from ..link import Link
from ..types import MetaKey


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class LinkExtractorConfig:
    """Config for anchor discovery."""

    anchor_selector: str = "a"
    include_nofollow: bool = True


@dataclass(slots=True)
class ExtractedLink:
    """A candidate child link found on a page.

    `is_new` is False when a link with the same query-less key is already in
    the table or earlier on the same page.
    """

    link: Link
    is_new: bool


class LinkExtractor:
    """Turn the anchors of a document into candidate child links."""

    def __init__(self, config: LinkExtractorConfig | None = None) -> None:
        self.config = config or LinkExtractorConfig()

    def extract(
        self,
        document: Document,
        page_link: Link,
        *,
        table: LinkTable,
        filter_policy: FilterPolicy | None = None,
    ) -> list[ExtractedLink]:
        seen_on_page: set[str] = set()
        extracted: list[ExtractedLink] = []

        for anchor in document.select(self.config.anchor_selector):
            raw_href = anchor.attr("href")
            if raw_href is None or not raw_href.strip():
                continue

            href = raw_href.strip()
            if href.startswith("#"):
                continue

            if not self.config.include_nofollow:
                rel_values = (anchor.attr("rel") or "").lower().split()
                if "nofollow" in rel_values:
                    continue

            try:
                candidate = Link(href, page_link)
            except ValueError as exc:
                LOGGER.debug("Skipping malformed href %r on %s: %s", href, page_link, exc)
                continue

            candidate.set_meta_info(MetaKey.LINKS_TEXT, anchor.text())
            candidate.set_meta_info(MetaKey.HREF, raw_href)

            near_key = candidate.key_without_query
            is_new = near_key not in table and near_key not in seen_on_page
            seen_on_page.add(near_key)

            if filter_policy is not None and not filter_policy(candidate):
                candidate.mark_should_not_visit("filtered")
                LOGGER.debug("Link %s does not match filter criteria", candidate.canonical_key)

            extracted.append(ExtractedLink(link=candidate, is_new=is_new))

        return extracted


__all__ = [
    "ExtractedLink",
    "LinkExtractor",
    "LinkExtractorConfig",
]
