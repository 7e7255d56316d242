"""Depth-ordered site traversal over the shared link table."""

from __future__ import annotations

import dataclasses
import logging
from typing import Any

from .config import CrawlConfig
from .constants import DEFAULT_MAX_DEPTH, UNEXPECTED_ERROR_STATUS_CODE
from .document import Document
from .fetcher import FetchAdapter, HTTPStatusError, create_adapter
from .filters import FilterPolicy, build_filter_policy
from .frontier import DepthFrontier, LinkTable
from .link import Link
from .parsers import ExtractedLink, LinkExtractor, LinkExtractorConfig, extract_metadata
from .stats import StatsCollector
from .types import JSONDict, LinkStatus, MergeOutcome, MetaKey


class Crawler:
    """Breadth-first crawler: every page at depth N is visited before depth N+1.

    The crawler owns one `LinkTable` holding a single record per canonical
    URL, plus a `DepthFrontier` listing which children each page contributed
    at each depth.
    """

    def __init__(
        self,
        config: CrawlConfig,
        *,
        adapter: FetchAdapter | None = None,
        filter_policy: FilterPolicy | None = None,
        link_extractor: LinkExtractor | None = None,
        stats: StatsCollector | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config

        self.adapter = adapter or create_adapter(config)
        self.filter_policy = filter_policy if filter_policy is not None else build_filter_policy(config)
        self.link_extractor = link_extractor or LinkExtractor(
            LinkExtractorConfig(include_nofollow=config.include_nofollow)
        )
        self.stats = stats or StatsCollector()
        self.logger = logger

        self.links = LinkTable()
        self.frontier = DepthFrontier()
        self.root: Link | None = None

        self._owns_adapter = adapter is None

    def traverse(self, root: Link | None = None) -> LinkTable:
        """Crawl from `root` (default: the configured seed) down to `max_depth`."""

        self.root = root or Link(self.config.seed_url)
        self._log(logging.INFO, "Starting traversal", seed=self.root.absolute_url, max_depth=self.config.max_depth)

        self.visit(self.root, 0)

        for depth in range(1, self.config.max_depth):
            parents = self.frontier.parents_at(depth)
            if not parents:
                self._log(logging.INFO, "No links discovered for depth, stopping", depth=depth)
                break

            self._log(logging.INFO, "Visiting depth", depth=depth, parents=len(parents))
            for parent_key, child_keys in list(parents.items()):
                children = [self.links[key] for key in child_keys]
                if self.config.refetch_parent_anchors:
                    self._refetch_parent(parent_key, children)
                for child in children:
                    self.visit(child, depth)

        self.stats.summarize_links(self.links)
        self.stats.record_frontier_snapshot(self.frontier.snapshot())
        self.stats.finish()
        self._log(logging.INFO, "Traversal finished", links=len(self.links))
        return self.links

    def visit(self, link: Link, depth: int) -> Link:
        """Visit one link at `depth`. Failures are recorded on the link, never raised."""

        link = self.links.add(link)
        link.set_crawl_depth(depth)

        if link.status != LinkStatus.UNVISITED:
            return link

        if not link.is_crawlable():
            link.mark_should_not_visit("not crawlable")
            self.stats.record_skip("not crawlable")
            self._log(logging.DEBUG, "Skipping non-crawlable link", url=link.original_url)
            return link

        if not self._passes_filter(link):
            link.mark_should_not_visit("filtered")
            self.stats.record_skip("filtered")
            self._log(logging.DEBUG, "Link does not match filter criteria", url=link.absolute_url)
            return link

        link.mark_trying()
        try:
            self._fetch_and_extract(link, depth)
        except HTTPStatusError as exc:
            self._record_failure(link, exc.status_code, exc.status_code, str(exc))
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            self._record_failure(link, UNEXPECTED_ERROR_STATUS_CODE, message, message)

        return link

    def _fetch_and_extract(self, link: Link, depth: int) -> None:
        self.stats.record_header_probe()
        headers = self.adapter.fetch_headers(link.absolute_url)
        link.status_code = headers.status_code
        link.status_text = headers.status_text
        link.content_type = headers.content_type

        if not (link.has_crawlable_status() and headers.is_html and not link.is_external()):
            link.mark_visited()
            self._log(logging.DEBUG, "Visited without fetching", url=link.absolute_url, content_type=link.content_type)
            return

        self.stats.record_document_fetch()
        document = self.adapter.fetch_document(link.absolute_url)
        extract_metadata(document, link)
        extracted = self.link_extractor.extract(
            document,
            link,
            table=self.links,
            filter_policy=self.filter_policy,
        )
        link.mark_visited()
        self._log(logging.INFO, "Visited", url=link.absolute_url, depth=depth, children=len(extracted))
        self._merge_children(link, extracted, depth + 1)

    def _record_failure(self, link: Link, status_code: int, error_info: int | str, message: str) -> None:
        if not self._passes_filter(link):
            link.mark_should_not_visit("filtered")
            self._log(logging.INFO, "Suppressed error on filtered link", url=link.absolute_url, error=message)
            return

        link.status_code = status_code
        link.mark_visited_with_error(error_info)
        self.stats.record_error(error_info)
        self._log(logging.WARNING, "Visit failed", url=link.absolute_url, error=message)

    def _merge_children(self, parent: Link, extracted: list[ExtractedLink], depth: int) -> None:
        for item in extracted:
            candidate = item.link

            existing = self.links.get(candidate.canonical_key)
            if existing is not None:
                existing.merge_encounter(candidate)
                self.stats.record_merge(MergeOutcome.MERGED)
                continue

            if not item.is_new:
                self.stats.record_merge(MergeOutcome.SKIPPED_NEAR_DUPLICATE)
                self._log(logging.DEBUG, "Skipping near-duplicate link", url=candidate.absolute_url)
                continue

            candidate.set_crawl_depth(depth)
            self.links.add(candidate)
            self.frontier.add(depth, parent.canonical_key, candidate.canonical_key)
            self.stats.record_merge(MergeOutcome.INSERTED)

    def _refetch_parent(self, parent_key: str, children: list[Link]) -> None:
        """Fill in missing anchor text/href on children from a fresh parent fetch."""

        missing = [
            child
            for child in children
            if child.get_meta_info(MetaKey.HREF) is None or child.get_meta_info(MetaKey.LINKS_TEXT) is None
        ]
        parent = self.links.get(parent_key)
        if not missing or parent is None:
            return

        self.stats.record_document_fetch(refetch=True)
        try:
            document = self.adapter.fetch_document(parent.absolute_url)
        except Exception as exc:
            self._log(logging.WARNING, "Parent re-fetch failed", url=parent.absolute_url, error=str(exc))
            return

        for child in missing:
            self._correlate_anchor(document, child)

    @staticmethod
    def _correlate_anchor(document: Document, child: Link) -> bool:
        candidates = {child.path, child.path.lstrip("/"), child.absolute_url}
        for anchor in document.select("a"):
            href = (anchor.attr("href") or "").strip()
            if href not in candidates:
                continue
            if child.get_meta_info(MetaKey.HREF) is None:
                child.set_meta_info(MetaKey.HREF, href)
            if child.get_meta_info(MetaKey.LINKS_TEXT) is None:
                child.set_meta_info(MetaKey.LINKS_TEXT, anchor.text())
            return True
        return False

    def _passes_filter(self, link: Link) -> bool:
        return self.filter_policy is None or self.filter_policy(link)

    def _log(self, level: int, message: str, **context: Any) -> None:
        if self.logger is None:
            return
        if context:
            details = " ".join(f"{key}={value}" for key, value in context.items())
            message = f"{message} ({details})"
        self.logger.log(level, message, extra={"crawl_context": context})

    def get_links(self) -> dict[str, Link]:
        """Return link records by canonical key; filtered links are hidden when a filter is set."""

        if self.filter_policy is None:
            return dict(self.links.items())
        return {key: link for key, link in self.links.items() if not link.should_not_visit}

    def get_links_array(self, include_only_visited: bool = False) -> list[JSONDict]:
        return [
            link.to_json()
            for link in self.get_links().values()
            if not include_only_visited or link.is_visited
        ]

    def close(self) -> None:
        if self._owns_adapter:
            self.adapter.close()

    def __enter__(self) -> "Crawler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def traverse(
    seed_url: str,
    max_depth: int = DEFAULT_MAX_DEPTH,
    config: CrawlConfig | None = None,
    **crawler_kwargs: Any,
) -> LinkTable:
    """Crawl `seed_url` down to `max_depth` and return the populated link table."""

    if config is None:
        config = CrawlConfig(seed_url=seed_url, max_depth=max_depth)
    else:
        config = dataclasses.replace(config, seed_url=seed_url, max_depth=max_depth)

    with Crawler(config, **crawler_kwargs) as crawler:
        return crawler.traverse()


__all__ = [
    "Crawler",
    "traverse",
]
