"""Crawl statistics aggregation for run summaries."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Iterable, Mapping

from .link import Link
from .types import JSONDict, LinkStatus, MergeOutcome, utc_now_iso


class StatsCollector:
    """Collect counters while the scheduler runs and summarize the link table."""

    def __init__(self) -> None:
        self.started_at = utc_now_iso()
        self.finished_at: str | None = None

        self._counters: dict[str, int] = defaultdict(int)
        self._merge_counts: dict[str, int] = defaultdict(int)
        self._error_counts: dict[str, int] = defaultdict(int)
        self._status_counts: dict[str, int] = {}
        self._depth_counts: dict[str, int] = {}
        self._pages_without_title = 0
        self._pages_without_h1 = 0
        self._frontier_snapshot: dict[str, dict[str, int]] = {}

    def record_header_probe(self) -> None:
        self._counters["header_probes"] += 1

    def record_document_fetch(self, *, refetch: bool = False) -> None:
        key = "parent_refetches" if refetch else "document_fetches"
        self._counters[key] += 1

    def record_merge(self, outcome: MergeOutcome) -> None:
        self._merge_counts[outcome.value] += 1

    def record_error(self, error_info: int | str | None) -> None:
        """Record an error by status code category."""

        if isinstance(error_info, int):
            self._error_counts[str(error_info)] += 1
        else:
            self._error_counts["unexpected"] += 1

    def record_skip(self, reason: str) -> None:
        self._counters[f"skipped_{reason.replace(' ', '_')}"] += 1

    def increment(self, name: str, value: int = 1) -> None:
        """Increment a custom counter for ad-hoc instrumentation."""

        if not name or value == 0:
            return
        self._counters[name] += value

    def record_frontier_snapshot(self, snapshot: Mapping[str, dict[str, int]]) -> None:
        self._frontier_snapshot = dict(snapshot)

    def summarize_links(self, links: Iterable[Link]) -> None:
        """Compute status/depth histograms and page-quality counts from the table."""

        status_counts = {status.value: 0 for status in LinkStatus}
        depth_counts: dict[str, int] = defaultdict(int)
        without_title = 0
        without_h1 = 0

        for link in links:
            status_counts[link.status.value] += 1
            depth_counts[str(link.crawl_depth)] += 1
            if link.meta.title is None:
                continue
            if not link.meta.title:
                without_title += 1
            if not link.meta.h1_count:
                without_h1 += 1

        self._status_counts = status_counts
        self._depth_counts = dict(depth_counts)
        self._pages_without_title = without_title
        self._pages_without_h1 = without_h1

    def finish(self) -> None:
        self.finished_at = utc_now_iso()

    def duration_seconds(self) -> float | None:
        if self.finished_at is None:
            return None
        started = datetime.fromisoformat(self.started_at)
        finished = datetime.fromisoformat(self.finished_at)
        return (finished - started).total_seconds()

    def to_json(self) -> JSONDict:
        total = sum(self._status_counts.values())
        return {
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "duration_seconds": self.duration_seconds(),
            "links_total": total,
            "links_by_status": dict(self._status_counts),
            "links_by_depth": dict(self._depth_counts),
            "pages_without_title": self._pages_without_title,
            "pages_without_h1": self._pages_without_h1,
            "counters": dict(sorted(self._counters.items())),
            "merge_outcomes": dict(sorted(self._merge_counts.items())),
            "errors_by_code": dict(sorted(self._error_counts.items())),
            "frontier": self._frontier_snapshot,
        }


__all__ = ["StatsCollector"]
