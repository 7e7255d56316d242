"""Crawler package: config, link records, fetch adapters, and the scheduler."""

from .config import CrawlConfig, load_config, save_config
from .document import Document, Element
from .fetcher import (
    FetchAdapter,
    FetchError,
    HTTPStatusError,
    RequestsAdapter,
    SeleniumAdapter,
    TransportError,
    create_adapter,
)
from .filters import FilterPolicy, all_of, build_filter_policy, pattern_policy
from .frontier import DepthFrontier, LinkTable
from .link import Link, LinkStateError, MetaInfo
from .parsers import ExtractedLink, LinkExtractor, LinkExtractorConfig, extract_metadata
from .scheduler import Crawler, traverse
from .stats import StatsCollector
from .storage import Storage
from .types import (
    ContentKind,
    FetchBackend,
    HeaderResult,
    LinkStatus,
    MergeOutcome,
    MetaKey,
    UrlScope,
    infer_content_kind,
    utc_now_iso,
)
from .url import canonical_key, classify_url, host_from_url, is_crawlable_url, resolve_url

__all__ = [
    "ContentKind",
    "CrawlConfig",
    "Crawler",
    "DepthFrontier",
    "Document",
    "Element",
    "ExtractedLink",
    "FetchAdapter",
    "FetchBackend",
    "FetchError",
    "FilterPolicy",
    "HTTPStatusError",
    "HeaderResult",
    "Link",
    "LinkExtractor",
    "LinkExtractorConfig",
    "LinkStateError",
    "LinkStatus",
    "LinkTable",
    "MergeOutcome",
    "MetaInfo",
    "MetaKey",
    "RequestsAdapter",
    "SeleniumAdapter",
    "StatsCollector",
    "Storage",
    "TransportError",
    "UrlScope",
    "all_of",
    "build_filter_policy",
    "canonical_key",
    "classify_url",
    "create_adapter",
    "extract_metadata",
    "host_from_url",
    "infer_content_kind",
    "is_crawlable_url",
    "load_config",
    "pattern_policy",
    "resolve_url",
    "save_config",
    "traverse",
    "utc_now_iso",
]
