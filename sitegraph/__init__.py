"""Depth-limited website link graph crawler."""

from .crawler import CrawlConfig, Crawler, Link, LinkStatus, traverse

__version__ = "0.1.0"

__all__ = [
    "CrawlConfig",
    "Crawler",
    "Link",
    "LinkStatus",
    "traverse",
]
