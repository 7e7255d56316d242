"""Filter policies deciding which discovered links may be visited."""

from __future__ import annotations

import re
from typing import Callable, Sequence

from .config import CrawlConfig
from .link import Link


FilterPolicy = Callable[[Link], bool]


def pattern_policy(
    *,
    include_patterns: Sequence[str] = (),
    exclude_patterns: Sequence[str] = (),
    allowed_path_prefixes: Sequence[str] = (),
) -> FilterPolicy:
    """Build a policy from regex patterns over the absolute URL and path prefixes.

    A link passes when it matches no exclude pattern, matches at least one
    include pattern (if any are given), and its path starts with one of the
    allowed prefixes (if any are given). External links skip the prefix check.
    """

    includes = [re.compile(pattern) for pattern in include_patterns]
    excludes = [re.compile(pattern) for pattern in exclude_patterns]
    prefixes = tuple(allowed_path_prefixes)

    def accepts(link: Link) -> bool:
        url = link.absolute_url
        if any(pattern.search(url) for pattern in excludes):
            return False
        if includes and not any(pattern.search(url) for pattern in includes):
            return False
        if prefixes and not link.is_external():
            return link.path.startswith(prefixes)
        return True

    return accepts


def build_filter_policy(config: CrawlConfig) -> FilterPolicy | None:
    """Return the policy described by config, or None when nothing is configured."""

    if not (config.include_patterns or config.exclude_patterns or config.allowed_path_prefixes):
        return None

    return pattern_policy(
        include_patterns=config.include_patterns,
        exclude_patterns=config.exclude_patterns,
        allowed_path_prefixes=config.allowed_path_prefixes,
    )


def all_of(*policies: FilterPolicy | None) -> FilterPolicy | None:
    """Combine policies; a link must pass every non-None policy."""

    active = [policy for policy in policies if policy is not None]
    if not active:
        return None
    if len(active) == 1:
        return active[0]

    def accepts(link: Link) -> bool:
        return all(policy(link) for policy in active)

    return accepts


__all__ = [
    "FilterPolicy",
    "all_of",
    "build_filter_policy",
    "pattern_policy",
]
