"""Default values shared by config, fetch adapters, and the scheduler."""

from __future__ import annotations

from .types import FetchBackend


DEFAULT_MAX_DEPTH = 3
DEFAULT_FETCH_BACKEND = FetchBackend.REQUESTS
DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_USER_AGENT = "sitegraph/0.1 (+https://pypi.org/project/sitegraph/)"
DEFAULT_HTTP_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.8",
}
DEFAULT_VERIFY_TLS = True
DEFAULT_REFETCH_PARENT_ANCHORS = True
DEFAULT_INCLUDE_NOFOLLOW = True

# Status code recorded for failures that carry no HTTP status of their own.
UNEXPECTED_ERROR_STATUS_CODE = 500

# Header probes fall back to a streamed GET when HEAD is refused.
HEAD_FALLBACK_STATUS_CODES = frozenset({405, 501})

JSON_INDENT = 2
SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")
