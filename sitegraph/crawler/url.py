"""URL resolution, canonical identity, and classification helpers."""

from __future__ import annotations

import posixpath
import re
from typing import Sequence
from urllib.parse import (
    parse_qsl,
    quote,
    urlencode,
    urljoin,
    urlsplit,
    urlunsplit,
)

from .types import UrlScope


DEFAULT_ALLOWED_SCHEMES = ("http", "https")
SKIP_HREF_PREFIXES = (
    "javascript:",
    "mailto:",
    "tel:",
    "data:",
    "sms:",
    "skype:",
    "callto:",
)
TRACKING_QUERY_PARAM_PREFIXES = ("utm_",)
TRACKING_QUERY_PARAMS = {
    "fbclid",
    "gclid",
    "mc_cid",
    "mc_eid",
    "mkt_tok",
    "spm",
    "igshid",
    "ref_src",
}


def host_from_url(url: str) -> str:
    """Extract normalized host from URL (lowercase, without `www.`)."""

    parsed = urlsplit(url)
    host = (parsed.hostname or "").strip().lower()
    if host.startswith("www."):
        host = host[4:]
    return host.strip(".")


def is_http_url(url: str, allowed_schemes: Sequence[str] = DEFAULT_ALLOWED_SCHEMES) -> bool:
    """Return True if URL is absolute and has an allowed HTTP-like scheme."""

    parsed = urlsplit(url)
    if not parsed.scheme or not parsed.netloc:
        return False
    return parsed.scheme.lower() in {scheme.lower() for scheme in allowed_schemes}


def is_absolute_url(url: str) -> bool:
    """Return True for well-formed absolute URLs.

    http(s) URLs need a host; other schemes (`mailto:`, `tel:`) only need the
    scheme to count as absolute.
    """

    candidate = (url or "").strip()
    if not candidate:
        return False

    parsed = urlsplit(candidate)
    if not parsed.scheme:
        return False
    if parsed.scheme.lower() in DEFAULT_ALLOWED_SCHEMES:
        return bool(parsed.netloc)
    return True


def root_relative(href: str) -> str:
    """Treat bare relative paths (`about.html`) as site-root-relative."""

    if is_absolute_url(href) or href.startswith(("/", "#")):
        return href
    return "/" + href


def resolve_url(raw: str | None, base_url: str | None = None) -> str | None:
    """Resolve a raw URL string into an absolute URL.

    Returns `None` when the input is empty, or relative without a base URL.
    """

    if raw is None:
        return None

    candidate = raw.strip()
    if not candidate:
        return None

    if is_absolute_url(candidate):
        return candidate

    if not base_url:
        return None

    return urljoin(base_url, root_relative(candidate))


def _has_default_port(scheme: str, port: int | None) -> bool:
    if port is None:
        return False
    return (scheme == "http" and port == 80) or (scheme == "https" and port == 443)


def _normalize_netloc(
    parsed_url,  # urllib.parse.SplitResult
    *,
    strip_default_port: bool,
) -> str:
    host = (parsed_url.hostname or "").lower()
    if not host:
        return parsed_url.netloc.lower()

    userinfo = ""
    if parsed_url.username:
        userinfo = quote(parsed_url.username, safe="")
        if parsed_url.password:
            userinfo += ":" + quote(parsed_url.password, safe="")
        userinfo += "@"

    port: int | None
    try:
        port = parsed_url.port
    except ValueError:
        port = None

    include_port = port is not None and (not strip_default_port or not _has_default_port(parsed_url.scheme.lower(), port))

    if include_port:
        return f"{userinfo}{host}:{port}"
    return f"{userinfo}{host}"


def _normalize_path(path: str, *, remove_trailing_slash: bool) -> str:
    if not path:
        return "/"

    collapsed = re.sub(r"/{2,}", "/", path)
    normalized = posixpath.normpath(collapsed)

    if collapsed.startswith("/") and not normalized.startswith("/"):
        normalized = "/" + normalized

    if normalized in {"", "."}:
        normalized = "/"

    if remove_trailing_slash and normalized != "/":
        normalized = normalized.rstrip("/")

    return normalized or "/"


def _is_tracking_query_key(key: str) -> bool:
    normalized = key.strip().lower()
    if not normalized:
        return False

    if normalized in TRACKING_QUERY_PARAMS:
        return True

    return any(normalized.startswith(prefix) for prefix in TRACKING_QUERY_PARAM_PREFIXES)


def _normalize_query(
    query: str,
    *,
    strip_tracking_params: bool,
    sort_query_params: bool,
) -> str:
    if not query:
        return ""

    pairs = parse_qsl(query, keep_blank_values=True)
    if strip_tracking_params:
        pairs = [(key, value) for key, value in pairs if not _is_tracking_query_key(key)]

    if sort_query_params:
        pairs = sorted(pairs, key=lambda item: (item[0], item[1]))

    if not pairs:
        return ""

    return urlencode(pairs, doseq=True)


def canonical_key(
    url: str,
    *,
    include_query: bool = True,
    strip_tracking_params: bool = True,
    sort_query_params: bool = True,
    remove_trailing_slash: bool = True,
) -> str:
    """Return the deduplication key for an absolute URL.

    The fragment is always dropped. With `include_query=False` the query is
    dropped too, which gives the secondary identity used to catch
    near-duplicate child links before a record is allocated.
    """

    parsed = urlsplit(url.strip())
    scheme = parsed.scheme.lower()

    if scheme not in DEFAULT_ALLOWED_SCHEMES or not parsed.netloc:
        query = parsed.query if include_query else ""
        return urlunsplit((scheme, parsed.netloc, parsed.path, query, ""))

    netloc = _normalize_netloc(parsed, strip_default_port=True)
    path = _normalize_path(parsed.path, remove_trailing_slash=remove_trailing_slash)
    query = ""
    if include_query:
        query = _normalize_query(
            parsed.query,
            strip_tracking_params=strip_tracking_params,
            sort_query_params=sort_query_params,
        )

    return urlunsplit((scheme, netloc, path, query, ""))


def strip_fragment(url: str) -> str:
    """Return URL without its `#fragment` part."""

    parsed = urlsplit(url)
    return urlunsplit((parsed.scheme, parsed.netloc, parsed.path, parsed.query, ""))


def classify_url(url: str, root_host: str) -> UrlScope:
    """Classify URL as internal or external relative to the root host."""

    if host_from_url(url) == host_from_url(f"//{root_host}" if "://" not in root_host else root_host):
        return UrlScope.INTERNAL
    return UrlScope.EXTERNAL


def is_crawlable_url(url: str | None) -> bool:
    """Return True when URL can be fetched over HTTP(S).

    Fragment-only references and pseudo protocols are never crawlable.
    """

    candidate = (url or "").strip()
    if not candidate or candidate.startswith("#"):
        return False

    lowered = candidate.lower()
    if lowered.startswith(SKIP_HREF_PREFIXES):
        return False

    return is_http_url(candidate)


__all__ = [
    "DEFAULT_ALLOWED_SCHEMES",
    "SKIP_HREF_PREFIXES",
    "TRACKING_QUERY_PARAM_PREFIXES",
    "TRACKING_QUERY_PARAMS",
    "canonical_key",
    "classify_url",
    "host_from_url",
    "is_absolute_url",
    "is_crawlable_url",
    "is_http_url",
    "resolve_url",
    "root_relative",
    "strip_fragment",
]
