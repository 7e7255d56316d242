"""Typed crawler configuration with JSON/YAML load/save helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
import re
from typing import Any, Mapping

import yaml  # type: ignore

from .constants import (
    DEFAULT_FETCH_BACKEND,
    DEFAULT_HTTP_HEADERS,
    DEFAULT_INCLUDE_NOFOLLOW,
    DEFAULT_MAX_DEPTH,
    DEFAULT_REFETCH_PARENT_ANCHORS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    DEFAULT_VERIFY_TLS,
    JSON_INDENT,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .types import FetchBackend, JSONDict, JSONValue
from .url import host_from_url, is_http_url


def _as_float(value: Any, key: str) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid float for '{key}': {value!r}") from exc


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid int for '{key}': {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid int for '{key}': {value!r}") from exc


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"Invalid bool for '{key}': {value!r}")


def _as_str_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    raise ValueError(f"Invalid list for '{key}': {value!r}")


def _to_backend(value: Any) -> FetchBackend:
    if isinstance(value, FetchBackend):
        return value
    if isinstance(value, str):
        try:
            return FetchBackend(value.strip().lower())
        except ValueError as exc:
            raise ValueError(f"Invalid backend value: {value!r}") from exc
    raise ValueError(f"Invalid backend value: {value!r}")


@dataclass(slots=True)
class CrawlConfig:
    """Configuration for one traversal run and its fetch adapter."""

    seed_url: str
    max_depth: int = DEFAULT_MAX_DEPTH
    backend: FetchBackend = DEFAULT_FETCH_BACKEND

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    user_agent: str = DEFAULT_USER_AGENT
    default_headers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HTTP_HEADERS))
    verify_tls: bool = DEFAULT_VERIFY_TLS

    refetch_parent_anchors: bool = DEFAULT_REFETCH_PARENT_ANCHORS
    include_nofollow: bool = DEFAULT_INCLUDE_NOFOLLOW

    include_patterns: list[str] = field(default_factory=list)
    exclude_patterns: list[str] = field(default_factory=list)
    allowed_path_prefixes: list[str] = field(default_factory=list)

    selenium_wait_selector: str | None = None
    selenium_wait_seconds: float | None = None

    metadata: dict[str, JSONValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.seed_url = (self.seed_url or "").strip()
        if not self.seed_url:
            raise ValueError("CrawlConfig requires a seed URL")
        if not is_http_url(self.seed_url):
            raise ValueError(f"Seed URL must be an absolute http(s) URL: {self.seed_url!r}")

        self.backend = _to_backend(self.backend)

        if self.max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        if self.selenium_wait_seconds is not None and self.selenium_wait_seconds < 0:
            raise ValueError("selenium_wait_seconds must be >= 0 when set")

        for pattern in [*self.include_patterns, *self.exclude_patterns]:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"Invalid filter pattern {pattern!r}: {exc}") from exc

    @property
    def root_host(self) -> str:
        return host_from_url(self.seed_url)

    def headers(self) -> dict[str, str]:
        """Return request headers with the configured User-Agent applied."""

        merged: dict[str, str] = dict(self.default_headers)
        merged.setdefault("User-Agent", self.user_agent)
        return merged

    def to_dict(self) -> JSONDict:
        """Serialize config for manifests and reproducibility."""

        return {
            "seed_url": self.seed_url,
            "max_depth": self.max_depth,
            "backend": self.backend.value,
            "timeout_seconds": self.timeout_seconds,
            "user_agent": self.user_agent,
            "default_headers": self.default_headers,
            "verify_tls": self.verify_tls,
            "refetch_parent_anchors": self.refetch_parent_anchors,
            "include_nofollow": self.include_nofollow,
            "include_patterns": self.include_patterns,
            "exclude_patterns": self.exclude_patterns,
            "allowed_path_prefixes": self.allowed_path_prefixes,
            "selenium_wait_selector": self.selenium_wait_selector,
            "selenium_wait_seconds": self.selenium_wait_seconds,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CrawlConfig":
        """Build config from a parsed dictionary."""

        if "seed_url" not in payload:
            raise ValueError("Config missing required key: 'seed_url'")

        wait_selector = payload.get("selenium_wait_selector")

        return cls(
            seed_url=str(payload["seed_url"]),
            max_depth=_as_int(payload.get("max_depth", DEFAULT_MAX_DEPTH), "max_depth"),
            backend=_to_backend(payload.get("backend", DEFAULT_FETCH_BACKEND)),
            timeout_seconds=_as_float(
                payload.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
                "timeout_seconds",
            ),
            user_agent=str(payload.get("user_agent", DEFAULT_USER_AGENT)),
            default_headers={
                str(k): str(v)
                for k, v in dict(payload.get("default_headers", DEFAULT_HTTP_HEADERS)).items()
            },
            verify_tls=_as_bool(payload.get("verify_tls", DEFAULT_VERIFY_TLS), "verify_tls"),
            refetch_parent_anchors=_as_bool(
                payload.get("refetch_parent_anchors", DEFAULT_REFETCH_PARENT_ANCHORS),
                "refetch_parent_anchors",
            ),
            include_nofollow=_as_bool(
                payload.get("include_nofollow", DEFAULT_INCLUDE_NOFOLLOW),
                "include_nofollow",
            ),
            include_patterns=_as_str_list(payload.get("include_patterns"), "include_patterns"),
            exclude_patterns=_as_str_list(payload.get("exclude_patterns"), "exclude_patterns"),
            allowed_path_prefixes=_as_str_list(
                payload.get("allowed_path_prefixes"),
                "allowed_path_prefixes",
            ),
            selenium_wait_selector=None if wait_selector is None else str(wait_selector),
            selenium_wait_seconds=_as_float(
                payload.get("selenium_wait_seconds"),
                "selenium_wait_seconds",
            ),
            metadata=dict(payload.get("metadata") or {}),
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML config at {path} must be a mapping at top level")
    return data


def load_config(path: str | Path) -> CrawlConfig:
    """Load CrawlConfig from JSON/YAML path."""

    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    if suffix == ".json":
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    else:
        payload = _load_yaml(config_path)

    if not isinstance(payload, dict):
        raise ValueError(f"Config at {config_path} must be a mapping")

    return CrawlConfig.from_dict(payload)


def save_config(config: CrawlConfig, path: str | Path) -> None:
    """Save CrawlConfig as JSON or YAML based on file extension."""

    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    suffix = out_path.suffix.lower()
    payload = config.to_dict()

    if suffix == ".json":
        out_path.write_text(
            json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return

    if suffix in {".yaml", ".yml"}:
        out_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
        return

    raise ValueError(
        f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
    )


__all__ = [
    "CrawlConfig",
    "load_config",
    "save_config",
]
