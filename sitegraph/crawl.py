"""CLI entrypoint for site link graph traversal."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any

from sitegraph.crawler import CrawlConfig, Crawler, FetchBackend, Storage, load_config


LOGGER = logging.getLogger("sitegraph.crawl")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Crawl a website breadth-first and export its link graph.",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML crawl config.",
    )
    parser.add_argument(
        "--seed",
        type=str,
        default=None,
        help="Seed URL. Overrides the config seed if provided.",
    )
    parser.add_argument(
        "--output_dir",
        type=Path,
        default=Path("crawl_output"),
        help="Root output directory for links/manifests/logs.",
    )

    parser.add_argument("--max_depth", type=int, default=None)
    parser.add_argument(
        "--backend",
        type=str,
        choices=[backend.value for backend in FetchBackend],
        default=None,
        help="Fetch backend: requests or selenium.",
    )
    parser.add_argument("--timeout_seconds", type=float, default=None)
    parser.add_argument("--user_agent", type=str, default=None)

    parser.add_argument(
        "--include",
        action="append",
        default=[],
        help="Regex a URL must match to be visited (repeatable).",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Regex that excludes matching URLs (repeatable).",
    )
    parser.add_argument(
        "--path_prefix",
        action="append",
        default=[],
        help="Allowed internal path prefix, e.g. /docs/ (repeatable).",
    )
    parser.add_argument(
        "--no_refetch_parents",
        action="store_true",
        help="Do not re-fetch parent pages to fill in missing anchor text.",
    )

    parser.add_argument(
        "--only_visited",
        action="store_true",
        help="Export only links that were visited successfully.",
    )
    parser.add_argument(
        "--print_links_json",
        action="store_true",
        help="Print the exported links JSON in stdout after run.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CrawlConfig:
    if args.config is not None:
        payload = load_config(args.config).to_dict()
    else:
        payload = {}

    if args.seed is not None:
        payload["seed_url"] = args.seed

    if not payload.get("seed_url"):
        raise ValueError("No seed provided. Use --config or --seed.")

    if args.max_depth is not None:
        payload["max_depth"] = args.max_depth
    if args.backend is not None:
        payload["backend"] = args.backend
    if args.timeout_seconds is not None:
        payload["timeout_seconds"] = args.timeout_seconds
    if args.user_agent is not None:
        payload["user_agent"] = args.user_agent

    if args.include:
        payload["include_patterns"] = list(args.include)
    if args.exclude:
        payload["exclude_patterns"] = list(args.exclude)
    if args.path_prefix:
        payload["allowed_path_prefixes"] = list(args.path_prefix)
    if args.no_refetch_parents:
        payload["refetch_parent_anchors"] = False

    return CrawlConfig.from_dict(payload)


def setup_logging(output_dir: Path, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO

    log_dir = output_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "crawl.log"

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    # Driver and connection-pool chatter drowns out per-link messages.
    logging.getLogger("selenium").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def run(config: CrawlConfig, output_dir: Path, *, only_visited: bool = False) -> dict[str, Any]:
    storage = Storage(output_dir)
    storage.save_crawl_config(config)

    with Crawler(config, logger=LOGGER) as crawler:
        crawler.traverse()
        links = crawler.get_links_array(include_only_visited=only_visited)

    exported = storage.save_links(links)
    storage.save_crawl_stats(crawler.stats)

    return {
        "paths": storage.paths,
        "stats": crawler.stats.to_json(),
        "exported": exported,
        "links": links,
    }


def print_summary(result: dict[str, Any], *, print_links_json: bool) -> None:
    paths = result.get("paths", {})
    stats = result.get("stats", {})

    print("\n=== Crawl Complete ===")
    print(f"output_dir: {paths.get('output_dir')}")
    print(f"links: {paths.get('links')}")
    print(f"stats: {paths.get('crawl_stats')}")
    print(f"exported: {result.get('exported')}")

    print("\n--- Core Stats ---")
    for key in ["links_total", "pages_without_title", "pages_without_h1", "duration_seconds"]:
        if key in stats:
            print(f"{key}: {stats[key]}")
    for status, count in stats.get("links_by_status", {}).items():
        print(f"status.{status}: {count}")

    if print_links_json:
        print("\n--- Links JSON ---")
        print(json.dumps(result.get("links", []), indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.output_dir, verbose=args.verbose)

    try:
        config = build_config(args)
    except Exception as exc:
        logging.error("Failed to build config: %s", exc)
        return 2

    logging.info(
        "Starting traversal: seed=%s, max_depth=%d, backend=%s, output_dir=%s",
        config.seed_url,
        config.max_depth,
        config.backend.value,
        args.output_dir,
    )

    try:
        result = run(config, args.output_dir, only_visited=args.only_visited)
    except KeyboardInterrupt:
        logging.error("Interrupted by user")
        return 130
    except Exception:
        logging.exception("Traversal failed")
        return 1

    print_summary(result, print_links_json=args.print_links_json)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
