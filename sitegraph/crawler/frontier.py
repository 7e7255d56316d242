"""Global link table and the per-depth frontier built during traversal."""

from __future__ import annotations

from typing import Iterator

from .link import Link


class LinkTable:
    """Mapping from canonical key to the single Link record for that key.

    Insertion order is preserved so result output is deterministic.
    """

    def __init__(self) -> None:
        self._links: dict[str, Link] = {}

    def add(self, link: Link) -> Link:
        """Register `link` unless its key is taken; return the record held."""

        existing = self._links.get(link.canonical_key)
        if existing is not None:
            return existing
        self._links[link.canonical_key] = link
        return link

    def get(self, key: str) -> Link | None:
        return self._links.get(key)

    def __getitem__(self, key: str) -> Link:
        return self._links[key]

    def __contains__(self, key: object) -> bool:
        return key in self._links

    def __iter__(self) -> Iterator[Link]:
        return iter(self._links.values())

    def __len__(self) -> int:
        return len(self._links)

    def keys(self) -> list[str]:
        return list(self._links)

    def items(self) -> list[tuple[str, Link]]:
        return list(self._links.items())


class DepthFrontier:
    """Children discovered per depth, grouped under the page that linked them."""

    def __init__(self) -> None:
        self._by_depth: dict[int, dict[str, list[str]]] = {}

    def add(self, depth: int, parent_key: str, child_key: str) -> bool:
        """Record `child_key` under `parent_key` at `depth`; duplicates are ignored."""

        children = self._by_depth.setdefault(depth, {}).setdefault(parent_key, [])
        if child_key in children:
            return False
        children.append(child_key)
        return True

    def parents_at(self, depth: int) -> dict[str, list[str]]:
        return self._by_depth.get(depth, {})

    def has_depth(self, depth: int) -> bool:
        return bool(self._by_depth.get(depth))

    def depths(self) -> list[int]:
        return sorted(self._by_depth)

    def snapshot(self) -> dict[str, dict[str, int]]:
        """Return parent/child counts per depth for stats reporting."""

        return {
            str(depth): {
                "parents": len(parents),
                "children": sum(len(children) for children in parents.values()),
            }
            for depth, parents in sorted(self._by_depth.items())
        }


__all__ = [
    "DepthFrontier",
    "LinkTable",
]
