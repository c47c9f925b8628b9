"""Structural store interface and path helpers."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class Store(Protocol):
    """Async key/value tree addressed by ``/``-separated paths.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementations concrete. Writes are full-value
    replaces; ``None`` or an empty container removes the node.
    """

    async def get(self, path: str) -> Any:
        ...

    async def set(self, path: str, value: Any) -> None:
        ...

    async def update(self, values: Mapping[str, Any]) -> None:
        """Apply several ``path -> value`` replaces as one atomic write."""
        ...

    async def delete(self, path: str) -> None:
        """Remove a node. Deleting a missing node is a no-op."""
        ...


def split_path(path: str) -> list[str]:
    """Split a store path into segments, ignoring leading/trailing slashes."""
    return [segment for segment in path.strip().split("/") if segment]


def join_path(*segments: str) -> str:
    return "/".join(part for segment in segments for part in split_path(str(segment)))


def is_empty(value: Any) -> bool:
    """JSON tree stores do not keep ``null``, ``{}`` or ``[]`` nodes."""
    return value is None or value == {} or value == []
