"""Deterministic in-memory store.

Behaves like a JSON tree database: reads and writes are deep copies,
empty containers are not stored, and parents emptied by a delete are
pruned.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Mapping
from typing import Any

from carcare.store.base import is_empty, split_path

_logger = logging.getLogger(__name__)


def _child(node: Any, key: str) -> Any:
    if isinstance(node, dict):
        return node.get(key)
    if isinstance(node, list) and key.isdigit():
        index = int(key)
        return node[index] if index < len(node) else None
    return None


def _as_dict(node: Any) -> dict[str, Any]:
    if isinstance(node, dict):
        return node
    if isinstance(node, list):
        return {str(i): item for i, item in enumerate(node) if item is not None}
    return {}


class InMemoryStore:
    """In-memory implementation of :class:`carcare.store.Store`.

    Parameters
    ----------
    data : mapping, optional
        Initial tree (deep-copied).
    latency : float
        Seconds each operation sleeps before touching the tree. ``0``
        still yields to the event loop, so concurrent invocations
        interleave the way they would against a remote store.
    """

    def __init__(self, data: Mapping[str, Any] | None = None, *, latency: float = 0.0) -> None:
        self._root: dict[str, Any] = copy.deepcopy(dict(data)) if data else {}
        self._latency = latency

    # ------------------------------------------------------------------
    # Store protocol
    # ------------------------------------------------------------------

    async def get(self, path: str) -> Any:
        await asyncio.sleep(self._latency)
        return self.peek(path)

    async def set(self, path: str, value: Any) -> None:
        await asyncio.sleep(self._latency)
        self._write(path, value)
        _logger.debug("set %s", path)

    async def update(self, values: Mapping[str, Any]) -> None:
        await asyncio.sleep(self._latency)
        for path, value in values.items():
            self._write(path, value)
        _logger.debug("update %s", sorted(values))

    async def delete(self, path: str) -> None:
        await asyncio.sleep(self._latency)
        self._write(path, None)
        _logger.debug("delete %s", path)

    # ------------------------------------------------------------------
    # Synchronous helpers (fixtures and assertions)
    # ------------------------------------------------------------------

    def peek(self, path: str = "") -> Any:
        """Return a deep copy of the node at *path* without yielding."""
        node: Any = self._root
        for key in split_path(path):
            node = _child(node, key)
            if node is None:
                return None
        return copy.deepcopy(node)

    def _write(self, path: str, value: Any) -> None:
        keys = split_path(path)
        if not keys:
            self._root = {} if is_empty(value) else _as_dict(copy.deepcopy(value))
            return

        if is_empty(value):
            self._remove(keys)
            return

        node = self._root
        for key in keys[:-1]:
            nxt = node.get(key)
            if not isinstance(nxt, dict):
                nxt = _as_dict(nxt)
                node[key] = nxt
            node = nxt
        node[keys[-1]] = copy.deepcopy(value)

    def _remove(self, keys: list[str]) -> None:
        trail: list[tuple[dict[str, Any], str]] = []
        node: Any = self._root
        for key in keys[:-1]:
            nxt = node.get(key) if isinstance(node, dict) else None
            if isinstance(nxt, list):
                nxt = _as_dict(nxt)
                node[key] = nxt
            if not isinstance(nxt, dict):
                return
            trail.append((node, key))
            node = nxt
        if not isinstance(node, dict) or keys[-1] not in node:
            return
        del node[keys[-1]]

        for parent, key in reversed(trail):
            if parent[key]:
                break
            del parent[key]
