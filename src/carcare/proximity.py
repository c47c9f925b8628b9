"""Symmetric "nearby users" relation maintained from coordinate writes.

Every coordinate write triggers a read-recompute-write cycle for the
writing user and the peers whose ``nearby`` list mentions (or should
mention) it. ``nearby`` lists are written by this module only.

Two overlapping recomputes for users that are neighbours of the same peer
both rewrite that peer's list from what they read, so one reciprocal edge
can be lost. The asymmetry lasts until the next coordinate write of either
endpoint; there is no cross-invocation lock.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Iterator
from typing import Any

from pydantic import ValidationError

from carcare._constants import NEARBY_RADIUS_KM
from carcare.geo import distance, within_radius
from carcare.models.result import HandlerResult
from carcare.models.user import Coords, NeighborEdge, User
from carcare.store.base import Store, join_path

_logger = logging.getLogger(__name__)


class NeighborSet:
    """Ordered set of :class:`NeighborEdge` keyed by peer id.

    Insertion order is preserved; a peer id appears at most once.
    """

    def __init__(self, edges: Iterable[NeighborEdge] = ()) -> None:
        self._edges: list[NeighborEdge] = []
        self._index: dict[str, int] = {}
        for edge in edges:
            self.add(edge)

    def __contains__(self, peer_id: object) -> bool:
        return peer_id in self._index

    def __len__(self) -> int:
        return len(self._edges)

    def __iter__(self) -> Iterator[NeighborEdge]:
        return iter(self._edges)

    def get(self, peer_id: str) -> NeighborEdge | None:
        position = self._index.get(peer_id)
        return None if position is None else self._edges[position]

    def add(self, edge: NeighborEdge) -> bool:
        """Append *edge* unless its peer is already present."""
        if edge.id in self._index:
            return False
        self._index[edge.id] = len(self._edges)
        self._edges.append(edge)
        return True

    def upsert(self, edge: NeighborEdge) -> bool:
        """Append *edge*, or replace the existing entry for its peer in place.

        Returns ``True`` when the set changed.
        """
        position = self._index.get(edge.id)
        if position is None:
            return self.add(edge)
        if self._edges[position] == edge:
            return False
        self._edges[position] = edge
        return True

    def discard(self, peer_id: str) -> bool:
        position = self._index.pop(peer_id, None)
        if position is None:
            return False
        del self._edges[position]
        self._index = {edge.id: i for i, edge in enumerate(self._edges)}
        return True

    def to_list(self) -> list[dict[str, Any]]:
        return [edge.to_store() for edge in self._edges]


def load_directory(raw: Any) -> dict[str, User]:
    """Parse the ``users`` node into users keyed by id.

    Records that fail validation are skipped with a warning so one corrupt
    user does not block recomputes for everybody else.
    """
    if not isinstance(raw, dict):
        return {}
    directory: dict[str, User] = {}
    for key, record in raw.items():
        if not isinstance(record, dict):
            continue
        try:
            directory[str(key)] = User.from_record(str(key), record)
        except ValidationError as exc:
            _logger.warning("Skipping malformed user record %s: %s", key, exc.errors()[:1])
    return directory


def _stored(edges: list[NeighborEdge]) -> list[dict[str, Any]]:
    return [edge.to_store() for edge in edges]


class NeighborGraphMaintainer:
    """Recomputes reciprocal ``nearby`` edges after a coordinate write."""

    def __init__(self, store: Store, *, radius_km: float = NEARBY_RADIUS_KM) -> None:
        self._store = store
        self._radius_km = radius_km

    async def on_coordinate_write(self, user_id: str) -> HandlerResult:
        """Handle a write (or delete) of ``users/{user_id}/coords``.

        The coordinates are read back from the store so the freshest value
        wins when writes arrive out of order.
        """
        directory_raw, coords_raw = await asyncio.gather(
            self._store.get("users"),
            self._store.get(join_path("users", user_id, "coords")),
        )
        directory = load_directory(directory_raw)
        coords = Coords.parse(coords_raw)

        if coords is None:
            return await self._purge(user_id, directory)
        return await self._recompute(user_id, coords, directory)

    async def _purge(self, user_id: str, directory: dict[str, User]) -> HandlerResult:
        writes: dict[str, list[dict[str, Any]]] = {}
        for peer in directory.values():
            if peer.id == user_id:
                continue
            nearby = NeighborSet(peer.nearby)
            if nearby.discard(user_id) or len(nearby) != len(peer.nearby):
                writes[join_path("users", peer.id, "nearby")] = nearby.to_list()

        writes[join_path("users", user_id, "nearby")] = []
        await self._persist(writes)

        _logger.info("Coordinates of %s cleared; purged from %d peer lists", user_id, len(writes) - 1)
        return HandlerResult.applied(f"purged {user_id} from {len(writes) - 1} peers")

    async def _recompute(self, user_id: str, coords: Coords, directory: dict[str, User]) -> HandlerResult:
        me = directory.get(user_id) or User(id=user_id)
        me = me.model_copy(update={"coords": coords})

        own = NeighborSet()
        writes: dict[str, list[dict[str, Any]]] = {}

        for peer in directory.values():
            if peer.id == user_id:
                continue

            peer_nearby = NeighborSet(peer.nearby)
            peer_nearby.discard(peer.id)
            if peer.coords is not None:
                km = distance(coords, peer.coords)
                _logger.debug("distance %s -> %s: %.4f km", user_id, peer.id, km)
                if within_radius(km, self._radius_km):
                    own.add(peer.to_edge(km))
                    peer_nearby.upsert(me.to_edge(km))
                else:
                    peer_nearby.discard(user_id)
            else:
                peer_nearby.discard(user_id)

            updated = peer_nearby.to_list()
            if updated != _stored(peer.nearby):
                writes[join_path("users", peer.id, "nearby")] = updated

        writes[join_path("users", user_id, "nearby")] = own.to_list()
        await self._persist(writes)

        _logger.info(
            "Recomputed nearby for %s: %d neighbours, %d peer lists updated",
            user_id,
            len(own),
            len(writes) - 1,
        )
        return HandlerResult.applied(f"{len(own)} neighbours, {len(writes) - 1} peers updated")

    async def _persist(self, writes: dict[str, list[dict[str, Any]]]) -> None:
        # every list lands in one multi-path write or none does
        await self._store.update(writes)
