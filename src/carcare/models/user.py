"""User directory records and derived neighbour edges."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, ValidationError, field_validator

from carcare.models._base import CarCareModel, as_record_list, safe_float, safe_str


class Coords(CarCareModel):
    """A geographic position in degrees."""

    lat: float = Field(ge=-90.0, le=90.0, validation_alias=AliasChoices("lat", "latitude"))
    lon: float = Field(ge=-180.0, le=180.0, validation_alias=AliasChoices("lon", "lng", "longitude"))

    @classmethod
    def parse(cls, value: Any) -> Coords | None:
        """Parse a stored ``coords`` node, returning ``None`` when unusable."""
        if isinstance(value, Coords):
            return value
        if not isinstance(value, dict):
            return None
        lat = safe_float(value.get("lat", value.get("latitude")))
        lon = safe_float(value.get("lon", value.get("lng", value.get("longitude"))))
        if lat is None or lon is None:
            return None
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
            return None
        return cls(lat=lat, lon=lon)


class NeighborEdge(CarCareModel):
    """Denormalized snapshot of a nearby peer at computation time.

    Distance and descriptive fields may go stale until the next
    recompute of either endpoint.
    """

    id: str
    distance: float
    model: str | None = None
    nr: str | None = None
    color: str | None = None
    token: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        return safe_str(value) if value is not None else value


class User(CarCareModel):
    """A record under ``users/{id}``.

    ``nearby`` is derived state owned by
    :class:`carcare.proximity.NeighborGraphMaintainer`.
    """

    id: str
    coords: Coords | None = None
    model: str | None = None
    nr: str | None = None
    color: str | None = None
    token: str | None = None
    nearby: list[NeighborEdge] = Field(default_factory=list)

    @field_validator("coords", mode="before")
    @classmethod
    def _parse_coords(cls, value: Any) -> Coords | None:
        return Coords.parse(value)

    @field_validator("model", "nr", "color", "token", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("nearby", mode="before")
    @classmethod
    def _coerce_nearby(cls, value: Any) -> list[NeighborEdge]:
        """Keep the valid edges; an unreadable entry is dropped on its own."""
        edges: list[NeighborEdge] = []
        for item in as_record_list(value):
            if isinstance(item, NeighborEdge):
                edges.append(item)
                continue
            try:
                edges.append(NeighborEdge.model_validate(item))
            except ValidationError:
                continue
        return edges

    @classmethod
    def from_record(cls, user_id: str, record: Any) -> User:
        """Build a user from the raw value stored at ``users/{user_id}``."""
        data = dict(record) if isinstance(record, dict) else {}
        data["id"] = user_id
        return cls.model_validate(data)

    def to_edge(self, distance: float) -> NeighborEdge:
        return NeighborEdge(
            id=self.id,
            distance=distance,
            model=self.model,
            nr=self.nr,
            color=self.color,
            token=self.token,
        )
