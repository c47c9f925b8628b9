"""Store write events delivered by the trigger source."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from carcare.store.base import join_path


class StoreWriteEvent(BaseModel):
    """A write observed at one store path.

    ``before`` and ``after`` are the node values around the write; ``None``
    means the node did not exist.
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Store path that was written, e.g. users/u1/coords")
    before: Any = None
    after: Any = None
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("path")
    @classmethod
    def _normalize_path(cls, value: str) -> str:
        path = join_path(value)
        if not path:
            raise ValueError("path must be non-empty")
        return path

    @field_validator("observed_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @property
    def is_create(self) -> bool:
        return self.before is None and self.after is not None

    @property
    def is_delete(self) -> bool:
        return self.before is not None and self.after is None
