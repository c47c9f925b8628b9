"""Notification payload and per-token delivery outcomes."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from carcare._constants import PERMANENT_TOKEN_ERRORS


class NotificationPayload(BaseModel):
    """What the push transport delivers to every token in a batch."""

    model_config = ConfigDict(frozen=True)

    title: str
    body: str
    tag: str | None = None
    """Client-side dedup/grouping key."""

    click_action: str | None = None
    data: dict[str, str] = Field(default_factory=dict)
    """Data-channel mirror of ``tag`` for platforms that require it."""

    def notification_dict(self) -> dict[str, Any]:
        """Cross-platform ``notification`` block; tag and click action are per platform."""
        return {"title": self.title, "body": self.body}


class DeliveryOutcome(BaseModel):
    """Result of delivering one payload to one token."""

    model_config = ConfigDict(frozen=True)

    token: str
    error_code: str | None = None
    message_id: str | None = None

    @property
    def success(self) -> bool:
        return self.error_code is None

    @property
    def is_permanent_failure(self) -> bool:
        """Whether the token will never succeed again and should be pruned."""
        return self.error_code in PERMANENT_TOKEN_ERRORS
