"""Message and voice clip records (read-only inputs)."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from carcare.models._base import CarCareModel, safe_str


class Message(CarCareModel):
    """A record under ``messages/{ts}``.

    ``to`` holds the recipients' device tokens: a mapping of key to token,
    a list of tokens, or a single token.
    """

    sender: str | None = Field(default=None, validation_alias=AliasChoices("from", "sender"))
    to: Any = None
    msg: str | None = None

    @field_validator("sender", "msg", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> str | None:
        return safe_str(value)


class VoiceClip(CarCareModel):
    """A record under ``voices/{ts}``."""

    sender: str | None = Field(default=None, validation_alias=AliasChoices("from", "sender"))
    to: Any = None

    @field_validator("sender", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> str | None:
        return safe_str(value)
