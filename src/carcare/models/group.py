"""Group records: invitations and bounded member lists."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from carcare.models._base import CarCareModel, as_record_list, safe_str
from carcare.models.user import User


class Invitation(CarCareModel):
    """Per-candidate invite flags stored under ``groups/{g}/invited/{m}``."""

    was_send: bool = False
    was_accepted: bool = False


class MemberSnapshot(CarCareModel):
    """Denormalized user snapshot kept in ``groups/{g}/members``."""

    id: str
    model: str | None = None
    nr: str | None = None
    token: str | None = None
    was_accepted: bool | None = None

    @field_validator("model", "nr", "token", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> str | None:
        return safe_str(value)

    @classmethod
    def from_user(cls, user: User, *, was_accepted: bool | None = None) -> MemberSnapshot:
        return cls(
            id=user.id,
            model=user.model,
            nr=user.nr,
            token=user.token,
            was_accepted=was_accepted,
        )


class Group(CarCareModel):
    """A record under ``groups/{id}``."""

    id: str
    owner: str | None = None
    invited: dict[str, Invitation] = Field(default_factory=dict)
    members: list[MemberSnapshot] = Field(default_factory=list)

    @field_validator("owner", mode="before")
    @classmethod
    def _coerce_owner(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("invited", mode="before")
    @classmethod
    def _coerce_invited(cls, value: Any) -> dict[str, Any]:
        if not isinstance(value, dict):
            return {}
        return {str(key): item for key, item in value.items() if isinstance(item, dict)}

    @field_validator("members", mode="before")
    @classmethod
    def _coerce_members(cls, value: Any) -> list[Any]:
        return as_record_list(value)

    @classmethod
    def from_record(cls, group_id: str, record: Any) -> Group:
        data = dict(record) if isinstance(record, dict) else {}
        data["id"] = group_id
        return cls.model_validate(data)

    def invitation(self, candidate_id: str) -> Invitation:
        return self.invited.get(candidate_id) or Invitation()

    def has_member(self, candidate_id: str) -> bool:
        return any(member.id == candidate_id for member in self.members)
