"""Handler results returned across the trigger boundary."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from carcare.models.notification import DeliveryOutcome


class HandlerStatus(StrEnum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


class SkipReason(StrEnum):
    NO_RECIPIENTS = "no_recipients"
    GROUP_FULL = "group_full"
    ALREADY_SENT = "already_sent"
    NOT_ACCEPTED = "not_accepted"
    NOT_FOUND = "not_found"
    NO_TRIGGER = "no_trigger"


@dataclass(frozen=True, slots=True)
class HandlerResult:
    """Outcome of one trigger invocation.

    Guard failures (group full, invite already sent) are ``SKIPPED`` with
    a :class:`SkipReason` instead of an unobservable no-op.
    """

    status: HandlerStatus
    reason: SkipReason | None = None
    detail: str = ""
    outcomes: tuple[DeliveryOutcome, ...] = field(default_factory=tuple)

    @classmethod
    def applied(cls, detail: str = "", outcomes: list[DeliveryOutcome] | None = None) -> HandlerResult:
        return cls(HandlerStatus.APPLIED, detail=detail, outcomes=tuple(outcomes or ()))

    @classmethod
    def skipped(cls, reason: SkipReason, detail: str = "") -> HandlerResult:
        return cls(HandlerStatus.SKIPPED, reason=reason, detail=detail)

    @classmethod
    def failed(cls, detail: str) -> HandlerResult:
        return cls(HandlerStatus.FAILED, detail=detail)

    @property
    def ok(self) -> bool:
        return self.status != HandlerStatus.FAILED
