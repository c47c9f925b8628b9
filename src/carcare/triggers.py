"""Routing of store write events to handlers by path pattern.

The router is the trigger boundary: whatever a handler raises is logged
and returned as a failed :class:`HandlerResult`.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum

from carcare.events import StoreWriteEvent
from carcare.models.result import HandlerResult, SkipReason
from carcare.store.base import split_path

_logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, str]], Awaitable[HandlerResult]]


class TriggerKind(StrEnum):
    WRITE = "write"
    """Any create, update or delete of the node."""

    CREATE = "create"
    """Only writes where the node did not exist before."""


def match_path(pattern: str, path: str) -> dict[str, str] | None:
    """Match *path* against a ``users/{userId}/coords`` style pattern.

    Returns the captured parameters, or ``None`` when the path does not
    match segment for segment.
    """
    pattern_parts = split_path(pattern)
    path_parts = split_path(path)
    if len(pattern_parts) != len(path_parts):
        return None

    params: dict[str, str] = {}
    for expected, actual in zip(pattern_parts, path_parts, strict=True):
        if expected.startswith("{") and expected.endswith("}"):
            params[expected[1:-1]] = actual
        elif expected != actual:
            return None
    return params


@dataclass(frozen=True, slots=True)
class Trigger:
    name: str
    pattern: str
    kind: TriggerKind
    handler: Handler


class TriggerRouter:
    """Dispatches :class:`StoreWriteEvent` to the first matching trigger."""

    def __init__(self) -> None:
        self._triggers: list[Trigger] = []

    @property
    def triggers(self) -> tuple[Trigger, ...]:
        return tuple(self._triggers)

    def register(
        self,
        pattern: str,
        handler: Handler,
        *,
        kind: TriggerKind = TriggerKind.WRITE,
        name: str | None = None,
    ) -> Trigger:
        trigger = Trigger(name=name or pattern, pattern=pattern, kind=kind, handler=handler)
        self._triggers.append(trigger)
        return trigger

    async def handle(self, event: StoreWriteEvent) -> HandlerResult:
        for trigger in self._triggers:
            params = match_path(trigger.pattern, event.path)
            if params is None:
                continue
            if trigger.kind == TriggerKind.CREATE and not event.is_create:
                _logger.debug("Ignoring non-create write to %s", event.path)
                return HandlerResult.skipped(SkipReason.NO_TRIGGER, f"{event.path} already existed")

            _logger.debug("Trigger %s fired for %s", trigger.name, event.path)
            try:
                result = await trigger.handler(params)
            except Exception as exc:  # noqa: BLE001
                _logger.exception("Trigger %s failed for %s", trigger.name, event.path)
                return HandlerResult.failed(f"{type(exc).__name__}: {exc}")

            _logger.debug("Trigger %s for %s -> %s %s", trigger.name, event.path, result.status, result.reason or "")
            return result

        return HandlerResult.skipped(SkipReason.NO_TRIGGER, event.path)
