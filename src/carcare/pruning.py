"""Removal of device tokens the provider reports as permanently invalid."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence

from carcare._redact import redact_token
from carcare.models.notification import DeliveryOutcome
from carcare.store.base import Store, split_path

_logger = logging.getLogger(__name__)

#: Maps ``(index, token)`` of a dispatched token to the store path it was
#: read from, or ``None`` when the origin is unknown.
Locator = Callable[[int, str], str | None] | Sequence[str | None]


def locate(locator: Locator, index: int, token: str) -> str | None:
    if callable(locator):
        return locator(index, token)
    return locator[index] if index < len(locator) else None


def _is_flag_entry(path: str, current: object, token: str) -> bool:
    """Whether *path* is a ``{token: true}`` set entry for *token*."""
    segments = split_path(path)
    return current is True and bool(segments) and segments[-1] == token


class TokenPruner:
    """Deletes permanently failing tokens at the path they came from.

    A removal is delete-if-present: the path is only deleted while it still
    holds the failing token, so a token refreshed by the client in the
    meantime survives, and a second removal of the same path is a no-op.
    """

    def __init__(self, store: Store) -> None:
        self._store = store

    async def prune(
        self,
        outcomes: Sequence[DeliveryOutcome],
        tokens: Sequence[str],
        locator: Locator,
    ) -> list[str]:
        """Remove every token whose outcome is a permanent failure.

        All removals run concurrently; the call returns once each one has
        settled. Failed removals are logged, not raised.

        Returns
        -------
        list[str]
            Store paths that were deleted.
        """
        targets: list[tuple[str, str]] = []
        for index, outcome in enumerate(outcomes):
            if not outcome.is_permanent_failure:
                continue
            token = tokens[index] if index < len(tokens) else outcome.token
            path = locate(locator, index, token)
            if path is None:
                _logger.warning("No store location for invalid token %s; not pruned", redact_token(token))
                continue
            targets.append((path, token))

        if not targets:
            return []

        results = await asyncio.gather(
            *(self._remove(path, token) for path, token in targets),
            return_exceptions=True,
        )

        pruned: list[str] = []
        for (path, token), result in zip(targets, results, strict=True):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                _logger.warning("Failed to remove token %s at %s: %s", redact_token(token), path, result)
                continue
            if result:
                pruned.append(path)
        return pruned

    async def _remove(self, path: str, token: str) -> bool:
        current = await self._store.get(path)
        if current is None:
            return False
        if current != token and not _is_flag_entry(path, current, token):
            _logger.debug("Token at %s changed since dispatch; keeping it", path)
            return False
        await self._store.delete(path)
        _logger.info("Removed invalid token %s at %s", redact_token(token), path)
        return True
