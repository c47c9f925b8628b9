"""Notification fan-out to a batch of device tokens."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from carcare._redact import redact_token
from carcare._transport import PushTransport
from carcare.models.notification import DeliveryOutcome, NotificationPayload
from carcare.pruning import Locator, TokenPruner

_logger = logging.getLogger(__name__)


class NotificationFanoutDispatcher:
    """Sends one payload to a batch of tokens and prunes dead tokens.

    The transport is invoked exactly once per call with the full batch.
    Permanent failures are handed to the :class:`TokenPruner`; any other
    error code is logged and ignored.
    """

    def __init__(self, transport: PushTransport, pruner: TokenPruner) -> None:
        self._transport = transport
        self._pruner = pruner

    async def dispatch(
        self,
        tokens: Sequence[str],
        payload: NotificationPayload,
        locator: Locator,
    ) -> list[DeliveryOutcome]:
        """Deliver *payload* to *tokens*.

        Parameters
        ----------
        tokens : sequence of str
            Device tokens. An empty batch returns without calling the
            transport.
        payload : NotificationPayload
            Notification to deliver.
        locator : callable or sequence
            Maps ``(index, token)`` to the store path each token was read
            from, used to prune invalid tokens.

        Returns
        -------
        list[DeliveryOutcome]
            One outcome per token, in order.
        """
        if not tokens:
            _logger.debug("No tokens to send %r to", payload.title)
            return []

        _logger.info("There are %d tokens to send notifications to", len(tokens))
        outcomes = await self._transport.send_to_device(list(tokens), payload)

        for outcome in outcomes:
            if outcome.success:
                continue
            if outcome.is_permanent_failure:
                _logger.warning(
                    "Failure sending notification to %s: %s (token will be pruned)",
                    redact_token(outcome.token),
                    outcome.error_code,
                )
            else:
                _logger.warning(
                    "Failure sending notification to %s: %s",
                    redact_token(outcome.token),
                    outcome.error_code,
                )

        await self._pruner.prune(outcomes, tokens, locator)
        return outcomes
