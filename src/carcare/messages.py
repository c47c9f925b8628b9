"""Notifications for new messages and voice clips."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from carcare._constants import TAG_KIND_VOICE, build_tag
from carcare.config import CarCareConfig
from carcare.fanout import NotificationFanoutDispatcher
from carcare.models._base import safe_str
from carcare.models.message import Message, VoiceClip
from carcare.models.notification import NotificationPayload
from carcare.models.result import HandlerResult, SkipReason
from carcare.store.base import Store, join_path

_logger = logging.getLogger(__name__)


def collect_tokens(to: Any, base_path: str) -> tuple[list[str], list[str]]:
    """Flatten a ``to`` recipient node into tokens and their store paths.

    Supported shapes: ``{key: token}``, ``{token: true}``, ``[token, ...]``
    and a single token string. Other values are ignored.
    """
    tokens: list[str] = []
    paths: list[str] = []

    if isinstance(to, str):
        if to:
            tokens.append(to)
            paths.append(base_path)
        return tokens, paths

    if isinstance(to, dict):
        items = [(str(key), value) for key, value in to.items()]
    elif isinstance(to, list):
        items = [(str(index), value) for index, value in enumerate(to)]
    else:
        return tokens, paths

    for key, value in items:
        if isinstance(value, str) and value:
            tokens.append(value)
        elif value is True:
            tokens.append(key)
        else:
            continue
        paths.append(join_path(base_path, key))
    return tokens, paths


class MessageNotifier:
    """Handles writes under ``messages/{ts}`` and ``voices/{ts}``."""

    def __init__(
        self,
        store: Store,
        dispatcher: NotificationFanoutDispatcher,
        config: CarCareConfig,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._config = config

    async def on_message_write(self, ts: str) -> HandlerResult:
        """Notify the recipients of ``messages/{ts}``; the body is the message text."""
        base = join_path("messages", ts)
        to_raw, sender_raw, msg_raw = await asyncio.gather(
            self._store.get(join_path(base, "to")),
            self._store.get(join_path(base, "from")),
            self._store.get(join_path(base, "msg")),
        )
        message = Message.model_validate({"from": sender_raw, "to": to_raw, "msg": msg_raw})

        tokens, paths = collect_tokens(message.to, join_path(base, "to"))
        if not tokens:
            _logger.info("There are no notification tokens to send to for message %s", ts)
            return HandlerResult.skipped(SkipReason.NO_RECIPIENTS)

        _logger.debug("Message %s from %s", ts, message.sender)
        payload = NotificationPayload(
            title=self._config.notification_title,
            body=message.msg or "",
            click_action=self._config.click_action,
        )
        outcomes = await self._dispatcher.dispatch(tokens, payload, paths)
        return HandlerResult.applied(f"message {ts} sent to {len(tokens)} tokens", outcomes)

    async def on_voice_write(self, ts: str) -> HandlerResult:
        """Notify the recipients of ``voices/{ts}``.

        The tag carries ``(0, ts, sender model)`` so clients can group
        voice notifications and show which car sent them.
        """
        base = join_path("voices", ts)
        to_raw, sender_raw = await asyncio.gather(
            self._store.get(join_path(base, "to")),
            self._store.get(join_path(base, "from")),
        )
        clip = VoiceClip.model_validate({"from": sender_raw, "to": to_raw})

        tokens, paths = collect_tokens(clip.to, join_path(base, "to"))
        if not tokens:
            _logger.info("There are no notification tokens to send to for voice clip %s", ts)
            return HandlerResult.skipped(SkipReason.NO_RECIPIENTS)

        model = ""
        if clip.sender:
            model = safe_str(await self._store.get(join_path("users", clip.sender, "model"))) or ""

        tag = build_tag(TAG_KIND_VOICE, ts, model)
        payload = NotificationPayload(
            title=self._config.notification_title,
            body=self._config.voice_body,
            tag=tag,
            click_action=self._config.click_action,
            data={"kind": str(TAG_KIND_VOICE), "ts": ts, "model": model, "tag": tag},
        )
        outcomes = await self._dispatcher.dispatch(tokens, payload, paths)
        return HandlerResult.applied(f"voice {ts} sent to {len(tokens)} tokens", outcomes)
