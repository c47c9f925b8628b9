"""High-level entry point wiring store, transport and handlers."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from carcare._transport import AccessToken, FcmTransport, PushTransport
from carcare.config import CarCareConfig
from carcare.events import StoreWriteEvent
from carcare.exceptions import CarCareConfigError, CarCareError
from carcare.fanout import NotificationFanoutDispatcher
from carcare.groups import GroupMembershipCoordinator
from carcare.messages import MessageNotifier
from carcare.models.result import HandlerResult
from carcare.proximity import NeighborGraphMaintainer
from carcare.pruning import TokenPruner
from carcare.store.base import Store
from carcare.store.rest import RestStore
from carcare.triggers import TriggerKind, TriggerRouter

_logger = logging.getLogger(__name__)


class CarCareFunctions:
    """Handles store write events for the CarCare app.

    The store and push transport are created once and reused for every
    event; handlers keep no state between invocations.

    Usage::

        async with CarCareFunctions(CarCareConfig.from_env()) as functions:
            result = await functions.handle(
                StoreWriteEvent(path="users/u1/coords", after={"lat": 52.23, "lon": 21.01})
            )

    Passing both ``store`` and ``transport`` makes the instance usable
    without entering the context manager.
    """

    def __init__(
        self,
        config: CarCareConfig,
        *,
        store: Store | None = None,
        transport: PushTransport | None = None,
        session: aiohttp.ClientSession | None = None,
        access_token: AccessToken | None = None,
    ) -> None:
        self._config = config
        self._access_token = access_token if access_token is not None else config.fcm_access_token
        self._store = store
        self._transport = transport
        self._external_session = session is not None
        self._http_session = session
        self._router: TriggerRouter | None = None
        if store is not None and transport is not None:
            self._build()

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> CarCareFunctions:
        if self._store is None or self._transport is None:
            if self._store is None and not self._config.database_url:
                raise CarCareConfigError("database_url is required when no store is given")
            if self._transport is None and not (self._config.fcm_project_id and self._access_token):
                raise CarCareConfigError("fcm_project_id and fcm_access_token are required when no transport is given")
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            if self._store is None:
                self._store = RestStore(
                    self._config.database_url,
                    self._http_session,
                    auth=self._config.database_auth,
                )
            if self._transport is None:
                assert self._config.fcm_project_id and self._access_token  # noqa: S101
                self._transport = FcmTransport(
                    self._config.fcm_project_id,
                    self._access_token,
                    self._http_session,
                    base_url=self._config.fcm_base_url,
                )
            self._build()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def _build(self) -> None:
        assert self._store is not None and self._transport is not None  # noqa: S101
        store = self._store
        dispatcher = NotificationFanoutDispatcher(self._transport, TokenPruner(store))
        self.maintainer = NeighborGraphMaintainer(store, radius_km=self._config.nearby_radius_km)
        self.groups = GroupMembershipCoordinator(store, dispatcher, self._config)
        self.messages = MessageNotifier(store, dispatcher, self._config)
        self.dispatcher = dispatcher

        router = TriggerRouter()
        router.register(
            "messages/{ts}",
            lambda p: self.messages.on_message_write(p["ts"]),
            name="sendMessageNotification",
        )
        router.register(
            "voices/{ts}",
            lambda p: self.messages.on_voice_write(p["ts"]),
            name="sendVoiceNotification",
        )
        router.register(
            "users/{userId}/coords",
            lambda p: self.maintainer.on_coordinate_write(p["userId"]),
            name="updateNearby",
        )
        router.register(
            "groups/{groupId}/invited/{memberId}/wasAccepted",
            lambda p: self.groups.on_invite_accepted_write(p["groupId"], p["memberId"]),
            kind=TriggerKind.CREATE,
            name="acceptGroupInvite",
        )
        router.register(
            "groups/{groupId}/invited/{memberId}/wasSend",
            lambda p: self.groups.on_invite_send_write(p["groupId"], p["memberId"]),
            kind=TriggerKind.CREATE,
            name="sendGroupInvite",
        )
        self._router = router

    def _require_router(self) -> TriggerRouter:
        if self._router is None:
            raise CarCareError("Functions not initialized. Use 'async with CarCareFunctions(...) as functions:'")
        return self._router

    @property
    def router(self) -> TriggerRouter:
        return self._require_router()

    @property
    def store(self) -> Store:
        if self._store is None:
            raise CarCareError("Functions not initialized")
        return self._store

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    async def handle(self, event: StoreWriteEvent) -> HandlerResult:
        """Route one write event to its handler and return the outcome."""
        result = await self._require_router().handle(event)
        if not result.ok:
            _logger.error("Handling %s failed: %s", event.path, result.detail)
        return result

    async def handle_write(self, path: str, after: Any, *, before: Any = None) -> HandlerResult:
        """Shortcut for :meth:`handle` with a freshly built event."""
        return await self.handle(StoreWriteEvent(path=path, before=before, after=after))
