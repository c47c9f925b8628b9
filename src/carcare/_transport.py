"""Push delivery transport (FCM HTTP v1) over aiohttp."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

import aiohttp

from carcare._constants import (
    FCM_BASE_URL,
    FCM_ERROR_CODES,
    FCM_SEND_PATH,
    FCM_TOKEN_FIELD,
    INVALID_REGISTRATION_TOKEN,
    UNKNOWN_DELIVERY_ERROR,
    USER_AGENT,
)
from carcare._redact import redact_for_log, redact_token
from carcare.exceptions import CarCareTransportError
from carcare.models.notification import DeliveryOutcome, NotificationPayload

_logger = logging.getLogger(__name__)

#: OAuth 2 bearer token for the FCM scope, or an async callable returning a
#: current one. Minting and refreshing the token is left to the caller.
AccessToken = str | Callable[[], Awaitable[str]]


class PushTransport(Protocol):
    """Structural transport interface used by the fan-out dispatcher.

    Implementations deliver one payload to a batch of opaque device tokens
    and return exactly one :class:`DeliveryOutcome` per token, in order.
    """

    async def send_to_device(
        self,
        tokens: Sequence[str],
        payload: NotificationPayload,
    ) -> list[DeliveryOutcome]:
        ...


def build_fcm_message(token: str, payload: NotificationPayload) -> dict[str, Any]:
    """Build the FCM HTTP v1 ``messages:send`` body for one device.

    ``tag`` and ``click_action`` are platform options in v1: they go to the
    Android notification, and the tag doubles as the APNs collapse id.
    """
    message: dict[str, Any] = {
        "token": token,
        "notification": payload.notification_dict(),
    }
    android_notification: dict[str, str] = {}
    if payload.tag is not None:
        android_notification["tag"] = payload.tag
        message["apns"] = {"headers": {"apns-collapse-id": payload.tag}}
    if payload.click_action is not None:
        android_notification["click_action"] = payload.click_action
    if android_notification:
        message["android"] = {"notification": android_notification}
    if payload.data:
        message["data"] = dict(payload.data)
    return {"message": message}


def _fcm_error_code(error: dict[str, Any]) -> str | None:
    for detail in error.get("details") or []:
        if isinstance(detail, dict) and detail.get("errorCode"):
            return str(detail["errorCode"])
    return None


def _rejects_token_field(error: dict[str, Any]) -> bool:
    for detail in error.get("details") or []:
        if not isinstance(detail, dict):
            continue
        for violation in detail.get("fieldViolations") or []:
            if isinstance(violation, dict) and violation.get("field") == FCM_TOKEN_FIELD:
                return True
    return False


def parse_fcm_error(body: Any) -> str:
    """Map an FCM HTTP v1 error response onto a ``messaging/*`` code.

    ``UNREGISTERED`` and ``INVALID_ARGUMENT`` against ``message.token``
    are the two permanent failures; everything else keeps the token.
    """
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        return UNKNOWN_DELIVERY_ERROR

    code = _fcm_error_code(error) or str(error.get("status") or "")
    if code == "INVALID_ARGUMENT" and _rejects_token_field(error):
        return INVALID_REGISTRATION_TOKEN
    return FCM_ERROR_CODES.get(code, UNKNOWN_DELIVERY_ERROR)


class FcmTransport:
    """Delivers notifications through the FCM HTTP v1 API.

    v1 has no multicast, so a batch is one ``messages:send`` request per
    token, issued concurrently. Per-token rejections become outcomes;
    credential failures and unreachable endpoints fail the whole batch.
    """

    def __init__(
        self,
        project_id: str,
        access_token: AccessToken,
        http_session: aiohttp.ClientSession,
        *,
        base_url: str = FCM_BASE_URL,
    ) -> None:
        self._access_token = access_token
        self._http = http_session
        self._endpoint = base_url.rstrip("/") + FCM_SEND_PATH.format(project_id=project_id)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def _bearer(self) -> str:
        if callable(self._access_token):
            return await self._access_token()
        return self._access_token

    async def send_to_device(
        self,
        tokens: Sequence[str],
        payload: NotificationPayload,
    ) -> list[DeliveryOutcome]:
        if not tokens:
            return []

        headers: dict[str, str] = {
            "authorization": f"Bearer {await self._bearer()}",
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
        }
        results = await asyncio.gather(
            *(self._send_one(token, payload, headers) for token in tokens),
            return_exceptions=True,
        )

        outcomes: list[DeliveryOutcome] = []
        for result in results:
            if isinstance(result, BaseException):
                raise result
            outcomes.append(result)
        return outcomes

    async def _send_one(
        self,
        token: str,
        payload: NotificationPayload,
        headers: dict[str, str],
    ) -> DeliveryOutcome:
        body = build_fcm_message(token, payload)
        _logger.debug("POST %s %s", self._endpoint, redact_for_log(body))

        try:
            async with self._http.post(self._endpoint, data=json.dumps(body), headers=headers) as resp:
                status = resp.status
                text = await resp.text()
        except aiohttp.ClientError as exc:
            raise CarCareTransportError(
                f"Request to {self._endpoint} failed: {exc}",
                endpoint=self._endpoint,
            ) from exc

        try:
            data = json.loads(text) if text else None
        except json.JSONDecodeError:
            data = None

        if status == 200:
            if not isinstance(data, dict):
                raise CarCareTransportError(f"Invalid JSON from FCM: {text[:200]}", endpoint=self._endpoint)
            name = data.get("name")
            return DeliveryOutcome(token=token, message_id=str(name) if name is not None else None)

        error = data.get("error") if isinstance(data, dict) else None
        if status == 401 and not (isinstance(error, dict) and _fcm_error_code(error)):
            raise CarCareTransportError(
                f"FCM rejected the access token: {text[:200]}",
                status_code=status,
                endpoint=self._endpoint,
            )

        code = parse_fcm_error(data)
        _logger.debug("FCM HTTP %d for %s -> %s", status, redact_token(token), code)
        return DeliveryOutcome(token=token, error_code=code)
