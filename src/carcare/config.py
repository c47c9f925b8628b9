"""Runtime configuration for carcare."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from carcare._constants import (
    FCM_BASE_URL,
    GROUP_CAPACITY,
    INVITE_BODY,
    NEARBY_RADIUS_KM,
    NOTIFICATION_TITLE,
    VOICE_BODY,
)
from carcare.exceptions import CarCareConfigError


@dataclasses.dataclass(frozen=True)
class CarCareConfig:
    """Handler configuration.

    Parameters
    ----------
    database_url : str
        Base URL of the Realtime Database (e.g.
        ``"https://carcare-1234.firebaseio.com"``). Only required when
        :class:`carcare.app.CarCareFunctions` builds its own REST store.
    database_auth : str or None
        Database secret or access token appended as ``?auth=``.
    fcm_project_id : str or None
        Firebase project id used in the FCM HTTP v1 send URL. Only
        required when the default push transport is used.
    fcm_access_token : str or None
        OAuth 2 bearer token with the ``firebase.messaging`` scope. A
        refreshing provider can be passed to
        :class:`carcare.app.CarCareFunctions` instead.
    fcm_base_url : str
        FCM API root.
    nearby_radius_km : float
        Proximity threshold in kilometers. Peers exactly at the radius
        are included.
    group_capacity : int
        Maximum number of entries in a group's ``members`` list.
    notification_title : str
        Title used for message, voice and invite notifications.
    voice_body : str
        Fixed body of voice-clip notifications.
    invite_body : str
        Fixed body of group invite notifications.
    click_action : str or None
        Optional ``click_action`` attached to every notification.
    """

    database_url: str = ""
    database_auth: str | None = None
    fcm_project_id: str | None = None
    fcm_access_token: str | None = None
    fcm_base_url: str = FCM_BASE_URL
    nearby_radius_km: float = NEARBY_RADIUS_KM
    group_capacity: int = GROUP_CAPACITY
    notification_title: str = NOTIFICATION_TITLE
    voice_body: str = VOICE_BODY
    invite_body: str = INVITE_BODY
    click_action: str | None = None

    def __post_init__(self) -> None:
        if self.nearby_radius_km < 0:
            raise CarCareConfigError(f"nearby_radius_km must be >= 0, got {self.nearby_radius_km}")
        if self.group_capacity < 0:
            raise CarCareConfigError(f"group_capacity must be >= 0, got {self.group_capacity}")

    @classmethod
    def from_env(cls, **overrides: Any) -> CarCareConfig:
        """Create configuration from ``CARCARE_*`` environment variables.

        Explicit keyword arguments override environment values.

        Raises
        ------
        CarCareConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "CARCARE_DATABASE_URL": "database_url",
            "CARCARE_DATABASE_AUTH": "database_auth",
            "CARCARE_FCM_PROJECT_ID": "fcm_project_id",
            "CARCARE_FCM_ACCESS_TOKEN": "fcm_access_token",
            "CARCARE_FCM_BASE_URL": "fcm_base_url",
            "CARCARE_NOTIFICATION_TITLE": "notification_title",
            "CARCARE_VOICE_BODY": "voice_body",
            "CARCARE_INVITE_BODY": "invite_body",
            "CARCARE_CLICK_ACTION": "click_action",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # numeric fields, handled separately
        radius_env = env.get("CARCARE_NEARBY_RADIUS_KM")
        if radius_env is not None and "nearby_radius_km" not in overrides:
            try:
                config_kwargs["nearby_radius_km"] = float(radius_env)
            except ValueError as exc:
                raise CarCareConfigError(f"CARCARE_NEARBY_RADIUS_KM is not a number: {radius_env!r}") from exc

        capacity_env = env.get("CARCARE_GROUP_CAPACITY")
        if capacity_env is not None and "group_capacity" not in overrides:
            try:
                config_kwargs["group_capacity"] = int(capacity_env)
            except ValueError as exc:
                raise CarCareConfigError(f"CARCARE_GROUP_CAPACITY is not an integer: {capacity_env!r}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
