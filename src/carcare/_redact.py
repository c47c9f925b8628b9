"""Log-safe rendering of device tokens and request bodies.

Device push tokens are bearer credentials for a user's phone and the FCM
access token authorizes sending to any of them. Tokens are shown as a
short prefix so log lines for the same device can still be correlated;
keys and secrets are replaced outright.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

_TOKEN_PREFIX = 8
_MAX_DEPTH = 16

#: Keys whose value is one device token or a list of them.
_TOKEN_KEYS = frozenset({"token", "tokens"})

#: Keys whose value is a secret and is never shown.
_SECRET_KEYS = frozenset({"auth", "authorization", "access_token"})


def redact_token(token: str | None) -> str:
    """Return a short, log-safe prefix of a device token."""
    if not token:
        return "<none>"
    if len(token) <= _TOKEN_PREFIX:
        return "<redacted>"
    return f"{token[:_TOKEN_PREFIX]}…"


def _mask_tokens(value: Any) -> Any:
    if isinstance(value, str):
        return redact_token(value)
    if isinstance(value, (list, tuple)):
        return [redact_token(item) if isinstance(item, str) else "<redacted>" for item in value]
    return "<redacted>"


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a copy of a JSON-like *value* with tokens and secrets masked.

    Pydantic models are dumped first. Strings longer than *max_string*
    are cut.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if isinstance(value, BaseModel):
        value = value.model_dump(exclude_none=True)

    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for key, item in value.items():
            name = str(key)
            if name.lower() in _SECRET_KEYS:
                redacted[name] = "<redacted>"
            elif name.lower() in _TOKEN_KEYS:
                redacted[name] = _mask_tokens(item)
            else:
                redacted[name] = redact_for_log(item, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, (list, tuple)):
        return [redact_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value]

    return value
