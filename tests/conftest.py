from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

import pytest

from carcare.models.notification import DeliveryOutcome, NotificationPayload


@dataclass
class RecordingTransport:
    """Push transport double: records each batch, fails tokens listed in ``errors``."""

    errors: dict[str, str] = field(default_factory=dict)
    calls: list[tuple[list[str], NotificationPayload]] = field(default_factory=list)

    async def send_to_device(self, tokens: Sequence[str], payload: NotificationPayload) -> list[DeliveryOutcome]:
        self.calls.append((list(tokens), payload))
        return [DeliveryOutcome(token=token, error_code=self.errors.get(token)) for token in tokens]


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()
