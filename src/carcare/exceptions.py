"""Custom exception hierarchy for carcare."""

from __future__ import annotations


class CarCareError(Exception):
    """Base exception for all carcare errors."""


class CarCareConfigError(CarCareError):
    """Invalid or missing configuration."""


class CarCareStoreError(CarCareError):
    """Key/value store read or write failure (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        path: str = "",
        status_code: int | None = None,
    ) -> None:
        self.path = path
        self.status_code = status_code
        super().__init__(message)


class CarCareTransportError(CarCareError):
    """Push delivery transport failure for a whole batch.

    Per-token failures are not raised; they are reported as
    :class:`carcare.models.DeliveryOutcome` values.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)
