"""Base model for records read from the key/value store.

Every stored record model inherits from :class:`CarCareModel` which
provides:

* ``alias_generator=to_camel`` so the clients' camelCase keys
  (``wasSend``, ``wasAccepted``) map to snake_case fields.
* A ``model_validator(mode="before")`` that drops ``None`` values so the
  field default is used instead.
* :meth:`CarCareModel.to_store` which dumps the record back in the
  store's key style.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def as_record_list(value: Any) -> list[Any]:
    """Coerce a stored list into a Python list.

    JSON tree stores return sparse arrays as ``{"0": ..., "2": ...}``
    mappings and drop empty arrays entirely. Entries that are not records
    with an ``id`` are discarded.
    """
    if value is None:
        return []
    if isinstance(value, dict):
        def _index(key: Any) -> tuple[int, str]:
            text = str(key)
            return (int(text), text) if text.isdigit() else (2**31, text)

        items = [value[k] for k in sorted(value, key=_index)]
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        return []
    return [item for item in items if isinstance(item, BaseModel) or (isinstance(item, dict) and item.get("id"))]


class CarCareModel(BaseModel):
    """Base for records stored under ``users/``, ``groups/``, ``messages/``."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return {key: value for key, value in values.items() if value is not None}

    def to_store(self) -> dict[str, Any]:
        """Dump using store keys, omitting unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)
