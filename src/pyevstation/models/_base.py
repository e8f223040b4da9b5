"""Base model for records pushed by the realtime store.

Every store record model inherits from :class:`EvBaseModel` which
provides:

* ``alias_generator=to_camel`` so camelCase store keys map
  automatically to snake_case fields.
* A ``model_validator(mode="before")`` that strips sentinel values
  (``None``, ``""``, ``"--"``, NaN) so the field default is used.
* A ``raw`` dict that captures the original payload.
* :meth:`EvBaseModel.from_store`, which turns "malformed" into "absent"
  instead of raising.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

_logger = logging.getLogger(__name__)

# Sentinel strings devices write for "not available".
_SENTINELS = frozenset({"", "--", "NaN", "nan", "null"})


class EvBaseModel(BaseModel):
    """Base for realtime store record models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)
    """Original store payload."""

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_store_values(cls, values: Any) -> Any:
        """Strip sentinel values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        original = dict(values)
        cleaned = EvBaseModel._clean_dict(original)
        # Keep an explicitly provided raw= (keyword construction).
        if "raw" not in values:
            cleaned["raw"] = original
        return cleaned

    @classmethod
    def from_store(cls, value: Any, *, path: str = "", **extra: Any) -> Self | None:
        """Parse a pushed store value.

        ``None`` and values that fail validation both yield ``None``; the
        latter is logged at DEBUG as a malformed payload.  *extra* fields
        (e.g. the record key) are merged under the payload.
        """
        if value is None:
            return None
        if not isinstance(value, dict):
            _logger.debug("Malformed payload at %s: expected object, got %s", path or cls.__name__, type(value).__name__)
            return None
        try:
            return cls.model_validate({**extra, **value})
        except ValidationError as exc:
            _logger.debug("Malformed payload at %s: %s", path or cls.__name__, exc)
            return None
