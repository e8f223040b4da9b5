"""Card bindings (``rfidMap/{cardId}``) and user profiles (``users/{userId}``)."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pyevstation.ingestion.normalize import safe_float, safe_str
from pyevstation.models._base import EvBaseModel


def parse_user_id(value: Any) -> str | None:
    """Parse an ``rfidMap/{cardId}`` push; the record is a bare user id string."""
    if isinstance(value, (dict, list, bool)):
        return None
    return safe_str(value)


class RfidBinding(EvBaseModel):
    """Physical card id bound to a stable user id."""

    card_id: str
    user_id: str


class UserProfile(EvBaseModel):
    """Identity record of a card holder."""

    user_id: str | None = Field(default=None, validation_alias=AliasChoices("user_id", "userId", "uid"))
    name: str | None = None
    email: str | None = None
    card_id: str | None = Field(default=None, validation_alias=AliasChoices("card_id", "cardId"))
    updated_ts: float | None = Field(default=None, validation_alias=AliasChoices("updated_ts", "updatedTs"))

    @field_validator("user_id", "name", "email", "card_id", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("updated_ts", mode="before")
    @classmethod
    def _coerce_float(cls, value: Any) -> float | None:
        return safe_float(value)

    @property
    def display_name(self) -> str | None:
        return self.name or self.user_id
