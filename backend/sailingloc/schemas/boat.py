"""Pydantic schemas for boat listings."""
from __future__ import annotations

import json
import uuid
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def normalize_equipment(value: Any) -> list[str]:
    """Accept equipment as a list, JSON array text or comma separated text."""
    if value is None:
        return []
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError:
                decoded = None
            if isinstance(decoded, list):
                return normalize_equipment(decoded)
        return [item.strip() for item in text.split(",") if item.strip()]
    if isinstance(value, (list, tuple, set)):
        items: list[str] = []
        for item in value:
            label = str(item).strip()
            if label and label not in items:
                items.append(label)
        return items
    raise ValueError("equipment must be a list or a comma separated string")


class BoatBase(BaseModel):
    """Shared boat fields."""

    name: str = Field(min_length=1, max_length=200)
    boat_type: str | None = None
    destination: str | None = None
    capacity: int | None = Field(default=None, ge=1)
    daily_price: Decimal = Field(gt=Decimal("0"))
    description: str | None = None
    equipment: list[str] = Field(default_factory=list)

    @field_validator("equipment", mode="before")
    @classmethod
    def _normalize_equipment(cls, value: Any) -> list[str]:
        return normalize_equipment(value)


class BoatCreate(BoatBase):
    """Payload for listing a boat."""


class BoatUpdate(BaseModel):
    """Mutable boat fields."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    boat_type: str | None = None
    destination: str | None = None
    capacity: int | None = Field(default=None, ge=1)
    daily_price: Decimal | None = Field(default=None, gt=Decimal("0"))
    description: str | None = None
    equipment: list[str] | None = None
    is_active: bool | None = None

    @field_validator("equipment", mode="before")
    @classmethod
    def _normalize_equipment(cls, value: Any) -> list[str] | None:
        if value is None:
            return None
        return normalize_equipment(value)


class BoatRead(BoatBase):
    """Serialized boat representation."""

    id: uuid.UUID
    owner_id: uuid.UUID
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
