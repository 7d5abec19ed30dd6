"""Consolidation-side view of orders and the labels shown on the consolidation UI."""

from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, Field, field_validator

from fulfillment_exceptions.models.timestamps import as_utc


class ConsolidatableOrderItem(BaseModel):
    """Item in consolidation. ``id`` carries the WMS pick id as text."""

    id: str
    last_update: datetime
    placed: bool = False

    @field_validator("last_update")
    @classmethod
    def _normalize_last_update(cls, value: datetime) -> datetime:
        return as_utc(value)


class ConsolidatableOrder(BaseModel):
    items: List[ConsolidatableOrderItem] = Field(default_factory=list)


class LabelText(str, Enum):
    """Well-known consolidation labels."""

    PICKED = "Picked"
    REPICK_PENDING = "Repick (Pending)"
    REPICKED_IN_FLIGHT = "Repicked (In Flight)"
    REPICKED_COMPLETE = "Repicked (Complete)"
    OUT = "Out"
    PARTIAL = "Partial"


class Label(BaseModel):
    """Write-only presentation state pushed to the consolidation UI."""

    model_config = {"frozen": True}

    text: str

    @classmethod
    def of(cls, text: "LabelText | str") -> "Label":
        return cls(text=text.value if isinstance(text, LabelText) else text)
