# ==== WAREHOUSE MANAGEMENT MODELS ==== #

"""
Warehouse-management (WMS) models: picks, skills, order verifications and
the request/response envelopes exchanged with the WMS client.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Set

from pydantic import BaseModel, Field, field_validator

from fulfillment_exceptions.models.timestamps import as_utc


class PickStatus(str, Enum):
    """WMS pick status. An absent status means the pick was never worked."""

    SUSPENDED = "SUSPENDED"
    WIP = "WIP"
    PICKED = "PICKED"
    ASSIGNED = "ASSIGNED"
    DELIVERED = "DELIVERED"

    @property
    def description(self) -> str:
        return PICK_STATUS_DESCRIPTIONS[self]


PICK_STATUS_DESCRIPTIONS: Dict[PickStatus, str] = {
    PickStatus.SUSPENDED: "Suspended",
    PickStatus.WIP: "Work in Progress",
    PickStatus.PICKED: "Successfully Picked",
    PickStatus.ASSIGNED: "Assigned to Picker",
    PickStatus.DELIVERED: "Delivered to Picker",
}


class Skill(BaseModel):
    """
    Worker capability required to perform a pick.

    ``straggler_skill`` is the specialist capability a pick is re-routed to
    when it has to be repicked.
    """

    model_config = {"frozen": True}

    id: str
    straggler_skill: Optional["Skill"] = None

    @property
    def has_fallback(self) -> bool:
        return self.straggler_skill is not None


Skill.model_rebuild()


class Pick(BaseModel):
    """A unit of picking work for one order item."""

    id: int
    order_item_id: str
    last_update: datetime
    status: Optional[PickStatus] = None
    wms_user_id: Optional[str] = None
    straggled: bool = False
    skill: Skill
    quantity: float = 0.0
    order_number: int
    created_on: datetime
    fulfillment_status: Optional[str] = None

    @field_validator("last_update", "created_on")
    @classmethod
    def _normalize_timestamps(cls, value: datetime) -> datetime:
        return as_utc(value)

    @property
    def was_worked(self) -> bool:
        return self.status is not None or self.wms_user_id is not None

    @property
    def is_suspended(self) -> bool:
        return self.status is not None and self.status == PickStatus.SUSPENDED

    @property
    def handled_by_straggler(self) -> bool:
        """Straggled with no fallback skill: a specialist owns this pick."""
        return self.straggled and not self.skill.has_fallback


class OrderVerification(BaseModel):
    """Scan-verification record for an order."""

    order_number: Optional[int] = None
    successful: bool = False


# ==== REQUEST / RESPONSE ENVELOPES ==== #


class WmsSearchParameters(BaseModel):
    """Search parameters shared by the WMS search endpoints."""

    order_number: Optional[int] = None
    pick_ids: Optional[Set[int]] = None


class OrderVerificationSearchRequest(BaseModel):
    search: WmsSearchParameters
    transaction_id: str


class OrderVerificationSearchResponse(BaseModel):
    verifications: List[OrderVerification] = Field(default_factory=list)


class PickSearchRequest(BaseModel):
    search: WmsSearchParameters
    transaction_id: str


class PickSearchResponse(BaseModel):
    picks: List[Pick] = Field(default_factory=list)


class PickSaveRequest(BaseModel):
    pick: Pick
    transaction_id: str


class PickSaveResponse(BaseModel):
    acknowledged: bool = True
