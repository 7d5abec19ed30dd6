# ==== ORDER DOMAIN MODELS ==== #

"""
Order and order item models for the fulfillment exception engine.

Orders are loaded from the order repository, mutated in place by the
resolvers and written back through the repository. Each task works on its
own copy; nothing here is shared across tasks.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


# ==== ENUMERATION DEFINITIONS ==== #


class OrderStatus(str, Enum):
    """
    Order lifecycle status.

    The engine only ever moves an order from WIP to COMPLETE; every other
    transition belongs to upstream systems.
    """

    NEW = "NEW"
    REPLENISHING = "REPLENISHING"
    READY = "READY"
    RESERVED = "RESERVED"
    WIP = "WIP"
    SPLIT = "SPLIT"
    COMPLETE = "COMPLETE"
    CANCELLED = "CANCELLED"

    @property
    def status_id(self) -> int:
        return _ORDER_STATUS_IDS[self]

    @classmethod
    def by_id(cls, status_id: int) -> Optional["OrderStatus"]:
        """Look up a status by its numeric identifier."""
        for status, known_id in _ORDER_STATUS_IDS.items():
            if known_id == status_id:
                return status
        return None


_ORDER_STATUS_IDS: Dict[OrderStatus, int] = {
    OrderStatus.NEW: 1,
    OrderStatus.REPLENISHING: 2,
    OrderStatus.READY: 3,
    OrderStatus.RESERVED: 4,
    OrderStatus.WIP: 5,
    OrderStatus.SPLIT: 6,
    OrderStatus.COMPLETE: 7,
    OrderStatus.CANCELLED: 8,
}


class OrderType(str, Enum):
    """Order types handled by the warehouse."""

    B2C = "B2C"
    B2B = "B2B"
    LARGE_BULKY_ITEM = "LARGE_BULKY_ITEM"

    @property
    def description(self) -> str:
        return ORDER_TYPE_DESCRIPTIONS[self]


ORDER_TYPE_DESCRIPTIONS: Dict[OrderType, str] = {
    OrderType.B2C: "Business to Customer",
    OrderType.B2B: "Business to Business (usually bulk)",
    OrderType.LARGE_BULKY_ITEM: "Large and/or oddly shaped products",
}


class OrderItemStatus(str, Enum):
    """Per-line status of an order item."""

    WIP = "WIP"
    STRAGGLED = "STRAGGLED"
    PICKED = "PICKED"
    DELETED = "DELETED"
    PLACED = "PLACED"


# Item statuses that may still be re-picked automatically
REPICKABLE_STATUSES = frozenset({
    OrderItemStatus.WIP,
    OrderItemStatus.STRAGGLED,
    OrderItemStatus.PICKED,
})


# ==== ORDER MODELS ==== #


class OrderItem(BaseModel):
    """Single line of an order."""

    id: str
    status: OrderItemStatus = OrderItemStatus.WIP
    shipped: bool = False
    released: bool = False
    num_straggles: int = Field(0, ge=0)

    @property
    def is_deleted(self) -> bool:
        return self.status == OrderItemStatus.DELETED

    @property
    def is_repickable(self) -> bool:
        return self.status in REPICKABLE_STATUSES


class Order(BaseModel):
    """
    Customer order as seen by the fulfillment pipeline.

    A reservation id ending in ``-X`` marks a released reservation; any other
    non-empty reservation means the order is consolidated across lines.
    """

    id: str
    number: int
    status: OrderStatus = OrderStatus.WIP
    type: OrderType = OrderType.B2C
    reservation_id: Optional[str] = None
    items: List[OrderItem] = Field(default_factory=list)
    transaction_id: str = ""
    last_update: Optional[datetime] = None
    completed_on: Optional[datetime] = None

    def active_items(self) -> List[OrderItem]:
        """Items that take part in aggregate checks (everything not deleted)."""
        return [item for item in self.items if not item.is_deleted]

    def mark_complete(self, completed_on: datetime) -> None:
        self.status = OrderStatus.COMPLETE
        self.completed_on = completed_on


class OrderSearchCriteria(BaseModel):
    """Search parameters accepted by the order repository."""

    ids: Optional[List[str]] = None
    statuses: Optional[List[OrderStatus]] = None
    types: Optional[List[OrderType]] = None
    order_numbers: Optional[List[int]] = None
