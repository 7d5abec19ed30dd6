"""Data model for the fulfillment exception engine."""

from .consolidation import ConsolidatableOrder, ConsolidatableOrderItem, Label, LabelText
from .messages import Message, PickCompleteNotification
from .orders import (
    Order,
    OrderItem,
    OrderItemStatus,
    OrderSearchCriteria,
    OrderStatus,
    OrderType,
    REPICKABLE_STATUSES,
)
from .warehouse import (
    OrderVerification,
    OrderVerificationSearchRequest,
    OrderVerificationSearchResponse,
    Pick,
    PickSaveRequest,
    PickSaveResponse,
    PickSearchRequest,
    PickSearchResponse,
    PickStatus,
    Skill,
    WmsSearchParameters,
)

__all__ = [
    "ConsolidatableOrder",
    "ConsolidatableOrderItem",
    "Label",
    "LabelText",
    "Message",
    "PickCompleteNotification",
    "Order",
    "OrderItem",
    "OrderItemStatus",
    "OrderSearchCriteria",
    "OrderStatus",
    "OrderType",
    "REPICKABLE_STATUSES",
    "OrderVerification",
    "OrderVerificationSearchRequest",
    "OrderVerificationSearchResponse",
    "Pick",
    "PickSaveRequest",
    "PickSaveResponse",
    "PickSearchRequest",
    "PickSearchResponse",
    "PickStatus",
    "Skill",
    "WmsSearchParameters",
]
