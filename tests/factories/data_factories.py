"""Data factories for generating test data."""

import itertools
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fulfillment_exceptions.models.consolidation import ConsolidatableOrder, ConsolidatableOrderItem
from fulfillment_exceptions.models.messages import Message
from fulfillment_exceptions.models.orders import (
    Order,
    OrderItem,
    OrderItemStatus,
    OrderStatus,
    OrderType,
)
from fulfillment_exceptions.models.warehouse import Pick, PickStatus, Skill


_pick_ids = itertools.count(1000)
_order_numbers = itertools.count(5000)


def minutes_ago(minutes: float) -> datetime:
    return datetime.now(timezone.utc) - timedelta(minutes=minutes)


@dataclass
class OrderFactory:
    """Factory for orders and order items."""

    order_type: OrderType = OrderType.B2C

    def create_item(
        self,
        item_id: Optional[str] = None,
        status: OrderItemStatus = OrderItemStatus.WIP,
        shipped: bool = False,
        released: bool = True,
        num_straggles: int = 0,
    ) -> OrderItem:
        return OrderItem(
            id=item_id or f"item-{uuid.uuid4().hex[:8]}",
            status=status,
            shipped=shipped,
            released=released,
            num_straggles=num_straggles,
        )

    def create_order(
        self,
        items: Optional[List[OrderItem]] = None,
        number: Optional[int] = None,
        reservation_id: Optional[str] = None,
        status: OrderStatus = OrderStatus.WIP,
        order_type: Optional[OrderType] = None,
    ) -> Order:
        number = number if number is not None else next(_order_numbers)
        return Order(
            id=f"order-{number}",
            number=number,
            status=status,
            type=order_type or self.order_type,
            reservation_id=reservation_id,
            items=items if items is not None else [self.create_item()],
            transaction_id=f"txn-{uuid.uuid4().hex[:8]}",
            last_update=datetime.now(timezone.utc),
        )


@dataclass
class PickFactory:
    """Factory for WMS picks."""

    skill: Skill = field(default_factory=lambda: Skill(id="standard"))

    def create_pick(
        self,
        item: OrderItem,
        order: Order,
        pick_id: Optional[int] = None,
        status: Optional[PickStatus] = PickStatus.PICKED,
        last_update: Optional[datetime] = None,
        created_on: Optional[datetime] = None,
        wms_user_id: Optional[str] = "picker-7",
        straggled: bool = False,
        skill: Optional[Skill] = None,
        fulfillment_status: Optional[str] = None,
    ) -> Pick:
        last_update = last_update or minutes_ago(46)
        return Pick(
            id=pick_id if pick_id is not None else next(_pick_ids),
            order_item_id=item.id,
            last_update=last_update,
            status=status,
            wms_user_id=wms_user_id,
            straggled=straggled,
            skill=skill or self.skill,
            quantity=1.0,
            order_number=order.number,
            created_on=created_on or last_update,
            fulfillment_status=fulfillment_status,
        )


def straggler_skill() -> Skill:
    return Skill(id="standard", straggler_skill=Skill(id="straggler"))


def consolidated_order_for(
    picks: List[Pick],
    placed: bool = False,
    last_update: Optional[datetime] = None,
) -> ConsolidatableOrder:
    return ConsolidatableOrder(items=[
        ConsolidatableOrderItem(
            id=str(pick.id),
            last_update=last_update or pick.last_update,
            placed=placed,
        )
        for pick in picks
    ])


def pick_completion_message(pick_id: int, truncated: bool = False, **extra: Any) -> Message:
    payload: Dict[str, Any] = {"id": pick_id, "straggler": False, **extra}
    body = json.dumps(payload)
    if truncated:
        body = body[:-1]
    return Message(body=body)

