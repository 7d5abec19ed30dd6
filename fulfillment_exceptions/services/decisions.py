# ==== EXCEPTION DECISION PRIMITIVES ==== #

"""
Pure decision rules shared by the exception sweep and the pick-completion
processor.

Nothing in this module talks to a collaborator except ``classify``, which
performs exactly one consolidation lookup and lets its failure propagate
to the caller.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional, Tuple

from fulfillment_exceptions.integrations.base import Consolidation
from fulfillment_exceptions.models.consolidation import (
    ConsolidatableOrder,
    ConsolidatableOrderItem,
    LabelText,
)
from fulfillment_exceptions.models.orders import Order, OrderItem, OrderItemStatus
from fulfillment_exceptions.models.timestamps import as_utc, utcnow
from fulfillment_exceptions.models.warehouse import Pick, PickStatus, Skill
from fulfillment_exceptions.settings import ExceptionConfiguration


RELEASED_RESERVATION_SUFFIX = "-X"

UNKNOWN_DETERMINATION = "Unknown"

# Placeholder the straggler UI writes before a determination is made
EMPTY_DETERMINATION = ": "


# ==== ORDER CLASSIFICATION ==== #


class OrderClass(str, Enum):
    SINGLETON = "singleton"
    CONSOLIDATABLE = "consolidatable"


def has_consolidation_reservation(order: Order) -> bool:
    reservation_id = order.reservation_id
    return bool(reservation_id) and not reservation_id.endswith(RELEASED_RESERVATION_SUFFIX)


def classify_order(order: Order, consolidated_order: Optional[ConsolidatableOrder]) -> OrderClass:
    """Classify an order given its (possibly absent) consolidation record."""
    if has_consolidation_reservation(order) or consolidated_order is not None:
        return OrderClass.CONSOLIDATABLE
    return OrderClass.SINGLETON


async def classify(order: Order, consolidation: Consolidation) -> OrderClass:
    """Look up the consolidation record for ``order`` and classify it.

    Raises:
        Exception: Whatever the consolidation client raises
    """
    consolidated_order = await consolidation.status(order.number, order.transaction_id)
    return classify_order(order, consolidated_order)


# ==== REPICK ELIGIBILITY ==== #


@dataclass(frozen=True)
class RepickAssessment:
    """Every factor of a repick decision, kept for logging."""
    repickable_status: bool
    pick_was_worked: bool
    item_released: bool
    time_window_passed: bool
    pick_deemed_out: bool
    item_placed: bool = False
    consolidated_item_found: bool = True

    @property
    def eligible(self) -> bool:
        return (
            self.repickable_status
            and self.consolidated_item_found
            and self.pick_was_worked
            and self.item_released
            and self.time_window_passed
            and not self.pick_deemed_out
            and not self.item_placed
        )


def assess_repick(
    item: OrderItem,
    pick: Pick,
    configuration: ExceptionConfiguration,
    consolidated_item: Optional[ConsolidatableOrderItem] = None,
    consolidated: bool = False,
    now: Optional[datetime] = None,
) -> RepickAssessment:
    """Evaluate whether ``item`` should be repicked based on ``pick``.

    On the consolidated path the time window runs from the consolidated
    item's last update; otherwise from the pick's last update.
    """
    now = as_utc(now or utcnow())
    window = timedelta(minutes=configuration.auto_straggle_timeframe_minutes)

    if consolidated and consolidated_item is not None:
        reference = consolidated_item.last_update
    else:
        reference = pick.last_update

    return RepickAssessment(
        repickable_status=item.is_repickable,
        pick_was_worked=pick.was_worked,
        item_released=item.released,
        time_window_passed=now > as_utc(reference) + window,
        pick_deemed_out=pick.handled_by_straggler and pick.is_suspended,
        item_placed=consolidated_item.placed if consolidated_item is not None else False,
        consolidated_item_found=(consolidated_item is not None) if consolidated else True,
    )


def is_repick_eligible(
    item: OrderItem,
    pick: Pick,
    configuration: ExceptionConfiguration,
    consolidated_item: Optional[ConsolidatableOrderItem] = None,
    consolidated: bool = False,
    now: Optional[datetime] = None,
) -> bool:
    return assess_repick(item, pick, configuration, consolidated_item, consolidated, now).eligible


def has_repick_budget(item: OrderItem, configuration: ExceptionConfiguration) -> bool:
    return item.num_straggles < configuration.max_auto_straggles


# ==== REPICK APPLICATION ==== #


def resolve_repick_skill(skill: Skill) -> Skill:
    """Specialist skill when one is configured, otherwise the pick's own skill."""
    if skill.straggler_skill is not None:
        return skill.straggler_skill
    return skill


def apply_repick(pick: Pick, now: Optional[datetime] = None) -> Pick:
    """Return a copy of ``pick`` reset for a repick."""
    return pick.model_copy(
        deep=True,
        update={
            "skill": resolve_repick_skill(pick.skill),
            "status": None,
            "wms_user_id": None,
            "straggled": True,
            "last_update": as_utc(now or utcnow()),
            "quantity": 0.0,
        },
    )


# ==== ORDER COMPLETION ==== #


def all_items_shipped(order: Order) -> bool:
    return all(item.shipped for item in order.active_items())


def all_items_placed(order: Order) -> bool:
    return all(item.status == OrderItemStatus.PLACED for item in order.active_items())


def determine_completion(order: Order, consolidated: bool = False) -> bool:
    """Whether every non-deleted item is shipped (or, when consolidated, placed)."""
    if consolidated:
        return all_items_placed(order) or all_items_shipped(order)
    return all_items_shipped(order)


# ==== PICK COMPLETION ==== #


@dataclass(frozen=True)
class CompletionUpdate:
    """Item status and consolidation label derived from a completed pick."""
    item_status: OrderItemStatus
    label: str = ""
    hold_if_not_consolidated: bool = False


# Pick status -> (item status to set, label); None keeps the item status
PICK_STATUS_UPDATES: Dict[PickStatus, Tuple[Optional[OrderItemStatus], str]] = {
    PickStatus.WIP: (OrderItemStatus.PICKED, LabelText.PICKED.value),
    PickStatus.PICKED: (OrderItemStatus.PICKED, LabelText.PICKED.value),
    PickStatus.ASSIGNED: (None, PickStatus.ASSIGNED.description),
    PickStatus.DELIVERED: (None, PickStatus.DELIVERED.description),
    PickStatus.SUSPENDED: (None, PickStatus.SUSPENDED.description),
}


def normalize_determination(determination: Optional[str]) -> str:
    if not determination or determination.lower() == EMPTY_DETERMINATION:
        return UNKNOWN_DETERMINATION
    return determination


def classify_determination(determination: Optional[str]) -> Tuple[str, bool]:
    """Map a straggler's free-text determination to ``(label, hold)``.

    Substring matching on "partial", "out" and "wip" is kept exactly as the
    straggler station emits it.
    """
    determination = normalize_determination(determination)

    if determination.lower() == UNKNOWN_DETERMINATION.lower():
        return LabelText.REPICK_PENDING.value, False

    lowered = determination.lower()
    if "partial" in lowered:
        return LabelText.PARTIAL.value, True
    if "out" in lowered:
        return LabelText.OUT.value, True
    if "wip" in lowered:
        return LabelText.REPICKED_COMPLETE.value, False
    return determination, False


def resolve_completion_update(item: OrderItem, pick: Pick) -> CompletionUpdate:
    """Derive the item update for the most recent pick of ``item``."""
    if pick.handled_by_straggler:
        label, hold = classify_determination(pick.fulfillment_status)
        return CompletionUpdate(
            item_status=OrderItemStatus.STRAGGLED,
            label=label,
            hold_if_not_consolidated=hold,
        )

    if pick.status is None:
        return CompletionUpdate(item_status=item.status)

    new_status, label = PICK_STATUS_UPDATES.get(pick.status, (None, pick.status.description))
    return CompletionUpdate(item_status=new_status or item.status, label=label)
