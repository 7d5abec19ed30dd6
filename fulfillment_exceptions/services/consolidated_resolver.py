# ==== CONSOLIDATED-LINE ORDER RESOLVER ==== #

"""
Resolver for WIP orders under active consolidation.

Each order is reconciled against its consolidation record: items already
placed in consolidation are marked PLACED, stalled items are repicked and
relabelled "Repicked (In Flight)", and the order completes once every
non-deleted item is placed or shipped.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from fulfillment_exceptions.integrations.base import (
    Consolidation,
    OrderRepository,
    WarehouseManagement,
)
from fulfillment_exceptions.models.consolidation import (
    ConsolidatableOrder,
    ConsolidatableOrderItem,
    Label,
    LabelText,
)
from fulfillment_exceptions.models.orders import Order, OrderItem, OrderItemStatus, OrderType
from fulfillment_exceptions.models.warehouse import Pick
from fulfillment_exceptions.observability.logging import ContextualLogger
from fulfillment_exceptions.observability.metrics import orders_completed_total
from fulfillment_exceptions.resilience.retry_policies import CollaboratorRetryPolicy
from fulfillment_exceptions.services.base_resolver import OrderResolver
from fulfillment_exceptions.services.decisions import (
    assess_repick,
    determine_completion,
    utcnow,
)
from fulfillment_exceptions.settings import ExceptionConfiguration


logger = ContextualLogger(__name__)

# Plain signed decimal; no whitespace, underscores or non-ASCII digits
PICK_ID_PATTERN = re.compile(r"[+-]?[0-9]+")


def index_consolidated_items(consolidated_order: ConsolidatableOrder) -> Dict[int, ConsolidatableOrderItem]:
    """Consolidated items keyed by pick id; items whose id is not numeric are skipped."""
    items_by_pick_id: Dict[int, ConsolidatableOrderItem] = {}
    for item in consolidated_order.items:
        if PICK_ID_PATTERN.fullmatch(item.id):
            items_by_pick_id[int(item.id)] = item
        else:
            logger.warning(
                f"Unable to parse the identifier of consolidatable item {item.id!r}",
                consolidated_item_id=item.id,
            )
    return items_by_pick_id


def match_consolidated_pick(
    picks: List[Pick],
    items_by_pick_id: Dict[int, ConsolidatableOrderItem],
) -> Tuple[Optional[Pick], Optional[ConsolidatableOrderItem]]:
    """First pick of the item that has a counterpart in consolidation."""
    for pick in picks:
        consolidated_item = items_by_pick_id.get(pick.id)
        if consolidated_item is not None:
            return pick, consolidated_item
    return None, None


class ConsolidatedLineResolver(OrderResolver):
    """Resolves exceptions for consolidated orders of one type."""

    path = "consolidated"

    def __init__(
        self,
        order_repository: OrderRepository,
        wms: WarehouseManagement,
        consolidation: Consolidation,
        configuration: ExceptionConfiguration,
        retry_policy: CollaboratorRetryPolicy,
    ):
        super().__init__(order_repository, wms, configuration, retry_policy)
        self.consolidation = consolidation

    async def _lookup_consolidated_order(self, order: Order, order_type: OrderType) -> Optional[ConsolidatableOrder]:
        try:
            return await self.retry_policy.call(
                "consolidation.status",
                self.consolidation.status,
                order.number,
                order.transaction_id,
            )
        except Exception as e:
            logger.warning(
                f"Failed to retrieve the consolidation status for {order_type.value} Order #{order.number}",
                order_type=order_type.value,
                order_number=order.number,
                transaction_id=order.transaction_id,
                error=str(e),
            )
            return None

    async def resolve(self, orders: List[Order], order_type: OrderType) -> Dict[str, Any]:
        """
        Resolve a batch of consolidated orders.

        Args:
            orders: WIP orders classified as consolidatable
            order_type: Type shared by every order in the batch

        Returns:
            Dict with processed, completed, placed and repicked counts
        """
        logger.info(
            f"Handling exceptions for {len(orders)} consolidatable {order_type.value} orders",
            order_type=order_type.value,
        )

        processed = completed = placed = repicked = 0

        for order in orders:
            try:
                order_completed, items_placed, items_repicked = await self._resolve_order(order, order_type)
            except Exception as e:
                logger.warning(
                    f"Failed to resolve {order_type.value} Order #{order.number}. Saving it as it stands",
                    order_type=order_type.value,
                    order_number=order.number,
                    transaction_id=order.transaction_id,
                    error=str(e),
                )
            else:
                completed += int(order_completed)
                placed += items_placed
                repicked += items_repicked

            await self._save(order, order_type)
            processed += 1

        logger.info(
            f"{processed} exceptions handled of the {len(orders)} consolidatable {order_type.value} orders",
            order_type=order_type.value,
            completed=completed,
            placed=placed,
            repicked=repicked,
        )
        return {
            "orders_processed": processed,
            "orders_completed": completed,
            "items_placed": placed,
            "items_repicked": repicked,
        }

    async def _resolve_order(self, order: Order, order_type: OrderType) -> Tuple[bool, int, int]:
        """Reconcile one order against consolidation.

        Returns:
            Whether the order was completed, and how many items were placed and repicked
        """
        placed = repicked = 0
        consolidated_order = await self._lookup_consolidated_order(order, order_type)
        picks_by_item = await self._lookup_picks(order, order_type)

        if consolidated_order is not None:
            items_by_pick_id = index_consolidated_items(consolidated_order)
            logger.info(
                f"Retrieved consolidatable order with {len(consolidated_order.items)} items for "
                f"{order_type.value} Order #{order.number}. Checking for auto-repick candidates",
                order_type=order_type.value,
                order_number=order.number,
                transaction_id=order.transaction_id,
            )

            for item in order.items:
                outcome = await self._reconcile_item(
                    order, item, order_type, picks_by_item.get(item.id, []), items_by_pick_id
                )
                if outcome == "placed":
                    placed += 1
                elif outcome == "repicked":
                    repicked += 1
        else:
            logger.warning(
                f"Unable to find a consolidated order for {order_type.value} Order #{order.number}",
                order_type=order_type.value,
                order_number=order.number,
                transaction_id=order.transaction_id,
            )

        if not determine_completion(order, consolidated=True):
            return False, placed, repicked

        order.mark_complete(utcnow())
        orders_completed_total.labels(order_type=order_type.value, path=self.path).inc()
        return True, placed, repicked

    async def _reconcile_item(
        self,
        order: Order,
        item: OrderItem,
        order_type: OrderType,
        picks: List[Pick],
        items_by_pick_id: Dict[int, ConsolidatableOrderItem],
    ) -> Optional[str]:
        """Reconcile one order item; returns "placed", "repicked" or None."""
        context = dict(
            order_type=order_type.value,
            order_number=order.number,
            order_item_id=item.id,
            transaction_id=order.transaction_id,
        )

        if not item.is_repickable:
            logger.info(
                f"Order Item {item.id} on {order_type.value} Order #{order.number} is in "
                f"{item.status.value} status which is not a repickable status. Skipping",
                **context,
            )
            return None

        if not picks:
            logger.warning(f"No picks found for Item {item.id} on {order_type.value} Order #{order.number}", **context)
            return None

        pick, consolidated_item = match_consolidated_pick(picks, items_by_pick_id)
        if pick is None or consolidated_item is None:
            logger.warning(
                f"Unable to find a consolidated item for Order Item {item.id} on "
                f"{order_type.value} Order #{order.number}",
                pick_ids=[candidate.id for candidate in picks],
                **context,
            )
            return None

        assessment = assess_repick(
            item, pick, self.configuration, consolidated_item=consolidated_item, consolidated=True
        )

        if consolidated_item.placed:
            item.status = OrderItemStatus.PLACED
            return "placed"

        if not assessment.eligible:
            logger.info(
                f"No need to auto-repick consolidatable Pick {pick.id} for Order Item {item.id} on "
                f"{order_type.value} Order #{order.number}",
                pick_was_worked=assessment.pick_was_worked,
                item_released=assessment.item_released,
                item_placed=assessment.item_placed,
                pick_deemed_out=assessment.pick_deemed_out,
                last_update=consolidated_item.last_update.isoformat(),
                **context,
            )
            return None

        if not await self._auto_repick(order, item, pick, order_type):
            return None

        try:
            await self.consolidation.update_order_item_label(
                str(order.number), consolidated_item.id, Label.of(LabelText.REPICKED_IN_FLIGHT)
            )
        except Exception as e:
            logger.warning(
                f"Failed to label consolidated item {consolidated_item.id} as repicked",
                error=str(e),
                **context,
            )
        return "repicked"
