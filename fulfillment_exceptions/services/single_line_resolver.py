# ==== SINGLE-LINE ORDER RESOLVER ==== #

"""
Resolver for WIP orders that are not under consolidation.

Works in two phases. The retrieval phase asks the WMS for each order's
verification records and picks. The resolution phase then either completes
verified, fully shipped orders, leaves verified orders awaiting shipment
alone, or looks for items to auto-repick on unverified orders. Every order
is saved once at the end of its resolution, whichever branch it took.
"""

from typing import Any, Collection, Dict, List, Optional, Tuple

from fulfillment_exceptions.models.orders import Order, OrderType
from fulfillment_exceptions.models.warehouse import (
    OrderVerification,
    OrderVerificationSearchRequest,
    Pick,
    WmsSearchParameters,
)
from fulfillment_exceptions.observability.logging import ContextualLogger
from fulfillment_exceptions.observability.metrics import orders_completed_total
from fulfillment_exceptions.services.base_resolver import OrderResolver
from fulfillment_exceptions.services.decisions import (
    assess_repick,
    determine_completion,
    utcnow,
)


logger = ContextualLogger(__name__)


def most_recent_pick(picks: Collection[Pick]) -> Optional[Pick]:
    """The pick with the latest ``last_update``; earlier picks win ties."""
    latest = None
    for pick in picks:
        if latest is None or pick.last_update > latest.last_update:
            latest = pick
    return latest


class SingleLineResolver(OrderResolver):
    """Resolves exceptions for non-consolidated orders of one type."""

    path = "single_line"

    async def _lookup_verification(self, order: Order, order_type: OrderType) -> Optional[OrderVerification]:
        """First successful verification record, or None (also when the WMS fails)."""
        request = OrderVerificationSearchRequest(
            search=WmsSearchParameters(order_number=order.number),
            transaction_id=order.transaction_id,
        )

        try:
            response = await self.retry_policy.call(
                "wms.search_verifications", self.wms.search_verifications, request
            )
        except Exception as e:
            logger.warning(
                f"Failed to retrieve the order verification status for {order_type.value} Order #{order.number}",
                order_type=order_type.value,
                order_number=order.number,
                transaction_id=order.transaction_id,
                error=str(e),
            )
            return None

        if not response.verifications:
            logger.warning(
                f"No order verifications for {order_type.value} Order #{order.number}",
                order_type=order_type.value,
                order_number=order.number,
                transaction_id=order.transaction_id,
            )
            return None

        for verification in response.verifications:
            if verification.successful:
                return verification
        return None

    async def resolve(self, orders: List[Order], order_type: OrderType) -> Dict[str, Any]:
        """
        Resolve a batch of single-line orders.

        Args:
            orders: WIP orders classified as singletons
            order_type: Type shared by every order in the batch

        Returns:
            Dict with processed, completed and repicked counts
        """
        logger.info(
            f"Handling exceptions for {len(orders)} non-consolidatable {order_type.value} orders",
            order_type=order_type.value,
        )

        # --► RETRIEVAL PHASE
        verifications: Dict[int, OrderVerification] = {}
        picks_by_item: Dict[str, List[Pick]] = {}

        for order in orders:
            verification = await self._lookup_verification(order, order_type)
            if verification is not None:
                verifications[order.number] = verification
            picks_by_item.update(await self._lookup_picks(order, order_type))

        # --► RESOLUTION PHASE
        processed = completed = repicked = 0

        for order in orders:
            try:
                order_completed, items_repicked = await self._resolve_order(
                    order, order_type, order.number in verifications, picks_by_item
                )
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
                repicked += items_repicked

            await self._save(order, order_type)
            processed += 1

        logger.info(
            f"{processed} exceptions handled of the {len(orders)} non-consolidatable {order_type.value} orders",
            order_type=order_type.value,
            completed=completed,
            repicked=repicked,
        )
        return {
            "orders_processed": processed,
            "orders_completed": completed,
            "items_repicked": repicked,
        }

    async def _resolve_order(
        self,
        order: Order,
        order_type: OrderType,
        verified: bool,
        picks_by_item: Dict[str, List[Pick]],
    ) -> Tuple[bool, int]:
        """Complete a verified order or repick its stalled items.

        Returns:
            Whether the order was completed and how many items were repicked
        """
        if verified:
            if determine_completion(order):
                order.mark_complete(utcnow())
                orders_completed_total.labels(order_type=order_type.value, path=self.path).inc()
                return True, 0
            logger.info(
                f"{order_type.value} Order #{order.number} has been scan verified but not all "
                f"items have shipped. Leaving in WIP status",
                order_type=order_type.value,
                order_number=order.number,
                transaction_id=order.transaction_id,
            )
            return False, 0

        logger.info(
            f"{order_type.value} Order #{order.number} has not completed scan verification. "
            f"Checking for auto-repick candidates",
            order_type=order_type.value,
            order_number=order.number,
            transaction_id=order.transaction_id,
        )
        return False, await self._repick_candidates(order, order_type, picks_by_item)

    async def _repick_candidates(
        self,
        order: Order,
        order_type: OrderType,
        picks_by_item: Dict[str, List[Pick]],
    ) -> int:
        repicked = 0

        for item in order.items:
            if not item.is_repickable:
                logger.info(
                    f"Order Item {item.id} on {order_type.value} Order #{order.number} is in "
                    f"{item.status.value} status which is not a repickable status. Skipping",
                    order_type=order_type.value,
                    order_number=order.number,
                    transaction_id=order.transaction_id,
                )
                continue

            pick = most_recent_pick(picks_by_item.get(item.id, []))
            if pick is None:
                logger.warning(
                    f"No picks found for Item {item.id} on {order_type.value} Order #{order.number}",
                    order_type=order_type.value,
                    order_number=order.number,
                    transaction_id=order.transaction_id,
                )
                continue

            assessment = assess_repick(item, pick, self.configuration)
            if not assessment.eligible:
                logger.info(
                    f"No need to auto-repick Pick {pick.id} for Order Item {item.id} on "
                    f"{order_type.value} Order #{order.number}",
                    order_type=order_type.value,
                    order_number=order.number,
                    pick_was_worked=assessment.pick_was_worked,
                    item_released=assessment.item_released,
                    pick_deemed_out=assessment.pick_deemed_out,
                    last_update=pick.last_update.isoformat(),
                    transaction_id=order.transaction_id,
                )
                continue

            if await self._auto_repick(order, item, pick, order_type):
                repicked += 1

        return repicked
