"""Shared collaborator access and repick execution for the two order resolvers."""

from collections import defaultdict
from typing import Dict, List

from fulfillment_exceptions.integrations.base import OrderRepository, WarehouseManagement
from fulfillment_exceptions.models.orders import Order, OrderItem, OrderType
from fulfillment_exceptions.models.warehouse import (
    Pick,
    PickSaveRequest,
    PickSearchRequest,
    WmsSearchParameters,
)
from fulfillment_exceptions.observability.logging import ContextualLogger
from fulfillment_exceptions.observability.metrics import (
    auto_repicks_exhausted_total,
    auto_repicks_total,
)
from fulfillment_exceptions.resilience.retry_policies import CollaboratorRetryPolicy
from fulfillment_exceptions.services.decisions import apply_repick, has_repick_budget
from fulfillment_exceptions.settings import ExceptionConfiguration


logger = ContextualLogger(__name__)


class OrderResolver:
    """Base class for the single-line and consolidated-line resolvers."""

    path = "unknown"

    def __init__(
        self,
        order_repository: OrderRepository,
        wms: WarehouseManagement,
        configuration: ExceptionConfiguration,
        retry_policy: CollaboratorRetryPolicy,
    ):
        self.order_repository = order_repository
        self.wms = wms
        self.configuration = configuration
        self.retry_policy = retry_policy

    async def _lookup_picks(self, order: Order, order_type: OrderType) -> Dict[str, List[Pick]]:
        """Picks of ``order`` grouped by order item id; empty when the WMS fails."""
        picks_by_item: Dict[str, List[Pick]] = defaultdict(list)
        request = PickSearchRequest(
            search=WmsSearchParameters(order_number=order.number),
            transaction_id=order.transaction_id,
        )

        try:
            response = await self.retry_policy.call("wms.search_picks", self.wms.search_picks, request)
        except Exception as e:
            logger.warning(
                f"Failed to retrieve the picks for {order_type.value} Order #{order.number}",
                order_type=order_type.value,
                order_number=order.number,
                transaction_id=order.transaction_id,
                error=str(e),
            )
            return picks_by_item

        if not response.picks:
            logger.warning(
                f"No picks found for {order_type.value} Order #{order.number}",
                order_type=order_type.value,
                order_number=order.number,
                transaction_id=order.transaction_id,
            )
            return picks_by_item

        for pick in response.picks:
            picks_by_item[pick.order_item_id].append(pick)
        return picks_by_item

    async def _auto_repick(self, order: Order, item: OrderItem, pick: Pick, order_type: OrderType) -> bool:
        """Send ``pick`` back for a repick if the item still has straggle budget.

        Returns:
            bool: True when the repick was saved and the straggle counter bumped
        """
        log = logger.bind(
            order_type=order_type.value,
            order_number=order.number,
            order_item_id=item.id,
            pick_id=pick.id,
            transaction_id=order.transaction_id,
        )

        if not self.configuration.auto_straggle_enabled:
            log.info(
                f"Found auto-repick eligible Pick {pick.id} for Order Item {item.id} on "
                f"{order_type.value} Order #{order.number}. Auto-repick is disabled.",
            )
            return False

        if not has_repick_budget(item, self.configuration):
            log.warning(
                f"Unable to auto repick Order Item {item.id} on {order_type.value} Order #{order.number}! "
                f"Item has already been repicked {item.num_straggles} time(s) "
                f"(max {self.configuration.max_auto_straggles})",
            )
            auto_repicks_exhausted_total.labels(order_type=order_type.value, path=self.path).inc()
            return False

        log.warning(
            f"Auto repicking Order Item {item.id} on {order_type.value} Order #{order.number} "
            f"(last update {pick.last_update.isoformat()})",
        )

        repick = apply_repick(pick)
        try:
            await self.wms.save_pick(PickSaveRequest(pick=repick, transaction_id=order.transaction_id))
        except Exception as e:
            log.warning(
                f"Failed to repick Pick {pick.id} for Order Item {item.id} on "
                f"{order_type.value} Order #{order.number}",
                error=str(e),
            )
            return False

        item.num_straggles += 1
        auto_repicks_total.labels(order_type=order_type.value, path=self.path).inc()
        return True

    async def _save(self, order: Order, order_type: OrderType) -> bool:
        try:
            await self.order_repository.save(order)
            return True
        except Exception as e:
            logger.warning(
                f"Failed to save {order_type.value} Order #{order.number}",
                order_type=order_type.value,
                order_number=order.number,
                transaction_id=order.transaction_id,
                error=str(e),
            )
            return False
