# ==== PICK COMPLETION PROCESSOR ==== #

"""
Event-driven path: advances order items from WMS pick completion messages.

Each run takes a snapshot of the inbound queue, splits it into chunks and
processes the chunks on the pick-completion pool. A chunk decodes its
messages, fetches the referenced picks in one WMS search and their orders
in one repository search, then updates every item that has a completed
pick: item status, consolidation label and, for out or partial straggler
determinations on non-consolidated orders, a consolidation hold.
"""

import uuid
from collections import defaultdict
from typing import Any, Collection, Dict, List, Optional, Sequence

from fulfillment_exceptions.integrations.registry import Collaborators
from fulfillment_exceptions.models.consolidation import Label
from fulfillment_exceptions.models.messages import Message, PickCompleteNotification
from fulfillment_exceptions.models.orders import Order, OrderSearchCriteria
from fulfillment_exceptions.models.warehouse import Pick, PickSearchRequest, WmsSearchParameters
from fulfillment_exceptions.observability.logging import ContextualLogger
from fulfillment_exceptions.observability.metrics import pick_completion_items_updated_total
from fulfillment_exceptions.observability.tracing import get_tracer
from fulfillment_exceptions.resilience.retry_policies import CollaboratorRetryPolicy
from fulfillment_exceptions.resilience.worker_pool import WorkerPool
from fulfillment_exceptions.services.decisions import (
    OrderClass,
    classify,
    has_consolidation_reservation,
    resolve_completion_update,
)
from fulfillment_exceptions.services.exception_sweep import gate_closed_reason
from fulfillment_exceptions.services.notifications import decode_notifications, partition_batch
from fulfillment_exceptions.settings import ExceptionConfiguration, PoolConfiguration


tracer = get_tracer(__name__)
logger = ContextualLogger(__name__)


def latest_created_pick(picks: Collection[Pick]) -> Optional[Pick]:
    latest = None
    for pick in picks:
        if latest is None or pick.created_on > latest.created_on:
            latest = pick
    return latest


class PickCompletionProcessor:
    """Drains pick completion messages and applies them to order items."""

    def __init__(
        self,
        collaborators: Collaborators,
        configuration: ExceptionConfiguration,
        pools: PoolConfiguration,
        retry_policy: CollaboratorRetryPolicy,
    ):
        self.collaborators = collaborators
        self.configuration = configuration
        self.retry_policy = retry_policy
        self.pool = WorkerPool("pick-completions", pools.pick_completion_pool_size)

    async def run(self) -> Dict[str, Any]:
        """
        Process the messages currently waiting on the inbound queue.

        Returns:
            Dict with status, message and chunk counts and per-chunk results
        """
        reason = gate_closed_reason(self.configuration)
        if reason:
            logger.info(f"{reason}. Skipping pick completion processing")
            return {"status": "skipped", "reason": reason}

        logger.info("Processing completed picks")

        messages = await self.collaborators.queue.drain()
        chunks = partition_batch(messages, self.pool.size)

        if not chunks:
            logger.info("No pick completion messages to process")
            return {"status": "completed", "messages": 0, "chunks": 0, "items_updated": 0}

        outcomes = await self.pool.run_all([
            (f"chunk-{index}", self._chunk_unit(chunk))
            for index, chunk in enumerate(chunks)
        ])

        items_updated = sum(outcome.result["items_updated"] for outcome in outcomes if outcome.succeeded)
        failed_chunks = sum(1 for outcome in outcomes if not outcome.succeeded)

        return {
            "status": "completed",
            "messages": len(messages),
            "chunks": len(chunks),
            "failed_chunks": failed_chunks,
            "items_updated": items_updated,
        }

    def _chunk_unit(self, chunk: List[Message]):
        async def unit():
            return await self.process_chunk(chunk)
        return unit

    async def process_chunk(self, messages: Sequence[Message]) -> Dict[str, Any]:
        """Apply one chunk of pick completion messages."""
        transaction_id = str(uuid.uuid4())

        with tracer.start_as_current_span("pick_completion_chunk") as span:
            span.set_attribute("messages", len(messages))
            span.set_attribute("transaction_id", transaction_id)

            notifications = decode_notifications(messages)
            completed_picks = await self._retrieve_completed_picks(notifications, transaction_id)

            result = {
                "notifications": len(notifications),
                "picks": len(completed_picks),
                "orders": 0,
                "items_updated": 0,
            }
            if not completed_picks:
                return result

            logger.info(
                f"Found {len(completed_picks)} completed picks. Looking up the associated orders",
                transaction_id=transaction_id,
            )

            picks_by_item: Dict[str, List[Pick]] = defaultdict(list)
            order_numbers = set()
            for pick in completed_picks:
                picks_by_item[pick.order_item_id].append(pick)
                order_numbers.add(pick.order_number)

            try:
                orders = await self.retry_policy.call(
                    "orders.find",
                    self.collaborators.order_repository.find,
                    OrderSearchCriteria(order_numbers=sorted(order_numbers)),
                )
            except Exception as e:
                logger.error(
                    f"Failed to look up the orders for {len(completed_picks)} completed picks",
                    transaction_id=transaction_id,
                    error=str(e),
                )
                return result

            if not orders:
                logger.warning(
                    f"Found no orders for the {len(completed_picks)} completed picks",
                    transaction_id=transaction_id,
                )
                return result

            for order in orders:
                try:
                    result["items_updated"] += await self.handle_pick_completion(order, picks_by_item)
                    result["orders"] += 1
                except Exception as e:
                    logger.exception(
                        f"Failed to apply pick completions to {order.type.value} Order #{order.number}",
                        order_type=order.type.value,
                        order_number=order.number,
                        transaction_id=order.transaction_id,
                        error=str(e),
                    )

            return result

    async def _retrieve_completed_picks(
        self,
        notifications: List[PickCompleteNotification],
        transaction_id: str,
    ) -> List[Pick]:
        pick_ids = {notification.pick_id for notification in notifications}
        if not pick_ids:
            return []

        request = PickSearchRequest(
            search=WmsSearchParameters(pick_ids=pick_ids),
            transaction_id=transaction_id,
        )
        try:
            response = await self.retry_policy.call("wms.search_picks", self.collaborators.wms.search_picks, request)
        except Exception as e:
            logger.error(
                "Failed to search for completed picks",
                transaction_id=transaction_id,
                pick_ids=sorted(pick_ids),
                error=str(e),
            )
            return []
        return response.picks

    async def _is_consolidatable(self, order: Order) -> bool:
        try:
            order_class = await self.retry_policy.call(
                "consolidation.status", classify, order, self.collaborators.consolidation
            )
        except Exception as e:
            logger.warning(
                f"Failed to look up the consolidation status for {order.type.value} Order #{order.number}. "
                f"Falling back to its reservation",
                order_type=order.type.value,
                order_number=order.number,
                transaction_id=order.transaction_id,
                error=str(e),
            )
            return has_consolidation_reservation(order)
        return order_class == OrderClass.CONSOLIDATABLE

    async def handle_pick_completion(self, order: Order, picks_by_item: Dict[str, List[Pick]]) -> int:
        """
        Update the items of ``order`` that have completed picks.

        Returns:
            int: Number of items saved
        """
        logger.info(
            f"Processing pick completion for {order.type.value} Order #{order.number}",
            order_type=order.type.value,
            order_number=order.number,
            transaction_id=order.transaction_id,
        )

        consolidatable = await self._is_consolidatable(order)
        hold_requested = False
        updated = 0

        for item in order.items:
            pick = latest_created_pick(picks_by_item.get(item.id, []))
            if pick is None:
                continue

            update = resolve_completion_update(item, pick)
            item.status = update.item_status

            if pick.handled_by_straggler and pick.fulfillment_status:
                logger.info(
                    f"Straggler determination for Pick {pick.id}: {pick.fulfillment_status}",
                    pick_id=pick.id,
                    order_number=order.number,
                    transaction_id=order.transaction_id,
                )

            if update.hold_if_not_consolidated and not consolidatable and not hold_requested:
                logger.warning(
                    f"Straggler determined {order.type.value} Order #{order.number} was out or "
                    f"partially available, holding in consolidation",
                    order_type=order.type.value,
                    order_number=order.number,
                    transaction_id=order.transaction_id,
                )
                hold_requested = True
                try:
                    await self.collaborators.consolidation.hold(order.number, order.transaction_id)
                except Exception as e:
                    logger.warning(
                        f"Failed to hold {order.type.value} Order #{order.number} in consolidation",
                        order_number=order.number,
                        transaction_id=order.transaction_id,
                        error=str(e),
                    )

            if consolidatable and update.label:
                await self._push_label(order, pick, update.label)

            await self.collaborators.order_repository.save_item(item)
            pick_completion_items_updated_total.labels(item_status=item.status.value).inc()
            updated += 1

        return updated

    async def _push_label(self, order: Order, pick: Pick, label: str) -> None:
        try:
            await self.collaborators.consolidation.update_order_item_label(
                str(pick.order_number), str(pick.id), Label.of(label)
            )
        except Exception as e:
            logger.warning(
                f"Failed to update the consolidation label of Pick {pick.id} to {label!r}",
                order_number=order.number,
                pick_id=pick.id,
                transaction_id=order.transaction_id,
                error=str(e),
            )
