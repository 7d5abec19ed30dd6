# ==== EXCEPTION SWEEP ORCHESTRATOR ==== #

"""
Periodic sweep over WIP orders of every supported order type.

One task per order type runs on the order-type pool. Each task loads that
type's WIP orders, classifies them, and runs the single-line and
consolidated-line resolvers side by side on the shared resolver pool.
Order types finish in no particular order and a failing type never stops
the others.
"""

import time
from typing import Any, Dict, List

from fulfillment_exceptions.integrations.registry import Collaborators
from fulfillment_exceptions.models.orders import Order, OrderSearchCriteria, OrderStatus, OrderType
from fulfillment_exceptions.observability.logging import ContextualLogger, log_performance
from fulfillment_exceptions.observability.metrics import sweep_duration_seconds, sweep_runs_total
from fulfillment_exceptions.observability.tracing import get_tracer
from fulfillment_exceptions.resilience.retry_policies import CollaboratorRetryPolicy
from fulfillment_exceptions.resilience.worker_pool import WorkerPool
from fulfillment_exceptions.services.consolidated_resolver import ConsolidatedLineResolver
from fulfillment_exceptions.services.decisions import OrderClass, classify
from fulfillment_exceptions.services.single_line_resolver import SingleLineResolver
from fulfillment_exceptions.settings import ExceptionConfiguration, PoolConfiguration


tracer = get_tracer(__name__)
logger = ContextualLogger(__name__)


def gate_closed_reason(configuration: ExceptionConfiguration) -> str | None:
    """Why a run should be skipped, or None when the engine may run."""
    if configuration.active:
        return None
    if not configuration.enabled:
        return "Exception handling is disabled"
    return "Warehouse is not operational"


class ExceptionSweepOrchestrator:
    """
    Runs one exception sweep across all supported order types.

    Pools are created per orchestrator from the injected
    ``PoolConfiguration``; build a fresh orchestrator for each run.
    """

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
        self.order_type_pool = WorkerPool("order-types", pools.order_type_pool_size)
        self.resolver_pool = WorkerPool("resolvers", pools.resolver_pool_size)

        self.single_line_resolver = SingleLineResolver(
            collaborators.order_repository, collaborators.wms, configuration, retry_policy
        )
        self.consolidated_resolver = ConsolidatedLineResolver(
            collaborators.order_repository,
            collaborators.wms,
            collaborators.consolidation,
            configuration,
            retry_policy,
        )

    async def run(self) -> Dict[str, Any]:
        """
        Run the sweep unless the engine is disabled or the warehouse is closed.

        Returns:
            Dict with status and per-order-type results
        """
        logger.info("Handling exception scenarios")

        reason = gate_closed_reason(self.configuration)
        if reason:
            logger.info(f"{reason}. Skipping exception sweep")
            sweep_runs_total.labels(outcome="skipped").inc()
            return {"status": "skipped", "reason": reason, "order_types": {}}

        order_types = sorted(self.configuration.supported_order_types, key=lambda t: t.value)
        started = time.monotonic()

        with tracer.start_as_current_span("exception_sweep") as span:
            span.set_attribute("order_types", [order_type.value for order_type in order_types])

            outcomes = await self.order_type_pool.run_all([
                (order_type.value, self._sweep_unit(order_type))
                for order_type in order_types
            ])

        duration = time.monotonic() - started
        sweep_duration_seconds.observe(duration)
        sweep_runs_total.labels(outcome="completed").inc()
        log_performance("exception_sweep", duration)

        results = {
            outcome.name: outcome.result if outcome.succeeded else {"status": "failed", "error": str(outcome.error)}
            for outcome in outcomes
        }
        logger.info(
            f"Exceptions handled for the following order types: {[t.value for t in order_types]}",
            duration_seconds=round(duration, 3),
        )
        return {"status": "completed", "order_types": results}

    def _sweep_unit(self, order_type: OrderType):
        async def unit():
            return await self.sweep_order_type(order_type)
        return unit

    async def sweep_order_type(self, order_type: OrderType) -> Dict[str, Any]:
        """Load, classify and resolve the WIP orders of one order type."""
        with tracer.start_as_current_span("exception_sweep_order_type") as span:
            span.set_attribute("order_type", order_type.value)
            logger.info(f"Handling {order_type.value} order exceptions", order_type=order_type.value)

            wip_orders = await self.collaborators.order_repository.find(
                OrderSearchCriteria(types=[order_type], statuses=[OrderStatus.WIP])
            )
            span.set_attribute("wip_orders", len(wip_orders))

            if not wip_orders:
                logger.info(f"No WIP {order_type.value} orders found", order_type=order_type.value)
                return {"status": "completed", "wip_orders": 0}

            logger.info(
                f"Found {len(wip_orders)} WIP {order_type.value} orders. Preparing to handle exceptions",
                order_type=order_type.value,
            )

            singletons, consolidatable, unclassified = await self._classify_orders(wip_orders, order_type)

            async def resolve_singletons():
                return await self.single_line_resolver.resolve(singletons, order_type)

            async def resolve_consolidatable():
                return await self.consolidated_resolver.resolve(consolidatable, order_type)

            outcomes = await self.resolver_pool.run_all([
                ("single_line", resolve_singletons),
                ("consolidated", resolve_consolidatable),
            ])

            result: Dict[str, Any] = {
                "status": "completed",
                "wip_orders": len(wip_orders),
                "unclassified_orders": unclassified,
            }
            for outcome in outcomes:
                result[outcome.name] = (
                    outcome.result if outcome.succeeded
                    else {"status": "failed", "error": str(outcome.error)}
                )
            return result

    async def _classify_orders(self, orders: List[Order], order_type: OrderType):
        """Split orders into singleton and consolidatable batches.

        An order whose consolidation lookup fails is left out of this sweep
        and picked up again on the next one.
        """
        singletons: List[Order] = []
        consolidatable: List[Order] = []
        unclassified = 0

        for order in orders:
            try:
                order_class = await self.retry_policy.call(
                    "consolidation.status", classify, order, self.collaborators.consolidation
                )
            except Exception as e:
                logger.warning(
                    f"Failed to classify {order_type.value} Order #{order.number}. Skipping until next sweep",
                    order_type=order_type.value,
                    order_number=order.number,
                    transaction_id=order.transaction_id,
                    error=str(e),
                )
                unclassified += 1
                continue

            if order_class == OrderClass.CONSOLIDATABLE:
                consolidatable.append(order)
            else:
                singletons.append(order)

        return singletons, consolidatable, unclassified
