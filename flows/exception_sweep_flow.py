# ==== EXCEPTION SWEEP FLOW ==== #

"""
Prefect flow that runs the order exception sweep.

Scheduled once per minute. A run that fails is logged and reported as a
failed summary so that the schedule keeps firing on the next interval.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from prefect import flow, task

from fulfillment_exceptions.integrations.registry import get_collaborators
from fulfillment_exceptions.observability.logging import ContextualLogger
from fulfillment_exceptions.resilience.retry_policies import create_collaborator_retry_policy
from fulfillment_exceptions.services.exception_sweep import ExceptionSweepOrchestrator
from fulfillment_exceptions.settings import (
    ExceptionConfiguration,
    PoolConfiguration,
    RetryConfiguration,
    get_settings,
)


logger = ContextualLogger(__name__)


def build_orchestrator() -> ExceptionSweepOrchestrator:
    """Build a sweep orchestrator from the current settings and collaborators."""
    settings = get_settings()
    return ExceptionSweepOrchestrator(
        collaborators=get_collaborators(),
        configuration=ExceptionConfiguration.from_settings(settings),
        pools=PoolConfiguration.from_settings(settings),
        retry_policy=create_collaborator_retry_policy(RetryConfiguration.from_settings(settings)),
    )


@task(name="sweep-order-exceptions")
async def sweep_order_exceptions() -> Dict[str, Any]:
    """
    Run one exception sweep over every supported order type.

    Returns:
        Sweep summary with per-order-type results
    """
    orchestrator = build_orchestrator()
    return await orchestrator.run()


@flow(name="order-exception-sweep")
async def exception_sweep_flow() -> Dict[str, Any]:
    """
    Scheduled entry point for the exception sweep.

    Returns:
        Sweep summary, or a failed summary when the sweep raised
    """
    started_at = datetime.now(timezone.utc)
    logger.info("Starting order exception sweep flow")

    try:
        result = await sweep_order_exceptions()
    except Exception as e:
        logger.exception("Order exception sweep failed", error=str(e))
        return {
            "status": "failed",
            "error": str(e),
            "processing_timestamp": started_at.isoformat(),
        }

    result["processing_timestamp"] = started_at.isoformat()
    logger.info(f"Order exception sweep finished with status {result.get('status')}")
    return result
