# ==== PICK COMPLETION FLOW ==== #

"""
Prefect flow that applies pick completion notifications from the inbound
queue. Scheduled once per minute, independently of the exception sweep.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from prefect import flow, task

from fulfillment_exceptions.integrations.registry import get_collaborators
from fulfillment_exceptions.observability.logging import ContextualLogger
from fulfillment_exceptions.resilience.retry_policies import create_collaborator_retry_policy
from fulfillment_exceptions.services.pick_completion import PickCompletionProcessor
from fulfillment_exceptions.settings import (
    ExceptionConfiguration,
    PoolConfiguration,
    RetryConfiguration,
    get_settings,
)


logger = ContextualLogger(__name__)


def build_processor() -> PickCompletionProcessor:
    settings = get_settings()
    return PickCompletionProcessor(
        collaborators=get_collaborators(),
        configuration=ExceptionConfiguration.from_settings(settings),
        pools=PoolConfiguration.from_settings(settings),
        retry_policy=create_collaborator_retry_policy(RetryConfiguration.from_settings(settings)),
    )


@task(name="process-completed-picks")
async def process_completed_picks() -> Dict[str, Any]:
    """Drain the inbound queue and apply the completed picks."""
    processor = build_processor()
    return await processor.run()


@flow(name="pick-completion")
async def pick_completion_flow() -> Dict[str, Any]:
    """
    Scheduled entry point for pick completion processing.

    Returns:
        Processing summary, or a failed summary when processing raised
    """
    started_at = datetime.now(timezone.utc)

    try:
        result = await process_completed_picks()
    except Exception as e:
        logger.exception("Pick completion processing failed", error=str(e))
        return {
            "status": "failed",
            "error": str(e),
            "processing_timestamp": started_at.isoformat(),
        }

    result["processing_timestamp"] = started_at.isoformat()
    return result
