"""Deployment definitions for the two scheduled flows."""

from datetime import timedelta
from typing import List

from fulfillment_exceptions.settings import Settings

from .exception_sweep_flow import exception_sweep_flow
from .pick_completion_flow import pick_completion_flow


def build_deployments(settings: Settings) -> List:
    """
    Build the fixed-interval deployments served by ``scripts/serve_flows.py``.

    Args:
        settings: Settings providing the two intervals

    Returns:
        Runner deployments for the exception sweep and pick completion flows
    """
    return [
        exception_sweep_flow.to_deployment(
            name="exception-sweep-every-minute",
            interval=timedelta(seconds=settings.SWEEP_INTERVAL_SECONDS),
            tags=["exceptions", "sweep", "periodic"],
            description="Completes finished WIP orders and auto-repicks stalled order lines",
        ),
        pick_completion_flow.to_deployment(
            name="pick-completion-every-minute",
            interval=timedelta(seconds=settings.PICK_COMPLETION_INTERVAL_SECONDS),
            tags=["exceptions", "picks", "periodic"],
            description="Applies WMS pick completion notifications to order items",
        ),
    ]
