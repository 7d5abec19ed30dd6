# ==== PREFECT FLOWS PACKAGE ==== #

"""
Prefect flows for the fulfillment exception engine.

- exception_sweep_flow: Periodic sweep over WIP orders (every minute)
- pick_completion_flow: Periodic processing of pick completion messages (every minute)
"""

from .exception_sweep_flow import exception_sweep_flow
from .pick_completion_flow import pick_completion_flow

__all__ = [
    "exception_sweep_flow",
    "pick_completion_flow"
]
