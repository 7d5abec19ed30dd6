"""External collaborators of the exception engine."""

from .base import Consolidation, MessageQueue, OrderRepository, WarehouseManagement
from .memory import (
    InMemoryConsolidation,
    InMemoryMessageQueue,
    InMemoryOrderRepository,
    InMemoryWarehouseManagement,
)
from .registry import Collaborators, get_collaborators, register_collaborators, reset_collaborators

__all__ = [
    "Consolidation",
    "MessageQueue",
    "OrderRepository",
    "WarehouseManagement",
    "InMemoryConsolidation",
    "InMemoryMessageQueue",
    "InMemoryOrderRepository",
    "InMemoryWarehouseManagement",
    "Collaborators",
    "get_collaborators",
    "register_collaborators",
    "reset_collaborators",
]
