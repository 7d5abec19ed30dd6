"""Process-wide collaborator wiring used by the scheduled flows."""

from dataclasses import dataclass, field

from fulfillment_exceptions.integrations.base import (
    Consolidation,
    MessageQueue,
    OrderRepository,
    WarehouseManagement,
)
from fulfillment_exceptions.integrations.memory import (
    InMemoryConsolidation,
    InMemoryMessageQueue,
    InMemoryOrderRepository,
    InMemoryWarehouseManagement,
)


@dataclass
class Collaborators:
    """The four external systems one engine run talks to."""
    order_repository: OrderRepository = field(default_factory=InMemoryOrderRepository)
    wms: WarehouseManagement = field(default_factory=InMemoryWarehouseManagement)
    consolidation: Consolidation = field(default_factory=InMemoryConsolidation)
    queue: MessageQueue = field(default_factory=InMemoryMessageQueue)


_collaborators: Collaborators | None = None


def register_collaborators(collaborators: Collaborators) -> None:
    """Install the collaborators the flows will use from now on."""
    global _collaborators
    _collaborators = collaborators


def get_collaborators() -> Collaborators:
    """Get the registered collaborators, defaulting to in-memory ones."""
    global _collaborators
    if _collaborators is None:
        _collaborators = Collaborators()
    return _collaborators


def reset_collaborators() -> None:
    global _collaborators
    _collaborators = None
