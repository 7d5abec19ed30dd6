# ==== EXTERNAL COLLABORATOR CONTRACTS ==== #

"""
Contracts of the systems the exception engine talks to.

The engine never assumes transactions or exactly-once delivery from any of
them: saves are fire-and-forget and the inbound queue may repeat messages.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from fulfillment_exceptions.models.consolidation import ConsolidatableOrder, Label
from fulfillment_exceptions.models.messages import Message
from fulfillment_exceptions.models.orders import Order, OrderItem, OrderSearchCriteria
from fulfillment_exceptions.models.warehouse import (
    OrderVerificationSearchRequest,
    OrderVerificationSearchResponse,
    PickSaveRequest,
    PickSaveResponse,
    PickSearchRequest,
    PickSearchResponse,
)


class OrderRepository(ABC):
    """Order store owned by the order service."""

    @abstractmethod
    async def find(self, criteria: OrderSearchCriteria) -> List[Order]:
        """Return orders matching every criterion that is set."""

    @abstractmethod
    async def save(self, order: Order) -> None:
        """Persist an order and its items."""

    @abstractmethod
    async def save_item(self, item: OrderItem) -> None:
        """Persist a single order item."""


class WarehouseManagement(ABC):
    """Warehouse-management system client."""

    @abstractmethod
    async def search_verifications(
        self, request: OrderVerificationSearchRequest
    ) -> OrderVerificationSearchResponse:
        """Scan-verification records for an order."""

    @abstractmethod
    async def search_picks(self, request: PickSearchRequest) -> PickSearchResponse:
        """Picks for an order number or for a set of pick ids."""

    @abstractmethod
    async def save_pick(self, request: PickSaveRequest) -> PickSaveResponse:
        """Write a pick back to the WMS."""


class Consolidation(ABC):
    """Consolidation (put wall) system client."""

    @abstractmethod
    async def status(self, order_number: int, transaction_id: str) -> Optional[ConsolidatableOrder]:
        """Consolidation record for an order, or None when it is not consolidated."""

    @abstractmethod
    async def update_order_item_label(self, order_number: str, item_id: str, label: Label) -> None:
        """Show ``label`` next to a consolidated item."""

    @abstractmethod
    async def hold(self, order_number: int, transaction_id: str) -> None:
        """Hold an order in consolidation."""


class MessageQueue(ABC):
    """Inbound queue of pick completion messages."""

    @abstractmethod
    async def drain(self) -> List[Message]:
        """Remove and return the messages present right now, oldest first."""

