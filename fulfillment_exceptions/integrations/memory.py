"""
In-process collaborator implementations.

Used as the default wiring for local runs and as realistic fakes in tests.
Every read hands out deep copies, so a caller never shares an instance with
another task or with the store itself.
"""

import asyncio
from collections import deque
from typing import Dict, Iterable, List, Optional, Tuple

from fulfillment_exceptions.integrations.base import (
    Consolidation,
    MessageQueue,
    OrderRepository,
    WarehouseManagement,
)
from fulfillment_exceptions.models.consolidation import ConsolidatableOrder, Label
from fulfillment_exceptions.models.messages import Message
from fulfillment_exceptions.models.orders import Order, OrderItem, OrderSearchCriteria
from fulfillment_exceptions.models.warehouse import (
    OrderVerification,
    OrderVerificationSearchRequest,
    OrderVerificationSearchResponse,
    Pick,
    PickSaveRequest,
    PickSaveResponse,
    PickSearchRequest,
    PickSearchResponse,
)


class InMemoryOrderRepository(OrderRepository):
    """Order repository backed by a dict keyed by order id."""

    def __init__(self, orders: Iterable[Order] = ()):
        self.orders: Dict[str, Order] = {}
        self.saved_orders: List[Order] = []
        self.saved_items: List[OrderItem] = []
        for order in orders:
            self.orders[order.id] = order.model_copy(deep=True)

    async def find(self, criteria: OrderSearchCriteria) -> List[Order]:
        matches = []
        for order in self.orders.values():
            if criteria.ids is not None and order.id not in criteria.ids:
                continue
            if criteria.statuses is not None and order.status not in criteria.statuses:
                continue
            if criteria.types is not None and order.type not in criteria.types:
                continue
            if criteria.order_numbers is not None and order.number not in criteria.order_numbers:
                continue
            matches.append(order.model_copy(deep=True))
        return matches

    async def save(self, order: Order) -> None:
        stored = order.model_copy(deep=True)
        self.orders[order.id] = stored
        self.saved_orders.append(stored)

    async def save_item(self, item: OrderItem) -> None:
        stored = item.model_copy(deep=True)
        self.saved_items.append(stored)
        for order in self.orders.values():
            for index, existing in enumerate(order.items):
                if existing.id == item.id:
                    order.items[index] = stored
                    return


class InMemoryWarehouseManagement(WarehouseManagement):
    """WMS holding picks by id and verification records by order number."""

    def __init__(
        self,
        picks: Iterable[Pick] = (),
        verifications: Optional[Dict[int, List[OrderVerification]]] = None,
    ):
        self.picks: Dict[int, Pick] = {pick.id: pick.model_copy(deep=True) for pick in picks}
        self.verifications: Dict[int, List[OrderVerification]] = dict(verifications or {})
        self.saved_picks: List[Pick] = []

    async def search_verifications(
        self, request: OrderVerificationSearchRequest
    ) -> OrderVerificationSearchResponse:
        records = self.verifications.get(request.search.order_number, [])
        return OrderVerificationSearchResponse(
            verifications=[record.model_copy(deep=True) for record in records]
        )

    async def search_picks(self, request: PickSearchRequest) -> PickSearchResponse:
        search = request.search
        picks = []
        for pick in self.picks.values():
            if search.order_number is not None and pick.order_number != search.order_number:
                continue
            if search.pick_ids is not None and pick.id not in search.pick_ids:
                continue
            picks.append(pick.model_copy(deep=True))
        return PickSearchResponse(picks=picks)

    async def save_pick(self, request: PickSaveRequest) -> PickSaveResponse:
        stored = request.pick.model_copy(deep=True)
        self.picks[stored.id] = stored
        self.saved_picks.append(stored)
        return PickSaveResponse(acknowledged=True)


class InMemoryConsolidation(Consolidation):
    """Consolidation system recording label updates and holds."""

    def __init__(self, orders: Optional[Dict[int, ConsolidatableOrder]] = None):
        self.orders: Dict[int, ConsolidatableOrder] = dict(orders or {})
        self.labels: List[Tuple[str, str, Label]] = []
        self.holds: List[int] = []

    async def status(self, order_number: int, transaction_id: str) -> Optional[ConsolidatableOrder]:
        consolidated = self.orders.get(order_number)
        return consolidated.model_copy(deep=True) if consolidated is not None else None

    async def update_order_item_label(self, order_number: str, item_id: str, label: Label) -> None:
        self.labels.append((order_number, item_id, label))

    async def hold(self, order_number: int, transaction_id: str) -> None:
        self.holds.append(order_number)


class InMemoryMessageQueue(MessageQueue):
    """FIFO queue drained in snapshots."""

    def __init__(self, messages: Iterable[Message] = ()):
        self._messages = deque(messages)
        self._lock = asyncio.Lock()

    async def publish(self, message: Message) -> None:
        async with self._lock:
            self._messages.append(message)

    async def drain(self) -> List[Message]:
        async with self._lock:
            snapshot = list(self._messages)
            self._messages.clear()
        return snapshot

    def __len__(self) -> int:
        return len(self._messages)
