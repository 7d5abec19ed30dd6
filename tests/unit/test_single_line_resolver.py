# ==== SINGLE-LINE RESOLVER TESTS ==== #

"""
Unit tests for the single-line resolver: completion of verified orders,
auto-repick of stalled items and degradation on WMS failures.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from freezegun import freeze_time

from fulfillment_exceptions.models.orders import OrderItemStatus, OrderStatus, OrderType
from fulfillment_exceptions.models.warehouse import OrderVerification
from fulfillment_exceptions.services.single_line_resolver import SingleLineResolver, most_recent_pick
from tests.factories.data_factories import minutes_ago, straggler_skill


@pytest.fixture
def resolver(order_repository, wms, configuration, retry_policy):
    return SingleLineResolver(order_repository, wms, configuration, retry_policy)


def verify(wms, order, successful=True):
    wms.verifications[order.number] = [OrderVerification(order_number=order.number, successful=successful)]


@pytest.mark.unit
class TestMostRecentPick:

    def test_latest_last_update_wins(self, order_factory, pick_factory):
        item = order_factory.create_item()
        order = order_factory.create_order(items=[item])
        older = pick_factory.create_pick(item, order, last_update=minutes_ago(90))
        newer = pick_factory.create_pick(item, order, last_update=minutes_ago(50))

        assert most_recent_pick([older, newer]) is newer
        assert most_recent_pick([]) is None


@pytest.mark.unit
class TestVerifiedOrders:

    @pytest.mark.asyncio
    @freeze_time("2024-03-01 12:00:00")
    async def test_verified_and_shipped_order_completes(self, resolver, order_repository, wms, order_factory):
        order = order_factory.create_order(items=[
            order_factory.create_item(shipped=True),
            order_factory.create_item(status=OrderItemStatus.DELETED),
        ])
        verify(wms, order)

        result = await resolver.resolve([order], OrderType.B2C)

        assert result == {"orders_processed": 1, "orders_completed": 1, "items_repicked": 0}
        saved = order_repository.orders[order.id]
        assert saved.status == OrderStatus.COMPLETE
        assert saved.completed_on == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_verified_but_partially_shipped_stays_wip(
        self, resolver, order_repository, wms, order_factory, pick_factory
    ):
        shipped = order_factory.create_item(shipped=True)
        pending = order_factory.create_item(shipped=False)
        order = order_factory.create_order(items=[shipped, pending])
        verify(wms, order)
        # A stale pick must not be repicked once the order is verified
        wms.picks[1] = pick_factory.create_pick(pending, order, pick_id=1)

        result = await resolver.resolve([order], OrderType.B2C)

        assert result["orders_completed"] == 0
        assert result["items_repicked"] == 0
        assert order_repository.orders[order.id].status == OrderStatus.WIP
        assert order_repository.orders[order.id].completed_on is None
        assert wms.saved_picks == []

    @pytest.mark.asyncio
    async def test_unsuccessful_verification_counts_as_unverified(
        self, resolver, order_repository, wms, order_factory
    ):
        order = order_factory.create_order(items=[order_factory.create_item(shipped=True)])
        verify(wms, order, successful=False)

        result = await resolver.resolve([order], OrderType.B2C)

        assert result["orders_completed"] == 0
        assert order_repository.orders[order.id].status == OrderStatus.WIP


@pytest.mark.unit
class TestAutoRepick:

    @pytest.mark.asyncio
    async def test_stalled_item_is_repicked(self, resolver, order_repository, wms, order_factory, pick_factory):
        item = order_factory.create_item()
        order = order_factory.create_order(items=[item])
        wms.picks[7] = pick_factory.create_pick(item, order, pick_id=7, skill=straggler_skill())

        result = await resolver.resolve([order], OrderType.B2C)

        assert result["items_repicked"] == 1
        assert order_repository.orders[order.id].items[0].num_straggles == 1

        [repick] = wms.saved_picks
        assert repick.id == 7
        assert repick.status is None
        assert repick.wms_user_id is None
        assert repick.straggled is True
        assert repick.skill.id == "straggler"

    @pytest.mark.asyncio
    async def test_exhausted_budget_is_not_repicked(self, resolver, order_repository, wms, order_factory, pick_factory):
        item = order_factory.create_item(num_straggles=5)
        order = order_factory.create_order(items=[item])
        wms.picks[7] = pick_factory.create_pick(item, order, pick_id=7)

        result = await resolver.resolve([order], OrderType.B2C)

        assert result["items_repicked"] == 0
        assert order_repository.orders[order.id].items[0].num_straggles == 5
        assert wms.saved_picks == []

    @pytest.mark.asyncio
    async def test_auto_repick_disabled(self, order_repository, wms, configuration, retry_policy, order_factory, pick_factory):
        resolver = SingleLineResolver(
            order_repository, wms, configuration.model_copy(update={"auto_straggle_enabled": False}), retry_policy
        )
        item = order_factory.create_item()
        order = order_factory.create_order(items=[item])
        wms.picks[7] = pick_factory.create_pick(item, order, pick_id=7)

        result = await resolver.resolve([order], OrderType.B2C)

        assert result["items_repicked"] == 0
        assert order_repository.orders[order.id].items[0].num_straggles == 0
        assert wms.saved_picks == []

    @pytest.mark.asyncio
    async def test_most_recent_pick_decides(self, resolver, wms, order_factory, pick_factory):
        item = order_factory.create_item()
        order = order_factory.create_order(items=[item])
        wms.picks[1] = pick_factory.create_pick(item, order, pick_id=1, last_update=minutes_ago(120))
        wms.picks[2] = pick_factory.create_pick(item, order, pick_id=2, last_update=minutes_ago(5))

        result = await resolver.resolve([order], OrderType.B2C)

        assert result["items_repicked"] == 0
        assert wms.saved_picks == []

    @pytest.mark.asyncio
    async def test_only_repickable_items_are_considered(self, resolver, wms, order_factory, pick_factory):
        deleted = order_factory.create_item(status=OrderItemStatus.DELETED)
        active = order_factory.create_item()
        order = order_factory.create_order(items=[deleted, active])
        wms.picks[1] = pick_factory.create_pick(deleted, order, pick_id=1)
        wms.picks[2] = pick_factory.create_pick(active, order, pick_id=2)

        result = await resolver.resolve([order], OrderType.B2C)

        assert result["items_repicked"] == 1
        assert [pick.id for pick in wms.saved_picks] == [2]

    @pytest.mark.asyncio
    async def test_failed_pick_save_leaves_counter(self, order_repository, configuration, retry_policy, order_factory, pick_factory):
        item = order_factory.create_item()
        order = order_factory.create_order(items=[item])
        pick = pick_factory.create_pick(item, order)

        wms = AsyncMock()
        wms.search_verifications.return_value.verifications = []
        wms.search_picks.return_value.picks = [pick]
        wms.save_pick.side_effect = ConnectionError("wms down")
        resolver = SingleLineResolver(order_repository, wms, configuration, retry_policy)

        result = await resolver.resolve([order], OrderType.B2C)

        assert result["items_repicked"] == 0
        assert order_repository.orders[order.id].items[0].num_straggles == 0


@pytest.mark.unit
class TestDegradation:

    @pytest.mark.asyncio
    async def test_wms_failure_degrades_to_no_action(self, order_repository, configuration, retry_policy, order_factory):
        order = order_factory.create_order(items=[order_factory.create_item(shipped=True)])
        wms = AsyncMock()
        wms.search_verifications.side_effect = ConnectionError("wms down")
        wms.search_picks.side_effect = ConnectionError("wms down")
        resolver = SingleLineResolver(order_repository, wms, configuration, retry_policy)

        result = await resolver.resolve([order], OrderType.B2C)

        assert result == {"orders_processed": 1, "orders_completed": 0, "items_repicked": 0}
        assert order_repository.orders[order.id].status == OrderStatus.WIP
        wms.save_pick.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_save_failure_does_not_stop_batch(self, wms, configuration, retry_policy, order_factory):
        first = order_factory.create_order(items=[order_factory.create_item(shipped=True)])
        second = order_factory.create_order(items=[order_factory.create_item(shipped=True)])
        verify(wms, first)
        verify(wms, second)

        order_repository = AsyncMock()
        order_repository.save.side_effect = [ConnectionError("db down"), None]
        resolver = SingleLineResolver(order_repository, wms, configuration, retry_policy)

        result = await resolver.resolve([first, second], OrderType.B2C)

        assert result["orders_processed"] == 2
        assert order_repository.save.await_count == 2


@pytest.mark.unit
class TestPerOrderIsolation:

    @pytest.mark.asyncio
    async def test_mixed_naive_and_aware_picks_are_compared(
        self, resolver, order_repository, wms, order_factory, pick_factory
    ):
        item = order_factory.create_item()
        order = order_factory.create_order(items=[item])
        naive_recent = (datetime.now(timezone.utc) - timedelta(minutes=50)).replace(tzinfo=None)
        wms.picks[1] = pick_factory.create_pick(item, order, pick_id=1, last_update=minutes_ago(60))
        wms.picks[2] = pick_factory.create_pick(item, order, pick_id=2, last_update=naive_recent)

        result = await resolver.resolve([order], OrderType.B2C)

        assert result["items_repicked"] == 1
        assert [pick.id for pick in wms.saved_picks] == [2]
        assert order.id in order_repository.orders

    @pytest.mark.asyncio
    async def test_failing_order_does_not_stop_batch(
        self, resolver, order_repository, wms, order_factory, pick_factory
    ):
        broken_item = order_factory.create_item()
        broken = order_factory.create_order(items=[broken_item])
        healthy_item = order_factory.create_item()
        healthy = order_factory.create_order(items=[healthy_item])
        wms.picks[1] = pick_factory.create_pick(broken_item, broken, pick_id=1)
        wms.picks[2] = pick_factory.create_pick(healthy_item, healthy, pick_id=2)

        real_repick = resolver._repick_candidates

        async def repick_candidates(order, order_type, picks_by_item):
            if order.id == broken.id:
                raise TypeError("unexpected pick data")
            return await real_repick(order, order_type, picks_by_item)

        with patch.object(resolver, "_repick_candidates", side_effect=repick_candidates):
            result = await resolver.resolve([broken, healthy], OrderType.B2C)

        assert result["orders_processed"] == 2
        assert result["items_repicked"] == 1
        assert [order.id for order in order_repository.saved_orders] == [broken.id, healthy.id]
        assert order_repository.orders[healthy.id].items[0].num_straggles == 1
        assert order_repository.orders[broken.id].items[0].num_straggles == 0
