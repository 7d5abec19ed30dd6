# ==== EXCEPTION SWEEP ORCHESTRATOR TESTS ==== #

"""
Unit tests for the exception sweep: gating, classification into the two
resolver batches and isolation of failing order types.
"""

from unittest.mock import AsyncMock, patch

import pytest

from fulfillment_exceptions.models.consolidation import ConsolidatableOrder
from fulfillment_exceptions.models.orders import OrderStatus, OrderType
from fulfillment_exceptions.models.warehouse import OrderVerification
from fulfillment_exceptions.services.exception_sweep import (
    ExceptionSweepOrchestrator,
    gate_closed_reason,
)
from fulfillment_exceptions.settings import ExceptionConfiguration


def build(collaborators, configuration, pools, retry_policy):
    return ExceptionSweepOrchestrator(collaborators, configuration, pools, retry_policy)


@pytest.mark.unit
class TestGating:

    def test_gate_reasons(self):
        assert gate_closed_reason(ExceptionConfiguration(enabled=False, warehouse_operational=True)) == (
            "Exception handling is disabled"
        )
        assert gate_closed_reason(ExceptionConfiguration(enabled=True, warehouse_operational=False)) == (
            "Warehouse is not operational"
        )
        assert gate_closed_reason(ExceptionConfiguration(enabled=True, warehouse_operational=True)) is None

    @pytest.mark.parametrize("enabled,operational", [(True, True), (True, False), (False, True), (False, False)])
    def test_gate_is_open_exactly_when_active(self, enabled, operational):
        configuration = ExceptionConfiguration(enabled=enabled, warehouse_operational=operational)
        assert (gate_closed_reason(configuration) is None) == configuration.active

    @pytest.mark.asyncio
    @pytest.mark.parametrize("enabled,operational", [(False, True), (True, False), (False, False)])
    async def test_closed_gate_skips_without_reads(self, enabled, operational, pools, retry_policy):
        collaborators = AsyncMock()
        configuration = ExceptionConfiguration(enabled=enabled, warehouse_operational=operational)

        result = await build(collaborators, configuration, pools, retry_policy).run()

        assert result["status"] == "skipped"
        assert result["order_types"] == {}
        collaborators.order_repository.find.assert_not_awaited()
        collaborators.wms.search_picks.assert_not_awaited()


@pytest.mark.unit
class TestSweep:

    @pytest.mark.asyncio
    async def test_every_supported_type_is_swept(self, collaborators, configuration, pools, retry_policy):
        result = await build(collaborators, configuration, pools, retry_policy).run()

        assert result["status"] == "completed"
        assert set(result["order_types"]) == {order_type.value for order_type in OrderType}
        for type_result in result["order_types"].values():
            assert type_result == {"status": "completed", "wip_orders": 0}

    @pytest.mark.asyncio
    async def test_unsupported_types_are_not_swept(self, collaborators, configuration, pools, retry_policy):
        configuration = configuration.model_copy(update={"supported_order_types": frozenset({OrderType.B2B})})

        result = await build(collaborators, configuration, pools, retry_policy).run()

        assert list(result["order_types"]) == ["B2B"]

    @pytest.mark.asyncio
    async def test_orders_are_routed_by_classification(
        self, collaborators, order_repository, wms, consolidation, configuration, pools, retry_policy, order_factory
    ):
        singleton = order_factory.create_order(items=[order_factory.create_item(shipped=True)])
        released = order_factory.create_order(
            items=[order_factory.create_item(shipped=True)], reservation_id="R-7-X"
        )
        reserved = order_factory.create_order(
            items=[order_factory.create_item(shipped=True)], reservation_id="R-8"
        )
        recorded = order_factory.create_order(items=[order_factory.create_item(shipped=True)])
        complete = order_factory.create_order(status=OrderStatus.COMPLETE)

        for order in (singleton, released, reserved, recorded, complete):
            order_repository.orders[order.id] = order
        for order in (singleton, released):
            wms.verifications[order.number] = [OrderVerification(order_number=order.number, successful=True)]
        consolidation.orders[recorded.number] = ConsolidatableOrder()

        result = await build(collaborators, configuration, pools, retry_policy).run()

        b2c = result["order_types"]["B2C"]
        assert b2c["wip_orders"] == 4
        assert b2c["unclassified_orders"] == 0
        assert b2c["single_line"]["orders_processed"] == 2
        assert b2c["consolidated"]["orders_processed"] == 2
        for order in (singleton, released, reserved, recorded):
            assert order_repository.orders[order.id].status == OrderStatus.COMPLETE

    @pytest.mark.asyncio
    async def test_failed_classification_skips_order(
        self, collaborators, order_repository, configuration, pools, retry_policy, order_factory
    ):
        order = order_factory.create_order(items=[order_factory.create_item(shipped=True)])
        order_repository.orders[order.id] = order
        collaborators.consolidation = AsyncMock()
        collaborators.consolidation.status.side_effect = ConnectionError("consolidation down")

        result = await build(collaborators, configuration, pools, retry_policy).run()

        b2c = result["order_types"]["B2C"]
        assert b2c["unclassified_orders"] == 1
        assert b2c["single_line"]["orders_processed"] == 0
        assert b2c["consolidated"]["orders_processed"] == 0
        assert order_repository.saved_orders == []

    @pytest.mark.asyncio
    async def test_failing_order_type_does_not_stop_others(
        self, collaborators, order_repository, configuration, pools, retry_policy, order_factory
    ):
        order = order_factory.create_order(order_type=OrderType.B2B)
        order_repository.orders[order.id] = order
        real_find = order_repository.find

        async def flaky_find(criteria):
            if criteria.types == [OrderType.B2C]:
                raise ConnectionError("orders db down")
            return await real_find(criteria)

        with patch.object(order_repository, "find", side_effect=flaky_find):
            result = await build(collaborators, configuration, pools, retry_policy).run()

        assert result["status"] == "completed"
        assert result["order_types"]["B2C"] == {"status": "failed", "error": "orders db down"}
        assert result["order_types"]["B2B"]["wip_orders"] == 1
        assert result["order_types"]["LARGE_BULKY_ITEM"]["wip_orders"] == 0

    @pytest.mark.asyncio
    async def test_failing_resolver_is_reported(
        self, collaborators, order_repository, configuration, pools, retry_policy, order_factory
    ):
        order = order_factory.create_order()
        order_repository.orders[order.id] = order
        orchestrator = build(collaborators, configuration, pools, retry_policy)

        with patch.object(
            orchestrator.single_line_resolver, "resolve", AsyncMock(side_effect=RuntimeError("boom"))
        ):
            result = await orchestrator.run()

        b2c = result["order_types"]["B2C"]
        assert b2c["single_line"] == {"status": "failed", "error": "boom"}
        assert b2c["consolidated"]["orders_processed"] == 0
