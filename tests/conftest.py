# ==== SHARED TEST FIXTURES AND CONFIGURATION ==== #

"""
Shared test fixtures for the fulfillment exception engine.

Provides run configurations, a retry policy that never sleeps, in-memory
collaborators and data factories. Environment variables are set before
any application module is imported so that the global settings pick them
up.
"""

import os

import pytest


# ==== FORCE ENVIRONMENT SETUP BEFORE ANY IMPORTS ==== #

os.environ.update({
    "APP_ENV": "test",
    "LOG_LEVEL": "WARNING",
    "EXCEPTIONS_ENABLED": "true",
    "WAREHOUSE_OPERATIONAL": "true",
    "AUTO_STRAGGLE_ENABLED": "true",
    "COLLABORATOR_RETRY_ATTEMPTS": "1",
    "COLLABORATOR_RETRY_DELAY_SECONDS": "0",
})

from fulfillment_exceptions.integrations.memory import (
    InMemoryConsolidation,
    InMemoryMessageQueue,
    InMemoryOrderRepository,
    InMemoryWarehouseManagement,
)
from fulfillment_exceptions.integrations.registry import Collaborators, reset_collaborators
from fulfillment_exceptions.resilience.retry_policies import CollaboratorRetryPolicy
from fulfillment_exceptions.settings import (
    ExceptionConfiguration,
    PoolConfiguration,
    RetryConfiguration,
)
from tests.factories.data_factories import OrderFactory, PickFactory


# ==== CONFIGURATION FIXTURES ==== #


@pytest.fixture
def configuration():
    """Active engine configuration with auto-repick switched on."""
    return ExceptionConfiguration(
        enabled=True,
        warehouse_operational=True,
        max_auto_straggles=5,
        auto_straggle_timeframe_minutes=45,
        auto_straggle_enabled=True,
    )


@pytest.fixture
def pools():
    return PoolConfiguration(resolver_pool_size=2, pick_completion_pool_size=3)


@pytest.fixture
def retry_policy():
    """Single-attempt policy so failing collaborators degrade immediately."""
    return CollaboratorRetryPolicy(RetryConfiguration(max_attempts=1, delay_seconds=0))


# ==== COLLABORATOR FIXTURES ==== #


@pytest.fixture
def order_repository():
    return InMemoryOrderRepository()


@pytest.fixture
def wms():
    return InMemoryWarehouseManagement()


@pytest.fixture
def consolidation():
    return InMemoryConsolidation()


@pytest.fixture
def queue():
    return InMemoryMessageQueue()


@pytest.fixture
def collaborators(order_repository, wms, consolidation, queue):
    return Collaborators(
        order_repository=order_repository,
        wms=wms,
        consolidation=consolidation,
        queue=queue,
    )


@pytest.fixture(autouse=True)
def clean_registry():
    """Leave no registered collaborators behind between tests."""
    reset_collaborators()
    yield
    reset_collaborators()


# ==== DATA FACTORIES ==== #


@pytest.fixture
def order_factory():
    return OrderFactory()


@pytest.fixture
def pick_factory():
    return PickFactory()
