# ==== APPLICATION SETTINGS CONFIGURATION ==== #

"""
Settings for the fulfillment exception engine.

Process-wide values are loaded once from the environment (or a ``.env``
file) with Pydantic Settings. The engine itself never reads ``Settings``
directly: runs build an immutable ``ExceptionConfiguration``, a
``PoolConfiguration`` and a ``RetryConfiguration`` from it and pass those
down explicitly.
"""

from dataclasses import dataclass
from typing import FrozenSet, Optional, Set

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from fulfillment_exceptions.models.orders import OrderType


DEFAULT_RESOLVER_POOL_SIZE = 8
DEFAULT_PICK_COMPLETION_POOL_SIZE = 10


# ==== MAIN SETTINGS CLASS ==== #


class Settings(BaseSettings):
    """
    Engine settings loaded from environment variables.

    Covers the exception tunables, the worker pool sizes, collaborator retry
    behaviour, schedule cadence and observability.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra='ignore'
    )

    # --► CORE APPLICATION SETTINGS
    APP_ENV: str = "dev"
    SERVICE_NAME: str = "fulfillment-exceptions"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

    # --► EXCEPTION HANDLING
    EXCEPTIONS_ENABLED: bool = False
    WAREHOUSE_OPERATIONAL: bool = False
    SUPPORTED_ORDER_TYPES: Set[OrderType] = Field(default_factory=lambda: set(OrderType))
    MAX_AUTO_STRAGGLES: int = 5
    AUTO_STRAGGLE_TIMEFRAME_MINUTES: int = 45
    AUTO_STRAGGLE_ENABLED: bool = False

    # --► WORKER POOLS
    RESOLVER_POOL_SIZE: int = DEFAULT_RESOLVER_POOL_SIZE
    PICK_COMPLETION_POOL_SIZE: int = DEFAULT_PICK_COMPLETION_POOL_SIZE

    # --► COLLABORATOR RETRIES
    COLLABORATOR_RETRY_ATTEMPTS: int = 2
    COLLABORATOR_RETRY_DELAY_SECONDS: float = 0.5

    # --► PREFECT SCHEDULES
    SWEEP_INTERVAL_SECONDS: int = 60
    PICK_COMPLETION_INTERVAL_SECONDS: int = 60

    # --► OBSERVABILITY CONFIGURATION
    OTEL_EXPORTER_OTLP_ENDPOINT: Optional[str] = None
    OTEL_EXPORTER_OTLP_HEADERS: Optional[str] = None
    OTEL_SERVICE_NAME: Optional[str] = None
    OTEL_RESOURCE_ATTRIBUTES: Optional[str] = None


# ==== RUN CONFIGURATION OBJECTS ==== #


class ExceptionConfiguration(BaseModel):
    """Tunables read by the sweep and the pick-completion processor."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    warehouse_operational: bool = False
    supported_order_types: FrozenSet[OrderType] = frozenset(OrderType)
    max_auto_straggles: int = Field(5, ge=0)
    auto_straggle_timeframe_minutes: int = Field(45, ge=0)
    auto_straggle_enabled: bool = False

    @property
    def active(self) -> bool:
        return self.enabled and self.warehouse_operational

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExceptionConfiguration":
        return cls(
            enabled=settings.EXCEPTIONS_ENABLED,
            warehouse_operational=settings.WAREHOUSE_OPERATIONAL,
            supported_order_types=frozenset(settings.SUPPORTED_ORDER_TYPES),
            max_auto_straggles=settings.MAX_AUTO_STRAGGLES,
            auto_straggle_timeframe_minutes=settings.AUTO_STRAGGLE_TIMEFRAME_MINUTES,
            auto_straggle_enabled=settings.AUTO_STRAGGLE_ENABLED,
        )


@dataclass(frozen=True)
class PoolConfiguration:
    """Sizes of the three worker pools used by a run."""
    order_type_pool_size: int = len(OrderType)
    resolver_pool_size: int = DEFAULT_RESOLVER_POOL_SIZE
    pick_completion_pool_size: int = DEFAULT_PICK_COMPLETION_POOL_SIZE

    def __post_init__(self):
        for name in ("order_type_pool_size", "resolver_pool_size", "pick_completion_pool_size"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")

    @classmethod
    def from_settings(cls, settings: Settings) -> "PoolConfiguration":
        return cls(
            order_type_pool_size=len(OrderType),
            resolver_pool_size=settings.RESOLVER_POOL_SIZE,
            pick_completion_pool_size=settings.PICK_COMPLETION_POOL_SIZE,
        )


@dataclass(frozen=True)
class RetryConfiguration:
    """Retry behaviour for collaborator lookups."""
    max_attempts: int = 2
    delay_seconds: float = 0.5

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryConfiguration":
        return cls(
            max_attempts=settings.COLLABORATOR_RETRY_ATTEMPTS,
            delay_seconds=settings.COLLABORATOR_RETRY_DELAY_SECONDS,
        )


# ==== GLOBAL SETTINGS INSTANCE ==== #


# Global settings instance for application-wide access
settings = Settings()


def get_settings() -> Settings:
    """
    Get global settings instance.

    Returns:
        Settings: Global application settings instance
    """
    return settings
