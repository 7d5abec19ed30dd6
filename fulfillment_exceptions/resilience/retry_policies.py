"""Retry policies for collaborator calls made by the exception engine."""

from typing import Any, Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from fulfillment_exceptions.observability.metrics import collaborator_failures_total
from fulfillment_exceptions.observability.tracing import get_tracer
from fulfillment_exceptions.settings import RetryConfiguration

tracer = get_tracer(__name__)


class CollaboratorRetryPolicy:
    """Fixed-delay retry for order repository, WMS and consolidation lookups.

    After the last attempt the original exception is re-raised so the
    caller can degrade the affected order.
    """

    def __init__(
        self,
        config: RetryConfiguration,
        retryable_exceptions: tuple = (Exception,)
    ):
        self.config = config
        self.retryable_exceptions = retryable_exceptions

    def _retrying(self, operation_name: str) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.config.max_attempts),
            wait=wait_fixed(self.config.delay_seconds),
            retry=retry_if_exception_type(self.retryable_exceptions),
            before_sleep=self._before_sleep_callback(operation_name),
            reraise=True,
        )

    def _before_sleep_callback(self, operation_name: str):
        def callback(retry_state: RetryCallState):
            with tracer.start_as_current_span("collaborator_retry") as span:
                span.set_attribute("operation", operation_name)
                span.set_attribute("attempt", retry_state.attempt_number)
                span.set_attribute("exception", str(retry_state.outcome.exception()))

        return callback

    async def call(
        self,
        operation_name: str,
        operation: Callable[..., Awaitable[Any]],
        *args,
        **kwargs
    ) -> Any:
        """Call ``operation`` under this policy.

        Raises:
            Exception: Last exception if all attempts failed
        """
        try:
            async for attempt in self._retrying(operation_name):
                with attempt:
                    return await operation(*args, **kwargs)
        except self.retryable_exceptions:
            collaborator_failures_total.labels(operation=operation_name).inc()
            raise


def create_collaborator_retry_policy(config: RetryConfiguration | None = None) -> CollaboratorRetryPolicy:
    """Create the retry policy used for collaborator lookups."""
    return CollaboratorRetryPolicy(config or RetryConfiguration())
