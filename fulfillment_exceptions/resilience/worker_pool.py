# ==== WORKER POOL FAN-OUT / FAN-IN ==== #

"""
Bounded fan-out/fan-in for independent units of work.

A ``WorkerPool`` runs submitted coroutines with at most ``size`` of them in
flight and joins on exactly as many outcomes as there were submissions. A
unit that raises is recorded as a failed outcome; it never shortens the
join and never cancels its siblings.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

from fulfillment_exceptions.observability.logging import ContextualLogger


logger = ContextualLogger(__name__)

UnitOfWork = Callable[[], Awaitable[Any]]


@dataclass
class TaskOutcome:
    """Result of one submitted unit of work."""
    name: str
    result: Any = None
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class WorkerPool:
    """Bounded pool of concurrent workers.

    The pool may be shared between concurrent callers; the bound applies to
    all of them together.
    """

    def __init__(self, name: str, size: int):
        if size < 1:
            raise ValueError(f"Worker pool '{name}' needs at least one worker")
        self.name = name
        self.size = size
        self._slots = asyncio.Semaphore(size)

    async def _run_unit(self, name: str, unit: UnitOfWork) -> TaskOutcome:
        async with self._slots:
            try:
                return TaskOutcome(name=name, result=await unit())
            except Exception as e:
                logger.exception(
                    f"Unit of work '{name}' failed in pool '{self.name}'",
                    pool=self.name,
                    unit=name,
                    error=str(e),
                )
                return TaskOutcome(name=name, error=e)

    async def run_all(self, units: Sequence[Tuple[str, UnitOfWork]]) -> List[TaskOutcome]:
        """Run every unit and block until all of them have finished or failed.

        A unit that ends cancelled (``CancelledError`` is not an ``Exception``)
        still yields a failed outcome instead of aborting the join.

        Args:
            units: ``(name, coroutine factory)`` pairs

        Returns:
            One outcome per submitted unit, in submission order
        """
        names = [name for name, _ in units]
        results = await asyncio.gather(
            *(self._run_unit(name, unit) for name, unit in units),
            return_exceptions=True,
        )

        outcomes: List[TaskOutcome] = []
        for name, result in zip(names, results):
            if isinstance(result, TaskOutcome):
                outcomes.append(result)
                continue
            logger.error(
                f"Unit of work '{name}' did not finish in pool '{self.name}'",
                pool=self.name,
                unit=name,
                error=repr(result),
            )
            outcomes.append(TaskOutcome(name=name, error=result))

        submissions = len(names)
        failures = sum(1 for outcome in outcomes if not outcome.succeeded)
        logger.debug(
            f"Pool '{self.name}' finished {submissions} unit(s), {failures} failed",
            pool=self.name,
            submissions=submissions,
            failures=failures,
        )
        return outcomes
