"""
Aggregation coordinator — concurrent fan-out / fan-in over data sources.

Runs every source task for one query at the same time, waits for all of them
to settle, and reports which slices of the result are present. One source
failing (or raising, or hanging past its timeout) never cancels or hides the
others; the failure shows up by name in the result instead.

No retries happen here. Fallback between providers belongs to the
orchestrator or to the source task itself.
"""
import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from loguru import logger

from providers.base import Failure, FetchOutcome, Provenance, Success
from utils.error_handler import classify_exception, is_transient


@dataclass(frozen=True)
class SourceTask:
    """One named slice of the final report and the coroutine that fetches it."""
    name: str
    run: Callable[[], Awaitable[FetchOutcome]]
    timeout: Optional[float] = None     # seconds; None = coordinator default


@dataclass
class PartialResult:
    """Outcome of every source for one query, keyed by source name."""
    outcomes: Dict[str, FetchOutcome]

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def successes(self) -> Dict[str, Success]:
        return {n: o for n, o in self.outcomes.items() if isinstance(o, Success)}

    @property
    def failures(self) -> Dict[str, Failure]:
        return {n: o for n, o in self.outcomes.items() if isinstance(o, Failure)}

    @property
    def missing(self) -> List[str]:
        """Names of sources that produced no data, in task order."""
        return [n for n, o in self.outcomes.items() if isinstance(o, Failure)]

    @property
    def confidence(self) -> float:
        """Fraction of sources that returned data."""
        if not self.outcomes:
            return 0.0
        return len(self.successes) / len(self.outcomes)

    @property
    def ok(self) -> bool:
        """False only when no source at all returned data."""
        return bool(self.successes)

    @property
    def complete(self) -> bool:
        return bool(self.outcomes) and not self.missing

    @property
    def data(self) -> Dict[str, Any]:
        return {n: o.data for n, o in self.successes.items()}

    @property
    def provenance(self) -> Dict[str, Optional[Provenance]]:
        return {n: o.provenance for n, o in self.successes.items()}

    def summary(self) -> str:
        parts = [f"{len(self.successes)}/{self.total} sources"]
        if self.missing:
            parts.append(f"missing: {', '.join(self.missing)}")
        return f"confidence {self.confidence:.2f} ({'; '.join(parts)})"


class AggregationCoordinator:
    """
    Fan-out/fan-in primitive with partial-failure bookkeeping.

    Args:
        default_timeout: Bound applied to tasks that do not set their own
            (seconds). None leaves such tasks unbounded.
    """

    def __init__(self, default_timeout: Optional[float] = None):
        self._default_timeout = default_timeout

    async def aggregate(self, tasks: Sequence[SourceTask]) -> PartialResult:
        """Run all tasks concurrently and collect every outcome."""
        names = [t.name for t in tasks]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate source task names: {', '.join(duplicates)}")

        outcomes = await asyncio.gather(*(self._settle(t) for t in tasks))
        result = PartialResult(outcomes=dict(zip(names, outcomes)))

        if not tasks:
            logger.warning("Aggregation called with no source tasks")
        elif not result.ok:
            logger.warning(f"Aggregation failed: every source failed ({', '.join(result.missing)})")
        elif result.missing:
            logger.info(f"Partial aggregation: {result.summary()}")
        else:
            logger.info(f"Aggregation complete: {result.summary()}")
        return result

    async def _settle(self, task: SourceTask) -> FetchOutcome:
        """Await one task, turning exceptions and timeouts into Failure values."""
        timeout = task.timeout if task.timeout is not None else self._default_timeout
        try:
            if timeout is None:
                return await task.run()
            return await asyncio.wait_for(task.run(), timeout=timeout)
        except Exception as e:
            kind = classify_exception(e)
            logger.warning(f"Source '{task.name}' failed [{kind.value}]: {e}")
            return Failure(
                kind=kind,
                retryable=is_transient(kind),
                provider=task.name,
                message=str(e) or kind.value,
            )
