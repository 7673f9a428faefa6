"""
Tests for aggregation/coordinator.py - AggregationCoordinator and PartialResult.

Covers: concurrent fan-out, partial failure, confidence/missing bookkeeping,
exception and timeout containment, duplicate names.
"""
import asyncio
import time

import pytest

from aggregation.coordinator import AggregationCoordinator, PartialResult, SourceTask
from providers.base import Failure, Success
from utils.error_handler import FailureKind, RateLimitError


def ok_task(name, data=None, delay=0.0):
    async def run():
        if delay:
            await asyncio.sleep(delay)
        return Success(data=data if data is not None else f"{name}-data", source=name)
    return SourceTask(name=name, run=run)


def failing_task(name, kind=FailureKind.NETWORK_ERROR):
    async def run():
        return Failure(kind=kind, retryable=False, provider=name, message="failed")
    return SourceTask(name=name, run=run)


def raising_task(name, exc):
    async def run():
        raise exc
    return SourceTask(name=name, run=run)


@pytest.fixture
def coordinator():
    return AggregationCoordinator()


class TestAggregate:
    """Fan-out / fan-in over source tasks."""

    @pytest.mark.asyncio
    async def test_all_succeed(self, coordinator):
        result = await coordinator.aggregate([ok_task("news"), ok_task("video")])
        assert result.ok
        assert result.complete
        assert result.confidence == 1.0
        assert result.missing == []
        assert result.data == {"news": "news-data", "video": "video-data"}

    @pytest.mark.asyncio
    async def test_partial_failure(self, coordinator):
        """One failing source does not hide the others."""
        result = await coordinator.aggregate([
            ok_task("currency"), failing_task("news"), ok_task("video"), failing_task("community"),
        ])
        assert result.ok
        assert not result.complete
        assert result.confidence == 0.5
        assert result.missing == ["news", "community"]
        assert set(result.data) == {"currency", "video"}

    @pytest.mark.asyncio
    async def test_every_source_fails(self, coordinator):
        """Overall failure only when nothing succeeded."""
        result = await coordinator.aggregate([failing_task("news"), failing_task("video")])
        assert result.ok is False
        assert result.confidence == 0.0
        assert result.missing == ["news", "video"]

    @pytest.mark.asyncio
    async def test_raising_task_becomes_failure(self, coordinator):
        result = await coordinator.aggregate([
            ok_task("news"),
            raising_task("video", RateLimitError("429", provider="youtube")),
            raising_task("community", RuntimeError("boom")),
        ])
        video = result.outcomes["video"]
        assert isinstance(video, Failure)
        assert video.kind == FailureKind.RATE_LIMITED
        assert video.retryable is True
        assert result.outcomes["community"].kind == FailureKind.NETWORK_ERROR
        assert result.confidence == pytest.approx(1 / 3)

    @pytest.mark.asyncio
    async def test_timeout_becomes_failure(self, coordinator):
        slow = ok_task("video", delay=5.0)
        slow = SourceTask(name=slow.name, run=slow.run, timeout=0.05)
        result = await coordinator.aggregate([ok_task("news"), slow])
        assert result.outcomes["video"].kind == FailureKind.TIMEOUT
        assert result.outcomes["news"].ok

    @pytest.mark.asyncio
    async def test_default_timeout(self):
        coordinator = AggregationCoordinator(default_timeout=0.05)
        result = await coordinator.aggregate([ok_task("video", delay=5.0)])
        assert result.outcomes["video"].kind == FailureKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_tasks_run_concurrently(self, coordinator):
        started = time.monotonic()
        await coordinator.aggregate([ok_task(f"s{i}", delay=0.2) for i in range(5)])
        assert time.monotonic() - started < 0.8

    @pytest.mark.asyncio
    async def test_outcomes_keep_task_order(self, coordinator):
        result = await coordinator.aggregate([
            ok_task("c", delay=0.03), ok_task("a"), ok_task("b", delay=0.01),
        ])
        assert list(result.outcomes) == ["c", "a", "b"]

    @pytest.mark.asyncio
    async def test_duplicate_names_rejected(self, coordinator):
        with pytest.raises(ValueError):
            await coordinator.aggregate([ok_task("news"), ok_task("news")])

    @pytest.mark.asyncio
    async def test_empty_task_list(self, coordinator):
        result = await coordinator.aggregate([])
        assert result.total == 0
        assert result.confidence == 0.0
        assert result.ok is False


class TestPartialResult:
    def test_summary(self):
        result = PartialResult(outcomes={
            "news": Success(data=[1], source="newsapi"),
            "video": Failure(kind=FailureKind.TIMEOUT, retryable=True),
        })
        assert result.summary() == "confidence 0.50 (1/2 sources; missing: video)"

    def test_provenance_only_for_successes(self):
        result = PartialResult(outcomes={
            "news": Success(data=[1], source="newsapi"),
            "video": Failure(kind=FailureKind.TIMEOUT, retryable=True),
        })
        assert list(result.provenance) == ["news"]
