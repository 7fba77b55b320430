"""Tests for InterestIndex and FactCache."""

import asyncio
from unittest.mock import MagicMock

import pytest

from oracle.capacity import CapacityManager
from oracle.fact_cache import FactCache
from oracle.interest import InterestIndex
from oracle.models import FactPayload, Output
from oracle.publication import PublicationQueue


class TestInterestIndex:
    def test_register_collapses_duplicates(self):
        index = InterestIndex()
        index.register("BA950-2017-03-01", "dev-1")
        index.register("BA950-2017-03-01", "dev-1")
        index.register("BA950-2017-03-01", "dev-2")

        assert index.waiting("BA950-2017-03-01") == {"dev-1", "dev-2"}

    def test_drain_removes_entry(self):
        index = InterestIndex()
        index.register("BA950-2017-03-01", "dev-1")

        assert index.drain("BA950-2017-03-01") == {"dev-1"}
        assert "BA950-2017-03-01" not in index
        assert index.drain("BA950-2017-03-01") == set()


def _cache(ledger, alerts):
    interest = InterestIndex()
    capacity = CapacityManager(ledger, alerts)
    queue = PublicationQueue(ledger, capacity, alerts)
    return FactCache(queue, interest, ledger), queue, interest


@pytest.mark.asyncio
class TestFactCache:
    async def test_miss(self, ledger, alerts):
        cache, _, interest = _cache(ledger, alerts)

        assert await cache.lookup("BA950-2017-03-01", "dev-1") is None
        assert len(interest) == 0

    async def test_serves_queued_payload_and_registers(self, ledger, alerts):
        cache, queue, interest = _cache(ledger, alerts)
        # no funds: the delivery keeps failing and the record stays queued
        queue.config = queue.config.model_copy(update={"retry_delay_seconds": 60})
        queue.submit(FactPayload("BA950-2017-03-01", 23))

        cached = await cache.lookup("BA950-2017-03-01", "dev-2")

        assert cached.value == 23
        assert cached.is_stable is False
        assert interest.waiting("BA950-2017-03-01") == {"dev-2"}
        tasks = list(queue._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def test_unstable_ledger_value_registers(self, funded_ledger, alerts):
        await funded_ledger.post_data_feed(
            [Output(0, funded_ledger.address)],
            {"BA950-2017-03-01": 10000, "BA950-2017-03-01-remark": "canceled"},
        )
        cache, _, interest = _cache(funded_ledger, alerts)

        cached = await cache.lookup("BA950-2017-03-01", "dev-1")

        assert cached.value == 10000
        assert cached.remark == "canceled"
        assert cached.is_stable is False
        assert "BA950-2017-03-01" in interest

    async def test_stable_ledger_value_does_not_register(self, funded_ledger, alerts):
        unit = await funded_ledger.post_data_feed(
            [Output(0, funded_ledger.address)], {"BA950-2017-03-01": 23}
        )
        funded_ledger.stabilize([unit])
        cache, _, interest = _cache(funded_ledger, alerts)

        cached = await cache.lookup("BA950-2017-03-01", "dev-1")

        assert cached.value == 23
        assert cached.remark is None
        assert cached.is_stable is True
        assert len(interest) == 0

    async def test_queue_checked_before_ledger(self, alerts):
        ledger = MagicMock()
        ledger.address = "ORACLE"
        cache, queue, _ = _cache(ledger, alerts)
        queue._queue["BA950-2017-03-01"] = MagicMock(payload=FactPayload("BA950-2017-03-01", 5))

        cached = await cache.lookup("BA950-2017-03-01", "dev-1")

        assert cached.value == 5
        ledger.read_data_feeds.assert_not_called()
