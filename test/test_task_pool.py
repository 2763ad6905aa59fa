#!/usr/bin/env python3
"""Unit tests for the bounded task pool."""

import asyncio

import pytest

from attestation_explorer.utils.task_pool import BoundedTaskPool, run_bounded


class TestBoundedTaskPool:
    """Test suite for BoundedTaskPool."""

    def test_invalid_capacity(self):
        with pytest.raises(ValueError, match="must be positive"):
            BoundedTaskPool(0)

    @pytest.mark.asyncio
    async def test_never_exceeds_capacity(self):
        """20 tasks through a pool of 3 never run more than 3 at once."""
        pool = BoundedTaskPool(3)
        running = 0
        peak = 0

        async def task():
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.001)
            running -= 1
            return True

        results = await pool.execute_all([task for _ in range(20)])

        assert results == [True] * 20
        assert peak == 3
        assert pool.current == 0

    @pytest.mark.asyncio
    async def test_results_keep_input_order(self):
        pool = BoundedTaskPool(4)

        def make_task(index):
            async def task():
                # Later tasks finish first
                await asyncio.sleep(0.001 * (10 - index))
                return index
            return task

        results = await pool.execute_all([make_task(i) for i in range(10)])

        assert results == list(range(10))

    @pytest.mark.asyncio
    async def test_waiters_admitted_fifo(self):
        pool = BoundedTaskPool(1)
        started = []
        gate = asyncio.Event()

        def make_task(index):
            async def task():
                started.append(index)
                await gate.wait()
            return task

        runs = [asyncio.create_task(pool.execute(make_task(i))) for i in range(4)]
        await asyncio.sleep(0)
        assert started == [0]
        assert pool.waiting == 3

        gate.set()
        await asyncio.gather(*runs)

        assert started == [0, 1, 2, 3]

    @pytest.mark.asyncio
    async def test_failure_is_reraised_and_slot_released(self):
        pool = BoundedTaskPool(2)

        async def failing():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await pool.execute(failing)

        assert pool.current == 0

    @pytest.mark.asyncio
    async def test_siblings_keep_running_after_failure(self):
        pool = BoundedTaskPool(2)
        finished = []

        async def failing():
            raise RuntimeError("boom")

        async def slow():
            await asyncio.sleep(0.01)
            finished.append("slow")
            return "slow"

        results = await pool.execute_all([failing, slow], return_exceptions=True)

        assert isinstance(results[0], RuntimeError)
        assert results[1] == "slow"
        assert finished == ["slow"]

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_leak_slot(self):
        pool = BoundedTaskPool(1)
        gate = asyncio.Event()

        async def blocker():
            await gate.wait()

        async def quick():
            return "quick"

        holder = asyncio.create_task(pool.execute(blocker))
        await asyncio.sleep(0)
        waiter = asyncio.create_task(pool.execute(quick))
        await asyncio.sleep(0)

        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        gate.set()
        await holder

        assert pool.current == 0
        assert await pool.execute(quick) == "quick"

    @pytest.mark.asyncio
    async def test_run_bounded(self):
        async def one():
            return 1

        async def two():
            return 2

        assert await run_bounded([one, two], pool_size=1) == [1, 2]
