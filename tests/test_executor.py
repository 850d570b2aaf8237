"""
Data tool executor: concurrency, per-call isolation, timeouts.
"""

import asyncio
import time

import pytest

from snxai.errors import ToolExecutionError
from snxai.executor import DataToolExecutor
from snxai.turns import ToolCallRequest


async def _echo(args, caller_id):
    return {"args": args, "caller": caller_id}


async def _fails(args, caller_id):
    raise ToolExecutionError("Profile not found")


async def _crashes(args, caller_id):
    raise KeyError("boom")


async def _slow(args, caller_id):
    await asyncio.sleep(5)
    return {"never": True}


class TestDataToolExecutor:

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        ex = DataToolExecutor({"echo": _echo})
        assert await ex.execute([], "u1") == []

    @pytest.mark.asyncio
    async def test_results_in_request_order(self):
        async def delayed(args, caller_id):
            await asyncio.sleep(args["d"])
            return args["d"]

        ex = DataToolExecutor({"delayed": delayed})
        reqs = [ToolCallRequest("delayed", {"d": 0.05}), ToolCallRequest("delayed", {"d": 0.0})]
        results = await ex.execute(reqs, "u1")
        assert [r.payload for r in results] == [0.05, 0.0]

    @pytest.mark.asyncio
    async def test_caller_identity_passed_through(self):
        ex = DataToolExecutor({"echo": _echo})
        (res,) = await ex.execute([ToolCallRequest("echo", {"q": "x"})], "alice")
        assert res.payload == {"args": {"q": "x"}, "caller": "alice"}

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self):
        ex = DataToolExecutor({"echo": _echo, "fails": _fails, "crashes": _crashes})
        reqs = [ToolCallRequest("fails"), ToolCallRequest("echo", {"a": 1}), ToolCallRequest("crashes")]
        results = await ex.execute(reqs, "u1")

        assert len(results) == 3
        assert results[0].is_error
        assert results[0].error == "Tool execution failed: Profile not found"
        assert not results[1].is_error
        assert results[2].is_error
        assert results[2].error.startswith("Tool execution failed:")

    @pytest.mark.asyncio
    async def test_timeout_is_isolated(self):
        ex = DataToolExecutor({"slow": _slow, "echo": _echo}, timeout_s=0.05)
        results = await ex.execute([ToolCallRequest("slow"), ToolCallRequest("echo")], "u1")
        assert results[0].is_error
        assert "timed out" in results[0].error
        assert not results[1].is_error

    @pytest.mark.asyncio
    async def test_missing_handler(self):
        ex = DataToolExecutor({})
        (res,) = await ex.execute([ToolCallRequest("ghost")], "u1")
        assert res.error == "The requested action ('ghost') is not supported."

    @pytest.mark.asyncio
    async def test_error_payload_shape(self):
        ex = DataToolExecutor({"fails": _fails})
        (res,) = await ex.execute([ToolCallRequest("fails")], "u1")
        assert res.response_payload() == {"content": {"error": "Tool execution failed: Profile not found"}}

    @pytest.mark.asyncio
    async def test_calls_run_concurrently(self):
        async def napper(args, caller_id):
            await asyncio.sleep(0.3)
            return "rested"

        ex = DataToolExecutor({"nap": napper}, timeout_s=2)
        started = time.monotonic()
        results = await ex.execute([ToolCallRequest("nap"), ToolCallRequest("nap")], "u1")
        elapsed = time.monotonic() - started

        assert [r.payload for r in results] == ["rested", "rested"]
        assert elapsed < 0.5

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        entered = asyncio.Event()
        handler_cancelled = asyncio.Event()

        async def blocking(args, caller_id):
            entered.set()
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                handler_cancelled.set()
                raise
            return "unreachable"

        ex = DataToolExecutor({"blocking": blocking, "echo": _echo}, timeout_s=10)
        task = asyncio.ensure_future(
            ex.execute([ToolCallRequest("blocking"), ToolCallRequest("echo")], "u1")
        )
        await asyncio.wait_for(entered.wait(), timeout=1)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert handler_cancelled.is_set()
