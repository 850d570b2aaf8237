"""
Concurrent execution of data tool calls.

Every call runs independently under its own timeout. A failing call turns
into an error ``ToolResult`` for that call only; its siblings are never
aborted. Cancellation of the surrounding request is not swallowed.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Sequence

from .errors import ToolExecutionError
from .turns import ToolCallRequest, ToolResult

logger = logging.getLogger("snxai.executor")

# async handler(arguments, caller_id) -> JSON-serialisable result
ToolHandler = Callable[[Dict[str, Any], str], Awaitable[Any]]


class DataToolExecutor:
    def __init__(self, handlers: Mapping[str, ToolHandler], timeout_s: float = 15.0):
        self._handlers = dict(handlers)
        self.timeout_s = timeout_s

    async def _run_one(self, request: ToolCallRequest, caller_id: str) -> ToolResult:
        handler = self._handlers.get(request.name)
        if handler is None:
            logger.warning("No handler for tool %s", request.name)
            return ToolResult.failed(
                request.name, f"The requested action ('{request.name}') is not supported."
            )

        logger.debug("Executing tool %s args=%s", request.name, dict(request.arguments))
        try:
            result = await asyncio.wait_for(
                handler(request.args_dict(), caller_id),
                timeout=self.timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning("Tool %s timed out after %.1fs", request.name, self.timeout_s)
            return ToolResult.failed(
                request.name, f"Tool execution failed: timed out after {self.timeout_s:.1f}s"
            )
        except ToolExecutionError as exc:
            logger.warning("Tool %s failed: %s", request.name, exc)
            return ToolResult.failed(request.name, f"Tool execution failed: {exc}")
        except Exception as exc:
            logger.error("Tool %s raised unexpectedly: %s", request.name, exc, exc_info=True)
            return ToolResult.failed(request.name, f"Tool execution failed: {str(exc) or 'Unknown error'}")

        return ToolResult.ok(request.name, result)

    async def execute(self, requests: Sequence[ToolCallRequest], caller_id: str) -> List[ToolResult]:
        """
        Run all requests concurrently and wait for every one of them to settle.

        Returns one ``ToolResult`` per request, in request order.
        """
        if not requests:
            return []
        logger.info("Executing %d data tool(s): %s", len(requests), ", ".join(r.name for r in requests))
        results = await asyncio.gather(*(self._run_one(r, caller_id) for r in requests))
        return list(results)
