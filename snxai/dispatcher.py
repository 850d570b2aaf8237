"""
Routes a model turn's tool calls to the UI-action interceptor or the data executor.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .errors import InvalidDirectiveError, UnknownToolError
from .executor import DataToolExecutor
from .tools import Classification, ToolRegistry
from .turns import ToolCallRequest, ToolResult, UIActionDirective
from .ui_actions import intercept

logger = logging.getLogger("snxai.dispatcher")

INVALID_DIRECTIVE_MESSAGE = "I tried to open a form for you, but couldn't work out which one."


@dataclass(frozen=True)
class DispatchResult:
    """
    What the loop should do next.

    ``directive`` or ``clarification`` set -> terminate now.
    Otherwise ``results`` holds one ToolResult per executed request.
    """

    directive: Optional[UIActionDirective] = None
    clarification: Optional[str] = None
    results: Tuple[ToolResult, ...] = field(default_factory=tuple)

    @property
    def terminal(self) -> bool:
        return self.directive is not None or self.clarification is not None


class ToolDispatcher:
    def __init__(self, registry: ToolRegistry, executor: DataToolExecutor):
        self.registry = registry
        self.executor = executor

    def classify(self, requests: Sequence[ToolCallRequest]) -> Tuple[Optional[ToolCallRequest], List[ToolCallRequest]]:
        """
        Split a batch into (first ui-action request, data requests).

        When a ui-action request is present, every other request in the batch
        is discarded and the data list is empty. Unknown tool names count as
        data requests so they produce an error result the model can read.
        """
        data: List[ToolCallRequest] = []
        for req in requests:
            try:
                definition = self.registry.resolve(req.name)
            except UnknownToolError:
                data.append(req)
                continue
            if definition.classification is Classification.UI_ACTION:
                discarded = len(requests) - 1
                if discarded:
                    logger.info("UI action %s wins; discarding %d other request(s)", req.name, discarded)
                return req, []
            data.append(req)
        return None, data

    async def dispatch(self, requests: Sequence[ToolCallRequest], caller_id: str) -> DispatchResult:
        ui_request, data_requests = self.classify(requests)

        if ui_request is not None:
            try:
                return DispatchResult(directive=intercept(ui_request))
            except InvalidDirectiveError as exc:
                logger.warning("Invalid UI directive from %s: %s", ui_request.name, exc)
                return DispatchResult(clarification=INVALID_DIRECTIVE_MESSAGE)

        known = [r for r in data_requests if r.name in self.registry]
        executed = iter(await self.executor.execute(known, caller_id))

        results: List[ToolResult] = []
        for req in data_requests:
            if req.name in self.registry:
                results.append(next(executed))
            else:
                logger.warning("Model requested unknown tool %s", req.name)
                results.append(
                    ToolResult.failed(req.name, f"The requested action ('{req.name}') is not supported.")
                )
        return DispatchResult(results=tuple(results))
