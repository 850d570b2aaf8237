"""
Conversation loop controller.

One ``run`` per request:

  history + user message
    -> model round trip
    -> tool calls?  ui action  -> stop with a directive
                    data tools -> execute, feed results back, next round trip
    -> text?        stop with the text
    -> nothing?     stop with a failure derived from the stop reason

The turn list lives only for the duration of ``run``.
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from .dispatcher import ToolDispatcher
from .history import normalize_history
from .llm import ModelService
from .tools import ToolRegistry
from .turns import (
    ConversationTurn,
    FailureKind,
    FailureOutcome,
    LoopOutcome,
    TextOutcome,
    UIActionOutcome,
    failure_for_stop,
)

logger = logging.getLogger("snxai.agent_loop")

DEFAULT_MAX_ROUND_TRIPS = 8

PLATFORM_SYSTEM_PROMPT = """
You are SNXai, the assistant built into a student community platform.
You help students with their profile, projects, placement drives, placement
achievements and shared learning resources.

Rules:
- Use the data tools to look things up instead of guessing. Never invent
  projects, drives, achievements or resources.
- When the student wants to create something (a project, a community post) or
  asks to open a form, call the matching UI tool. Pass along any details they
  already gave so the form is pre-filled.
- Only change the student's profile summary when they explicitly ask for it.
- Keep answers short and friendly. Use Markdown lists for multiple results.
""".strip()

MENTOR_SYSTEM_PROMPT = """
You are Nexai, a friendly and intelligent tech mentor for students. Your goal is
to help students discover their interests in tech, guide them on learning paths,
recommend projects, and keep them updated on the latest tech trends.

Be conversational, engaging and motivational. Give structured answers with clear
guidance. When asked for lists or comparisons (like courses), present them as
Markdown tables where that helps.

- Keep track of the earlier conversation for continuity.
- Use the web search tool for current trends, tools and opportunities.
- Use the calculator tool for arithmetic.
- If a search does not turn up a detail (course dates, costs), say so and still
  share what you did find.
""".strip()


class ConversationLoop:
    """
    Drives model round trips until a terminal outcome.

    Args:
        model: Model service used for every round trip
        dispatcher: Routes tool calls to the interceptor or executor
        registry: Tool catalogue advertised to the model
        system_instruction: Persona prompt sent with every round trip
        max_round_trips: Ceiling on model calls per request
        history_limit: Most recent history turns kept
    """

    def __init__(
        self,
        model: ModelService,
        dispatcher: ToolDispatcher,
        registry: ToolRegistry,
        *,
        system_instruction: Optional[str] = None,
        max_round_trips: int = DEFAULT_MAX_ROUND_TRIPS,
        history_limit: Optional[int] = None,
    ):
        if max_round_trips < 1:
            raise ValueError("max_round_trips must be at least 1")
        self.model = model
        self.dispatcher = dispatcher
        self.registry = registry
        self.system_instruction = system_instruction
        self.max_round_trips = max_round_trips
        self.history_limit = history_limit

    async def run(self, message: str, history: Any, caller_id: str) -> LoopOutcome:
        turns: List[ConversationTurn] = normalize_history(history, limit=self.history_limit)
        turns.append(ConversationTurn.user_text(message))
        declarations = self.registry.declarations()

        for round_trip in range(1, self.max_round_trips + 1):
            model_turn = await self.model.send_turn(
                turns, declarations, system_instruction=self.system_instruction
            )

            if not model_turn.has_tool_calls:
                if model_turn.text:
                    logger.info("Round %d: text response (%d chars)", round_trip, len(model_turn.text))
                    return TextOutcome(model_turn.text)
                kind = failure_for_stop(model_turn.stop_reason)
                logger.warning(
                    "Round %d: empty response, stop reason %s -> %s",
                    round_trip, model_turn.stop_reason.value, kind.value,
                )
                return FailureOutcome(kind)

            names = [c.name for c in model_turn.tool_calls]
            logger.info("Round %d: model requested %d tool(s): %s", round_trip, len(names), ", ".join(names))

            # Last allowed round: a ui action still wins, data tools would never be answered
            if round_trip == self.max_round_trips:
                ui_request, _ = self.dispatcher.classify(model_turn.tool_calls)
                if ui_request is None:
                    break

            result = await self.dispatcher.dispatch(model_turn.tool_calls, caller_id)
            if result.terminal:
                if result.directive is None:
                    return TextOutcome(result.clarification)
                logger.info("Intercepted UI action: open %s", result.directive.modal_id)
                return UIActionOutcome(result.directive)
            if not result.results:
                logger.warning("Round %d: tool calls produced nothing to execute", round_trip)
                return FailureOutcome(FailureKind.NO_EXECUTABLE_TOOLS)

            turns.append(ConversationTurn.tool_calls(model_turn.tool_calls))
            turns.append(ConversationTurn.tool_results(result.results))

        logger.warning("Giving up after %d round trips", self.max_round_trips)
        return FailureOutcome(FailureKind.LOOP_EXCEEDED)
