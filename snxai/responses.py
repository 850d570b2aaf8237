"""Loop outcome -> client response body."""
from __future__ import annotations

from typing import Any, Dict, Mapping

from .turns import FailureKind, LoopOutcome, TextOutcome, UIActionOutcome

FAILURE_MESSAGES: Dict[FailureKind, str] = {
    FailureKind.SAFETY: "My response was blocked due to safety settings.",
    FailureKind.RECITATION: "My response was blocked due to potential recitation issues.",
    FailureKind.TRUNCATED: "The response became too long.",
    FailureKind.TOOL_STALL: "I got stuck trying to use a tool repeatedly.",
    FailureKind.LOOP_EXCEEDED: "That took more steps than I can handle at once. Could you narrow the request down?",
    FailureKind.NO_EXECUTABLE_TOOLS: "I received an instruction, but I couldn't process it correctly.",
    FailureKind.OTHER: "An unexpected issue occurred.",
    FailureKind.UNSPECIFIED: "I processed the information but couldn't generate a final text response.",
}


def _plain(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def outcome_text(outcome: LoopOutcome) -> str:
    """The user-facing text of any outcome."""
    if isinstance(outcome, TextOutcome):
        return outcome.text
    if isinstance(outcome, UIActionOutcome):
        return outcome.directive.message
    return FAILURE_MESSAGES.get(outcome.kind, FAILURE_MESSAGES[FailureKind.UNSPECIFIED])


def to_response(outcome: LoopOutcome) -> Dict[str, Any]:
    body: Dict[str, Any] = {"aiMessage": outcome_text(outcome)}
    if isinstance(outcome, UIActionOutcome):
        directive = outcome.directive
        body["action"] = {
            "type": "openModal",
            "modalId": directive.modal_id,
            "data": _plain(directive.data),
        }
    return body

