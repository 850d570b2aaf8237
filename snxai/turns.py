"""
Conversation data model.

Everything here is created fresh per request and thrown away when the
request finishes. Turns are frozen: a conversation only ever grows by
appending new turns.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union


class Role(str, Enum):
    USER = "user"
    MODEL = "model"


class StopReason(str, Enum):
    """Why the model service stopped generating a turn."""

    STOP = "STOP"
    SAFETY = "SAFETY"
    RECITATION = "RECITATION"
    MAX_TOKENS = "MAX_TOKENS"
    TOOL_REPEAT = "TOOL_FUNCTION_REPEAT"
    OTHER = "OTHER"
    UNSPECIFIED = "UNSPECIFIED"


class FailureKind(str, Enum):
    SAFETY = "safety"
    RECITATION = "recitation"
    TRUNCATED = "truncated"
    TOOL_STALL = "tool_stall"
    LOOP_EXCEEDED = "loop_exceeded"
    NO_EXECUTABLE_TOOLS = "no_executable_tools"
    OTHER = "other"
    UNSPECIFIED = "unspecified"


def _frozen_mapping(value: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(value or {}))


@dataclass(frozen=True)
class ToolCallRequest:
    """A request from the model to invoke one tool."""

    name: str
    arguments: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "arguments", _frozen_mapping(self.arguments))

    def args_dict(self) -> Dict[str, Any]:
        return dict(self.arguments)


@dataclass(frozen=True)
class ToolResult:
    """
    Outcome of executing one data tool call.

    Exactly one of ``payload`` (success) or ``error`` (failure) is meaningful.
    """

    name: str
    payload: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, name: str, payload: Any) -> "ToolResult":
        return cls(name=name, payload=payload)

    @classmethod
    def failed(cls, name: str, message: str) -> "ToolResult":
        return cls(name=name, error=message or "Unknown error")

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def response_payload(self) -> Dict[str, Any]:
        """Body fed back to the model for this result."""
        if self.is_error:
            return {"content": {"error": self.error}}
        return {"content": self.payload}


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class ToolCallPart:
    call: ToolCallRequest


@dataclass(frozen=True)
class ToolResultPart:
    result: ToolResult


Part = Union[TextPart, ToolCallPart, ToolResultPart]


@dataclass(frozen=True)
class ConversationTurn:
    role: Role
    parts: Tuple[Part, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "parts", tuple(self.parts))

    @classmethod
    def user_text(cls, text: str) -> "ConversationTurn":
        return cls(role=Role.USER, parts=(TextPart(text),))

    @classmethod
    def tool_calls(cls, calls: Tuple[ToolCallRequest, ...]) -> "ConversationTurn":
        return cls(role=Role.MODEL, parts=tuple(ToolCallPart(c) for c in calls))

    @classmethod
    def tool_results(cls, results: Tuple[ToolResult, ...]) -> "ConversationTurn":
        return cls(role=Role.USER, parts=tuple(ToolResultPart(r) for r in results))

    @property
    def text(self) -> str:
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))


@dataclass(frozen=True)
class ModelTurn:
    """One response from the model service, already parsed."""

    text: str = ""
    tool_calls: Tuple[ToolCallRequest, ...] = ()
    stop_reason: StopReason = StopReason.UNSPECIFIED

    def __post_init__(self) -> None:
        object.__setattr__(self, "tool_calls", tuple(self.tool_calls))

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


@dataclass(frozen=True)
class UIActionDirective:
    """Ask the client to open a modal. Terminates the conversation loop."""

    modal_id: str
    data: Mapping[str, Any] = field(default_factory=dict)
    message: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", _frozen_mapping(self.data))


@dataclass(frozen=True)
class TextOutcome:
    text: str


@dataclass(frozen=True)
class UIActionOutcome:
    directive: UIActionDirective


@dataclass(frozen=True)
class FailureOutcome:
    kind: FailureKind


LoopOutcome = Union[TextOutcome, UIActionOutcome, FailureOutcome]


_STOP_TO_FAILURE = {
    StopReason.SAFETY: FailureKind.SAFETY,
    StopReason.RECITATION: FailureKind.RECITATION,
    StopReason.MAX_TOKENS: FailureKind.TRUNCATED,
    StopReason.TOOL_REPEAT: FailureKind.TOOL_STALL,
    StopReason.OTHER: FailureKind.OTHER,
}


def failure_for_stop(reason: StopReason) -> FailureKind:
    return _STOP_TO_FAILURE.get(reason, FailureKind.UNSPECIFIED)
