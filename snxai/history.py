"""
Client-supplied chat history -> canonical turn sequence.

The history arrives untrusted from the browser. Bad entries are dropped,
never reported: a chat should still be answerable when its history is junk.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from .turns import (
    ConversationTurn,
    Part,
    Role,
    TextPart,
    ToolCallPart,
    ToolCallRequest,
    ToolResult,
    ToolResultPart,
)

logger = logging.getLogger("snxai.history")

_ROLES = {r.value: r for r in Role}


def _parse_part(raw: Any) -> Optional[Part]:
    if isinstance(raw, (TextPart, ToolCallPart, ToolResultPart)):
        return raw
    if not isinstance(raw, dict):
        return None

    if isinstance(raw.get("text"), str):
        return TextPart(raw["text"])

    call = raw.get("functionCall")
    if isinstance(call, dict) and isinstance(call.get("name"), str) and call["name"]:
        args = call.get("args")
        return ToolCallPart(ToolCallRequest(call["name"], args if isinstance(args, dict) else {}))

    resp = raw.get("functionResponse")
    if isinstance(resp, dict) and isinstance(resp.get("name"), str) and resp["name"]:
        body = resp.get("response")
        content = body.get("content") if isinstance(body, dict) else body
        if isinstance(content, dict) and set(content) == {"error"}:
            return ToolResultPart(ToolResult.failed(resp["name"], str(content["error"])))
        return ToolResultPart(ToolResult.ok(resp["name"], content))

    return None


def _parse_turn(raw: Any) -> Optional[ConversationTurn]:
    if isinstance(raw, ConversationTurn):
        role, raw_parts = raw.role.value, list(raw.parts)
    elif isinstance(raw, dict):
        role, raw_parts = raw.get("role"), raw.get("parts")
    else:
        return None

    if role not in _ROLES:
        return None
    if not isinstance(raw_parts, (list, tuple)) or not raw_parts:
        return None

    # Calls only come from the model, results only go back as user turns
    misplaced = ToolResultPart if _ROLES[role] is Role.MODEL else ToolCallPart
    parts = [
        p for p in (_parse_part(x) for x in raw_parts)
        if p is not None and not isinstance(p, misplaced)
    ]
    if not parts:
        return None
    return ConversationTurn(role=_ROLES[role], parts=tuple(parts))


def _call_names(turn: ConversationTurn) -> List[str]:
    return sorted(p.call.name for p in turn.parts if isinstance(p, ToolCallPart))


def _result_names(turn: ConversationTurn) -> List[str]:
    return sorted(p.result.name for p in turn.parts if isinstance(p, ToolResultPart))


def _strip(turn: ConversationTurn, kind: type) -> Optional[ConversationTurn]:
    parts = tuple(p for p in turn.parts if not isinstance(p, kind))
    return ConversationTurn(role=turn.role, parts=parts) if parts else None


def _pair_tool_turns(turns: List[ConversationTurn]) -> List[ConversationTurn]:
    """
    Keep a tool-call turn only when the very next turn answers every call
    by name; keep tool results only in such an answering turn. Unpaired
    call and result parts are stripped, and turns left empty are dropped.
    """
    out: List[ConversationTurn] = []
    i = 0
    while i < len(turns):
        turn: Optional[ConversationTurn] = turns[i]
        calls = _call_names(turns[i])
        if calls:
            nxt = turns[i + 1] if i + 1 < len(turns) else None
            if nxt is not None and _result_names(nxt) == calls:
                out.extend((turns[i], nxt))
                i += 2
                continue
            turn = _strip(turns[i], ToolCallPart)
        elif _result_names(turns[i]):
            turn = _strip(turns[i], ToolResultPart)
        if turn is not None:
            out.append(turn)
        i += 1
    return out


def _drop_leading_turns(turns: List[ConversationTurn]) -> List[ConversationTurn]:
    for i, turn in enumerate(turns):
        if turn.role is Role.USER and turn.text:
            return turns[i:]
    return []


def normalize_history(raw: Any, limit: Optional[int] = None) -> List[ConversationTurn]:
    """
    Validate and reshape prior turns into what the model service accepts.

    - entries with an unknown role, or without a non-empty ``parts`` list, are dropped
    - unrecognised parts are dropped; a turn left with no parts is dropped
    - ``limit`` keeps only the most recent turns
    - leading turns are dropped until the first ``user`` turn that carries text
    - a tool-call turn survives only when immediately followed by a turn with
      a result for each call; orphaned calls and results are removed

    Relative order is preserved. Never raises. Re-normalizing the output
    returns it unchanged.
    """
    if not isinstance(raw, (list, tuple)):
        if raw is not None:
            logger.debug("Ignoring non-list history of type %s", type(raw).__name__)
        return []

    turns = [t for t in (_parse_turn(x) for x in raw) if t is not None]
    dropped = len(raw) - len(turns)

    if limit is not None and limit >= 0:
        turns = turns[-limit:] if limit else []

    turns = _pair_tool_turns(_drop_leading_turns(turns))
    if dropped:
        logger.debug("Dropped %d malformed history entries", dropped)
    return turns


def part_to_wire(part: Part) -> Dict[str, Any]:
    if isinstance(part, TextPart):
        return {"text": part.text}
    if isinstance(part, ToolCallPart):
        return {"functionCall": {"name": part.call.name, "args": part.call.args_dict()}}
    return {"functionResponse": {"name": part.result.name, "response": part.result.response_payload()}}


def turn_to_wire(turn: ConversationTurn) -> Dict[str, Any]:
    return {"role": turn.role.value, "parts": [part_to_wire(p) for p in turn.parts]}


def turns_to_wire(turns: Iterable[ConversationTurn]) -> List[Dict[str, Any]]:
    return [turn_to_wire(t) for t in turns]
