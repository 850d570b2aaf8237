# snxai/llm.py
"""
Language-model service adapters.

Each adapter takes the canonical turn sequence plus the tool catalogue and
returns one parsed ``ModelTurn``. Transport, HTTP and parse failures surface
as ModelServiceError; nothing provider-specific leaks past this module.

Providers:
  - gemini        -> Gemini generateContent with functionDeclarations
  - openai_compat -> OpenAI-style /chat/completions with tools (vLLM, etc.)
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx

from .config import settings
from .errors import ModelServiceError
from .history import turns_to_wire
from .turns import (
    ConversationTurn,
    ModelTurn,
    Role,
    StopReason,
    ToolCallPart,
    ToolCallRequest,
    ToolResultPart,
)

logger = logging.getLogger("snxai.llm")


class ModelService(Protocol):
    async def send_turn(
        self,
        turns: Sequence[ConversationTurn],
        declarations: Sequence[Dict[str, Any]],
        *,
        system_instruction: Optional[str] = None,
    ) -> ModelTurn:
        ...


def _timeout() -> httpx.Timeout:
    # Keep connect reasonable; total bounded by MODEL_TIMEOUT_S
    return httpx.Timeout(timeout=settings.MODEL_TIMEOUT_S, connect=min(10.0, settings.MODEL_TIMEOUT_S))


async def _post_json(url: str, payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    async with httpx.AsyncClient(timeout=_timeout()) as client:
        try:
            r = await client.post(url, json=payload, headers=headers or {})
        except httpx.RequestError as e:
            raise ModelServiceError(f"Model service unreachable: {e}") from e

    if r.status_code >= 400:
        raise ModelServiceError(f"Model service HTTP {r.status_code}: {r.text[:300]}")
    try:
        data = r.json()
    except ValueError as e:
        raise ModelServiceError("Model service returned non-JSON response") from e
    if not isinstance(data, dict):
        raise ModelServiceError("Model service returned an unexpected payload")
    return data


# ---------------------------------------------------------------------------
# Gemini
# ---------------------------------------------------------------------------

_GEMINI_FINISH = {
    "STOP": StopReason.STOP,
    "SAFETY": StopReason.SAFETY,
    "PROHIBITED_CONTENT": StopReason.SAFETY,
    "BLOCKLIST": StopReason.SAFETY,
    "SPII": StopReason.SAFETY,
    "RECITATION": StopReason.RECITATION,
    "MAX_TOKENS": StopReason.MAX_TOKENS,
    "TOOL_FUNCTION_REPEAT": StopReason.TOOL_REPEAT,
    "MALFORMED_FUNCTION_CALL": StopReason.OTHER,
    "OTHER": StopReason.OTHER,
}


def _gemini_schema(schema: Any) -> Any:
    """JSON-schema-ish dict -> Gemini OpenAPI subset (upper-case types, no empty lists)."""
    if isinstance(schema, list):
        return [_gemini_schema(s) for s in schema]
    if not isinstance(schema, dict):
        return schema
    out: Dict[str, Any] = {}
    for key, value in schema.items():
        if key == "type" and isinstance(value, str):
            out[key] = value.upper()
        elif key == "required" and not value:
            continue
        elif key == "properties" and isinstance(value, dict):
            out[key] = {name: _gemini_schema(prop) for name, prop in value.items()}
        else:
            out[key] = _gemini_schema(value)
    return out


def gemini_declarations(declarations: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for d in declarations:
        decl = {"name": d["name"], "description": d.get("description", "")}
        params = d.get("parameters") or {}
        # Gemini rejects OBJECT parameters without properties
        if params.get("properties"):
            decl["parameters"] = _gemini_schema(params)
        out.append(decl)
    return out


def parse_gemini_response(data: Dict[str, Any]) -> ModelTurn:
    block_reason = (data.get("promptFeedback") or {}).get("blockReason")
    candidates = data.get("candidates") or []
    if not candidates:
        if block_reason:
            logger.warning("Prompt blocked by model service: %s", block_reason)
            return ModelTurn(stop_reason=StopReason.SAFETY)
        return ModelTurn(stop_reason=StopReason.UNSPECIFIED)

    cand = candidates[0] if isinstance(candidates[0], dict) else {}
    finish = _GEMINI_FINISH.get(str(cand.get("finishReason") or ""), StopReason.UNSPECIFIED)

    text_chunks: List[str] = []
    calls: List[ToolCallRequest] = []
    for part in (cand.get("content") or {}).get("parts") or []:
        if not isinstance(part, dict):
            continue
        if isinstance(part.get("text"), str):
            text_chunks.append(part["text"])
        fc = part.get("functionCall")
        if isinstance(fc, dict) and fc.get("name"):
            args = fc.get("args")
            calls.append(ToolCallRequest(str(fc["name"]), args if isinstance(args, dict) else {}))

    return ModelTurn(text="".join(text_chunks).strip(), tool_calls=tuple(calls), stop_reason=finish)


class GeminiModel:
    def __init__(
        self,
        *,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ):
        self.model = (model or settings.GEMINI_MODEL).strip()
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.base_url = (base_url or settings.GEMINI_BASE_URL).rstrip("/")
        self.temperature = settings.TEMPERATURE if temperature is None else temperature
        self.max_output_tokens = max_output_tokens or settings.MAX_OUTPUT_TOKENS

    def build_payload(
        self,
        turns: Sequence[ConversationTurn],
        declarations: Sequence[Dict[str, Any]],
        system_instruction: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "contents": turns_to_wire(turns),
            "generationConfig": {
                "temperature": float(self.temperature),
                "maxOutputTokens": int(self.max_output_tokens),
            },
        }
        if declarations:
            payload["tools"] = [{"functionDeclarations": gemini_declarations(declarations)}]
        if system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        return payload

    async def send_turn(
        self,
        turns: Sequence[ConversationTurn],
        declarations: Sequence[Dict[str, Any]],
        *,
        system_instruction: Optional[str] = None,
    ) -> ModelTurn:
        if not self.api_key:
            raise ModelServiceError("Gemini API key not configured (GEMINI_API_KEY).")
        url = f"{self.base_url}/models/{self.model}:generateContent"
        data = await _post_json(
            url,
            self.build_payload(turns, declarations, system_instruction),
            headers={"x-goog-api-key": self.api_key},
        )
        return parse_gemini_response(data)


# ---------------------------------------------------------------------------
# OpenAI-compatible
# ---------------------------------------------------------------------------

_OPENAI_FINISH = {
    "stop": StopReason.STOP,
    "tool_calls": StopReason.STOP,
    "function_call": StopReason.STOP,
    "length": StopReason.MAX_TOKENS,
    "content_filter": StopReason.SAFETY,
}


def openai_messages(turns: Sequence[ConversationTurn], system_instruction: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Canonical turns -> chat/completions messages.

    Tool calls get synthetic ids; results are matched to the most recent
    unanswered call with the same tool name.
    """
    messages: List[Dict[str, Any]] = []
    if system_instruction:
        messages.append({"role": "system", "content": system_instruction})

    pending: Dict[str, List[str]] = {}
    for ti, turn in enumerate(turns):
        text = turn.text
        calls = [p.call for p in turn.parts if isinstance(p, ToolCallPart)]
        results = [p.result for p in turn.parts if isinstance(p, ToolResultPart)]

        if turn.role is Role.MODEL:
            msg: Dict[str, Any] = {"role": "assistant", "content": text or None}
            if calls:
                msg["tool_calls"] = []
                for ci, call in enumerate(calls):
                    call_id = f"call_{ti}_{ci}"
                    pending.setdefault(call.name, []).append(call_id)
                    msg["tool_calls"].append({
                        "id": call_id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": json.dumps(call.args_dict())},
                    })
            messages.append(msg)
            continue

        for result in results:
            queue = pending.get(result.name) or []
            call_id = queue.pop(0) if queue else f"call_{ti}_{result.name}"
            messages.append({
                "role": "tool",
                "tool_call_id": call_id,
                "content": json.dumps(result.response_payload(), ensure_ascii=False, default=str),
            })
        if text:
            messages.append({"role": "user", "content": text})
    return messages


def parse_openai_response(data: Dict[str, Any]) -> ModelTurn:
    choices = data.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return ModelTurn(stop_reason=StopReason.UNSPECIFIED)
    choice = choices[0]
    msg = choice.get("message") or {}
    finish = _OPENAI_FINISH.get(str(choice.get("finish_reason") or ""), StopReason.UNSPECIFIED)

    calls: List[ToolCallRequest] = []
    for tc in msg.get("tool_calls") or []:
        fn = (tc or {}).get("function") or {}
        if not fn.get("name"):
            continue
        raw_args = fn.get("arguments") or "{}"
        try:
            args = json.loads(raw_args) if isinstance(raw_args, str) else raw_args
        except json.JSONDecodeError:
            logger.warning("Unparsable tool arguments for %s", fn["name"])
            args = {}
        calls.append(ToolCallRequest(str(fn["name"]), args if isinstance(args, dict) else {}))

    return ModelTurn(text=str(msg.get("content") or "").strip(), tool_calls=tuple(calls), stop_reason=finish)


class OpenAICompatModel:
    def __init__(
        self,
        *,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        self.model = (model or settings.LLM_MODEL).strip()
        self.base_url = (base_url or settings.LLM_BASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.LLM_API_KEY
        self.temperature = settings.TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens or settings.MAX_OUTPUT_TOKENS

    async def send_turn(
        self,
        turns: Sequence[ConversationTurn],
        declarations: Sequence[Dict[str, Any]],
        *,
        system_instruction: Optional[str] = None,
    ) -> ModelTurn:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": openai_messages(turns, system_instruction),
            "temperature": float(self.temperature),
            "max_tokens": int(self.max_tokens),
        }
        if declarations:
            payload["tools"] = [{"type": "function", "function": dict(d)} for d in declarations]
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        data = await _post_json(f"{self.base_url}/chat/completions", payload, headers=headers)
        return parse_openai_response(data)


def get_model_service(model: Optional[str] = None) -> ModelService:
    """
    Model service for the configured provider.

    Args:
        model: Optional model name override (e.g. the mentor model)
    """
    if settings.MODEL_PROVIDER == "openai_compat":
        return OpenAICompatModel(model=model)
    return GeminiModel(model=model)
