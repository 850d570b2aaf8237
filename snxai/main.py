"""
SNXai Assistant Service - Main FastAPI Application

Two conversational endpoints share one tool-orchestration loop:

- POST /api/snxai  platform assistant (authenticated; data tools + UI actions)
- POST /api/nexai  tech mentor (web search + calculator)
"""

from __future__ import annotations

import logging
from typing import Any

import pydantic
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .agent_loop import MENTOR_SYSTEM_PROMPT, PLATFORM_SYSTEM_PROMPT, ConversationLoop
from .auth import require_user
from .config import parse_csv, settings
from .data_tools import MentorTools, PlatformTools
from .dispatcher import ToolDispatcher
from .errors import AuthError, ModelServiceError, ValidationError
from .executor import DataToolExecutor
from .health import router as health_router
from .llm import get_model_service
from .models import ChatRequest, ChatResponse, ErrorResponse, MentorResponse
from .responses import outcome_text, to_response
from .tools import MENTOR_TOOLS, PLATFORM_TOOLS, ToolRegistry, build_registry
from .turns import FailureOutcome

logger = logging.getLogger("snxai.main")


app = FastAPI(
    title="SNXai Assistant",
    description="Conversational assistant with tool orchestration for the student community platform.",
    version=settings.SERVICE_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=parse_csv(settings.CORS_ORIGINS),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)


# Tool catalogues and dispatch tables are fixed for the process lifetime
PLATFORM_REGISTRY = build_registry(PLATFORM_TOOLS)
MENTOR_REGISTRY = build_registry(MENTOR_TOOLS)

platform_dispatcher = ToolDispatcher(
    PLATFORM_REGISTRY,
    DataToolExecutor(PlatformTools().handlers(), timeout_s=settings.TOOL_TIMEOUT_S),
)
mentor_dispatcher = ToolDispatcher(
    MENTOR_REGISTRY,
    DataToolExecutor(MentorTools().handlers(), timeout_s=settings.TOOL_TIMEOUT_S),
)


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    return JSONResponse(status_code=401, content={"message": str(exc) or "Unauthorized"})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"message": str(exc) or "Invalid request body."})


@app.exception_handler(ModelServiceError)
async def model_error_handler(request: Request, exc: ModelServiceError):
    logger.error("Model service failure on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal Server Error processing AI response"},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal Server Error"})


async def _read_chat_request(request: Request) -> ChatRequest:
    """Parse and validate the JSON body. Empty messages are rejected."""
    try:
        body: Any = await request.json()
    except ValueError as e:
        raise ValidationError("Invalid request body.") from e
    if not isinstance(body, dict):
        raise ValidationError("Invalid request body.")
    try:
        req = ChatRequest.model_validate(body)
    except pydantic.ValidationError as e:
        raise ValidationError("Invalid request body.") from e
    if not req.message.strip():
        raise ValidationError("Message is required")
    return req


def _loop(dispatcher: ToolDispatcher, registry: ToolRegistry, system_instruction: str, model_name: str | None = None) -> ConversationLoop:
    return ConversationLoop(
        get_model_service(model_name),
        dispatcher,
        registry,
        system_instruction=system_instruction,
        max_round_trips=settings.MAX_ROUND_TRIPS,
        history_limit=settings.HISTORY_LIMIT,
    )


@app.post(
    "/api/snxai",
    response_model=ChatResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Platform assistant",
    description="Send a message; get a text reply or an instruction to open a form.",
)
async def snxai_chat(request: Request, user_id: str = Depends(require_user)):
    req = await _read_chat_request(request)
    logger.info("SNXai request from %s (history=%s)", user_id, "yes" if req.history else "no")

    outcome = await _loop(platform_dispatcher, PLATFORM_REGISTRY, PLATFORM_SYSTEM_PROMPT).run(
        req.message.strip(), req.history, user_id
    )
    if isinstance(outcome, FailureOutcome):
        logger.warning("SNXai request from %s ended without a reply: %s", user_id, outcome.kind.value)
    return to_response(outcome)


@app.post(
    "/api/nexai",
    response_model=MentorResponse,
    responses={400: {"model": MentorResponse}, 500: {"model": MentorResponse}},
    summary="Tech mentor",
    description="Conversational tech mentor with web search and a calculator.",
)
async def nexai_chat(request: Request):
    try:
        req = await _read_chat_request(request)
    except ValidationError as e:
        return JSONResponse(status_code=400, content={"response": str(e)})

    mentor_model = settings.MENTOR_MODEL if settings.MODEL_PROVIDER == "gemini" else None
    try:
        outcome = await _loop(mentor_dispatcher, MENTOR_REGISTRY, MENTOR_SYSTEM_PROMPT, mentor_model).run(
            req.message.strip(), req.history, "anonymous"
        )
    except ModelServiceError as e:
        logger.error("Mentor model failure: %s", e)
        return JSONResponse(status_code=500, content={"response": "Oops! Something went wrong. Please try again."})

    if isinstance(outcome, FailureOutcome):
        logger.warning("Mentor request ended without a reply: %s", outcome.kind.value)
    return {"response": outcome_text(outcome)}


@app.on_event("startup")
async def startup_event():
    """Application startup tasks."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting %s v%s", settings.SERVICE_NAME, settings.SERVICE_VERSION)
    logger.info("Model provider: %s, store: %s", settings.MODEL_PROVIDER, settings.STORE)
    logger.info(
        "Tools: %d platform, %d mentor; max round trips %d",
        len(PLATFORM_REGISTRY), len(MENTOR_REGISTRY), settings.MAX_ROUND_TRIPS,
    )
    if not settings.auth_token_map() and not settings.AUTH_DISABLED:
        logger.warning("AUTH_TOKENS is empty: every /api/snxai request will be rejected")


def run() -> None:
    """Console entry point."""
    import uvicorn

    uvicorn.run("snxai.main:app", host="0.0.0.0", port=8000, log_level=settings.LOG_LEVEL.lower())
