"""
Pydantic models for request/response validation.

These models define the API contract for the assistant endpoints.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    """
    Request body shared by /api/snxai and /api/nexai.

    ``history`` is accepted as-is and normalized server-side; malformed
    entries are dropped rather than rejected.
    """
    message: str = Field(default="", description="The user's new message")
    history: Optional[Any] = Field(default=None, description="Prior turns, oldest first")


class ActionModel(BaseModel):
    """Client instruction to open a modal."""
    type: str = Field(default="openModal")
    modalId: str = Field(..., description="Modal to open on the client")
    data: Dict[str, Any] = Field(default_factory=dict, description="Props / prefill data for the modal")


class ChatResponse(BaseModel):
    aiMessage: str
    action: Optional[ActionModel] = None


class MentorResponse(BaseModel):
    response: str


class ErrorResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status: 'ok' or 'error'")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    store: str = Field(..., description="Storage backend in use")
    model_provider: str = Field(..., description="Language-model backend in use")
