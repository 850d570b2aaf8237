"""
SNXai service errors.
"""

from __future__ import annotations


class SnxaiError(Exception):
    """Base class for all service errors."""


class AuthError(SnxaiError):
    """Missing, malformed or unknown bearer credential."""


class ValidationError(SnxaiError):
    """Request body is missing, unparsable or has an empty message."""


class UnknownToolError(SnxaiError):
    """A tool name was resolved that the registry does not know."""

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name!r}")
        self.name = name


class DuplicateToolError(SnxaiError):
    """A tool with the same name was registered twice."""

    def __init__(self, name: str):
        super().__init__(f"Tool already registered: {name!r}")
        self.name = name


class InvalidDirectiveError(SnxaiError):
    """A UI-action tool call is missing the fields needed to build a directive."""


class ToolExecutionError(SnxaiError):
    """A data tool failed. Reported back to the model, never to the caller."""


class ModelServiceError(SnxaiError):
    """The language-model service is unreachable or returned garbage."""
