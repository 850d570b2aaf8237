"""
UI-action interception.

Turns a ui-action tool call into a directive for the client instead of
executing anything. The model expresses intent ("the user wants to create a
project"); this module owns the mapping to the UI's modal identifiers.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Mapping, Tuple

from .errors import InvalidDirectiveError
from .turns import ToolCallRequest, UIActionDirective

logger = logging.getLogger("snxai.ui_actions")

OPEN_MODAL_TOOL = "openModalOnFrontend"

# Semantic tools: tool name -> (modalId, acknowledgement shown to the user)
SEMANTIC_FORMS: Dict[str, Tuple[str, str]] = {
    "initiateCreateProject": (
        "createProjectForm",
        "Sure, let's get your new project set up. I'll open the form.",
    ),
    "createCommunityPost": (
        "createCommunityPostForm",
        "Okay, I can help draft a community post. I'll open the form.",
    ),
}

_CAMEL_RE = re.compile(r"([A-Z])")


def humanize_modal_id(modal_id: str) -> str:
    """'createProjectForm' -> 'create project form'"""
    return _CAMEL_RE.sub(r" \1", modal_id).strip().lower()


def _open_modal(args: Mapping[str, Any]) -> UIActionDirective:
    modal_id = args.get("modalId")
    if not isinstance(modal_id, str) or not modal_id.strip():
        raise InvalidDirectiveError("openModalOnFrontend called without a valid modalId")
    modal_id = modal_id.strip()
    props = args.get("modalProps")
    return UIActionDirective(
        modal_id=modal_id,
        data=dict(props) if isinstance(props, Mapping) else {},
        message=f"Okay, opening the {humanize_modal_id(modal_id)}...",
    )


def intercept(request: ToolCallRequest) -> UIActionDirective:
    """
    Build the directive for a ui-action tool call.

    Raises:
        InvalidDirectiveError: generic modal call without a usable ``modalId``,
            or a ui-action tool with no interception rule.
    """
    if request.name == OPEN_MODAL_TOOL:
        directive = _open_modal(request.arguments)
    elif request.name in SEMANTIC_FORMS:
        modal_id, message = SEMANTIC_FORMS[request.name]
        directive = UIActionDirective(
            modal_id=modal_id,
            data={"initialData": request.args_dict()},
            message=message,
        )
    else:
        raise InvalidDirectiveError(f"No UI mapping for tool '{request.name}'")

    logger.info("Intercepted %s -> modal %s", request.name, directive.modal_id)
    return directive
