"""
Tool registry and the declarative tool catalogues.

Each catalogue entry is a tool declaration compatible with the
Gemini/OpenAI function-calling format, plus a classification:

  - ``ui_action`` tools only ask the client to open a form; they never run
  - ``data`` tools run against the backend and feed a result to the model

Registries are built once at process start and frozen.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping

from .errors import DuplicateToolError, UnknownToolError


class Classification(str, Enum):
    UI_ACTION = "ui_action"
    DATA = "data"


_EMPTY_OBJECT: Dict[str, Any] = {"type": "object", "properties": {}}


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    classification: Classification
    parameters: Mapping[str, Any] = field(default_factory=lambda: dict(_EMPTY_OBJECT))

    def declaration(self) -> Dict[str, Any]:
        """Function declaration sent to the model (classification stays server-side)."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": dict(self.parameters),
        }


class ToolRegistry:
    """Name -> ToolDefinition. Read-only once frozen."""

    def __init__(self) -> None:
        self._tools: Dict[str, ToolDefinition] = {}
        self._frozen = False

    def register(self, definition: ToolDefinition) -> None:
        if self._frozen:
            raise RuntimeError("Tool registry is frozen")
        if definition.name in self._tools:
            raise DuplicateToolError(definition.name)
        self._tools[definition.name] = definition

    def freeze(self) -> "ToolRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def resolve(self, name: str) -> ToolDefinition:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def names(self) -> List[str]:
        return list(self._tools)

    def declarations(self) -> List[Dict[str, Any]]:
        return [t.declaration() for t in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools.values())


def build_registry(definitions: Iterable[ToolDefinition]) -> ToolRegistry:
    registry = ToolRegistry()
    for d in definitions:
        registry.register(d)
    return registry.freeze()


def _string(description: str) -> Dict[str, Any]:
    return {"type": "string", "description": description}


def _object(properties: Dict[str, Any], required: List[str] | None = None) -> Dict[str, Any]:
    return {"type": "object", "properties": properties, "required": list(required or [])}


# ---------------------------------------------------------------------------
# Platform assistant (SNXai) catalogue
# ---------------------------------------------------------------------------
PLATFORM_TOOLS: List[ToolDefinition] = [
    ToolDefinition(
        name="getLoggedInUserProfile",
        description=(
            "Retrieves the profile information (like name, headline, summary, skills list, etc.) "
            "for the currently logged-in user making the request."
        ),
        classification=Classification.DATA,
        parameters=_object({}),
    ),
    ToolDefinition(
        name="searchProjects",
        description=(
            "Searches for projects on the platform based on keywords in title/description, "
            "specific skills, or current status."
        ),
        classification=Classification.DATA,
        parameters=_object({
            "keyword": _string("Keywords to search in the project title or description."),
            "skill": _string("A specific skill associated with the project (e.g., 'React', 'Python')."),
            "status": _string("Filter by project status (e.g., 'Planning', 'In Progress', 'Completed')."),
        }),
    ),
    ToolDefinition(
        name="listPlacementDrives",
        description=(
            "Finds open or closed placement drives by company name, role title, status, "
            "location, or eligible branch."
        ),
        classification=Classification.DATA,
        parameters=_object({
            "company": _string("Search by company name (e.g., 'Google', 'Microsoft')."),
            "role": _string("Search by job role title (e.g., 'Software Engineer')."),
            "status": _string("Filter by drive status (e.g., 'Upcoming', 'Ongoing', 'Past')."),
            "location": _string("Filter by location (e.g., 'Bangalore', 'Remote')."),
            "branch": _string("Filter by eligible engineering branch (e.g., 'CSE', 'IT', 'ECE')."),
            "keyword": _string("Keywords to search in the drive description."),
        }),
    ),
    ToolDefinition(
        name="listAchievements",
        description=(
            "Finds student achievement posts (success stories) by company name, role title, "
            "placed student's name, or skills mentioned."
        ),
        classification=Classification.DATA,
        parameters=_object({
            "company": _string("Company the student was placed in (e.g., 'Amazon')."),
            "role": _string("Role title the student was placed in."),
            "studentName": _string("Name of the student who was placed."),
            "skill": _string("A skill mentioned in the achievement."),
            "location": _string("Location mentioned in the achievement."),
            "keyword": _string("Keywords to search in the achievement text."),
        }),
    ),
    ToolDefinition(
        name="searchResources",
        description=(
            "Searches for shared resources (links, documents) based on keywords, type, branch, "
            "year, subject, or tags."
        ),
        classification=Classification.DATA,
        parameters=_object({
            "keyword": _string("Keywords to search in the resource title or description."),
            "type": _string("Resource type (e.g., 'Notes', 'Video', 'Question Bank')."),
            "branch": _string("Engineering branch (e.g., 'CSE', 'IT', 'ECE')."),
            "year": _string("Academic year (e.g., '1', '2', '3', '4')."),
            "subject": _string("Subject name (e.g., 'Operating Systems')."),
            "tag": _string("A tag associated with the resource."),
        }),
    ),
    ToolDefinition(
        name="updateMyProfileSummary",
        description="Updates the 'summary' section of the logged-in user's profile.",
        classification=Classification.DATA,
        parameters=_object(
            {"newSummary": _string("The new text content for the profile summary section.")},
            required=["newSummary"],
        ),
    ),
    ToolDefinition(
        name="initiateCreateProject",
        description=(
            "Starts the process for the user to create a new project. Use this when the user "
            "expresses intent to create a project. This will open a form for the user to fill in."
        ),
        classification=Classification.UI_ACTION,
        parameters=_object({
            "initialTitle": _string("An optional initial title for the project, if the user mentioned one."),
        }),
    ),
    ToolDefinition(
        name="createCommunityPost",
        description=(
            "Initiates the process to create a new post on the Community Feed. "
            "This opens a form to gather details for the post."
        ),
        classification=Classification.UI_ACTION,
        parameters=_object({
            "textContent": _string("The main text content for the post."),
            "linkUrl": _string("A URL to include with the post."),
            "category": _string("Post category (e.g., 'Event', 'Announcement', 'Discussion')."),
            "isEvent": {"type": "boolean", "description": "True if the post is an event announcement."},
            "eventDetails": _object(
                {"date": _string("Event date."), "location": _string("Event location.")},
                required=["date", "location"],
            ),
        }),
    ),
    ToolDefinition(
        name="openModalOnFrontend",
        description=(
            "Ask the user's interface to open a specific modal dialog. Useful for complex data "
            "entry or confirmations. Do NOT call this to get data, only to display a UI element."
        ),
        classification=Classification.UI_ACTION,
        parameters=_object(
            {
                "modalId": _string(
                    "Identifier of the modal to open (e.g., 'createProjectForm', 'editSummary', "
                    "'confirmDelete', 'createCommunityPostForm')."
                ),
                "modalProps": {"type": "object", "description": "Optional data passed to the modal."},
            },
            required=["modalId"],
        ),
    ),
]


# ---------------------------------------------------------------------------
# Tech mentor (Nexai) catalogue
# ---------------------------------------------------------------------------
MENTOR_TOOLS: List[ToolDefinition] = [
    ToolDefinition(
        name="search_web",
        description=(
            "Searches the web for recent information, news, articles, course listings, or answers "
            "about current events. Use this for latest trends or information beyond your training "
            "data. DO NOT use for math calculations."
        ),
        classification=Classification.DATA,
        parameters=_object({"query": _string("The specific question or topic to search.")}, required=["query"]),
    ),
    ToolDefinition(
        name="calculate",
        description=(
            "Performs arithmetic calculations (addition, subtraction, multiplication, division, "
            "powers). Use for queries like 'what is 5*8?'."
        ),
        classification=Classification.DATA,
        parameters=_object(
            {"expression": _string("The mathematical expression to evaluate (e.g., '2+2', '4*4').")},
            required=["expression"],
        ),
    ),
]
