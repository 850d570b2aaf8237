# snxai/tests/conftest.py
from typing import Any, Dict, List, Sequence

import pytest
from fastapi.testclient import TestClient

from snxai import main as main_module
from snxai.config import settings
from snxai.data_tools import PlatformTools
from snxai.dispatcher import ToolDispatcher
from snxai.executor import DataToolExecutor
from snxai.store import MemoryStore, reset_store
from snxai.tools import PLATFORM_TOOLS, build_registry
from snxai.turns import ConversationTurn, ModelTurn, StopReason, ToolCallRequest

SEED: Dict[str, Any] = {
    "studentProfiles": {
        "alice": {
            "name": "Alice Rao",
            "headline": "CSE undergrad, full-stack tinkerer",
            "summary": "Old summary",
            "skills": ["Python", "React"],
            "email": "alice@example.edu",
        },
    },
    "projects": [
        {
            "id": "p1",
            "title": "Campus Event App",
            "description": "Mobile app for college events",
            "status": "In Progress",
            "skills": ["React", "Firebase"],
            "createdAt": "2024-03-01T10:00:00Z",
        },
        {
            "id": "p2",
            "title": "Notes Classifier",
            "description": "Sorts lecture notes with machine learning",
            "status": "Planning",
            "skills": ["Python"],
            "createdAt": "2024-04-01T10:00:00Z",
        },
    ],
    "placementDrives": {
        "d1": {
            "companyName": "Google",
            "roleTitle": "Software Engineer",
            "status": "Upcoming",
            "location": "Bangalore",
            "eligibleBranches": ["CSE", "IT"],
            "description": "Hiring SWE interns for summer",
            "createdAt": "2024-05-01T00:00:00Z",
        },
        "d2": {
            "companyName": "Infosys",
            "roleTitle": "Systems Engineer",
            "status": "Past",
            "location": "Pune",
            "eligibleBranches": ["CSE", "ECE"],
            "description": "Mass recruitment drive",
            "createdAt": "2024-01-01T00:00:00Z",
        },
    },
    "placementAchievements": {
        "a1": {
            "placedStudentName": "Ravi Kumar",
            "companyName": "Amazon",
            "roleTitle": "SDE",
            "skills": ["Java", "DSA"],
            "location": "Hyderabad",
            "text": "Cleared four rounds after months of practice",
        },
    },
    "resources": {
        "r1": {
            "title": "OS Notes",
            "description": "Operating systems unit 1 notes",
            "resourceType": "Notes",
            "branch": "CSE",
            "year": "3",
            "subject": "Operating Systems",
            "tags": ["os", "exam"],
        },
    },
}

AUTH_TOKENS = "tok-alice:alice,tok-bob:bob"


def text_turn(text: str, stop: StopReason = StopReason.STOP) -> ModelTurn:
    return ModelTurn(text=text, stop_reason=stop)


def call_turn(*calls: ToolCallRequest, text: str = "") -> ModelTurn:
    return ModelTurn(text=text, tool_calls=calls, stop_reason=StopReason.STOP)


def call(name: str, **args: Any) -> ToolCallRequest:
    return ToolCallRequest(name, args)


class ScriptedModel:
    """Model service fake that replays queued turns and records each request."""

    def __init__(self, *turns: ModelTurn):
        self.script: List[ModelTurn] = list(turns)
        self.requests: List[List[ConversationTurn]] = []
        self.system_instructions: List[Any] = []
        self.declaration_names: List[List[str]] = []

    def queue(self, *turns: ModelTurn) -> "ScriptedModel":
        self.script.extend(turns)
        return self

    async def send_turn(
        self,
        turns: Sequence[ConversationTurn],
        declarations: Sequence[Dict[str, Any]],
        *,
        system_instruction: Any = None,
    ) -> ModelTurn:
        self.requests.append(list(turns))
        self.system_instructions.append(system_instruction)
        self.declaration_names.append([d["name"] for d in declarations])
        if not self.script:
            raise AssertionError("ScriptedModel ran out of turns")
        return self.script.pop(0)


@pytest.fixture
def store():
    s = MemoryStore()
    s.load_seed(SEED)
    reset_store(s)
    yield s
    reset_store(None)


@pytest.fixture
def platform_registry():
    return build_registry(PLATFORM_TOOLS)


@pytest.fixture
def platform_dispatcher(store, platform_registry):
    executor = DataToolExecutor(PlatformTools(lambda: store).handlers(), timeout_s=2.0)
    return ToolDispatcher(platform_registry, executor)


@pytest.fixture
def scripted():
    return ScriptedModel()


@pytest.fixture
def client(store, scripted, monkeypatch):
    """App client with two known bearer tokens and the scripted model service."""
    monkeypatch.setattr(settings, "AUTH_TOKENS", AUTH_TOKENS)
    monkeypatch.setattr(settings, "AUTH_DISABLED", False)
    monkeypatch.setattr(settings, "MAX_ROUND_TRIPS", 4)
    # Patch on the module where get_model_service is used
    monkeypatch.setattr(main_module, "get_model_service", lambda model_name=None: scripted)
    return TestClient(main_module.app, raise_server_exceptions=False)


@pytest.fixture
def auth_headers():
    return {"Authorization": "Bearer tok-alice"}
