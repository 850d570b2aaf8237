"""
Backend data tools.

Each handler is ``async def handler(arguments, caller_id) -> result``.
Results are JSON-serialisable and kept compact: they are fed straight back
to the model. Failures raise ToolExecutionError; the executor turns that
into an error payload for the model.
"""
from __future__ import annotations

import ast
import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx
from simpleeval import DEFAULT_OPERATORS, InvalidExpression, SimpleEval

from .config import settings
from .errors import ToolExecutionError
from .executor import ToolHandler
from .store import BaseStore, Document, get_store

logger = logging.getLogger("snxai.data_tools")

PROFILE_COLLECTION = "studentProfiles"
PROJECTS_COLLECTION = "projects"
DRIVES_COLLECTION = "placementDrives"
ACHIEVEMENTS_COLLECTION = "placementAchievements"
RESOURCES_COLLECTION = "resources"

MAX_RESULTS = 10
MAX_SUMMARY_CHARS = 2000
PROFILE_FIELDS = (
    "name", "headline", "summary", "skills", "education", "experience",
    "certifications", "languages", "awards", "extracurriculars", "manualProjects",
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _arg(args: Dict[str, Any], key: str) -> str:
    value = args.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _contains(haystack: Any, needle: str) -> bool:
    if not needle:
        return True
    if isinstance(haystack, (list, tuple)):
        return any(_contains(h, needle) for h in haystack)
    return needle.lower() in str(haystack or "").lower()


def _equals(value: Any, wanted: str) -> bool:
    if not wanted:
        return True
    return str(value or "").strip().lower() == wanted.lower()


def _list_contains(values: Any, wanted: str) -> bool:
    """Exact (case-insensitive) membership in a list field."""
    if not wanted:
        return True
    if not isinstance(values, (list, tuple)):
        return False
    return any(str(v).strip().lower() == wanted.lower() for v in values)


def _newest_first(docs: Iterable[Document], limit: int = MAX_RESULTS) -> List[Document]:
    ordered = sorted(docs, key=lambda d: str(d.get("createdAt") or ""), reverse=True)
    return ordered[:limit]


def _pick(doc: Document, keys: Iterable[str]) -> Dict[str, Any]:
    return {k: doc[k] for k in keys if doc.get(k) not in (None, "", [])}


class PlatformTools:
    """Data tools for the community platform assistant."""

    def __init__(self, store_getter: Callable[[], BaseStore] = get_store):
        self._store_getter = store_getter

    @property
    def store(self) -> BaseStore:
        return self._store_getter()

    async def get_logged_in_user_profile(self, args: Dict[str, Any], caller_id: str) -> Dict[str, Any]:
        profile = await self.store.get_async(PROFILE_COLLECTION, caller_id)
        if profile is None:
            raise ToolExecutionError("Profile not found for the current user.")
        return {"userId": caller_id, **_pick(profile, PROFILE_FIELDS)}

    async def update_my_profile_summary(self, args: Dict[str, Any], caller_id: str) -> Dict[str, Any]:
        new_summary = _arg(args, "newSummary")
        if not new_summary:
            raise ToolExecutionError("newSummary is required.")
        if len(new_summary) > MAX_SUMMARY_CHARS:
            raise ToolExecutionError(f"Summary exceeds maximum length ({MAX_SUMMARY_CHARS} characters).")

        updated = await self.store.update_async(
            PROFILE_COLLECTION, caller_id, {"summary": new_summary, "updatedAt": _now_iso()}
        )
        if updated is None:
            raise ToolExecutionError("Profile not found for the current user.")
        logger.info("Updated profile summary for %s", caller_id)
        return {"status": "success", "message": "Profile summary updated.", "summary": new_summary}

    async def search_projects(self, args: Dict[str, Any], caller_id: str) -> Dict[str, Any]:
        keyword, skill, status = _arg(args, "keyword"), _arg(args, "skill"), _arg(args, "status")
        matches = [
            p for p in await self.store.query_async(PROJECTS_COLLECTION)
            if (_contains(p.get("title"), keyword) or _contains(p.get("description"), keyword))
            and _list_contains(p.get("skills"), skill)
            and _equals(p.get("status"), status)
        ]
        projects = [
            _pick(p, ("id", "title", "description", "status", "projectType", "skills", "creatorName", "lookingForMembers"))
            for p in _newest_first(matches)
        ]
        return {"count": len(projects), "projects": projects}

    async def list_placement_drives(self, args: Dict[str, Any], caller_id: str) -> Dict[str, Any]:
        company, role = _arg(args, "company"), _arg(args, "role")
        status, location = _arg(args, "status"), _arg(args, "location")
        branch, keyword = _arg(args, "branch"), _arg(args, "keyword")
        matches = [
            d for d in await self.store.query_async(DRIVES_COLLECTION)
            if _contains(d.get("companyName"), company)
            and _contains(d.get("roleTitle"), role)
            and _equals(d.get("status"), status)
            and _contains(d.get("location"), location)
            and _list_contains(d.get("eligibleBranches"), branch)
            and _contains(d.get("description"), keyword)
        ]
        drives = [
            _pick(d, ("id", "companyName", "roleTitle", "status", "location", "eligibleBranches",
                      "packageDetails", "keyDates", "applicationLink"))
            for d in _newest_first(matches)
        ]
        return {"count": len(drives), "drives": drives}

    async def list_achievements(self, args: Dict[str, Any], caller_id: str) -> Dict[str, Any]:
        company, role = _arg(args, "company"), _arg(args, "role")
        student, skill = _arg(args, "studentName"), _arg(args, "skill")
        location, keyword = _arg(args, "location"), _arg(args, "keyword")
        matches = [
            a for a in await self.store.query_async(ACHIEVEMENTS_COLLECTION)
            if _contains(a.get("companyName"), company)
            and _contains(a.get("roleTitle"), role)
            and _contains(a.get("placedStudentName"), student)
            and _contains(a.get("skills"), skill)
            and _contains(a.get("location"), location)
            and _contains(a.get("text"), keyword)
        ]
        achievements = [
            _pick(a, ("id", "placedStudentName", "companyName", "roleTitle", "placementType",
                      "location", "skills", "text"))
            for a in _newest_first(matches)
        ]
        return {"count": len(achievements), "achievements": achievements}

    async def search_resources(self, args: Dict[str, Any], caller_id: str) -> Dict[str, Any]:
        keyword, rtype = _arg(args, "keyword"), _arg(args, "type")
        branch, year = _arg(args, "branch"), _arg(args, "year")
        subject, tag = _arg(args, "subject"), _arg(args, "tag")
        matches = [
            r for r in await self.store.query_async(RESOURCES_COLLECTION)
            if (_contains(r.get("title"), keyword) or _contains(r.get("description"), keyword))
            and _equals(r.get("resourceType"), rtype)
            and _equals(r.get("branch"), branch)
            and _equals(r.get("year"), year)
            and _contains(r.get("subject"), subject)
            and _list_contains(r.get("tags"), tag)
        ]
        resources = [
            _pick(r, ("id", "title", "description", "resourceType", "branch", "year", "subject",
                      "tags", "linkURL", "uploaderName"))
            for r in _newest_first(matches)
        ]
        return {"count": len(resources), "resources": resources}

    def handlers(self) -> Dict[str, ToolHandler]:
        return {
            "getLoggedInUserProfile": self.get_logged_in_user_profile,
            "updateMyProfileSummary": self.update_my_profile_summary,
            "searchProjects": self.search_projects,
            "listPlacementDrives": self.list_placement_drives,
            "listAchievements": self.list_achievements,
            "searchResources": self.search_resources,
        }


# ---------------------------------------------------------------------------
# Mentor tools
# ---------------------------------------------------------------------------

MAX_EXPONENT = 1000


def _capped_power(base: Any, exponent: Any) -> float:
    if abs(exponent) > MAX_EXPONENT:
        raise ToolExecutionError("Exponent too large.")
    return float(base) ** exponent


CALC_OPERATORS = {**DEFAULT_OPERATORS, ast.Pow: _capped_power}
CALC_FUNCTIONS = {
    "abs": abs,
    "round": round,
    "min": min,
    "max": max,
    "pow": _capped_power,
    "sqrt": math.sqrt,
    "cbrt": lambda x: math.copysign(abs(x) ** (1 / 3), x),
    "exp": math.exp,
    "log": math.log,
    "log10": math.log10,
    "log2": math.log2,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "asin": math.asin,
    "acos": math.acos,
    "atan": math.atan,
    "atan2": math.atan2,
    "sinh": math.sinh,
    "cosh": math.cosh,
    "tanh": math.tanh,
    "floor": math.floor,
    "ceil": math.ceil,
    "hypot": math.hypot,
    "degrees": math.degrees,
    "radians": math.radians,
}
CALC_NAMES = {"pi": math.pi, "e": math.e, "tau": math.tau}


def evaluate_expression(expression: str) -> float:
    """
    Evaluate an arithmetic expression with the usual math functions and
    constants (``sqrt(16)``, ``sin(pi/2)``, ``log(100, 10)``).

    ``^`` is exponentiation. Anything that is not a number in the end is
    rejected.
    """
    expr = (expression or "").strip().replace("^", "**").replace("×", "*").replace("÷", "/")
    if not expr:
        raise ToolExecutionError("Calculation expression missing.")

    evaluator = SimpleEval(operators=CALC_OPERATORS, functions=CALC_FUNCTIONS, names=CALC_NAMES)
    try:
        value = evaluator.eval(expr)
    except SyntaxError as exc:
        raise ToolExecutionError(f"Calculation failed: invalid expression ({exc.msg})") from exc
    except InvalidExpression as exc:
        raise ToolExecutionError(f"Calculation failed: {exc}") from exc
    except ZeroDivisionError as exc:
        raise ToolExecutionError("Calculation failed: division by zero") from exc
    except OverflowError as exc:
        raise ToolExecutionError("Calculation failed: result too large") from exc
    except (TypeError, ValueError) as exc:
        raise ToolExecutionError(f"Calculation failed: {exc}") from exc

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ToolExecutionError("Calculation failed: expression did not produce a number")
    return value


class MentorTools:
    """Data tools for the tech-mentor assistant."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        engine_id: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.SEARCH_API_KEY
        self.engine_id = engine_id if engine_id is not None else settings.SEARCH_ENGINE_ID
        self.base_url = base_url or settings.SEARCH_BASE_URL
        self.timeout_s = timeout_s or settings.TOOL_TIMEOUT_S

    async def search_web(self, args: Dict[str, Any], caller_id: str) -> Dict[str, Any]:
        query = _arg(args, "query")
        if not query:
            raise ToolExecutionError("Search query missing.")
        if not self.api_key or not self.engine_id:
            raise ToolExecutionError("Web search is not configured.")

        params = {"key": self.api_key, "cx": self.engine_id, "q": query}
        async with httpx.AsyncClient(timeout=self.timeout_s) as client:
            try:
                r = await client.get(self.base_url, params=params)
            except httpx.RequestError as e:
                raise ToolExecutionError(f"Search request failed: {e}") from e

        if r.status_code >= 400:
            raise ToolExecutionError(f"Search API error {r.status_code}")
        try:
            data = r.json()
        except ValueError as e:
            raise ToolExecutionError("Search API returned non-JSON response") from e

        if isinstance(data.get("error"), dict):
            raise ToolExecutionError(f"Search API returned error: {data['error'].get('message', 'unknown')}")

        items = data.get("items") or []
        if not items:
            return {"status": "success_no_results", "results": [], "message": f'No web results for "{query}".'}
        results = [
            {"title": i.get("title", ""), "link": i.get("link", ""), "snippet": i.get("snippet", "")}
            for i in items[:5]
            if isinstance(i, dict)
        ]
        return {"status": "success", "results": results, "message": f"Found {len(results)} results."}

    async def calculate(self, args: Dict[str, Any], caller_id: str) -> Dict[str, Any]:
        value = evaluate_expression(_arg(args, "expression"))
        if isinstance(value, float) and value.is_integer() and abs(value) < 1e15:
            value = int(value)
        return {"status": "success", "result": str(value)}

    def handlers(self) -> Dict[str, ToolHandler]:
        return {
            "search_web": self.search_web,
            "calculate": self.calculate,
        }
