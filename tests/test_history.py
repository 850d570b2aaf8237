"""
History normalization: untrusted client history -> canonical turns.
"""

from snxai.history import normalize_history, turns_to_wire
from snxai.turns import Role, TextPart, ToolCallPart, ToolResultPart


def _user(text):
    return {"role": "user", "parts": [{"text": text}]}


def _model(text):
    return {"role": "model", "parts": [{"text": text}]}


class TestNormalizeHistory:

    def test_none_and_non_list_are_empty(self):
        assert normalize_history(None) == []
        assert normalize_history("hello") == []
        assert normalize_history({"role": "user"}) == []

    def test_valid_history_kept_in_order(self):
        turns = normalize_history([_user("hi"), _model("hello"), _user("projects?")])
        assert [t.role for t in turns] == [Role.USER, Role.MODEL, Role.USER]
        assert [t.text for t in turns] == ["hi", "hello", "projects?"]

    def test_leading_model_turns_dropped(self):
        turns = normalize_history([_model("welcome"), _model("again"), _user("hi"), _model("hey")])
        assert turns[0].role is Role.USER
        assert [t.text for t in turns] == ["hi", "hey"]

    def test_only_model_turns_is_empty(self):
        assert normalize_history([_model("a"), _model("b")]) == []

    def test_bad_role_and_missing_parts_dropped(self):
        raw = [
            {"role": "system", "parts": [{"text": "x"}]},
            {"role": "user"},
            {"role": "user", "parts": []},
            {"role": "user", "parts": "not a list"},
            42,
            _user("kept"),
        ]
        turns = normalize_history(raw)
        assert len(turns) == 1
        assert turns[0].text == "kept"

    def test_invalid_user_turn_does_not_anchor_a_model_turn(self):
        # The only user turn is malformed, so the model turn cannot lead
        turns = normalize_history([{"role": "user", "parts": []}, _model("orphan")])
        assert turns == []

    def test_unrecognised_parts_dropped(self):
        raw = [{"role": "user", "parts": [{"image": "..."}, {"text": "caption"}, None]}]
        turns = normalize_history(raw)
        assert turns[0].parts == (TextPart("caption"),)

    def test_turn_with_only_unrecognised_parts_dropped(self):
        raw = [_user("a"), {"role": "model", "parts": [{"bogus": 1}]}, _user("b")]
        assert [t.text for t in normalize_history(raw)] == ["a", "b"]

    def test_function_parts_parsed(self):
        raw = [
            _user("my profile and projects?"),
            {"role": "model", "parts": [
                {"functionCall": {"name": "getLoggedInUserProfile", "args": {}}},
                {"functionCall": {"name": "searchProjects", "args": {"skill": "React"}}},
            ]},
            {"role": "user", "parts": [
                {"functionResponse": {"name": "getLoggedInUserProfile", "response": {"content": {"name": "Alice"}}}},
                {"functionResponse": {"name": "searchProjects", "response": {"content": {"error": "boom"}}}},
            ]},
        ]
        turns = normalize_history(raw)
        call_part = turns[1].parts[0]
        ok_part, err_part = turns[2].parts
        assert isinstance(call_part, ToolCallPart)
        assert call_part.call.name == "getLoggedInUserProfile"
        assert isinstance(ok_part, ToolResultPart)
        assert ok_part.result.payload == {"name": "Alice"}
        assert not ok_part.result.is_error
        assert err_part.result.is_error
        assert err_part.result.error == "boom"

    def test_limit_keeps_most_recent_and_starts_on_user(self):
        raw = [_user("1"), _model("2"), _user("3"), _model("4"), _user("5")]
        turns = normalize_history(raw, limit=4)
        # last four are model,user,model,user -> leading model dropped
        assert [t.text for t in turns] == ["3", "4", "5"]
        assert normalize_history(raw, limit=0) == []

    def test_idempotent(self):
        raw = [
            _model("lead"),
            _user("hi"),
            {"role": "model", "parts": [{"functionCall": {"name": "searchProjects", "args": {"skill": "React"}}}]},
            {"role": "user", "parts": [{"functionResponse": {"name": "searchProjects", "response": {"content": {"count": 0}}}}]},
            {"role": "bogus", "parts": [{"text": "x"}]},
            _model("done"),
        ]
        once = normalize_history(raw)
        assert normalize_history(once) == once
        assert normalize_history(turns_to_wire(once)) == once


class TestWireFormat:

    def test_error_result_round_trips_through_wire(self):
        raw = [
            _user("hi"),
            {"role": "model", "parts": [{"functionCall": {"name": "x", "args": {}}}]},
            {"role": "user", "parts": [{"functionResponse": {"name": "x", "response": {"content": {"error": "nope"}}}}]},
        ]
        wire = turns_to_wire(normalize_history(raw))
        assert wire[2]["parts"][0] == {
            "functionResponse": {"name": "x", "response": {"content": {"error": "nope"}}}
        }


def _call(name):
    return {"role": "model", "parts": [{"functionCall": {"name": name, "args": {}}}]}


def _result(name):
    return {"role": "user", "parts": [{"functionResponse": {"name": name, "response": {"content": {"ok": True}}}}]}


class TestToolTurnPairing:

    def test_trimming_never_starts_on_a_tool_result(self):
        raw = []
        for i in range(3):
            raw += [_user(f"q{i}"), _call("searchProjects"), _result("searchProjects"), _model(f"a{i}")]
        turns = normalize_history(raw, limit=10)

        assert turns[0].role is Role.USER
        assert turns[0].text == "q1"
        assert not any(isinstance(p, ToolResultPart) for p in turns[0].parts)
        assert len(turns) == 8

    def test_trailing_unanswered_call_dropped(self):
        raw = [_user("hi"), _model("hello"), _user("projects?"), _call("searchProjects")]
        turns = normalize_history(raw)
        assert [t.text for t in turns] == ["hi", "hello", "projects?"]
        assert not any(isinstance(p, ToolCallPart) for t in turns for p in t.parts)

    def test_orphan_result_dropped(self):
        raw = [_user("hi"), _result("searchProjects"), _model("hello")]
        assert [t.text for t in normalize_history(raw)] == ["hi", "hello"]

    def test_call_answered_by_the_wrong_tool_dropped(self):
        raw = [_user("hi"), _call("searchProjects"), _result("listAchievements"), _model("done")]
        assert [t.text for t in normalize_history(raw)] == ["hi", "done"]

    def test_partially_answered_batch_dropped(self):
        raw = [
            _user("hi"),
            {"role": "model", "parts": [
                {"functionCall": {"name": "searchProjects", "args": {}}},
                {"functionCall": {"name": "searchResources", "args": {}}},
            ]},
            _result("searchProjects"),
        ]
        assert [t.text for t in normalize_history(raw)] == ["hi"]

    def test_call_turn_keeps_its_text_when_unanswered(self):
        raw = [
            _user("hi"),
            {"role": "model", "parts": [{"text": "Let me look."}, {"functionCall": {"name": "searchProjects"}}]},
        ]
        turns = normalize_history(raw)
        assert turns[1].parts == (TextPart("Let me look."),)

    def test_misplaced_parts_dropped(self):
        raw = [
            {"role": "user", "parts": [{"text": "hi"}, {"functionCall": {"name": "searchProjects"}}]},
            {"role": "model", "parts": [{"functionResponse": {"name": "x", "response": {}}}]},
            _model("hello"),
        ]
        turns = normalize_history(raw)
        assert [t.parts for t in turns] == [(TextPart("hi"),), (TextPart("hello"),)]

    def test_result_only_user_turn_cannot_lead(self):
        raw = [_result("searchProjects"), _user("hi")]
        assert [t.text for t in normalize_history(raw)] == ["hi"]

    def test_paired_history_is_stable(self):
        raw = [_user("q"), _call("searchProjects"), _result("searchProjects"), _model("a"), _call("x")]
        once = normalize_history(raw, limit=5)
        assert [t.role for t in once] == [Role.USER, Role.MODEL, Role.USER, Role.MODEL]
        assert normalize_history(once, limit=5) == once
