"""
Loop outcome -> client response body.
"""

from snxai.responses import FAILURE_MESSAGES, to_response
from snxai.turns import FailureKind, FailureOutcome, TextOutcome, UIActionDirective, UIActionOutcome


class TestToResponse:

    def test_text(self):
        assert to_response(TextOutcome("Hi there")) == {"aiMessage": "Hi there"}

    def test_ui_action(self):
        directive = UIActionDirective(
            modal_id="createProjectForm",
            data={"initialData": {"initialTitle": "Orbit", "tags": ("a", "b")}},
            message="Sure, let's get your new project set up. I'll open the form.",
        )
        body = to_response(UIActionOutcome(directive))
        assert body == {
            "aiMessage": "Sure, let's get your new project set up. I'll open the form.",
            "action": {
                "type": "openModal",
                "modalId": "createProjectForm",
                "data": {"initialData": {"initialTitle": "Orbit", "tags": ["a", "b"]}},
            },
        }
        # plain dicts, serialisable by any JSON encoder
        assert type(body["action"]["data"]) is dict

    def test_every_failure_kind_has_a_message(self):
        for kind in FailureKind:
            body = to_response(FailureOutcome(kind))
            assert body == {"aiMessage": FAILURE_MESSAGES[kind]}
            assert body["aiMessage"]

    def test_failure_messages_are_distinct(self):
        assert FAILURE_MESSAGES[FailureKind.SAFETY] != FAILURE_MESSAGES[FailureKind.TRUNCATED]
        assert len(set(FAILURE_MESSAGES.values())) == len(FailureKind)
