"""
UI-action interception: tool call -> modal directive.
"""

import pytest

from snxai.errors import InvalidDirectiveError
from snxai.turns import ToolCallRequest
from snxai.ui_actions import humanize_modal_id, intercept


class TestIntercept:

    def test_open_modal_with_props(self):
        d = intercept(ToolCallRequest("openModalOnFrontend", {"modalId": "editSummary", "modalProps": {"x": 1}}))
        assert d.modal_id == "editSummary"
        assert dict(d.data) == {"x": 1}
        assert d.message == "Okay, opening the edit summary..."

    def test_open_modal_without_props_gets_empty_data(self):
        d = intercept(ToolCallRequest("openModalOnFrontend", {"modalId": "confirmDelete"}))
        assert dict(d.data) == {}

    @pytest.mark.parametrize("args", [{}, {"modalId": ""}, {"modalId": "   "}, {"modalId": 7}])
    def test_open_modal_requires_modal_id(self, args):
        with pytest.raises(InvalidDirectiveError):
            intercept(ToolCallRequest("openModalOnFrontend", args))

    def test_create_project_prefills_initial_data(self):
        d = intercept(ToolCallRequest("initiateCreateProject", {"initialTitle": "AI Study Buddy"}))
        assert d.modal_id == "createProjectForm"
        assert dict(d.data) == {"initialData": {"initialTitle": "AI Study Buddy"}}
        assert "project" in d.message

    def test_community_post_prefills_initial_data(self):
        d = intercept(ToolCallRequest("createCommunityPost", {"textContent": "Hackathon Friday", "isEvent": True}))
        assert d.modal_id == "createCommunityPostForm"
        assert dict(d.data)["initialData"] == {"textContent": "Hackathon Friday", "isEvent": True}

    def test_tool_without_rule_is_invalid(self):
        with pytest.raises(InvalidDirectiveError):
            intercept(ToolCallRequest("searchProjects", {}))

    def test_humanize(self):
        assert humanize_modal_id("createCommunityPostForm") == "create community post form"
