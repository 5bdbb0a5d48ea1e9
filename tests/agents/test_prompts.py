# Copyright 2026 Firefly Software Solutions Inc
# SPDX-License-Identifier: Apache-2.0

"""Tests for prompt rendering."""

from switchboard.agents.prompts import classification_prompt, system_prompt, user_prompt
from switchboard.types import ExecutionContext, TaskCategory


class TestSystemPrompt:
    """The system prompt only describes tools that are offered."""

    def test_simple_has_no_tool_sections(self):
        prompt = system_prompt(TaskCategory.SIMPLE)

        assert "answer_user" in prompt
        assert "BROWSER:" not in prompt
        assert "WORKSPACE:" not in prompt

    def test_browser_describes_selector_contract(self):
        prompt = system_prompt(TaskCategory.BROWSER)

        assert "BROWSER:" in prompt
        assert "LATEST action surface" in prompt
        assert "WORKSPACE:" not in prompt

    def test_workspace_lists_external_tools(self):
        prompt = system_prompt(TaskCategory.EXTERNAL_WORKSPACE, ("search_pages", "create_page"))

        assert "add_workspace_item" in prompt
        assert "search_pages, create_page" in prompt

    def test_complex_has_both_sections(self):
        prompt = system_prompt(TaskCategory.COMPLEX)

        assert "BROWSER:" in prompt
        assert "WORKSPACE:" in prompt


class TestUserPrompt:
    def test_with_context(self):
        context = ExecutionContext(user_id="u", query="what do I need?", retrieved_context="Buy milk")

        prompt = user_prompt(context)

        assert "Buy milk" in prompt
        assert prompt.endswith("what do I need?")

    def test_blank_context_is_absent(self):
        context = ExecutionContext(user_id="u", query="hi", retrieved_context="   ")

        assert "No relevant information" in user_prompt(context)


def test_classification_prompt_reports_missing_context():
    prompt = classification_prompt("go to example.com", False)

    assert "NO - nothing relevant was found" in prompt
    assert '"go to example.com"' in prompt
