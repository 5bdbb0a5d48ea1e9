# Copyright 2026 Firefly Software Solutions Inc
# SPDX-License-Identifier: Apache-2.0

"""Tests for the task classifier and its deterministic overrides."""

import pytest

from switchboard.agents.classifier import (
    TaskClassifier,
    classify_heuristic,
    has_keywords,
    parse_category,
    READ_NOUNS,
    READ_VERBS,
)
from switchboard.exceptions import BackendError
from switchboard.types import CLAUDE_SONNET, TASK_BACKEND_MAPPING, TaskCategory


class TestParseCategory:
    """Tests for reading a category out of a model reply."""

    @pytest.mark.parametrize(
        "reply,expected",
        [
            ("SIMPLE", TaskCategory.SIMPLE),
            ("  browser\n", TaskCategory.BROWSER),
            ("Category: EXTERNAL_WORKSPACE.", TaskCategory.EXTERNAL_WORKSPACE),
            ("I think RETRIEVAL", TaskCategory.RETRIEVAL),
            ("RAG", TaskCategory.RETRIEVAL),
            ("NOTION", TaskCategory.EXTERNAL_WORKSPACE),
        ],
    )
    def test_recognized(self, reply, expected):
        assert parse_category(reply) == expected

    @pytest.mark.parametrize("reply", ["", None, "no idea", "42"])
    def test_unrecognized(self, reply):
        assert parse_category(reply) is None


class TestKeywordMatching:
    """Whole-word matching used by the overrides."""

    def test_requires_verb_and_noun(self):
        assert has_keywords("find my notes", READ_VERBS, READ_NOUNS)
        assert not has_keywords("find my keys", READ_VERBS, READ_NOUNS)
        assert not has_keywords("my notes", READ_VERBS, READ_NOUNS)

    def test_matches_whole_words_only(self):
        """'showcase' does not contain the verb 'show'."""
        assert not has_keywords("the showcase pages", READ_VERBS, READ_NOUNS)


class TestWorkspaceKeywordOverride:
    """The workspace keyword wins over whatever the model says."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("verdict", ["SIMPLE", "BROWSER", "RETRIEVAL", "COMPLEX"])
    async def test_keyword_overrides_model(self, scripted_adapter, verdict):
        """A query mentioning notion is EXTERNAL_WORKSPACE whatever the verdict."""
        classifier = TaskClassifier(scripted_adapter(verdict=verdict))

        category = await classifier.classify("Put this in my Notion inbox please", False)

        assert category == TaskCategory.EXTERNAL_WORKSPACE

    @pytest.mark.asyncio
    async def test_keyword_overrides_failing_model(self, scripted_adapter):
        """The override still applies when the classifier backend fails."""
        classifier = TaskClassifier(scripted_adapter(verdict=BackendError("quota exceeded")))

        category = await classifier.classify("save to notion: buy milk", False)

        assert category == TaskCategory.EXTERNAL_WORKSPACE

    @pytest.mark.asyncio
    async def test_custom_keywords(self, scripted_adapter):
        classifier = TaskClassifier(scripted_adapter(verdict="SIMPLE"), workspace_keywords=["obsidian"])

        assert await classifier.classify("open obsidian", False) == TaskCategory.EXTERNAL_WORKSPACE
        assert await classifier.classify("open notion", False) == TaskCategory.SIMPLE


class TestClassifierFallback:
    """Behavior when the model is unavailable or unclear."""

    @pytest.mark.asyncio
    async def test_failing_model_defaults_to_simple(self, scripted_adapter):
        classifier = TaskClassifier(scripted_adapter(verdict=BackendError("down")))

        assert await classifier.classify("hello!", False) == TaskCategory.SIMPLE

    @pytest.mark.asyncio
    async def test_unrecognized_verdict_defaults_to_simple(self, scripted_adapter):
        classifier = TaskClassifier(scripted_adapter(verdict="banana"))

        assert await classifier.classify("hello!", False) == TaskCategory.SIMPLE

    @pytest.mark.asyncio
    async def test_prompt_reports_context_presence(self, scripted_adapter):
        adapter = scripted_adapter(verdict="RETRIEVAL")
        classifier = TaskClassifier(adapter)

        await classifier.classify("what did I plan?", True)

        assert "YES" in adapter.prompts[0]
        assert "what did I plan?" in adapter.prompts[0]


class TestEscalations:
    """Read and write escalations."""

    @pytest.mark.asyncio
    async def test_simple_read_with_context_becomes_retrieval(self, scripted_adapter):
        classifier = TaskClassifier(scripted_adapter(verdict="SIMPLE"))

        category = await classifier.classify("find my notes about the launch", True)

        assert category == TaskCategory.RETRIEVAL

    @pytest.mark.asyncio
    async def test_simple_read_without_context_becomes_workspace(self, scripted_adapter):
        classifier = TaskClassifier(scripted_adapter(verdict="SIMPLE"))

        category = await classifier.classify("list my tasks", False)

        assert category == TaskCategory.EXTERNAL_WORKSPACE

    @pytest.mark.asyncio
    async def test_write_on_cheap_backend_becomes_workspace(self, scripted_adapter):
        """A write request routed to a backend without workspace tools is escalated."""
        classifier = TaskClassifier(scripted_adapter(verdict="RETRIEVAL"))

        category = await classifier.classify("Create a note about the quarterly plan", False)

        assert category == TaskCategory.EXTERNAL_WORKSPACE

    @pytest.mark.asyncio
    async def test_write_on_capable_backend_is_kept(self, scripted_adapter):
        classifier = TaskClassifier(scripted_adapter(verdict="COMPLEX"))

        category = await classifier.classify("research vendors and write a note", False)

        assert category == TaskCategory.COMPLEX

    @pytest.mark.asyncio
    async def test_write_escalation_follows_backend_mapping(self, scripted_adapter):
        """When RETRIEVAL is mapped to a capable backend the write stays RETRIEVAL."""
        mapping = dict(TASK_BACKEND_MAPPING)
        mapping[TaskCategory.RETRIEVAL] = CLAUDE_SONNET
        classifier = TaskClassifier(scripted_adapter(verdict="RETRIEVAL"), backend_mapping=mapping)

        category = await classifier.classify("Create a note about the quarterly plan", False)

        assert category == TaskCategory.RETRIEVAL

    @pytest.mark.asyncio
    async def test_browser_write_becomes_complex(self, scripted_adapter):
        """Navigating and saving needs the browser tools as well as the workspace tools."""
        classifier = TaskClassifier(scripted_adapter(verdict="BROWSER"))

        category = await classifier.classify("Go to example.com and save the headline as a note", False)

        assert category == TaskCategory.COMPLEX

    def test_plain_browser_request_is_untouched(self):
        classifier = TaskClassifier()

        category = classifier.apply_overrides("go to example.com", TaskCategory.BROWSER, False)

        assert category == TaskCategory.BROWSER


class TestHeuristicClassification:
    """Keyword classification used without a classifier backend."""

    @pytest.mark.parametrize(
        "query,expected",
        [
            ("hi", TaskCategory.SIMPLE),
            ("Thanks!", TaskCategory.SIMPLE),
            ("go to https://example.com", TaskCategory.BROWSER),
            ("navigate to the docs", TaskCategory.BROWSER),
            ("what did I say about the budget", TaskCategory.RETRIEVAL),
        ],
    )
    def test_heuristic(self, query, expected):
        assert classify_heuristic(query) == expected

    @pytest.mark.asyncio
    async def test_classifier_without_adapter(self):
        classifier = TaskClassifier()

        assert await classifier.classify("visit example.com", False) == TaskCategory.BROWSER
