# Copyright 2026 Firefly Software Solutions Inc
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Task classifier.

A lightweight model names the category, then deterministic overrides
correct the cases the model is known to get wrong:

1. Workspace keyword (e.g. "notion") anywhere in the query forces
   EXTERNAL_WORKSPACE, whatever the model said.
2. A SIMPLE verdict on a search/list request about tasks, notes, ideas,
   documents or pages is escalated to RETRIEVAL when retrieved context is
   present, otherwise to EXTERNAL_WORKSPACE.
3. A create/add/save request about notes, pages, documents or ideas that
   would land on a backend without workspace tools is escalated to
   EXTERNAL_WORKSPACE.

If the model call fails the verdict defaults to SIMPLE and the same
overrides run.
"""

from __future__ import annotations

import re
import time
from typing import Dict, Iterable, Optional, Sequence

from switchboard.agents.prompts import classification_prompt
from switchboard.exceptions import ClassificationError
from switchboard.llm.base import BackendAdapter
from switchboard.types import TASK_BACKEND_MAPPING, BackendConfig, TaskCategory
from switchboard.utils.logger import logger

READ_VERBS = ("search", "find", "list", "show", "look")
READ_NOUNS = (
    "task", "tasks", "note", "notes", "idea", "ideas",
    "document", "documents", "doc", "docs", "page", "pages",
)
WRITE_VERBS = ("create", "add", "save", "write", "store")
WRITE_NOUNS = (
    "note", "notes", "page", "pages", "document", "documents", "idea", "ideas",
)

# Spellings a model may use for a category
CATEGORY_ALIASES = {
    "RAG": TaskCategory.RETRIEVAL,
    "NOTION": TaskCategory.EXTERNAL_WORKSPACE,
    "NOTION_MCP": TaskCategory.EXTERNAL_WORKSPACE,
    "WORKSPACE": TaskCategory.EXTERNAL_WORKSPACE,
}

_GREETING_RE = re.compile(
    r"^(hi|hello|hey|thanks|thank you|ok|okay|bye|goodbye|good (morning|afternoon|evening|night))[\s.!?]*$"
)
_URL_RE = re.compile(r"(https?://|www\.)\S+|\b[\w-]+\.(com|org|net|io|dev|ai)\b")
_BROWSE_VERBS = ("navigate", "browse", "open", "visit", "go to")


def has_word(text: str, words: Iterable[str]) -> bool:
    """True if any of ``words`` occurs in ``text`` as a whole word (case-insensitive)."""
    return any(re.search(rf"\b{re.escape(word)}\b", text, re.IGNORECASE) for word in words)


def has_keywords(query: str, verbs: Iterable[str], nouns: Iterable[str]) -> bool:
    """True when the query has at least one verb AND one noun, both as whole words."""
    return has_word(query, verbs) and has_word(query, nouns)


def parse_category(reply: Optional[str]) -> Optional[TaskCategory]:
    """First recognizable category name in a model reply."""
    for token in re.findall(r"[A-Z_]+", (reply or "").upper()):
        category = TaskCategory.parse(token) or CATEGORY_ALIASES.get(token)
        if category is not None:
            return category
    return None


def classify_heuristic(query: str) -> TaskCategory:
    """Keyword-only classification used when no classifier backend is configured."""
    lowered = query.strip().lower()
    if _GREETING_RE.match(lowered):
        return TaskCategory.SIMPLE
    if _URL_RE.search(lowered) or has_word(lowered, _BROWSE_VERBS):
        return TaskCategory.BROWSER
    return TaskCategory.RETRIEVAL


class TaskClassifier:
    """
    Classify a request into exactly one TaskCategory.

    Args:
        adapter: Backend used for the model verdict. None means the keyword
            heuristic is used instead.
        workspace_keywords: Case-insensitive substrings that force
            EXTERNAL_WORKSPACE
        backend_mapping: Category to backend mapping, used to decide whether a
            write request would land on a backend without workspace tools
    """

    def __init__(
        self,
        adapter: Optional[BackendAdapter] = None,
        workspace_keywords: Sequence[str] = ("notion",),
        backend_mapping: Optional[Dict[TaskCategory, BackendConfig]] = None,
    ) -> None:
        self.adapter = adapter
        self.workspace_keywords = tuple(k.lower() for k in workspace_keywords if k)
        self.backend_mapping = backend_mapping or dict(TASK_BACKEND_MAPPING)

    async def _ask_model(self, query: str, retrieved_context_present: bool) -> TaskCategory:
        try:
            reply = await self.adapter.generate(classification_prompt(query, retrieved_context_present))
        except Exception as e:
            raise ClassificationError(f"Classifier backend failed: {e}") from e

        category = parse_category(reply)
        if category is None:
            logger.warning(f"[CLASSIFIER] Unrecognized verdict {reply!r}, using SIMPLE")
            return TaskCategory.SIMPLE
        return category

    async def classify(self, query: str, retrieved_context_present: bool) -> TaskCategory:
        start = time.time()
        if self.adapter is None:
            category = classify_heuristic(query)
        else:
            try:
                category = await self._ask_model(query, retrieved_context_present)
            except ClassificationError as e:
                logger.error(f"[CLASSIFIER] {e}. Falling back to SIMPLE")
                category = TaskCategory.SIMPLE

        final = self.apply_overrides(query, category, retrieved_context_present)
        duration = (time.time() - start) * 1000
        logger.info(f"[CLASSIFIER] \"{query[:50]}\" -> {final.value} ({duration:.0f}ms)")
        return final

    def apply_overrides(
        self, query: str, category: TaskCategory, retrieved_context_present: bool
    ) -> TaskCategory:
        lowered = query.lower()

        for keyword in self.workspace_keywords:
            if keyword in lowered:
                if category != TaskCategory.EXTERNAL_WORKSPACE:
                    logger.info(f"[CLASSIFIER] Override: query mentions \"{keyword}\" -> EXTERNAL_WORKSPACE")
                return TaskCategory.EXTERNAL_WORKSPACE

        if category == TaskCategory.SIMPLE and has_keywords(query, READ_VERBS, READ_NOUNS):
            escalated = (
                TaskCategory.RETRIEVAL if retrieved_context_present else TaskCategory.EXTERNAL_WORKSPACE
            )
            logger.info(f"[CLASSIFIER] Override: read request -> {escalated.value}")
            return escalated

        backend = self.backend_mapping.get(category, TASK_BACKEND_MAPPING[category])
        if not backend.is_high_capability and has_keywords(query, WRITE_VERBS, WRITE_NOUNS):
            # Browser writes need both the browser and the workspace tools
            escalated = (
                TaskCategory.COMPLEX if category == TaskCategory.BROWSER else TaskCategory.EXTERNAL_WORKSPACE
            )
            logger.info(f"[CLASSIFIER] Override: write request -> {escalated.value}")
            return escalated

        return category
