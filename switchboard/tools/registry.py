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
Tool schema registry.

Built-in tools are declared once as canonical ToolSpec values and grouped,
so each task category can be offered exactly the tools it needs:

- SIMPLE / RETRIEVAL: answer tool only
- BROWSER: browser tools + answer tool
- EXTERNAL_WORKSPACE: answer tool + workspace writer + the user's MCP tools
- COMPLEX: every built-in + the user's MCP tools
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from switchboard.types import TaskCategory, ToolSpec

ANSWER_TOOL = "answer_user"
ANSWER_ARGUMENT = "answer"
WORKSPACE_TOOL = "add_workspace_item"
BROWSER_PREFIX = "browser_"


class ToolGroup(str, Enum):
    ANSWER = "answer"
    WORKSPACE = "workspace"
    BROWSER = "browser"


ANSWER_USER = ToolSpec(
    name=ANSWER_TOOL,
    description=(
        "Deliver the final answer to the user. Call this exactly once when the "
        "request is fully handled; the conversation ends after this call."
    ),
    parameters={
        "type": "object",
        "properties": {
            ANSWER_ARGUMENT: {
                "type": "string",
                "description": "The complete answer shown to the user",
            },
        },
        "required": [ANSWER_ARGUMENT],
    },
)

ADD_WORKSPACE_ITEM = ToolSpec(
    name=WORKSPACE_TOOL,
    description="Add a task, note or idea to the user's workspace inbox.",
    parameters={
        "type": "object",
        "properties": {
            "text": {"type": "string", "description": "Content of the item to add"},
        },
        "required": ["text"],
    },
)

BROWSER_NAVIGATE = ToolSpec(
    name=f"{BROWSER_PREFIX}navigate",
    description=(
        "Open a URL in the user's browser session. Returns the page's action "
        "surface: the inputs, buttons, links and headings you may interact with."
    ),
    parameters={
        "type": "object",
        "properties": {
            "url": {"type": "string", "description": "Absolute URL to open"},
        },
        "required": ["url"],
    },
)

BROWSER_TYPE_TEXT = ToolSpec(
    name=f"{BROWSER_PREFIX}type_text",
    description=(
        "Type text into an input. The selector must be copied verbatim from the "
        "latest action surface."
    ),
    parameters={
        "type": "object",
        "properties": {
            "selector": {"type": "string", "description": "Selector from the action surface"},
            "text": {"type": "string", "description": "Text to type"},
        },
        "required": ["selector", "text"],
    },
)

BROWSER_CLICK_ELEMENT = ToolSpec(
    name=f"{BROWSER_PREFIX}click_element",
    description=(
        "Click a button or link. The selector must be copied verbatim from the "
        "latest action surface."
    ),
    parameters={
        "type": "object",
        "properties": {
            "selector": {"type": "string", "description": "Selector from the action surface"},
            "description": {"type": "string", "description": "What the element is, for logging"},
        },
        "required": ["selector"],
    },
)

BROWSER_GET_SURFACE = ToolSpec(
    name=f"{BROWSER_PREFIX}get_surface",
    description="Return the current page's action surface without changing the page.",
    parameters={"type": "object", "properties": {}},
)


class ToolRegistry:
    """
    Registry of built-in tool specs.

    Example:
        >>> registry = ToolRegistry.default()
        >>> [t.name for t in registry.toolset_for(TaskCategory.SIMPLE)]
        ['answer_user']
    """

    def __init__(self) -> None:
        self._tools: Dict[str, ToolSpec] = {}
        self._groups: Dict[ToolGroup, List[str]] = {}
        self._lock = threading.RLock()

    @classmethod
    def default(cls) -> ToolRegistry:
        registry = cls()
        registry.register(ANSWER_USER, ToolGroup.ANSWER)
        registry.register(ADD_WORKSPACE_ITEM, ToolGroup.WORKSPACE)
        for spec in (BROWSER_NAVIGATE, BROWSER_TYPE_TEXT, BROWSER_CLICK_ELEMENT, BROWSER_GET_SURFACE):
            registry.register(spec, ToolGroup.BROWSER)
        return registry

    def register(self, spec: ToolSpec, group: ToolGroup) -> None:
        """
        Register a tool spec under ``group``.

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        with self._lock:
            if spec.name in self._tools:
                raise ValueError(f"Tool '{spec.name}' is already registered")
            self._tools[spec.name] = spec
            self._groups.setdefault(group, []).append(spec.name)

    def get(self, name: str) -> Optional[ToolSpec]:
        return self._tools.get(name)

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def list_tools(self) -> List[ToolSpec]:
        with self._lock:
            return list(self._tools.values())

    def group(self, group: ToolGroup) -> List[ToolSpec]:
        with self._lock:
            return [self._tools[name] for name in self._groups.get(group, [])]

    def toolset_for(
        self,
        category: TaskCategory,
        external: Sequence[ToolSpec] = (),
    ) -> List[ToolSpec]:
        """
        Tools offered to the backend for ``category``.

        ``external`` (MCP tools) is only offered for EXTERNAL_WORKSPACE and
        COMPLEX. An external tool whose name shadows a built-in is dropped.
        """
        if category in (TaskCategory.SIMPLE, TaskCategory.RETRIEVAL):
            groups = [ToolGroup.ANSWER]
        elif category == TaskCategory.BROWSER:
            groups = [ToolGroup.BROWSER, ToolGroup.ANSWER]
        elif category == TaskCategory.EXTERNAL_WORKSPACE:
            groups = [ToolGroup.ANSWER, ToolGroup.WORKSPACE]
        else:
            groups = [ToolGroup.ANSWER, ToolGroup.WORKSPACE, ToolGroup.BROWSER]

        tools: List[ToolSpec] = []
        for group in groups:
            tools.extend(self.group(group))

        if category in (TaskCategory.EXTERNAL_WORKSPACE, TaskCategory.COMPLEX):
            tools.extend(_dedupe(external, taken={t.name for t in tools}))
        return tools


def _dedupe(specs: Iterable[ToolSpec], taken: set) -> List[ToolSpec]:
    unique = []
    for spec in specs:
        if spec.name in taken:
            continue
        taken.add(spec.name)
        unique.append(spec)
    return unique
