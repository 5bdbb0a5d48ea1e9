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
Prompt templates for classification and the agent loop.

Templates are Jinja2 strings rendered with StrictUndefined so a missing
variable fails loudly instead of producing a silently broken prompt.
"""

from __future__ import annotations

from typing import Any

from jinja2 import Environment, StrictUndefined

from switchboard.tools.registry import ANSWER_ARGUMENT, ANSWER_TOOL, WORKSPACE_TOOL
from switchboard.types import ExecutionContext, TaskCategory

_env = Environment(undefined=StrictUndefined, trim_blocks=True, lstrip_blocks=True)


CLASSIFICATION_TEMPLATE = """You are an intent classifier. Classify the user's request into exactly ONE category.

CATEGORIES:

1. SIMPLE: greetings, small talk, general questions that need no tools or personal data.
   Examples: "Hi", "Thanks", "What can you do?"

2. RETRIEVAL: questions about the user's own information already in memory.
   Examples: "Anything important in my notes?", "Summarize my tasks"
   If retrieved context is available it is probably RETRIEVAL.

3. BROWSER: navigating the web or interacting with a web page.
   Examples: "Go to example.com", "Open the pricing page of ..."

4. EXTERNAL_WORKSPACE: reading or writing the user's external workspace (projects, notes, pages, databases).
   Examples: "Add a task to project X", "Save this idea in my knowledge base"

5. COMPLEX: requests that clearly need two or more DIFFERENT tools or deep reasoning.
   Example: "Look this up on the web and add it to my workspace"

RULES:
- Reading information the user already stored -> RETRIEVAL
- Creating or changing workspace content -> EXTERNAL_WORKSPACE
- A URL or "go to"/"navigate" -> BROWSER
- Use COMPLEX only when two or more different tools are clearly needed
- Use SIMPLE only for casual conversation that needs no actions or data

RETRIEVED CONTEXT AVAILABLE:
{{ "YES - relevant information was found in memory" if context_present else "NO - nothing relevant was found" }}

USER REQUEST:
"{{ query }}"

Answer with ONE word: SIMPLE, RETRIEVAL, BROWSER, EXTERNAL_WORKSPACE or COMPLEX"""


SYSTEM_TEMPLATE = """You are a personal assistant that helps the user with their tasks, notes and personal data.
The retrieved context you receive is real information the user stored and authorized you to use.
Never invent information that is not in the retrieved context or the tool results.

You MUST act through tools. When the request is handled, call '{{ answer_tool }}' with the complete
answer in the '{{ answer_argument }}' argument. Do not claim an action was done unless a tool call did it.
{% if workspace %}

WORKSPACE:
- Use '{{ workspace_tool }}' to add a simple task, note or idea to the user's inbox.
{% if external_tools %}
- The user's workspace tools are also available ({{ external_tools }}). When the user explicitly asks
  to search or change their workspace, call those tools first; retrieved context may be stale.
{% endif %}
{% endif %}
{% if browser %}

BROWSER:
- Every browser tool returns an action surface listing the elements you may act on, one per line:
    INPUT: [placeholder="Search"] (Search)
    BUTTON: #login (Login)
    LINK: text="Pricing" (/pricing)
- The value after the colon is the SELECTOR. The value in parentheses is only a label.
- You may ONLY use selectors that appear verbatim in the LATEST action surface.
- Never invent selectors and never pass a label as a selector.
- If the element you need is not in the surface, explain that with '{{ answer_tool }}'.
{% endif %}"""


USER_TEMPLATE = """RETRIEVED CONTEXT:
{% if context_present %}
The user has the following stored information that is RELEVANT to the request:

{{ retrieved_context }}

Use this information to answer.
{% else %}
No relevant information was found in the user's memory.
{% endif %}

USER REQUEST:
{{ query }}"""


def render(template: str, **variables: Any) -> str:
    return _env.from_string(template).render(**variables).strip()


def classification_prompt(query: str, context_present: bool) -> str:
    return render(CLASSIFICATION_TEMPLATE, query=query, context_present=context_present)


def system_prompt(category: TaskCategory, external_tool_names: tuple = ()) -> str:
    """System prompt for the agent loop, tailored to the tools offered for ``category``."""
    return render(
        SYSTEM_TEMPLATE,
        answer_tool=ANSWER_TOOL,
        answer_argument=ANSWER_ARGUMENT,
        workspace_tool=WORKSPACE_TOOL,
        workspace=category in (TaskCategory.EXTERNAL_WORKSPACE, TaskCategory.COMPLEX),
        browser=category in (TaskCategory.BROWSER, TaskCategory.COMPLEX),
        external_tools=", ".join(external_tool_names),
    )


def user_prompt(context: ExecutionContext) -> str:
    return render(
        USER_TEMPLATE,
        context_present=context.has_retrieved_context,
        retrieved_context=context.retrieved_context,
        query=context.query,
    )
