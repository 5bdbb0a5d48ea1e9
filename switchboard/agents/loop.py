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
Provider-agnostic agent loop.

The loop only talks to a BackendAdapter and a ToolExecutor::

    seed conversation -> send -> parse
        no tool calls            -> done (reply text)
        answer tool among calls  -> done (its answer argument)
        otherwise                -> execute every call, append results, send again

Each ``send`` is one step. The loop never performs more than ``max_steps``
backend calls; when the budget runs out it returns the last free text the
backend produced, or a fixed notice if there was none.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from switchboard.llm.base import BackendAdapter
from switchboard.tools.executor import ToolExecutor
from switchboard.tools.registry import ANSWER_ARGUMENT, ANSWER_TOOL
from switchboard.types import (
    AgentRunResult,
    ExecutionContext,
    Termination,
    ToolInvocation,
    ToolResult,
    ToolSpec,
)
from switchboard.agents.prompts import user_prompt
from switchboard.utils.logger import logger

DEFAULT_MAX_STEPS = 5
NO_TEXT_FALLBACK = "Action completed, but no final text was provided."


class AgentLoop:
    """
    Drive one backend through tool calls until it answers.

    Attributes:
        adapter: Backend adapter for the whole run
        executor: Tool dispatch table
        max_steps: Maximum number of backend calls
        answer_tool: Name of the terminating tool

    Example:
        >>> loop = AgentLoop(adapter, executor, max_steps=5)
        >>> result = await loop.run(context, tools, system_prompt)
        >>> print(result.text, result.steps)
    """

    def __init__(
        self,
        adapter: BackendAdapter,
        executor: ToolExecutor,
        max_steps: int = DEFAULT_MAX_STEPS,
        answer_tool: str = ANSWER_TOOL,
        answer_argument: str = ANSWER_ARGUMENT,
    ) -> None:
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        self.adapter = adapter
        self.executor = executor
        self.max_steps = max_steps
        self.answer_tool = answer_tool
        self.answer_argument = answer_argument

    def _find_answer(self, invocations: Sequence[ToolInvocation]) -> Optional[ToolInvocation]:
        for invocation in invocations:
            if invocation.name == self.answer_tool:
                return invocation
        return None

    async def run(
        self,
        context: ExecutionContext,
        tools: Sequence[ToolSpec],
        system_prompt: Optional[str] = None,
    ) -> AgentRunResult:
        """
        Run the loop for ``context`` with the given toolset.

        Raises:
            BackendError: If a backend call fails (after the adapter's retries)
        """
        conversation = self.adapter.render_history(context.history, user_prompt(context))
        rendered_tools = self.adapter.render_tools(tools)
        last_text = ""

        for step in range(1, self.max_steps + 1):
            logger.info(f"[LOOP] Step {step}/{self.max_steps} on {self.adapter.identifier}")
            raw = await self.adapter.send(conversation, rendered_tools, system_prompt)
            reply = self.adapter.parse_response(raw)
            if reply.text:
                last_text = reply.text

            answer = self._find_answer(reply.invocations)
            if answer is not None:
                text = str(answer.arguments.get(self.answer_argument) or "").strip()
                logger.info(f"[LOOP] Answered via {self.answer_tool} after {step} step(s)")
                return AgentRunResult(
                    text=text or last_text or NO_TEXT_FALLBACK,
                    steps=step,
                    terminated_by=Termination.ANSWER_TOOL,
                )

            if not reply.invocations:
                logger.info(f"[LOOP] Answered with text after {step} step(s)")
                return AgentRunResult(
                    text=last_text or NO_TEXT_FALLBACK,
                    steps=step,
                    terminated_by=Termination.TEXT,
                )

            results: List[ToolResult] = []
            for invocation in reply.invocations:
                logger.info(f"[LOOP] Step {step}: calling {invocation.name}")
                results.append(
                    await self.executor.execute(invocation.name, invocation.arguments, context)
                )
            conversation.extend(self.adapter.render_tool_results(reply, results))

        logger.warning(f"[LOOP] Step budget ({self.max_steps}) exhausted without an answer")
        return AgentRunResult(
            text=last_text or NO_TEXT_FALLBACK,
            steps=self.max_steps,
            terminated_by=Termination.STEP_BUDGET,
        )
