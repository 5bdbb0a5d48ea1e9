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
Request classification, the agent loop and orchestration.

Example Usage:
    ```python
    from switchboard.agents import Orchestrator

    async with Orchestrator.from_config() as orchestrator:
        result = await orchestrator.handle("user-1", "Save this idea to my notion inbox")
        print(result.answer, result.backend)
    ```
"""

from switchboard.agents.classifier import TaskClassifier, classify_heuristic, parse_category
from switchboard.agents.loop import NO_TEXT_FALLBACK, AgentLoop
from switchboard.agents.orchestrator import Orchestrator

__all__ = [
    "AgentLoop",
    "NO_TEXT_FALLBACK",
    "Orchestrator",
    "TaskClassifier",
    "classify_heuristic",
    "parse_category",
]
