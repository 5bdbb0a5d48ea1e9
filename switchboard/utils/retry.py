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
Retry policy for backend calls.

A RetryPolicy is a plain value shared by every backend adapter, so rate
limits and transient network failures are handled the same way whether the
call goes to Gemini over REST or to Claude through the SDK.

Example:
    >>> policy = RetryPolicy(max_attempts=3, base_delay=0.5)
    >>> result = await policy.run(adapter._post, "generateContent", payload)
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Tuple, Type, TypeVar

from switchboard.exceptions import RateLimitError, TransientBackendError
from switchboard.utils.logger import logger

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff with jitter for retryable backend errors.

    Attributes:
        max_attempts: Total attempts including the first one
        base_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay
        jitter: Apply +/-25% random jitter to each delay
        retryable: Exception classes that are retried; everything else
            propagates on the first failure
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    jitter: bool = True
    retryable: Tuple[Type[BaseException], ...] = field(
        default=(RateLimitError, TransientBackendError)
    )

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-based)."""
        delay = self.base_delay * (2 ** attempt)
        if self.jitter:
            delay = delay * (0.75 + random.random() * 0.5)
        return min(delay, self.max_delay)

    async def run(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Await ``fn(*args, **kwargs)``, retrying retryable failures."""
        attempts = max(1, self.max_attempts)
        for attempt in range(attempts):
            try:
                return await fn(*args, **kwargs)
            except self.retryable as e:
                if attempt >= attempts - 1:
                    logger.error(
                        f"[RETRY] Max attempts ({attempts}) exhausted. Last error: {e}"
                    )
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    f"[RETRY] {type(e).__name__} (attempt {attempt + 1}/{attempts}). "
                    f"Waiting {delay:.2f}s before retry..."
                )
                await asyncio.sleep(delay)
        raise RuntimeError("unreachable")  # pragma: no cover


NO_RETRY = RetryPolicy(max_attempts=1)
