# Copyright 2026 Firefly Software Solutions Inc
# SPDX-License-Identifier: Apache-2.0

"""Tests for RetryPolicy backoff."""

from unittest.mock import AsyncMock, patch

import pytest

from switchboard.exceptions import AuthenticationError, RateLimitError, TransientBackendError
from switchboard.utils.retry import NO_RETRY, RetryPolicy


class TestDelays:
    def test_exponential_without_jitter(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=60.0, jitter=False)

        assert [policy.delay_for(n) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_capped(self):
        policy = RetryPolicy(base_delay=10.0, max_delay=15.0, jitter=False)

        assert policy.delay_for(3) == 15.0

    def test_jitter_stays_within_quarter(self):
        policy = RetryPolicy(base_delay=4.0, jitter=True)

        for _ in range(50):
            assert 3.0 <= policy.delay_for(0) <= 5.0


@pytest.mark.asyncio
class TestRun:
    """Retryable vs. non-retryable failures."""

    async def test_retries_rate_limits_then_succeeds(self):
        fn = AsyncMock(side_effect=[RateLimitError("429"), TransientBackendError("503"), "ok"])
        policy = RetryPolicy(max_attempts=3, base_delay=0.5, jitter=False)

        with patch("asyncio.sleep", new_callable=AsyncMock) as sleep:
            assert await policy.run(fn, "a", key="b") == "ok"

        assert fn.await_count == 3
        fn.assert_awaited_with("a", key="b")
        assert [call.args[0] for call in sleep.await_args_list] == [0.5, 1.0]

    async def test_gives_up_after_max_attempts(self):
        fn = AsyncMock(side_effect=RateLimitError("429"))

        with patch("asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(RateLimitError):
                await RetryPolicy(max_attempts=2, jitter=False).run(fn)

        assert fn.await_count == 2

    async def test_non_retryable_fails_immediately(self):
        fn = AsyncMock(side_effect=AuthenticationError("401"))

        with pytest.raises(AuthenticationError):
            await RetryPolicy(max_attempts=5).run(fn)

        assert fn.await_count == 1

    async def test_no_retry_policy(self):
        fn = AsyncMock(side_effect=RateLimitError("429"))

        with pytest.raises(RateLimitError):
            await NO_RETRY.run(fn)

        assert fn.await_count == 1
