"""
Tests for the shared retry policy.
"""

import httpx
import pytest

from gapfinder.collector import FetchError, RetryPolicy, default_retryable


class Flaky:
    """Async callable failing with the given errors, then returning "ok"."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


class TestDefaultRetryable:
    """Test which errors are retried."""

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_rate_limit_and_server_errors(self, status):
        assert default_retryable(FetchError("x", status_code=status))

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 422])
    def test_client_errors(self, status):
        assert not default_retryable(FetchError("x", status_code=status))

    def test_transport_errors(self):
        assert default_retryable(httpx.ConnectError("refused"))
        assert default_retryable(httpx.ReadTimeout("slow"))

    def test_unrelated_errors(self):
        assert not default_retryable(ValueError("bug"))


class TestRetryPolicy:
    """Test retry execution and backoff."""

    def test_delay_schedule_is_capped(self):
        policy = RetryPolicy(initial_delay=1.0, max_delay=5.0, exponential_base=2.0)
        assert [policy.delay_for(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    @pytest.mark.asyncio
    async def test_retries_server_errors_then_succeeds(self, recording_sleep):
        policy = RetryPolicy(max_attempts=4, initial_delay=1.0, jitter=0, sleep=recording_sleep)
        func = Flaky(FetchError("boom", status_code=503), FetchError("slow down", status_code=429))

        assert await policy.call(func) == "ok"
        assert func.calls == 3
        assert recording_sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_does_not_retry_client_errors(self, recording_sleep):
        policy = RetryPolicy(max_attempts=4, sleep=recording_sleep)
        func = Flaky(FetchError("bad request", status_code=400))

        with pytest.raises(FetchError) as exc_info:
            await policy.call(func)

        assert exc_info.value.status_code == 400
        assert func.calls == 1
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, recording_sleep):
        policy = RetryPolicy(max_attempts=3, jitter=0, sleep=recording_sleep)
        func = Flaky(*[FetchError("down", status_code=500) for _ in range(5)])

        with pytest.raises(FetchError):
            await policy.call(func)

        assert func.calls == 3
        assert len(recording_sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_on_retry_callback(self, recording_sleep):
        seen = []
        policy = RetryPolicy(max_attempts=2, jitter=0, sleep=recording_sleep)

        await policy.call(Flaky(httpx.ConnectError("refused")), on_retry=lambda n, e: seen.append(n))

        assert seen == [1]

    @pytest.mark.asyncio
    async def test_jitter_stays_within_bound(self, recording_sleep):
        policy = RetryPolicy(max_attempts=2, initial_delay=2.0, jitter=0.25, sleep=recording_sleep)

        await policy.call(Flaky(FetchError("x", status_code=502)))

        assert 2.0 <= recording_sleep.delays[0] <= 2.5

    def test_from_settings(self):
        from gapfinder.utils.config import Settings

        settings = Settings(_env_file=None, RETRY_MAX_ATTEMPTS=6, RETRY_INITIAL_DELAY=0.5, RETRY_MAX_DELAY=3.0)
        policy = RetryPolicy.from_settings(settings)

        assert (policy.max_attempts, policy.initial_delay, policy.max_delay) == (6, 0.5, 3.0)
