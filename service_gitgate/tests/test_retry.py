"""
Unit tests for the retry decorator.
"""

from unittest.mock import AsyncMock, patch

import pytest

from shared.retry import RetryConfig, RetryError, _calculate_delay, retry_on_exception


class TestRetryOnException:
    """Test cases for retry_on_exception."""

    @pytest.mark.asyncio
    async def test_returns_after_transient_exceptions(self):
        calls = []

        @retry_on_exception((ConnectionError,), config=RetryConfig(max_attempts=3))
        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionError("reset")
            return "ok"

        with patch("shared.retry.asyncio.sleep", new_callable=AsyncMock):
            assert await flaky() == "ok"
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_exhausted_attempts_raise_retry_error(self):
        @retry_on_exception((ConnectionError,), config=RetryConfig(max_attempts=2))
        async def down():
            raise ConnectionError("refused")

        with patch("shared.retry.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(RetryError) as exc_info:
                await down()

        assert exc_info.value.attempts == 2
        assert isinstance(exc_info.value.last_exception, ConnectionError)

    @pytest.mark.asyncio
    async def test_other_exceptions_are_not_retried(self):
        calls = []

        @retry_on_exception((ConnectionError,))
        async def broken():
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            await broken()
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_transient_result_returned_when_attempts_run_out(self):
        calls = []

        @retry_on_exception((ConnectionError,), config=RetryConfig(max_attempts=3),
                            retry_if=lambda status: status == 503)
        async def unavailable():
            calls.append(1)
            return 503

        with patch("shared.retry.asyncio.sleep", new_callable=AsyncMock):
            assert await unavailable() == 503
        assert len(calls) == 3

    def test_delay_is_capped(self):
        config = RetryConfig(base_delay=1.0, max_delay=3.0, jitter=False)
        assert [_calculate_delay(n, config) for n in (1, 2, 3, 4)] == [1.0, 2.0, 3.0, 3.0]
