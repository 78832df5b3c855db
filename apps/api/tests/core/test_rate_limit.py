"""
Unit tests for the in-memory rate limit fallback.
"""

from unittest.mock import AsyncMock, patch

import pytest

from classquiz.core import rate_limit
from classquiz.core.rate_limit import check_rate_limit


@pytest.fixture(autouse=True)
def empty_memory_store():
    rate_limit._memory_store.clear()
    rate_limit._memory_windows.clear()
    yield
    rate_limit._memory_store.clear()
    rate_limit._memory_windows.clear()


@pytest.fixture
def clock():
    """Controllable time.time() for the rate limit module."""
    current = {"now": 1_000_000.0}
    with patch.object(rate_limit.time, "time", side_effect=lambda: current["now"]):
        yield current


@pytest.fixture
def no_redis():
    with patch("classquiz.core.rate_limit.get_redis", new_callable=AsyncMock) as mock_get:
        mock_get.return_value = None
        yield mock_get


class TestMemoryRateLimit:
    @pytest.mark.asyncio
    async def test_limit_applies_within_window(self, clock, no_redis):
        assert await check_rate_limit("k", limit=2, window_seconds=60) is True
        assert await check_rate_limit("k", limit=2, window_seconds=60) is True
        assert await check_rate_limit("k", limit=2, window_seconds=60) is False

    @pytest.mark.asyncio
    async def test_window_slides(self, clock, no_redis):
        await check_rate_limit("k", limit=1, window_seconds=60)
        clock["now"] += 61

        assert await check_rate_limit("k", limit=1, window_seconds=60) is True

    @pytest.mark.asyncio
    async def test_keys_with_empty_windows_are_dropped(self, clock, no_redis):
        for ip in range(50):
            await check_rate_limit(f"rate_limit:10.0.0.{ip}:/auth/login", 5, 60)
        assert len(rate_limit._memory_store) == 50

        clock["now"] += 61
        await check_rate_limit("rate_limit:10.0.1.1:/auth/login", 5, 60)

        assert list(rate_limit._memory_store) == ["rate_limit:10.0.1.1:/auth/login"]
        assert list(rate_limit._memory_windows) == ["rate_limit:10.0.1.1:/auth/login"]

    @pytest.mark.asyncio
    async def test_longer_windows_are_kept(self, clock, no_redis):
        await check_rate_limit("slow", limit=5, window_seconds=3600)
        clock["now"] += 120

        await check_rate_limit("fast", limit=5, window_seconds=60)

        assert "slow" in rate_limit._memory_store
