"""
Unit tests for quiz background jobs.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from classquiz.modules.quizzes.jobs import (
    JOB_ID_UNPUBLISH_EXPIRED,
    register_quiz_jobs,
    unpublish_expired_quizzes,
)

JOBS = "classquiz.modules.quizzes.jobs"


class TestUnpublishExpiredQuizzes:
    @pytest.mark.asyncio
    async def test_sweeps_with_its_own_session(self, mock_db):
        session_cm = MagicMock()
        session_cm.__aenter__ = AsyncMock(return_value=mock_db)
        session_cm.__aexit__ = AsyncMock(return_value=False)

        with (
            patch(f"{JOBS}.async_session_maker", return_value=session_cm),
            patch(f"{JOBS}.lifecycle.sweep_expired", new_callable=AsyncMock) as mock_sweep,
        ):
            mock_sweep.return_value = 3

            result = await unpublish_expired_quizzes()

        assert result["unpublished"] == 3
        assert "executed_at" in result
        assert mock_sweep.call_args.args[0] is mock_db
        session_cm.__aexit__.assert_awaited_once()


class TestRegisterQuizJobs:
    def test_registers_interval_sweep(self):
        with patch(f"{JOBS}.register_job") as mock_register:
            register_quiz_jobs()

        kwargs = mock_register.call_args.kwargs
        assert kwargs["job_id"] == JOB_ID_UNPUBLISH_EXPIRED
        assert kwargs["func"] is unpublish_expired_quizzes
        assert kwargs["trigger"].interval == timedelta(minutes=15)
