from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from fundscan.errors import JobFailedError, JobTimeoutError, ScanError
from fundscan.fetching.polling import JobPoller


class _Statuses:
    """Replays a scripted sequence of status documents."""

    def __init__(self, statuses: List[Optional[Dict[str, Any]]]) -> None:
        self.statuses = statuses
        self.calls = 0

    async def __call__(self) -> Optional[Dict[str, Any]]:
        status = self.statuses[min(self.calls, len(self.statuses) - 1)]
        self.calls += 1
        return status


def _poller(max_attempts: int, sleeps: List[float]) -> JobPoller:
    async def record_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return JobPoller(interval=1.5, max_attempts=max_attempts, label="Agent job", sleep_fn=record_sleep)


def test_completes_after_exactly_n_polls() -> None:
    sleeps: List[float] = []
    statuses = _Statuses([{"status": "processing"}] * 3 + [{"status": "completed", "data": {}}])

    result = asyncio.run(_poller(10, sleeps).wait("job-1", statuses))

    assert result["status"] == "completed"
    assert statuses.calls == 4
    assert sleeps == [1.5] * 4


def test_times_out_after_max_attempts() -> None:
    sleeps: List[float] = []
    statuses = _Statuses([{"status": "processing"}])

    with pytest.raises(JobTimeoutError) as excinfo:
        asyncio.run(_poller(5, sleeps).wait("job-2", statuses))

    assert statuses.calls == 5
    assert excinfo.value.attempts == 5
    assert isinstance(excinfo.value, TimeoutError)
    assert isinstance(excinfo.value, ScanError)


def test_failed_state_raises_immediately() -> None:
    statuses = _Statuses([{"status": "processing"}, {"status": "error", "error": "blocked"}])

    with pytest.raises(JobFailedError) as excinfo:
        asyncio.run(_poller(10, []).wait("job-3", statuses))

    assert statuses.calls == 2
    assert excinfo.value.details == {"status": "error", "error": "blocked"}


def test_failed_status_requests_use_up_attempts() -> None:
    statuses = _Statuses([None, None, {"status": "completed"}])

    result = asyncio.run(_poller(3, []).wait("job-4", statuses))

    assert result == {"status": "completed"}
    assert statuses.calls == 3


def test_completed_without_payload_keeps_polling() -> None:
    statuses = _Statuses([{"status": "completed"}, {"status": "completed", "data": [{"markdown": "x"}]}])

    result = asyncio.run(
        _poller(5, []).wait("job-5", statuses, is_ready=lambda d: isinstance(d.get("data"), list))
    )

    assert statuses.calls == 2
    assert result["data"] == [{"markdown": "x"}]


def test_non_object_status_documents_use_up_attempts() -> None:
    statuses = _Statuses([["unexpected"], "processing", {"status": "completed"}])  # type: ignore[list-item]

    result = asyncio.run(_poller(3, []).wait("job-6", statuses))

    assert result == {"status": "completed"}
    assert statuses.calls == 3
