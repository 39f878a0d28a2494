"""Fixed-interval polling of asynchronous provider jobs."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

from loguru import logger

from fundscan.errors import JobFailedError, JobTimeoutError

SleepFn = Callable[[float], Awaitable[None]]
StatusFn = Callable[[], Awaitable[Optional[Dict[str, Any]]]]

FAILED_STATES = frozenset({"failed", "error"})


class JobPoller:
    """Polls a job status endpoint until a terminal state or the attempt budget runs out.

    Every attempt sleeps ``interval`` seconds first, then asks ``fetch_status``
    for the current status document. ``fetch_status`` returns ``None`` when the
    status request itself failed (non-2xx); that, or any reply that is not a
    JSON object, still uses up an attempt.
    There is no backoff and no jitter.
    """

    def __init__(
        self,
        *,
        interval: float,
        max_attempts: int,
        label: str = "job",
        sleep_fn: SleepFn | None = None,
    ) -> None:
        self.interval = interval
        self.max_attempts = max(1, max_attempts)
        self.label = label
        self._sleep = sleep_fn or asyncio.sleep

    async def wait(
        self,
        job_id: str,
        fetch_status: StatusFn,
        *,
        is_ready: Callable[[Dict[str, Any]], bool] | None = None,
    ) -> Dict[str, Any]:
        """Return the status document of a ``completed`` job.

        Args:
            job_id: Provider job identifier (for logs and errors).
            fetch_status: Coroutine factory returning the status document.
            is_ready: Extra condition a completed document must meet
                (e.g. carrying its payload); otherwise polling continues.

        Raises:
            JobFailedError: The job reported ``failed`` or ``error``.
            JobTimeoutError: No terminal state within ``max_attempts``.
        """
        for attempt in range(1, self.max_attempts + 1):
            await self._sleep(self.interval)
            logger.debug(f"Poll attempt {attempt}/{self.max_attempts}", job=self.label, id=job_id)

            status_data = await fetch_status()
            if not isinstance(status_data, dict):
                continue

            status = str(status_data.get("status", "")).lower()
            if status == "completed" and (is_ready is None or is_ready(status_data)):
                logger.info(
                    f"{self.label} completed", id=job_id, attempts=attempt
                )
                return status_data
            if status in FAILED_STATES:
                logger.error(f"{self.label} failed", id=job_id, status=status)
                raise JobFailedError(
                    f"{self.label} {job_id} {status}", job_id=job_id, details=status_data
                )

        logger.error(f"{self.label} timed out", id=job_id, attempts=self.max_attempts)
        raise JobTimeoutError(
            f"{self.label} {job_id} timed out after {self.max_attempts} attempts "
            f"({self.interval * self.max_attempts:.0f}s)",
            job_id=job_id,
            attempts=self.max_attempts,
        )
