# src/jobs/poller.py — v1
"""Bounded polling of long-running external jobs.

Every external job (image-to-3D, retexture, rigging) goes through
`poll_job`: start once, then sleep/poll under a `PollPolicy` until the
provider reports a terminal status or the attempt budget runs out.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from assetforge.providers.models import JobStatus

logger = logging.getLogger(__name__)


class JobError(Exception):
    """Base class for polling outcomes other than success."""

    def __init__(self, message: str, job_id: str | None = None, label: str = "job"):
        self.job_id = job_id
        self.label = label
        super().__init__(message)


class JobFailedError(JobError):
    """The provider reported the job as failed."""


class JobTimeoutError(JobError):
    """The attempt budget was exhausted before a terminal status."""

    def __init__(self, message: str, job_id: str | None, label: str, attempts: int, elapsed_s: float):
        self.attempts = attempts
        self.elapsed_s = elapsed_s
        super().__init__(message, job_id=job_id, label=label)


class JobCancelledError(JobError):
    """Polling was interrupted by the caller's cancellation signal."""


@dataclass(frozen=True)
class PollPolicy:
    """How often and how long to poll one job."""

    interval_s: float = 5.0
    max_attempts: int = 60
    backoff_factor: float = 1.0
    max_interval_s: float | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.interval_s < 0:
            raise ValueError("interval_s must be >= 0")
        if self.backoff_factor < 1.0:
            raise ValueError("backoff_factor must be >= 1.0")

    def delay(self, attempt: int) -> float:
        """Delay before the given 1-based poll attempt."""
        delay = self.interval_s * (self.backoff_factor ** (attempt - 1))
        if self.max_interval_s is not None:
            delay = min(delay, self.max_interval_s)
        return delay

    @property
    def budget_s(self) -> float:
        """Upper bound on total sleep time."""
        return sum(self.delay(a) for a in range(1, self.max_attempts + 1))


@dataclass(frozen=True)
class CompletedJob:
    job_id: str
    status: JobStatus
    attempts: int


ProgressCallback = Callable[[int], None]


async def _wait(delay: float, cancel_event: asyncio.Event | None) -> None:
    """Sleep for `delay`, waking early if the cancellation event fires."""
    if cancel_event is None:
        await asyncio.sleep(delay)
        return
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return


async def poll_job(
    start_fn: Callable[[], Awaitable[str]],
    status_fn: Callable[[str], Awaitable[JobStatus]],
    policy: PollPolicy,
    on_progress: ProgressCallback | None = None,
    cancel_event: asyncio.Event | None = None,
    label: str = "job",
) -> CompletedJob:
    """Start a job and poll it to completion.

    Args:
        start_fn: Submits the job, returns its handle. Called exactly once.
        status_fn: Fetches the current status for a handle.
        policy: Interval, attempt ceiling and optional backoff.
        on_progress: Receives 0-100 progress after each poll.
        cancel_event: When set, polling stops with JobCancelledError.
        label: Human-readable job kind for logs and error messages.

    Returns:
        CompletedJob holding the handle and the SUCCEEDED status payload.

    Raises:
        JobFailedError: Provider reported FAILED or CANCELED.
        JobTimeoutError: No terminal status within policy.max_attempts polls.
        JobCancelledError: cancel_event was set.
    """
    if cancel_event is not None and cancel_event.is_set():
        raise JobCancelledError(f"{label} cancelled before submission", label=label)

    job_id = await start_fn()
    logger.info("Started %s job %s (poll budget %.0fs)", label, job_id, policy.budget_s)
    started = time.monotonic()

    for attempt in range(1, policy.max_attempts + 1):
        await _wait(policy.delay(attempt), cancel_event)
        if cancel_event is not None and cancel_event.is_set():
            raise JobCancelledError(
                f"{label} job {job_id} cancelled after {attempt - 1} polls",
                job_id=job_id, label=label,
            )

        status = await status_fn(job_id)

        if on_progress is not None:
            if status.progress is not None:
                on_progress(int(status.progress))
            else:
                on_progress(attempt * 100 // policy.max_attempts)

        if status.status == "SUCCEEDED":
            logger.info("%s job %s succeeded after %d polls", label, job_id, attempt)
            return CompletedJob(job_id=job_id, status=status, attempts=attempt)
        if status.status in ("FAILED", "CANCELED"):
            message = status.error or f"{label} failed"
            logger.warning("%s job %s failed: %s", label, job_id, message)
            raise JobFailedError(message, job_id=job_id, label=label)

        logger.debug(
            "%s job %s is %s (poll %d/%d)",
            label, job_id, status.status, attempt, policy.max_attempts,
        )

    elapsed = time.monotonic() - started
    raise JobTimeoutError(
        f"{label} job {job_id} timed out after {policy.max_attempts} polls ({elapsed:.1f}s)",
        job_id=job_id, label=label, attempts=policy.max_attempts, elapsed_s=elapsed,
    )
