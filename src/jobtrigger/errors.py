"""Failure modes of triggering a job and following it to completion.

Everything the run can fail with derives from :class:`JobTriggerError`, so the
command-line handler needs a single ``except`` clause. Only
:class:`TransientUpstreamFailure` is ever retried, and only inside the poll
loop.
"""

from __future__ import annotations

__all__ = [
    "JobTriggerError",
    "TriggerFailure",
    "TransportError",
    "TransientUpstreamFailure",
    "FailureThresholdExceeded",
    "UnknownUpstreamStatus",
    "JobCancelled",
    "JobExecutionFailed",
    "JobTimeout",
    "JobWaitFailed",
    "OutputError",
]


class JobTriggerError(RuntimeError):
    """Base exception for trigger and wait failures."""


class TriggerFailure(JobTriggerError):
    """Raised when the trigger call did not yield a queue reference."""


class TransportError(JobTriggerError):
    """Raised when no HTTP response was received at all."""


class OutputError(JobTriggerError):
    """Raised when a step output cannot be written for the runner."""


class TransientUpstreamFailure(JobTriggerError):
    """Bad gateway from the server while still under the failure threshold."""

    def __init__(self, status_code: int, failure_count: int) -> None:
        super().__init__(f"Wrong http response from host - {status_code}")
        self.status_code = status_code
        self.failure_count = failure_count


class FailureThresholdExceeded(JobTriggerError):
    def __init__(self, failure_count: int) -> None:
        super().__init__(f"Failure threshold reached after {failure_count} bad gateway responses")
        self.failure_count = failure_count


class UnknownUpstreamStatus(JobTriggerError):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"Unknown API error code received: {status_code}")
        self.status_code = status_code


class JobCancelled(JobTriggerError):
    def __init__(self, job_name: str) -> None:
        super().__init__(f"Job '{job_name}' was cancelled.")
        self.job_name = job_name


class JobExecutionFailed(JobTriggerError):
    def __init__(self, display_name: str, build_url: str, result: str) -> None:
        super().__init__(f"Job '{display_name}' - {build_url} failed ({result}).")
        self.display_name = display_name
        self.build_url = build_url
        self.result = result


class JobTimeout(JobTriggerError):
    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"Job Timeout: no terminal state within {timeout_seconds:g}s")
        self.timeout_seconds = timeout_seconds


class JobWaitFailed(JobTriggerError):
    """Fatal error raised while waiting, tagged with the job it concerns."""

    def __init__(self, job_name: str, cause: BaseException) -> None:
        super().__init__(f"Job '{job_name}' failed: {cause}")
        self.job_name = job_name
        self.cause = cause
