from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class LifecycleState(str, Enum):
    AWAITING_QUEUE_ASSIGNMENT = "awaiting_queue_assignment"
    AWAITING_BUILD_TERMINATION = "awaiting_build_termination"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in {LifecycleState.SUCCEEDED, LifecycleState.FAILED, LifecycleState.CANCELLED}


class StatusClass(str, Enum):
    SUCCESS = "success"
    TRANSIENT_FAILURE = "transient_failure"
    FATAL_FAILURE = "fatal_failure"


class OutcomeKind(str, Enum):
    QUEUED = "queued"
    CANCELLED = "cancelled"
    BUILD_ASSIGNED = "build_assigned"
    BUILD_RUNNING = "build_running"
    BUILD_SUCCEEDED = "build_succeeded"
    BUILD_FAILED = "build_failed"


@dataclass(frozen=True, slots=True)
class JobRequest:
    job_name: str
    parameters: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.job_name:
            raise ValueError("job name must be a non-empty string")
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))


@dataclass(frozen=True, slots=True)
class StatusResponse:
    status_code: int
    body: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class PollOutcome:
    kind: OutcomeKind
    reason: str | None = None
    build_url: str | None = None
    display_name: str | None = None

    @classmethod
    def from_queue_document(cls, document: dict[str, Any]) -> PollOutcome:
        if document.get("cancelled"):
            return cls(OutcomeKind.CANCELLED)
        executable = document.get("executable") or {}
        if isinstance(executable, dict) and executable.get("url"):
            return cls(OutcomeKind.BUILD_ASSIGNED, build_url=str(executable["url"]))
        return cls(OutcomeKind.QUEUED, reason=document.get("why"))

    @classmethod
    def from_build_document(cls, document: dict[str, Any]) -> PollOutcome:
        result = document.get("result")
        display_name = document.get("fullDisplayName")
        if result == "SUCCESS":
            return cls(OutcomeKind.BUILD_SUCCEEDED, display_name=display_name)
        if result in {"FAILURE", "ABORTED"}:
            return cls(OutcomeKind.BUILD_FAILED, reason=result, display_name=display_name)
        return cls(OutcomeKind.BUILD_RUNNING, display_name=display_name)


@dataclass(slots=True)
class RunResult:
    job_name: str
    queue_url: str
    state: LifecycleState
    build_url: str | None = None
    success_count: int = 0
    failure_count: int = 0
