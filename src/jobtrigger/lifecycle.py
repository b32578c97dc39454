from __future__ import annotations

import logging
from typing import Any, Protocol

from .app_logging import LOGGER_NAME, log_with_fields
from .classifier import StatusClassifier
from .config import PollConfig
from .deadline import Deadline
from .errors import (
    JobCancelled,
    JobExecutionFailed,
    JobTimeout,
    JobTriggerError,
    JobWaitFailed,
    TransientUpstreamFailure,
)
from .models import LifecycleState, OutcomeKind, PollOutcome, RunResult, StatusResponse

BUILD_URL_OUTPUT = "jenkinsBuildUrl"


class StatusTransport(Protocol):
    def fetch_status(self, status_url: str, deadline: Deadline | None = None) -> StatusResponse: ...


class OutputTarget(Protocol):
    def set_output(self, name: str, value: str) -> None: ...


class JobLifecycle:
    """Follow one queued job until its build finishes.

    Queue polling stops once the queue item names an executable; from then on
    only the build is polled. A build counts as successful after
    ``success_threshold`` SUCCESS readings. Bad gateway responses are retried
    on the poll interval until the classifier escalates them. Every sleep and
    request goes through ``deadline`` so a fired deadline ends the run with
    :class:`JobTimeout` whatever the next poll would have said.
    """

    def __init__(
        self,
        job_name: str,
        transport: StatusTransport,
        deadline: Deadline,
        *,
        sink: OutputTarget | None = None,
        poll: PollConfig | None = None,
        classifier: StatusClassifier | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.job_name = job_name
        self.transport = transport
        self.deadline = deadline
        self.sink = sink
        self.poll = poll or PollConfig()
        self.classifier = classifier or StatusClassifier(self.poll.failure_threshold)
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.state = LifecycleState.AWAITING_QUEUE_ASSIGNMENT
        self.build_url: str | None = None
        self.success_count = 0

    def run(self, queue_url: str) -> RunResult:
        log_with_fields(self.logger, logging.INFO, "job_waiting", job_name=self.job_name, queue_url=queue_url)
        try:
            while not self.state.terminal:
                self.step(queue_url)
        except JobTimeout:
            self.state = LifecycleState.FAILED
            raise
        except JobTriggerError as exc:
            if not self.state.terminal:
                self.state = LifecycleState.FAILED
            if self.deadline.expired:
                raise JobTimeout(self.deadline.timeout_seconds) from exc
            log_with_fields(self.logger, logging.ERROR, "job_failed", job_name=self.job_name, error=str(exc))
            raise JobWaitFailed(self.job_name, exc) from exc
        return self.result(queue_url)

    def result(self, queue_url: str) -> RunResult:
        return RunResult(
            job_name=self.job_name,
            queue_url=queue_url,
            state=self.state,
            build_url=self.build_url,
            success_count=self.success_count,
            failure_count=self.classifier.failure_count,
        )

    def step(self, queue_url: str) -> None:
        """Perform one poll of the current target and any sleep it calls for."""
        target = self.build_url or queue_url
        try:
            body = self._fetch(target)
        except TransientUpstreamFailure as exc:
            log_with_fields(
                self.logger,
                logging.WARNING,
                "bad_gateway_retry",
                job_name=self.job_name,
                url=target,
                failure_count=exc.failure_count,
            )
            self._sleep()
            return

        if self.state is LifecycleState.AWAITING_QUEUE_ASSIGNMENT:
            self._handle_queue_document(body)
        else:
            self._handle_build_document(body)

    def _fetch(self, url: str) -> dict[str, Any] | None:
        response = self.transport.fetch_status(url, self.deadline)
        self.deadline.check()
        return self.classifier.check(response)

    def _sleep(self) -> None:
        self.deadline.sleep(self.poll.interval_seconds)

    def _handle_queue_document(self, body: dict[str, Any] | None) -> None:
        if body is None:
            log_with_fields(self.logger, logging.INFO, "job_queued", job_name=self.job_name, why=None)
            self._sleep()
            return

        outcome = PollOutcome.from_queue_document(body)
        if outcome.kind is OutcomeKind.CANCELLED:
            self.state = LifecycleState.CANCELLED
            raise JobCancelled(self.job_name)
        if outcome.kind is OutcomeKind.BUILD_ASSIGNED:
            self._assign_build(outcome.build_url or "")
            self.state = LifecycleState.AWAITING_BUILD_TERMINATION
            return

        log_with_fields(
            self.logger,
            logging.INFO,
            "job_queued",
            job_name=self.job_name,
            why=outcome.reason,
            sleep_seconds=self.poll.interval_seconds,
        )
        self._sleep()

    def _assign_build(self, build_url: str) -> None:
        if self.build_url is not None:
            return
        self.build_url = build_url
        log_with_fields(self.logger, logging.INFO, "build_assigned", job_name=self.job_name, build_url=build_url)
        if self.sink is not None:
            self.sink.set_output(BUILD_URL_OUTPUT, build_url)

    def _handle_build_document(self, body: dict[str, Any] | None) -> None:
        if body is None:
            log_with_fields(self.logger, logging.INFO, "build_not_ready", job_name=self.job_name, build_url=self.build_url)
            self._sleep()
            return

        outcome = PollOutcome.from_build_document(body)
        display_name = outcome.display_name or self.job_name
        if outcome.kind is OutcomeKind.BUILD_SUCCEEDED:
            self.success_count += 1
            log_with_fields(
                self.logger,
                logging.INFO,
                "build_success_observed",
                job_name=display_name,
                success_count=self.success_count,
                success_threshold=self.poll.success_threshold,
            )
            if self.success_count >= self.poll.success_threshold:
                self.state = LifecycleState.SUCCEEDED
                log_with_fields(
                    self.logger,
                    logging.INFO,
                    "job_succeeded",
                    job_name=display_name,
                    build_url=self.build_url,
                )
                return
            self._sleep()
            return

        if outcome.kind is OutcomeKind.BUILD_FAILED:
            self.state = LifecycleState.FAILED
            raise JobExecutionFailed(display_name, self.build_url or "", outcome.reason or "FAILURE")

        log_with_fields(
            self.logger,
            logging.INFO,
            "build_running",
            job_name=display_name,
            build_url=self.build_url,
            sleep_seconds=self.poll.interval_seconds,
        )
        self._sleep()
