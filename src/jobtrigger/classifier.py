from __future__ import annotations

from typing import Any

import httpx

from .errors import FailureThresholdExceeded, TransientUpstreamFailure, UnknownUpstreamStatus
from .models import StatusClass, StatusResponse


class StatusClassifier:
    """Map status codes to retry decisions, counting bad gateway responses.

    The threshold test is a strict ``>`` made before the counter is bumped, so
    a 502 is still retried while ``failure_count == failure_threshold``. The
    counter is never reset for the lifetime of the classifier.
    """

    def __init__(self, failure_threshold: int = 10) -> None:
        self.failure_threshold = failure_threshold
        self.failure_count = 0

    def classify(self, status_code: int) -> StatusClass:
        if status_code == httpx.codes.OK:
            return StatusClass.SUCCESS
        if status_code == httpx.codes.BAD_GATEWAY:
            escalate = self.failure_count > self.failure_threshold
            self.failure_count += 1
            return StatusClass.FATAL_FAILURE if escalate else StatusClass.TRANSIENT_FAILURE
        return StatusClass.FATAL_FAILURE

    def check(self, response: StatusResponse) -> dict[str, Any] | None:
        """Return the parsed body of a successful response or raise the matching error."""
        status = self.classify(response.status_code)
        if status is StatusClass.SUCCESS:
            return response.body
        if status is StatusClass.TRANSIENT_FAILURE:
            raise TransientUpstreamFailure(response.status_code, self.failure_count)
        if response.status_code == httpx.codes.BAD_GATEWAY:
            raise FailureThresholdExceeded(self.failure_count)
        raise UnknownUpstreamStatus(response.status_code)
