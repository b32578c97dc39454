from __future__ import annotations

import logging

import httpx

from .app_logging import LOGGER_NAME, log_with_fields
from .config import TriggerConfig
from .deadline import Deadline
from .lifecycle import JobLifecycle
from .models import LifecycleState, RunResult
from .output import OutputSink
from .transport import JenkinsTransport


def trigger_job(
    config: TriggerConfig,
    sink: OutputSink,
    *,
    logger: logging.Logger | None = None,
    http_transport: httpx.BaseTransport | None = None,
    deadline: Deadline | None = None,
) -> RunResult:
    """Enqueue the configured job and, when ``config.wait`` is set, follow it to the end.

    The deadline (one covering ``config.timeout_seconds`` unless given) is
    armed before the trigger call and released when this returns or raises.
    """
    logger = logger or logging.getLogger(LOGGER_NAME)
    request = config.job_request
    if request.parameters:
        log_with_fields(logger, logging.INFO, "job_parameters", job_name=request.job_name, parameters=sorted(request.parameters))

    if deadline is None:
        deadline = Deadline(config.timeout_seconds, logger=logger)
    with deadline, JenkinsTransport(
        config.url,
        config.user_name,
        config.api_token,
        config.http,
        transport=http_transport,
        logger=logger,
    ) as transport:
        queue_url = transport.submit(request, deadline)
        log_with_fields(logger, logging.INFO, "job_queued_successfully", job_name=request.job_name, queue_url=queue_url)
        if not config.wait:
            return RunResult(job_name=request.job_name, queue_url=queue_url, state=LifecycleState.AWAITING_QUEUE_ASSIGNMENT)

        lifecycle = JobLifecycle(
            request.job_name,
            transport,
            deadline,
            sink=sink,
            poll=config.poll,
            logger=logger,
        )
        return lifecycle.run(queue_url)
