from __future__ import annotations

import logging
from typing import Any

import httpx

from .app_logging import LOGGER_NAME, log_with_fields
from .config import HttpConfig
from .deadline import Deadline
from .errors import TransportError, TriggerFailure
from .models import JobRequest, StatusResponse
from .utils import status_document_url


class JenkinsTransport:
    def __init__(
        self,
        base_url: str,
        user_name: str,
        api_token: str,
        http_config: HttpConfig | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.http_config = http_config or HttpConfig()
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        # verify applies to this client only; nothing process-wide is touched
        self.client = httpx.Client(
            auth=httpx.BasicAuth(user_name, api_token),
            verify=self.http_config.verify_tls,
            timeout=self.http_config.request_timeout_seconds,
            follow_redirects=False,
            transport=transport,
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> JenkinsTransport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _timeout(self, deadline: Deadline | None) -> float:
        timeout = self.http_config.request_timeout_seconds
        return deadline.bound(timeout) if deadline is not None else timeout

    def _send(self, method: str, url: str, deadline: Deadline | None, **kwargs: Any) -> httpx.Response:
        try:
            return self.client.request(method, url, timeout=self._timeout(deadline), **kwargs)
        except httpx.HTTPError as exc:
            if deadline is not None:
                deadline.check()
            raise TransportError(f"{method} {url} failed: {exc}") from exc

    def job_endpoint(self, job_name: str) -> str:
        return f"{self.base_url}/job/{job_name}/buildWithParameters"

    def submit(self, request: JobRequest, deadline: Deadline | None = None) -> str:
        """Enqueue the job and return the queue item URL from the ``Location`` header."""
        endpoint = self.job_endpoint(request.job_name)
        response = self._send("POST", endpoint, deadline, data=dict(request.parameters))
        location = response.headers.get("location")
        if not location:
            raise TriggerFailure(
                f"Failed to find location header in response! (HTTP {response.status_code} from {endpoint})"
            )
        log_with_fields(
            self.logger,
            logging.INFO,
            "job_triggered",
            job_name=request.job_name,
            status_code=response.status_code,
            queue_url=location,
        )
        return location

    def fetch_status(self, status_url: str, deadline: Deadline | None = None) -> StatusResponse:
        url = status_document_url(status_url)
        response = self._send("GET", url, deadline)
        self.logger.debug("status response %s from %s", response.status_code, url)
        if response.status_code != httpx.codes.OK:
            return StatusResponse(status_code=response.status_code)
        if not response.content.strip():
            return StatusResponse(status_code=response.status_code)
        try:
            body = response.json()
        except ValueError as exc:
            raise TransportError(f"Malformed status document from {url}: {exc}") from exc
        return StatusResponse(status_code=response.status_code, body=body if isinstance(body, dict) and body else None)
