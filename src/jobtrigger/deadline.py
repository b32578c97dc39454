from __future__ import annotations

import logging
import threading
import time
from datetime import UTC, datetime, timedelta
from typing import Callable

from .app_logging import LOGGER_NAME, log_with_fields
from .errors import JobTimeout
from .utils import utc_now_iso


class Deadline:
    """Wall-clock budget for a whole run, observed cooperatively by the poll loop.

    A timer thread flips an event when the budget elapses. Every suspension
    point of the run goes through :meth:`sleep` or :meth:`bound` so a fired
    deadline wakes sleeps immediately and caps in-flight request timeouts.
    Use it as a context manager so the timer is released on every exit path.
    """

    def __init__(
        self,
        timeout_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        logger: logging.Logger | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.clock = clock
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.expires_at = clock() + timeout_seconds
        self.started_at_iso = utc_now_iso()
        self.expires_at_iso = (datetime.now(UTC) + timedelta(seconds=timeout_seconds)).isoformat()
        self._fired = threading.Event()
        self._timer: threading.Timer | None = None

    def __enter__(self) -> Deadline:
        self.arm()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def arm(self) -> None:
        if self._timer is not None:
            return
        self._timer = threading.Timer(self.remaining(), self._fire)
        self._timer.daemon = True
        self._timer.start()

    def release(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    @property
    def armed(self) -> bool:
        return self._timer is not None

    @property
    def expired(self) -> bool:
        return self._fired.is_set() or self.clock() >= self.expires_at

    def _fire(self) -> None:
        self._fired.set()
        log_with_fields(
            self.logger,
            logging.ERROR,
            "job_timeout",
            timeout_seconds=self.timeout_seconds,
            started_at=self.started_at_iso,
            expired_at=self.expires_at_iso,
        )

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self.clock())

    def check(self) -> None:
        if self.expired:
            raise JobTimeout(self.timeout_seconds)

    def sleep(self, seconds: float) -> None:
        self.check()
        if self._fired.wait(min(seconds, self.remaining())):
            raise JobTimeout(self.timeout_seconds)
        self.check()

    def bound(self, timeout: float) -> float:
        self.check()
        return min(timeout, self.remaining())
