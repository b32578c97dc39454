from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Mapping, TextIO

from .app_logging import LOGGER_NAME, log_with_fields
from .errors import OutputError


class OutputSink:
    """Named step outputs and the failure report for the calling CI runner.

    Outputs are appended as ``name=value`` lines to the file the runner names
    in ``GITHUB_OUTPUT``; each name is written at most once per run.
    """

    def __init__(
        self,
        output_path: Path | None = None,
        *,
        annotate: bool = False,
        stream: TextIO | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.output_path = output_path
        self.annotate = annotate
        self.stream = stream
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.outputs: dict[str, str] = {}
        self.failure: str | None = None

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        output_path: Path | None = None,
        logger: logging.Logger | None = None,
    ) -> OutputSink:
        environ = os.environ if environ is None else environ
        if output_path is None and environ.get("GITHUB_OUTPUT"):
            output_path = Path(environ["GITHUB_OUTPUT"])
        annotate = environ.get("GITHUB_ACTIONS", "").lower() == "true"
        return cls(output_path, annotate=annotate, logger=logger)

    def set_output(self, name: str, value: str) -> None:
        if name in self.outputs:
            return
        self.outputs[name] = value
        if self.output_path is not None:
            try:
                with self.output_path.open("a", encoding="utf-8") as handle:
                    handle.write(f"{name}={value}\n")
            except OSError as exc:
                raise OutputError(f"Cannot write output `{name}` to {self.output_path}: {exc}") from exc
        log_with_fields(self.logger, logging.INFO, "output_set", name=name, value=value)

    def set_failed(self, message: str) -> None:
        self.failure = message
        log_with_fields(self.logger, logging.ERROR, "run_failed", error=message)
        if self.annotate:
            print(f"::error::{message}", file=self.stream or sys.stdout)
