from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any

import httpx

from .app_logging import log_with_fields, setup_logger
from .config import load_config
from .errors import JobTriggerError
from .output import OutputSink
from .trigger import trigger_job


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jobtrigger",
        description="Trigger a parameterized Jenkins job and optionally wait for it to finish",
    )
    parser.add_argument("--config", help="Path to a YAML config file")
    parser.add_argument("--url", help="Jenkins base URL")
    parser.add_argument("--job-name", help="Job to trigger")
    parser.add_argument("--user-name", help="Jenkins user name")
    parser.add_argument("--api-token", help="Jenkins API token")
    parser.add_argument("--parameter", help="Job parameters as a JSON object")
    parser.add_argument(
        "--wait",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Wait for the build to reach a terminal state",
    )
    parser.add_argument("--timeout", type=int, help="Overall time budget in seconds")
    parser.add_argument("--poll-interval", type=float, help="Seconds between status polls")
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip TLS certificate verification for Jenkins requests",
    )
    parser.add_argument("--log-file", type=Path, help="Also write JSON lines logs to this file")
    parser.add_argument("--output-file", type=Path, help="File receiving name=value step outputs")
    parser.add_argument("--verbose", action="store_true", help="Log individual status responses")
    return parser


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {
        "url": args.url,
        "job_name": args.job_name,
        "user_name": args.user_name,
        "api_token": args.api_token,
        "parameter": args.parameter,
        "wait": args.wait,
        "timeout": args.timeout,
    }
    if args.poll_interval is not None:
        overrides["poll"] = {"interval_seconds": args.poll_interval}
    if args.insecure:
        overrides["http"] = {"verify_tls": False}
    return overrides


def main(argv: list[str] | None = None, *, http_transport: httpx.BaseTransport | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logger = setup_logger(args.log_file, logging.DEBUG if args.verbose else logging.INFO)
    sink = OutputSink.from_env(output_path=args.output_file, logger=logger)

    try:
        config = load_config(args.config, overrides=_overrides(args))
    except (OSError, ValueError) as exc:
        sink.set_failed(f"Invalid configuration: {exc}")
        return 2

    if not config.http.verify_tls:
        log_with_fields(logger, logging.WARNING, "tls_verification_disabled", url=config.url)

    try:
        result = trigger_job(config, sink, logger=logger, http_transport=http_transport)
    except JobTriggerError as exc:
        sink.set_failed(str(exc))
        return 1

    log_with_fields(
        logger,
        logging.INFO,
        "run_complete",
        job_name=result.job_name,
        state=result.state.value,
        queue_url=result.queue_url,
        build_url=result.build_url,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
