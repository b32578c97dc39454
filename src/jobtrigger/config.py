from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

from .models import JobRequest
from .utils import parse_bool, parse_parameters

INPUT_KEYS = ("url", "user_name", "api_token", "job_name", "parameter", "wait", "timeout")


@dataclass(slots=True)
class PollConfig:
    interval_seconds: float = 10
    success_threshold: int = 3
    failure_threshold: int = 10


@dataclass(slots=True)
class HttpConfig:
    request_timeout_seconds: float = 30
    verify_tls: bool = True


@dataclass(slots=True)
class TriggerConfig:
    url: str
    user_name: str
    api_token: str
    job_name: str
    parameters: dict[str, str] = field(default_factory=dict)
    wait: bool = False
    timeout_seconds: int = 3600
    poll: PollConfig = field(default_factory=PollConfig)
    http: HttpConfig = field(default_factory=HttpConfig)

    @property
    def job_request(self) -> JobRequest:
        return JobRequest(job_name=self.job_name, parameters=dict(self.parameters))


def _require(mapping: Mapping[str, Any], key: str, section: str) -> object:
    value = mapping.get(key)
    if value is None or value == "":
        raise ValueError(f"Missing `{section}.{key}` in config")
    return value


def _number(value: object, key: str, cast: Callable[[Any], float]) -> Any:
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"`{key}` must be a number, got {value!r}") from exc


def _positive_int(value: object, key: str) -> int:
    try:
        number = int(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"`{key}` must be an integer, got {value!r}") from exc
    if number < 1:
        raise ValueError(f"`{key}` must be >= 1")
    return number


def read_yaml(path: str | Path) -> dict[str, Any]:
    config_path = Path(path).expanduser().resolve()
    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Config file {config_path} is not valid YAML: {exc}") from exc
    if not isinstance(raw, dict):
        raise ValueError("Config root must be a mapping")
    return raw


def read_env_inputs(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Collect ``INPUT_<NAME>`` variables the way a CI runner exposes step inputs."""
    environ = os.environ if environ is None else environ
    inputs: dict[str, str] = {}
    for key in INPUT_KEYS:
        value = environ.get(f"INPUT_{key.upper()}")
        if value is not None and value.strip() != "":
            inputs[key] = value.strip()
    return inputs


def build_config(raw: Mapping[str, Any]) -> TriggerConfig:
    poll_raw = raw.get("poll", {}) or {}
    http_raw = raw.get("http", {}) or {}
    if not isinstance(poll_raw, dict):
        raise ValueError("`poll` must be a mapping")
    if not isinstance(http_raw, dict):
        raise ValueError("`http` must be a mapping")

    poll = PollConfig(
        interval_seconds=_number(poll_raw.get("interval_seconds", 10), "poll.interval_seconds", float),
        success_threshold=_number(poll_raw.get("success_threshold", 3), "poll.success_threshold", int),
        failure_threshold=_number(poll_raw.get("failure_threshold", 10), "poll.failure_threshold", int),
    )
    if poll.interval_seconds < 0:
        raise ValueError("`poll.interval_seconds` must be >= 0")
    if poll.success_threshold < 1:
        raise ValueError("`poll.success_threshold` must be >= 1")
    if poll.failure_threshold < 0:
        raise ValueError("`poll.failure_threshold` must be >= 0")

    http = HttpConfig(
        request_timeout_seconds=_number(http_raw.get("request_timeout_seconds", 30), "http.request_timeout_seconds", float),
        verify_tls=parse_bool(http_raw.get("verify_tls", True), "http.verify_tls"),
    )
    if http.request_timeout_seconds <= 0:
        raise ValueError("`http.request_timeout_seconds` must be > 0")

    return TriggerConfig(
        url=str(_require(raw, "url", "root")).rstrip("/"),
        user_name=str(_require(raw, "user_name", "root")),
        api_token=str(_require(raw, "api_token", "root")),
        job_name=str(_require(raw, "job_name", "root")),
        parameters=parse_parameters(raw.get("parameter")),
        wait=parse_bool(raw.get("wait", False), "wait"),
        timeout_seconds=_positive_int(raw.get("timeout", 3600), "timeout"),
        poll=poll,
        http=http,
    )


def load_config(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> TriggerConfig:
    """Merge the YAML file, ``INPUT_*`` variables and explicit overrides, in that order."""
    raw: dict[str, Any] = read_yaml(path) if path is not None else {}
    raw.update(read_env_inputs(environ))
    for key, value in (overrides or {}).items():
        if value is None:
            continue
        if key in {"poll", "http"}:
            section = dict(raw.get(key) or {})
            section.update(value)
            raw[key] = section
        else:
            raw[key] = value
    return build_config(raw)

