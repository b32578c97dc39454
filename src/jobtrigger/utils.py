from __future__ import annotations

import json
from datetime import UTC, datetime

STATUS_DOCUMENT_SUFFIX = "api/json"
TRUE_VALUES = {"true", "yes", "1", "on"}
FALSE_VALUES = {"false", "no", "0", "off", ""}


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


def status_document_url(url: str) -> str:
    if not url.endswith("/"):
        url += "/"
    return f"{url}{STATUS_DOCUMENT_SUFFIX}"


def parse_bool(value: object, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValueError(f"`{key}` must be a boolean, got {value!r}")


def parse_parameters(raw: object) -> dict[str, str]:
    if raw is None or raw == "":
        return {}
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"`parameter` is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise ValueError("`parameter` must be a JSON object")
    return {str(key): value if isinstance(value, str) else json.dumps(value) for key, value in raw.items()}
