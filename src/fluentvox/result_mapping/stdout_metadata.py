"""Structured metadata embedded in generation script stdout."""

from __future__ import annotations

import json
from typing import Any


def extract_metadata(stdout: str) -> dict[str, Any]:
    """Return the first stdout line that parses as a JSON object, or an empty mapping.

    Lines shaped like `{...}` that fail to parse are skipped.
    """
    for raw_line in stdout.splitlines():
        line = raw_line.strip()
        if not (line.startswith("{") and line.endswith("}")):
            continue
        try:
            parsed = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return {}


def metadata_int(metadata: dict[str, Any], key: str, default: int) -> int:
    value = metadata.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return int(value)


def metadata_float(metadata: dict[str, Any], key: str, default: float) -> float:
    value = metadata.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return float(value)
