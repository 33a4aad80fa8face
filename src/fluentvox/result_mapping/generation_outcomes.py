"""Typed results of a speech generation request."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


def format_duration(seconds: float) -> str:
    """Render seconds as `MM:SS.ff`, e.g. 125.5 -> `02:05.50`.

    Minutes are zero-padded to two digits and widen past 99.
    """
    total = round(max(0.0, float(seconds)), 2)
    minutes = int(total // 60)
    remainder = total - minutes * 60
    return f"{minutes:02d}:{remainder:05.2f}"


@dataclass(frozen=True)
class GenerationSuccess:
    """Audio was written to `output_path`."""

    output_path: Path
    text: str
    sample_rate: int
    duration: float
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def is_successful(self) -> bool:
        return True

    @property
    def error(self) -> None:
        return None

    def formatted_duration(self) -> str:
        return format_duration(self.duration)

    def to_mapping(self) -> dict[str, Any]:
        return {
            "success": True,
            "output_path": str(self.output_path),
            "text": self.text,
            "sample_rate": self.sample_rate,
            "duration": self.duration,
            "duration_formatted": self.formatted_duration(),
            "error": None,
            "metadata": dict(self.metadata),
        }

    def __str__(self) -> str:
        return str(self.output_path)


@dataclass(frozen=True)
class GenerationFailure:
    """Generation did not produce audio; `message` says why."""

    message: str

    def is_successful(self) -> bool:
        return False

    @property
    def error(self) -> str:
        return self.message

    @property
    def output_path(self) -> None:
        return None

    @property
    def text(self) -> None:
        return None

    @property
    def sample_rate(self) -> None:
        return None

    @property
    def duration(self) -> None:
        return None

    @property
    def metadata(self) -> Mapping[str, Any]:
        return {}

    def formatted_duration(self) -> str:
        return format_duration(0.0)

    def to_mapping(self) -> dict[str, Any]:
        return {
            "success": False,
            "output_path": None,
            "text": None,
            "sample_rate": None,
            "duration": None,
            "duration_formatted": self.formatted_duration(),
            "error": self.message,
            "metadata": {},
        }

    def __str__(self) -> str:
        return ""


GenerationOutcome = GenerationSuccess | GenerationFailure


def outcome_from_mapping(data: Mapping[str, Any]) -> GenerationOutcome:
    """Rebuild an outcome from `to_mapping()` output.

    Raises:
      ValueError: If a success mapping lacks its path, text, sample rate or duration.
    """
    if not data.get("success"):
        return GenerationFailure(message=str(data.get("error") or "Unknown error"))

    missing = [
        key
        for key in ("output_path", "text", "sample_rate", "duration")
        if data.get(key) is None
    ]
    if missing:
        raise ValueError(f"Successful outcome mapping is missing: {', '.join(missing)}")
    metadata = data.get("metadata") or {}
    return GenerationSuccess(
        output_path=Path(data["output_path"]),
        text=str(data["text"]),
        sample_rate=int(data["sample_rate"]),
        duration=float(data["duration"]),
        metadata=dict(metadata),
    )
