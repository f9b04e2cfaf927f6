from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

__all__ = [
    "ClusterError",
    "DecodeError",
    "ExtractionError",
    "FetchError",
    "ReleaseError",
]


@dataclass(frozen=True, slots=True)
class DecodeError:
    """Release state could not be decoded at one of its layers."""

    stage: Literal["outer_decode", "inner_unwrap", "json"]
    message: str


@dataclass(frozen=True, slots=True)
class ExtractionError:
    """A malformed dependency entry; the entry is skipped, not fatal."""

    index: int
    reason: str

    def __str__(self) -> str:
        return f"dependency #{self.index + 1}: {self.reason}"


@dataclass(frozen=True, slots=True)
class FetchError:
    kind: Literal["pull_failed", "timeout", "missing_chart", "invalid_chart", "scratch_failed"]
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ClusterError:
    kind: Literal["tool_missing", "list_failed", "history_failed", "not_found", "read_failed"]
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Why a single release produced no tree."""

    stage: Literal["history", "state", "decode"]
    message: str
    hint: str | None = None
