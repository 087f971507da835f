from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable


@dataclass(frozen=True)
class StampFileResult:
    """Outcome for one input file. ``output_path`` is set iff ``ok``; ``error`` otherwise."""
    input_path: str
    ok: bool
    output_path: str | None = None
    error: str | None = None

    @classmethod
    def success(cls, input_path: str, output_path: str | Path) -> StampFileResult:
        return cls(input_path=input_path, ok=True, output_path=str(output_path))

    @classmethod
    def failure(cls, input_path: str, error: str) -> StampFileResult:
        return cls(input_path=input_path, ok=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "input_path": self.input_path,
            "ok": self.ok,
            "output_path": self.output_path,
            "error": self.error,
        }


def failure_results(paths: Iterable[str], error: str) -> list[StampFileResult]:
    """The same failure for every path, in order."""
    return [StampFileResult.failure(path, error) for path in paths]
