"""Best-effort JSON reports, one per output folder."""
from __future__ import annotations

import json
import logging
import math
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

from cornerbrand.errors import StampError
from cornerbrand.path_policy import PathLike, build_report_path
from cornerbrand.results import StampFileResult

logger = logging.getLogger(__name__)


def json_safe(value: Any) -> Any:
    """Copy of ``value`` with NaN/Infinity floats replaced by None, at any depth."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, Mapping):
        return {key: json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [json_safe(item) for item in value]
    return value


@dataclass
class BatchReport:
    # Settings as the caller supplied them, before per-file overrides
    settings: Mapping[str, Any]
    results: list[StampFileResult]
    timestamp: int = field(default_factory=lambda: int(time.time()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "settings": json_safe(self.settings),
            "results": [result.to_dict() for result in self.results],
        }


def write_report_file(report: BatchReport, report_path: Path) -> bool:
    """
    Write one report. Failures are logged and reported as False, never raised.

    The document is serialized in full before the file is opened, so a
    payload that cannot be encoded leaves nothing behind.
    """
    try:
        text = json.dumps(report.to_dict(), indent=2, ensure_ascii=False, allow_nan=False)
        with open(report_path, "w", encoding="utf-8") as file_handle:
            file_handle.write(text)
    except (OSError, TypeError, ValueError) as e:
        logger.warning("Could not write report %s: %s", report_path, e)
        return False

    logger.info("Wrote report %s (%d results)", report_path, len(report.results))
    return True


def group_by_input_dir(results: Sequence[StampFileResult]) -> dict[Path, list[StampFileResult]]:
    grouped: dict[Path, list[StampFileResult]] = {}
    for result in results:
        grouped.setdefault(Path(result.input_path).parent, []).append(result)
    return grouped


def write_reports(
    settings: Mapping[str, Any],
    results: Sequence[StampFileResult],
    output_base_dir: PathLike | None = None,
) -> list[Path]:
    """
    Write the batch report(s) and return the paths actually written.

    With an output base override a single report covering every result goes
    to the override's output folder. Otherwise results are grouped by the
    input file's directory and each group's report goes to that directory's
    own output folder.
    """
    if output_base_dir is not None:
        groups = {Path(output_base_dir): list(results)}
    else:
        groups = group_by_input_dir(results)

    written: list[Path] = []
    for input_dir, group_results in groups.items():
        try:
            report_path = build_report_path(input_dir, output_base_dir)
        except StampError as e:
            logger.warning("Skipping report for %s: %s", input_dir, e)
            continue

        report = BatchReport(settings=settings, results=group_results)
        if write_report_file(report, report_path):
            written.append(report_path)
    return written
