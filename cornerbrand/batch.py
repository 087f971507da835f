"""Batch orchestration: per-file dispatch, cancellation, progress and reports."""
from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from cornerbrand.cancellation import CancellationRegistry, default_registry
from cornerbrand.constants import (
    CANCELLED_MESSAGE,
    IMAGE_SIZE_PERCENT_RANGE,
    UNSUPPORTED_TYPE_MESSAGE,
)
from cornerbrand.errors import LogoError, SettingsError, StampError
from cornerbrand.image_stamper import stamp_image
from cornerbrand.logo import StampLogo
from cornerbrand.path_policy import (
    FileKind,
    PathLike,
    detect_file_kind,
    prepare_preview_output_dir,
)
from cornerbrand.pdf_stamper import stamp_pdf
from cornerbrand.report import write_reports
from cornerbrand.results import StampFileResult, failure_results
from cornerbrand.settings import StampSettingsInput, StampTarget, clamp, resolve_settings

logger = logging.getLogger(__name__)

SettingsPayload = StampSettingsInput | Mapping[str, Any]


@dataclass(frozen=True)
class ProgressUpdate:
    total: int
    # 1-based count of files attempted so far
    done: int
    input_path: str
    ok: bool


ProgressCallback = Callable[[ProgressUpdate], None]


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------
def _split_settings(
    settings: SettingsPayload,
) -> tuple[StampSettingsInput | None, dict[str, Any], SettingsError | None]:
    """Return (parsed input or None, settings as supplied for the report, shape error)."""
    if isinstance(settings, StampSettingsInput):
        return settings, settings.to_dict(), None

    as_supplied = dict(settings) if isinstance(settings, Mapping) else {"value": repr(settings)}
    try:
        return StampSettingsInput.from_dict(settings), as_supplied, None
    except SettingsError as e:
        return None, as_supplied, e


def _settings_for_path(
    raw: StampSettingsInput,
    input_path: str,
    size_percent_by_path: Mapping[str, float] | None,
) -> StampSettingsInput:
    if not size_percent_by_path:
        return raw
    override = size_percent_by_path.get(input_path)
    if not isinstance(override, (int, float)) or not math.isfinite(override):
        return raw
    return raw.with_size_percent(clamp(float(override), *IMAGE_SIZE_PERCENT_RANGE))


def _emit(on_progress: ProgressCallback | None, update: ProgressUpdate) -> None:
    if on_progress is None:
        return
    try:
        on_progress(update)
    except Exception:
        logger.warning("Progress callback failed for %s", update.input_path, exc_info=True)


def _stamp_one(
    input_path: str,
    kind: FileKind,
    raw: StampSettingsInput,
    logo: StampLogo,
    output_base_dir: PathLike | None,
) -> StampFileResult:
    try:
        if kind is FileKind.IMAGE:
            settings = resolve_settings(raw, StampTarget.IMAGE)
            output_path = stamp_image(input_path, logo, settings, output_base_dir)
        else:
            settings = resolve_settings(raw, StampTarget.PDF)
            output_path = stamp_pdf(input_path, logo, settings, output_base_dir)
    except StampError as e:
        logger.warning("Failed %s: %s", os.path.basename(input_path), e)
        return StampFileResult.failure(input_path, str(e))
    except Exception as e:
        logger.exception("Unexpected error while stamping %s", input_path)
        return StampFileResult.failure(
            input_path, f"Unexpected error while stamping {os.path.basename(input_path)}: {e}"
        )
    return StampFileResult.success(input_path, output_path)


# ------------------------------------------------------------------
# Entry points
# ------------------------------------------------------------------
def stamp_batch_with_progress(
    paths: Sequence[str],
    settings: SettingsPayload,
    logo_path: PathLike,
    output_base_dir: PathLike | None = None,
    request_id: str | None = None,
    on_progress: ProgressCallback | None = None,
    size_percent_by_path: Mapping[str, float] | None = None,
    registry: CancellationRegistry | None = None,
) -> list[StampFileResult]:
    """
    Stamp ``paths`` one at a time, in order, and write the batch report(s).

    Args:
        paths: Input files. The result list always has the same length/order.
        settings: ``StampSettingsInput`` or the raw payload dict.
        logo_path: Logo file. Loaded once, the first time a file needs it.
        output_base_dir: Batch-wide output base override.
        request_id: Checked against ``registry`` before each file. Once
            cancelled, this and every later file are marked cancelled and no
            more progress is emitted.
        on_progress: Called after every attempted file. Errors are logged.
        size_percent_by_path: Explicit size percentage overrides per input.
        registry: Cancellation registry; the process-wide one by default.

    Returns:
        One StampFileResult per input path.
    """
    registry = registry if registry is not None else default_registry
    raw, report_settings, settings_error = _split_settings(settings)

    total = len(paths)
    results: list[StampFileResult] = []
    logo: StampLogo | None = None
    logger.info("Starting batch of %d files", total)

    for index, input_path in enumerate(paths):
        if request_id is not None and registry.is_cancelled(request_id):
            logger.info("Batch %s cancelled with %d files left", request_id, total - index)
            results.extend(failure_results(paths[index:], CANCELLED_MESSAGE))
            break

        kind = detect_file_kind(input_path)
        if kind is FileKind.UNSUPPORTED:
            result = StampFileResult.failure(input_path, UNSUPPORTED_TYPE_MESSAGE)
        elif settings_error is not None:
            result = StampFileResult.failure(input_path, str(settings_error))
        else:
            if logo is None:
                try:
                    logo = StampLogo.load(logo_path)
                except LogoError as e:
                    logger.error("Aborting batch: %s", e)
                    results.extend(failure_results(paths[index:], str(e)))
                    break

            file_settings = _settings_for_path(raw, input_path, size_percent_by_path)
            result = _stamp_one(input_path, kind, file_settings, logo, output_base_dir)

        results.append(result)
        _emit(on_progress, ProgressUpdate(total, index + 1, input_path, result.ok))

    write_reports(report_settings, results, output_base_dir)

    succeeded = sum(1 for result in results if result.ok)
    logger.info("Batch finished: %d ok, %d failed", succeeded, total - succeeded)
    return results


def stamp_batch(
    paths: Sequence[str],
    settings: SettingsPayload,
    logo_path: PathLike,
    output_base_dir: PathLike | None = None,
) -> list[StampFileResult]:
    """Plain batch run: no cancellation, no progress, no overrides."""
    return stamp_batch_with_progress(paths, settings, logo_path, output_base_dir)


def stamp_batch_preview(
    paths: Sequence[str],
    settings: SettingsPayload,
    logo_path: PathLike,
    request_id: str,
    on_progress: ProgressCallback | None = None,
    size_percent_by_path: Mapping[str, float] | None = None,
    registry: CancellationRegistry | None = None,
    temp_root: PathLike | None = None,
) -> list[StampFileResult]:
    """Run the batch into a fresh per-request scratch folder for previewing."""
    try:
        preview_dir = prepare_preview_output_dir(request_id, temp_root)
    except StampError as e:
        return failure_results(paths, str(e))

    return stamp_batch_with_progress(
        paths,
        settings,
        logo_path,
        output_base_dir=preview_dir,
        request_id=request_id,
        on_progress=on_progress,
        size_percent_by_path=size_percent_by_path,
        registry=registry,
    )
