"""Input classification and collision-free output locations."""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
from enum import Enum
from pathlib import Path
from typing import NamedTuple

from cornerbrand.constants import (
    DEFAULT_IMAGE_STEM,
    DEFAULT_PDF_STEM,
    IMAGE_FORMATS,
    OUTPUT_DIR_NAME,
    OUTPUT_SUFFIX,
    PDF_EXTENSION,
    PREVIEW_DIR_NAME,
    REPORT_BASE_NAME,
    REPORT_EXTENSION,
)
from cornerbrand.errors import OutputPathError, UnsupportedFileError

logger = logging.getLogger(__name__)

PathLike = str | os.PathLike


class FileKind(Enum):
    IMAGE = "image"
    PDF = "pdf"
    UNSUPPORTED = "unsupported"


class SupportedFormat(NamedTuple):
    pil_format: str
    # Lower-cased input extension, reused for the output name
    extension: str


# ------------------------------------------------------------------
# Classification
# ------------------------------------------------------------------
def _extension(path: PathLike) -> str:
    return Path(path).suffix[1:].lower()


def detect_supported_image(path: PathLike) -> SupportedFormat | None:
    extension = _extension(path)
    pil_format = IMAGE_FORMATS.get(extension)
    if pil_format is None:
        return None
    return SupportedFormat(pil_format, extension)


def is_supported_pdf(path: PathLike) -> bool:
    return _extension(path) == PDF_EXTENSION


def file_kind_for_extension(extension: str) -> FileKind:
    """Kind for a bare extension such as ``"PNG"`` (no leading dot)."""
    extension = extension.lower()
    if extension in IMAGE_FORMATS:
        return FileKind.IMAGE
    if extension == PDF_EXTENSION:
        return FileKind.PDF
    return FileKind.UNSUPPORTED


def detect_file_kind(path: PathLike) -> FileKind:
    return file_kind_for_extension(_extension(path))


# ------------------------------------------------------------------
# Directories
# ------------------------------------------------------------------
def _ensure_directory(path: Path) -> None:
    if path.exists():
        if path.is_dir():
            return
        raise OutputPathError(f"Output folder path is not a directory: {path}")

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputPathError(f"Could not create output folder: {e}") from e


def resolve_output_dir(input_dir: PathLike, output_base_dir: PathLike | None = None) -> Path:
    """
    Return (and create) the output folder for files from ``input_dir``.

    The folder is ``OUTPUT_DIR_NAME`` under the override base when one is
    given, otherwise under the input's own directory.

    Raises:
        OutputPathError: if the base or the output folder exists but is not a
            directory, or cannot be created.
    """
    if output_base_dir is not None:
        base_dir = Path(output_base_dir)
        _ensure_directory(base_dir)
    else:
        base_dir = Path(input_dir)

    output_dir = base_dir / OUTPUT_DIR_NAME
    _ensure_directory(output_dir)
    return output_dir


# ------------------------------------------------------------------
# File names
# ------------------------------------------------------------------
def _first_free_path(output_dir: Path, base_name: str, extension: str) -> Path:
    """``name.ext``, then ``name(1).ext``, ``name(2).ext``... whichever is free first."""
    candidate = output_dir / f"{base_name}.{extension}"
    index = 1
    while candidate.exists():
        candidate = output_dir / f"{base_name}({index}).{extension}"
        index += 1
    logger.debug("Allocated output path %s", candidate)
    return candidate


def _input_parent(input_path: Path) -> Path:
    parent = input_path.parent
    if not str(parent):
        raise OutputPathError(f"Could not find the parent folder of {input_path}")
    return parent


def build_output_path(input_path: PathLike, output_base_dir: PathLike | None = None) -> Path:
    """Output path for a stamped image, keeping the input's (lower-cased) extension."""
    input_path = Path(input_path)
    supported = detect_supported_image(input_path)
    if supported is None:
        raise UnsupportedFileError("Unsupported image format. (jpg/jpeg/png/webp)")

    output_dir = resolve_output_dir(_input_parent(input_path), output_base_dir)
    stem = input_path.stem or DEFAULT_IMAGE_STEM
    return _first_free_path(output_dir, f"{stem}{OUTPUT_SUFFIX}", supported.extension)


def build_output_pdf_path(input_path: PathLike, output_base_dir: PathLike | None = None) -> Path:
    """Output path for a stamped PDF. The extension is always ``pdf``."""
    input_path = Path(input_path)
    if not is_supported_pdf(input_path):
        raise UnsupportedFileError("Unsupported PDF format. (.pdf)")

    output_dir = resolve_output_dir(_input_parent(input_path), output_base_dir)
    stem = input_path.stem or DEFAULT_PDF_STEM
    return _first_free_path(output_dir, f"{stem}{OUTPUT_SUFFIX}", PDF_EXTENSION)


def build_report_path(input_dir: PathLike, output_base_dir: PathLike | None = None) -> Path:
    output_dir = resolve_output_dir(input_dir, output_base_dir)
    return _first_free_path(output_dir, REPORT_BASE_NAME, REPORT_EXTENSION)


def prepare_preview_output_dir(request_id: str, temp_root: PathLike | None = None) -> Path:
    """
    Create an empty scratch folder for a preview run.

    Lives at ``<temp>/cornerbrand-preview/<request_id>``; anything left there
    by an earlier preview with the same id is removed first.
    """
    if not request_id or request_id in (".", "..") or Path(request_id).name != request_id:
        raise OutputPathError(f"Invalid preview request id: '{request_id}'")

    root = Path(temp_root) if temp_root is not None else Path(tempfile.gettempdir())
    preview_dir = root / PREVIEW_DIR_NAME / request_id

    try:
        if preview_dir.exists():
            shutil.rmtree(preview_dir)
        preview_dir.mkdir(parents=True)
    except OSError as e:
        raise OutputPathError(f"Could not prepare the preview folder: {e}") from e

    return preview_dir


def discard_partial_output(output_path: Path) -> None:
    """Remove whatever a failed save left under ``output_path``."""
    try:
        output_path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not remove partial output %s: %s", output_path, e)
