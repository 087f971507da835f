"""Raster path: decode, resize the logo, alpha-composite, re-encode."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from PIL import Image

from cornerbrand.constants import JPEG_QUALITY
from cornerbrand.errors import ImageStampError, StampError, UnsupportedFileError
from cornerbrand.geometry import place
from cornerbrand.logo import StampLogo
from cornerbrand.path_policy import (
    PathLike,
    build_output_path,
    detect_supported_image,
    discard_partial_output,
)
from cornerbrand.results import StampFileResult, failure_results
from cornerbrand.settings import (
    ResolvedSettings,
    StampSettingsInput,
    StampTarget,
    resolve_settings,
)

logger = logging.getLogger(__name__)


def resize_logo(logo: Image.Image, width: int, height: int) -> Image.Image:
    """Lanczos resize on premultiplied alpha so transparent edges stay clean."""
    premultiplied = logo.convert("RGBa")
    resized = premultiplied.resize((width, height), resample=Image.Resampling.LANCZOS)
    return resized.convert("RGBA")


def composite_logo(
    source: Image.Image, logo: StampLogo, settings: ResolvedSettings
) -> Image.Image:
    """
    Return ``source`` (RGBA) with the logo composited at its corner.

    Raises:
        GeometryError: if ``source`` has no pixels.
    """
    rect = place(source.width, source.height, logo.width, logo.height, settings)
    resized = resize_logo(logo.image, rect.width, rect.height)

    merged = source.copy()
    merged.alpha_composite(resized, dest=(rect.x, rect.y))
    return merged


def _save(image: Image.Image, output_path: Path, pil_format: str) -> None:
    if pil_format == "JPEG":
        image.convert("RGB").save(output_path, format="JPEG", quality=JPEG_QUALITY)
    elif pil_format == "WEBP":
        image.save(output_path, format="WEBP", lossless=True)
    else:
        image.save(output_path, format=pil_format)


def stamp_image(
    input_path: PathLike,
    logo: StampLogo,
    settings: ResolvedSettings,
    output_base_dir: PathLike | None = None,
) -> Path:
    """
    Stamp one raster image and write it next to the input (or under the
    override base).

    Returns:
        The path that was written.

    Raises:
        UnsupportedFileError: extension is not jpg/jpeg/png/webp.
        ImageStampError: decode, encode or write failure, or a zero-area image.
        OutputPathError: the output folder could not be prepared.
    """
    input_path = Path(input_path)
    supported = detect_supported_image(input_path)
    if supported is None:
        raise UnsupportedFileError("Unsupported file type. (jpg/jpeg/png/webp)")

    try:
        with Image.open(input_path) as img:
            source = img.convert("RGBA")
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageStampError(f"Could not read the image file: {e}") from e

    if source.width == 0 or source.height == 0:
        raise ImageStampError("Image size is invalid.")

    merged = composite_logo(source, logo, settings)

    output_path = build_output_path(input_path, output_base_dir)
    try:
        _save(merged, output_path, supported.pil_format)
    except (OSError, ValueError) as e:
        discard_partial_output(output_path)
        raise ImageStampError(f"Could not save the stamped image: {e}") from e

    logger.info("Stamped %s -> %s", input_path, output_path)
    return output_path


def stamp_images(
    paths: Sequence[str],
    settings_input: StampSettingsInput,
    logo_path: PathLike,
    output_base_dir: PathLike | None = None,
) -> list[StampFileResult]:
    """Stamp a list of images with one logo and one set of settings."""
    try:
        settings = resolve_settings(settings_input, StampTarget.IMAGE)
        logo = StampLogo.load(logo_path)
    except StampError as e:
        return failure_results(paths, str(e))

    results: list[StampFileResult] = []
    for input_path in paths:
        try:
            output_path = stamp_image(input_path, logo, settings, output_base_dir)
            results.append(StampFileResult.success(input_path, output_path))
        except StampError as e:
            logger.warning("Failed %s: %s", input_path, e)
            results.append(StampFileResult.failure(input_path, str(e)))
    return results
