from __future__ import annotations

import io
import logging
from pathlib import Path

from PIL import Image

from cornerbrand.constants import LOGO_PNG_COMPRESS_LEVEL
from cornerbrand.errors import LogoError

logger = logging.getLogger(__name__)


def flatten_alpha_to_white(image: Image.Image) -> Image.Image:
    """Composite any transparency onto white and return an opaque RGB image."""
    rgba = image.convert("RGBA")
    background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
    return Image.alpha_composite(background, rgba).convert("RGB")


class StampLogo:
    """
    Decoded logo shared read-only by every file of a batch.

    Usage:
        # Before the batch loop
        logo = StampLogo.load(logo_path)

        # Raster targets
        image_stamper.stamp_image(path, logo, settings)

        # PDF targets (flattened once, cached)
        png_bytes = logo.flattened_png()
    """

    def __init__(self, image: Image.Image) -> None:
        if image.width <= 0 or image.height <= 0:
            raise LogoError("Logo image has no pixels.")
        self.image = image.convert("RGBA")
        self._flattened_png: bytes | None = None

    @classmethod
    def load(cls, logo_path: str | Path) -> StampLogo:
        """
        Raises:
            LogoError: if the file is missing or cannot be decoded.
        """
        try:
            with Image.open(logo_path) as img:
                img.load()
                logo = cls(img)
        except LogoError:
            raise
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise LogoError(f"Could not read the logo file: {e}") from e

        logger.info("Loaded logo %s (%dx%d)", logo_path, logo.width, logo.height)
        return logo

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    def flattened_png(self) -> bytes:
        """
        PNG bytes of the logo with alpha flattened onto white.

        PDF stamps are embedded as opaque images, so transparent logo areas
        show up white on the page. Computed once per logo.
        """
        if self._flattened_png is None:
            buffer = io.BytesIO()
            flatten_alpha_to_white(self.image).save(
                buffer,
                format="PNG",
                optimize=False,
                compress_level=LOGO_PNG_COMPRESS_LEVEL,
            )
            self._flattened_png = buffer.getvalue()
        return self._flattened_png
