"""Exceptions raised by the stamping core.

Every message is written for the end user: the batch layer copies ``str(exc)``
straight into the per-file result.
"""
from __future__ import annotations


class StampError(Exception):
    """Base class for all per-file stamping failures."""


class SettingsError(StampError):
    """Raw settings could not be resolved (bad shape, position or preset)."""


class GeometryError(StampError):
    """Canvas or logo dimensions are degenerate."""


class UnsupportedFileError(StampError):
    """The input extension is outside the supported set."""


class LogoError(StampError):
    """The logo could not be read. Fatal for the whole batch."""


class OutputPathError(StampError):
    """The output folder could not be prepared."""


class ImageStampError(StampError):
    """Decoding, compositing or writing a raster image failed."""


class PdfStampError(StampError):
    """Reading, stamping or saving a PDF failed."""


class PdfStructureError(PdfStampError):
    """The page tree or a MediaBox entry is missing or malformed."""
