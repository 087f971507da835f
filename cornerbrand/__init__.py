"""
CornerBrand: stamp a logo onto a corner of images and PDF pages in batches.
"""

from cornerbrand.batch import (
    ProgressUpdate,
    stamp_batch,
    stamp_batch_preview,
    stamp_batch_with_progress,
)
from cornerbrand.cancellation import CancellationRegistry, default_registry
from cornerbrand.results import StampFileResult
from cornerbrand.settings import StampSettingsInput

__all__ = [
    "CancellationRegistry",
    "ProgressUpdate",
    "StampFileResult",
    "StampSettingsInput",
    "default_registry",
    "stamp_batch",
    "stamp_batch_preview",
    "stamp_batch_with_progress",
]
