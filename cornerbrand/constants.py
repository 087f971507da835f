from __future__ import annotations


# ============================================================
# OUTPUT LOCATIONS
# ============================================================

OUTPUT_DIR_NAME = "CornerBrand_Output"
OUTPUT_SUFFIX = "_cornerbrand"
REPORT_BASE_NAME = "cornerbrand_report"
REPORT_EXTENSION = "json"
PREVIEW_DIR_NAME = "cornerbrand-preview"

# Fallback stems when the input file name has none (e.g. ".png")
DEFAULT_IMAGE_STEM = "image"
DEFAULT_PDF_STEM = "file"

# ============================================================
# SUPPORTED INPUTS
# ============================================================

# Extension -> Pillow format name
IMAGE_FORMATS = {
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
}
PDF_EXTENSION = "pdf"

# ============================================================
# STAMP SETTINGS
# ============================================================

SIZE_PRESET_RATIOS = {
    "small": 0.08,
    "medium": 0.12,
    "large": 0.16,
}
DEFAULT_SIZE_PRESET = "Medium"

# Explicit size percentages are clamped per target. Raster overlays may grow
# to 300% while PDF stamps stop at 50%.
# TODO: confirm the 300% / 50% split with product before unifying it.
IMAGE_SIZE_PERCENT_RANGE = (1.0, 300.0)
PDF_SIZE_PERCENT_RANGE = (1.0, 50.0)
MARGIN_PERCENT_RANGE = (0.0, 20.0)

# ============================================================
# PDF
# ============================================================

# Guards the Parent walk against cyclic or malformed page trees
MAX_PARENT_HOPS = 32

# garbage=4 compacts the xref table and deduplicates identical streams
PDF_SAVE_OPTIONS = {
    "garbage": 4,
    "deflate": True,
    "clean": True,
}

# ============================================================
# ENCODING
# ============================================================

JPEG_QUALITY = 95
# The final PDF save recompresses the embedded logo anyway
LOGO_PNG_COMPRESS_LEVEL = 1

# ============================================================
# RESULT MARKERS
# ============================================================

CANCELLED_MESSAGE = "Cancelled"
UNSUPPORTED_TYPE_MESSAGE = (
    "Unsupported file type. (jpg/jpeg/png/webp/pdf)"
)

# ============================================================
# STORED SETTINGS DEFAULTS
# ============================================================

DEFAULT_POSITION = "Bottom Right"
DEFAULT_STORED_SIZE_PERCENT = 30
STORED_SIZE_PERCENT_RANGE = (1, 50)
LEGACY_PRESET_PERCENTS = {
    "small": 8,
    "medium": 12,
    "large": 16,
}
