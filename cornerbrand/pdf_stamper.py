"""PDF path: walk the page tree, size each page, insert the logo per page."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import NamedTuple, Sequence

import fitz  # PyMuPDF

from cornerbrand.constants import MAX_PARENT_HOPS, PDF_SAVE_OPTIONS
from cornerbrand.errors import (
    PdfStampError,
    PdfStructureError,
    StampError,
    UnsupportedFileError,
)
from cornerbrand.geometry import LogoRect, place_on_page
from cornerbrand.logo import StampLogo
from cornerbrand.path_policy import (
    PathLike,
    build_output_pdf_path,
    discard_partial_output,
    is_supported_pdf,
)
from cornerbrand.results import StampFileResult, failure_results
from cornerbrand.settings import (
    ResolvedSettings,
    StampSettingsInput,
    StampTarget,
    resolve_settings,
)

logger = logging.getLogger(__name__)

_REFERENCE_RE = re.compile(r"^\s*(\d+)\s+\d+\s+R\s*$")


class PageBox(NamedTuple):
    """A MediaBox ``[llx lly urx ury]`` in PDF user space."""
    llx: float
    lly: float
    urx: float
    ury: float

    @property
    def width(self) -> float:
        return self.urx - self.llx

    @property
    def height(self) -> float:
        return self.ury - self.lly


# ------------------------------------------------------------------
# Page tree
# ------------------------------------------------------------------
def _reference_xref(value: str) -> int | None:
    match = _REFERENCE_RE.match(value)
    return int(match.group(1)) if match else None


def _get_key(doc: fitz.Document, xref: int, key: str, page_number: int) -> tuple[str, str]:
    try:
        return doc.xref_get_key(xref, key)
    except Exception as e:
        raise PdfStructureError(
            f"Could not read the object of page {page_number}: {e}"
        ) from e


def parse_media_box(doc: fitz.Document, kind: str, value: str) -> PageBox:
    """
    Parse a MediaBox entry as returned by ``Document.xref_get_key``.

    Accepts a direct array or an indirect reference to one.

    Raises:
        PdfStructureError: not a 4-number array, or a non-positive size.
    """
    if kind == "xref":
        xref = _reference_xref(value)
        if xref is None:
            raise PdfStructureError(f"MediaBox reference is malformed: {value}")
        try:
            value = doc.xref_object(xref, compressed=True)
        except Exception as e:
            raise PdfStructureError(
                f"Could not read the MediaBox object {xref}: {e}"
            ) from e
    elif kind != "array":
        raise PdfStructureError("MediaBox must be an array.")

    text = value.strip()
    if not (text.startswith("[") and text.endswith("]")):
        raise PdfStructureError("MediaBox must be an array.")

    items = text[1:-1].split()
    if len(items) != 4:
        raise PdfStructureError("MediaBox must have exactly 4 entries.")

    try:
        box = PageBox(*(float(item) for item in items))
    except ValueError:
        raise PdfStructureError("MediaBox coordinates must be numbers.") from None

    if box.width <= 0 or box.height <= 0:
        raise PdfStructureError("MediaBox width/height must be positive.")
    return box


def resolve_page_size(doc: fitz.Document, page_xref: int, page_number: int) -> PageBox:
    """
    Find the MediaBox governing a page.

    Looks at the page dictionary first, then follows ``Parent`` references
    (inherited MediaBox) for at most ``MAX_PARENT_HOPS`` objects.

    Raises:
        PdfStructureError: no MediaBox within the hop limit, a broken parent
            chain, or a malformed MediaBox.
    """
    current = page_xref
    for _ in range(MAX_PARENT_HOPS):
        kind, value = _get_key(doc, current, "MediaBox", page_number)
        if kind != "null":
            try:
                return parse_media_box(doc, kind, value)
            except PdfStructureError as e:
                raise PdfStructureError(
                    f"Could not parse the MediaBox of page {page_number}: {e}"
                ) from e

        kind, value = _get_key(doc, current, "Parent", page_number)
        parent = _reference_xref(value) if kind == "xref" else None
        if parent is None:
            break
        current = parent

    raise PdfStructureError(f"Could not resolve the size of page {page_number}.")


# ------------------------------------------------------------------
# Insertion
# ------------------------------------------------------------------
def insert_logo(
    page: fitz.Page,
    png_bytes: bytes,
    box: PageBox,
    rect: LogoRect,
    image_xref: int = 0,
) -> int:
    """
    Draw the logo on ``page`` at ``rect`` (PDF space, relative to the MediaBox
    origin). Pass the xref returned by an earlier call to reuse that image
    object instead of embedding the bytes again.

    Returns:
        The xref of the image object.
    """
    pdf_rect = fitz.Rect(
        box.llx + rect.x,
        box.lly + rect.y,
        box.llx + rect.x + rect.width,
        box.lly + rect.y + rect.height,
    )
    target_rect = pdf_rect * page.transformation_matrix

    # Normalize the content stream so existing transforms don't affect the logo
    page.clean_contents()

    if image_xref:
        return page.insert_image(
            target_rect, xref=image_xref, keep_proportion=False, overlay=True
        )
    return page.insert_image(
        target_rect, stream=png_bytes, keep_proportion=False, overlay=True
    )


def _stamp_document(doc: fitz.Document, logo: StampLogo, settings: ResolvedSettings) -> None:
    png_bytes = logo.flattened_png()
    image_xref = 0

    for page in doc:
        page_number = page.number + 1
        box = resolve_page_size(doc, page.xref, page_number)
        rect = place_on_page(box.width, box.height, logo.width, logo.height, settings)
        logger.debug("Page %d (%.1fx%.1f): logo at %s", page_number, box.width, box.height, rect)

        try:
            image_xref = insert_logo(page, png_bytes, box, rect, image_xref)
        except Exception as e:
            raise PdfStampError(f"Failed to insert the logo on page {page_number}: {e}") from e


def stamp_pdf(
    input_path: PathLike,
    logo: StampLogo,
    settings: ResolvedSettings,
    output_base_dir: PathLike | None = None,
) -> Path:
    """
    Stamp every page of one PDF and save a compacted copy.

    Any page failure aborts the whole file; nothing is written in that case.

    Raises:
        UnsupportedFileError: extension is not ``.pdf``.
        PdfStructureError: page tree / MediaBox problems.
        PdfStampError: unreadable file, no pages, insertion or save failure.
        OutputPathError: the output folder could not be prepared.
    """
    input_path = Path(input_path)
    if not is_supported_pdf(input_path):
        raise UnsupportedFileError("Unsupported PDF format. (.pdf)")

    try:
        doc = fitz.open(str(input_path))
    except Exception as e:
        raise PdfStampError(f"Could not read the PDF: {e}") from e

    try:
        if not doc.is_pdf:
            raise PdfStampError("The file is not a PDF document.")
        if doc.page_count == 0:
            raise PdfStampError("The PDF has no pages.")

        _stamp_document(doc, logo, settings)

        output_path = build_output_pdf_path(input_path, output_base_dir)
        try:
            doc.save(str(output_path), **PDF_SAVE_OPTIONS)
        except Exception as e:
            discard_partial_output(output_path)
            raise PdfStampError(f"Could not save the stamped PDF: {e}") from e
    finally:
        doc.close()

    logger.info("Stamped %s -> %s", input_path, output_path)
    return output_path


def stamp_pdfs(
    paths: Sequence[str],
    settings_input: StampSettingsInput,
    logo_path: PathLike,
    output_base_dir: PathLike | None = None,
) -> list[StampFileResult]:
    """Stamp a list of PDFs with one logo and one set of settings."""
    try:
        settings = resolve_settings(settings_input, StampTarget.PDF)
        logo = StampLogo.load(logo_path)
        logo.flattened_png()
    except StampError as e:
        return failure_results(paths, str(e))

    results: list[StampFileResult] = []
    for input_path in paths:
        try:
            output_path = stamp_pdf(input_path, logo, settings, output_base_dir)
            results.append(StampFileResult.success(input_path, output_path))
        except StampError as e:
            logger.warning("Failed %s: %s", input_path, e)
            results.append(StampFileResult.failure(input_path, str(e)))
    return results
