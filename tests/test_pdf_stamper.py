import fitz
import pytest

from conftest import write_pdf
from cornerbrand import pdf_stamper
from cornerbrand.constants import MAX_PARENT_HOPS, OUTPUT_DIR_NAME
from cornerbrand.errors import PdfStampError, PdfStructureError, UnsupportedFileError
from cornerbrand.logo import StampLogo, flatten_alpha_to_white
from cornerbrand.pdf_stamper import PageBox, resolve_page_size, stamp_pdf, stamp_pdfs
from cornerbrand.settings import Corner, ResolvedSettings, StampSettingsInput

MEDIUM_BOTTOM_RIGHT = ResolvedSettings(Corner.BOTTOM_RIGHT, 0.12, 2.0)


class FakeDocument:
    """Just enough of fitz.Document for the page-tree walk."""

    def __init__(self, objects, sources=None):
        # xref -> {key: (kind, value)}
        self.objects = objects
        self.sources = sources or {}

    def xref_get_key(self, xref, key):
        if xref not in self.objects:
            raise ValueError("bad xref")
        return self.objects[xref].get(key, ("null", "null"))

    def xref_object(self, xref, compressed=False):
        return self.sources[xref]


@pytest.fixture
def logo(logo_png):
    return StampLogo.load(logo_png)


def _image_boxes(path):
    doc = fitz.open(path)
    try:
        return [[info["bbox"] for info in page.get_image_info()] for page in doc]
    finally:
        doc.close()


# ------------------------------------------------------------------
# resolve_page_size
# ------------------------------------------------------------------
def test_direct_media_box():
    doc = FakeDocument({5: {"MediaBox": ("array", "[0 0 612 792]")}})
    box = resolve_page_size(doc, 5, 1)
    assert box == PageBox(0.0, 0.0, 612.0, 792.0)
    assert (box.width, box.height) == (612.0, 792.0)


def test_media_box_with_offset_origin():
    doc = FakeDocument({5: {"MediaBox": ("array", "[10 20 110.5 220]")}})
    box = resolve_page_size(doc, 5, 1)
    assert (box.width, box.height) == (100.5, 200.0)


def test_inherited_media_box_through_parents():
    doc = FakeDocument({
        7: {"Parent": ("xref", "3 0 R")},
        3: {"Parent": ("xref", "2 0 R")},
        2: {"MediaBox": ("array", "[0 0 300 400]")},
    })
    assert resolve_page_size(doc, 7, 1) == PageBox(0.0, 0.0, 300.0, 400.0)


def test_indirect_media_box():
    doc = FakeDocument(
        {4: {"MediaBox": ("xref", "9 0 R")}},
        sources={9: "[ 0 0 200 100 ]"},
    )
    assert resolve_page_size(doc, 4, 1) == PageBox(0.0, 0.0, 200.0, 100.0)


def test_cyclic_parent_chain_is_bounded():
    doc = FakeDocument({
        1: {"Parent": ("xref", "2 0 R")},
        2: {"Parent": ("xref", "1 0 R")},
    })
    with pytest.raises(PdfStructureError, match="page 3"):
        resolve_page_size(doc, 1, 3)


def test_too_deep_parent_chain_is_an_error():
    objects = {n: {"Parent": ("xref", f"{n + 1} 0 R")} for n in range(1, MAX_PARENT_HOPS + 1)}
    objects[MAX_PARENT_HOPS + 1] = {"MediaBox": ("array", "[0 0 10 10]")}
    with pytest.raises(PdfStructureError):
        resolve_page_size(FakeDocument(objects), 1, 1)

    # One hop shorter still resolves
    objects[MAX_PARENT_HOPS] = {"MediaBox": ("array", "[0 0 10 10]")}
    assert resolve_page_size(FakeDocument(objects), 1, 1).width == 10.0


def test_missing_media_box_without_parent():
    doc = FakeDocument({1: {"Type": ("name", "/Page")}})
    with pytest.raises(PdfStructureError):
        resolve_page_size(doc, 1, 1)


def test_dangling_parent_reference():
    doc = FakeDocument({1: {"Parent": ("xref", "99 0 R")}})
    with pytest.raises(PdfStructureError):
        resolve_page_size(doc, 1, 1)


@pytest.mark.parametrize(
    "entry",
    [
        ("array", "[0 0 300]"),
        ("array", "[0 0 abc 300]"),
        ("array", "[0 0 0 300]"),
        ("array", "[300 300 0 0]"),
        ("int", "5"),
        ("xref", "garbage"),
    ],
)
def test_malformed_media_box(entry):
    doc = FakeDocument({1: {"MediaBox": entry}})
    with pytest.raises(PdfStructureError, match="page 1"):
        resolve_page_size(doc, 1, 1)


def test_real_document_with_inherited_media_box(tmp_path, logo):
    path = write_pdf(tmp_path / "inherit.pdf", [(300, 300)])
    doc = fitz.open(path)
    page_xref = doc[0].xref
    _, pages_ref = doc.xref_get_key(doc.pdf_catalog(), "Pages")
    pages_xref = int(pages_ref.split()[0])
    doc.xref_set_key(page_xref, "MediaBox", "null")
    doc.xref_set_key(pages_xref, "MediaBox", "[0 0 300 300]")
    patched = tmp_path / "inherited.pdf"
    doc.save(str(patched))
    doc.close()

    doc = fitz.open(str(patched))
    assert doc.xref_get_key(doc[0].xref, "MediaBox")[0] == "null"
    assert resolve_page_size(doc, doc[0].xref, 1) == PageBox(0.0, 0.0, 300.0, 300.0)
    doc.close()

    output_path = stamp_pdf(patched, logo, MEDIUM_BOTTOM_RIGHT)
    assert len(_image_boxes(output_path)[0]) == 1


# ------------------------------------------------------------------
# stamp_pdf
# ------------------------------------------------------------------
def test_two_page_pdf_keeps_pages_and_stamps_each(tmp_path, logo):
    input_path = write_pdf(tmp_path / "input.pdf")

    output_path = stamp_pdf(input_path, logo, MEDIUM_BOTTOM_RIGHT)

    assert output_path == tmp_path / OUTPUT_DIR_NAME / "input_cornerbrand.pdf"
    boxes = _image_boxes(output_path)
    assert len(boxes) == 2
    for page_boxes in boxes:
        assert len(page_boxes) == 1
        # 300pt page: 36pt logo, 6pt margin, bottom-right (top-left origin here)
        assert tuple(page_boxes[0]) == pytest.approx((258, 258, 294, 294), abs=0.01)


def test_mixed_page_sizes_are_sized_independently(tmp_path, logo):
    input_path = write_pdf(tmp_path / "mixed.pdf", [(300, 300), (600, 400)])

    output_path = stamp_pdf(input_path, logo, MEDIUM_BOTTOM_RIGHT)

    first, second = _image_boxes(output_path)
    assert tuple(first[0]) == pytest.approx((258, 258, 294, 294), abs=0.01)
    # 400pt short side: 48pt logo, 8pt margin
    assert tuple(second[0]) == pytest.approx((544, 344, 592, 392), abs=0.01)


def test_top_left_on_pdf(tmp_path, logo):
    input_path = write_pdf(tmp_path / "tl.pdf", [(300, 300)])
    settings = ResolvedSettings(Corner.TOP_LEFT, 0.12, 2.0)

    output_path = stamp_pdf(input_path, logo, settings)

    assert tuple(_image_boxes(output_path)[0][0]) == pytest.approx((6, 6, 42, 42), abs=0.01)


def test_rejects_non_pdf_extension(tmp_path, logo):
    with pytest.raises(UnsupportedFileError):
        stamp_pdf(tmp_path / "input.png", logo, MEDIUM_BOTTOM_RIGHT)


def test_unreadable_pdf(tmp_path, logo):
    broken = tmp_path / "broken.pdf"
    broken.write_bytes(b"definitely not a pdf")
    with pytest.raises(PdfStampError):
        stamp_pdf(broken, logo, MEDIUM_BOTTOM_RIGHT)


def test_zero_page_pdf(tmp_path, logo):
    empty = tmp_path / "empty.pdf"
    empty.write_bytes(
        b"%PDF-1.4\n"
        b"1 0 obj << /Type /Catalog /Pages 2 0 R >> endobj\n"
        b"2 0 obj << /Type /Pages /Kids [] /Count 0 >> endobj\n"
        b"trailer << /Root 1 0 R >>\n"
        b"%%EOF\n"
    )
    with pytest.raises(PdfStampError):
        stamp_pdf(empty, logo, MEDIUM_BOTTOM_RIGHT)
    assert not (tmp_path / OUTPUT_DIR_NAME / "empty_cornerbrand.pdf").exists()


def test_stamp_pdfs_batch_helper(tmp_path, logo_png):
    good = write_pdf(tmp_path / "good.pdf", [(200, 200)])
    broken = tmp_path / "broken.pdf"
    broken.write_bytes(b"nope")
    settings = StampSettingsInput(position="Top Right", margin_percent=0.0, size_percent=80.0)

    results = stamp_pdfs([good, str(broken)], settings, logo_png)

    assert [r.ok for r in results] == [True, False]
    # 80% clamps to 50% for PDFs: 100pt logo on a 200pt page
    assert tuple(_image_boxes(results[0].output_path)[0][0]) == pytest.approx(
        (100, 0, 200, 100), abs=0.01
    )


def test_stamp_pdfs_missing_logo_fails_every_file(tmp_path):
    good = write_pdf(tmp_path / "good.pdf", [(200, 200)])
    settings = StampSettingsInput(position="Top Right", margin_percent=0.0)

    results = stamp_pdfs([good, good], settings, tmp_path / "nope.png")

    assert [r.ok for r in results] == [False, False]
    assert "logo" in results[0].error.lower()


def test_flatten_alpha_to_white():
    from PIL import Image

    half = Image.new("RGBA", (2, 2), (0, 0, 0, 128))
    flat = flatten_alpha_to_white(half)
    assert flat.mode == "RGB"
    r, g, b = flat.getpixel((0, 0))
    assert r == g == b and 120 <= r <= 135


def test_page_failure_aborts_whole_file(tmp_path, logo, monkeypatch):
    input_path = write_pdf(tmp_path / "input.pdf")
    real_insert = pdf_stamper.insert_logo
    pages_seen = []

    def insert_then_fail(page, *args, **kwargs):
        pages_seen.append(page.number + 1)
        if page.number == 1:
            raise RuntimeError("content stream is damaged")
        return real_insert(page, *args, **kwargs)

    monkeypatch.setattr(pdf_stamper, "insert_logo", insert_then_fail)

    with pytest.raises(PdfStampError, match="page 2"):
        stamp_pdf(input_path, logo, MEDIUM_BOTTOM_RIGHT)

    assert pages_seen == [1, 2]
    assert not (tmp_path / OUTPUT_DIR_NAME / "input_cornerbrand.pdf").exists()


def test_failed_save_leaves_no_partial_output(tmp_path, logo, monkeypatch):
    input_path = write_pdf(tmp_path / "input.pdf", [(200, 200)])

    def partial_save(self, filename, **kwargs):
        with open(filename, "wb") as f:
            f.write(b"%PDF-1.7\n% truncated")
        raise RuntimeError("disk full")

    monkeypatch.setattr(fitz.Document, "save", partial_save)

    with pytest.raises(PdfStampError, match="save"):
        stamp_pdf(input_path, logo, MEDIUM_BOTTOM_RIGHT)

    assert list((tmp_path / OUTPUT_DIR_NAME).iterdir()) == []
