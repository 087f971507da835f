"""
Pytest configuration and shared fixture builders.
"""

# Standard Library
import os
import sys

# PIP3 modules
import fitz
import pytest
from PIL import Image

#============================================


def _ensure_repo_on_path() -> None:
    """
    Ensure the repository root is on sys.path.
    """
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


_ensure_repo_on_path()

BACKGROUND = (200, 200, 200, 255)
RED = (255, 0, 0, 255)


#============================================
def write_png(path, width, height, rgba=BACKGROUND):
    """
    Write a single-colour PNG and return its path as a string.
    """
    Image.new("RGBA", (width, height), rgba).save(path, format="PNG")
    return str(path)


#============================================
def write_pdf(path, sizes=((300, 300), (300, 300))):
    """
    Write a blank PDF with one page per (width, height) entry.
    """
    doc = fitz.open()
    for width, height in sizes:
        doc.new_page(width=width, height=height)
    doc.save(str(path))
    doc.close()
    return str(path)


#============================================
def count_non_background(path, background=BACKGROUND):
    with Image.open(path) as img:
        pixels = img.convert("RGBA").getdata()
        return sum(1 for pixel in pixels if pixel != background)


@pytest.fixture
def logo_png(tmp_path):
    """An opaque 8x8 red logo."""
    return write_png(tmp_path / "logo.png", 8, 8, RED)
