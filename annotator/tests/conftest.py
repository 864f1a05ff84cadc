"""
Shared fixtures for annotation tests.

Source PDFs are generated with PyMuPDF and their header is rewritten to
PDF 1.4, the highest version the compositor accepts by default.
"""

import re
from pathlib import Path

import fitz  # PyMuPDF
import pytest

from annotator.config import Settings

A4_PORTRAIT = (595.0, 842.0)
A4_LANDSCAPE = (842.0, 595.0)


def pdf_bytes(page_sizes=(A4_PORTRAIT,), version: str = "1.4", label: str = "Source page") -> bytes:
    """Build a PDF with one labelled text line per page."""
    doc = fitz.open()
    for index, (width, height) in enumerate(page_sizes, start=1):
        page = doc.new_page(width=width, height=height)
        page.insert_text((72, 72), f"{label} {index}", fontsize=12)
    data = doc.tobytes()
    doc.close()
    return re.sub(rb"^%PDF-\d\.\d", f"%PDF-{version}".encode(), data, count=1)


@pytest.fixture
def make_pdf(tmp_path):
    """Factory writing a generated PDF into tmp_path."""
    def _make(name: str = "source.pdf", **kwargs) -> Path:
        path = tmp_path / name
        path.write_bytes(pdf_bytes(**kwargs))
        return path
    return _make


@pytest.fixture
def pt_settings(tmp_path) -> Settings:
    """Settings with canvas units equal to PDF points."""
    return Settings(
        unit="pt",
        storage_dir=tmp_path / "storage",
        tmp_dir=tmp_path / "tmp",
    )


@pytest.fixture
def page():
    """A blank A4 page for drawing tests."""
    doc = fitz.open()
    yield doc.new_page(width=A4_PORTRAIT[0], height=A4_PORTRAIT[1])
    doc.close()


@pytest.fixture
def build_pdf():
    """The pdf_bytes builder, for tests that open documents in memory."""
    return pdf_bytes
