"""
PDF Version Check

Reads the version declared in a PDF file header and enforces the highest
version the compositor accepts. Newer files must be converted by the
version normalizer before they reach the assembler.
"""

import logging
import re
from pathlib import Path

from .exceptions import SourceNotFound, UnsupportedPdfVersion

logger = logging.getLogger(__name__)

_HEADER = re.compile(rb"%PDF-(\d+)\.(\d+)")

# The header must appear within the first kilobyte of the file
HEADER_SEARCH_BYTES = 1024


def _as_tuple(version: str) -> tuple[int, ...]:
    return tuple(int(part) for part in version.split("."))


def read_pdf_version(pdf_path: Path | str) -> str:
    """
    Return the version declared in a PDF header, e.g. ``"1.4"``.

    Raises:
        SourceNotFound: If the file cannot be read or has no PDF header
    """
    pdf_path = Path(pdf_path)
    try:
        with open(pdf_path, "rb") as f:
            head = f.read(HEADER_SEARCH_BYTES)
    except OSError as e:
        raise SourceNotFound(
            f"Source PDF not readable: {pdf_path}", details={"path": str(pdf_path)}
        ) from e

    match = _HEADER.search(head)
    if not match:
        raise SourceNotFound(
            f"Source file is not a PDF: {pdf_path}", details={"path": str(pdf_path)}
        )
    return f"{int(match.group(1))}.{int(match.group(2))}"


def ensure_supported_version(pdf_path: Path | str, max_version: str = "1.4") -> str:
    """
    Check that a PDF's header version does not exceed ``max_version``.

    Returns:
        The declared version

    Raises:
        SourceNotFound: If the file cannot be read or is not a PDF
        UnsupportedPdfVersion: If the declared version is too new
    """
    version = read_pdf_version(pdf_path)
    if _as_tuple(version) > _as_tuple(max_version):
        logger.warning(f"{Path(pdf_path).name} declares PDF {version}, above supported {max_version}")
        raise UnsupportedPdfVersion(version, max_version)
    return version
