"""
PDF text source for statement parsing.

Text is extracted with pdfplumber. Layout-preserving extraction keeps
statement columns aligned and is tried first; plain extraction is the
fallback when layout extraction fails or its text is not a recognized
statement. Both paths feed the same text parser entry point.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import pdfplumber

logger = logging.getLogger(__name__)


class PdfTextExtractionError(Exception):
    """Neither layout-preserving nor plain extraction produced text."""

    pass


def extract_pdf_text(path: Union[str, Path], layout: bool = True) -> str:
    """
    Extract the text of every page, pages joined by newlines.

    Args:
        path: PDF file path
        layout: Preserve column layout (pdfplumber layout mode)

    Raises:
        PdfTextExtractionError: If the file cannot be read as a PDF
    """
    try:
        with pdfplumber.open(path) as pdf:
            pages = [(page.extract_text(layout=layout) or "") for page in pdf.pages]
    except Exception as e:
        raise PdfTextExtractionError(f"Could not extract text from {path}: {e}") from e
    return "\n".join(pages)


def extract_pdf_text_candidates(path: Union[str, Path], prefer_layout: bool = True):
    """
    Yield (mode, text) pairs in the order they should be tried.

    A mode whose extraction fails is logged and skipped; if every mode
    fails, the last error is raised.
    """
    modes = [True, False] if prefer_layout else [False, True]
    last_error: Optional[PdfTextExtractionError] = None
    produced = False

    for layout in modes:
        mode = "layout" if layout else "plain"
        try:
            text = extract_pdf_text(path, layout=layout)
        except PdfTextExtractionError as e:
            logger.warning("%s text extraction failed: %s", mode.capitalize(), e)
            last_error = e
            continue
        if not text.strip():
            logger.warning("%s text extraction produced no text", mode.capitalize())
            continue
        produced = True
        yield mode, text

    if not produced:
        if last_error is not None:
            raise last_error
        raise PdfTextExtractionError(f"No text found in {path}")
