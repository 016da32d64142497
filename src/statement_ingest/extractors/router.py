"""
Statement router - detects the dialect and applies the matching parser.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from ..categorization import MerchantCategorizer
from ..config import ParserConfig
from ..schemas.transaction import ParsedStatement
from .base import BaseStatementParser, UnknownFormatError
from .business import BusinessStatementParser
from .pdf_text import PdfTextExtractionError, extract_pdf_text_candidates
from .personal import PersonalStatementParser

logger = logging.getLogger(__name__)


class StatementRouter:
    """
    Routes statement text to the parser for its dialect.

    Parsers are tried in priority order; the first whose marker is present
    in the text parses it:
    1. Personal (Virtual Wallet)
    2. Business (Business Checking)
    """

    def __init__(
        self,
        config: Optional[ParserConfig] = None,
        categorizer: Optional[MerchantCategorizer] = None,
    ):
        """Initialize with default parsers."""
        self.config = config or ParserConfig()
        categorizer = categorizer or MerchantCategorizer()
        self.parsers: list[BaseStatementParser] = [
            PersonalStatementParser(self.config, categorizer),
            BusinessStatementParser(self.config, categorizer),
        ]
        # Sort by priority (highest first)
        self.parsers.sort(key=lambda p: -p.priority)

    def detect(self, text: str) -> Optional[BaseStatementParser]:
        """Return the parser for the text's dialect, or None."""
        for parser in self.parsers:
            if parser.can_parse(text):
                return parser
        return None

    def parse_text(self, text: str) -> ParsedStatement:
        """
        Parse layout-preserved statement text.

        Raises:
            UnknownFormatError: If no dialect is recognized or no period is found
        """
        parser = self.detect(text)
        if parser is None:
            raise UnknownFormatError("Unknown statement format: no supported statement marker found")
        logger.info("Detected %s statement", parser.name)
        return parser.parse(text)

    def parse_pdf(self, path: Union[str, Path]) -> ParsedStatement:
        """
        Extract text from a PDF and parse it.

        Layout-preserving text is tried first. If it cannot be extracted or
        is not a recognized statement, plain text is tried next.

        Raises:
            UnknownFormatError: If no extracted text is a recognized statement
            PdfTextExtractionError: If no text could be extracted at all
        """
        last_error: Optional[UnknownFormatError] = None
        for mode, text in extract_pdf_text_candidates(path, self.config.prefer_layout_text):
            try:
                return self.parse_text(text)
            except UnknownFormatError as e:
                logger.info("%s text not recognized: %s", mode.capitalize(), e)
                last_error = e
        if last_error is None:
            raise PdfTextExtractionError(f"No text extracted from {path}")
        raise last_error


def parse_statement_text(text: str, config: Optional[ParserConfig] = None) -> ParsedStatement:
    """Parse statement text with the default parsers."""
    return StatementRouter(config).parse_text(text)


def parse_statement_pdf(path: Union[str, Path], config: Optional[ParserConfig] = None) -> ParsedStatement:
    """Parse a statement PDF with the default parsers."""
    return StatementRouter(config).parse_pdf(path)
