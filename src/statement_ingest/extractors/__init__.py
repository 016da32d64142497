"""
Statement text parsers.

Provides:
- StatementRouter: Detects the statement dialect and dispatches
- Personal (Virtual Wallet) and Business Checking statement parsers
- Pasted-text parser for manually captured transactions
- PDF text source (layout-preserving first, plain fallback)
- Base classes and errors for custom parsers
"""

from .base import (
    BaseStatementParser,
    MalformedSectionError,
    StatementParseError,
    StatementPeriod,
    UnknownFormatError,
    UnsupportedPeriodError,
)
from .business import BusinessStatementParser
from .manual import PastedTextParser, parse_manual_input
from .pdf_text import PdfTextExtractionError, extract_pdf_text
from .personal import PersonalStatementParser
from .router import StatementRouter, parse_statement_pdf, parse_statement_text

__all__ = [
    "StatementRouter",
    "parse_statement_text",
    "parse_statement_pdf",
    "PersonalStatementParser",
    "BusinessStatementParser",
    "PastedTextParser",
    "parse_manual_input",
    "extract_pdf_text",
    "PdfTextExtractionError",
    "BaseStatementParser",
    "StatementPeriod",
    "StatementParseError",
    "UnknownFormatError",
    "UnsupportedPeriodError",
    "MalformedSectionError",
]
