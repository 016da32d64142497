"""
Bank statement text → Structured transactions → Fuzzy reconciliation

A deterministic, testable pipeline that parses layout-preserved bank statement
text (personal and business dialects) into transaction records and reconciles
them against independently captured records with score-based deduplication.
"""

__version__ = "0.1.0"
