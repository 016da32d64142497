"""
CLI runner module.

Provides commands:
- parse: Statement text or PDF -> parsed statement JSON
- parse-manual: Pasted text -> staged transactions JSON
- dedupe: Two staged transaction sets -> deduplication result
- reconcile: Parse statement and pasted text, then deduplicate
- init-config: Write a default config file
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
