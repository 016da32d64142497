"""
Merchant categorization.

Keyword rules mapping free-text transaction descriptions to spending
categories.
"""

from .rules import CATEGORY_RULES, UNCATEGORIZED, MerchantCategorizer, categorize_merchant

__all__ = [
    "CATEGORY_RULES",
    "UNCATEGORIZED",
    "MerchantCategorizer",
    "categorize_merchant",
]
