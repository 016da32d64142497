"""
Keyword-based merchant categorizer.

Rules are an ordered priority list of (category, keywords). The lowercased
description is tested top to bottom; the first rule with any keyword
contained in the description wins. No match yields UNCATEGORIZED.

Order is part of the contract: "WALMART SUPERCENTER GAS STATION" is
Fuel & Gas because that rule precedes Groceries & Shopping, and generic
Shopping is always last so it never shadows a more specific store rule.
Some keywords carry a trailing space to avoid matching inside longer
words (e.g. "mobil " must not match "t-mobile").
"""

import logging
from collections.abc import Sequence

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"

CATEGORY_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "Income",
        (
            "stripe", "etsy", "paypal", "venmo", "square", "mobile deposit",
            "direct deposit", "payroll", "ach credit", "ach addition",
            "corporate ach", "pos return", "refund", "credit memo", "interest paid",
        ),
    ),
    (
        "Fuel & Gas",
        (
            "us gas", "gas station", "costco gas", "shell", "exxon", "mobil ",
            "bp ", "chevron", "sunoco", "wawa", "speedway",
        ),
    ),
    (
        "Groceries & Shopping",
        (
            "acme", "shoprite", "stop & shop", "aldi", "wegmans", "whole foods",
            "trader joe", "publix", "kroger", "quality meat", "walmart", "wal-mart",
            "costco", "target", "homegoods", "home goods", "hobby lobby",
            "dollar tree", "dollartree", "dollar general", "five below",
        ),
    ),
    (
        "Food & Dining",
        (
            "jersey mike", "chick-fil-a", "chick fil a", "dunkin", "starbucks",
            "coffee", "mcdonald", "wendy", "burger king", "taco bell", "chipotle",
            "panera", "restaurant", "cafe", "diner", "pizza", "sushi", "grill",
            "bagel", "uber eats", "doordash", "grubhub",
        ),
    ),
    ("Online Shopping", ("amazon", "amzn", "ebay", "aliexpress", "wish.com")),
    (
        "Auto & Transport",
        (
            "car wash", "lyft", "uber", "taxi", "autozone", "advance auto",
            "jiffy lube", "mavis", "parking", "ez pass", "e-zpass", "toll ",
        ),
    ),
    ("Pets", ("petsmart", "petco", "pet supplies", "veterinar")),
    (
        "Housing",
        (
            "mortgage", "rent payment", "rental", "landlord", "pnc pymt", "hoa ",
            "condo", "property management",
        ),
    ),
    (
        "Utilities",
        (
            "american water", "elizabethtown gas", "pseg", "firstenergy",
            "electric", "water", "utility", "gas bill",
        ),
    ),
    (
        "Phone & Internet",
        ("tmobile", "t-mobile", "verizon", "at&t", "sprint", "wireless", "phone"),
    ),
    ("Cable & Internet", ("optimum", "comcast", "xfinity", "cable", "spectrum", "fios")),
    (
        "Entertainment",
        (
            "netflix", "hulu", "disney", "spotify", "youtube", "hbo", "paramount",
            "apple tv", "peacock", "cinema", "theater",
        ),
    ),
    ("Subscriptions", ("apple.com", "google one", "subscription", "membership", "software")),
    ("Loan Payment", ("sba loan", "loan payment", "loan pmt", "student loan")),
    ("Taxes", ("irs treas", "treasury", "tax", "dmv", "state of", "township", "town of ")),
    (
        "Credit Card Payment",
        ("credit card pmt", "online credit card", "card pmt", "card payment", "bill pay"),
    ),
    (
        "Bank Fees",
        ("service charge", "fee", "maintenance", "overdraft", "nsf", "wire fee"),
    ),
    ("Education", ("school", "education", "university", "college", "tuition")),
    (
        "Healthcare",
        ("cvs", "walgreens", "pharmacy", "doctor", "medical", "dental", "hospital", "health"),
    ),
    ("Insurance", ("insurance", "geico", "progressive", "state farm", "allstate")),
    ("Transfers", ("zelle", "wire transfer", "online transfer", "ach deduction")),
    ("Checks", ("check #", "check number")),
    (
        "Shopping",
        (
            "home depot", "dicks sporting", "dick's sporting", "clothing", "apparel",
            "liquor", "total wine", "boutique", "outlet", "mall", "shop", "store",
        ),
    ),
)


class MerchantCategorizer:
    """First-match-wins categorizer over an ordered rule table."""

    def __init__(
        self,
        rules: Sequence[tuple[str, Sequence[str]]] = CATEGORY_RULES,
        default: str = UNCATEGORIZED,
    ) -> None:
        self.rules = tuple((category, tuple(k.lower() for k in keywords)) for category, keywords in rules)
        self.default = default

    def categorize(self, description: str | None) -> str:
        """Return the category of the first matching rule, or the default."""
        if not description:
            return self.default
        desc = description.lower()
        for category, keywords in self.rules:
            if any(keyword in desc for keyword in keywords):
                return category
        logger.debug("No category rule matched: %s", description)
        return self.default

    @property
    def categories(self) -> list[str]:
        """Categories in priority order."""
        return [category for category, _ in self.rules]


_default_categorizer = MerchantCategorizer()


def categorize_merchant(description: str | None) -> str:
    """Categorize a description with the default rule table."""
    return _default_categorizer.categorize(description)
