"""Test fixtures and utilities."""

from datetime import date
from decimal import Decimal

import pytest

from statement_ingest.schemas.transaction import (
    StagedTransaction,
    TransactionSource,
    TransactionType,
)

# Personal (Virtual Wallet) statement, layout-preserved text
SAMPLE_PERSONAL_STATEMENT = """
Virtual Wallet Spend Statement
PNC Bank
Account Number: XX-XXXX-1234
For the period 01/01/2024 to 01/31/2024

Balance Summary
Beginning balance    Deposits and other additions    Checks and other deductions    Ending balance
1,000.00 2,500.00 1,349.82 2,150.18

Deposits and Other Additions
Date    Amount    Description
01/05 2,500.00 Direct Deposit Payroll Acme Corp
Banking/Debit Card Withdrawals and Purchases
01/08 45.20 POS Purchase Shell Oil 12345
01/10 01/10 01/10 56.34 Wawa 123 NJ 36.28 Starbucks Store 1234567890 12.00 Dunkin 99
Online and Electronic Banking Deductions
01/15 1,200.00 Rent Payment Web Pmt 0123456789
01/20 500.00
Other Deductions
Daily Balance Detail
01/05 3,500.00 01/08 3,454.80
01/10 3,350.18
"""

# Personal statement spanning a year boundary
SAMPLE_CROSS_YEAR_STATEMENT = """
Virtual Wallet Spend Statement
Account Number: XX-XXXX-9876
For the period 12/28/2023 to 01/31/2024

Banking/Debit Card Withdrawals and Purchases
12/30 50.00 FOO
01/05 20.00 BAR
02/15 10.00 Outside Period
"""

# Business Checking statement, several sections, continuation and page break
SAMPLE_BUSINESS_STATEMENT = """
Business Checking
Account Number: 12-3456-7890
For the Period 01/01/2024 to 01/31/2024
ACME LANDSCAPING LLC
Balance Summary
Beginning balance    Deposits and    Checks and    Ending
                     other additions    other deductions    balance
5,000.00 3,000.00 1,250.00 6,750.00

Deposits and Other Additions
Deposits
Date posted Amount Transaction description
01/03 1,500.00 Mobile Deposit
ACH Additions
01/10 1,500.00 Corporate ACH Stripe Transfer
ST-A1B2C3
Checks and Other Deductions
Checks and Substitute Checks
Date posted Check number Amount Reference number
01/12 1001 * 400.00 0987654321
Debit Card Purchases
01/15 250.00 Debit Card Purchase Home Depot
#4411 Newark NJ
- continued on next page
Page 2 of 3
ACME LANDSCAPING LLC
01/18 100.00 Debit Card Purchase Amazon Mktp
ACH Deductions
01/20 500.00 Corporate ACH Loan Pmt SBA Loan
Daily Balance
Date Ledger balance
01/02 88,424.04
01/03 6,500.00
01/10 8,000.00
Activity Detail
For 24-hour account information, sign on to pnc.com/mybusiness
"""

# Statement text copied out of a PDF viewer
SAMPLE_PASTED_STATEMENT = """
For the Period 01/01/2024 to 01/31/2024
Deposits
01/03 1,500.00 Mobile Deposit
Debit Card Purchases
01/15 250.00 Debit Card Purchase Home Depot
#4411 Newark NJ
01/16 01/16 30.00 Shell Oil 1234567890 NJ 20.00 Wawa Store
Checks and Substitute Checks
01/12 1001 * 400.00 0987654321
Daily Balance
01/03 6,500.00
"""

# Freeform lines typed or copied from a spreadsheet
SAMPLE_FREEFORM_TEXT = (
    "2024-01-05, Coffee Shop, -4.50\n"
    "01/06/2024\tSalary\t2000.00\n"
    "Lunch at cafe 01/07/2024 (12.75)\n"
    "not a transaction at all\n"
)


@pytest.fixture
def personal_statement_text() -> str:
    """Sample personal statement text."""
    return SAMPLE_PERSONAL_STATEMENT


@pytest.fixture
def cross_year_statement_text() -> str:
    """Sample personal statement spanning Dec 2023 to Jan 2024."""
    return SAMPLE_CROSS_YEAR_STATEMENT


@pytest.fixture
def business_statement_text() -> str:
    """Sample business statement text."""
    return SAMPLE_BUSINESS_STATEMENT


@pytest.fixture
def pasted_statement_text() -> str:
    """Sample pasted statement text."""
    return SAMPLE_PASTED_STATEMENT


@pytest.fixture
def freeform_text() -> str:
    """Sample freeform manual input."""
    return SAMPLE_FREEFORM_TEXT


def make_staged(
    txn_date: date = date(2024, 1, 15),
    amount: str = "-42.50",
    description: str = "ACME Markets #123",
    source: TransactionSource = TransactionSource.PDF,
    **kwargs,
) -> StagedTransaction:
    """Build a StagedTransaction with sensible defaults."""
    value = Decimal(amount)
    return StagedTransaction(
        date=txn_date,
        amount=value,
        description=description,
        type=TransactionType.DEBIT if value < 0 else TransactionType.CREDIT,
        source=source,
        **kwargs,
    )


@pytest.fixture
def staged():
    """Factory fixture for StagedTransaction objects."""
    return make_staged
