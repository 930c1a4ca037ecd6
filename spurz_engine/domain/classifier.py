"""Ledger classifier - maps a raw ledger entry to a semantic class and a monthly amount"""

import math
from typing import Optional

from spurz_engine.domain.models import ClassifiedEntry, EntryClass, Frequency, LedgerEntry

EXPENSE_PREFIX = "expense:"
INVESTMENT_KEYWORDS = ("stock", "mutual", "sip", "investment", "crypto", "gold", "fd", "deposit", "bond")
LOAN_KEYWORDS = ("loan", "emi")

# Average occurrences per month
MONTHLY_MULTIPLIERS = {
    Frequency.WEEKLY.value: 4.33,
    Frequency.BI_WEEKLY.value: 2.17,
    Frequency.MONTHLY.value: 1.0,
    Frequency.ONE_TIME.value: 0.0,  # windfalls are not part of the monthly baseline
}


def _contains_any(text: str, keywords: tuple) -> bool:
    return any(keyword in text for keyword in keywords)


def classify_name(name: Optional[str]) -> Optional[EntryClass]:
    """
    Derive the entry class from the entry name (case-insensitive).

    Rules:
    - "Expense:" prefix → expense, or investment / loan payment when the name
      also carries one of those keywords (investment is checked first)
    - no prefix and an investment or loan keyword → None (excluded from income)
    - anything else → income

    Keywords match as substrings, so "Expense: Home EMI" is a loan payment.
    """
    label = (name or "").strip().lower()

    if label.startswith(EXPENSE_PREFIX):
        if _contains_any(label, INVESTMENT_KEYWORDS):
            return EntryClass.INVESTMENT
        if _contains_any(label, LOAN_KEYWORDS):
            return EntryClass.LOAN_PAYMENT
        return EntryClass.EXPENSE

    if _contains_any(label, INVESTMENT_KEYWORDS) or _contains_any(label, LOAN_KEYWORDS):
        return None

    return EntryClass.INCOME


def normalize_monthly(amount, frequency) -> float:
    """
    Convert an amount to its monthly equivalent.

    Unrecognized frequencies and malformed amounts (None, NaN, infinite,
    negative or non-numeric) contribute 0 instead of raising.
    """
    if isinstance(frequency, Frequency):
        frequency = frequency.value
    multiplier = MONTHLY_MULTIPLIERS.get(frequency, 0.0)

    if isinstance(amount, bool):
        return 0.0
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0

    return value * multiplier


def classify_entry(entry: LedgerEntry) -> ClassifiedEntry:
    """Classify a ledger entry and normalize its amount to a monthly figure"""
    return ClassifiedEntry(
        entry_class=classify_name(entry.name),
        monthly_amount=normalize_monthly(entry.amount, entry.frequency),
    )
