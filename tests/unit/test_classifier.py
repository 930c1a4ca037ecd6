"""Unit tests for ledger classification and monthly normalization"""

import math

import pytest
from spurz_engine.domain.classifier import classify_entry, classify_name, normalize_monthly
from spurz_engine.domain.models import EntryClass, Frequency, LedgerEntry


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Salary", EntryClass.INCOME),
        ("Freelance design", EntryClass.INCOME),
        ("Expense: Dining", EntryClass.EXPENSE),
        ("EXPENSE: Rent", EntryClass.EXPENSE),
        ("Expense: Mutual Fund SIP", EntryClass.INVESTMENT),
        ("Expense: Car Loan", EntryClass.LOAN_PAYMENT),
        ("Expense: Home EMI", EntryClass.LOAN_PAYMENT),
        ("Stock dividends", None),
        ("Personal loan", None),
    ],
)
def test_classify_name(name, expected):
    assert classify_name(name) == expected


def test_investment_keyword_wins_over_loan():
    """An expense naming both an investment and a loan keyword counts as investment"""
    assert classify_name("Expense: Gold loan") == EntryClass.INVESTMENT


def test_blank_name_is_income():
    assert classify_name(None) == EntryClass.INCOME
    assert classify_name("   ") == EntryClass.INCOME


def test_weekly_expense_normalized():
    """A weekly 1000 dining expense is 4330 a month"""
    classified = classify_entry(LedgerEntry(name="Expense: Dining", amount=1000, frequency="weekly"))

    assert classified.entry_class == EntryClass.EXPENSE
    assert classified.monthly_amount == pytest.approx(4330)


@pytest.mark.parametrize(
    "frequency, expected",
    [
        (Frequency.WEEKLY, 433.0),
        ("bi-weekly", 217.0),
        ("monthly", 100.0),
        ("one-time", 0.0),
        ("quarterly", 0.0),
    ],
)
def test_normalize_monthly_frequencies(frequency, expected):
    assert normalize_monthly(100, frequency) == pytest.approx(expected)


@pytest.mark.parametrize("amount", [None, "abc", -50, math.nan, math.inf, True])
def test_malformed_amounts_contribute_zero(amount):
    assert normalize_monthly(amount, "monthly") == 0.0


def test_numeric_string_amount_is_accepted():
    assert normalize_monthly("2500", "monthly") == 2500.0
