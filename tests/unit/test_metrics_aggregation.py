"""Unit tests for financial metrics aggregation"""

import pytest
from spurz_engine.domain.metrics import aggregate_metrics, clamp_ratio, round_currency, sum_by_class
from spurz_engine.domain.models import CardAccount, EntryClass, LedgerEntry


def test_salary_only_has_full_savings_rate():
    metrics = aggregate_metrics([LedgerEntry(name="Salary", amount=60000, frequency="monthly")], [])

    assert metrics.monthly_income == 60000
    assert metrics.monthly_savings == 60000
    assert metrics.savings_rate == 1.0
    assert metrics.credit_utilization == 0.0
    assert metrics.card_count == 0


def test_sum_by_class_skips_inactive_and_excluded_entries():
    entries = [
        LedgerEntry(name="Salary", amount=50000, frequency="monthly"),
        LedgerEntry(name="Old job", amount=40000, frequency="monthly", is_active=False),
        LedgerEntry(name="Stock gains", amount=9000, frequency="monthly"),
        LedgerEntry(name="Expense: Groceries", amount=1000, frequency="weekly"),
        LedgerEntry(name="Expense: SIP", amount=5000, frequency="monthly"),
        LedgerEntry(name="Expense: Car EMI", amount=8000, frequency="monthly"),
    ]

    totals = sum_by_class(entries)

    assert totals[EntryClass.INCOME] == 50000
    assert totals[EntryClass.EXPENSE] == 4330
    assert totals[EntryClass.INVESTMENT] == 5000
    assert totals[EntryClass.LOAN_PAYMENT] == 8000


def test_totals_round_half_up():
    totals = sum_by_class([LedgerEntry(name="Expense: Coffee", amount=100.5, frequency="monthly")])
    assert totals[EntryClass.EXPENSE] == 101


def test_savings_floored_at_zero():
    entries = [
        LedgerEntry(name="Salary", amount=20000, frequency="monthly"),
        LedgerEntry(name="Expense: Rent", amount=30000, frequency="monthly"),
    ]

    metrics = aggregate_metrics(entries, [])

    assert metrics.monthly_savings == 0
    assert metrics.savings_rate == 0.0


def test_credit_metrics_from_active_cards():
    cards = [
        CardAccount(bank_name="HDFC", card_name="Regalia", credit_limit=100000, current_balance=90000),
        CardAccount(bank_name="SBI", card_name="Old", credit_limit=50000, current_balance=50000, is_active=False),
    ]

    metrics = aggregate_metrics([LedgerEntry(name="Salary", amount=100000, frequency="monthly")], cards)

    assert metrics.credit_utilization == pytest.approx(0.9)
    assert metrics.debt_to_income_ratio == pytest.approx(0.9)
    assert metrics.total_credit_limit == 100000
    assert metrics.available_credit == 10000
    assert metrics.card_count == 1


def test_ratios_clamped_and_zero_guarded():
    cards = [CardAccount(bank_name="Axis", card_name="Ace", credit_limit=10000, current_balance=25000)]

    metrics = aggregate_metrics([], cards)

    assert metrics.credit_utilization == 1.0
    assert metrics.debt_to_income_ratio == 0.0
    assert metrics.savings_rate == 0.0


def test_zero_limit_cards_do_not_divide_by_zero():
    cards = [CardAccount(bank_name="Axis", card_name="Ace", credit_limit=0, current_balance=0)]
    assert aggregate_metrics([], cards).credit_utilization == 0.0


def test_helpers():
    assert clamp_ratio(-0.5) == 0.0
    assert clamp_ratio(1.5) == 1.0
    assert round_currency(2.5) == 3.0
