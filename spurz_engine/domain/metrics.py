"""Metrics aggregator - turns classified ledger entries and card accounts into FinancialMetrics"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Dict, Iterable, List

from spurz_engine.domain.classifier import classify_entry
from spurz_engine.domain.models import CardAccount, EntryClass, FinancialMetrics, LedgerEntry


def clamp_ratio(value: float) -> float:
    """Clamp a ratio into [0, 1]"""
    return min(1.0, max(0.0, value))


def round_currency(amount: float) -> float:
    """Round half-up to whole currency units"""
    try:
        return float(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return 0.0


def _non_negative(value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if number > 0 else 0.0


def sum_by_class(entries: Iterable[LedgerEntry]) -> Dict[EntryClass, float]:
    """Monthly totals per entry class over active entries"""
    totals = {entry_class: 0.0 for entry_class in EntryClass}

    for entry in entries:
        if not entry.is_active:
            continue
        classified = classify_entry(entry)
        if classified.entry_class is None:
            continue
        totals[classified.entry_class] += classified.monthly_amount

    return {entry_class: round_currency(total) for entry_class, total in totals.items()}


def aggregate_metrics(entries: Iterable[LedgerEntry], cards: Iterable[CardAccount]) -> FinancialMetrics:
    """
    Compute normalized monthly metrics for one user.

    Requirements:
    - Only active entries and active cards count
    - Savings are floored at zero (never reported as a deficit)
    - savings_rate, credit_utilization and debt_to_income_ratio are clamped to
      [0, 1] and are 0 when their denominator is 0
    """
    totals = sum_by_class(entries)
    income = totals[EntryClass.INCOME]
    expenses = totals[EntryClass.EXPENSE]
    investments = totals[EntryClass.INVESTMENT]
    loans = totals[EntryClass.LOAN_PAYMENT]

    savings = max(0.0, income - expenses - investments - loans)
    savings_rate = clamp_ratio(savings / income) if income > 0 else 0.0

    active_cards: List[CardAccount] = [card for card in cards if card.is_active]
    total_limit = sum(_non_negative(card.credit_limit) for card in active_cards)
    total_used = sum(_non_negative(card.current_balance) for card in active_cards)

    credit_utilization = clamp_ratio(total_used / total_limit) if total_limit > 0 else 0.0
    debt_to_income = clamp_ratio(total_used / income) if income > 0 else 0.0

    return FinancialMetrics(
        monthly_income=income,
        monthly_expenses=expenses,
        monthly_investments=investments,
        monthly_loans=loans,
        monthly_savings=savings,
        savings_rate=savings_rate,
        credit_utilization=credit_utilization,
        debt_to_income_ratio=debt_to_income,
        total_credit_limit=total_limit,
        total_credit_used=total_used,
        available_credit=total_limit - total_used,
        card_count=len(active_cards),
    )
