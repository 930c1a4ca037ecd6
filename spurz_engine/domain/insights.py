"""Insight rules - independent, order-preserving rule functions over metrics, categories and deals"""

from typing import Iterable, List

from spurz_engine.domain.models import (
    Deal,
    FinancialMetrics,
    InsightCategory,
    InsightDraft,
    InsightPriority,
    SpendingCategoryAggregate,
    Trend,
)

OPTIMIZATION_MIN_SAVINGS = 200
OPTIMIZATION_CATEGORY_COUNT = 3
DEAL_ALERT_LIMIT = 2
RISING_TREND_PERCENT = 20
RISING_LIMIT = 2


def _percent(ratio: float) -> int:
    return round(ratio * 100)


def _type_label(deal: Deal) -> str:
    return getattr(deal.deal_type, "value", deal.deal_type)


def savings_insights(metrics: FinancialMetrics) -> List[InsightDraft]:
    insights = []
    rate = _percent(metrics.savings_rate)

    if metrics.savings_rate < 0.1 and metrics.monthly_income > 0:
        insights.append(
            InsightDraft(
                category=InsightCategory.SAVING,
                priority=InsightPriority.HIGH,
                title="Savings Rate Below Target",
                description=(
                    f"You're saving only {rate}% of your income. "
                    "Aim for at least 20% to build financial security."
                ),
                value=rate,
                value_label="% saved",
                trend=Trend.DOWN,
                actionable=True,
            )
        )

    if metrics.savings_rate >= 0.3:
        insights.append(
            InsightDraft(
                category=InsightCategory.SAVING,
                priority=InsightPriority.LOW,
                title="Excellent Savings Habit",
                description=f"You're saving {rate}% of your income. Keep up the great work!",
                value=rate,
                value_label="% saved",
                trend=Trend.UP,
                actionable=False,
            )
        )

    return insights


def credit_insights(metrics: FinancialMetrics) -> List[InsightDraft]:
    insights = []
    utilization = _percent(metrics.credit_utilization)

    if metrics.credit_utilization > 0.8:
        insights.append(
            InsightDraft(
                category=InsightCategory.CREDIT,
                priority=InsightPriority.HIGH,
                title="High Credit Utilization",
                description=(
                    f"You're using {utilization}% of your credit limit. "
                    "Try to keep it below 30% to protect your credit score."
                ),
                value=utilization,
                value_label="% used",
                trend=Trend.DOWN,
                actionable=True,
            )
        )

    if 0 < metrics.credit_utilization < 0.3:
        insights.append(
            InsightDraft(
                category=InsightCategory.CREDIT,
                priority=InsightPriority.LOW,
                title="Healthy Credit Utilization",
                description=f"Your credit utilization is {utilization}%. This is excellent for your credit score!",
                value=utilization,
                value_label="% used",
                trend=Trend.UP,
                actionable=False,
            )
        )

    if metrics.debt_to_income_ratio > 0.5:
        dti = _percent(metrics.debt_to_income_ratio)
        insights.append(
            InsightDraft(
                category=InsightCategory.DEBT,
                priority=InsightPriority.HIGH,
                title="High Debt Burden",
                description=f"Your debt is {dti}% of your income. Focus on paying down high-interest debt first.",
                value=dti,
                value_label="% of income",
                trend=Trend.DOWN,
                actionable=True,
            )
        )

    return insights


def optimization_insights(categories: Iterable[SpendingCategoryAggregate]) -> List[InsightDraft]:
    """Top-3 categories by potential savings, when a better card saves more than 200 a month"""
    ranked = sorted(categories, key=lambda agg: agg.potential_savings or 0, reverse=True)
    insights = []

    for agg in ranked[:OPTIMIZATION_CATEGORY_COUNT]:
        if (agg.potential_savings or 0) <= OPTIMIZATION_MIN_SAVINGS:
            continue
        insights.append(
            InsightDraft(
                category=InsightCategory.SPENDING,
                priority=InsightPriority.MEDIUM,
                title=f"Optimize {agg.category.capitalize()} Spending",
                description=(
                    f"You could save ₹{round(agg.potential_savings)}/month on "
                    f"{agg.category} with a better credit card."
                ),
                value=agg.potential_savings,
                value_label="₹/month",
                trend=Trend.UP,
                actionable=True,
                metadata={"category": agg.category, "currentSpending": agg.current_month_spend},
            )
        )

    return insights


def deal_insights(featured_deals: Iterable[Deal], top_categories: Iterable[str]) -> List[InsightDraft]:
    """Featured live deals in the user's top spending categories"""
    wanted = set(top_categories)
    insights = []

    for deal in featured_deals:
        if len(insights) >= DEAL_ALERT_LIMIT:
            break
        if not deal.is_featured or deal.category not in wanted:
            continue

        valid_till = f" Valid till {deal.end_date:%Y-%m-%d}." if deal.end_date else ""
        insights.append(
            InsightDraft(
                category=InsightCategory.SPENDING,
                priority=InsightPriority.MEDIUM,
                title=f"Deal Alert: {deal.merchant_name}",
                description=(
                    f"{deal.title} - Get {deal.value}% {_type_label(deal)} at {deal.merchant_name}.{valid_till}"
                ),
                value=deal.value,
                value_label=f"% {_type_label(deal)}",
                actionable=True,
                expires_at=deal.end_date,
                metadata={"dealId": deal.id, "merchantName": deal.merchant_name},
            )
        )

    return insights


def rising_spend_insights(categories: Iterable[SpendingCategoryAggregate]) -> List[InsightDraft]:
    rising = [
        agg for agg in categories if agg.trend == Trend.UP and agg.trend_percentage >= RISING_TREND_PERCENT
    ]
    rising.sort(key=lambda agg: agg.trend_percentage, reverse=True)

    return [
        InsightDraft(
            category=InsightCategory.SPENDING,
            priority=InsightPriority.MEDIUM,
            title=f"Rising {agg.category.capitalize()} Expenses",
            description=(
                f"Your {agg.category} spending increased by {round(agg.trend_percentage)}% this month. "
                f"Current: ₹{agg.current_month_spend:,.0f}."
            ),
            value=agg.trend_percentage,
            value_label="% increase",
            trend=Trend.DOWN,
            actionable=True,
            metadata={"category": agg.category},
        )
        for agg in rising[:RISING_LIMIT]
    ]


def generate_insights(
    metrics: FinancialMetrics,
    categories: List[SpendingCategoryAggregate],
    featured_deals: List[Deal],
    top_categories: List[str],
) -> List[InsightDraft]:
    """All insight rules in their fixed order"""
    insights = []
    insights.extend(savings_insights(metrics))
    insights.extend(credit_insights(metrics))
    insights.extend(optimization_insights(categories))
    insights.extend(deal_insights(featured_deals, top_categories))
    insights.extend(rising_spend_insights(categories))
    return insights
