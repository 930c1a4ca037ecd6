"""Next-best-action rules"""

from typing import Iterable, List

from spurz_engine.domain.deals import deal_value
from spurz_engine.domain.models import (
    ActionDraft,
    ActionType,
    DataCompleteness,
    Deal,
    RecommendationDraft,
    SpendingCategoryAggregate,
    Trend,
)

RECOMMENDATION_ACTION_LIMIT = 3
RECOMMENDATION_MIN_SAVINGS = 200
OPTIMIZE_MIN_SAVINGS = 150
OPTIMIZE_LIMIT = 2
DEAL_MIN_VALUE = 10
DEAL_LIMIT = 2
REDUCE_MIN_SPEND = 10000
REDUCTION_SHARE = 0.1


def onboarding_actions(completeness: DataCompleteness) -> List[ActionDraft]:
    actions = []

    if not completeness.has_salary_info:
        actions.append(
            ActionDraft(
                type=ActionType.OTHER,
                title="Add Your Income",
                description="Tell us about your income sources to get personalized insights",
                icon="income",
                priority=10,
                estimated_impact="high",
                metadata={"targetScreen": "AddIncome"},
            )
        )

    if not completeness.has_card_info:
        actions.append(
            ActionDraft(
                type=ActionType.CREDIT,
                title="Add Your Credit Cards",
                description="Track your cards and discover better rewards opportunities",
                icon="card",
                priority=9,
                estimated_impact="high",
                metadata={"targetScreen": "AddCard"},
            )
        )

    if not completeness.has_email_linkage:
        actions.append(
            ActionDraft(
                type=ActionType.OTHER,
                title="Connect Your Email",
                description="Automatically track transactions from email receipts",
                icon="email",
                priority=5,
                estimated_impact="medium",
                metadata={"targetScreen": "EmailPermission"},
            )
        )

    return actions


def recommendation_actions(recommendations: Iterable[RecommendationDraft]) -> List[ActionDraft]:
    """Top active recommendations (priority, then score) worth more than 200 a month"""
    ranked = sorted(recommendations, key=lambda rec: (rec.priority, rec.score), reverse=True)
    actions = []

    for rec in ranked[:RECOMMENDATION_ACTION_LIMIT]:
        savings = rec.estimated_monthly_savings or 0
        if savings <= RECOMMENDATION_MIN_SAVINGS:
            continue
        actions.append(
            ActionDraft(
                type=ActionType.CREDIT,
                title=f"Get {rec.card_name}",
                description=rec.reasons[0] if rec.reasons else f"Save ₹{round(savings)}/month",
                icon="card-new",
                priority=7,
                estimated_impact="high",
                estimated_savings=savings,
                metadata={"recommendationId": rec.id, "cardName": rec.card_name, "bankName": rec.bank_name},
            )
        )

    return actions


def category_optimization_actions(categories: Iterable[SpendingCategoryAggregate]) -> List[ActionDraft]:
    eligible = [agg for agg in categories if (agg.potential_savings or 0) >= OPTIMIZE_MIN_SAVINGS]
    eligible.sort(key=lambda agg: agg.potential_savings, reverse=True)
    actions = []

    for agg in eligible[:OPTIMIZE_LIMIT]:
        if not agg.recommended_cards:
            continue
        best = agg.recommended_cards[0]
        actions.append(
            ActionDraft(
                type=ActionType.SAVING,
                title=f"Optimize {agg.category.capitalize()} Spending",
                description=(
                    f"Get {best.card_name} to save ₹{round(agg.potential_savings)}/month on {agg.category}"
                ),
                icon="optimize",
                priority=6,
                estimated_impact="medium",
                estimated_savings=agg.potential_savings,
                metadata={"category": agg.category, "cardId": best.card_id},
            )
        )

    return actions


def deal_actions(featured_deals: Iterable[Deal], top_categories: Iterable[str]) -> List[ActionDraft]:
    wanted = set(top_categories)
    eligible = [
        deal
        for deal in featured_deals
        if deal.is_featured and deal.category in wanted and (deal.value or 0) >= DEAL_MIN_VALUE
    ]
    eligible.sort(key=lambda deal: deal.value, reverse=True)

    actions = []
    for deal in eligible[:DEAL_LIMIT]:
        deal_type = getattr(deal.deal_type, "value", deal.deal_type)
        actions.append(
            ActionDraft(
                type=ActionType.OTHER,
                title=f"{deal.merchant_name} Deal",
                description=f"{deal.title} - {deal.value}% {deal_type}",
                icon="deal",
                priority=4,
                estimated_impact="low",
                estimated_savings=deal_value(deal, 1000),
                due_date=deal.end_date,
                metadata={"dealId": deal.id, "merchantName": deal.merchant_name},
            )
        )

    return actions


def reduction_actions(categories: Iterable[SpendingCategoryAggregate]) -> List[ActionDraft]:
    """Suggest trimming 10% off the largest rising category above 10,000 a month"""
    rising = [
        agg for agg in categories if agg.current_month_spend >= REDUCE_MIN_SPEND and agg.trend == Trend.UP
    ]
    if not rising:
        return []

    agg = max(rising, key=lambda item: item.current_month_spend)
    target = round(agg.current_month_spend * REDUCTION_SHARE)

    return [
        ActionDraft(
            type=ActionType.SAVING,
            title=f"Reduce {agg.category.capitalize()} Expenses",
            description=f"Try reducing {agg.category} spending by ₹{target:,} this month",
            icon="savings",
            priority=5,
            estimated_impact="medium",
            estimated_savings=target,
            metadata={
                "category": agg.category,
                "currentSpending": agg.current_month_spend,
                "targetSpending": agg.current_month_spend - target,
            },
        )
    ]


def generate_actions(
    completeness: DataCompleteness,
    recommendations: List[RecommendationDraft],
    categories: List[SpendingCategoryAggregate],
    featured_deals: List[Deal],
    top_categories: List[str],
) -> List[ActionDraft]:
    actions = []
    actions.extend(onboarding_actions(completeness))
    actions.extend(recommendation_actions(recommendations))
    actions.extend(category_optimization_actions(categories))
    actions.extend(deal_actions(featured_deals, top_categories))
    actions.extend(reduction_actions(categories))
    return actions
