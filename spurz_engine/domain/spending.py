"""Spending category rules - trend detection and per-category card suggestions"""

from typing import Iterable, List, Set, Tuple

from spurz_engine.domain.models import CatalogCard, RecommendedCard, SpendingCategoryAggregate, Trend

STABLE_THRESHOLD_PERCENT = 5.0
CATEGORY_CARD_LIMIT = 5


def compute_trend(current_spend: float, previous_spend: float) -> Tuple[Trend, float]:
    """
    Trend of a category between two months.

    trend% = (current - previous) / previous * 100 when previous > 0, and
    |trend%| < 5 counts as stable. Without a previous month the trend is stable.
    """
    if not previous_spend or previous_spend <= 0:
        return Trend.STABLE, 0.0

    percent = (current_spend - previous_spend) / previous_spend * 100

    if abs(percent) < STABLE_THRESHOLD_PERCENT:
        return Trend.STABLE, percent
    return (Trend.UP if percent > 0 else Trend.DOWN), percent


def recommend_cards_for_category(
    catalog: Iterable[CatalogCard],
    category: str,
    monthly_spend: float,
    held_banks: Set[str],
    limit: int = CATEGORY_CARD_LIMIT,
) -> List[RecommendedCard]:
    """
    Catalog cards offering the category, most popular first, skipping banks
    the user already holds. Result is ordered by estimated monthly reward.
    """
    offering = [card for card in catalog if card.rate_for(category) is not None]
    offering.sort(key=lambda card: card.popularity, reverse=True)

    recommended = []
    for card in offering[:limit]:
        if card.bank_name in held_banks:
            continue
        rate = card.rate_for(category)
        recommended.append(
            RecommendedCard(
                card_id=card.id,
                bank_name=card.bank_name,
                card_name=card.card_name,
                reward_rate=rate,
                estimated_reward=monthly_spend * rate / 100,
                reason=f"Earn {rate}% rewards on {category}",
            )
        )

    recommended.sort(key=lambda rec: rec.estimated_reward, reverse=True)
    return recommended


def potential_savings(aggregate: SpendingCategoryAggregate) -> float:
    """Best suggested monthly reward minus what the user earns today, floored at 0"""
    if not aggregate.recommended_cards:
        return 0.0
    best = max(card.estimated_reward for card in aggregate.recommended_cards)
    return max(0.0, best - aggregate.current_reward)


def top_categories(aggregates: Iterable[SpendingCategoryAggregate], limit: int) -> List[SpendingCategoryAggregate]:
    return sorted(aggregates, key=lambda agg: agg.current_month_spend, reverse=True)[:limit]
