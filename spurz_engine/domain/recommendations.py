"""Card recommendation rules - pure scoring over the catalog, owned cards and spending categories"""

from typing import Iterable, List, Optional, Union

from spurz_engine.domain.models import (
    CardAccount,
    CatalogCard,
    RecommendationDraft,
    RecommendationReason,
    RecommendationType,
    SpendingCategoryAggregate,
)
from spurz_engine.domain.spending import top_categories

HIGH_SPEND_THRESHOLD = 5000
HIGH_SPEND_CATEGORY_COUNT = 3
BETTER_REWARDS_THRESHOLD = 3000
BETTER_REWARDS_CATEGORY_COUNT = 5
MIN_MONTHLY_IMPROVEMENT = 100
LOW_UTILIZATION_PERCENT = 10
LOW_UTILIZATION_MIN_LIMIT = 50000
UPGRADE_TIERS = ("platinum", "signature", "infinite")


def net_benefit(card: CatalogCard, category: str, monthly_spend: float) -> Optional[float]:
    """Projected annual reward on the category minus the annual fee; None if the card has no offer"""
    rate = card.rate_for(category)
    if rate is None:
        return None
    return monthly_spend * 12 * rate / 100 - card.annual_fee


def find_best_card_for_category(
    catalog: Iterable[CatalogCard], category: str, monthly_spend: float
) -> Optional[CatalogCard]:
    """Catalog card with the highest net benefit, or None when no card pays for itself"""
    best_card = None
    best_benefit = float("-inf")

    for card in catalog:
        benefit = net_benefit(card, category, monthly_spend)
        if benefit is None:
            continue
        if benefit > best_benefit:
            best_benefit = benefit
            best_card = card

    return best_card if best_benefit > 0 else None


def savings_score(monthly_savings: float) -> float:
    return min(100.0, monthly_savings / 100 * 10)


def savings_priority(monthly_savings: float) -> int:
    if monthly_savings > 500:
        return 9
    elif monthly_savings > 200:
        return 7
    return 5


def _category_reward(card: CatalogCard, category: str, monthly_spend: float) -> float:
    rate = card.rate_for(category)
    return monthly_spend * (rate or 0) / 100


def high_spending_recommendations(
    catalog: List[CatalogCard], categories: Iterable[SpendingCategoryAggregate]
) -> List[RecommendationDraft]:
    """One new-card row per top-3 category spending at least 5,000 a month"""
    drafts = []

    for category in top_categories(categories, HIGH_SPEND_CATEGORY_COUNT):
        spend = category.current_month_spend
        if spend < HIGH_SPEND_THRESHOLD:
            continue

        card = find_best_card_for_category(catalog, category.category, spend)
        if card is None:
            continue

        rate = card.rate_for(category.category)
        reward = _category_reward(card, category.category, spend)

        drafts.append(
            RecommendationDraft(
                type=RecommendationType.NEW_CARD,
                primary_reason=RecommendationReason.HIGH_SPENDING_CATEGORY,
                bank_name=card.bank_name,
                card_name=card.card_name,
                market_card_id=card.id,
                reasons=[
                    f"You spend ₹{spend:,.0f}/month on {category.category}",
                    f"Get {rate}% {card.reward_type} on {category.category}",
                    f"Save ₹{round(reward)}/month",
                ],
                estimated_monthly_savings=reward,
                estimated_yearly_savings=reward * 12,
                estimated_rewards=reward,
                relevant_categories=[category.category],
                score=savings_score(reward),
                priority=savings_priority(reward),
            )
        )

    return drafts


def better_rewards_recommendations(
    catalog: List[CatalogCard],
    categories: Iterable[SpendingCategoryAggregate],
    cards: List[CardAccount],
) -> List[RecommendationDraft]:
    """New-card rows where a catalog card beats the current category reward by at least 100 a month"""
    drafts = []
    if not [card for card in cards if card.is_active]:
        return drafts

    for category in top_categories(categories, BETTER_REWARDS_CATEGORY_COUNT):
        spend = category.current_month_spend
        if spend < BETTER_REWARDS_THRESHOLD:
            continue

        card = find_best_card_for_category(catalog, category.category, spend)
        if card is None:
            continue

        current = category.current_reward or 0.0
        potential = _category_reward(card, category.category, spend)
        improvement = potential - current
        if improvement < MIN_MONTHLY_IMPROVEMENT:
            continue

        drafts.append(
            RecommendationDraft(
                type=RecommendationType.NEW_CARD,
                primary_reason=RecommendationReason.BETTER_REWARDS,
                bank_name=card.bank_name,
                card_name=card.card_name,
                market_card_id=card.id,
                reasons=[
                    f"Currently earning ₹{round(current)}/month on {category.category}",
                    f"Could earn ₹{round(potential)}/month with this card",
                    f"Additional savings: ₹{round(improvement)}/month",
                ],
                estimated_monthly_savings=improvement,
                estimated_yearly_savings=improvement * 12,
                estimated_rewards=potential,
                relevant_categories=[category.category],
                score=savings_score(improvement),
                priority=savings_priority(improvement),
            )
        )

    return drafts


def low_utilization_recommendations(cards: Iterable[CardAccount]) -> List[RecommendationDraft]:
    """Nudge towards owned cards that are barely used"""
    drafts = []

    for card in cards:
        if not card.is_active or card.credit_limit <= LOW_UTILIZATION_MIN_LIMIT:
            continue
        utilization = card.utilization_percent
        if utilization >= LOW_UTILIZATION_PERCENT:
            continue

        drafts.append(
            RecommendationDraft(
                type=RecommendationType.EXISTING_CARD,
                primary_reason=RecommendationReason.LOW_UTILIZATION,
                bank_name=card.bank_name,
                card_name=card.card_name,
                user_card_id=card.id,
                reasons=[
                    f"Your {card.bank_name} card has ₹{card.available_credit:,.0f} available",
                    f"Only {round(utilization)}% utilized",
                    "Use this card more to build credit history",
                ],
                score=60,
                priority=4,
            )
        )

    return drafts


def calculate_reward_potential(card: CatalogCard, categories: Iterable[SpendingCategoryAggregate]) -> float:
    """Monthly reward the card would earn over all categories (category rate, else base rate)"""
    total = 0.0
    for category in categories:
        rate = card.rate_for(category.category)
        if rate is None:
            rate = card.base_reward_rate
        total += category.current_month_spend * rate / 100
    return total


def upgrade_recommendations(
    catalog: Iterable[CatalogCard],
    cards: Iterable[CardAccount],
    categories: List[SpendingCategoryAggregate],
) -> List[RecommendationDraft]:
    """
    Same-bank premium cards whose projected annual reward across every
    category exceeds their annual fee.
    """
    catalog = list(catalog)
    drafts = []

    for owned in cards:
        if not owned.is_active:
            continue

        for upgrade in catalog:
            if upgrade.bank_name != owned.bank_name or upgrade.tier not in UPGRADE_TIERS:
                continue
            if upgrade.card_name == owned.card_name:
                continue

            monthly = calculate_reward_potential(upgrade, categories)
            yearly = monthly * 12
            if yearly <= upgrade.annual_fee:
                continue

            drafts.append(
                RecommendationDraft(
                    type=RecommendationType.UPGRADE,
                    primary_reason=RecommendationReason.BETTER_REWARDS,
                    bank_name=upgrade.bank_name,
                    card_name=upgrade.card_name,
                    market_card_id=upgrade.id,
                    user_card_id=owned.id,
                    reasons=[
                        f"Upgrade from your current {owned.bank_name} card",
                        f"Get {upgrade.base_reward_rate}% base rewards",
                        f"Earn ₹{round(monthly)}/month",
                    ],
                    estimated_monthly_savings=monthly - upgrade.annual_fee / 12,
                    estimated_yearly_savings=yearly - upgrade.annual_fee,
                    estimated_rewards=monthly,
                    relevant_categories=[category.category for category in categories],
                    score=70,
                    priority=6,
                )
            )

    return drafts


def recommend_card_for_transaction(
    cards: Iterable[CardAccount], catalog: Iterable[CatalogCard], category: str, amount: float
) -> Optional[Union[CardAccount, CatalogCard]]:
    """Owned card with the most available credit when it covers the amount, else the best catalog card"""
    active = [card for card in cards if card.is_active]
    if active:
        best = max(active, key=lambda card: card.available_credit)
        if best.available_credit >= amount:
            return best

    return find_best_card_for_category(catalog, category, amount)
