"""Deal matching rules - deal value, popularity, status window and card combinations"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from spurz_engine.domain.models import (
    CardAccount,
    CardDealCombo,
    CatalogCard,
    Deal,
    DealCardMatch,
    DealStatus,
    DealType,
)

REFERENCE_TRANSACTION = 1000
POINT_VALUE = 0.25
CATEGORY_BOOST = 50
FEATURED_BOOST = 30


def deal_value(deal: Deal, transaction_amount: float) -> float:
    """
    Savings a deal yields on a transaction.

    - cashback/discount: percent of the amount, capped by max_discount (None means no cap)
    - points: each point is worth 0.25
    - bogo/freebie/voucher: flat value
    """
    deal_type = deal.deal_type.value if isinstance(deal.deal_type, DealType) else deal.deal_type

    if deal_type in (DealType.CASHBACK.value, DealType.DISCOUNT.value):
        discount = transaction_amount * deal.value / 100
        if deal.max_discount is None:
            return discount
        return min(discount, deal.max_discount)
    if deal_type == DealType.POINTS.value:
        return deal.value * POINT_VALUE
    if deal_type in (DealType.BOGO.value, DealType.FREEBIE.value, DealType.VOUCHER.value):
        return deal.value
    return 0.0


def popularity_score(views: int, clicks: int, redemptions: int) -> int:
    return (redemptions or 0) * 10 + (clicks or 0) * 2 + (views or 0)


def derive_deal_status(
    start_date: Optional[datetime], end_date: Optional[datetime], now: datetime, paused: bool = False
) -> DealStatus:
    """Status from the validity window; a paused deal stays paused while in window"""
    if start_date is not None and now < start_date:
        return DealStatus.UPCOMING
    if end_date is not None and now > end_date:
        return DealStatus.EXPIRED
    return DealStatus.PAUSED if paused else DealStatus.ACTIVE


def is_live(deal: Deal, now: datetime) -> bool:
    if deal.status != DealStatus.ACTIVE.value:
        return False
    return derive_deal_status(deal.start_date, deal.end_date, now) == DealStatus.ACTIVE


def match_deal_with_cards(
    deal: Deal,
    user_cards: Iterable[CardAccount],
    catalog_by_id: Dict[str, CatalogCard],
    amount: float = REFERENCE_TRANSACTION,
) -> DealCardMatch:
    """
    Best card combination for a deal at the reference amount.

    User cards match offers by bank name. The market side is the offer with
    the highest additional discount; its savings count only when the offer
    resolves to a known catalog card.
    """
    base = deal_value(deal, amount)

    best_user_card = None
    best_user_savings = 0.0
    for card in user_cards:
        if not card.is_active:
            continue
        offer = next((o for o in deal.card_offers if o.bank_name == card.bank_name), None)
        if offer is None or not offer.additional_discount:
            continue
        savings = amount * offer.additional_discount / 100
        if savings > best_user_savings:
            best_user_savings = savings
            best_user_card = card

    best_market_card = None
    best_market_savings = 0.0
    if deal.card_offers:
        best_offer = max(deal.card_offers, key=lambda o: o.additional_discount or 0)
        if best_offer.catalog_card_id is not None:
            best_market_card = catalog_by_id.get(best_offer.catalog_card_id)
            if best_market_card is not None:
                best_market_savings = amount * (best_offer.additional_discount or 0) / 100

    additional = max(best_user_savings, best_market_savings)
    total = base + additional

    return DealCardMatch(
        deal=deal,
        base_savings=base,
        additional_card_savings=additional,
        total_savings=total,
        total_discount=total / amount * 100 if amount else 0.0,
        best_user_card=best_user_card,
        best_market_card=best_market_card,
    )


def personalized_score(deal: Deal, top_categories: Iterable[str]) -> float:
    score = float(deal.popularity or 0)
    if deal.category in set(top_categories):
        score += CATEGORY_BOOST
    if deal.is_featured:
        score += FEATURED_BOOST
    return score + (deal.value or 0)


def rank_personalized(deals: Iterable[Deal], top_categories: List[str], limit: int) -> List[Deal]:
    scored = [(personalized_score(deal, top_categories), deal) for deal in deals]
    scored.sort(key=lambda item: item[0], reverse=True)
    return [deal for _, deal in scored[:limit]]


def build_combos(matches: Iterable[DealCardMatch], limit: int) -> List[CardDealCombo]:
    """Owned and market card pairings per deal, best total value first"""
    combos = []

    for match in matches:
        if match.best_user_card is not None:
            combos.append(
                CardDealCombo(
                    deal=match.deal,
                    card=match.best_user_card,
                    is_user_card=True,
                    total_discount=match.total_discount,
                    base_deal_value=match.base_savings,
                    card_bonus_value=match.additional_card_savings,
                )
            )
        if match.best_market_card is not None and (
            match.best_user_card is None or match.additional_card_savings > 0
        ):
            combos.append(
                CardDealCombo(
                    deal=match.deal,
                    card=match.best_market_card,
                    is_user_card=False,
                    total_discount=match.total_discount,
                    base_deal_value=match.base_savings,
                    card_bonus_value=match.additional_card_savings,
                )
            )

    combos.sort(key=lambda combo: combo.total_value, reverse=True)
    return combos[:limit]
