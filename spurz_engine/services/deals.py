"""Deal matching service - card combinations, personalization and engagement tracking"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from spurz_engine.config import settings
from spurz_engine.domain.deals import build_combos, derive_deal_status, is_live, match_deal_with_cards, rank_personalized
from spurz_engine.domain.exceptions import CardNotFoundError, DealNotFoundError
from spurz_engine.domain.models import CardDealCombo, Deal, DealCardMatch, DealStatus
from spurz_engine.infrastructure.database.models import DealRecord
from spurz_engine.infrastructure.database.repositories import (
    CardRepository,
    CatalogRepository,
    DealRepository,
    to_card_account,
    to_deal,
)
from spurz_engine.infrastructure.observability.metrics import advisory_failure_counter, deal_engagement_counter
from spurz_engine.services.spending import SpendingAnalysisService
from spurz_engine.utils.date_utils import utcnow

COMBO_CANDIDATES = 20
ENGAGEMENT_COUNTERS = {"view": "views", "click": "clicks", "redemption": "redemptions"}


class DealMatchingService:
    def __init__(self, db: Session):
        self.db = db
        self.deals = DealRepository(db)
        self.cards = CardRepository(db)
        self.catalog = CatalogRepository(db)
        self.spending = SpendingAnalysisService(db)

    def get_deal(self, deal_id: str) -> DealRecord:
        record = self.deals.get(deal_id)
        if record is None:
            raise DealNotFoundError(f"Deal {deal_id} not found")
        return record

    def _match(self, owner_id: str, deal: Deal) -> DealCardMatch:
        user_cards = [to_card_account(r) for r in self.cards.list_active(owner_id)]
        offer_card_ids = [offer.catalog_card_id for offer in deal.card_offers if offer.catalog_card_id]
        return match_deal_with_cards(deal, user_cards, self.catalog.by_ids(offer_card_ids))

    def match_deals_with_user_cards(self, owner_id: str, deal_id: str) -> Optional[DealCardMatch]:
        """Best user/market card pairing at the reference amount; None when the deal is not live"""
        deal = to_deal(self.get_deal(deal_id))
        if not is_live(deal, utcnow()):
            return None
        return self._match(owner_id, deal)

    def get_personalized_deals(
        self,
        owner_id: str,
        category: Optional[str] = None,
        featured_only: bool = False,
        city: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Deal]:
        """Live deals ranked by popularity, spend-category relevance, featured flag and value"""
        limit = limit or settings.personalized_deals_limit
        try:
            top_categories = self.spending.top_category_names(owner_id, 5)
            records = self.deals.list_live(
                utcnow(), category=category, featured_only=featured_only, limit=limit * 2
            )
            if city:
                records = [r for r in records if r.is_online or city in (r.locations or [])]
            return rank_personalized([to_deal(r) for r in records], top_categories, limit)

        except Exception as e:
            advisory_failure_counter.labels(generator="deals").inc()
            logging.error(f"Personalized deals failed: {e}", extra={"user_id": owner_id})
            return []

    def find_optimal_card_deal_combos(self, owner_id: str, category: str, limit: int = 10) -> List[CardDealCombo]:
        records = self.deals.list_live(utcnow(), category=category)
        records.sort(key=lambda r: (r.value, r.popularity), reverse=True)
        matches = [self._match(owner_id, to_deal(r)) for r in records[:COMBO_CANDIDATES]]
        return build_combos(matches, limit)

    def get_deals_for_card(self, owner_id: str, card_id: str, is_market_card: bool = False) -> List[Deal]:
        if is_market_card:
            card = self.catalog.get(card_id)
        else:
            card = self.cards.get(owner_id, card_id)
        if card is None:
            raise CardNotFoundError(f"Card {card_id} not found")

        records = self.deals.list_for_card(utcnow(), card.bank_name, card.card_name)
        return [to_deal(r) for r in records]

    def track(self, deal_id: str, event: str) -> None:
        """Atomic engagement increment; popularity is left for the next detail read"""
        counter = ENGAGEMENT_COUNTERS[event]
        if not self.deals.increment(deal_id, counter):
            raise DealNotFoundError(f"Deal {deal_id} not found")
        deal_engagement_counter.labels(event=event).inc()

    def track_view(self, deal_id: str) -> None:
        self.track(deal_id, "view")

    def track_click(self, deal_id: str) -> None:
        self.track(deal_id, "click")

    def track_redemption(self, deal_id: str) -> None:
        self.track(deal_id, "redemption")

    def refresh_popularity(self, deal_id: str) -> DealRecord:
        record = self.deals.refresh_popularity(deal_id)
        if record is None:
            raise DealNotFoundError(f"Deal {deal_id} not found")
        return record

    def read_deal(self, deal_id: str) -> DealRecord:
        """Deal detail: records a view, then refreshes popularity and window status"""
        self.track_view(deal_id)
        record = self.refresh_popularity(deal_id)
        self.sync_status(record)
        return record

    def sync_status(self, record: DealRecord) -> DealStatus:
        status = derive_deal_status(
            record.start_date, record.end_date, utcnow(), paused=record.status == DealStatus.PAUSED.value
        )
        if status.value != record.status:
            self.deals.set_status(record, status.value)
        return status
