"""Card recommendation service - replace-batch generation and recommendation lifecycle"""

import logging
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from spurz_engine.config import settings
from spurz_engine.domain import recommendations as rules
from spurz_engine.domain.exceptions import RecommendationNotFoundError
from spurz_engine.domain.models import CardAccount, CatalogCard
from spurz_engine.infrastructure.database.models import CardRecommendationRecord
from spurz_engine.infrastructure.database.repositories import (
    CardRepository,
    CatalogRepository,
    RecommendationRepository,
    SpendingCategoryRepository,
    to_card_account,
    to_catalog_card,
    to_category_aggregate,
)
from spurz_engine.infrastructure.observability.metrics import advisory_failure_counter, record_recommendations
from spurz_engine.utils.date_utils import days_until, expires_in, utcnow


class CardRecommendationService:
    def __init__(self, db: Session):
        self.db = db
        self.recommendations = RecommendationRepository(db)
        self.catalog = CatalogRepository(db)
        self.cards = CardRepository(db)
        self.categories = SpendingCategoryRepository(db)

    def _catalog(self) -> List[CatalogCard]:
        return [to_catalog_card(r) for r in self.catalog.list_active()]

    def _owned(self, owner_id: str) -> List[CardAccount]:
        return [to_card_account(r) for r in self.cards.list_active(owner_id)]

    def _categories(self, owner_id: str):
        return [to_category_aggregate(r) for r in self.categories.list(owner_id)]

    def find_best_card_for_category(self, category: str, monthly_spend: float) -> Optional[CatalogCard]:
        return rules.find_best_card_for_category(self._catalog(), category, monthly_spend)

    def generate_recommendations(self, owner_id: str) -> List[CardRecommendationRecord]:
        """
        Replace the owner's active recommendations with a fresh batch.

        Emission order: high-spending categories, better rewards, low
        utilization. Delete and insert share one transaction; on any failure
        the previous batch is restored and an empty list is returned.
        """
        try:
            catalog = self._catalog()
            owned = self._owned(owner_id)
            categories = self._categories(owner_id)

            drafts = []
            drafts.extend(rules.high_spending_recommendations(catalog, categories))
            drafts.extend(rules.better_rewards_recommendations(catalog, categories, owned))
            drafts.extend(rules.low_utilization_recommendations(owned))

            records = self.recommendations.replace_batch(
                owner_id, drafts, expires_in(settings.recommendation_ttl_days)
            )
            self.db.commit()

        except Exception as e:
            self.db.rollback()
            advisory_failure_counter.labels(generator="recommendations").inc()
            logging.error(f"Recommendation generation failed: {e}", extra={"user_id": owner_id})
            return []

        record_recommendations(draft.primary_reason.value for draft in drafts)
        logging.info(f"Generated {len(records)} recommendations", extra={"user_id": owner_id})
        return records

    def identify_upgrade_opportunities(self, owner_id: str) -> List[CardRecommendationRecord]:
        """Replace the owner's upgrade recommendations; empty list on failure"""
        try:
            drafts = rules.upgrade_recommendations(
                self._catalog(), self._owned(owner_id), self._categories(owner_id)
            )
            records = self.recommendations.replace_upgrades(
                owner_id, drafts, expires_in(settings.recommendation_ttl_days)
            )
            self.db.commit()

        except Exception as e:
            self.db.rollback()
            advisory_failure_counter.labels(generator="upgrades").inc()
            logging.error(f"Upgrade discovery failed: {e}", extra={"user_id": owner_id})
            return []

        record_recommendations(draft.primary_reason.value for draft in drafts)
        return records

    def calculate_reward_potential(self, owner_id: str, catalog_card_id: str) -> float:
        record = self.catalog.get(catalog_card_id)
        if record is None:
            return 0.0
        return rules.calculate_reward_potential(to_catalog_card(record), self._categories(owner_id))

    def recommend_card_for_transaction(
        self, owner_id: str, category: str, amount: float
    ) -> Optional[Union[CardAccount, CatalogCard]]:
        return rules.recommend_card_for_transaction(self._owned(owner_id), self._catalog(), category, amount)

    # Lifecycle

    def list_active(
        self, owner_id: str, type: Optional[str] = None, include_viewed: bool = False, limit: int = 20
    ) -> List[CardRecommendationRecord]:
        return self.recommendations.list_active(
            owner_id, utcnow(), type=type, include_viewed=include_viewed, limit=limit
        )

    def _get(self, owner_id: str, recommendation_id: str) -> CardRecommendationRecord:
        record = self.recommendations.get(owner_id, recommendation_id)
        if record is None:
            raise RecommendationNotFoundError(f"Recommendation {recommendation_id} not found")
        return record

    def mark_viewed(self, owner_id: str, recommendation_id: str) -> CardRecommendationRecord:
        record = self._get(owner_id, recommendation_id)
        if not record.is_viewed:
            record.is_viewed = True
            record.viewed_at = utcnow()
        self.db.flush()
        return record

    def dismiss(self, owner_id: str, recommendation_id: str, reason: Optional[str] = None) -> CardRecommendationRecord:
        record = self._get(owner_id, recommendation_id)
        record.is_dismissed = True
        record.dismissed_at = utcnow()
        record.dismiss_reason = reason
        self.db.flush()
        return record

    def mark_applied(self, owner_id: str, recommendation_id: str) -> CardRecommendationRecord:
        record = self._get(owner_id, recommendation_id)
        record.is_applied = True
        record.applied_at = utcnow()
        self.db.flush()
        return record

    @staticmethod
    def days_until_expiry(record: CardRecommendationRecord) -> Optional[int]:
        return days_until(record.expires_at)
