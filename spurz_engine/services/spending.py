"""Spending category aggregates and per-category card suggestions"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from spurz_engine.domain.models import SpendingCategoryAggregate
from spurz_engine.domain.spending import potential_savings, recommend_cards_for_category
from spurz_engine.infrastructure.database.repositories import (
    CardRepository,
    CatalogRepository,
    SpendingCategoryRepository,
    to_catalog_card,
    to_category_aggregate,
)


class SpendingAnalysisService:
    def __init__(self, db: Session):
        self.db = db
        self.categories = SpendingCategoryRepository(db)
        self.catalog = CatalogRepository(db)
        self.cards = CardRepository(db)

    def record_spend(
        self,
        owner_id: str,
        category: str,
        current_month_spend: float,
        previous_month_spend: Optional[float] = None,
        current_reward: Optional[float] = None,
    ) -> SpendingCategoryAggregate:
        """Create or update a category; trend is recomputed whenever spend changes"""
        fields = {"current_month_spend": current_month_spend}
        if previous_month_spend is not None:
            fields["previous_month_spend"] = previous_month_spend
        if current_reward is not None:
            fields["current_reward"] = current_reward

        record = self.categories.upsert(owner_id, category, **fields)
        return to_category_aggregate(record)

    def list_categories(self, owner_id: str) -> List[SpendingCategoryAggregate]:
        return [to_category_aggregate(r) for r in self.categories.list(owner_id)]

    def top_categories(self, owner_id: str, limit: int = 5) -> List[SpendingCategoryAggregate]:
        return self.list_categories(owner_id)[:limit]

    def top_category_names(self, owner_id: str, limit: int = 5) -> List[str]:
        return [agg.category for agg in self.top_categories(owner_id, limit)]

    def get_category(self, owner_id: str, category: str) -> Optional[SpendingCategoryAggregate]:
        record = self.categories.get(owner_id, category)
        return to_category_aggregate(record) if record else None

    def refresh_category_recommendations(self, owner_id: str) -> List[SpendingCategoryAggregate]:
        """Recompute suggested catalog cards and potential savings for every category"""
        catalog = [to_catalog_card(r) for r in self.catalog.list_active()]
        held_banks = self.cards.held_banks(owner_id)

        refreshed = []
        for record in self.categories.list(owner_id):
            suggestions = recommend_cards_for_category(
                catalog, record.category, record.current_month_spend or 0.0, held_banks
            )
            aggregate = to_category_aggregate(record)
            aggregate.recommended_cards = suggestions
            aggregate.potential_savings = potential_savings(aggregate)

            self.categories.save_suggestions(record, suggestions, aggregate.potential_savings)
            refreshed.append(aggregate)

        logging.info(
            f"Refreshed card suggestions for {len(refreshed)} categories",
            extra={"user_id": owner_id},
        )
        return refreshed
