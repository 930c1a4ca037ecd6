"""Insight and next-best-action generation with replace-batch persistence"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from spurz_engine.domain.actions import generate_actions
from spurz_engine.domain.exceptions import ActionNotFoundError
from spurz_engine.domain.insights import generate_insights
from spurz_engine.domain.models import ActionStatus, DataCompleteness, FinancialMetrics
from spurz_engine.infrastructure.database.models import InsightRecord, NextBestActionRecord
from spurz_engine.infrastructure.database.repositories import (
    ActionRepository,
    DealRepository,
    InsightRepository,
    RecommendationRepository,
    to_deal,
    to_recommendation,
)
from spurz_engine.infrastructure.observability.metrics import advisory_failure_counter
from spurz_engine.services.spending import SpendingAnalysisService
from spurz_engine.utils.date_utils import utcnow


class InsightService:
    def __init__(self, db: Session):
        self.db = db
        self.insights = InsightRepository(db)
        self.deals = DealRepository(db)
        self.spending = SpendingAnalysisService(db)

    def generate_insights(
        self, owner_id: str, metrics: FinancialMetrics, snapshot_id=None
    ) -> List[InsightRecord]:
        """Replace the owner's insights; a failure yields an empty list and keeps the old batch"""
        try:
            categories = self.spending.list_categories(owner_id)
            top5 = [agg.category for agg in categories[:5]]
            featured = [
                to_deal(r) for r in self.deals.list_live(utcnow(), featured_only=True, categories=top5)
            ]

            drafts = generate_insights(metrics, categories, featured, top5)
            records = self.insights.replace_batch(owner_id, snapshot_id, drafts)
            self.db.commit()

        except Exception as e:
            self.db.rollback()
            advisory_failure_counter.labels(generator="insights").inc()
            logging.error(f"Insight generation failed: {e}", extra={"user_id": owner_id})
            return []

        logging.info(f"Generated {len(records)} insights", extra={"user_id": owner_id})
        return records

    def list_insights(self, owner_id: str, unread_only: bool = False) -> List[InsightRecord]:
        return self.insights.list(owner_id, unread_only=unread_only)

    def mark_read(self, owner_id: str, insight_id: str) -> Optional[InsightRecord]:
        record = self.insights.get(owner_id, insight_id)
        if record is None:
            return None
        record.is_read = True
        self.db.flush()
        return record


class NextBestActionService:
    def __init__(self, db: Session):
        self.db = db
        self.actions = ActionRepository(db)
        self.recommendations = RecommendationRepository(db)
        self.deals = DealRepository(db)
        self.spending = SpendingAnalysisService(db)

    def generate_actions(
        self, owner_id: str, completeness: DataCompleteness, snapshot_id=None
    ) -> List[NextBestActionRecord]:
        try:
            categories = self.spending.list_categories(owner_id)
            top3 = [agg.category for agg in categories[:3]]
            featured = [
                to_deal(r) for r in self.deals.list_live(utcnow(), featured_only=True, categories=top3)
            ]
            recommendations = [to_recommendation(r) for r in self.recommendations.list_undismissed(owner_id)]

            drafts = generate_actions(completeness, recommendations, categories, featured, top3)
            records = self.actions.replace_batch(owner_id, snapshot_id, drafts)
            self.db.commit()

        except Exception as e:
            self.db.rollback()
            advisory_failure_counter.labels(generator="actions").inc()
            logging.error(f"Action generation failed: {e}", extra={"user_id": owner_id})
            return []

        logging.info(f"Generated {len(records)} actions", extra={"user_id": owner_id})
        return records

    def list_open(self, owner_id: str) -> List[NextBestActionRecord]:
        return self.actions.list_open(owner_id, utcnow())

    def _get(self, owner_id: str, action_id: str) -> NextBestActionRecord:
        record = self.actions.get(owner_id, action_id)
        if record is None:
            raise ActionNotFoundError(f"Action {action_id} not found")
        return record

    def complete(self, owner_id: str, action_id: str) -> NextBestActionRecord:
        record = self._get(owner_id, action_id)
        record.status = ActionStatus.COMPLETED.value
        record.completed_at = utcnow()
        self.db.flush()
        return record

    def dismiss(self, owner_id: str, action_id: str) -> NextBestActionRecord:
        record = self._get(owner_id, action_id)
        record.status = ActionStatus.DISMISSED.value
        self.db.flush()
        return record

    def snooze(self, owner_id: str, action_id: str, until: datetime) -> NextBestActionRecord:
        record = self._get(owner_id, action_id)
        record.status = ActionStatus.SNOOZED.value
        record.snoozed_until = until
        self.db.flush()
        return record
