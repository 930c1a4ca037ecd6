"""Snapshot orchestration - metrics, completeness, health and the per-owner snapshot upsert"""

import logging
import time
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from spurz_engine.domain.classifier import classify_entry
from spurz_engine.domain.exceptions import SnapshotComputationError
from spurz_engine.domain.health import calculate_health_score, derive_health_band, derive_scenario_code
from spurz_engine.domain.metrics import aggregate_metrics
from spurz_engine.domain.models import DataCompleteness, EntryClass, FinancialMetrics, FinancialSnapshot
from spurz_engine.infrastructure.database.models import FinancialSnapshotRecord
from spurz_engine.infrastructure.database.repositories import (
    CardRepository,
    LedgerRepository,
    ProfileRepository,
    SnapshotRepository,
    to_card_account,
    to_ledger_entry,
)
from spurz_engine.infrastructure.observability.logging import log_snapshot
from spurz_engine.infrastructure.observability.metrics import record_snapshot
from spurz_engine.utils.date_utils import utcnow

NON_INCOME_CLASSES = (EntryClass.EXPENSE, EntryClass.INVESTMENT, EntryClass.LOAN_PAYMENT)


class SnapshotService:
    """
    Recomputes a user's derived financial state from persisted data.

    Every field is a function of current ledger, card and profile rows, never
    of the previous snapshot, so repeated or concurrent calls converge.
    """

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerRepository(db)
        self.cards = CardRepository(db)
        self.profiles = ProfileRepository(db)
        self.snapshots = SnapshotRepository(db)

    def _load(self, owner_id: str):
        try:
            entries = [to_ledger_entry(r) for r in self.ledger.list_active(owner_id)]
            cards = [to_card_account(r) for r in self.cards.list_active(owner_id)]
            profile = self.profiles.get(owner_id)
        except SQLAlchemyError as e:
            raise SnapshotComputationError(f"Could not load financial data for {owner_id}: {e}") from e
        return entries, cards, profile

    def get_metrics(self, owner_id: str) -> FinancialMetrics:
        entries, cards, _ = self._load(owner_id)
        return aggregate_metrics(entries, cards)

    def get_completeness(self, owner_id: str) -> DataCompleteness:
        entries, cards, profile = self._load(owner_id)
        return self._completeness(entries, cards, profile)

    @staticmethod
    def _completeness(entries, cards, profile) -> DataCompleteness:
        classes = [classify_entry(entry).entry_class for entry in entries if entry.is_active]
        return DataCompleteness(
            has_basic_info=bool(profile is not None and profile.full_name and profile.occupation),
            has_salary_info=EntryClass.INCOME in classes,
            has_card_info=any(card.is_active for card in cards),
            has_expense_info=any(entry_class in NON_INCOME_CLASSES for entry_class in classes),
            has_bank_linkage=bool(profile is not None and profile.is_bank_linked),
            has_email_linkage=bool(profile is not None and profile.is_email_linked),
        )

    def generate_snapshot(self, owner_id: str) -> FinancialSnapshotRecord:
        """Recompute and atomically upsert the owner's snapshot (caller commits)"""
        start_time = time.time()
        entries, cards, profile = self._load(owner_id)

        metrics = aggregate_metrics(entries, cards)
        completeness = self._completeness(entries, cards, profile)
        band = derive_health_band(metrics)
        scenario = derive_scenario_code(completeness, band)
        score = calculate_health_score(metrics)

        snapshot = FinancialSnapshot(
            owner_id=owner_id,
            health_score=score,
            health_band=band,
            scenario_code=scenario,
            metrics=metrics,
            completeness=completeness,
            computed_at=utcnow(),
        )

        try:
            record = self.snapshots.upsert(snapshot)
        except SQLAlchemyError as e:
            raise SnapshotComputationError(f"Could not store snapshot for {owner_id}: {e}") from e

        duration_ms = (time.time() - start_time) * 1000
        record_snapshot(band.value, scenario.value, score)
        log_snapshot(owner_id, band.value, scenario.value, score, duration_ms)
        return record

    def get_snapshot(self, owner_id: str) -> Optional[FinancialSnapshotRecord]:
        try:
            return self.snapshots.get(owner_id)
        except SQLAlchemyError as e:
            logging.error(f"Snapshot read failed: {e}", extra={"user_id": owner_id})
            raise SnapshotComputationError(str(e)) from e
