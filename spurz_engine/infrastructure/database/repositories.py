"""Data access layer for ledger, cards, catalog, snapshots, advisory records and deals"""

import uuid
from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from spurz_engine.domain.deals import popularity_score
from spurz_engine.domain.models import (
    ActionDraft,
    CardAccount,
    CardOffer,
    CatalogCard,
    Deal,
    FinancialSnapshot,
    InsightDraft,
    LedgerEntry,
    RecommendationDraft,
    RecommendationReason,
    RecommendationType,
    RecommendedCard,
    RewardCategory,
    SpendingCategoryAggregate,
    Trend,
)
from spurz_engine.infrastructure.database.models import (
    CardAccountRecord,
    CardRecommendationRecord,
    CatalogCardRecord,
    DealCardOfferRecord,
    DealRecord,
    FinancialSnapshotRecord,
    InsightRecord,
    LedgerEntryRecord,
    NextBestActionRecord,
    RewardCategoryRecord,
    SpendingCategoryRecord,
    UserProfileRecord,
)
from spurz_engine.utils.date_utils import utcnow


def as_uuid(value: Any) -> Optional[uuid.UUID]:
    """Parse an id coming from the outside; None when it is not a UUID"""
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _str_id(value: Optional[uuid.UUID]) -> Optional[str]:
    return str(value) if value is not None else None


def _dialect_insert(db: Session):
    """INSERT construct of the bound dialect, for ON CONFLICT upserts"""
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert
    return sqlite.insert


# Record -> domain conversions


def to_ledger_entry(record: LedgerEntryRecord) -> LedgerEntry:
    return LedgerEntry(
        name=record.name,
        amount=record.amount,
        frequency=record.frequency,
        is_active=record.is_active,
        id=_str_id(record.id),
    )


def to_card_account(record: CardAccountRecord) -> CardAccount:
    return CardAccount(
        bank_name=record.bank_name,
        card_name=record.card_name,
        credit_limit=record.credit_limit or 0.0,
        current_balance=record.current_balance or 0.0,
        is_primary=record.is_primary,
        is_active=record.is_active,
        id=_str_id(record.id),
    )


def to_catalog_card(record: CatalogCardRecord) -> CatalogCard:
    return CatalogCard(
        bank_name=record.bank_name,
        card_name=record.card_name,
        tier=record.tier,
        annual_fee=record.annual_fee or 0.0,
        base_reward_rate=record.base_reward_rate or 0.0,
        reward_categories=[
            RewardCategory(category=rc.category, reward_rate=rc.reward_rate, cap=rc.cap)
            for rc in record.reward_categories
        ],
        network=record.network,
        reward_type=record.reward_type,
        popularity=record.popularity or 0,
        id=_str_id(record.id),
    )


def to_category_aggregate(record: SpendingCategoryRecord) -> SpendingCategoryAggregate:
    return SpendingCategoryAggregate(
        category=record.category,
        current_month_spend=record.current_month_spend or 0.0,
        previous_month_spend=record.previous_month_spend or 0.0,
        current_reward=record.current_reward or 0.0,
        trend=Trend(record.trend),
        trend_percentage=record.trend_percentage or 0.0,
        potential_savings=record.potential_savings or 0.0,
        recommended_cards=[RecommendedCard(**card) for card in (record.recommended_cards or [])],
    )


def to_deal(record: DealRecord) -> Deal:
    return Deal(
        merchant_name=record.merchant_name,
        category=record.category,
        deal_type=record.deal_type,
        value=record.value,
        title=record.title,
        max_discount=record.max_discount,
        min_transaction=record.min_transaction,
        card_offers=[
            CardOffer(
                bank_name=offer.bank_name,
                card_name=offer.card_name,
                catalog_card_id=_str_id(offer.catalog_card_id),
                additional_discount=offer.additional_discount,
            )
            for offer in record.card_offers
        ],
        is_featured=record.is_featured,
        views=record.views,
        clicks=record.clicks,
        redemptions=record.redemptions,
        popularity=record.popularity,
        status=record.status,
        start_date=record.start_date,
        end_date=record.end_date,
        id=_str_id(record.id),
    )


def to_recommendation(record: CardRecommendationRecord) -> RecommendationDraft:
    return RecommendationDraft(
        type=RecommendationType(record.type),
        primary_reason=RecommendationReason(record.primary_reason),
        bank_name=record.bank_name,
        card_name=record.card_name,
        reasons=list(record.reasons or []),
        score=record.score,
        priority=record.priority,
        market_card_id=_str_id(record.market_card_id),
        user_card_id=_str_id(record.user_card_id),
        estimated_monthly_savings=record.estimated_monthly_savings,
        estimated_yearly_savings=record.estimated_yearly_savings,
        estimated_rewards=record.estimated_rewards,
        relevant_categories=list(record.relevant_categories or []),
        id=_str_id(record.id),
    )


class LedgerRepository:
    """Repository for ledger entries"""

    def __init__(self, db: Session):
        self.db = db

    def list_active(self, owner_id: str) -> List[LedgerEntryRecord]:
        return (
            self.db.query(LedgerEntryRecord)
            .filter(LedgerEntryRecord.owner_id == owner_id, LedgerEntryRecord.is_active.is_(True))
            .order_by(LedgerEntryRecord.created_at)
            .all()
        )

    def get(self, owner_id: str, entry_id: Any) -> Optional[LedgerEntryRecord]:
        entry_uuid = as_uuid(entry_id)
        if entry_uuid is None:
            return None
        return (
            self.db.query(LedgerEntryRecord)
            .filter(LedgerEntryRecord.owner_id == owner_id, LedgerEntryRecord.id == entry_uuid)
            .first()
        )

    def create(self, owner_id: str, **fields) -> LedgerEntryRecord:
        record = LedgerEntryRecord(owner_id=owner_id, **fields)
        self.db.add(record)
        self.db.flush()
        return record

    def update(self, record: LedgerEntryRecord, **fields) -> LedgerEntryRecord:
        for key, value in fields.items():
            setattr(record, key, value)
        self.db.flush()
        return record

    def deactivate(self, record: LedgerEntryRecord) -> None:
        """Soft delete"""
        record.is_active = False
        self.db.flush()


class CardRepository:
    """Repository for user-owned cards"""

    def __init__(self, db: Session):
        self.db = db

    def list_active(self, owner_id: str) -> List[CardAccountRecord]:
        return (
            self.db.query(CardAccountRecord)
            .filter(CardAccountRecord.owner_id == owner_id, CardAccountRecord.is_active.is_(True))
            .order_by(CardAccountRecord.is_primary.desc(), CardAccountRecord.created_at)
            .all()
        )

    def get(self, owner_id: str, card_id: Any) -> Optional[CardAccountRecord]:
        card_uuid = as_uuid(card_id)
        if card_uuid is None:
            return None
        return (
            self.db.query(CardAccountRecord)
            .filter(CardAccountRecord.owner_id == owner_id, CardAccountRecord.id == card_uuid)
            .first()
        )

    def create(self, owner_id: str, **fields) -> CardAccountRecord:
        record = CardAccountRecord(owner_id=owner_id, **fields)
        self.db.add(record)
        self.db.flush()
        if record.is_primary:
            self.set_primary(record)
        return record

    def update(self, record: CardAccountRecord, **fields) -> CardAccountRecord:
        for key, value in fields.items():
            setattr(record, key, value)
        self.db.flush()
        if fields.get("is_primary"):
            self.set_primary(record)
        return record

    def set_primary(self, record: CardAccountRecord) -> None:
        """Make this the owner's only primary card"""
        self.db.execute(
            update(CardAccountRecord)
            .where(
                CardAccountRecord.owner_id == record.owner_id,
                CardAccountRecord.id != record.id,
                CardAccountRecord.is_primary.is_(True),
            )
            .values(is_primary=False)
            .execution_options(synchronize_session="fetch")
        )
        record.is_primary = True
        self.db.flush()

    def deactivate(self, record: CardAccountRecord) -> None:
        record.is_active = False
        record.is_primary = False
        self.db.flush()

    def held_banks(self, owner_id: str) -> set:
        return {card.bank_name for card in self.list_active(owner_id)}


class CatalogRepository:
    """Read-only access to market cards"""

    def __init__(self, db: Session):
        self.db = db

    def list_active(self) -> List[CatalogCardRecord]:
        return (
            self.db.query(CatalogCardRecord)
            .filter(CatalogCardRecord.is_active.is_(True))
            .order_by(CatalogCardRecord.popularity.desc())
            .all()
        )

    def get(self, card_id: Any) -> Optional[CatalogCardRecord]:
        card_uuid = as_uuid(card_id)
        if card_uuid is None:
            return None
        return self.db.get(CatalogCardRecord, card_uuid)

    def by_ids(self, card_ids: Iterable[Any]) -> Dict[str, CatalogCard]:
        ids = [card_uuid for card_uuid in (as_uuid(card_id) for card_id in card_ids) if card_uuid]
        if not ids:
            return {}
        records = self.db.query(CatalogCardRecord).filter(CatalogCardRecord.id.in_(ids)).all()
        return {str(record.id): to_catalog_card(record) for record in records}

    def add(self, card: CatalogCard) -> CatalogCardRecord:
        """Seed a catalog card"""
        record = CatalogCardRecord(
            bank_name=card.bank_name,
            card_name=card.card_name,
            tier=card.tier,
            network=card.network,
            annual_fee=card.annual_fee,
            reward_type=card.reward_type,
            base_reward_rate=card.base_reward_rate,
            popularity=card.popularity,
        )
        for reward in card.reward_categories:
            record.reward_categories.append(
                RewardCategoryRecord(category=reward.category, reward_rate=reward.reward_rate, cap=reward.cap)
            )
        self.db.add(record)
        self.db.flush()
        return record


class SpendingCategoryRepository:
    """Repository for per-category spend aggregates"""

    def __init__(self, db: Session):
        self.db = db

    def list(self, owner_id: str) -> List[SpendingCategoryRecord]:
        return (
            self.db.query(SpendingCategoryRecord)
            .filter(SpendingCategoryRecord.owner_id == owner_id)
            .order_by(SpendingCategoryRecord.current_month_spend.desc())
            .all()
        )

    def get(self, owner_id: str, category: str) -> Optional[SpendingCategoryRecord]:
        return (
            self.db.query(SpendingCategoryRecord)
            .filter(SpendingCategoryRecord.owner_id == owner_id, SpendingCategoryRecord.category == category)
            .first()
        )

    def upsert(self, owner_id: str, category: str, **fields) -> SpendingCategoryRecord:
        """Create or update the owner's row for a category (trend recomputed on flush)"""
        record = self.get(owner_id, category)
        if record is None:
            record = SpendingCategoryRecord(owner_id=owner_id, category=category)
            self.db.add(record)
        for key, value in fields.items():
            setattr(record, key, value)
        self.db.flush()
        return record

    def save_suggestions(
        self, record: SpendingCategoryRecord, cards: List[RecommendedCard], potential_savings: float
    ) -> None:
        record.recommended_cards = [asdict(card) for card in cards]
        record.potential_savings = potential_savings
        self.db.flush()


class SnapshotRepository:
    """Repository for the single live snapshot per owner"""

    def __init__(self, db: Session):
        self.db = db

    def upsert(self, snapshot: FinancialSnapshot) -> FinancialSnapshotRecord:
        """Atomic replace keyed by owner id (INSERT ... ON CONFLICT DO UPDATE)"""
        values = {
            "owner_id": snapshot.owner_id,
            "health_score": snapshot.health_score,
            "health_band": snapshot.health_band.value,
            "scenario_code": snapshot.scenario_code.value,
            "metrics": asdict(snapshot.metrics),
            "completeness": asdict(snapshot.completeness),
            "computed_at": snapshot.computed_at,
        }
        insert = _dialect_insert(self.db)
        stmt = insert(FinancialSnapshotRecord.__table__).values(id=uuid.uuid4(), **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["owner_id"],
            set_={key: stmt.excluded[key] for key in values if key != "owner_id"},
        )
        self.db.execute(stmt)
        return self.get(snapshot.owner_id)

    def get(self, owner_id: str) -> Optional[FinancialSnapshotRecord]:
        return self.db.execute(
            select(FinancialSnapshotRecord)
            .where(FinancialSnapshotRecord.owner_id == owner_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()


class ProfileRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, owner_id: str) -> Optional[UserProfileRecord]:
        return self.db.query(UserProfileRecord).filter(UserProfileRecord.owner_id == owner_id).first()

    def upsert(self, owner_id: str, **fields) -> UserProfileRecord:
        record = self.get(owner_id)
        if record is None:
            record = UserProfileRecord(owner_id=owner_id)
            self.db.add(record)
        for key, value in fields.items():
            setattr(record, key, value)
        self.db.flush()
        return record


class RecommendationRepository:
    """Repository for card recommendations"""

    def __init__(self, db: Session):
        self.db = db

    def _insert(self, owner_id: str, drafts: List[RecommendationDraft], expires_at: Optional[datetime]):
        records = [
            CardRecommendationRecord(
                owner_id=owner_id,
                market_card_id=as_uuid(draft.market_card_id),
                user_card_id=as_uuid(draft.user_card_id),
                type=draft.type.value,
                primary_reason=draft.primary_reason.value,
                reasons=list(draft.reasons),
                bank_name=draft.bank_name,
                card_name=draft.card_name,
                estimated_monthly_savings=draft.estimated_monthly_savings,
                estimated_yearly_savings=draft.estimated_yearly_savings,
                estimated_rewards=draft.estimated_rewards,
                relevant_categories=list(draft.relevant_categories),
                score=draft.score,
                priority=draft.priority,
                expires_at=expires_at,
            )
            for draft in drafts
        ]
        self.db.add_all(records)
        self.db.flush()
        return records

    def replace_batch(
        self, owner_id: str, drafts: List[RecommendationDraft], expires_at: Optional[datetime]
    ) -> List[CardRecommendationRecord]:
        """Delete the owner's active non-upgrade rows, then insert the new batch (caller commits)"""
        self.db.execute(
            delete(CardRecommendationRecord).where(
                CardRecommendationRecord.owner_id == owner_id,
                CardRecommendationRecord.is_active.is_(True),
                CardRecommendationRecord.type != RecommendationType.UPGRADE.value,
            )
        )
        return self._insert(owner_id, drafts, expires_at)

    def replace_upgrades(
        self, owner_id: str, drafts: List[RecommendationDraft], expires_at: Optional[datetime]
    ) -> List[CardRecommendationRecord]:
        self.db.execute(
            delete(CardRecommendationRecord).where(
                CardRecommendationRecord.owner_id == owner_id,
                CardRecommendationRecord.type == RecommendationType.UPGRADE.value,
            )
        )
        return self._insert(owner_id, drafts, expires_at)

    def list_active(
        self,
        owner_id: str,
        now: datetime,
        type: Optional[str] = None,
        include_viewed: bool = False,
        limit: int = 20,
    ) -> List[CardRecommendationRecord]:
        query = self.db.query(CardRecommendationRecord).filter(
            CardRecommendationRecord.owner_id == owner_id,
            CardRecommendationRecord.is_active.is_(True),
            CardRecommendationRecord.is_dismissed.is_(False),
            CardRecommendationRecord.expires_at > now,
        )
        if type:
            query = query.filter(CardRecommendationRecord.type == type)
        if not include_viewed:
            query = query.filter(CardRecommendationRecord.is_viewed.is_(False))
        return (
            query.order_by(CardRecommendationRecord.priority.desc(), CardRecommendationRecord.score.desc())
            .limit(limit)
            .all()
        )

    def list_undismissed(self, owner_id: str) -> List[CardRecommendationRecord]:
        return (
            self.db.query(CardRecommendationRecord)
            .filter(
                CardRecommendationRecord.owner_id == owner_id,
                CardRecommendationRecord.is_active.is_(True),
                CardRecommendationRecord.is_dismissed.is_(False),
            )
            .order_by(CardRecommendationRecord.priority.desc(), CardRecommendationRecord.score.desc())
            .all()
        )

    def get(self, owner_id: str, recommendation_id: Any) -> Optional[CardRecommendationRecord]:
        rec_uuid = as_uuid(recommendation_id)
        if rec_uuid is None:
            return None
        return (
            self.db.query(CardRecommendationRecord)
            .filter(CardRecommendationRecord.owner_id == owner_id, CardRecommendationRecord.id == rec_uuid)
            .first()
        )


class InsightRepository:
    def __init__(self, db: Session):
        self.db = db

    def replace_batch(
        self, owner_id: str, snapshot_id: Optional[uuid.UUID], drafts: List[InsightDraft]
    ) -> List[InsightRecord]:
        self.db.execute(delete(InsightRecord).where(InsightRecord.owner_id == owner_id))
        records = [
            InsightRecord(
                owner_id=owner_id,
                snapshot_id=snapshot_id,
                category=draft.category.value,
                priority=draft.priority.value,
                title=draft.title,
                description=draft.description,
                value=draft.value,
                value_label=draft.value_label,
                trend=draft.trend.value if draft.trend else None,
                actionable=draft.actionable,
                expires_at=draft.expires_at,
                details=dict(draft.metadata),
            )
            for draft in drafts
        ]
        self.db.add_all(records)
        self.db.flush()
        return records

    def list(self, owner_id: str, unread_only: bool = False) -> List[InsightRecord]:
        query = self.db.query(InsightRecord).filter(InsightRecord.owner_id == owner_id)
        if unread_only:
            query = query.filter(InsightRecord.is_read.is_(False))
        return query.order_by(InsightRecord.created_at).all()

    def get(self, owner_id: str, insight_id: Any) -> Optional[InsightRecord]:
        insight_uuid = as_uuid(insight_id)
        if insight_uuid is None:
            return None
        return (
            self.db.query(InsightRecord)
            .filter(InsightRecord.owner_id == owner_id, InsightRecord.id == insight_uuid)
            .first()
        )


class ActionRepository:
    def __init__(self, db: Session):
        self.db = db

    def replace_batch(
        self, owner_id: str, snapshot_id: Optional[uuid.UUID], drafts: List[ActionDraft]
    ) -> List[NextBestActionRecord]:
        self.db.execute(delete(NextBestActionRecord).where(NextBestActionRecord.owner_id == owner_id))
        records = [
            NextBestActionRecord(
                owner_id=owner_id,
                snapshot_id=snapshot_id,
                type=draft.type.value,
                title=draft.title,
                description=draft.description,
                icon=draft.icon,
                priority=draft.priority,
                estimated_impact=draft.estimated_impact,
                estimated_savings=draft.estimated_savings,
                due_date=draft.due_date,
                details=dict(draft.metadata),
            )
            for draft in drafts
        ]
        self.db.add_all(records)
        self.db.flush()
        return records

    def list_open(self, owner_id: str, now: datetime) -> List[NextBestActionRecord]:
        """Pending actions plus snoozed ones whose snooze has elapsed"""
        records = (
            self.db.query(NextBestActionRecord)
            .filter(NextBestActionRecord.owner_id == owner_id)
            .filter(NextBestActionRecord.status.in_(["pending", "snoozed"]))
            .order_by(NextBestActionRecord.priority.desc())
            .all()
        )
        return [
            record
            for record in records
            if record.status == "pending" or (record.snoozed_until is not None and record.snoozed_until <= now)
        ]

    def get(self, owner_id: str, action_id: Any) -> Optional[NextBestActionRecord]:
        action_uuid = as_uuid(action_id)
        if action_uuid is None:
            return None
        return (
            self.db.query(NextBestActionRecord)
            .filter(NextBestActionRecord.owner_id == owner_id, NextBestActionRecord.id == action_uuid)
            .first()
        )


class DealRepository:
    """Repository for deals and their engagement counters"""

    COUNTERS = ("views", "clicks", "redemptions")

    def __init__(self, db: Session):
        self.db = db

    def get(self, deal_id: Any) -> Optional[DealRecord]:
        deal_uuid = as_uuid(deal_id)
        if deal_uuid is None:
            return None
        return self.db.get(DealRecord, deal_uuid)

    def add(self, deal: Deal, **fields) -> DealRecord:
        """Seed a deal"""
        record = DealRecord(
            merchant_name=deal.merchant_name,
            category=deal.category,
            title=deal.title or deal.merchant_name,
            deal_type=getattr(deal.deal_type, "value", deal.deal_type),
            value=deal.value,
            max_discount=deal.max_discount,
            min_transaction=deal.min_transaction,
            is_featured=deal.is_featured,
            status=deal.status,
            start_date=deal.start_date or utcnow(),
            end_date=deal.end_date,
            views=deal.views,
            clicks=deal.clicks,
            redemptions=deal.redemptions,
            popularity=deal.popularity,
            **fields,
        )
        for offer in deal.card_offers:
            record.card_offers.append(
                DealCardOfferRecord(
                    bank_name=offer.bank_name,
                    card_name=offer.card_name,
                    catalog_card_id=as_uuid(offer.catalog_card_id),
                    additional_discount=offer.additional_discount,
                )
            )
        self.db.add(record)
        self.db.flush()
        return record

    def _live_query(self, now: datetime):
        return self.db.query(DealRecord).filter(
            DealRecord.status == "active",
            DealRecord.is_active.is_(True),
            DealRecord.start_date <= now,
            DealRecord.end_date >= now,
        )

    def list_live(
        self,
        now: datetime,
        category: Optional[str] = None,
        featured_only: bool = False,
        categories: Optional[List[str]] = None,
        limit: Optional[int] = None,
    ) -> List[DealRecord]:
        """Active in-window deals, featured first, then popularity and value"""
        query = self._live_query(now)
        if category:
            query = query.filter(DealRecord.category == category)
        if categories is not None:
            query = query.filter(DealRecord.category.in_(categories))
        if featured_only:
            query = query.filter(DealRecord.is_featured.is_(True))
        query = query.order_by(
            DealRecord.is_featured.desc(), DealRecord.popularity.desc(), DealRecord.value.desc()
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def list_for_card(self, now: datetime, bank_name: str, card_name: str) -> List[DealRecord]:
        offered = select(DealCardOfferRecord.deal_id).where(
            (DealCardOfferRecord.bank_name == bank_name) | (DealCardOfferRecord.card_name == card_name)
        )
        return (
            self._live_query(now)
            .filter(DealRecord.id.in_(offered))
            .order_by(DealRecord.value.desc(), DealRecord.popularity.desc())
            .all()
        )

    def increment(self, deal_id: Any, counter: str) -> bool:
        """Atomic counter += 1; False when the deal does not exist"""
        if counter not in self.COUNTERS:
            raise ValueError(f"Unknown engagement counter: {counter}")
        deal_uuid = as_uuid(deal_id)
        if deal_uuid is None:
            return False
        column = getattr(DealRecord, counter)
        result = self.db.execute(
            update(DealRecord)
            .where(DealRecord.id == deal_uuid)
            .values({counter: column + 1})
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def reload(self, deal_id: Any) -> Optional[DealRecord]:
        """Fetch bypassing the identity map, so counters bumped in SQL are visible"""
        deal_uuid = as_uuid(deal_id)
        if deal_uuid is None:
            return None
        return self.db.execute(
            select(DealRecord).where(DealRecord.id == deal_uuid).execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def refresh_popularity(self, deal_id: Any) -> Optional[DealRecord]:
        record = self.reload(deal_id)
        if record is None:
            return None
        record.popularity = popularity_score(record.views, record.clicks, record.redemptions)
        self.db.flush()
        return record

    def set_status(self, record: DealRecord, status: str) -> None:
        record.status = status
        self.db.flush()
