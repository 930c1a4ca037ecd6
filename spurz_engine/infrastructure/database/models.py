"""SQLAlchemy ORM models for ledger, cards, catalog, snapshots, advisory records and deals"""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship

from spurz_engine.domain.spending import compute_trend
from spurz_engine.utils.date_utils import utcnow

Base = declarative_base()


class LedgerEntryRecord(Base):
    """Income, expense, investment or loan entry; class is derived from the name at read time"""

    __tablename__ = "ledger_entry"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    amount = Column(Float, nullable=False, default=0.0)
    frequency = Column(Text, nullable=False, default="monthly")
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class CardAccountRecord(Base):
    """User-owned credit card"""

    __tablename__ = "card_account"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    bank_name = Column(Text, nullable=False)
    card_name = Column(Text, nullable=False)
    last_four = Column(Text, nullable=True)
    network = Column(Text, nullable=True)
    credit_limit = Column(Float, nullable=False, default=0.0)
    current_balance = Column(Float, nullable=False, default=0.0)
    available_credit = Column(Float, nullable=False, default=0.0)
    is_primary = Column(Boolean, nullable=False, default=False)
    reward_type = Column(Text, nullable=True)
    reward_rate = Column(Float, nullable=True)
    annual_fee = Column(Float, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


@event.listens_for(CardAccountRecord, "before_insert")
@event.listens_for(CardAccountRecord, "before_update")
def _sync_available_credit(mapper, connection, target: CardAccountRecord) -> None:
    target.available_credit = (target.credit_limit or 0.0) - (target.current_balance or 0.0)


class CatalogCardRecord(Base):
    """Market credit card (reference data)"""

    __tablename__ = "catalog_card"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bank_name = Column(Text, nullable=False, index=True)
    card_name = Column(Text, nullable=False)
    tier = Column(Text, nullable=False, default="basic")
    network = Column(Text, nullable=False, default="visa")
    annual_fee = Column(Float, nullable=False, default=0.0)
    reward_type = Column(Text, nullable=False, default="cashback")
    base_reward_rate = Column(Float, nullable=False, default=0.0)
    popularity = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    reward_categories = relationship(
        "RewardCategoryRecord", back_populates="card", cascade="all, delete-orphan", lazy="selectin"
    )


class RewardCategoryRecord(Base):
    __tablename__ = "catalog_reward_category"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    card_id = Column(UUID(as_uuid=True), ForeignKey("catalog_card.id", ondelete="CASCADE"), nullable=False)
    category = Column(Text, nullable=False, index=True)
    reward_rate = Column(Float, nullable=False)
    cap = Column(Float, nullable=True)

    card = relationship("CatalogCardRecord", back_populates="reward_categories")


class SpendingCategoryRecord(Base):
    """Per-owner monthly spend in one category"""

    __tablename__ = "spending_category"
    __table_args__ = (UniqueConstraint("owner_id", "category", name="uq_spending_owner_category"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    category = Column(Text, nullable=False)
    current_month_spend = Column(Float, nullable=False, default=0.0)
    previous_month_spend = Column(Float, nullable=False, default=0.0)
    current_reward = Column(Float, nullable=False, default=0.0)
    trend = Column(Text, nullable=False, default="stable")
    trend_percentage = Column(Float, nullable=False, default=0.0)
    potential_savings = Column(Float, nullable=False, default=0.0)
    recommended_cards = Column(JSON, nullable=False, default=list)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


@event.listens_for(SpendingCategoryRecord, "before_insert")
@event.listens_for(SpendingCategoryRecord, "before_update")
def _sync_trend(mapper, connection, target: SpendingCategoryRecord) -> None:
    trend, percent = compute_trend(target.current_month_spend or 0.0, target.previous_month_spend or 0.0)
    target.trend = trend.value
    target.trend_percentage = percent


class FinancialSnapshotRecord(Base):
    """Single live snapshot per owner, replaced on every recomputation"""

    __tablename__ = "financial_snapshot"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, unique=True)
    health_score = Column(Integer, nullable=False)
    health_band = Column(Text, nullable=False)
    scenario_code = Column(Text, nullable=False)
    metrics = Column(JSON, nullable=False)
    completeness = Column(JSON, nullable=False)
    computed_at = Column(DateTime, nullable=False, default=utcnow)


class CardRecommendationRecord(Base):
    __tablename__ = "card_recommendation"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    market_card_id = Column(UUID(as_uuid=True), nullable=True)
    user_card_id = Column(UUID(as_uuid=True), nullable=True)
    type = Column(Text, nullable=False)
    primary_reason = Column(Text, nullable=False)
    reasons = Column(JSON, nullable=False, default=list)
    bank_name = Column(Text, nullable=False)
    card_name = Column(Text, nullable=False)
    estimated_monthly_savings = Column(Float, nullable=True)
    estimated_yearly_savings = Column(Float, nullable=True)
    estimated_rewards = Column(Float, nullable=True)
    relevant_categories = Column(JSON, nullable=False, default=list)
    score = Column(Float, nullable=False)
    priority = Column(Integer, nullable=False)
    is_viewed = Column(Boolean, nullable=False, default=False)
    viewed_at = Column(DateTime, nullable=True)
    is_dismissed = Column(Boolean, nullable=False, default=False)
    dismissed_at = Column(DateTime, nullable=True)
    dismiss_reason = Column(Text, nullable=True)
    is_applied = Column(Boolean, nullable=False, default=False)
    applied_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class InsightRecord(Base):
    __tablename__ = "insight"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    snapshot_id = Column(UUID(as_uuid=True), nullable=True)
    category = Column(Text, nullable=False)
    priority = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    value = Column(Float, nullable=True)
    value_label = Column(Text, nullable=True)
    trend = Column(Text, nullable=True)
    actionable = Column(Boolean, nullable=False, default=False)
    is_read = Column(Boolean, nullable=False, default=False)
    expires_at = Column(DateTime, nullable=True)
    details = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class NextBestActionRecord(Base):
    __tablename__ = "next_best_action"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    snapshot_id = Column(UUID(as_uuid=True), nullable=True)
    type = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    icon = Column(Text, nullable=False)
    priority = Column(Integer, nullable=False)
    estimated_impact = Column(Text, nullable=False)
    estimated_savings = Column(Float, nullable=True)
    due_date = Column(DateTime, nullable=True)
    status = Column(Text, nullable=False, default="pending")
    completed_at = Column(DateTime, nullable=True)
    snoozed_until = Column(DateTime, nullable=True)
    details = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class DealRecord(Base):
    """Merchant deal with engagement counters"""

    __tablename__ = "deal"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    merchant_name = Column(Text, nullable=False)
    category = Column(Text, nullable=False, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    deal_type = Column(Text, nullable=False)
    value = Column(Float, nullable=False)
    max_discount = Column(Float, nullable=True)
    min_transaction = Column(Float, nullable=True)
    is_online = Column(Boolean, nullable=False, default=True)
    locations = Column(JSON, nullable=False, default=list)
    start_date = Column(DateTime, nullable=False, default=utcnow)
    end_date = Column(DateTime, nullable=False)
    status = Column(Text, nullable=False, default="active")
    is_featured = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    views = Column(Integer, nullable=False, default=0)
    clicks = Column(Integer, nullable=False, default=0)
    redemptions = Column(Integer, nullable=False, default=0)
    popularity = Column(Integer, nullable=False, default=0)

    card_offers = relationship(
        "DealCardOfferRecord", back_populates="deal", cascade="all, delete-orphan", lazy="selectin"
    )


class DealCardOfferRecord(Base):
    __tablename__ = "deal_card_offer"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    deal_id = Column(UUID(as_uuid=True), ForeignKey("deal.id", ondelete="CASCADE"), nullable=False)
    bank_name = Column(Text, nullable=False)
    card_name = Column(Text, nullable=True)
    catalog_card_id = Column(UUID(as_uuid=True), nullable=True)
    additional_discount = Column(Float, nullable=True)

    deal = relationship("DealRecord", back_populates="card_offers")


class UserProfileRecord(Base):
    """Minimal profile; feeds data completeness only"""

    __tablename__ = "user_profile"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, unique=True)
    full_name = Column(Text, nullable=True)
    occupation = Column(Text, nullable=True)
    city = Column(Text, nullable=True)
    is_bank_linked = Column(Boolean, nullable=False, default=False)
    is_email_linked = Column(Boolean, nullable=False, default=False)
    is_tracking_enabled = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
