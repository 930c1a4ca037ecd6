"""Integration tests for services against the test database"""

import pytest
from sqlalchemy.orm import Session

from spurz_engine.domain.exceptions import DealNotFoundError
from spurz_engine.infrastructure.database.models import (
    CardRecommendationRecord,
    FinancialSnapshotRecord,
    InsightRecord,
)
from spurz_engine.infrastructure.database.repositories import (
    CardRepository,
    InsightRepository,
    LedgerRepository,
    ProfileRepository,
)
from spurz_engine.services.advisory import InsightService, NextBestActionService
from spurz_engine.services.deals import DealMatchingService
from spurz_engine.services.recommendations import CardRecommendationService
from spurz_engine.services.refresh import SnapshotRefresher
from spurz_engine.services.snapshot import SnapshotService
from spurz_engine.services.spending import SpendingAnalysisService

OWNER = "user-svc"


@pytest.fixture
def funded_user(db: Session):
    """Salary, one weekly expense, one HDFC card and a complete profile"""
    ledger = LedgerRepository(db)
    ledger.create(OWNER, name="Salary", amount=100000, frequency="monthly")
    ledger.create(OWNER, name="Expense: Dining", amount=1000, frequency="weekly")
    CardRepository(db).create(
        OWNER, bank_name="HDFC", card_name="HDFC Regalia", credit_limit=100000, current_balance=5000
    )
    ProfileRepository(db).upsert(OWNER, full_name="Asha Rao", occupation="Engineer")
    db.commit()


@pytest.fixture
def spending(db: Session):
    service = SpendingAnalysisService(db)
    service.record_spend(OWNER, "dining", 10000, previous_month_spend=8000, current_reward=200)
    service.record_spend(OWNER, "groceries", 6000)
    service.record_spend(OWNER, "fuel", 4000)
    db.commit()
    return service


# Snapshot


def test_snapshot_upsert_keeps_one_row(db: Session, funded_user):
    service = SnapshotService(db)

    first = service.generate_snapshot(OWNER)
    db.commit()
    second = service.generate_snapshot(OWNER)
    db.commit()

    assert db.query(FinancialSnapshotRecord).filter_by(owner_id=OWNER).count() == 1
    assert first.id == second.id
    assert second.metrics["monthly_income"] == 100000
    assert second.metrics["monthly_expenses"] == 4330


def test_snapshot_upsert_from_independent_sessions(db: Session, funded_user, session_factory):
    first_session, second_session = session_factory(), session_factory()

    first = SnapshotService(first_session).generate_snapshot(OWNER)
    first_session.commit()
    second = SnapshotService(second_session).generate_snapshot(OWNER)
    second_session.commit()

    assert db.query(FinancialSnapshotRecord).filter_by(owner_id=OWNER).count() == 1
    assert first.id == second.id
    assert (first.health_band, first.health_score) == (second.health_band, second.health_score)


def test_snapshot_classification(db: Session, funded_user):
    record = SnapshotService(db).generate_snapshot(OWNER)

    # savings 95670 / 100000, utilization 5%, dti 5%
    assert record.health_band == "OPTIMIZER"
    assert record.scenario_code == "OPTIMIZER_BLUE"
    assert record.health_score == 100
    assert record.completeness["has_expense_info"] is True


def test_snapshot_tracks_ledger_changes(db: Session, funded_user):
    service = SnapshotService(db)
    service.generate_snapshot(OWNER)
    db.commit()

    LedgerRepository(db).create(OWNER, name="Expense: Rent", amount=100000, frequency="monthly")
    db.commit()
    record = service.generate_snapshot(OWNER)

    assert record.metrics["monthly_savings"] == 0
    assert record.health_band == "CRITICAL"


def test_salary_without_cards_is_onboarding(db: Session):
    LedgerRepository(db).create(OWNER, name="Salary", amount=60000, frequency="monthly")
    db.commit()

    record = SnapshotService(db).generate_snapshot(OWNER)

    assert record.health_band == "OPTIMIZER"
    assert record.scenario_code == "ONBOARDING_NO_CARDS"
    assert record.metrics["savings_rate"] == 1.0


def test_refresher_stores_snapshot(db: Session, funded_user, shared_scope):
    assert SnapshotRefresher(shared_scope, sleep=lambda _: None).run(OWNER) is True
    assert SnapshotService(db).get_snapshot(OWNER) is not None


# Spending


def test_record_spend_updates_trend(db: Session, spending):
    dining = spending.get_category(OWNER, "dining")
    assert dining.trend.value == "up"
    assert dining.trend_percentage == pytest.approx(25.0)

    spending.record_spend(OWNER, "dining", 8200)
    db.commit()
    assert spending.get_category(OWNER, "dining").trend.value == "stable"


def test_refresh_category_recommendations(db: Session, spending, seeded_catalog, funded_user):
    aggregates = spending.refresh_category_recommendations(OWNER)
    db.commit()

    dining = next(a for a in aggregates if a.category == "dining")
    assert [c.card_name for c in dining.recommended_cards] == ["Axis Dine Max", "SBI Grocer"]
    assert dining.potential_savings == pytest.approx(800)
    assert spending.get_category(OWNER, "dining").recommended_cards[0].card_id == str(seeded_catalog[0].id)


# Recommendations


def _tuples(records):
    return sorted((r.card_name, r.primary_reason, r.score) for r in records)


def test_best_catalog_card_for_category(db: Session, seeded_catalog):
    service = CardRecommendationService(db)

    assert service.find_best_card_for_category("dining", 10000).card_name == "Axis Dine Max"
    assert service.find_best_card_for_category("dining", 500) is None


def test_recommendation_regeneration_is_idempotent(db: Session, spending, seeded_catalog, funded_user):
    service = CardRecommendationService(db)

    first = _tuples(service.generate_recommendations(OWNER))
    second = _tuples(service.generate_recommendations(OWNER))

    assert first == second
    assert ("Axis Dine Max", "high_spending_category", 100) in first
    assert ("HDFC Regalia", "low_utilization", 60) in first
    assert db.query(CardRecommendationRecord).filter_by(owner_id=OWNER).count() == len(first)


def test_recommendations_expire_in_thirty_days(db: Session, spending, seeded_catalog, funded_user):
    records = CardRecommendationService(db).generate_recommendations(OWNER)
    assert {CardRecommendationService.days_until_expiry(r) for r in records} == {30}


def test_recommendation_failure_returns_empty_and_keeps_batch(
    db: Session, spending, seeded_catalog, funded_user, monkeypatch
):
    service = CardRecommendationService(db)
    existing = service.generate_recommendations(OWNER)

    def boom(*args, **kwargs):
        raise RuntimeError("catalog offline")

    monkeypatch.setattr(service.recommendations, "_insert", boom)

    assert service.generate_recommendations(OWNER) == []
    assert db.query(CardRecommendationRecord).filter_by(owner_id=OWNER).count() == len(existing)


def test_dismissed_recommendations_hidden(db: Session, spending, seeded_catalog, funded_user):
    service = CardRecommendationService(db)
    records = service.generate_recommendations(OWNER)

    service.dismiss(OWNER, str(records[0].id), "not interested")
    db.commit()

    active_ids = {r.id for r in service.list_active(OWNER)}
    assert records[0].id not in active_ids
    assert len(active_ids) == len(records) - 1


def test_reward_potential_for_catalog_card(db: Session, spending, seeded_catalog):
    service = CardRecommendationService(db)
    axis_id = str(seeded_catalog[0].id)

    # dining at 10%, groceries and fuel at the 1% base rate
    assert service.calculate_reward_potential(OWNER, axis_id) == pytest.approx(1100)
    assert service.calculate_reward_potential(OWNER, "not-a-uuid") == 0.0


# Advisory


def test_insight_failure_degrades_to_empty(db: Session, funded_user, monkeypatch):
    metrics = SnapshotService(db).get_metrics(OWNER)
    service = InsightService(db)
    service.generate_insights(OWNER, metrics)
    before = db.query(InsightRecord).filter_by(owner_id=OWNER).count()

    def boom(*args, **kwargs):
        raise RuntimeError("insight store down")

    monkeypatch.setattr(InsightRepository, "replace_batch", boom)

    assert service.generate_insights(OWNER, metrics) == []
    assert db.query(InsightRecord).filter_by(owner_id=OWNER).count() == before


def test_actions_lifecycle(db: Session):
    completeness = SnapshotService(db).get_completeness(OWNER)
    service = NextBestActionService(db)

    actions = service.generate_actions(OWNER, completeness)
    assert actions[0].title == "Add Your Income"

    service.complete(OWNER, str(actions[0].id))
    db.commit()

    assert actions[0].id not in {a.id for a in service.list_open(OWNER)}


# Deals


def test_personalized_deals_only_live(db: Session, seeded_deals, spending):
    deals = DealMatchingService(db).get_personalized_deals(OWNER)

    assert [d.merchant_name for d in deals] == ["Cafe Nine", "Spice Route"]


def test_match_deal_with_user_cards(db: Session, seeded_deals, funded_user):
    match = DealMatchingService(db).match_deals_with_user_cards(OWNER, str(seeded_deals[0].id))

    assert match.base_savings == 50
    assert match.best_user_card.bank_name == "HDFC"
    assert match.best_market_card.card_name == "Axis Dine Max"
    assert match.total_savings == pytest.approx(100)


def test_match_expired_deal_is_none(db: Session, seeded_deals):
    assert DealMatchingService(db).match_deals_with_user_cards(OWNER, str(seeded_deals[2].id)) is None


def test_engagement_updates_popularity(db: Session, seeded_deals):
    service = DealMatchingService(db)
    deal_id = str(seeded_deals[1].id)

    service.track_click(deal_id)
    service.track_click(deal_id)
    service.track_redemption(deal_id)
    record = service.read_deal(deal_id)
    db.commit()

    assert (record.views, record.clicks, record.redemptions) == (1, 2, 1)
    assert record.popularity == 1 + 2 * 2 + 10


def test_tracking_unknown_deal(db: Session):
    with pytest.raises(DealNotFoundError):
        DealMatchingService(db).track_click("00000000-0000-0000-0000-000000000000")


def test_read_deal_expires_stale_status(db: Session, seeded_deals):
    record = DealMatchingService(db).read_deal(str(seeded_deals[2].id))
    assert record.status == "expired"


def test_deals_for_market_card(db: Session, seeded_deals, seeded_catalog):
    deals = DealMatchingService(db).get_deals_for_card(OWNER, str(seeded_catalog[0].id), is_market_card=True)
    assert [d.merchant_name for d in deals] == ["Spice Route"]


def test_optimal_combos(db: Session, seeded_deals, funded_user):
    combos = DealMatchingService(db).find_optimal_card_deal_combos(OWNER, "dining")

    # Cafe Nine carries no card offers, so only Spice Route pairs with a card
    assert [(c.deal.merchant_name, c.is_user_card, c.card.bank_name) for c in combos] == [
        ("Spice Route", True, "HDFC"),
        ("Spice Route", False, "Axis"),
    ]
    assert combos[0].total_value == pytest.approx(100)
