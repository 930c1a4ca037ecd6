"""Unit tests for card recommendation rules"""

import pytest
from spurz_engine.domain.models import (
    CardAccount,
    RecommendationReason,
    RecommendationType,
    SpendingCategoryAggregate,
)
from spurz_engine.domain.recommendations import (
    calculate_reward_potential,
    better_rewards_recommendations,
    find_best_card_for_category,
    high_spending_recommendations,
    low_utilization_recommendations,
    net_benefit,
    recommend_card_for_transaction,
    savings_priority,
    savings_score,
    upgrade_recommendations,
)


@pytest.fixture
def categories():
    return [
        SpendingCategoryAggregate("dining", 10000, current_reward=200),
        SpendingCategoryAggregate("groceries", 6000),
        SpendingCategoryAggregate("fuel", 4000),
    ]


@pytest.fixture
def owned():
    return [CardAccount(bank_name="HDFC", card_name="HDFC Regalia", credit_limit=100000, current_balance=5000, id="c1")]


def test_net_benefit(catalog_cards):
    axis = catalog_cards[0]
    assert net_benefit(axis, "dining", 10000) == pytest.approx(11000)
    assert net_benefit(axis, "fuel", 10000) is None


def test_best_card_by_net_benefit(catalog_cards):
    assert find_best_card_for_category(catalog_cards, "dining", 10000).card_name == "Axis Dine Max"
    assert find_best_card_for_category(catalog_cards, "groceries", 6000).card_name == "SBI Grocer"


def test_no_card_when_nothing_pays_for_its_fee(catalog_cards):
    assert find_best_card_for_category(catalog_cards, "dining", 500) is None


@pytest.mark.parametrize(
    "savings, score, priority",
    [(1000, 100, 9), (600, 60, 9), (300, 30, 7), (150, 15, 5)],
)
def test_score_and_priority_tiers(savings, score, priority):
    assert savings_score(savings) == score
    assert savings_priority(savings) == priority


def test_high_spending_only_top_categories_over_threshold(catalog_cards, categories):
    drafts = high_spending_recommendations(catalog_cards, categories)

    assert [(d.card_name, d.relevant_categories) for d in drafts] == [
        ("Axis Dine Max", ["dining"]),
        ("SBI Grocer", ["groceries"]),
    ]
    dining = drafts[0]
    assert dining.type == RecommendationType.NEW_CARD
    assert dining.primary_reason == RecommendationReason.HIGH_SPENDING_CATEGORY
    assert dining.estimated_monthly_savings == pytest.approx(1000)
    assert dining.estimated_yearly_savings == pytest.approx(12000)
    assert (dining.score, dining.priority) == (100, 9)


def test_better_rewards_needs_owned_cards(catalog_cards, categories):
    assert better_rewards_recommendations(catalog_cards, categories, []) == []


def test_better_rewards_uses_improvement(catalog_cards, categories, owned):
    drafts = better_rewards_recommendations(catalog_cards, categories, owned)

    dining = next(d for d in drafts if d.relevant_categories == ["dining"])
    assert dining.primary_reason == RecommendationReason.BETTER_REWARDS
    assert dining.estimated_monthly_savings == pytest.approx(800)
    assert dining.estimated_rewards == pytest.approx(1000)
    assert dining.score == pytest.approx(80)


def test_better_rewards_skips_small_improvements(catalog_cards, owned):
    categories = [SpendingCategoryAggregate("dining", 10000, current_reward=950)]
    assert better_rewards_recommendations(catalog_cards, categories, owned) == []


def test_low_utilization_nudge(owned):
    drafts = low_utilization_recommendations(owned)

    assert len(drafts) == 1
    assert drafts[0].type == RecommendationType.EXISTING_CARD
    assert drafts[0].primary_reason == RecommendationReason.LOW_UTILIZATION
    assert (drafts[0].score, drafts[0].priority) == (60, 4)
    assert drafts[0].user_card_id == "c1"


def test_low_utilization_requires_large_limit():
    small = CardAccount(bank_name="SBI", card_name="Simply", credit_limit=50000, current_balance=0)
    busy = CardAccount(bank_name="SBI", card_name="Elite", credit_limit=200000, current_balance=40000)
    assert low_utilization_recommendations([small, busy]) == []


def test_reward_potential_falls_back_to_base_rate(catalog_cards, categories):
    infinia = catalog_cards[2]
    # 3.3% base on 20000 of spend
    assert calculate_reward_potential(infinia, categories) == pytest.approx(660)


def test_upgrade_when_annual_reward_beats_fee(catalog_cards, categories, owned):
    assert upgrade_recommendations(catalog_cards, owned, categories) == []

    categories.append(SpendingCategoryAggregate("travel", 20000))
    drafts = upgrade_recommendations(catalog_cards, owned, categories)

    assert len(drafts) == 1
    upgrade = drafts[0]
    assert upgrade.type == RecommendationType.UPGRADE
    assert upgrade.card_name == "HDFC Infinia"
    assert upgrade.estimated_rewards == pytest.approx(1660)
    assert upgrade.estimated_yearly_savings == pytest.approx(1660 * 12 - 10000)
    assert (upgrade.score, upgrade.priority) == (70, 6)


def test_card_for_transaction_prefers_owned_card(catalog_cards, owned):
    assert recommend_card_for_transaction(owned, catalog_cards, "dining", 2000) is owned[0]


def test_card_for_transaction_falls_back_to_catalog(catalog_cards, owned):
    card = recommend_card_for_transaction(owned, catalog_cards, "dining", 200000)
    assert card.card_name == "Axis Dine Max"
