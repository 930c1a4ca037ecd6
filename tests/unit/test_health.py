"""Unit tests for health band, scenario code and health score"""

import pytest
from spurz_engine.domain.health import (
    calculate_health_score,
    derive_health_band,
    derive_scenario_code,
    scenario_metadata,
)
from spurz_engine.domain.models import DataCompleteness, FinancialMetrics, HealthBand, ScenarioCode


def make_metrics(income=100000, savings_rate=0.35, utilization=0.1, dti=0.1) -> FinancialMetrics:
    return FinancialMetrics(
        monthly_income=income,
        savings_rate=savings_rate,
        credit_utilization=utilization,
        debt_to_income_ratio=dti,
    )


def complete(**overrides) -> DataCompleteness:
    fields = dict(
        has_basic_info=True,
        has_salary_info=True,
        has_card_info=True,
        has_expense_info=True,
        has_bank_linkage=False,
        has_email_linkage=False,
    )
    fields.update(overrides)
    return DataCompleteness(**fields)


def test_no_income_is_unknown():
    assert derive_health_band(make_metrics(income=0)) == HealthBand.UNKNOWN


@pytest.mark.parametrize(
    "savings_rate, utilization, dti, expected",
    [
        (0.05, 0.1, 0.1, HealthBand.CRITICAL),
        (0.35, 0.9, 0.1, HealthBand.CRITICAL),
        (0.35, 0.1, 0.6, HealthBand.CRITICAL),
        (0.15, 0.1, 0.1, HealthBand.STRESSED),
        (0.35, 0.6, 0.1, HealthBand.STRESSED),
        (0.35, 0.1, 0.4, HealthBand.STRESSED),
        (0.25, 0.1, 0.1, HealthBand.BALANCED),
        (0.35, 0.4, 0.1, HealthBand.BALANCED),
        (0.35, 0.1, 0.1, HealthBand.OPTIMIZER),
        (1.0, 0.0, 0.0, HealthBand.OPTIMIZER),
    ],
)
def test_band_thresholds(savings_rate, utilization, dti, expected):
    assert derive_health_band(make_metrics(savings_rate=savings_rate, utilization=utilization, dti=dti)) == expected


@pytest.mark.parametrize(
    "savings_rate, utilization, dti, expected",
    [
        # savings rate thresholds are inclusive lower bounds
        (0.0999, 0.1, 0.1, HealthBand.CRITICAL),
        (0.10, 0.1, 0.1, HealthBand.STRESSED),
        (0.20, 0.1, 0.1, HealthBand.BALANCED),
        (0.30, 0.1, 0.1, HealthBand.OPTIMIZER),
        # utilization thresholds are inclusive upper bounds
        (0.35, 0.80, 0.1, HealthBand.STRESSED),
        (0.35, 0.8001, 0.1, HealthBand.CRITICAL),
        (0.35, 0.50, 0.1, HealthBand.BALANCED),
        (0.35, 0.5001, 0.1, HealthBand.STRESSED),
        (0.35, 0.30, 0.1, HealthBand.OPTIMIZER),
        (0.35, 0.3001, 0.1, HealthBand.BALANCED),
        # debt-to-income thresholds are inclusive upper bounds
        (0.35, 0.1, 0.50, HealthBand.STRESSED),
        (0.35, 0.1, 0.5001, HealthBand.CRITICAL),
        (0.35, 0.1, 0.30, HealthBand.OPTIMIZER),
        (0.35, 0.1, 0.3001, HealthBand.STRESSED),
    ],
)
def test_band_threshold_edges(savings_rate, utilization, dti, expected):
    assert derive_health_band(make_metrics(savings_rate=savings_rate, utilization=utilization, dti=dti)) == expected


SEVERITY = {
    HealthBand.OPTIMIZER: 0,
    HealthBand.BALANCED: 1,
    HealthBand.STRESSED: 2,
    HealthBand.CRITICAL: 3,
}

STEPS = [i / 100 for i in range(101)]


@pytest.mark.parametrize(
    "ratio, worsens",
    [
        ("savings_rate", lambda x: 1 - x),
        ("utilization", lambda x: x),
        ("dti", lambda x: x),
    ],
)
@pytest.mark.parametrize("baseline", [(0.35, 0.1, 0.1), (0.15, 0.4, 0.2), (0.25, 0.6, 0.35)])
def test_band_severity_is_monotonic(ratio, worsens, baseline):
    """Making any one ratio worse never moves the band to a less severe one"""
    base = dict(zip(("savings_rate", "utilization", "dti"), baseline))
    severities = [
        SEVERITY[derive_health_band(make_metrics(**{**base, ratio: worsens(step)}))] for step in STEPS
    ]
    assert severities == sorted(severities)


def test_high_utilization_is_critical():
    """A 100000 limit card with 90000 used is critical whenever there is income"""
    assert derive_health_band(make_metrics(utilization=0.9)) == HealthBand.CRITICAL


def test_missing_salary_gates_everything():
    completeness = complete(has_salary_info=False, has_card_info=False)
    assert derive_scenario_code(completeness, HealthBand.OPTIMIZER) == ScenarioCode.ONBOARDING_NO_SALARY


def test_missing_cards_gates_health():
    assert derive_scenario_code(complete(has_card_info=False), HealthBand.OPTIMIZER) == ScenarioCode.ONBOARDING_NO_CARDS


def test_fewer_than_two_soft_signals_is_partial():
    completeness = complete(has_basic_info=True, has_expense_info=False)
    assert derive_scenario_code(completeness, HealthBand.BALANCED) == ScenarioCode.ONBOARDING_PARTIAL


def test_unknown_band_is_ready_without_health():
    assert derive_scenario_code(complete(), HealthBand.UNKNOWN) == ScenarioCode.READY_NO_HEALTH


@pytest.mark.parametrize(
    "band, expected",
    [
        (HealthBand.CRITICAL, ScenarioCode.CRITICAL_RED),
        (HealthBand.STRESSED, ScenarioCode.STRESSED_AMBER),
        (HealthBand.BALANCED, ScenarioCode.BALANCED_GREEN),
        (HealthBand.OPTIMIZER, ScenarioCode.OPTIMIZER_BLUE),
    ],
)
def test_band_scenarios(band, expected):
    assert derive_scenario_code(complete(), band) == expected


def test_perfect_score_is_capped():
    assert calculate_health_score(make_metrics(savings_rate=0.5, utilization=0.1, dti=0.1)) == 100


def test_income_weight_counts_twice():
    """No savings, maxed-out credit: only the two income gates score"""
    assert calculate_health_score(make_metrics(savings_rate=0.0, utilization=0.95, dti=0.9)) == 25


def test_graded_score():
    # 20 (savings) + 15 (utilization) + 8 (dti) + 25 (income)
    assert calculate_health_score(make_metrics(savings_rate=0.2, utilization=0.5, dti=0.45)) == 68


def test_score_without_income():
    # no income: savings and dti are zero, utilization zero scores 25 + 20
    assert calculate_health_score(FinancialMetrics()) == 45


def test_scenario_metadata():
    meta = scenario_metadata(ScenarioCode.CRITICAL_RED)
    assert (meta.color, meta.priority, meta.stage) == ("red", "urgent", "active")
    assert scenario_metadata(ScenarioCode.ONBOARDING_PARTIAL).stage == "onboarding"
