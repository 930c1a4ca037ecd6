"""Health classifier - maps metrics to a health band, scenario code and display score"""

from typing import NamedTuple

from spurz_engine.domain.models import DataCompleteness, FinancialMetrics, HealthBand, ScenarioCode

BAND_TO_SCENARIO = {
    HealthBand.CRITICAL: ScenarioCode.CRITICAL_RED,
    HealthBand.STRESSED: ScenarioCode.STRESSED_AMBER,
    HealthBand.BALANCED: ScenarioCode.BALANCED_GREEN,
    HealthBand.OPTIMIZER: ScenarioCode.OPTIMIZER_BLUE,
}


class ScenarioMetadata(NamedTuple):
    color: str
    priority: str
    stage: str


SCENARIO_METADATA = {
    ScenarioCode.ONBOARDING_NO_SALARY: ScenarioMetadata("gray", "setup", "onboarding"),
    ScenarioCode.ONBOARDING_NO_CARDS: ScenarioMetadata("gray", "setup", "onboarding"),
    ScenarioCode.ONBOARDING_PARTIAL: ScenarioMetadata("gray", "setup", "onboarding"),
    ScenarioCode.READY_NO_HEALTH: ScenarioMetadata("gray", "setup", "onboarding"),
    ScenarioCode.CRITICAL_RED: ScenarioMetadata("red", "urgent", "active"),
    ScenarioCode.STRESSED_AMBER: ScenarioMetadata("amber", "important", "active"),
    ScenarioCode.BALANCED_GREEN: ScenarioMetadata("green", "maintain", "active"),
    ScenarioCode.OPTIMIZER_BLUE: ScenarioMetadata("blue", "optimize", "active"),
}


def derive_health_band(metrics: FinancialMetrics) -> HealthBand:
    """
    Ordered threshold checks, most severe first. UNKNOWN only when there is no income.

    - CRITICAL:  savings rate < 10% OR utilization > 80% OR debt-to-income > 50%
    - STRESSED:  savings rate < 20% OR utilization > 50% OR debt-to-income > 30%
    - BALANCED:  savings rate < 30% OR utilization > 30%
    - OPTIMIZER: everything else
    """
    if metrics.monthly_income <= 0:
        return HealthBand.UNKNOWN

    sr = metrics.savings_rate
    cu = metrics.credit_utilization
    dti = metrics.debt_to_income_ratio

    if sr < 0.10 or cu > 0.80 or dti > 0.50:
        return HealthBand.CRITICAL
    elif sr < 0.20 or cu > 0.50 or dti > 0.30:
        return HealthBand.STRESSED
    elif sr < 0.30 or cu > 0.30:
        return HealthBand.BALANCED
    else:
        return HealthBand.OPTIMIZER


def derive_scenario_code(completeness: DataCompleteness, band: HealthBand) -> ScenarioCode:
    """Strict decision tree: data completeness gates before health is consulted"""
    if not completeness.has_salary_info:
        return ScenarioCode.ONBOARDING_NO_SALARY
    if not completeness.has_card_info:
        return ScenarioCode.ONBOARDING_NO_CARDS

    signals = [
        completeness.has_basic_info,
        completeness.has_expense_info,
        completeness.has_bank_linkage,
        completeness.has_email_linkage,
    ]
    if sum(signals) < 2:
        return ScenarioCode.ONBOARDING_PARTIAL

    if band == HealthBand.UNKNOWN:
        return ScenarioCode.READY_NO_HEALTH

    return BAND_TO_SCENARIO[band]


def calculate_health_score(metrics: FinancialMetrics) -> int:
    """
    Display score from 0 to 100.

    Weights:
    - savings rate: 30 / 20 / 10 at >= 0.3 / 0.2 / 0.1
    - utilization: 25 / 15 / 8 at <= 0.3 / 0.5 / 0.7
    - debt-to-income: 20 / 15 / 8 at <= 0.3 / 0.4 / 0.5
    - income present: 15, plus another 10 on the same condition
    """
    score = 0

    sr = metrics.savings_rate
    if sr >= 0.3:
        score += 30
    elif sr >= 0.2:
        score += 20
    elif sr >= 0.1:
        score += 10

    cu = metrics.credit_utilization
    if cu <= 0.3:
        score += 25
    elif cu <= 0.5:
        score += 15
    elif cu <= 0.7:
        score += 8

    dti = metrics.debt_to_income_ratio
    if dti <= 0.3:
        score += 20
    elif dti <= 0.4:
        score += 15
    elif dti <= 0.5:
        score += 8

    if metrics.monthly_income > 0:
        score += 15
    # TODO: replace with a card-presence signal once the rubric is confirmed
    if metrics.monthly_income > 0:
        score += 10

    return min(100, max(0, score))


def scenario_metadata(code: ScenarioCode) -> ScenarioMetadata:
    """UI color, priority and stage for a scenario code"""
    return SCENARIO_METADATA[code]
