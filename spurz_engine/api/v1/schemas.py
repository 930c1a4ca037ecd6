"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from spurz_engine.domain.models import ActionStatus, Frequency, RecommendationType, Trend


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


def _reject_null(value):
    if value is None:
        raise ValueError("may be omitted but not null")
    return value


# Ledger


class LedgerEntryCreate(BaseModel):
    """Request body for POST /v1/ledger"""

    name: str = Field(..., min_length=1, description="Free-text label, e.g. 'Salary' or 'Expense: Rent'")
    amount: float = Field(..., ge=0)
    frequency: Frequency = Frequency.MONTHLY
    description: Optional[str] = None


class LedgerEntryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    amount: Optional[float] = Field(None, ge=0)
    frequency: Optional[Frequency] = None
    description: Optional[str] = None

    @field_validator("name", "amount", "frequency")
    @classmethod
    def reject_null(cls, value):
        return _reject_null(value)


class LedgerEntryResponse(ORMModel):
    id: UUID
    name: str
    amount: float
    frequency: str
    description: Optional[str] = None
    is_active: bool
    entry_class: Optional[str] = None
    monthly_amount: float = 0.0


# Cards


class CardCreate(BaseModel):
    """Request body for POST /v1/cards"""

    bank_name: str = Field(..., min_length=1)
    card_name: str = Field(..., min_length=1)
    last_four: Optional[str] = Field(None, pattern=r"^\d{4}$")
    network: Optional[str] = None
    credit_limit: float = Field(..., ge=0)
    current_balance: float = Field(0.0, ge=0)
    is_primary: bool = False
    reward_type: Optional[str] = None
    reward_rate: Optional[float] = Field(None, ge=0)
    annual_fee: Optional[float] = Field(None, ge=0)


class CardUpdate(BaseModel):
    bank_name: Optional[str] = Field(None, min_length=1)
    card_name: Optional[str] = Field(None, min_length=1)
    last_four: Optional[str] = Field(None, pattern=r"^\d{4}$")
    network: Optional[str] = None
    credit_limit: Optional[float] = Field(None, ge=0)
    current_balance: Optional[float] = Field(None, ge=0)
    is_primary: Optional[bool] = None
    reward_type: Optional[str] = None
    reward_rate: Optional[float] = Field(None, ge=0)
    annual_fee: Optional[float] = Field(None, ge=0)

    @field_validator("bank_name", "card_name", "credit_limit", "current_balance", "is_primary")
    @classmethod
    def reject_null(cls, value):
        return _reject_null(value)


class CardResponse(ORMModel):
    id: UUID
    bank_name: str
    card_name: str
    last_four: Optional[str] = None
    network: Optional[str] = None
    credit_limit: float
    current_balance: float
    available_credit: float
    is_primary: bool
    reward_type: Optional[str] = None
    reward_rate: Optional[float] = None
    annual_fee: Optional[float] = None
    is_active: bool


class CardBrief(ORMModel):
    id: Optional[str] = None
    bank_name: str
    card_name: str


class CardSuggestionResponse(BaseModel):
    """Response for GET /v1/recommendations/card-for-transaction"""

    source: str  # owned | market | none
    card: Optional[CardBrief] = None


# Profile


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    occupation: Optional[str] = None
    city: Optional[str] = None
    is_bank_linked: Optional[bool] = None
    is_email_linked: Optional[bool] = None
    is_tracking_enabled: Optional[bool] = None

    @field_validator("is_bank_linked", "is_email_linked", "is_tracking_enabled")
    @classmethod
    def reject_null(cls, value):
        return _reject_null(value)


class ProfileResponse(ORMModel):
    full_name: Optional[str] = None
    occupation: Optional[str] = None
    city: Optional[str] = None
    is_bank_linked: bool = False
    is_email_linked: bool = False
    is_tracking_enabled: bool = False


# Spending categories


class CategorySpendUpdate(BaseModel):
    """Request body for PUT /v1/categories/{category}"""

    current_month_spend: float = Field(..., ge=0)
    previous_month_spend: Optional[float] = Field(None, ge=0)
    current_reward: Optional[float] = Field(None, ge=0)


class RecommendedCardSchema(ORMModel):
    card_id: Optional[str] = None
    bank_name: str
    card_name: str
    reward_rate: float
    estimated_reward: float
    reason: str


class CategoryResponse(ORMModel):
    category: str
    current_month_spend: float
    previous_month_spend: float
    current_reward: float
    trend: Trend
    trend_percentage: float
    potential_savings: float
    recommended_cards: List[RecommendedCardSchema] = []


# Snapshot and home


class MetricsSchema(ORMModel):
    monthly_income: float
    monthly_expenses: float
    monthly_investments: float
    monthly_loans: float
    monthly_savings: float
    savings_rate: float
    credit_utilization: float
    debt_to_income_ratio: float
    total_credit_limit: float
    total_credit_used: float
    available_credit: float
    card_count: int


class CompletenessSchema(ORMModel):
    has_basic_info: bool
    has_salary_info: bool
    has_card_info: bool
    has_expense_info: bool
    has_bank_linkage: bool
    has_email_linkage: bool
    completion_percentage: int


class SnapshotResponse(BaseModel):
    health_score: int
    health_band: str
    scenario_code: str
    color: str
    priority: str
    stage: str
    metrics: MetricsSchema
    completeness: CompletenessSchema
    computed_at: datetime


class InsightResponse(ORMModel):
    id: UUID
    category: str
    priority: str
    title: str
    description: str
    value: Optional[float] = None
    value_label: Optional[str] = None
    trend: Optional[str] = None
    actionable: bool
    is_read: bool
    expires_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias=AliasChoices("details", "metadata"))


class ActionResponse(ORMModel):
    id: UUID
    type: str
    title: str
    description: str
    icon: str
    priority: int
    estimated_impact: str
    estimated_savings: Optional[float] = None
    due_date: Optional[datetime] = None
    status: ActionStatus
    snoozed_until: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias=AliasChoices("details", "metadata"))


class SnoozeRequest(BaseModel):
    until: datetime


class HomeResponse(BaseModel):
    """Response for GET /v1/home"""

    snapshot: SnapshotResponse
    insights: List[InsightResponse]
    actions: List[ActionResponse]
    top_categories: List[CategoryResponse]


# Recommendations


class RecommendationResponse(ORMModel):
    id: UUID
    type: RecommendationType
    primary_reason: str
    reasons: List[str]
    bank_name: str
    card_name: str
    market_card_id: Optional[UUID] = None
    user_card_id: Optional[UUID] = None
    estimated_monthly_savings: Optional[float] = None
    estimated_yearly_savings: Optional[float] = None
    estimated_rewards: Optional[float] = None
    relevant_categories: List[str] = []
    score: float
    priority: int
    is_viewed: bool
    is_dismissed: bool
    is_applied: bool
    expires_at: Optional[datetime] = None
    days_until_expiry: Optional[int] = None


class DismissRequest(BaseModel):
    reason: Optional[str] = None


class RewardPotentialResponse(BaseModel):
    catalog_card_id: str
    monthly_reward: float
    yearly_reward: float


# Deals


class CardOfferSchema(ORMModel):
    bank_name: str
    card_name: Optional[str] = None
    catalog_card_id: Optional[str] = None
    additional_discount: Optional[float] = None


class DealResponse(ORMModel):
    id: str
    merchant_name: str
    category: str
    title: str
    deal_type: str
    value: float
    max_discount: Optional[float] = None
    min_transaction: Optional[float] = None
    card_offers: List[CardOfferSchema] = []
    is_featured: bool
    status: str
    popularity: int
    views: int
    clicks: int
    redemptions: int
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class DealMatchResponse(ORMModel):
    deal: DealResponse
    base_savings: float
    additional_card_savings: float
    total_savings: float
    total_discount: float
    best_user_card: Optional[CardBrief] = None
    best_market_card: Optional[CardBrief] = None


class ComboResponse(ORMModel):
    deal: DealResponse
    card: CardBrief
    is_user_card: bool
    total_discount: float
    base_deal_value: float
    card_bonus_value: float
    total_value: float
