"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class Frequency(str, Enum):
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"
    ONE_TIME = "one-time"


class EntryClass(str, Enum):
    """Semantic class of a ledger entry, derived from its name"""

    INCOME = "income"
    EXPENSE = "expense"
    INVESTMENT = "investment"
    LOAN_PAYMENT = "loan_payment"


class HealthBand(str, Enum):
    UNKNOWN = "UNKNOWN"
    CRITICAL = "CRITICAL"
    STRESSED = "STRESSED"
    BALANCED = "BALANCED"
    OPTIMIZER = "OPTIMIZER"


class ScenarioCode(str, Enum):
    ONBOARDING_NO_SALARY = "ONBOARDING_NO_SALARY"
    ONBOARDING_NO_CARDS = "ONBOARDING_NO_CARDS"
    ONBOARDING_PARTIAL = "ONBOARDING_PARTIAL"
    READY_NO_HEALTH = "READY_NO_HEALTH"
    CRITICAL_RED = "CRITICAL_RED"
    STRESSED_AMBER = "STRESSED_AMBER"
    BALANCED_GREEN = "BALANCED_GREEN"
    OPTIMIZER_BLUE = "OPTIMIZER_BLUE"


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class CardTier(str, Enum):
    BASIC = "basic"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"
    SIGNATURE = "signature"
    INFINITE = "infinite"


class RecommendationType(str, Enum):
    NEW_CARD = "new_card"
    EXISTING_CARD = "existing_card"
    UPGRADE = "upgrade"


class RecommendationReason(str, Enum):
    HIGH_SPENDING_CATEGORY = "high_spending_category"
    BETTER_REWARDS = "better_rewards"
    ANNUAL_FEE_SAVINGS = "annual_fee_savings"
    WELCOME_BONUS = "welcome_bonus"
    PARTNER_MERCHANT = "partner_merchant"
    LOW_UTILIZATION = "low_utilization"
    DEBT_CONSOLIDATION = "debt_consolidation"


class DealType(str, Enum):
    CASHBACK = "cashback"
    DISCOUNT = "discount"
    BOGO = "bogo"
    FREEBIE = "freebie"
    VOUCHER = "voucher"
    POINTS = "points"


class DealStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    UPCOMING = "upcoming"
    PAUSED = "paused"


class InsightCategory(str, Enum):
    SPENDING = "spending"
    SAVING = "saving"
    CREDIT = "credit"
    INCOME = "income"
    DEBT = "debt"
    INVESTMENT = "investment"


class InsightPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ActionType(str, Enum):
    PAYMENT = "payment"
    SAVING = "saving"
    INVESTMENT = "investment"
    CREDIT = "credit"
    SPENDING = "spending"
    OTHER = "other"


class ActionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    DISMISSED = "dismissed"
    SNOOZED = "snoozed"


@dataclass
class LedgerEntry:
    """Income/expense/investment/loan record, tagged only by its free-text name"""

    name: str
    amount: float
    frequency: str  # Frequency value; unknown strings are tolerated
    is_active: bool = True
    id: Optional[str] = None


@dataclass
class ClassifiedEntry:
    """Read-time classification of a ledger entry"""

    entry_class: Optional[EntryClass]  # None means excluded from every total
    monthly_amount: float


@dataclass
class CardAccount:
    """Credit card owned by the user"""

    bank_name: str
    card_name: str
    credit_limit: float
    current_balance: float
    is_primary: bool = False
    is_active: bool = True
    id: Optional[str] = None

    @property
    def available_credit(self) -> float:
        return self.credit_limit - self.current_balance

    @property
    def utilization_percent(self) -> float:
        if self.credit_limit <= 0:
            return 0.0
        return self.current_balance / self.credit_limit * 100


@dataclass
class RewardCategory:
    category: str
    reward_rate: float  # percent of spend
    cap: Optional[float] = None


@dataclass
class CatalogCard:
    """Market credit card (read-only reference data)"""

    bank_name: str
    card_name: str
    tier: str
    annual_fee: float
    base_reward_rate: float
    reward_categories: List[RewardCategory] = field(default_factory=list)
    network: str = "visa"
    reward_type: str = "cashback"
    popularity: int = 0
    id: Optional[str] = None

    def rate_for(self, category: str) -> Optional[float]:
        """Category reward rate, or None when the card has no offer for it"""
        for reward in self.reward_categories:
            if reward.category == category:
                return reward.reward_rate
        return None


@dataclass
class RecommendedCard:
    card_id: Optional[str]
    bank_name: str
    card_name: str
    reward_rate: float
    estimated_reward: float
    reason: str


@dataclass
class SpendingCategoryAggregate:
    category: str
    current_month_spend: float
    previous_month_spend: float = 0.0
    current_reward: float = 0.0  # monthly reward currently earned in this category
    trend: Trend = Trend.STABLE
    trend_percentage: float = 0.0
    potential_savings: float = 0.0
    recommended_cards: List[RecommendedCard] = field(default_factory=list)


@dataclass
class FinancialMetrics:
    """Normalized monthly metrics for one user"""

    monthly_income: float = 0.0
    monthly_expenses: float = 0.0
    monthly_investments: float = 0.0
    monthly_loans: float = 0.0
    monthly_savings: float = 0.0
    savings_rate: float = 0.0
    credit_utilization: float = 0.0
    debt_to_income_ratio: float = 0.0
    total_credit_limit: float = 0.0
    total_credit_used: float = 0.0
    available_credit: float = 0.0
    card_count: int = 0


@dataclass
class DataCompleteness:
    has_basic_info: bool
    has_salary_info: bool
    has_card_info: bool
    has_expense_info: bool = False
    has_bank_linkage: bool = False
    has_email_linkage: bool = False

    @property
    def completion_percentage(self) -> int:
        steps = [self.has_basic_info, self.has_salary_info, self.has_card_info]
        return round(sum(steps) / len(steps) * 100)


@dataclass
class FinancialSnapshot:
    owner_id: str
    health_score: int
    health_band: HealthBand
    scenario_code: ScenarioCode
    metrics: FinancialMetrics
    completeness: DataCompleteness
    computed_at: datetime


@dataclass
class CardOffer:
    bank_name: str
    card_name: str
    catalog_card_id: Optional[str] = None
    additional_discount: Optional[float] = None  # extra percent off


@dataclass
class Deal:
    merchant_name: str
    category: str
    deal_type: str
    value: float
    title: str = ""
    max_discount: Optional[float] = None
    min_transaction: Optional[float] = None
    card_offers: List[CardOffer] = field(default_factory=list)
    is_featured: bool = False
    views: int = 0
    clicks: int = 0
    redemptions: int = 0
    popularity: int = 0
    status: str = DealStatus.ACTIVE.value
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    id: Optional[str] = None


@dataclass
class DealCardMatch:
    """Best card combination for a deal at the reference transaction amount"""

    deal: Deal
    base_savings: float
    additional_card_savings: float
    total_savings: float
    total_discount: float  # percent of the reference amount
    best_user_card: Optional[CardAccount] = None
    best_market_card: Optional[CatalogCard] = None


@dataclass
class CardDealCombo:
    deal: Deal
    card: Union[CardAccount, CatalogCard]
    is_user_card: bool
    total_discount: float
    base_deal_value: float
    card_bonus_value: float

    @property
    def total_value(self) -> float:
        return self.base_deal_value + self.card_bonus_value


@dataclass
class RecommendationDraft:
    """Card recommendation before it is persisted"""

    type: RecommendationType
    primary_reason: RecommendationReason
    bank_name: str
    card_name: str
    reasons: List[str]
    score: float
    priority: int
    market_card_id: Optional[str] = None
    user_card_id: Optional[str] = None
    estimated_monthly_savings: Optional[float] = None
    estimated_yearly_savings: Optional[float] = None
    estimated_rewards: Optional[float] = None
    relevant_categories: List[str] = field(default_factory=list)
    id: Optional[str] = None  # set once persisted


@dataclass
class InsightDraft:
    category: InsightCategory
    priority: InsightPriority
    title: str
    description: str
    actionable: bool
    value: Optional[float] = None
    value_label: Optional[str] = None
    trend: Optional[Trend] = None
    expires_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ActionDraft:
    type: ActionType
    title: str
    description: str
    icon: str
    priority: int
    estimated_impact: str
    estimated_savings: Optional[float] = None
    due_date: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
