"""/v1/recommendations - card recommendations and their lifecycle"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from spurz_engine.api.dependencies import get_owner_id
from spurz_engine.api.v1.schemas import (
    CardBrief,
    CardSuggestionResponse,
    DismissRequest,
    RecommendationResponse,
    RewardPotentialResponse,
)
from spurz_engine.domain.exceptions import RecommendationNotFoundError
from spurz_engine.domain.models import CardAccount, RecommendationType
from spurz_engine.infrastructure.database.models import CardRecommendationRecord
from spurz_engine.infrastructure.database.session import get_db
from spurz_engine.services.recommendations import CardRecommendationService

router = APIRouter()


def recommendation_response(record: CardRecommendationRecord) -> RecommendationResponse:
    response = RecommendationResponse.model_validate(record)
    response.days_until_expiry = CardRecommendationService.days_until_expiry(record)
    return response


@router.get("/recommendations", response_model=List[RecommendationResponse])
def list_recommendations(
    type: Optional[RecommendationType] = None,
    include_viewed: bool = False,
    limit: int = Query(20, ge=1, le=100),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Active, undismissed, unexpired recommendations by priority then score"""
    records = CardRecommendationService(db).list_active(
        owner_id, type=type.value if type else None, include_viewed=include_viewed, limit=limit
    )
    return [recommendation_response(r) for r in records]


@router.post("/recommendations/generate", response_model=List[RecommendationResponse])
def generate_recommendations(owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    """Replace the current batch; an empty list when generation fails"""
    records = CardRecommendationService(db).generate_recommendations(owner_id)
    return [recommendation_response(r) for r in records]


@router.post("/recommendations/upgrades", response_model=List[RecommendationResponse])
def identify_upgrades(owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    records = CardRecommendationService(db).identify_upgrade_opportunities(owner_id)
    return [recommendation_response(r) for r in records]


@router.get("/recommendations/card-for-transaction", response_model=CardSuggestionResponse)
def card_for_transaction(
    category: str,
    amount: float = Query(..., gt=0),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    card = CardRecommendationService(db).recommend_card_for_transaction(owner_id, category, amount)
    if card is None:
        return CardSuggestionResponse(source="none")
    source = "owned" if isinstance(card, CardAccount) else "market"
    return CardSuggestionResponse(source=source, card=CardBrief.model_validate(card))


@router.get("/recommendations/reward-potential/{catalog_card_id}", response_model=RewardPotentialResponse)
def reward_potential(catalog_card_id: str, owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    monthly = CardRecommendationService(db).calculate_reward_potential(owner_id, catalog_card_id)
    return RewardPotentialResponse(catalog_card_id=catalog_card_id, monthly_reward=monthly, yearly_reward=monthly * 12)


def _lifecycle(db: Session, operation, *args) -> RecommendationResponse:
    try:
        record = operation(*args)
        db.commit()
        return recommendation_response(record)
    except RecommendationNotFoundError:
        db.rollback()
        raise HTTPException(status_code=404, detail="Recommendation not found")


@router.post("/recommendations/{recommendation_id}/view", response_model=RecommendationResponse)
def view_recommendation(recommendation_id: str, owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    return _lifecycle(db, CardRecommendationService(db).mark_viewed, owner_id, recommendation_id)


@router.post("/recommendations/{recommendation_id}/dismiss", response_model=RecommendationResponse)
def dismiss_recommendation(
    recommendation_id: str,
    body: Optional[DismissRequest] = None,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    return _lifecycle(db, CardRecommendationService(db).dismiss, owner_id, recommendation_id, body.reason if body else None)


@router.post("/recommendations/{recommendation_id}/apply", response_model=RecommendationResponse)
def apply_recommendation(recommendation_id: str, owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    return _lifecycle(db, CardRecommendationService(db).mark_applied, owner_id, recommendation_id)
