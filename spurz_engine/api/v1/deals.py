"""/v1/deals - personalized deals, card matching and engagement tracking"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from spurz_engine.api.dependencies import get_owner_id
from spurz_engine.api.v1.schemas import ComboResponse, DealMatchResponse, DealResponse
from spurz_engine.domain.exceptions import CardNotFoundError, DealNotFoundError
from spurz_engine.infrastructure.database.repositories import to_deal
from spurz_engine.infrastructure.database.session import get_db
from spurz_engine.services.deals import DealMatchingService

router = APIRouter()


@router.get("/deals", response_model=List[DealResponse])
def personalized_deals(
    category: Optional[str] = None,
    featured: bool = False,
    city: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=100),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    deals = DealMatchingService(db).get_personalized_deals(
        owner_id, category=category, featured_only=featured, city=city, limit=limit
    )
    return [DealResponse.model_validate(d) for d in deals]


@router.get("/deals/combos/{category}", response_model=List[ComboResponse])
def optimal_combos(
    category: str,
    limit: int = Query(10, ge=1, le=50),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    combos = DealMatchingService(db).find_optimal_card_deal_combos(owner_id, category, limit)
    return [ComboResponse.model_validate(c) for c in combos]


@router.get("/deals/for-card/{card_id}", response_model=List[DealResponse])
def deals_for_card(
    card_id: str,
    market: bool = False,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    try:
        deals = DealMatchingService(db).get_deals_for_card(owner_id, card_id, is_market_card=market)
    except CardNotFoundError:
        raise HTTPException(status_code=404, detail="Card not found")
    return [DealResponse.model_validate(d) for d in deals]


@router.get("/deals/{deal_id}", response_model=DealResponse)
def get_deal(deal_id: str, owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    """Deal detail; counts as a view and refreshes popularity"""
    try:
        record = DealMatchingService(db).read_deal(deal_id)
        db.commit()
    except DealNotFoundError:
        db.rollback()
        raise HTTPException(status_code=404, detail="Deal not found")
    return DealResponse.model_validate(to_deal(record))


@router.get("/deals/{deal_id}/match", response_model=Optional[DealMatchResponse])
def match_deal(deal_id: str, owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    """Best card pairing at a 1,000 reference transaction; null when the deal is not live"""
    try:
        match = DealMatchingService(db).match_deals_with_user_cards(owner_id, deal_id)
    except DealNotFoundError:
        raise HTTPException(status_code=404, detail="Deal not found")
    return DealMatchResponse.model_validate(match) if match else None


@router.post("/deals/{deal_id}/{event}", status_code=204)
def track_engagement(deal_id: str, event: str, owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    """Engagement counters: click or redeem"""
    service = DealMatchingService(db)
    tracker = {"click": service.track_click, "redeem": service.track_redemption}.get(event)
    if tracker is None:
        raise HTTPException(status_code=404, detail="Unknown engagement event")

    try:
        tracker(deal_id)
        db.commit()
    except DealNotFoundError:
        db.rollback()
        raise HTTPException(status_code=404, detail="Deal not found")

    logging.info("Deal engagement", extra={"user_id": owner_id, "deal_id": deal_id, "event": event})
