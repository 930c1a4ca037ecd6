"""/v1/cards - user-owned credit cards"""

import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from spurz_engine.api.dependencies import get_owner_id, get_refresher, get_request_id
from spurz_engine.api.v1.schemas import CardCreate, CardResponse, CardUpdate
from spurz_engine.domain.exceptions import CardNotFoundError
from spurz_engine.infrastructure.database.models import CardAccountRecord
from spurz_engine.infrastructure.database.repositories import CardRepository
from spurz_engine.infrastructure.database.session import get_db
from spurz_engine.services.refresh import SnapshotRefresher

router = APIRouter()


def _get_or_raise(repo: CardRepository, owner_id: str, card_id: str) -> CardAccountRecord:
    record = repo.get(owner_id, card_id)
    if record is None or not record.is_active:
        raise CardNotFoundError(card_id)
    return record


@router.get("/cards", response_model=List[CardResponse])
def list_cards(owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    return [CardResponse.model_validate(r) for r in CardRepository(db).list_active(owner_id)]


@router.post("/cards", response_model=CardResponse, status_code=201)
def create_card(
    body: CardCreate,
    background_tasks: BackgroundTasks,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    refresher: SnapshotRefresher = Depends(get_refresher),
):
    request_id = get_request_id(request)

    try:
        record = CardRepository(db).create(owner_id, **body.model_dump())
        db.commit()
    except Exception as e:
        db.rollback()
        logging.error(f"Card create failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    background_tasks.add_task(refresher.run, owner_id, "cards")
    return CardResponse.model_validate(record)


@router.put("/cards/{card_id}", response_model=CardResponse)
def update_card(
    card_id: str,
    body: CardUpdate,
    background_tasks: BackgroundTasks,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    refresher: SnapshotRefresher = Depends(get_refresher),
):
    """Partial update; available credit follows limit and balance, primary flag stays unique"""
    request_id = get_request_id(request)
    repo = CardRepository(db)

    try:
        record = _get_or_raise(repo, owner_id, card_id)
        repo.update(record, **body.model_dump(exclude_unset=True))
        db.commit()

    except CardNotFoundError:
        db.rollback()
        raise HTTPException(status_code=404, detail="Card not found")

    except Exception as e:
        db.rollback()
        logging.error(f"Card update failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    background_tasks.add_task(refresher.run, owner_id, "cards")
    return CardResponse.model_validate(record)


@router.post("/cards/{card_id}/primary", response_model=CardResponse)
def set_primary_card(
    card_id: str,
    background_tasks: BackgroundTasks,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    refresher: SnapshotRefresher = Depends(get_refresher),
):
    repo = CardRepository(db)
    try:
        record = _get_or_raise(repo, owner_id, card_id)
        repo.set_primary(record)
        db.commit()
    except CardNotFoundError:
        db.rollback()
        raise HTTPException(status_code=404, detail="Card not found")

    background_tasks.add_task(refresher.run, owner_id, "cards")
    return CardResponse.model_validate(record)


@router.delete("/cards/{card_id}", status_code=204)
def delete_card(
    card_id: str,
    background_tasks: BackgroundTasks,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    refresher: SnapshotRefresher = Depends(get_refresher),
):
    repo = CardRepository(db)
    try:
        repo.deactivate(_get_or_raise(repo, owner_id, card_id))
        db.commit()
    except CardNotFoundError:
        db.rollback()
        raise HTTPException(status_code=404, detail="Card not found")

    background_tasks.add_task(refresher.run, owner_id, "cards")
