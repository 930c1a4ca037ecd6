"""/v1/ledger - income, expense, investment and loan entries"""

import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from spurz_engine.api.dependencies import get_owner_id, get_refresher, get_request_id
from spurz_engine.api.v1.schemas import LedgerEntryCreate, LedgerEntryResponse, LedgerEntryUpdate
from spurz_engine.domain.classifier import classify_entry
from spurz_engine.domain.exceptions import LedgerEntryNotFoundError
from spurz_engine.infrastructure.database.models import LedgerEntryRecord
from spurz_engine.infrastructure.database.repositories import LedgerRepository, to_ledger_entry
from spurz_engine.infrastructure.database.session import get_db
from spurz_engine.services.refresh import SnapshotRefresher

router = APIRouter()


def entry_response(record: LedgerEntryRecord) -> LedgerEntryResponse:
    classified = classify_entry(to_ledger_entry(record))
    return LedgerEntryResponse(
        id=record.id,
        name=record.name,
        amount=record.amount,
        frequency=record.frequency,
        description=record.description,
        is_active=record.is_active,
        entry_class=classified.entry_class.value if classified.entry_class else None,
        monthly_amount=classified.monthly_amount,
    )


@router.get("/ledger", response_model=List[LedgerEntryResponse])
def list_entries(owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    return [entry_response(r) for r in LedgerRepository(db).list_active(owner_id)]


@router.post("/ledger", response_model=LedgerEntryResponse, status_code=201)
def create_entry(
    body: LedgerEntryCreate,
    background_tasks: BackgroundTasks,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    refresher: SnapshotRefresher = Depends(get_refresher),
):
    """Create an entry, then refresh the snapshot after the response"""
    request_id = get_request_id(request)

    try:
        record = LedgerRepository(db).create(
            owner_id,
            name=body.name,
            amount=body.amount,
            frequency=body.frequency.value,
            description=body.description,
        )
        db.commit()
    except Exception as e:
        db.rollback()
        logging.error(f"Ledger create failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    background_tasks.add_task(refresher.run, owner_id, "ledger")
    return entry_response(record)


def _get_or_404(repo: LedgerRepository, owner_id: str, entry_id: str) -> LedgerEntryRecord:
    record = repo.get(owner_id, entry_id)
    if record is None or not record.is_active:
        raise LedgerEntryNotFoundError(entry_id)
    return record


@router.put("/ledger/{entry_id}", response_model=LedgerEntryResponse)
def update_entry(
    entry_id: str,
    body: LedgerEntryUpdate,
    background_tasks: BackgroundTasks,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    refresher: SnapshotRefresher = Depends(get_refresher),
):
    request_id = get_request_id(request)
    repo = LedgerRepository(db)

    try:
        record = _get_or_404(repo, owner_id, entry_id)
        fields = body.model_dump(exclude_unset=True)
        if fields.get("frequency") is not None:
            fields["frequency"] = fields["frequency"].value
        repo.update(record, **fields)
        db.commit()

    except LedgerEntryNotFoundError:
        db.rollback()
        raise HTTPException(status_code=404, detail="Ledger entry not found")

    except Exception as e:
        db.rollback()
        logging.error(f"Ledger update failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    background_tasks.add_task(refresher.run, owner_id, "ledger")
    return entry_response(record)


@router.delete("/ledger/{entry_id}", status_code=204)
def delete_entry(
    entry_id: str,
    background_tasks: BackgroundTasks,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    refresher: SnapshotRefresher = Depends(get_refresher),
):
    """Soft delete"""
    repo = LedgerRepository(db)
    try:
        repo.deactivate(_get_or_404(repo, owner_id, entry_id))
        db.commit()
    except LedgerEntryNotFoundError:
        db.rollback()
        raise HTTPException(status_code=404, detail="Ledger entry not found")

    background_tasks.add_task(refresher.run, owner_id, "ledger")
