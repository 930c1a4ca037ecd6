"""/v1/profile - profile fields that feed data completeness"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from spurz_engine.api.dependencies import get_owner_id, get_refresher, get_request_id
from spurz_engine.api.v1.schemas import ProfileResponse, ProfileUpdate
from spurz_engine.infrastructure.database.repositories import ProfileRepository
from spurz_engine.infrastructure.database.session import get_db
from spurz_engine.services.refresh import SnapshotRefresher

router = APIRouter()


@router.get("/profile", response_model=ProfileResponse)
def get_profile(owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    record = ProfileRepository(db).get(owner_id)
    return ProfileResponse.model_validate(record) if record else ProfileResponse()


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    body: ProfileUpdate,
    background_tasks: BackgroundTasks,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    refresher: SnapshotRefresher = Depends(get_refresher),
):
    request_id = get_request_id(request)

    try:
        record = ProfileRepository(db).upsert(owner_id, **body.model_dump(exclude_unset=True))
        db.commit()

    except Exception as e:
        db.rollback()
        logging.error(f"Profile update failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    background_tasks.add_task(refresher.run, owner_id, "profile")
    return ProfileResponse.model_validate(record)
