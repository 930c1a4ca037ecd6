"""GET /v1/home - financial snapshot, insights and next-best-actions"""

import logging
import time
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from spurz_engine.api.dependencies import get_owner_id, get_request_id
from spurz_engine.api.v1.schemas import (
    ActionResponse,
    CategoryResponse,
    HomeResponse,
    InsightResponse,
    MetricsSchema,
    SnapshotResponse,
    SnoozeRequest,
)
from spurz_engine.domain.exceptions import ActionNotFoundError, SnapshotComputationError
from spurz_engine.domain.health import scenario_metadata
from spurz_engine.domain.models import DataCompleteness, FinancialMetrics, ScenarioCode
from spurz_engine.infrastructure.database.models import FinancialSnapshotRecord
from spurz_engine.infrastructure.database.session import get_db
from spurz_engine.services.advisory import InsightService, NextBestActionService
from spurz_engine.services.snapshot import SnapshotService
from spurz_engine.services.spending import SpendingAnalysisService
from spurz_engine.utils.date_utils import to_naive_utc

router = APIRouter()


def snapshot_response(record: FinancialSnapshotRecord) -> SnapshotResponse:
    meta = scenario_metadata(ScenarioCode(record.scenario_code))
    completeness = DataCompleteness(**record.completeness)
    return SnapshotResponse(
        health_score=record.health_score,
        health_band=record.health_band,
        scenario_code=record.scenario_code,
        color=meta.color,
        priority=meta.priority,
        stage=meta.stage,
        metrics=MetricsSchema.model_validate(record.metrics),
        completeness={**record.completeness, "completion_percentage": completeness.completion_percentage},
        computed_at=record.computed_at,
    )


@router.get("/home", response_model=HomeResponse)
def get_home(
    request: Request,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """
    Home dashboard.

    Flow:
    1. Regenerate and store the snapshot (request-critical: 503 on failure)
    2. Regenerate insights and next-best-actions (degrade to empty lists)
    3. Attach the top spending categories
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        record = SnapshotService(db).generate_snapshot(owner_id)
        db.commit()
    except SnapshotComputationError as e:
        db.rollback()
        logging.error(f"Snapshot failed: {e}", extra={"request_id": request_id, "user_id": owner_id})
        raise HTTPException(status_code=503, detail="Financial snapshot unavailable")

    snapshot = snapshot_response(record)
    metrics = FinancialMetrics(**record.metrics)
    completeness = DataCompleteness(**record.completeness)

    insights = InsightService(db).generate_insights(owner_id, metrics, record.id)
    actions = NextBestActionService(db).generate_actions(owner_id, completeness, record.id)
    categories = SpendingAnalysisService(db).top_categories(owner_id, 3)

    logging.info(
        "Home assembled",
        extra={
            "request_id": request_id,
            "user_id": owner_id,
            "scenario_code": snapshot.scenario_code,
            "duration_ms": (time.time() - start_time) * 1000,
        },
    )

    return HomeResponse(
        snapshot=snapshot,
        insights=[InsightResponse.model_validate(i) for i in insights],
        actions=[ActionResponse.model_validate(a) for a in actions],
        top_categories=[CategoryResponse.model_validate(c) for c in categories],
    )


@router.get("/home/snapshot", response_model=SnapshotResponse)
def get_snapshot(owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    """Latest stored snapshot, computed on first access"""
    service = SnapshotService(db)
    try:
        record = service.get_snapshot(owner_id)
        if record is None:
            record = service.generate_snapshot(owner_id)
            db.commit()
    except SnapshotComputationError as e:
        db.rollback()
        logging.error(f"Snapshot failed: {e}", extra={"user_id": owner_id})
        raise HTTPException(status_code=503, detail="Financial snapshot unavailable")

    return snapshot_response(record)


@router.get("/home/metrics", response_model=MetricsSchema)
def get_metrics(owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    try:
        return MetricsSchema.model_validate(SnapshotService(db).get_metrics(owner_id))
    except SnapshotComputationError as e:
        logging.error(f"Metrics failed: {e}", extra={"user_id": owner_id})
        raise HTTPException(status_code=503, detail="Financial metrics unavailable")


@router.get("/home/insights", response_model=List[InsightResponse])
def list_insights(
    unread_only: bool = False, owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)
):
    return [InsightResponse.model_validate(i) for i in InsightService(db).list_insights(owner_id, unread_only)]


@router.post("/home/insights/{insight_id}/read", response_model=InsightResponse)
def mark_insight_read(insight_id: str, owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    record = InsightService(db).mark_read(owner_id, insight_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Insight not found")
    db.commit()
    return InsightResponse.model_validate(record)


@router.get("/home/actions", response_model=List[ActionResponse])
def list_actions(owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    return [ActionResponse.model_validate(a) for a in NextBestActionService(db).list_open(owner_id)]


def _update_action(db: Session, operation, *args) -> ActionResponse:
    try:
        record = operation(*args)
        db.commit()
        return ActionResponse.model_validate(record)
    except ActionNotFoundError:
        db.rollback()
        raise HTTPException(status_code=404, detail="Action not found")


@router.post("/home/actions/{action_id}/complete", response_model=ActionResponse)
def complete_action(action_id: str, owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    return _update_action(db, NextBestActionService(db).complete, owner_id, action_id)


@router.post("/home/actions/{action_id}/dismiss", response_model=ActionResponse)
def dismiss_action(action_id: str, owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    return _update_action(db, NextBestActionService(db).dismiss, owner_id, action_id)


@router.post("/home/actions/{action_id}/snooze", response_model=ActionResponse)
def snooze_action(
    action_id: str,
    body: SnoozeRequest,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    until = to_naive_utc(body.until)
    return _update_action(db, NextBestActionService(db).snooze, owner_id, action_id, until)
