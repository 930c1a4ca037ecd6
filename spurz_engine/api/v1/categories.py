"""/v1/categories - spending category aggregates"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from spurz_engine.api.dependencies import get_owner_id
from spurz_engine.api.v1.schemas import CategoryResponse, CategorySpendUpdate
from spurz_engine.infrastructure.database.session import get_db
from spurz_engine.services.spending import SpendingAnalysisService

router = APIRouter()


@router.get("/categories", response_model=List[CategoryResponse])
def list_categories(owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    return [CategoryResponse.model_validate(c) for c in SpendingAnalysisService(db).list_categories(owner_id)]


@router.get("/categories/{category}", response_model=CategoryResponse)
def get_category(category: str, owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    aggregate = SpendingAnalysisService(db).get_category(owner_id, category)
    if aggregate is None:
        raise HTTPException(status_code=404, detail="Category not found")
    return CategoryResponse.model_validate(aggregate)


@router.put("/categories/{category}", response_model=CategoryResponse)
def record_category_spend(
    category: str,
    body: CategorySpendUpdate,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    aggregate = SpendingAnalysisService(db).record_spend(owner_id, category, **body.model_dump())
    db.commit()
    return CategoryResponse.model_validate(aggregate)


@router.post("/categories/refresh-recommendations", response_model=List[CategoryResponse])
def refresh_category_recommendations(owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    aggregates = SpendingAnalysisService(db).refresh_category_recommendations(owner_id)
    db.commit()
    return [CategoryResponse.model_validate(a) for a in aggregates]
