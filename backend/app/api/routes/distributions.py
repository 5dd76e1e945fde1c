"""Distribute medicines to staff and browse the distribution log."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_role
from app.core.config import settings
from app.core.permissions import PHARMACY_DISTRIBUTE, PHARMACY_READ
from app.core.security import OperatorIdentity
from app.schemas.distribution import (
    DistributeRequest,
    DistributeResponse,
    DistributionPage,
    DistributionRecord,
)
from app.services import distribution_service, ledger_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/medicines/distribute", response_model=DistributeResponse)
def distribute_medicines(
    request: DistributeRequest,
    db: Session = Depends(get_db),
    operator: OperatorIdentity = Depends(require_role(PHARMACY_DISTRIBUTE)),
):
    """
    Atomic multi-medicine distribution. Either every line is committed or none.
    Not idempotent: clients must not blindly retry on a lost response.
    """
    result = distribution_service.distribute(db, request.staff_user, request.medicines, operator)
    return DistributeResponse(
        success=True,
        message=result.message,
        distributions=[DistributionRecord.model_validate(r) for r in result.records],
    )


@router.get("/distributions", response_model=DistributionPage)
def list_distributions(
    staff_national_id: Optional[str] = Query(None, alias="staffNationalId"),
    medicine_id: Optional[str] = Query(None, alias="medicineId"),
    limit: int = Query(settings.DISTRIBUTION_PAGE_DEFAULT, ge=1, le=settings.DISTRIBUTION_PAGE_MAX),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    operator: OperatorIdentity = Depends(require_role(PHARMACY_READ)),
):
    """Newest first. An offset past the end yields an empty page."""
    items, total = ledger_service.list_distributions(
        db,
        staff_national_id=staff_national_id,
        medicine_id=medicine_id,
        limit=limit,
        offset=offset,
    )
    return DistributionPage(
        items=[DistributionRecord.model_validate(r) for r in items],
        total=total,
    )
