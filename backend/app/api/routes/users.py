"""Staff directory lookup used when a staff ID card is scanned."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_role
from app.core.permissions import PHARMACY_DISTRIBUTE
from app.core.security import OperatorIdentity
from app.schemas.staff import StaffIdentity
from app.services.staff_directory import find_by_national_id

router = APIRouter()


@router.get("/by-national-id", response_model=StaffIdentity)
def get_user_by_national_id(
    national_id: str = Query(..., alias="nationalId"),
    db: Session = Depends(get_db),
    operator: OperatorIdentity = Depends(require_role(PHARMACY_DISTRIBUTE)),
):
    return find_by_national_id(db, national_id)
