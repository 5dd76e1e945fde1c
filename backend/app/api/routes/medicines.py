"""Inventory: list, create, partially update, soft-delete and restore medicines."""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_role
from app.core.permissions import PHARMACY_MANAGE, PHARMACY_READ
from app.core.security import OperatorIdentity
from app.schemas.medicine import MedicineCreate, MedicineResponse, MedicineUpdate
from app.services import inventory_service

router = APIRouter()


@router.get("/medicines", response_model=List[MedicineResponse])
def list_medicines(
    db: Session = Depends(get_db),
    operator: OperatorIdentity = Depends(require_role(PHARMACY_READ)),
):
    """Active medicines, ordered by commercial name."""
    return inventory_service.list_active(db)


@router.get("/medicines/deleted", response_model=List[MedicineResponse])
def list_deleted_medicines(
    db: Session = Depends(get_db),
    operator: OperatorIdentity = Depends(require_role(PHARMACY_READ)),
):
    return inventory_service.list_deleted(db)


@router.get("/medicines/{medicine_id}", response_model=MedicineResponse)
def get_medicine(
    medicine_id: str,
    db: Session = Depends(get_db),
    operator: OperatorIdentity = Depends(require_role(PHARMACY_READ)),
):
    return inventory_service.get_medicine(db, medicine_id)


@router.post("/medicines", response_model=MedicineResponse, status_code=status.HTTP_201_CREATED)
def create_medicine(
    data: MedicineCreate,
    db: Session = Depends(get_db),
    operator: OperatorIdentity = Depends(require_role(PHARMACY_MANAGE)),
):
    return inventory_service.create_medicine(db, data, operator)


@router.patch("/medicines/{medicine_id}", response_model=MedicineResponse)
def update_medicine(
    medicine_id: str,
    updates: MedicineUpdate,
    db: Session = Depends(get_db),
    operator: OperatorIdentity = Depends(require_role(PHARMACY_MANAGE)),
):
    """Partial update. An empty body is rejected with NoFieldsProvided."""
    return inventory_service.update_medicine(db, medicine_id, updates, operator)


@router.delete("/medicines/{medicine_id}/soft-delete", response_model=MedicineResponse)
def soft_delete_medicine(
    medicine_id: str,
    db: Session = Depends(get_db),
    operator: OperatorIdentity = Depends(require_role(PHARMACY_MANAGE)),
):
    """Flag as deleted. Stock is preserved."""
    return inventory_service.soft_delete(db, medicine_id, operator)


@router.patch("/medicines/{medicine_id}/restore", response_model=MedicineResponse)
def restore_medicine(
    medicine_id: str,
    db: Session = Depends(get_db),
    operator: OperatorIdentity = Depends(require_role(PHARMACY_MANAGE)),
):
    """Clear the deleted flag. Always answers 200 with the restored medicine."""
    return inventory_service.restore(db, medicine_id, operator)
