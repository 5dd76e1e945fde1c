"""Inventory store: create, list, partial update, soft-delete and restore medicines.

Medicines are never hard-deleted. Soft-delete and restore only toggle the
`deleted` flag; stock is left exactly as it was.
"""
import logging
from typing import List

from sqlalchemy.orm import Session

from app.core.audit import AuditLog
from app.core.exceptions import MedicineNotFound, NoFieldsProvided
from app.core.security import OperatorIdentity
from app.models.medicine import Medicine
from app.schemas.medicine import MedicineCreate, MedicineUpdate

logger = logging.getLogger(__name__)


def create_medicine(db: Session, data: MedicineCreate, operator: OperatorIdentity) -> Medicine:
    medicine = Medicine(
        dci=data.dci,
        nom_commercial=data.nom_commercial,
        stock=data.stock,
        ddp=data.ddp,
        lot=data.lot,
        cout=data.cout,
        prix_de_vente=data.prix_de_vente,
        deleted=False,
    )
    db.add(medicine)
    db.commit()
    db.refresh(medicine)
    logger.info(f"Created medicine {medicine.id} ({medicine.nom_commercial}), stock {medicine.stock}")
    AuditLog.log_action("create", "medicine", medicine.id, operator,
                        changes=data.model_dump(mode="json"))
    return medicine


def list_active(db: Session) -> List[Medicine]:
    return (
        db.query(Medicine)
        .filter(Medicine.deleted.is_(False))
        .order_by(Medicine.nom_commercial, Medicine.id)
        .all()
    )


def list_deleted(db: Session) -> List[Medicine]:
    return (
        db.query(Medicine)
        .filter(Medicine.deleted.is_(True))
        .order_by(Medicine.updated_at.desc(), Medicine.id)
        .all()
    )


def get_medicine(db: Session, medicine_id: str, deleted: bool | None = None) -> Medicine:
    """Load one medicine. `deleted` restricts the lookup to the active or deleted view."""
    q = db.query(Medicine).filter(Medicine.id == medicine_id)
    if deleted is not None:
        q = q.filter(Medicine.deleted.is_(deleted))
    medicine = q.first()
    if not medicine:
        raise MedicineNotFound(medicine_id)
    return medicine


def update_medicine(
    db: Session, medicine_id: str, updates: MedicineUpdate, operator: OperatorIdentity
) -> Medicine:
    """Apply a non-empty subset of mutable fields to an active medicine."""
    changes = updates.changes()
    if not changes:
        raise NoFieldsProvided()

    medicine = get_medicine(db, medicine_id, deleted=False)
    for field, value in changes.items():
        setattr(medicine, field, value)

    db.commit()
    db.refresh(medicine)
    logger.info(f"Updated medicine {medicine.id}: {sorted(changes)}")
    AuditLog.log_action("update", "medicine", medicine.id, operator,
                        changes=updates.model_dump(mode="json", exclude_unset=True))
    return medicine


def soft_delete(db: Session, medicine_id: str, operator: OperatorIdentity) -> Medicine:
    medicine = get_medicine(db, medicine_id, deleted=False)
    medicine.deleted = True
    db.commit()
    db.refresh(medicine)
    AuditLog.log_action("soft_delete", "medicine", medicine.id, operator)
    return medicine


def restore(db: Session, medicine_id: str, operator: OperatorIdentity) -> Medicine:
    medicine = get_medicine(db, medicine_id, deleted=True)
    medicine.deleted = False
    db.commit()
    db.refresh(medicine)
    AuditLog.log_action("restore", "medicine", medicine.id, operator)
    return medicine
