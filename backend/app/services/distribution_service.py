"""
Distribution Transaction Engine — hands medicines to a staff member.

================================================================================
ALL-OR-NOTHING
================================================================================

One call = one database transaction:
1. Validate the request (staff present, cart not empty, quantities >= 1)
2. Aggregate duplicate medicine lines
3. Re-resolve the staff member against the directory
4. Lock every medicine row touched, in ascending id order
5. Check LIVE stock for every line; collect every shortage
6. Decrement stock with a guarded UPDATE (stock >= quantity)
7. Append one Distribution row per line
8. Commit once

Any failure rolls the whole transaction back: no stock changes and no ledger
rows. The operator's cart snapshot is advisory only; this module is the only
place that gates the mutation.

Retries are NOT idempotent. A caller that lost the response must check the
distribution log before submitting again.
================================================================================
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.audit import AuditLog
from app.core.exceptions import (
    EmptyCart,
    InsufficientStock,
    InvalidQuantity,
    NoStaffSelected,
    StaffNotFound,
    UnknownMedicine,
)
from app.core.security import OperatorIdentity
from app.models.distribution import Distribution
from app.models.medicine import Medicine
from app.schemas.distribution import DistributionItem
from app.schemas.staff import StaffIdentity
from app.services.staff_directory import find_by_national_id

logger = logging.getLogger(__name__)

LineItem = Union[DistributionItem, Tuple[str, int]]


@dataclass
class DistributionResult:
    records: List[Distribution]
    message: str


def aggregate_lines(line_items: Iterable[LineItem]) -> Dict[str, int]:
    """
    Merge duplicate medicine ids, summing quantities. First-seen order is kept.

    Raises InvalidQuantity for any quantity that is not an integer >= 1.
    """
    lines: Dict[str, int] = {}
    for item in line_items:
        if isinstance(item, DistributionItem):
            medicine_id, quantity = item.id, item.quantity
        else:
            medicine_id, quantity = item
        if not medicine_id:
            raise UnknownMedicine(str(medicine_id))
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidQuantity(f"Quantity must be at least 1 (got {quantity!r} for {medicine_id})")
        lines[medicine_id] = lines.get(medicine_id, 0) + quantity
    return lines


def _lock_medicines(db: Session, medicine_ids: List[str]) -> Dict[str, Medicine]:
    """SELECT ... FOR UPDATE in ascending id order (no-op lock on SQLite)."""
    rows = (
        db.query(Medicine)
        .filter(Medicine.id.in_(medicine_ids))
        .order_by(Medicine.id)
        .with_for_update()
        .all()
    )
    return {m.id: m for m in rows}


def _shortage(medicine: Medicine, requested: int) -> dict:
    return {
        "medicineId": medicine.id,
        "medicineName": medicine.nom_commercial,
        "requested": requested,
        "available": medicine.stock,
    }


def distribute(
    db: Session,
    staff_identity: Optional[StaffIdentity],
    line_items: Iterable[LineItem],
    operator: OperatorIdentity,
    now: Optional[datetime] = None,
) -> DistributionResult:
    """
    Decrement stock and write one Distribution per (aggregated) line, atomically.

    Raises:
        NoStaffSelected, EmptyCart, InvalidQuantity: request is malformed
        StaffNotFound: the directory no longer knows the staff member
        UnknownMedicine: a medicine is missing or soft-deleted
        InsufficientStock: live stock is short for one or more medicines
    """
    if staff_identity is None:
        raise NoStaffSelected()
    line_items = list(line_items or [])
    if not line_items:
        raise EmptyCart()
    lines = aggregate_lines(line_items)

    staff = find_by_national_id(db, staff_identity.national_id)
    if staff.id != staff_identity.id:
        logger.warning(
            f"Staff identity mismatch for national ID {staff.national_id}: "
            f"request {staff_identity.id}, directory {staff.id}"
        )
        raise StaffNotFound(staff_identity.national_id)

    ordered_ids = sorted(lines)
    try:
        medicines = _lock_medicines(db, ordered_ids)

        shortages = []
        for medicine_id in ordered_ids:
            medicine = medicines.get(medicine_id)
            if medicine is None or medicine.deleted:
                raise UnknownMedicine(medicine_id)
            if medicine.stock < lines[medicine_id]:
                shortages.append(_shortage(medicine, lines[medicine_id]))
        if shortages:
            raise InsufficientStock(shortages)

        distributed_at = now or datetime.now(timezone.utc)
        for medicine_id in ordered_ids:
            quantity = lines[medicine_id]
            result = db.execute(
                update(Medicine)
                .where(
                    Medicine.id == medicine_id,
                    Medicine.stock >= quantity,
                    Medicine.deleted.is_(False),
                )
                .values(stock=Medicine.stock - quantity, updated_at=distributed_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                # Row changed under us despite the lock (engine without row locks)
                db.refresh(medicines[medicine_id])
                raise InsufficientStock([_shortage(medicines[medicine_id], quantity)])

        records = []
        for medicine_id, quantity in lines.items():
            record = Distribution(
                medicine_id=medicine_id,
                medicine_name=medicines[medicine_id].nom_commercial,
                quantity=quantity,
                staff_user_id=staff.id,
                staff_username=staff.username,
                staff_full_name=staff.full_name,
                staff_national_id=staff.national_id,
                distributed_by=operator.username,
                distributed_at=distributed_at,
            )
            db.add(record)
            records.append(record)

        db.commit()
    except Exception:
        db.rollback()
        raise

    for record in records:
        db.refresh(record)

    total_units = sum(lines.values())
    recipient = staff.full_name or staff.username
    message = (
        f"Distributed {total_units} unit{'s' if total_units != 1 else ''} of "
        f"{len(lines)} medicine{'s' if len(lines) != 1 else ''} to {recipient}"
    )
    logger.info(f"{message} (operator {operator.username})")
    AuditLog.log_distribution(
        operator,
        staff_user_id=staff.id,
        staff_national_id=staff.national_id,
        lines=lines,
        record_ids=[r.id for r in records],
    )
    return DistributionResult(records=records, message=message)
