"""Distribution ledger queries. Read-only: rows are written by distribution_service."""
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.distribution import Distribution


def list_distributions(
    db: Session,
    staff_national_id: Optional[str] = None,
    medicine_id: Optional[str] = None,
    limit: int = settings.DISTRIBUTION_PAGE_DEFAULT,
    offset: int = 0,
) -> Tuple[List[Distribution], int]:
    """
    Newest first, ties broken by id so pages never overlap.
    `total` counts every row matching the filter, ignoring limit/offset.
    """
    if limit < 1 or limit > settings.DISTRIBUTION_PAGE_MAX:
        raise ValueError(f"limit must be between 1 and {settings.DISTRIBUTION_PAGE_MAX}")
    if offset < 0:
        raise ValueError("offset must be >= 0")

    q = db.query(Distribution)
    if staff_national_id:
        q = q.filter(Distribution.staff_national_id == staff_national_id.strip())
    if medicine_id:
        q = q.filter(Distribution.medicine_id == medicine_id)

    total = q.count()
    items = (
        q.order_by(Distribution.distributed_at.desc(), Distribution.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total
