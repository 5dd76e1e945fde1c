from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field

from app.schemas.common import CamelModel
from app.schemas.staff import StaffIdentity


class DistributionItem(CamelModel):
    """One requested line. Quantity is checked by the engine, not coerced here."""
    id: str
    quantity: Any


class DistributeRequest(CamelModel):
    staff_user: Optional[StaffIdentity] = None
    medicines: List[DistributionItem] = Field(default_factory=list)


class DistributionRecord(CamelModel):
    id: str
    medicine_id: str
    medicine_name: str
    quantity: int
    staff_user_id: str
    staff_username: str
    staff_full_name: Optional[str] = None
    staff_national_id: str
    distributed_by: str
    distributed_at: datetime


class DistributeResponse(CamelModel):
    success: bool
    message: str
    distributions: List[DistributionRecord]


class DistributionPage(CamelModel):
    items: List[DistributionRecord]
    total: int
