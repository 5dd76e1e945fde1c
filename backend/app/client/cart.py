"""
Distribution cart: lines requested for one staff member, checked against an
inventory snapshot.

The snapshot may be stale. These checks only stop obviously invalid
submissions; the backend re-checks live stock and is the only authority.
A failed add leaves the cart unchanged.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from app.core.exceptions import InsufficientStock, InvalidQuantity, UnknownMedicine
from app.schemas.distribution import DistributeRequest, DistributionItem
from app.schemas.medicine import MedicineResponse
from app.schemas.staff import StaffIdentity


@dataclass(frozen=True)
class CartLine:
    medicine_id: str
    quantity: int


class DistributionCart:
    def __init__(self, medicines: Iterable[MedicineResponse] = ()):
        self._snapshot: Dict[str, MedicineResponse] = {}
        self._lines: Dict[str, int] = {}  # insertion-ordered
        self._staff: Optional[StaffIdentity] = None
        self.refresh_snapshot(medicines)

    def refresh_snapshot(self, medicines: Iterable[MedicineResponse]) -> "DistributionCart":
        """Replace the inventory snapshot. Existing lines are kept as-is."""
        self._snapshot = {m.id: m for m in medicines}
        return self

    def candidates(self) -> List[MedicineResponse]:
        """Medicines that can be selected: in stock and not deleted."""
        return [m for m in self._snapshot.values() if m.stock > 0 and not m.deleted]

    def add_line(self, medicine_id: str, quantity: int) -> "DistributionCart":
        """Add or merge a line. Cumulative quantity may not exceed snapshot stock."""
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidQuantity("Please select a medicine and enter a valid quantity")

        medicine = self._snapshot.get(medicine_id)
        if medicine is None or medicine.deleted:
            raise UnknownMedicine(medicine_id)

        total = self._lines.get(medicine_id, 0) + quantity
        if total > medicine.stock:
            raise InsufficientStock([{
                "medicineId": medicine.id,
                "medicineName": medicine.nom_commercial,
                "requested": total,
                "available": medicine.stock,
            }])

        self._lines[medicine_id] = total
        return self

    def remove_line(self, medicine_id: str) -> "DistributionCart":
        self._lines.pop(medicine_id, None)
        return self

    def bind_staff(self, identity: StaffIdentity) -> "DistributionCart":
        """Bind the recipient. Re-scanning a card replaces the previous one."""
        self._staff = identity
        return self

    def clear(self) -> "DistributionCart":
        self._lines.clear()
        self._staff = None
        return self

    @property
    def staff(self) -> Optional[StaffIdentity]:
        return self._staff

    @property
    def lines(self) -> List[CartLine]:
        return [CartLine(medicine_id, quantity) for medicine_id, quantity in self._lines.items()]

    def line_for(self, medicine_id: str) -> Optional[CartLine]:
        quantity = self._lines.get(medicine_id)
        return CartLine(medicine_id, quantity) if quantity is not None else None

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def total_units(self) -> int:
        return sum(self._lines.values())

    def to_request(self) -> DistributeRequest:
        return DistributeRequest(
            staff_user=self._staff,
            medicines=[DistributionItem(id=mid, quantity=qty) for mid, qty in self._lines.items()],
        )
