"""
Distribution: append-only audit row, one per medicine handed to a staff member.

Medicine and staff fields are denormalized so the row stays readable after the
medicine is renamed or the staff member leaves the directory. Rows are never
updated or deleted.
"""
import uuid

from sqlalchemy import Column, String, Integer, ForeignKey, Index
from sqlalchemy.orm import relationship

from app.db.base import Base, UTCDateTime


class Distribution(Base):
    __tablename__ = "distributions"
    __table_args__ = (
        Index("ix_distributions_ordering", "distributed_at", "id"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    medicine_id = Column(String(36), ForeignKey("medicines.id"), nullable=False, index=True)
    medicine_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    staff_user_id = Column(String(64), nullable=False)
    staff_username = Column(String(150), nullable=False)
    staff_full_name = Column(String(301), nullable=True)
    staff_national_id = Column(String(64), nullable=False, index=True)
    distributed_by = Column(String(150), nullable=False)  # operator identity
    distributed_at = Column(UTCDateTime, nullable=False)

    medicine = relationship("Medicine", backref="distributions")

    def __repr__(self):
        return f"<Distribution id={self.id} medicine={self.medicine_id} qty={self.quantity}>"
