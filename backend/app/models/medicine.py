"""
Medicine: one stock-keeping line of the pharmacy inventory.

Never hard-deleted. `deleted` is a soft-delete flag; stock is preserved
across delete/restore. Expiry status is derived at read time, not stored.
"""
import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Column, String, Integer, Numeric, Boolean, Date, CheckConstraint

from app.db.base import Base, UTCDateTime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Medicine(Base):
    __tablename__ = "medicines"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_medicines_stock_non_negative"),
        CheckConstraint("cout > 0", name="ck_medicines_cout_positive"),
        CheckConstraint("prix_de_vente > 0", name="ck_medicines_prix_positive"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    dci = Column(String(255), nullable=False)  # active ingredient (INN)
    nom_commercial = Column(String(255), nullable=False, index=True)
    stock = Column(Integer, nullable=False, default=0)
    ddp = Column(Date, nullable=True)  # expiry date
    lot = Column(String(128), nullable=True)
    cout = Column(Numeric(12, 2), nullable=False)
    prix_de_vente = Column(Numeric(12, 2), nullable=False)
    deleted = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(UTCDateTime, nullable=False, default=_utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    def is_expired(self, today: date | None = None) -> bool:
        return is_expired(self.ddp, today)

    def __repr__(self):
        return f"<Medicine id={self.id} name={self.nom_commercial} stock={self.stock}>"


def is_expired(ddp: date | None, today: date | None = None) -> bool:
    """Expired when the expiry date is strictly before today's local date."""
    if ddp is None:
        return False
    if isinstance(ddp, datetime):
        ddp = ddp.date()
    return ddp < (today or date.today())
