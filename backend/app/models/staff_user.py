"""
StaffUser: local projection of the staff directory.

The directory (identity provider) is the system of record; rows here are
looked up by national ID when a staff card is scanned.
"""
from sqlalchemy import Column, String
from sqlalchemy.types import JSON

from app.db.base import Base


class StaffUser(Base):
    __tablename__ = "staff_users"

    id = Column(String(64), primary_key=True)  # directory-assigned
    username = Column(String(150), nullable=False)
    email = Column(String(255), nullable=True)
    first_name = Column(String(150), nullable=True)
    last_name = Column(String(150), nullable=True)
    national_id = Column(String(64), unique=True, nullable=False, index=True)
    role_mappings = Column(JSON, nullable=True)

    @property
    def full_name(self) -> str | None:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or None

    def __repr__(self):
        return f"<StaffUser id={self.id} username={self.username}>"
