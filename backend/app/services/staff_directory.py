"""Staff directory lookup by national ID (the value printed on staff ID cards)."""
from sqlalchemy.orm import Session

from app.core.exceptions import StaffNotFound
from app.models.staff_user import StaffUser
from app.schemas.staff import StaffIdentity


def find_by_national_id(db: Session, national_id: str | None) -> StaffUser:
    """Pure lookup. Surrounding whitespace from the scanner is ignored."""
    key = (national_id or "").strip()
    if not key:
        raise StaffNotFound(national_id or "")
    staff = db.query(StaffUser).filter(StaffUser.national_id == key).first()
    if not staff:
        raise StaffNotFound(key)
    return staff


def upsert_staff(db: Session, identity: StaffIdentity) -> StaffUser:
    """Load a directory entry into the local projection. Used by seeding/sync scripts."""
    staff = db.get(StaffUser, identity.id)
    if staff is None:
        staff = StaffUser(id=identity.id)
        db.add(staff)
    staff.username = identity.username
    staff.email = identity.email
    staff.first_name = identity.first_name
    staff.last_name = identity.last_name
    staff.national_id = identity.national_id.strip()
    staff.role_mappings = identity.role_mappings
    db.commit()
    db.refresh(staff)
    return staff
