from typing import Any, Optional

from app.schemas.common import CamelModel


class StaffIdentity(CamelModel):
    id: str
    username: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    national_id: str
    role_mappings: Optional[Any] = None

    @property
    def full_name(self) -> Optional[str]:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or None

    @property
    def display_name(self) -> str:
        return self.full_name or self.username
