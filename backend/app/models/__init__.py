from app.models.medicine import Medicine
from app.models.staff_user import StaffUser
from app.models.distribution import Distribution

__all__ = ["Medicine", "StaffUser", "Distribution"]
