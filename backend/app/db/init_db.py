"""Create all tables. Run on app startup."""
import logging

from app.db.base import Base
from app.db.session import engine
from app.models import medicine, distribution, staff_user  # noqa: F401 - register models

logger = logging.getLogger(__name__)


def init_db(bind=None):
    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    logger.info(f"Database schema ready ({bind.url.render_as_string(hide_password=True)})")
