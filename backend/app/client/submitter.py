"""
Submit guard for distribution carts.

- One submit in flight at a time (a double-click must not distribute twice)
- No automatic retry, no cancellation once sent
- The cart is cleared only after a confirmed success; every failure keeps it
  so the operator can adjust and resubmit
"""
import logging
import threading

from app.client.api_client import PharmacyApiClient
from app.client.cart import DistributionCart
from app.core.exceptions import (
    AmbiguousOutcome,
    EmptyCart,
    NoStaffSelected,
    PharmacyError,
    SubmissionInProgress,
)
from app.schemas.distribution import DistributeResponse

logger = logging.getLogger(__name__)


class DistributionSubmitter:
    def __init__(self, client: PharmacyApiClient):
        self.client = client
        self._in_flight = threading.Lock()

    @property
    def in_flight(self) -> bool:
        """True while a submit is awaiting the server (disable the submit button)."""
        return self._in_flight.locked()

    def submit(self, cart: DistributionCart) -> DistributeResponse:
        if cart.staff is None:
            raise NoStaffSelected()
        if cart.is_empty:
            raise EmptyCart()
        if not self._in_flight.acquire(blocking=False):
            raise SubmissionInProgress()

        try:
            response = self.client.distribute(cart.to_request())
        except AmbiguousOutcome:
            logger.warning(
                f"Distribution to {cart.staff.display_name} has an unknown outcome; "
                "cart kept for reconciliation against the distribution log"
            )
            raise
        except PharmacyError as e:
            logger.info(f"Distribution to {cart.staff.display_name} rejected: {e.code}: {e.message}")
            raise
        finally:
            self._in_flight.release()

        cart.clear()
        return response
