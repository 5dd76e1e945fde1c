"""
Pharmacy API client used by operator tools.

================================================================================
RETRY POLICY
================================================================================

- Reads (list, lookup) are side-effect free: transport failures are retried
  with exponential backoff.
- Writes are sent exactly once. A distribute whose request may have reached
  the server but whose response was lost raises AmbiguousOutcome: the operator
  must check the distribution log before resubmitting.
- Non-2xx responses raise ServerRejected using the body's `message`, else
  `error`.

Authentication is delegated: `auth_headers` is called before every request and
returns the bearer header (refreshing the token if needed).
================================================================================
"""
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Union

import requests

from app.core.config import settings
from app.core.exceptions import (
    AmbiguousOutcome,
    InsufficientStock,
    NoFieldsProvided,
    ServerRejected,
    StaffNotFound,
    TransportFailure,
)
from app.schemas.distribution import DistributeRequest, DistributeResponse, DistributionPage
from app.schemas.medicine import MedicineCreate, MedicineResponse, MedicineUpdate
from app.schemas.staff import StaffIdentity

logger = logging.getLogger(__name__)


class PharmacyApiClient:
    """Thin wrapper over `requests` mapping transport outcomes to domain errors."""

    BACKOFF_SECONDS = 0.5  # 0.5s, 1s, 2s...

    def __init__(
        self,
        base_url: Optional[str] = None,
        auth_headers: Optional[Callable[[], Dict[str, str]]] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        read_retries: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.auth_headers = auth_headers
        self.session = session or requests.Session()
        self.timeout = timeout if timeout is not None else settings.CLIENT_TIMEOUT_SECONDS
        self.read_retries = read_retries if read_retries is not None else settings.CLIENT_READ_RETRIES
        self.backoff_seconds = self.BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds

    # ------------------------------------------------------------------
    # transport
    # ------------------------------------------------------------------

    def _headers(self, json_body: bool) -> Dict[str, str]:
        headers = dict(self.auth_headers()) if self.auth_headers else {}
        headers["Accept"] = "application/json"
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    @staticmethod
    def _raise_for_error(response: requests.Response) -> None:
        if response.ok:
            return
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        error = body.get("error") or response.reason or f"HTTP {response.status_code}"
        raise ServerRejected(response.status_code, error, body.get("message"), body.get("details"))

    @staticmethod
    def _json(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise TransportFailure(
                f"Unreadable response from the pharmacy service (HTTP {response.status_code})"
            ) from e

    def _read(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        for attempt in range(self.read_retries + 1):
            try:
                response = self.session.request(
                    "GET", url, params=params, headers=self._headers(False), timeout=self.timeout
                )
            except requests.RequestException as e:
                if attempt < self.read_retries:
                    wait_time = self.backoff_seconds * (2 ** attempt)
                    logger.warning(f"GET {path} failed ({e}), retry {attempt + 1}/{self.read_retries} after {wait_time}s")
                    time.sleep(wait_time)
                    continue
                raise TransportFailure(f"Could not reach the pharmacy service: {e}") from e
            self._raise_for_error(response)
            return self._json(response)

    def _write(self, method: str, path: str, body: Any = None, ambiguous: bool = False) -> requests.Response:
        """
        Send once. `ambiguous=True` marks requests whose commit state is unknown
        when the response is lost.
        """
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                json=body,
                headers=self._headers(body is not None),
                timeout=self.timeout,
            )
        except requests.ConnectTimeout as e:
            # Connection never established: nothing was sent
            raise TransportFailure(f"Could not reach the pharmacy service: {e}") from e
        except requests.RequestException as e:
            if ambiguous:
                logger.error(f"{method} {path} outcome unknown: {e}")
                raise AmbiguousOutcome() from e
            raise TransportFailure(f"Request to the pharmacy service failed: {e}") from e
        self._raise_for_error(response)
        return response

    # ------------------------------------------------------------------
    # inventory
    # ------------------------------------------------------------------

    def get_medicines(self) -> List[MedicineResponse]:
        return [MedicineResponse.model_validate(m) for m in self._read("/pharmacy/medicines")]

    def get_deleted_medicines(self) -> List[MedicineResponse]:
        return [MedicineResponse.model_validate(m) for m in self._read("/pharmacy/medicines/deleted")]

    def create_medicine(self, medicine: MedicineCreate) -> MedicineResponse:
        response = self._write("POST", "/pharmacy/medicines", medicine.model_dump(mode="json", by_alias=True))
        return MedicineResponse.model_validate(self._json(response))

    def update_medicine(self, medicine_id: str, updates: MedicineUpdate) -> MedicineResponse:
        payload = updates.model_dump(mode="json", by_alias=True, exclude_unset=True)
        if not payload:
            raise NoFieldsProvided()
        response = self._write("PATCH", f"/pharmacy/medicines/{medicine_id}", payload)
        return MedicineResponse.model_validate(self._json(response))

    def delete_medicine(self, medicine_id: str) -> MedicineResponse:
        response = self._write("DELETE", f"/pharmacy/medicines/{medicine_id}/soft-delete")
        return MedicineResponse.model_validate(self._json(response))

    def restore_medicine(self, medicine_id: str) -> MedicineResponse:
        response = self._write("PATCH", f"/pharmacy/medicines/{medicine_id}/restore")
        return MedicineResponse.model_validate(self._json(response))

    # ------------------------------------------------------------------
    # staff & distributions
    # ------------------------------------------------------------------

    def get_user_by_national_id(self, national_id: str) -> StaffIdentity:
        try:
            data = self._read("/users/by-national-id", params={"nationalId": national_id})
        except ServerRejected as e:
            if e.error == StaffNotFound.code:
                raise StaffNotFound(national_id) from e
            raise
        return StaffIdentity.model_validate(data)

    def distribute(self, request: Union[DistributeRequest, dict]) -> DistributeResponse:
        """Never retried. See module docstring."""
        if isinstance(request, DistributeRequest):
            request = request.model_dump(mode="json", by_alias=True)
        try:
            response = self._write("POST", "/pharmacy/medicines/distribute", request, ambiguous=True)
        except ServerRejected as e:
            if e.error == InsufficientStock.code and isinstance(e.details, list):
                raise InsufficientStock(e.details) from e
            raise
        try:
            return DistributeResponse.model_validate(response.json())
        except ValueError as e:
            # 2xx means committed, but we cannot tell the operator what was recorded
            logger.error(f"Unreadable distribute response: {e}")
            raise AmbiguousOutcome() from e

    def get_distributions(
        self,
        staff_national_id: Optional[str] = None,
        medicine_id: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> DistributionPage:
        params = {}
        if staff_national_id:
            params["staffNationalId"] = staff_national_id
        if medicine_id:
            params["medicineId"] = medicine_id
        if limit:
            params["limit"] = limit
        if offset:
            params["offset"] = offset
        return DistributionPage.model_validate(self._read("/pharmacy/distributions", params=params))
