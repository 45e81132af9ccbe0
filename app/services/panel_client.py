"""
Advance Appointment Service Client

Used by the panel to talk to this service's proxy endpoints
(/ro, /appointments/counts, /appointments).
"""

import os
import logging
import httpx
from datetime import date
from typing import Optional, Dict, Any

from pydantic import ValidationError

from app.models.schemas import RepairOrderSnapshot

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_URL = "http://localhost:8080"


class PanelDataError(Exception):
    """Repair order data could not be loaded"""


class SubmissionError(Exception):
    """Appointment could not be scheduled"""


class AdvanceAppointmentClient:
    """Client for the advance appointment proxy"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or os.getenv("ADVANCE_APPOINTMENT_URL", DEFAULT_SERVICE_URL)).rstrip("/")
        self.timeout = float(os.getenv("TM_TIMEOUT_SECONDS", "30"))
        self._transport = transport

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    async def fetch_repair_order(self, ro_id) -> RepairOrderSnapshot:
        """GET /ro/{roId}"""
        try:
            async with self._http() as client:
                response = await client.get(f"/ro/{ro_id}")
        except httpx.HTTPError as e:
            raise PanelDataError(f"Failed to fetch RO data: {e}") from e

        if response.status_code >= 400:
            raise PanelDataError("Failed to fetch RO data")

        try:
            data = response.json()
        except ValueError as e:
            raise PanelDataError("Invalid API response") from e

        if not isinstance(data, dict) or data.get("success") is False:
            raise PanelDataError("Invalid API response")

        try:
            return RepairOrderSnapshot.model_validate(data)
        except ValidationError as e:
            raise PanelDataError("Invalid API response") from e

    async def fetch_appointment_counts(self, shop_id, start_date: date, end_date: date) -> Dict[str, int]:
        """
        GET /appointments/counts

        Returns {} on any failure; missing counts only mean "0 booked".
        """
        params = {
            "shopId": str(shop_id),
            "startDate": start_date.isoformat(),
            "endDate": end_date.isoformat()
        }
        try:
            async with self._http() as client:
                response = await client.get("/appointments/counts", params=params)
            if response.status_code >= 400:
                return {}
            result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.info(f"[Panel] Appointment counts unavailable: {e}")
            return {}

        if not isinstance(result, dict) or not result.get("success"):
            return {}
        counts = result.get("counts")
        if not isinstance(counts, dict):
            return {}
        return {
            str(key): value for key, value in counts.items()
            if isinstance(value, int) and not isinstance(value, bool) and value >= 0
        }

    async def create_appointment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST /appointments; raises SubmissionError with the server message"""
        try:
            async with self._http() as client:
                response = await client.post("/appointments", json=payload)
        except httpx.HTTPError as e:
            raise SubmissionError(str(e) or "Scheduling failed") from e

        try:
            result = response.json()
        except ValueError:
            result = {}
        if not isinstance(result, dict):
            result = {}

        if response.status_code >= 400 or not result.get("success"):
            raise SubmissionError(result.get("message") or "Scheduling failed")
        return result
