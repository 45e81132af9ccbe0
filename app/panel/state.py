"""
Panel State Store

Single mutable root for one panel session, plus its JSON (de)serialization.
Hydration validates each field on its own; bad values fall back to defaults.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, Optional, Set

from pydantic import ValidationError

from app.models.enums import AppointmentType, PanelScreen
from app.models.schemas import RepairOrderSnapshot
from app.panel.jobs import get_performed_services, get_declined_services
from app.panel.recommendation import (
    DEFAULT_MONTHS,
    DEFAULT_MILES,
    is_finite_number,
    is_valid_month_interval,
    is_valid_mile_interval,
)


@dataclass
class AppointmentDraft:
    """In-progress booking"""
    date: Optional[datetime] = None
    mileage: Optional[int] = None
    type: AppointmentType = AppointmentType.DROPOFF


@dataclass
class PanelState:
    screen: int = PanelScreen.SCHEDULE
    source_ro_id: Optional[str] = None
    ro_data: Optional[RepairOrderSnapshot] = None
    month_interval: int = DEFAULT_MONTHS
    mile_interval: int = DEFAULT_MILES
    appointment: AppointmentDraft = field(default_factory=AppointmentDraft)
    appointment_counts: Dict[str, int] = field(default_factory=dict)
    appointment_count_week_key: Optional[str] = None
    appointment_counts_loading: bool = False
    repeat_services: Set[str] = field(default_factory=set)
    declined_services: Set[str] = field(default_factory=set)
    customer_notes: str = ""

    def load_repair_order(self, snapshot: RepairOrderSnapshot, ro_id) -> None:
        """Replace the RO snapshot; a different RO starts a fresh draft"""
        ro_id = str(ro_id)
        if self.source_ro_id is not None and self.source_ro_id != ro_id:
            self.screen = PanelScreen.SCHEDULE
            self.appointment = AppointmentDraft()
            self.repeat_services = set()
            self.declined_services = set()
            self.customer_notes = ""

        self.ro_data = snapshot
        self.source_ro_id = ro_id
        self.prune_selections()

    def prune_selections(self) -> None:
        """Drop selection ids that are not jobs on the current snapshot"""
        performed_ids = {s.stable_id for s in get_performed_services(self.ro_data)}
        declined_ids = {s.stable_id for s in get_declined_services(self.ro_data)}
        self.repeat_services &= performed_ids
        self.declined_services &= declined_ids

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready blob (camelCase keys, ISO-8601 dates)"""
        return {
            "screen": int(self.screen),
            "sourceRoId": self.source_ro_id,
            "roData": self.ro_data.to_wire() if self.ro_data else None,
            "monthInterval": self.month_interval,
            "mileInterval": self.mile_interval,
            "appointment": {
                "date": self.appointment.date.isoformat() if self.appointment.date else None,
                "mileage": self.appointment.mileage,
                "type": self.appointment.type.value,
            },
            "appointmentCounts": dict(self.appointment_counts),
            "appointmentCountWeekKey": self.appointment_count_week_key,
            "appointmentCountsLoading": self.appointment_counts_loading,
            "repeatServices": sorted(self.repeat_services),
            "declinedServices": sorted(self.declined_services),
            "customerNotes": self.customer_notes,
        }

    @classmethod
    def from_dict(cls, raw: Any, tz: Optional[tzinfo] = None) -> "PanelState":
        """Hydrate from a persisted blob; never raises"""
        state = cls()
        if not isinstance(raw, dict):
            return state

        screen = _as_int(raw.get("screen"))
        if screen in (PanelScreen.SCHEDULE, PanelScreen.CONFIRM, PanelScreen.DONE):
            state.screen = screen

        if raw.get("sourceRoId") not in (None, ""):
            state.source_ro_id = str(raw["sourceRoId"])

        state.ro_data = _parse_snapshot(raw.get("roData"))

        months = _as_int(raw.get("monthInterval"))
        if is_valid_month_interval(months):
            state.month_interval = months
        miles = _as_int(raw.get("mileInterval"))
        if is_valid_mile_interval(miles):
            state.mile_interval = miles

        appointment = raw.get("appointment")
        if not isinstance(appointment, dict):
            appointment = {}
        mileage = appointment.get("mileage")
        state.appointment = AppointmentDraft(
            date=_parse_datetime(appointment.get("date"), tz),
            mileage=int(mileage) if is_finite_number(mileage) else None,
            type=AppointmentType.parse(appointment.get("type")),
        )
        # Screens past the first always carry a date; re-pick it on screen 1
        if state.appointment.date is None:
            state.screen = PanelScreen.SCHEDULE

        state.appointment_counts = _parse_counts(raw.get("appointmentCounts"))
        week_key = raw.get("appointmentCountWeekKey")
        state.appointment_count_week_key = week_key if isinstance(week_key, str) else None
        # A fetch never survives a reload
        state.appointment_counts_loading = False

        state.repeat_services = _parse_ids(raw.get("repeatServices"))
        state.declined_services = _parse_ids(raw.get("declinedServices"))
        notes = raw.get("customerNotes")
        state.customer_notes = notes if isinstance(notes, str) else ""

        state.prune_selections()
        return state


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _parse_snapshot(value: Any) -> Optional[RepairOrderSnapshot]:
    if not isinstance(value, dict):
        return None
    try:
        return RepairOrderSnapshot.model_validate(value)
    except ValidationError:
        return None


def _parse_datetime(value: Any, tz: Optional[tzinfo]) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz or timezone.utc)
    return parsed


def _parse_counts(value: Any) -> Dict[str, int]:
    if not isinstance(value, dict):
        return {}
    counts = {}
    for key, count in value.items():
        count = _as_int(count)
        if isinstance(key, str) and count is not None and count >= 0:
            counts[key] = count
    return counts


def _parse_ids(value: Any) -> Set[str]:
    if not isinstance(value, list):
        return set()
    return {
        str(item) for item in value
        if isinstance(item, (str, int)) and not isinstance(item, bool)
    }
