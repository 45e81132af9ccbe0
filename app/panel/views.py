"""
Panel View Models

Everything a front end needs to draw the current screen.
Recomputed in full from PanelState after every command.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

PANEL_TITLE = "Advance Appointment Scheduler"


@dataclass
class DateOption:
    date: date
    key: str
    booked: int
    selected: bool


@dataclass
class ServiceOption:
    id: str
    name: str
    selected: bool


@dataclass
class LoadingView:
    screen: int = 0
    title: str = PANEL_TITLE
    message: str = "Loading repair order…"


@dataclass
class ErrorView:
    screen: int = 0
    title: str = PANEL_TITLE
    message: str = "Failed to load repair order data."
    hint: str = "Open a repair order and try again."


@dataclass
class ClosedView:
    screen: int = 0


@dataclass
class ScheduleView:
    """Screen 1: interval and date selection"""
    ro_number: str
    customer_name: str
    vehicle: str
    month_interval: int
    mile_interval: int
    month_options: List[int]
    mile_options: List[int]
    selected_date: date
    recommended_date: date
    recommended_mileage: Optional[int]
    date_options: List[DateOption]
    counts_loading: bool
    scheduler_url: Optional[str] = None
    screen: int = 1
    title: str = PANEL_TITLE

    @property
    def subtitle(self) -> str:
        return f"RO #{self.ro_number} · {self.customer_name} · {self.vehicle}"

    @property
    def counts_status(self) -> str:
        return "Loading availability…" if self.counts_loading else ""


@dataclass
class ConfirmView:
    """Screen 2: type, services, notes and preview"""
    date: date
    mileage: Optional[int]
    appointment_type: str
    repeat_options: List[ServiceOption]
    declined_options: List[ServiceOption]
    customer_notes: str
    purpose_preview: str
    submitting: bool = False
    error: Optional[str] = None
    screen: int = 2
    title: str = "Confirm Appointment"


@dataclass
class DoneView:
    """Screen 3: confirmation"""
    confirmation_id: str
    start_time: datetime
    mileage: Optional[int]
    appointment_type_label: str
    scheduler_url: Optional[str] = None
    screen: int = 3
    title: str = "Appointment Scheduled"
