"""
Panel Commands

User actions dispatched into PanelController.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from app.models.enums import AppointmentType, ServiceGroup


@dataclass(frozen=True)
class Open:
    """Open the panel from a host page URL"""
    url: Optional[str] = None


@dataclass(frozen=True)
class SelectDate:
    date: date


@dataclass(frozen=True)
class ChangeMonthInterval:
    months: int


@dataclass(frozen=True)
class ChangeMileInterval:
    miles: int


@dataclass(frozen=True)
class Continue:
    pass


@dataclass(frozen=True)
class Back:
    pass


@dataclass(frozen=True)
class SetAppointmentType:
    type: AppointmentType


@dataclass(frozen=True)
class ToggleService:
    """Check/uncheck a service; selected=None flips it"""
    group: ServiceGroup
    service_id: str
    selected: Optional[bool] = None


@dataclass(frozen=True)
class SetNotes:
    text: str


@dataclass(frozen=True)
class Submit:
    pass


@dataclass(frozen=True)
class Close:
    pass
