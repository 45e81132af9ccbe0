"""
Advance Appointment Enums

Standardized constants for panel and Tekmetric values.
"""

from enum import IntEnum, Enum


class PanelScreen(IntEnum):
    """Wizard screens"""
    SCHEDULE = 1   # Interval + date selection
    CONFIRM = 2    # Type, services, notes, preview
    DONE = 3       # Confirmation (terminal)


class AppointmentType(str, Enum):
    """How the customer spends the visit"""
    DROPOFF = "dropoff"
    WAIT = "wait"

    @classmethod
    def parse(cls, value) -> "AppointmentType":
        """Anything other than "wait" is a drop-off"""
        return cls.WAIT if value in ("wait", cls.WAIT) else cls.DROPOFF

    def to_label(self) -> str:
        return "Customer Waits" if self is AppointmentType.WAIT else "Drop-Off"


class ServiceGroup(str, Enum):
    """Checkbox groups on the confirm screen"""
    REPEAT = "repeat"
    DECLINED = "declined"


class JobStatus(str, Enum):
    """Normalized job status vocabulary"""
    AUTHORIZED = "AUTHORIZED"
    APPROVED = "APPROVED"
    SOLD = "SOLD"
    COMPLETED = "COMPLETED"
    DECLINED = "DECLINED"
    REJECTED = "REJECTED"
    UNAUTHORIZED = "UNAUTHORIZED"


PERFORMED_STATUSES = frozenset({
    JobStatus.AUTHORIZED.value,
    JobStatus.APPROVED.value,
    JobStatus.SOLD.value,
    JobStatus.COMPLETED.value,
})

DECLINED_STATUSES = frozenset({
    JobStatus.DECLINED.value,
    JobStatus.REJECTED.value,
    JobStatus.UNAUTHORIZED.value,
})
