"""
Purpose-of-Visit Composer

Builds the text attached to the appointment's Purpose of Visit field.
"""

from typing import Collection, List

from app.models.enums import AppointmentType
from app.panel.jobs import ServiceItem
from app.panel.recommendation import format_miles

EMPTY_PREVIEW = "No details selected."


def _bullets(header: str, services: List[ServiceItem]) -> str:
    return "\n".join([header] + [f"  • {service.name}" for service in services])


def compose_purpose_of_visit(
    performed: List[ServiceItem],
    declined: List[ServiceItem],
    repeat_ids: Collection[str],
    declined_ids: Collection[str],
    appointment_type,
    notes: str = ""
) -> str:
    """
    Render selections into one text block.

    Sections (blank line between each): repeat services, previously
    declined, appointment type (always), customer instructions.
    Empty selections and blank notes are omitted.
    """
    sections = []

    repeat_selected = [s for s in performed if s.stable_id in repeat_ids]
    if repeat_selected:
        sections.append(_bullets("REPEAT SERVICES:", repeat_selected))

    declined_selected = [s for s in declined if s.stable_id in declined_ids]
    if declined_selected:
        sections.append(_bullets("PREVIOUSLY DECLINED:", declined_selected))

    sections.append(f"APPOINTMENT TYPE: {AppointmentType.parse(appointment_type).to_label()}")

    instructions = (notes or "").strip()
    if instructions:
        sections.append(f"CUSTOMER INSTRUCTIONS:\n{instructions}")

    return "\n\n".join(sections).strip()


def build_appointment_title(month_interval: int, mile_interval: int) -> str:
    return f"{month_interval} Month / {format_miles(mile_interval)} Mile Service"
