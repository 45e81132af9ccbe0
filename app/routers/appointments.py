"""
Appointment Endpoints

Booked-appointment counts for the date picker, and advance appointment creation.
"""

import logging
from collections import Counter
from datetime import date, datetime, time, timedelta, tzinfo
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Dict, List, Any

from app.models.schemas import AppointmentCreate, AppointmentCountsResponse
from app.services.envelopes import extract_records, total_pages
from app.services.shop_time import get_shop_timezone, parse_iso_datetime, to_utc_iso
from app.services.tm_client import TekmetricClient, get_tm_client

router = APIRouter()
logger = logging.getLogger(__name__)

APPOINTMENT_PAGE_SIZE = 100
MAX_APPOINTMENT_PAGES = 20
MAX_COUNT_RANGE_DAYS = 62


def count_appointments_by_day(
    appointments: List[Dict[str, Any]],
    start_date: date,
    end_date: date,
    tz: tzinfo
) -> Dict[str, int]:
    """Bucket appointments by local start date; every day in range is present"""
    booked = Counter()
    for appointment in appointments:
        start_time = appointment.get("startTime")
        if not start_time:
            continue
        try:
            day = parse_iso_datetime(start_time).astimezone(tz).date()
        except ValueError:
            logger.warning(f"[Appointments] Skipping appointment with bad startTime: {start_time!r}")
            continue
        if start_date <= day <= end_date:
            booked[day.isoformat()] += 1

    days = (end_date - start_date).days + 1
    all_days = [start_date + timedelta(days=offset) for offset in range(days)]
    return {day.isoformat(): booked[day.isoformat()] for day in all_days}


def build_tekmetric_appointment(request: AppointmentCreate) -> Dict[str, Any]:
    """Map the panel's booking request onto Tekmetric's appointment body"""
    description = request.purpose_of_visit
    if request.mileage is not None:
        description = f"{description}\n\nESTIMATED MILEAGE: {request.mileage:,}".strip()

    return {
        "shopId": request.shop_id,
        "customerId": request.customer_id,
        "vehicleId": request.vehicle_id,
        "startTime": request.start_time,
        "endTime": request.end_time,
        "title": request.title,
        "description": description
    }


@router.get("/counts", response_model=AppointmentCountsResponse)
async def get_appointment_counts(
    shop_id: int = Query(..., alias="shopId", description="Tekmetric shop ID"),
    start_date: date = Query(..., alias="startDate", description="First day (YYYY-MM-DD)"),
    end_date: date = Query(..., alias="endDate", description="Last day (YYYY-MM-DD)"),
    tm: TekmetricClient = Depends(get_tm_client)
):
    """
    Booked appointments per day

    - **shopId**: Shop ID
    - **startDate** / **endDate**: Inclusive date range
    """
    if end_date < start_date:
        raise HTTPException(status_code=422, detail="endDate must be on or after startDate")
    if (end_date - start_date).days >= MAX_COUNT_RANGE_DAYS:
        raise HTTPException(status_code=422, detail=f"Date range is limited to {MAX_COUNT_RANGE_DAYS} days")

    tz = get_shop_timezone()
    range_start = datetime.combine(start_date, time.min, tzinfo=tz)
    range_end = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=tz)

    appointments = []
    page = 0
    while True:
        payload = await tm.get("/api/v1/appointments", {
            "shop": shop_id,
            "start": to_utc_iso(range_start),
            "end": to_utc_iso(range_end),
            "size": APPOINTMENT_PAGE_SIZE,
            "page": page
        })
        appointments.extend(extract_records(payload))
        page += 1
        if page >= total_pages(payload) or page >= MAX_APPOINTMENT_PAGES:
            break

    counts = count_appointments_by_day(appointments, start_date, end_date, tz)
    return {"success": True, "counts": counts}


@router.post("")
async def create_appointment(request: AppointmentCreate, tm: TekmetricClient = Depends(get_tm_client)):
    """
    Create an advance appointment

    - **shopId**, **customerId**, **vehicleId**: From the RO
    - **title**, **purposeOfVisit**: Built by the panel
    - **startTime** / **endTime**: ISO 8601
    """
    result = await tm.post("/api/v1/appointments", build_tekmetric_appointment(request))
    logger.info(
        f"[Appointments] Created {request.appointment_type} appointment for customer "
        f"{request.customer_id} on {request.start_time}"
    )
    return {"success": True, "appointment": result}
