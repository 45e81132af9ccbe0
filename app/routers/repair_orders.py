"""
Repair Order Endpoints

RO + customer + vehicle + jobs in one call, shaped for the panel.
"""

import logging
from fastapi import APIRouter, Depends
from typing import Optional, List, Dict, Any

from app.models.schemas import RepairOrderSnapshot, CustomerInfo, VehicleInfo, Job
from app.services.envelopes import extract_records
from app.services.tm_client import TekmetricClient, get_tm_client

router = APIRouter()
logger = logging.getLogger(__name__)


def _primary_phone(customer: Dict[str, Any]) -> Optional[str]:
    """primaryPhone when present, else the primary (or first) entry of the phone list"""
    if customer.get("primaryPhone"):
        return customer["primaryPhone"]
    phones = [p for p in customer.get("phone") or [] if isinstance(p, dict)]
    for phone in phones:
        if phone.get("primary"):
            return phone.get("number")
    return phones[0].get("number") if phones else None


def _ro_mileage(ro: Dict[str, Any]) -> Optional[float]:
    for field_name in ("milesOut", "milesIn"):
        value = ro.get(field_name)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
    return None


def build_ro_snapshot(
    ro_id: int,
    ro: Dict[str, Any],
    customer: Dict[str, Any],
    vehicle: Dict[str, Any],
    jobs: List[Dict[str, Any]]
) -> RepairOrderSnapshot:
    return RepairOrderSnapshot(
        success=True,
        ro_id=str(ro_id),
        ro_number=ro.get("repairOrderNumber"),
        shop_id=ro.get("shopId"),
        mileage=_ro_mileage(ro),
        customer=CustomerInfo(
            id=ro.get("customerId"),
            first_name=customer.get("firstName"),
            last_name=customer.get("lastName"),
            phone=_primary_phone(customer),
            email=customer.get("email")
        ),
        vehicle=VehicleInfo(
            id=ro.get("vehicleId"),
            year=vehicle.get("year"),
            make=vehicle.get("make"),
            model=vehicle.get("model"),
            vin=vehicle.get("vin")
        ),
        jobs=[Job.model_validate(job) for job in jobs]
    )


@router.get("/{ro_id}")
async def get_repair_order(ro_id: int, tm: TekmetricClient = Depends(get_tm_client)):
    """
    Fetch RO + customer + vehicle + jobs

    - **ro_id**: Repair order ID
    """
    ro = await tm.get(f"/api/v1/repair-orders/{ro_id}")

    customer_id = ro.get("customerId")
    vehicle_id = ro.get("vehicleId")
    customer = await tm.get(f"/api/v1/customers/{customer_id}") if customer_id else {}
    vehicle = await tm.get(f"/api/v1/vehicles/{vehicle_id}") if vehicle_id else {}

    # Older RO payloads do not embed jobs
    jobs = ro.get("jobs")
    if not isinstance(jobs, list):
        jobs = extract_records(
            await tm.get("/api/v1/jobs", {"repairOrderId": ro_id, "size": 100})
        )

    snapshot = build_ro_snapshot(ro_id, ro, customer or {}, vehicle or {}, jobs)
    logger.info(f"[RO] Loaded RO {ro_id} with {len(snapshot.jobs)} jobs")
    return snapshot.to_wire()
