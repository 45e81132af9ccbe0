"""
Job Endpoints

Jobs on a repair order.
"""

from fastapi import APIRouter, Depends, Query
from app.services.envelopes import extract_records
from app.services.tm_client import TekmetricClient, get_tm_client

router = APIRouter()


@router.get("")
async def get_jobs(
    repair_order_id: int = Query(..., alias="repairOrderId", description="Repair order ID"),
    size: int = Query(100, ge=1, le=500, description="Max jobs"),
    tm: TekmetricClient = Depends(get_tm_client)
):
    """
    List jobs for a repair order

    - **repairOrderId**: Repair order ID
    - **size**: Max jobs to return
    """
    result = await tm.get("/api/v1/jobs", {"repairOrderId": repair_order_id, "size": size})
    return {"success": True, "jobs": extract_records(result)}
