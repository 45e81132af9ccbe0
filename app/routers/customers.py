"""
Customer & Vehicle Endpoints

Pass-through lookups for customers and vehicles.
"""

from fastapi import APIRouter, Depends
from app.services.tm_client import TekmetricClient, get_tm_client

router = APIRouter()
vehicle_router = APIRouter()


@router.get("/{customer_id}")
async def get_customer(customer_id: int, tm: TekmetricClient = Depends(get_tm_client)):
    """
    Get customer details

    - **customer_id**: Customer ID
    """
    customer = await tm.get(f"/api/v1/customers/{customer_id}")
    return {"success": True, "customer": customer}


@vehicle_router.get("/{vehicle_id}")
async def get_vehicle(vehicle_id: int, tm: TekmetricClient = Depends(get_tm_client)):
    """
    Get vehicle details

    - **vehicle_id**: Vehicle ID
    """
    vehicle = await tm.get(f"/api/v1/vehicles/{vehicle_id}")
    return {"success": True, "vehicle": vehicle}
