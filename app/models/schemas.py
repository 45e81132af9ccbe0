"""
Pydantic Models for Request/Response Validation
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Union, Dict, Any


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# Repair Order Models
class CustomerInfo(WireModel):
    """Customer summary attached to an RO"""
    id: Optional[int] = None
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    phone: Optional[Any] = None
    email: Optional[Any] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class VehicleInfo(WireModel):
    """Vehicle summary attached to an RO"""
    id: Optional[int] = None
    year: Optional[int] = None
    make: Optional[str] = None
    model: Optional[str] = None
    vin: Optional[str] = None

    @property
    def display_name(self) -> str:
        return f"{self.year or ''} {self.make or ''} {self.model or ''}".strip()


class Job(WireModel):
    """Repair order line item (read-only)"""
    id: Optional[Union[int, str]] = None
    job_id: Optional[Union[int, str]] = Field(None, alias="jobId")
    name: Optional[str] = None

    # Explicit flags
    authorized: Optional[bool] = None
    approved: Optional[bool] = None
    declined: Optional[bool] = None

    # Raw status fields, strings or {"code", "name"} objects
    authorization_status: Optional[Union[str, Dict[str, Any]]] = Field(None, alias="authorizationStatus")
    authorized_status: Optional[Union[str, Dict[str, Any]]] = Field(None, alias="authorizedStatus")
    approval_status: Optional[Union[str, Dict[str, Any]]] = Field(None, alias="approvalStatus")
    status: Optional[Union[str, Dict[str, Any]]] = None


class RepairOrderSnapshot(WireModel):
    """GET /ro/{roId} payload, as consumed by the panel"""
    success: bool = True
    ro_id: Optional[Union[int, str]] = Field(None, alias="roId")
    ro_number: Optional[Union[int, str]] = Field(None, alias="roNumber")
    shop_id: Optional[int] = Field(None, alias="shopId")
    mileage: Optional[float] = None
    customer: Optional[CustomerInfo] = None
    vehicle: Optional[VehicleInfo] = None
    jobs: List[Job] = []

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# Appointment Models
class AppointmentCreate(WireModel):
    """POST /appointments request"""
    shop_id: int = Field(..., alias="shopId")
    customer_id: int = Field(..., alias="customerId")
    vehicle_id: int = Field(..., alias="vehicleId")
    title: str
    purpose_of_visit: str = Field("", alias="purposeOfVisit")
    appointment_type: str = Field("dropoff", alias="appointmentType")
    start_time: str = Field(..., alias="startTime", description="ISO 8601")
    end_time: str = Field(..., alias="endTime", description="ISO 8601")
    mileage: Optional[int] = None


class AppointmentCountsResponse(BaseModel):
    """GET /appointments/counts response"""
    success: bool = True
    counts: Dict[str, int] = {}
