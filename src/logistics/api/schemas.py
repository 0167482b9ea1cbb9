"""Pydantic API schemas for the logistics domain.

These are the external API contracts, separate from domain commands. Request
bodies are strict: unknown fields are rejected and fields are accepted in
camelCase (snake_case also works for internal callers).
"""

from datetime import datetime

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class StrictRequest(BaseModel):
    model_config = {
        "extra": "forbid",
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


# ---------------------------------------------------------------------------
# Registration & approval
# ---------------------------------------------------------------------------
class RegisterHospitalRequest(StrictRequest):
    model_config = {
        **StrictRequest.model_config,
        "json_schema_extra": {
            "examples": [
                {
                    "name": "City General",
                    "hospitalType": "main",
                    "latitude": 12.9716,
                    "longitude": 77.5946,
                }
            ]
        },
    }

    name: str = Field(..., max_length=200)
    hospital_type: str
    parent_hospital_id: str | None = None
    code: str | None = Field(None, max_length=50)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    address: str | None = Field(None, max_length=500)
    contact_phone: str | None = Field(None, max_length=30)
    contact_email: str | None = Field(None, max_length=254)


class RegisterCenterRequest(StrictRequest):
    name: str = Field(..., max_length=200)
    center_type: str | None = None
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: str | None = Field(None, max_length=500)
    hospital_ids: list[str] = Field(..., min_length=1)
    license_number: str | None = Field(None, max_length=100)
    contact_person: str | None = Field(None, max_length=200)
    contact_phone: str | None = Field(None, max_length=30)
    document_urls: list[str] = Field(default_factory=list)


class RegisterRiderRequest(StrictRequest):
    name: str = Field(..., max_length=200)
    phone: str = Field(..., max_length=30)
    vehicle_type: str | None = None
    vehicle_number: str | None = Field(None, max_length=30)
    hospital_ids: list[str] = Field(..., min_length=1)
    document_urls: list[str] = Field(default_factory=list)


class ApproveRequest(StrictRequest):
    hospital_id: str | None = None


class RejectRequest(StrictRequest):
    hospital_id: str | None = None
    reason: str


class AffiliateRequest(StrictRequest):
    hospital_id: str


# ---------------------------------------------------------------------------
# Riders
# ---------------------------------------------------------------------------
class AvailabilityRequest(StrictRequest):
    availability: str


class LocationRequest(StrictRequest):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    reported_at: datetime | None = None


# ---------------------------------------------------------------------------
# Orders, QR codes & handovers
# ---------------------------------------------------------------------------
class CreateOrderRequest(StrictRequest):
    model_config = {
        **StrictRequest.model_config,
        "json_schema_extra": {
            "examples": [
                {
                    "centerId": "c0ffee00-0000-4000-8000-000000000001",
                    "hospitalId": "c0ffee00-0000-4000-8000-000000000002",
                    "urgency": "urgent",
                    "sampleTypes": ["blood"],
                    "sampleCount": 2,
                }
            ]
        },
    }

    center_id: str
    hospital_id: str
    urgency: str
    sample_types: list[str] = Field(default_factory=list)
    sample_count: int = Field(1, ge=1)
    notes: str | None = Field(None, max_length=1000)


class AssignRiderRequest(StrictRequest):
    rider_id: str


class StartTransitRequest(StrictRequest):
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)


class CancelOrderRequest(StrictRequest):
    reason: str


class GenerateQRRequest(StrictRequest):
    expiry_hours: int | None = Field(None, ge=1, le=168)


class ScanLocation(StrictRequest):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class ScanQRRequest(StrictRequest):
    qr_data: str
    scan_location: ScanLocation | None = None
    scanned_at: datetime | None = None
    expected_order_id: str | None = None


class InitiateHandoverRequest(StrictRequest):
    to_rider_id: str
    reason: str
    from_rider_id: str | None = None
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)


class CancelHandoverRequest(StrictRequest):
    reason: str


# ---------------------------------------------------------------------------
# SLA & feed
# ---------------------------------------------------------------------------
class SLAPolicyRequest(StrictRequest):
    emergency_pickup_minutes: int | None = Field(None, ge=1)
    emergency_delivery_minutes: int | None = Field(None, ge=1)
    urgent_pickup_minutes: int | None = Field(None, ge=1)
    urgent_delivery_minutes: int | None = Field(None, ge=1)
    routine_pickup_minutes: int | None = Field(None, ge=1)
    routine_delivery_minutes: int | None = Field(None, ge=1)
    alert_threshold_minutes: int | None = Field(None, ge=0)


class SweepRequest(StrictRequest):
    as_of: datetime | None = None


class AcknowledgeRequest(StrictRequest):
    entry_ids: list[str] = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class IdResponse(BaseModel):
    id: str


class OrderIdResponse(BaseModel):
    order_id: str


class StatusResponse(BaseModel):
    status: str | None
