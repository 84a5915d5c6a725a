"""Service models for detailing offerings."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ServiceCategory(str, Enum):
    """Service categories."""

    EXTERIOR = "exterior"
    INTERIOR = "interior"
    FULL = "full"
    ADDON = "addon"


class Service(BaseModel):
    """
    Service model.

    Read-only reference data from the scheduler's point of view: the price
    and duration captured when an appointment is booked stay with it.
    """

    id: str
    name: str
    description: str = ""
    price: float = Field(..., ge=0, description="Price in USD")
    duration_minutes: int = Field(..., ge=0, description="Duration in minutes")
    category: ServiceCategory = ServiceCategory.EXTERIOR
    is_active: bool = True

    class Config:
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "id": "exterior-basic",
                "name": "Basic Exterior Wash",
                "description": "Hand wash, dry, and tire shine",
                "price": 50,
                "duration_minutes": 60,
                "category": "exterior",
                "is_active": True,
            }
        }


# Predefined services
SERVICES = {
    "exterior-basic": Service(
        id="exterior-basic",
        name="Basic Exterior Wash",
        description="Hand wash, dry, and tire shine",
        price=50,
        duration_minutes=60,
        category=ServiceCategory.EXTERIOR,
    ),
    "exterior-premium": Service(
        id="exterior-premium",
        name="Premium Exterior Detail",
        description="Wash, clay bar, polish, wax, and tire shine",
        price=120,
        duration_minutes=180,
        category=ServiceCategory.EXTERIOR,
    ),
    "interior-basic": Service(
        id="interior-basic",
        name="Basic Interior Clean",
        description="Vacuum, wipe down surfaces, window cleaning",
        price=60,
        duration_minutes=90,
        category=ServiceCategory.INTERIOR,
    ),
    "interior-premium": Service(
        id="interior-premium",
        name="Premium Interior Detail",
        description="Deep clean, leather conditioning, steam cleaning",
        price=150,
        duration_minutes=240,
        category=ServiceCategory.INTERIOR,
    ),
    "full-detail": Service(
        id="full-detail",
        name="Complete Detail Package",
        description="Full interior and exterior detailing service",
        price=250,
        duration_minutes=360,
        category=ServiceCategory.FULL,
    ),
    "ceramic-coating": Service(
        id="ceramic-coating",
        name="Ceramic Coating",
        description="Long-lasting paint protection",
        price=500,
        duration_minutes=480,
        category=ServiceCategory.ADDON,
    ),
}


def get_service(service_id: str) -> Optional[Service]:
    """Get service by id, or None if it is not in the catalog."""
    return SERVICES.get(service_id)


def get_active_services() -> List[Service]:
    """Get all services currently offered."""
    return [service for service in SERVICES.values() if service.is_active]


def total_duration(services: List[Service]) -> int:
    """Sum of service durations in minutes."""
    return sum(service.duration_minutes for service in services)


def total_price(services: List[Service]) -> float:
    """Sum of service prices."""
    return sum(service.price for service in services)
