"""Service catalog for tours, trips and rentals."""

from typing import List, Optional

from pydantic import BaseModel, Field


class Service(BaseModel):
    """Service model."""

    id: str
    name: str
    description: str
    price: int = Field(..., ge=0, description="Price in USD (per day for rentals)")
    duration: Optional[str] = None
    image_url: Optional[str] = None
    features: List[str] = Field(default_factory=list)
    rental: bool = Field(default=False, description="Booked with a start/end date pair")


# Fixed catalog, loaded once per process
SERVICES: List[Service] = [
    Service(
        id="car-rental",
        name="Car Rental",
        description=(
            "Explore Mauritius at your own pace with our reliable car rental "
            "service. Perfect for families and groups."
        ),
        price=45,
        duration="Per day",
        rental=True,
        features=[
            "Full insurance coverage",
            "24/7 roadside assistance",
            "GPS navigation included",
            "Unlimited mileage",
            "Free airport pickup/drop-off",
        ],
    ),
    Service(
        id="sightseeing-tour",
        name="Sightseeing Tour",
        description=(
            "Discover the beauty of Mauritius with our guided sightseeing tours "
            "to the most iconic locations."
        ),
        price=65,
        duration="Full day (8 hours)",
        features=[
            "Professional guide",
            "Visit 5+ attractions",
            "Lunch included",
            "Hotel pickup/drop-off",
            "Small group tours (max 8 people)",
        ],
    ),
    Service(
        id="catamaran-trip",
        name="Catamaran Trip",
        description=(
            "Experience the crystal-clear waters of Mauritius with our luxury "
            "catamaran trips."
        ),
        price=85,
        duration="Full day (6 hours)",
        features=[
            "Luxury catamaran",
            "Snorkeling equipment",
            "BBQ lunch on board",
            "Open bar (alcoholic & non-alcoholic)",
            "Visit to private beaches",
        ],
    ),
    Service(
        id="ile-aux-cerfs",
        name="Ile Aux Cerfs Island Trip",
        description=(
            "Visit the famous Ile Aux Cerfs island with its pristine beaches "
            "and water activities."
        ),
        price=75,
        duration="Full day (7 hours)",
        features=[
            "Boat transfer included",
            "Beach access",
            "Water sports available",
            "Lunch at island restaurant",
            "Return transfer",
        ],
    ),
    Service(
        id="airport-transfer",
        name="Airport Transfers",
        description=(
            "Comfortable and reliable airport transfer service to and from "
            "your hotel."
        ),
        price=25,
        duration="One way",
        features=[
            "Meet & greet service",
            "Air-conditioned vehicles",
            "Flight tracking",
            "Luggage assistance",
            "24/7 availability",
        ],
    ),
]


def get_all_services() -> List[Service]:
    """Get all available services."""
    return list(SERVICES)


def find_service(name_or_id: str) -> Optional[Service]:
    """Look a service up by display name (case-insensitive) or id."""
    if not name_or_id:
        return None
    key = name_or_id.strip().lower()
    return next(
        (s for s in SERVICES if s.name.lower() == key or s.id == key),
        None,
    )
