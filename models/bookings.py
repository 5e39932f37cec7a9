# models/bookings.py - Booking request/response models
from pydantic import Field, validator
from datetime import datetime, date
from typing import Optional, List
from models.base import CamelModel

BOOKING_STATUSES = ["pending", "confirmed", "assigned", "in_progress", "completed", "cancelled"]
BOOKING_PAYMENT_METHODS = ["online", "cash", "card", "upi"]


class ServiceSnapshot(CamelModel):
    """Inline offer used when the booking is not tied to a catalog entry"""
    title: Optional[str] = None
    price: Optional[float] = None
    duration: Optional[float] = None
    category: Optional[str] = None


class ContactInfo(CamelModel):
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None


class LocationInfo(CamelModel):
    country: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    area: Optional[str] = None
    complete_address: Optional[str] = None


class ScheduleInfo(CamelModel):
    preferred_date: Optional[str] = None
    time_slot: Optional[str] = None


class BookingCreate(CamelModel):
    # Field checks happen in the slot allocator so every problem is reported at once
    customer_id: Optional[int] = None
    service_id: Optional[int] = None
    service_details: Optional[ServiceSnapshot] = None
    contact_info: ContactInfo = Field(default_factory=ContactInfo)
    location: LocationInfo = Field(default_factory=LocationInfo)
    schedule: ScheduleInfo = Field(default_factory=ScheduleInfo)
    special_instructions: Optional[str] = None
    payment_method: Optional[str] = None


class PaymentInfo(CamelModel):
    method: str
    amount: float
    currency: str
    status: str
    transaction_id: Optional[str] = None
    payment_date: Optional[datetime] = None


class RatingInfo(CamelModel):
    score: int
    review: Optional[str] = None
    created_at: Optional[datetime] = None


class ScheduleRead(CamelModel):
    preferred_date: date
    time_slot: str


class BookingRead(CamelModel):
    id: int
    booking_id: str
    customer_id: Optional[int] = None
    service_id: Optional[int] = None
    service_details: ServiceSnapshot
    contact_info: ContactInfo
    location: LocationInfo
    schedule: ScheduleRead
    special_instructions: Optional[str] = None
    payment: PaymentInfo
    status: str
    assigned_to: Optional[int] = None
    cancellation_reason: Optional[str] = None
    rating: Optional[RatingInfo] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, booking) -> "BookingRead":
        rating = None
        if booking.rating_score is not None:
            rating = RatingInfo(score=booking.rating_score, review=booking.rating_review, created_at=booking.rated_at)
        return cls(
            id=booking.id,
            booking_id=booking.booking_id,
            customer_id=booking.customer_id,
            service_id=booking.catalog_service_id,
            service_details=ServiceSnapshot(
                title=booking.service_title,
                price=booking.service_price,
                duration=booking.service_duration,
                category=booking.service_category
            ),
            contact_info=ContactInfo(
                full_name=booking.full_name,
                phone_number=booking.phone_number,
                email=booking.email
            ),
            location=LocationInfo(
                country=booking.country,
                state=booking.state,
                city=booking.city,
                area=booking.area,
                complete_address=booking.complete_address
            ),
            schedule=ScheduleRead(preferred_date=booking.preferred_date, time_slot=booking.time_slot),
            special_instructions=booking.special_instructions,
            payment=PaymentInfo(
                method=booking.payment_method,
                amount=booking.payment_amount,
                currency=booking.payment_currency,
                status=booking.payment_status,
                transaction_id=booking.transaction_id,
                payment_date=booking.payment_date
            ),
            status=booking.status,
            assigned_to=booking.assigned_emp_id,
            cancellation_reason=booking.cancellation_reason,
            rating=rating,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
            completed_at=booking.completed_at,
            cancelled_at=booking.cancelled_at
        )


class AvailabilityResponse(CamelModel):
    slot_date: date = Field(alias="date")
    available_slots: List[str]
    booked_slots: List[str]
    suggested_slot: Optional[str] = None
    degraded: bool = False


class UpdateBookingStatusRequest(CamelModel):
    status: str
    actor: Optional[str] = None
    emp_id: Optional[int] = None  # technician to assign when moving to 'assigned'
    reason: Optional[str] = None
    transaction_id: Optional[str] = None

    @validator('status')
    def validate_status(cls, v):
        if v not in BOOKING_STATUSES:
            raise ValueError(f'Status must be one of: {", ".join(BOOKING_STATUSES)}')
        return v

    @validator('reason')
    def validate_reason(cls, v):
        if v and len(v) > 200:
            raise ValueError('Cancellation reason cannot exceed 200 characters')
        return v


class ReviewRequest(CamelModel):
    score: int
    review: Optional[str] = None

    @validator('score')
    def validate_score(cls, v):
        if not 1 <= v <= 5:
            raise ValueError('Rating must be between 1 and 5')
        return v

    @validator('review')
    def validate_review(cls, v):
        if v and len(v) > 1000:
            raise ValueError('Review text cannot exceed 1000 characters')
        return v
