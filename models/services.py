# models/services.py - Service work item, note and schedule models
from pydantic import Field, validator
from datetime import datetime, date
from typing import Optional, List, Dict
from models.base import CamelModel
from utils.timeutils import parse_date

SERVICE_TYPES = [
    "Plumbing", "AC Repair", "Appliance Repair", "Drain Cleaning",
    "Electrical", "Emergency Plumbing", "Cleaning", "Other"
]
SERVICE_STATUSES = ["scheduled", "confirmed", "in_progress", "completed", "cancelled"]
SERVICE_PRIORITIES = ["low", "medium", "high", "emergency"]
NOTE_TYPES = ["general", "customer_communication", "technical", "follow_up"]
NOTE_PRIORITIES = ["low", "medium", "high"]


def _date_value(v):
    if v is None or isinstance(v, date):
        return v
    parsed = parse_date(v)
    if parsed is None:
        raise ValueError('Date must be a valid date (YYYY-MM-DD)')
    return parsed


class CustomerInfo(CamelModel):
    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class ServiceCreate(CamelModel):
    emp_id: int
    title: str
    description: str = ""
    service_type: str
    customer: CustomerInfo = Field(default_factory=CustomerInfo)
    scheduled_date: date
    time: str
    duration: float = 1
    estimated_earnings: float = 0
    priority: str = "medium"
    notes: Optional[str] = None

    @validator('scheduled_date', pre=True)
    def validate_scheduled_date(cls, v):
        return _date_value(v)

    @validator('title', 'time')
    def validate_required(cls, v):
        if not v or not v.strip():
            raise ValueError('Field is required')
        return v.strip()

    @validator('service_type')
    def validate_service_type(cls, v):
        if v not in SERVICE_TYPES:
            raise ValueError(f'Service type must be one of: {", ".join(SERVICE_TYPES)}')
        return v

    @validator('priority')
    def validate_priority(cls, v):
        if v not in SERVICE_PRIORITIES:
            raise ValueError(f'Priority must be one of: {", ".join(SERVICE_PRIORITIES)}')
        return v

    @validator('duration', 'estimated_earnings')
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError('Value cannot be negative')
        return v


class ServiceUpdate(CamelModel):
    """Only descriptive fields; status and earnings move through the transition endpoints"""
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    duration: Optional[float] = None
    estimated_earnings: Optional[float] = None

    @validator('priority')
    def validate_priority(cls, v):
        if v is not None and v not in SERVICE_PRIORITIES:
            raise ValueError(f'Priority must be one of: {", ".join(SERVICE_PRIORITIES)}')
        return v


class ServiceRead(CamelModel):
    service_id: int
    emp_id: int
    booking_id: Optional[int] = None
    title: str
    description: str
    service_type: str
    status: str
    customer: CustomerInfo
    scheduled_date: date
    time: str
    duration: float
    started_at: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    estimated_earnings: float
    actual_earnings: Optional[float] = None
    payment_status: str
    notes: Optional[str] = None
    priority: str
    rating: Optional[int] = None
    feedback: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, service) -> "ServiceRead":
        return cls(
            service_id=service.service_id,
            emp_id=service.emp_id,
            booking_id=service.booking_id,
            title=service.title,
            description=service.description or "",
            service_type=service.service_type,
            status=service.status,
            customer=CustomerInfo(
                name=service.customer_name,
                address=service.customer_address,
                phone=service.customer_phone,
                email=service.customer_email
            ),
            scheduled_date=service.scheduled_date,
            time=service.time,
            duration=service.duration or 0,
            started_at=service.started_at,
            completed_date=service.completed_date,
            estimated_earnings=service.estimated_earnings or 0,
            actual_earnings=service.actual_earnings,
            payment_status=service.payment_status,
            notes=service.notes,
            priority=service.priority,
            rating=service.rating,
            feedback=service.feedback,
            created_at=service.created_at,
            updated_at=service.updated_at
        )


class NoteRead(CamelModel):
    note_id: int
    service_id: int
    emp_id: int
    note: str
    type: str
    priority: str
    created_by: str
    created_at: Optional[datetime] = None


class ServiceDetails(ServiceRead):
    note_history: List[NoteRead] = []
    special_requirements: List[str] = []
    customer_phone: str = "N/A"


class NoteCreate(CamelModel):
    note: Optional[str] = None
    type: str = "general"
    priority: str = "medium"

    @validator('type')
    def validate_type(cls, v):
        if v not in NOTE_TYPES:
            raise ValueError(f'Note type must be one of: {", ".join(NOTE_TYPES)}')
        return v

    @validator('priority')
    def validate_priority(cls, v):
        if v not in NOTE_PRIORITIES:
            raise ValueError(f'Priority must be one of: {", ".join(NOTE_PRIORITIES)}')
        return v


class TransitionRequest(CamelModel):
    notes: Optional[str] = None


class StatusUpdateRequest(CamelModel):
    status: str
    notes: Optional[str] = None

    @validator('status')
    def validate_status(cls, v):
        if v not in SERVICE_STATUSES:
            raise ValueError(f'Status must be one of: {", ".join(SERVICE_STATUSES)}')
        return v


class CompleteRequest(CamelModel):
    actual_earnings: Optional[float] = None
    commission: Optional[float] = None
    bonus: Optional[float] = None
    payment_method: Optional[str] = None
    completion_time: Optional[datetime] = None
    notes: Optional[str] = None

    @validator('actual_earnings', 'commission', 'bonus')
    def validate_non_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError('Value cannot be negative')
        return v


class RescheduleRequest(CamelModel):
    scheduled_date: Optional[date] = None
    time: Optional[str] = None
    notes: Optional[str] = None

    @validator('scheduled_date', pre=True)
    def validate_scheduled_date(cls, v):
        return _date_value(v)


class RatingRequest(CamelModel):
    rating: int
    feedback: Optional[str] = None

    @validator('rating')
    def validate_rating(cls, v):
        if not 1 <= v <= 5:
            raise ValueError('Rating must be between 1 and 5')
        return v


class HistoryEntry(CamelModel):
    service_id: int
    service_type: str
    scheduled_date: date
    status: str
    estimated_earnings: float


class QuickActions(CamelModel):
    id: int
    service_id: int
    service_type: str
    status: str
    customer: Optional[str] = None
    customer_phone: Optional[str] = None
    scheduled_date: date
    time: str
    duration: float
    estimated_earnings: float
    address: Optional[str] = None


class CustomerContact(CamelModel):
    customer: CustomerInfo
    service_type: str


class ScheduleResponse(CamelModel):
    services: List[ServiceRead]
    status_counts: Dict[str, int]
    start_date: date
    end_date: date
    view: str


class ScheduleStats(CamelModel):
    total: int
    status_counts: Dict[str, int]
    estimated_earnings: float
