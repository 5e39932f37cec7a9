# models/payments.py - Ledger request/response models
from pydantic import validator
from datetime import datetime, date
from typing import Optional, List, Dict
from models.base import CamelModel

PAYMENT_STATUSES = ["completed", "pending", "cancelled"]
LEDGER_PAYMENT_METHODS = ["credit_card", "cash", "bank_transfer"]
UPCOMING_STATUSES = ["scheduled", "confirmed", "in-progress"]


class CustomerSnapshot(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class PaymentRead(CamelModel):
    payment_id: int
    emp_id: int
    service_id: int
    customer: CustomerSnapshot
    service_type: str
    amount: float
    commission: float
    base_rate: float
    bonus: float
    hours: float
    date: datetime
    status: str
    payment_method: str
    transaction_id: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_row(cls, payment) -> "PaymentRead":
        return cls(
            payment_id=payment.payment_id,
            emp_id=payment.emp_id,
            service_id=payment.service_id,
            customer=CustomerSnapshot(
                name=payment.customer_name,
                email=payment.customer_email,
                phone=payment.customer_phone
            ),
            service_type=payment.service_type,
            amount=payment.amount,
            commission=payment.commission,
            base_rate=payment.base_rate,
            bonus=payment.bonus or 0,
            hours=payment.hours,
            date=payment.date,
            status=payment.status,
            payment_method=payment.payment_method,
            transaction_id=payment.transaction_id,
            notes=payment.notes
        )


class UpcomingPaymentRead(CamelModel):
    upcoming_id: int
    emp_id: int
    service_id: int
    customer: CustomerSnapshot
    service_type: str
    estimated_amount: float
    scheduled_date: date
    status: str
    hours: float
    address: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_row(cls, upcoming) -> "UpcomingPaymentRead":
        return cls(
            upcoming_id=upcoming.upcoming_id,
            emp_id=upcoming.emp_id,
            service_id=upcoming.service_id,
            customer=CustomerSnapshot(
                name=upcoming.customer_name,
                email=upcoming.customer_email,
                phone=upcoming.customer_phone
            ),
            service_type=upcoming.service_type,
            estimated_amount=upcoming.estimated_amount,
            scheduled_date=upcoming.scheduled_date,
            status=upcoming.status,
            hours=upcoming.hours,
            address=upcoming.address,
            notes=upcoming.notes
        )


class DashboardStats(CamelModel):
    total_earnings: float
    pending_amount: float
    total_commission: float
    average_earning: float
    completed_count: int
    pending_count: int
    total_services: int


class DashboardResponse(CamelModel):
    payments: List[PaymentRead]
    upcoming_payments: List[UpcomingPaymentRead]
    stats: DashboardStats
    payment_methods: Dict[str, int]


class EarningsBucket(CamelModel):
    date: str  # YYYY-MM-DD
    year: int
    month: int
    day: int
    total_earnings: float
    total_commission: float
    count: int


class PaymentCreate(CamelModel):
    """Manual materialization for an already completed service"""
    service_id: int
    commission: Optional[float] = None
    bonus: Optional[float] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None

    @validator('payment_method')
    def validate_payment_method(cls, v):
        if v is not None and v not in LEDGER_PAYMENT_METHODS:
            raise ValueError(f'Payment method must be one of: {", ".join(LEDGER_PAYMENT_METHODS)}')
        return v


class PaymentStatusUpdate(CamelModel):
    status: str

    @validator('status')
    def validate_status(cls, v):
        if v not in PAYMENT_STATUSES:
            raise ValueError(f'Status must be one of: {", ".join(PAYMENT_STATUSES)}')
        return v


class UpcomingPaymentCreate(CamelModel):
    service_id: int
    estimated_amount: Optional[float] = None
    notes: Optional[str] = None


class UpcomingStatusUpdate(CamelModel):
    status: str

    @validator('status')
    def validate_status(cls, v):
        if v not in UPCOMING_STATUSES:
            raise ValueError(f'Status must be one of: {", ".join(UPCOMING_STATUSES)}')
        return v
