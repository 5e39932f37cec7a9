# tables/services.py - Technician work items and their notes
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Text, ForeignKey
from config import Base
from utils.timeutils import utcnow

ACTIVE_SERVICE_STATUSES = ("scheduled", "confirmed", "in_progress")
TERMINAL_SERVICE_STATUSES = ("completed", "cancelled")


class Service(Base):
    __tablename__ = "services"

    service_id = Column(Integer, primary_key=True)
    emp_id = Column(Integer, nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True, unique=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    service_type = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default="scheduled", index=True)

    # Customer snapshot
    customer_name = Column(String(200), nullable=True)
    customer_address = Column(Text, nullable=True)
    customer_phone = Column(String(30), nullable=True)
    customer_email = Column(String(200), nullable=True, index=True)

    scheduled_date = Column(Date, nullable=False, index=True)
    time = Column(String(50), nullable=False)  # "10:00 AM" or a slot label
    duration = Column(Float, default=1)  # hours
    started_at = Column(DateTime, nullable=True)
    completed_date = Column(DateTime, nullable=True)

    estimated_earnings = Column(Float, default=0)
    actual_earnings = Column(Float, nullable=True)
    payment_status = Column(String(20), default="pending")  # pending, paid, cancelled
    notes = Column(Text, nullable=True)  # last note written, full history in service_notes
    priority = Column(String(20), default="medium")  # low, medium, high, emergency

    rating = Column(Integer, nullable=True)
    feedback = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, nullable=True)


class ServiceNote(Base):
    __tablename__ = "service_notes"

    note_id = Column(Integer, primary_key=True, autoincrement=False)
    service_id = Column(Integer, ForeignKey("services.service_id", ondelete="CASCADE"), nullable=False, index=True)
    emp_id = Column(Integer, nullable=False, index=True)
    note = Column(Text, nullable=False)
    type = Column(String(30), default="general")  # general, customer_communication, technical, follow_up
    priority = Column(String(10), default="medium")  # low, medium, high
    created_by = Column(String(20), default="technician")  # technician, customer, system
    created_at = Column(DateTime, default=utcnow)
