# tables/payments.py - Earnings ledger: finalized payments and upcoming projections
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Text
from config import Base
from utils.timeutils import utcnow


class Payment(Base):
    __tablename__ = "payments"

    payment_id = Column(Integer, primary_key=True, autoincrement=False)
    emp_id = Column(Integer, nullable=False, index=True)
    service_id = Column(Integer, nullable=False, unique=True)  # one payment per completed service

    customer_name = Column(String(200), nullable=True)
    customer_email = Column(String(200), nullable=True)
    customer_phone = Column(String(30), nullable=True)

    service_type = Column(String(50), nullable=False)
    amount = Column(Float, nullable=False)
    commission = Column(Float, nullable=False)
    base_rate = Column(Float, nullable=False)
    bonus = Column(Float, default=0)
    hours = Column(Float, nullable=False)
    date = Column(DateTime, default=utcnow, index=True)
    status = Column(String(20), nullable=False, default="completed")  # completed, pending, cancelled
    payment_method = Column(String(20), nullable=False)  # credit_card, cash, bank_transfer
    transaction_id = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)


class UpcomingPayment(Base):
    __tablename__ = "upcoming_payments"

    upcoming_id = Column(Integer, primary_key=True, autoincrement=False)
    emp_id = Column(Integer, nullable=False, index=True)
    service_id = Column(Integer, nullable=False, unique=True)

    customer_name = Column(String(200), nullable=True)
    customer_email = Column(String(200), nullable=True)
    customer_phone = Column(String(30), nullable=True)

    service_type = Column(String(50), nullable=False)
    estimated_amount = Column(Float, nullable=False)
    scheduled_date = Column(Date, nullable=False)
    status = Column(String(20), default="scheduled")  # scheduled, confirmed, in-progress
    hours = Column(Float, nullable=False)
    address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
