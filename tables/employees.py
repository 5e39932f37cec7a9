# tables/employees.py - Technicians and their cached statistics
from sqlalchemy import Column, Integer, String, Float, DateTime, Text, JSON
from config import Base
from utils.timeutils import utcnow


class Employee(Base):
    __tablename__ = "employees"
    __table_args__ = {"sqlite_autoincrement": True}

    emp_id = Column(Integer, primary_key=True)
    emp_name = Column(String(200), nullable=False)
    email = Column(String(200), unique=True, nullable=False)
    phone = Column(String(30), nullable=False)
    role = Column(String(100), nullable=False, default="Employee")

    country_id = Column(Integer, nullable=False)
    state_id = Column(Integer, nullable=False)
    city_id = Column(Integer, nullable=False)
    area_id = Column(Integer, nullable=False)

    status = Column(String(20), default="Active")  # Active, Inactive
    address = Column(String(500), nullable=True)
    bio = Column(Text, nullable=True)
    avatar = Column(String(10), default="DP")
    specialties = Column(JSON, nullable=True)
    certifications = Column(JSON, nullable=True)
    join_date = Column(DateTime, default=utcnow)

    # Cached statistics, always rebuilt from services and the payment ledger
    rating = Column(Float, default=0)
    completed_jobs = Column(Integer, default=0)
    total_earnings = Column(Float, default=0)
    hours_worked = Column(Float, default=0)
