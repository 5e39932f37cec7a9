# tables/activities.py - Write-once technician activity log
from sqlalchemy import Column, Integer, String, DateTime, JSON
from config import Base
from utils.timeutils import utcnow


class Activity(Base):
    __tablename__ = "activities"

    activity_id = Column(Integer, primary_key=True, autoincrement=False)
    emp_id = Column(Integer, nullable=False, index=True)
    type = Column(String(30), nullable=False)
    message = Column(String(500), nullable=False)
    service_id = Column(Integer, nullable=True)
    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)
