# tables/catalog.py - Service catalog entries offered for booking
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, Text, JSON
from config import Base
from utils.timeutils import utcnow


class CatalogService(Base):
    __tablename__ = "catalog_services"

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    price = Column(Float, nullable=False)
    duration = Column(Float, nullable=True)  # hours
    time_slots = Column(JSON, nullable=True)  # service specific slot labels, empty means defaults
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
