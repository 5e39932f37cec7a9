# models/catalog.py - Service catalog models
from pydantic import validator
from datetime import datetime
from typing import Optional, List
from models.base import CamelModel


class CatalogServiceCreate(CamelModel):
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    price: float
    duration: Optional[float] = None
    time_slots: List[str] = []
    is_active: bool = True

    @validator('title')
    def validate_title(cls, v):
        if not v or not v.strip():
            raise ValueError('Title is required')
        return v.strip()

    @validator('price')
    def validate_price(cls, v):
        if v < 0:
            raise ValueError('Price cannot be negative')
        return v

    @validator('time_slots')
    def validate_time_slots(cls, v):
        return [slot.strip() for slot in v if slot and slot.strip()]


class CatalogServiceRead(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    price: float
    duration: Optional[float] = None
    time_slots: List[str] = []
    is_active: bool
    created_at: Optional[datetime] = None

    @validator('time_slots', pre=True)
    def default_time_slots(cls, v):
        return v or []
