# models/employees.py - Technician profile models
from pydantic import validator
from datetime import datetime
from typing import Optional, List, Dict, Any
from models.base import CamelModel, EMAIL_RE

EMPLOYEE_STATUSES = ["Active", "Inactive"]


class EmployeeCreate(CamelModel):
    name: str
    email: str
    phone: str
    role: str = "Employee"
    status: str = "Active"
    country_id: int
    state_id: int
    city_id: int
    area_id: int
    address: Optional[str] = None
    bio: Optional[str] = None
    specialties: List[str] = []
    certifications: List[str] = []

    @validator('name', 'phone')
    def validate_required(cls, v):
        if not v or not v.strip():
            raise ValueError('Field is required')
        return v.strip()

    @validator('email')
    def validate_email(cls, v):
        if not EMAIL_RE.match(v.strip()):
            raise ValueError('Invalid email address')
        return v.strip().lower()

    @validator('status')
    def validate_status(cls, v):
        if v not in EMPLOYEE_STATUSES:
            raise ValueError(f'Status must be one of: {", ".join(EMPLOYEE_STATUSES)}')
        return v


class EmployeeUpdate(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    status: Optional[str] = None
    country_id: Optional[int] = None
    state_id: Optional[int] = None
    city_id: Optional[int] = None
    area_id: Optional[int] = None
    address: Optional[str] = None
    bio: Optional[str] = None
    specialties: Optional[List[str]] = None
    certifications: Optional[List[str]] = None

    @validator('email')
    def validate_email(cls, v):
        if v is not None and not EMAIL_RE.match(v.strip()):
            raise ValueError('Invalid email address')
        return v.strip().lower() if v else v

    @validator('status')
    def validate_status(cls, v):
        if v is not None and v not in EMPLOYEE_STATUSES:
            raise ValueError(f'Status must be one of: {", ".join(EMPLOYEE_STATUSES)}')
        return v


class EmployeeRead(CamelModel):
    id: int
    name: str
    email: str
    phone: str
    role: str
    status: str
    avatar: str
    country_id: int
    state_id: int
    city_id: int
    area_id: int
    address: Optional[str] = None
    bio: Optional[str] = None
    specialties: List[str] = []
    certifications: List[str] = []
    join_date: Optional[datetime] = None
    rating: float = 0
    completed_jobs: int = 0
    total_earnings: float = 0
    hours_worked: float = 0

    @classmethod
    def from_row(cls, employee) -> "EmployeeRead":
        return cls(
            id=employee.emp_id,
            name=employee.emp_name,
            email=employee.email,
            phone=employee.phone,
            role=employee.role,
            status=employee.status,
            avatar=employee.avatar,
            country_id=employee.country_id,
            state_id=employee.state_id,
            city_id=employee.city_id,
            area_id=employee.area_id,
            address=employee.address,
            bio=employee.bio,
            specialties=employee.specialties or [],
            certifications=employee.certifications or [],
            join_date=employee.join_date,
            rating=employee.rating or 0,
            completed_jobs=employee.completed_jobs or 0,
            total_earnings=employee.total_earnings or 0,
            hours_worked=employee.hours_worked or 0
        )


class ActivityRead(CamelModel):
    activity_id: int
    emp_id: int
    type: str
    message: str
    service_id: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, activity) -> "ActivityRead":
        return cls(
            activity_id=activity.activity_id,
            emp_id=activity.emp_id,
            type=activity.type,
            message=activity.message,
            service_id=activity.service_id,
            metadata=activity.meta,
            created_at=activity.created_at
        )
