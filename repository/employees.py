# repository/employees.py - Technician profiles
import logging
from typing import List
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from models.employees import EmployeeCreate, EmployeeUpdate
from repository.activities import ActivityRepo
from repository.reference import ReferenceStore
from repository.services import ServiceTracker
from tables.employees import Employee
from utils.errors import ValidationError, NotFound, PreconditionFailed
from utils.timeutils import utcnow

logger = logging.getLogger(__name__)

LOCATION_ATTRS = ["country_id", "state_id", "city_id", "area_id"]


def initials(name: str) -> str:
    """'Jane Doe' -> 'JD'"""
    return "".join(part[0] for part in name.split() if part).upper()[:10] or "NA"


class EmployeeRepo:

    @staticmethod
    async def get_employee(db: AsyncSession, emp_id: int) -> Employee:
        employee = (await db.execute(
            select(Employee).where(Employee.emp_id == emp_id)
        )).scalar_one_or_none()
        if employee is None:
            raise NotFound("Employee not found")
        return employee

    @staticmethod
    async def list_employees(db: AsyncSession) -> List[Employee]:
        return list((await db.execute(select(Employee).order_by(Employee.emp_id))).scalars().all())

    @staticmethod
    async def _check_locations(reference: ReferenceStore, country_id: int, state_id: int, city_id: int, area_id: int):
        missing = await reference.missing_location_ids(country_id, state_id, city_id, area_id)
        if missing:
            raise ValidationError([f"{field} does not exist" for field in missing], "Invalid location")

    @staticmethod
    async def _flush_unique(db: AsyncSession, email: str):
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise PreconditionFailed(f"An employee with email {email} already exists")

    @staticmethod
    async def create_employee(db: AsyncSession, reference: ReferenceStore, req: EmployeeCreate) -> Employee:
        await EmployeeRepo._check_locations(reference, req.country_id, req.state_id, req.city_id, req.area_id)
        employee = Employee(
            emp_name=req.name,
            email=req.email,
            phone=req.phone,
            role=req.role,
            status=req.status,
            country_id=req.country_id,
            state_id=req.state_id,
            city_id=req.city_id,
            area_id=req.area_id,
            address=req.address,
            bio=req.bio,
            specialties=req.specialties,
            certifications=req.certifications,
            avatar=initials(req.name),
            join_date=utcnow()
        )
        db.add(employee)
        await EmployeeRepo._flush_unique(db, req.email)
        await db.commit()
        logger.info(f"Created employee {employee.emp_id} ({employee.emp_name})")
        return employee

    @staticmethod
    async def update_employee(db: AsyncSession, reference: ReferenceStore, emp_id: int,
                              req: EmployeeUpdate) -> Employee:
        employee = await EmployeeRepo.get_employee(db, emp_id)
        changes = {k: v for k, v in req.model_dump(exclude_unset=True).items() if v is not None}

        if any(attr in changes for attr in LOCATION_ATTRS):
            ids = [changes.get(attr, getattr(employee, attr)) for attr in LOCATION_ATTRS]
            await EmployeeRepo._check_locations(reference, *ids)

        name = changes.pop("name", None)
        if name:
            employee.emp_name = name.strip()
            employee.avatar = initials(employee.emp_name)
        for field, value in changes.items():
            setattr(employee, field, value)

        await ActivityRepo.record(
            db, emp_id, "profile_updated", "Profile information updated",
            metadata={"fields": sorted(req.model_dump(exclude_unset=True).keys())}
        )
        await EmployeeRepo._flush_unique(db, employee.email)
        await db.commit()
        return employee

    @staticmethod
    async def delete_employee(db: AsyncSession, emp_id: int):
        employee = await EmployeeRepo.get_employee(db, emp_id)
        await db.delete(employee)
        await db.commit()
        logger.info(f"Deleted employee {emp_id}")

    @staticmethod
    async def profile(db: AsyncSession, emp_id: int) -> Employee:
        """Employee with statistics rebuilt from services and payments"""
        await EmployeeRepo.get_employee(db, emp_id)
        employee = await ServiceTracker.recompute_employee_stats(db, emp_id)
        await db.commit()
        return employee
