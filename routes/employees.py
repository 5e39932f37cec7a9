# routes/employees.py - Technician profiles and activity feed
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from models.employees import EmployeeCreate, EmployeeUpdate, EmployeeRead, ActivityRead
from repository.activities import ActivityRepo
from repository.employees import EmployeeRepo
from repository.reference import ReferenceStore, get_reference_store
from utils.auth import require_admin
from typing import List

router = APIRouter(prefix="/employees", tags=["Employees"])


@router.get("", response_model=List[EmployeeRead])
async def list_employees(db: AsyncSession = Depends(get_db)):
    employees = await EmployeeRepo.list_employees(db)
    return [EmployeeRead.from_row(e) for e in employees]


@router.post("", response_model=EmployeeRead, status_code=status.HTTP_201_CREATED)
async def create_employee(
    req: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    reference: ReferenceStore = Depends(get_reference_store)
):
    employee = await EmployeeRepo.create_employee(db, reference, req)
    return EmployeeRead.from_row(employee)


@router.get("/{emp_id}", response_model=EmployeeRead)
async def get_employee(emp_id: int, db: AsyncSession = Depends(get_db)):
    """Profile with statistics rebuilt from services and payments"""
    employee = await EmployeeRepo.profile(db, emp_id)
    return EmployeeRead.from_row(employee)


@router.put("/{emp_id}", response_model=EmployeeRead)
async def update_employee(
    emp_id: int,
    req: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    reference: ReferenceStore = Depends(get_reference_store)
):
    employee = await EmployeeRepo.update_employee(db, reference, emp_id, req)
    return EmployeeRead.from_row(employee)


@router.delete("/{emp_id}")
async def delete_employee(
    emp_id: int,
    db: AsyncSession = Depends(get_db),
    admin: dict = Depends(require_admin)
):
    await EmployeeRepo.delete_employee(db, emp_id)
    return {"message": "Employee deleted successfully"}


@router.get("/{emp_id}/activities", response_model=List[ActivityRead])
async def employee_activities(
    emp_id: int,
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    await EmployeeRepo.get_employee(db, emp_id)
    activities = await ActivityRepo.list_for_employee(db, emp_id, limit)
    return [ActivityRead.from_row(a) for a in activities]
