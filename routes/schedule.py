# routes/schedule.py - Technician calendar views
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from models.services import ScheduleResponse, ScheduleStats, ServiceRead
from repository.schedule import ScheduleRepo
from typing import Optional, List

router = APIRouter(prefix="/schedule", tags=["Schedule"])


@router.get("/employee/{emp_id}", response_model=ScheduleResponse)
async def employee_schedule(
    emp_id: int,
    date: Optional[str] = Query(None),
    view: str = Query("week"),
    status_filter: Optional[str] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db)
):
    """Services in the day, week (Sunday first) or month around `date`"""
    return await ScheduleRepo.employee_schedule(db, emp_id, date, view, status_filter)


@router.get("/employee/{emp_id}/stats", response_model=ScheduleStats)
async def schedule_stats(emp_id: int, db: AsyncSession = Depends(get_db)):
    return await ScheduleRepo.stats(db, emp_id)


@router.get("/employee/{emp_id}/today", response_model=List[ServiceRead])
async def today_schedule(emp_id: int, db: AsyncSession = Depends(get_db)):
    services = await ScheduleRepo.today(db, emp_id)
    return [ServiceRead.from_row(s) for s in services]


@router.get("/employee/{emp_id}/upcoming", response_model=List[ServiceRead])
async def upcoming_schedule(
    emp_id: int,
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    services = await ScheduleRepo.upcoming(db, emp_id, limit)
    return [ServiceRead.from_row(s) for s in services]
