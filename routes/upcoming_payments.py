# routes/upcoming_payments.py - Expected earnings for open services
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from models.payments import UpcomingPaymentRead, UpcomingPaymentCreate, UpcomingStatusUpdate
from repository.ledger import EarningsLedger
from utils.auth import require_admin
from typing import List

router = APIRouter(prefix="/upcoming-payments", tags=["Upcoming Payments"])


@router.get("/employee/{emp_id}", response_model=List[UpcomingPaymentRead])
async def employee_upcoming(emp_id: int, db: AsyncSession = Depends(get_db)):
    upcoming = await EarningsLedger.upcoming_for_employee(db, emp_id)
    return [UpcomingPaymentRead.from_row(u) for u in upcoming]


@router.post("", response_model=UpcomingPaymentRead, status_code=status.HTTP_201_CREATED)
async def create_upcoming(req: UpcomingPaymentCreate, db: AsyncSession = Depends(get_db)):
    upcoming = await EarningsLedger.create_upcoming(db, req)
    return UpcomingPaymentRead.from_row(upcoming)


@router.patch("/{upcoming_id}/status", response_model=UpcomingPaymentRead)
async def update_upcoming_status(upcoming_id: int, req: UpcomingStatusUpdate, db: AsyncSession = Depends(get_db)):
    upcoming = await EarningsLedger.update_upcoming_status(db, upcoming_id, req.status)
    return UpcomingPaymentRead.from_row(upcoming)


@router.delete("/{upcoming_id}")
async def delete_upcoming(
    upcoming_id: int,
    db: AsyncSession = Depends(get_db),
    admin: dict = Depends(require_admin)
):
    await EarningsLedger.delete_upcoming(db, upcoming_id)
    return {"message": "Upcoming payment deleted successfully"}
