# routes/payments.py - Earnings ledger: dashboard, filters, statistics and export
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from models.payments import (
    PaymentRead, PaymentCreate, PaymentStatusUpdate, DashboardResponse, EarningsBucket
)
from repository.ledger import EarningsLedger, render_csv
from utils.errors import ValidationError
from utils.timeutils import parse_date
from typing import Optional, List

router = APIRouter(prefix="/payments", tags=["Payments"])

TIME_FILTERS = ["all", "week", "month", "year"]


@router.get("/employee/{emp_id}/dashboard", response_model=DashboardResponse)
async def payment_dashboard(emp_id: int, db: AsyncSession = Depends(get_db)):
    """Latest payments, open projections and totals for a technician"""
    return await EarningsLedger.dashboard(db, emp_id)


@router.get("/employee/{emp_id}/filter", response_model=List[PaymentRead])
async def filter_payments(
    emp_id: int,
    time_filter: str = Query("all", alias="timeFilter"),
    status_filter: str = Query("all", alias="statusFilter"),
    db: AsyncSession = Depends(get_db)
):
    if time_filter not in TIME_FILTERS:
        raise ValidationError([f"timeFilter must be one of: {', '.join(TIME_FILTERS)}"])
    payments = await EarningsLedger.filter_payments(db, emp_id, time_filter, status_filter)
    return [PaymentRead.from_row(p) for p in payments]


@router.get("/employee/{emp_id}/statistics", response_model=List[EarningsBucket])
async def payment_statistics(
    emp_id: int,
    period: str = Query("month"),
    db: AsyncSession = Depends(get_db)
):
    return await EarningsLedger.earnings_time_series(db, emp_id, period)


@router.get("/employee/{emp_id}/export")
async def export_payments(
    emp_id: int,
    format: str = Query("json"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db)
):
    """Payments as JSON or a downloadable CSV"""
    if format not in ("json", "csv"):
        raise ValidationError(["format must be one of: json, csv"])
    start, end = parse_date(start_date), parse_date(end_date)
    errors = []
    if start_date and start is None:
        errors.append("startDate must be a valid date (YYYY-MM-DD)")
    if end_date and end is None:
        errors.append("endDate must be a valid date (YYYY-MM-DD)")
    if errors:
        raise ValidationError(errors)

    payments = await EarningsLedger.export_payments(db, emp_id, start, end)
    if format == "csv":
        return Response(
            content=render_csv(payments),
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename=payments-{emp_id}.csv"}
        )
    return [PaymentRead.from_row(p).model_dump(by_alias=True, mode="json") for p in payments]


@router.get("/{payment_id}", response_model=PaymentRead)
async def get_payment(payment_id: int, db: AsyncSession = Depends(get_db)):
    payment = await EarningsLedger.get_payment(db, payment_id)
    return PaymentRead.from_row(payment)


@router.post("", response_model=PaymentRead, status_code=status.HTTP_201_CREATED)
async def create_payment(req: PaymentCreate, db: AsyncSession = Depends(get_db)):
    """Record the payment for a completed service; repeats return the existing payment"""
    payment = await EarningsLedger.create_payment(db, req)
    return PaymentRead.from_row(payment)


@router.patch("/{payment_id}/status", response_model=PaymentRead)
async def update_payment_status(payment_id: int, req: PaymentStatusUpdate, db: AsyncSession = Depends(get_db)):
    payment = await EarningsLedger.update_payment_status(db, payment_id, req.status)
    return PaymentRead.from_row(payment)
