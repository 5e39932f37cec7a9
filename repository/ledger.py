# repository/ledger.py - Earnings ledger: payments, upcoming projections and aggregates
import io
import csv
import logging
from collections import OrderedDict
from datetime import datetime, date
from typing import Optional, List
from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from config import COMMISSION_RATE, DEFAULT_PAYMENT_METHOD
from models.payments import (
    DashboardResponse, DashboardStats, EarningsBucket, PaymentRead, UpcomingPaymentRead,
    LEDGER_PAYMENT_METHODS
)
from repository.activities import ActivityRepo
from repository.sequences import SequenceRepo
from tables.payments import Payment, UpcomingPayment
from tables.services import Service
from utils.errors import NotFound, PreconditionFailed
from utils.timeutils import utcnow, period_start, iso_millis

logger = logging.getLogger(__name__)

CSV_HEADER = ["PaymentID", "ServiceType", "Customer", "Amount", "Commission", "Status", "Date"]

# Booking payment methods collapse onto the three the ledger tracks
BOOKING_TO_LEDGER_METHOD = {
    "card": "credit_card",
    "online": "credit_card",
    "upi": "bank_transfer",
    "cash": "cash",
}

UPCOMING_STATUS_FOR_SERVICE = {
    "scheduled": "scheduled",
    "confirmed": "confirmed",
    "in_progress": "in-progress",
}


def ledger_method(method: Optional[str]) -> str:
    if method in LEDGER_PAYMENT_METHODS:
        return method
    return BOOKING_TO_LEDGER_METHOD.get(method or "", BOOKING_TO_LEDGER_METHOD[DEFAULT_PAYMENT_METHOD])


def _number(value) -> str:
    value = value or 0
    return str(int(value)) if float(value).is_integer() else str(value)


def render_csv(payments: List[Payment]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for payment in payments:
        writer.writerow([
            payment.payment_id,
            payment.service_type,
            payment.customer_name or "",
            _number(payment.amount),
            _number(payment.commission),
            payment.status,
            iso_millis(payment.date),
        ])
    return buffer.getvalue()


class EarningsLedger:

    @staticmethod
    async def payment_for_service(db: AsyncSession, service_id: int) -> Optional[Payment]:
        return (await db.execute(
            select(Payment).where(Payment.service_id == service_id)
        )).scalar_one_or_none()

    @staticmethod
    async def retire_upcoming(db: AsyncSession, service_id: int):
        await db.execute(delete(UpcomingPayment).where(UpcomingPayment.service_id == service_id))

    @staticmethod
    async def materialize_payment(
        db: AsyncSession,
        service: Service,
        commission: Optional[float] = None,
        bonus: Optional[float] = None,
        payment_method: Optional[str] = None,
        transaction_id: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Payment:
        """Turn a completed service into its single Payment and drop the projection.

        Runs inside the caller's transaction. A second call for the same service
        returns the first Payment; a concurrent duplicate insert is caught by the
        unique service_id index and resolved the same way.
        """
        if service.status != "completed":
            raise PreconditionFailed(f"Service {service.service_id} is not completed")

        existing = await EarningsLedger.payment_for_service(db, service.service_id)
        if existing is not None:
            await EarningsLedger.retire_upcoming(db, service.service_id)
            logger.info(f"Payment {existing.payment_id} already exists for service {service.service_id}")
            return existing

        amount = service.actual_earnings or 0
        hours = service.duration or 0
        if commission is None:
            commission = round(amount * COMMISSION_RATE, 2)
        payment = Payment(
            payment_id=await SequenceRepo.next_value(db, "payment"),
            emp_id=service.emp_id,
            service_id=service.service_id,
            customer_name=service.customer_name,
            customer_email=service.customer_email,
            customer_phone=service.customer_phone,
            service_type=service.service_type,
            amount=amount,
            commission=commission,
            base_rate=round(amount / hours, 2) if hours else 0,
            bonus=bonus or 0,
            hours=hours,
            date=service.completed_date or utcnow(),
            status="completed",
            payment_method=ledger_method(payment_method),
            transaction_id=transaction_id,
            notes=notes,
            created_at=utcnow()
        )
        try:
            async with db.begin_nested():
                db.add(payment)
        except IntegrityError:
            existing = await EarningsLedger.payment_for_service(db, service.service_id)
            if existing is None:
                raise
            logger.info(f"Concurrent payment for service {service.service_id} kept as {existing.payment_id}")
            return existing

        await EarningsLedger.retire_upcoming(db, service.service_id)
        await ActivityRepo.record(
            db,
            service.emp_id,
            "payment_received",
            f"Received payment of {_number(amount)} for {service.service_type} service",
            service.service_id,
            {"paymentId": payment.payment_id, "amount": amount}
        )
        logger.info(f"Materialized payment {payment.payment_id} for service {service.service_id}")
        return payment

    @staticmethod
    async def project_upcoming(
        db: AsyncSession,
        service: Service,
        estimated_amount: Optional[float] = None,
        notes: Optional[str] = None
    ) -> UpcomingPayment:
        """Create or refresh the expected-earnings projection for an open service"""
        upcoming = (await db.execute(
            select(UpcomingPayment).where(UpcomingPayment.service_id == service.service_id)
        )).scalar_one_or_none()
        if upcoming is None:
            upcoming = UpcomingPayment(
                upcoming_id=await SequenceRepo.next_value(db, "upcoming_payment"),
                emp_id=service.emp_id,
                service_id=service.service_id,
                created_at=utcnow()
            )
            db.add(upcoming)

        upcoming.customer_name = service.customer_name
        upcoming.customer_email = service.customer_email
        upcoming.customer_phone = service.customer_phone
        upcoming.service_type = service.service_type
        upcoming.estimated_amount = estimated_amount if estimated_amount is not None else (service.estimated_earnings or 0)
        upcoming.scheduled_date = service.scheduled_date
        upcoming.status = UPCOMING_STATUS_FOR_SERVICE.get(service.status, "scheduled")
        upcoming.hours = service.duration or 0
        upcoming.address = service.customer_address
        if notes is not None:
            upcoming.notes = notes
        return upcoming

    @staticmethod
    async def sync_upcoming_status(db: AsyncSession, service: Service):
        upcoming = (await db.execute(
            select(UpcomingPayment).where(UpcomingPayment.service_id == service.service_id)
        )).scalar_one_or_none()
        if upcoming is not None and service.status in UPCOMING_STATUS_FOR_SERVICE:
            upcoming.status = UPCOMING_STATUS_FOR_SERVICE[service.status]

    @staticmethod
    async def create_payment(db: AsyncSession, req) -> Payment:
        service = (await db.execute(
            select(Service).where(Service.service_id == req.service_id).with_for_update()
        )).scalar_one_or_none()
        if service is None:
            raise NotFound("Service not found")
        payment = await EarningsLedger.materialize_payment(
            db, service,
            commission=req.commission,
            bonus=req.bonus,
            payment_method=req.payment_method,
            transaction_id=req.transaction_id,
            notes=req.notes
        )
        await db.commit()
        return payment

    @staticmethod
    async def get_payment(db: AsyncSession, payment_id: int) -> Payment:
        payment = (await db.execute(
            select(Payment).where(Payment.payment_id == payment_id)
        )).scalar_one_or_none()
        if payment is None:
            raise NotFound("Payment not found")
        return payment

    @staticmethod
    async def update_payment_status(db: AsyncSession, payment_id: int, status: str) -> Payment:
        payment = await EarningsLedger.get_payment(db, payment_id)
        payment.status = status
        await db.commit()
        return payment

    @staticmethod
    async def payments_for_employee(
        db: AsyncSession,
        emp_id: int,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[Payment]:
        stmt = select(Payment).where(Payment.emp_id == emp_id)
        if since is not None:
            stmt = stmt.where(Payment.date >= since)
        if until is not None:
            stmt = stmt.where(Payment.date <= until)
        if status is not None:
            stmt = stmt.where(Payment.status == status)
        stmt = stmt.order_by(Payment.date.desc(), Payment.payment_id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return list((await db.execute(stmt)).scalars().all())

    @staticmethod
    async def upcoming_for_employee(db: AsyncSession, emp_id: int) -> List[UpcomingPayment]:
        stmt = (
            select(UpcomingPayment)
            .where(UpcomingPayment.emp_id == emp_id)
            .order_by(UpcomingPayment.scheduled_date, UpcomingPayment.upcoming_id)
        )
        return list((await db.execute(stmt)).scalars().all())

    @staticmethod
    async def dashboard(db: AsyncSession, emp_id: int) -> DashboardResponse:
        payments = await EarningsLedger.payments_for_employee(db, emp_id)
        upcoming = await EarningsLedger.upcoming_for_employee(db, emp_id)
        total_services = (await db.execute(
            select(func.count(Service.service_id)).where(
                Service.emp_id == emp_id,
                Service.status == "completed"
            )
        )).scalar_one()

        completed = [p for p in payments if p.status == "completed"]
        pending = [p for p in payments if p.status == "pending"]
        total_earnings = sum(p.amount for p in completed)

        stats = DashboardStats(
            total_earnings=total_earnings,
            pending_amount=sum(p.amount for p in pending),
            total_commission=sum(p.commission for p in completed),
            average_earning=total_earnings / len(completed) if completed else 0,
            completed_count=len(completed),
            pending_count=len(pending),
            total_services=total_services
        )
        methods = {method: 0 for method in LEDGER_PAYMENT_METHODS}
        for payment in completed:
            methods[payment.payment_method] = methods.get(payment.payment_method, 0) + 1

        return DashboardResponse(
            payments=[PaymentRead.from_row(p) for p in payments[:50]],
            upcoming_payments=[UpcomingPaymentRead.from_row(u) for u in upcoming],
            stats=stats,
            payment_methods=methods
        )

    @staticmethod
    async def filter_payments(db: AsyncSession, emp_id: int, time_filter: str = "all",
                              status_filter: str = "all") -> List[Payment]:
        return await EarningsLedger.payments_for_employee(
            db,
            emp_id,
            since=period_start(time_filter),
            status=None if status_filter == "all" else status_filter
        )

    @staticmethod
    async def earnings_time_series(db: AsyncSession, emp_id: int, period: str = "month") -> List[EarningsBucket]:
        """Completed earnings per calendar day over the look-back period, oldest first"""
        if period not in ("week", "month", "year"):
            period = "month"
        payments = await EarningsLedger.payments_for_employee(
            db, emp_id, since=period_start(period), status="completed"
        )

        buckets = OrderedDict()
        for payment in sorted(payments, key=lambda p: p.date):
            day: date = payment.date.date()
            bucket = buckets.setdefault(day, {"total_earnings": 0.0, "total_commission": 0.0, "count": 0})
            bucket["total_earnings"] += payment.amount
            bucket["total_commission"] += payment.commission
            bucket["count"] += 1

        return [
            EarningsBucket(
                date=day.isoformat(),
                year=day.year,
                month=day.month,
                day=day.day,
                **totals
            )
            for day, totals in buckets.items()
        ]

    @staticmethod
    async def export_payments(db: AsyncSession, emp_id: int, start_date: Optional[date] = None,
                              end_date: Optional[date] = None) -> List[Payment]:
        since = until = None
        if start_date and end_date:
            since = datetime.combine(start_date, datetime.min.time())
            until = datetime.combine(end_date, datetime.max.time())
        return await EarningsLedger.payments_for_employee(db, emp_id, since=since, until=until)

    @staticmethod
    async def get_upcoming(db: AsyncSession, upcoming_id: int) -> UpcomingPayment:
        upcoming = (await db.execute(
            select(UpcomingPayment).where(UpcomingPayment.upcoming_id == upcoming_id)
        )).scalar_one_or_none()
        if upcoming is None:
            raise NotFound("Upcoming payment not found")
        return upcoming

    @staticmethod
    async def create_upcoming(db: AsyncSession, req) -> UpcomingPayment:
        service = (await db.execute(
            select(Service).where(Service.service_id == req.service_id).with_for_update()
        )).scalar_one_or_none()
        if service is None:
            raise NotFound("Service not found")
        if service.status not in UPCOMING_STATUS_FOR_SERVICE:
            raise PreconditionFailed(f"Cannot project earnings for a {service.status} service")
        upcoming = await EarningsLedger.project_upcoming(db, service, req.estimated_amount, req.notes)
        await db.commit()
        return upcoming

    @staticmethod
    async def update_upcoming_status(db: AsyncSession, upcoming_id: int, status: str) -> UpcomingPayment:
        upcoming = await EarningsLedger.get_upcoming(db, upcoming_id)
        upcoming.status = status
        await db.commit()
        return upcoming

    @staticmethod
    async def delete_upcoming(db: AsyncSession, upcoming_id: int):
        upcoming = await EarningsLedger.get_upcoming(db, upcoming_id)
        await db.delete(upcoming)
        await db.commit()
