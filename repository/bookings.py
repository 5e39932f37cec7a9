# repository/bookings.py - Booking lifecycle: transitions, cascades, reviews and reads
import logging
from typing import Optional, List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from repository.ledger import EarningsLedger, ledger_method
from repository.services import ServiceTracker
from tables.bookings import Booking, TERMINAL_BOOKING_STATUSES, slot_key
from tables.employees import Employee
from tables.services import Service, ACTIVE_SERVICE_STATUSES, TERMINAL_SERVICE_STATUSES
from utils.errors import (
    ValidationError, NotFound, InvalidTransition, TerminalStateViolation, PreconditionFailed
)
from utils.timeutils import utcnow, parse_date

logger = logging.getLogger(__name__)

BOOKING_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"assigned", "cancelled"},
    "assigned": {"in_progress", "cancelled"},
    "in_progress": {"completed", "cancelled"},
}


class BookingRepo:

    @staticmethod
    def check_transition(current: str, target: str):
        if current in TERMINAL_BOOKING_STATUSES:
            raise TerminalStateViolation(f"Booking is already {current}")
        if target not in BOOKING_TRANSITIONS.get(current, set()):
            raise InvalidTransition(f"Cannot move booking from {current} to {target}")

    @staticmethod
    async def get(db: AsyncSession, booking_id: str, for_update: bool = False) -> Booking:
        stmt = select(Booking).where(Booking.booking_id == booking_id)
        if for_update:
            stmt = stmt.with_for_update()
        booking = (await db.execute(stmt)).scalar_one_or_none()
        if booking is None:
            raise NotFound("Booking not found")
        return booking

    @staticmethod
    async def list_bookings(
        db: AsyncSession,
        status: Optional[str] = None,
        date_value: Optional[str] = None,
        city: Optional[str] = None,
        area: Optional[str] = None,
        limit: int = 50
    ) -> List[Booking]:
        stmt = select(Booking)
        if status:
            stmt = stmt.where(Booking.status == status)
        if date_value:
            slot_date = parse_date(date_value)
            if slot_date is None:
                raise ValidationError(["date must be a valid date (YYYY-MM-DD)"])
            stmt = stmt.where(Booking.preferred_date == slot_date)
        if city:
            stmt = stmt.where(Booking.city_key == slot_key(city))
        if area:
            stmt = stmt.where(Booking.area_key == slot_key(area))
        stmt = stmt.order_by(Booking.created_at.desc(), Booking.id.desc()).limit(limit)
        return list((await db.execute(stmt)).scalars().all())

    @staticmethod
    async def list_for_customer(db: AsyncSession, customer_id: int) -> List[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.customer_id == customer_id)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
        )
        return list((await db.execute(stmt)).scalars().all())

    @staticmethod
    async def linked_service(db: AsyncSession, booking: Booking, for_update: bool = False) -> Optional[Service]:
        stmt = select(Service).where(Service.booking_id == booking.id)
        if for_update:
            stmt = stmt.with_for_update()
        return (await db.execute(stmt)).scalar_one_or_none()

    @staticmethod
    async def transition(
        db: AsyncSession,
        booking_id: str,
        target: str,
        actor: Optional[str] = None,
        emp_id: Optional[int] = None,
        reason: Optional[str] = None,
        transaction_id: Optional[str] = None
    ) -> Booking:
        """Apply one lifecycle step and its cascades in a single transaction"""
        # booking row first, then its service; the service endpoints lock in the same order
        booking = await BookingRepo.get(db, booking_id, for_update=True)
        BookingRepo.check_transition(booking.status, target)
        previous = booking.status
        now = utcnow()

        if target == "assigned":
            await BookingRepo._assign(db, booking, emp_id)
        elif target == "in_progress":
            service = await BookingRepo.linked_service(db, booking, for_update=True)
            if service is not None:
                if service.status in TERMINAL_SERVICE_STATUSES:
                    raise PreconditionFailed(f"Linked service was {service.status}")
                await ServiceTracker.advance_to(db, service, "in_progress")
        elif target == "cancelled":
            booking.cancellation_reason = reason
            booking.cancelled_at = now
            service = await BookingRepo.linked_service(db, booking, for_update=True)
            if service is not None and service.status in ACTIVE_SERVICE_STATUSES:
                await ServiceTracker._apply(db, service, "cancelled", reason)
        elif target == "completed":
            booking.completed_at = now
            booking.payment_status = "paid"
            booking.payment_date = now
            if transaction_id:
                booking.transaction_id = transaction_id
            await BookingRepo._complete_service(db, booking)

        booking.status = target
        booking.updated_at = now
        await db.commit()
        logger.info(f"Booking {booking.booking_id}: {previous} -> {target} by {actor or 'system'}")
        return booking

    @staticmethod
    async def _assign(db: AsyncSession, booking: Booking, emp_id: Optional[int]):
        if emp_id is None:
            raise ValidationError(["empId is required to assign a booking"])
        employee = (await db.execute(
            select(Employee.emp_id).where(Employee.emp_id == emp_id)
        )).scalar_one_or_none()
        if employee is None:
            raise NotFound("Employee not found")
        booking.assigned_emp_id = emp_id
        await ServiceTracker.create_for_booking(db, booking, emp_id)

    @staticmethod
    async def _complete_service(db: AsyncSession, booking: Booking):
        service = await BookingRepo.linked_service(db, booking, for_update=True)
        if service is None:
            return
        if service.status == "cancelled":
            raise PreconditionFailed("Linked service was cancelled")
        if service.status == "completed":
            await EarningsLedger.materialize_payment(db, service)
            return
        await ServiceTracker.advance_to(db, service, "in_progress")
        await ServiceTracker._finish(
            db,
            service,
            actual_earnings=booking.payment_amount,
            payment_method=ledger_method(booking.payment_method),
            completion_time=booking.completed_at
        )

    @staticmethod
    async def add_review(db: AsyncSession, booking_id: str, score: int, review: Optional[str] = None) -> Booking:
        if not 1 <= score <= 5:
            raise ValidationError(["score must be between 1 and 5"])
        booking = await BookingRepo.get(db, booking_id, for_update=True)
        if booking.status != "completed":
            raise PreconditionFailed("Only completed bookings can be reviewed")
        if booking.rating_score is not None:
            raise PreconditionFailed("Booking has already been reviewed")

        now = utcnow()
        booking.rating_score = score
        booking.rating_review = review
        booking.rated_at = now
        booking.updated_at = now

        service = await BookingRepo.linked_service(db, booking, for_update=True)
        if service is not None and service.status == "completed":
            await ServiceTracker.apply_rating(db, service, score, review)
        await db.commit()
        logger.info(f"Booking {booking.booking_id} reviewed with {score} stars")
        return booking

    @staticmethod
    async def delete(db: AsyncSession, booking_id: str):
        booking = await BookingRepo.get(db, booking_id, for_update=True)
        await db.delete(booking)
        await db.commit()
        logger.info(f"Booking {booking_id} deleted")
