# repository/services.py - Service work items: state machine, notes, ratings and technician stats
import logging
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, List, Tuple
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from models.services import (
    SERVICE_TYPES, ServiceCreate, ServiceUpdate, ServiceRead, ServiceDetails, NoteRead, NoteCreate,
    HistoryEntry, QuickActions, CustomerContact, CustomerInfo
)
from repository.activities import ActivityRepo
from repository.ledger import EarningsLedger
from repository.sequences import SequenceRepo
from repository.slots import SlotAllocator
from tables.bookings import Booking, ACTIVE_BOOKING_STATUSES, slot_key
from tables.employees import Employee
from tables.payments import Payment
from tables.services import Service, ServiceNote, ACTIVE_SERVICE_STATUSES, TERMINAL_SERVICE_STATUSES
from utils.errors import (
    ValidationError, NotFound, InvalidTransition, TerminalStateViolation, PreconditionFailed, SlotConflict
)
from utils.timeutils import utcnow, as_naive_utc

logger = logging.getLogger(__name__)

SERVICE_TRANSITIONS = {
    "scheduled": {"confirmed", "cancelled"},
    "confirmed": {"in_progress", "cancelled"},
    "in_progress": {"completed", "cancelled"},
}

# Forward path used when a booking drags its work item along
SERVICE_FORWARD = ["scheduled", "confirmed", "in_progress", "completed"]

NOTE_PREFIXES = {
    "confirmed": "Service confirmed",
    "in_progress": "Service started",
    "completed": "Service completed",
    "cancelled": "Service cancelled",
}

# Booking state a linked booking moves to when its service reaches the key state
BOOKING_STATUS_FOR_SERVICE = {
    "in_progress": "in_progress",
    "completed": "completed",
    "cancelled": "cancelled",
}

ACTIVITY_VERBS = {
    "confirmed": ("Confirmed", "service_scheduled"),
    "in_progress": ("Started", "service_scheduled"),
    "completed": ("Completed", "service_completed"),
    "cancelled": ("Cancelled", "service_cancelled"),
}


def average_rating(ratings: List[int]) -> float:
    """Mean rating rounded half-up to one decimal, 0 when nothing is rated"""
    if not ratings:
        return 0.0
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def service_type_for(category: Optional[str]) -> str:
    return category if category in SERVICE_TYPES else "Other"


class ServiceTracker:

    @staticmethod
    def check_transition(current: str, target: str):
        if current in TERMINAL_SERVICE_STATUSES:
            raise TerminalStateViolation(f"Service is already {current}")
        if target not in SERVICE_TRANSITIONS.get(current, set()):
            raise InvalidTransition(f"Cannot move service from {current} to {target}")

    @staticmethod
    async def get_service(db: AsyncSession, service_id: int, for_update: bool = False) -> Service:
        stmt = select(Service).where(Service.service_id == service_id)
        if for_update:
            # lock the linked booking before the service, matching the booking lifecycle
            booking_id = (await db.execute(
                select(Service.booking_id).where(Service.service_id == service_id)
            )).scalar_one_or_none()
            if booking_id is not None:
                await db.execute(select(Booking.id).where(Booking.id == booking_id).with_for_update())
            stmt = stmt.with_for_update()
        service = (await db.execute(stmt)).scalar_one_or_none()
        if service is None:
            raise NotFound("Service not found")
        return service

    @staticmethod
    async def linked_booking(db: AsyncSession, service: Service) -> Optional[Booking]:
        if service.booking_id is None:
            return None
        return (await db.execute(
            select(Booking).where(Booking.id == service.booking_id)
        )).scalar_one_or_none()

    @staticmethod
    async def _append_note(db: AsyncSession, service: Service, text: str, note_type: str = "general",
                           priority: str = "medium", created_by: str = "technician") -> ServiceNote:
        note = ServiceNote(
            note_id=await SequenceRepo.next_value(db, "service_note"),
            service_id=service.service_id,
            emp_id=service.emp_id,
            note=text,
            type=note_type,
            priority=priority,
            created_by=created_by,
            created_at=utcnow()
        )
        db.add(note)
        service.notes = text
        service.updated_at = note.created_at
        return note

    @staticmethod
    async def _apply(db: AsyncSession, service: Service, target: str, notes: Optional[str] = None,
                     generic: bool = False):
        """Move one step along the adjacency and write the note, activity and projection effects"""
        ServiceTracker.check_transition(service.status, target)
        now = utcnow()
        previous = service.status
        service.status = target
        service.updated_at = now

        if target != "completed":
            service.actual_earnings = None
            service.completed_date = None
        if target == "in_progress":
            service.started_at = now

        if target == "cancelled":
            service.payment_status = "cancelled"
            await EarningsLedger.retire_upcoming(db, service.service_id)
        else:
            await EarningsLedger.sync_upcoming_status(db, service)

        if notes:
            prefix = f"Status changed to {target}" if generic else NOTE_PREFIXES[target]
            await ServiceTracker._append_note(db, service, f"{prefix}: {notes}")

        verb, activity_type = ACTIVITY_VERBS[target]
        if generic:
            message = f"Updated {service.service_type} service status to {target} for {service.customer_name}"
        else:
            message = f"{verb} {service.service_type} service for {service.customer_name}"
        await ActivityRepo.record(db, service.emp_id, activity_type, message, service.service_id,
                                  {"from": previous, "to": target})
        logger.info(f"Service {service.service_id}: {previous} -> {target}")

    @staticmethod
    async def _finish(
        db: AsyncSession,
        service: Service,
        actual_earnings: Optional[float] = None,
        commission: Optional[float] = None,
        bonus: Optional[float] = None,
        payment_method: Optional[str] = None,
        completion_time: Optional[datetime] = None,
        notes: Optional[str] = None,
        generic: bool = False
    ) -> Payment:
        await ServiceTracker._apply(db, service, "completed", notes, generic)
        service.actual_earnings = actual_earnings if actual_earnings is not None else (service.estimated_earnings or 0)
        service.completed_date = as_naive_utc(completion_time) or utcnow()
        service.payment_status = "paid"
        payment = await EarningsLedger.materialize_payment(
            db, service, commission=commission, bonus=bonus, payment_method=payment_method
        )
        await ServiceTracker.recompute_employee_stats(db, service.emp_id)
        return payment

    @staticmethod
    async def _sync_linked_booking(db: AsyncSession, service: Service, notes: Optional[str] = None):
        """Carry a work-item transition made on the service up to its booking"""
        booking = await ServiceTracker.linked_booking(db, service)
        if booking is None or booking.status not in ACTIVE_BOOKING_STATUSES:
            return
        target = BOOKING_STATUS_FOR_SERVICE.get(service.status)
        if target is None or target == booking.status:
            return
        now = utcnow()
        previous = booking.status
        if target == "completed":
            booking.completed_at = now
            booking.payment_status = "paid"
            booking.payment_date = now
        elif target == "cancelled":
            booking.cancelled_at = now
            booking.cancellation_reason = notes
        booking.status = target
        booking.updated_at = now
        logger.info(f"Booking {booking.booking_id}: {previous} -> {target} with service {service.service_id}")

    @staticmethod
    async def advance_to(db: AsyncSession, service: Service, target: str):
        """Walk an open service forward until it reaches target; services already past it are left alone"""
        if service.status not in ACTIVE_SERVICE_STATUSES:
            return
        while SERVICE_FORWARD.index(service.status) < SERVICE_FORWARD.index(target):
            next_status = SERVICE_FORWARD[SERVICE_FORWARD.index(service.status) + 1]
            if next_status == "completed":
                break
            await ServiceTracker._apply(db, service, next_status)

    @staticmethod
    async def create_service(db: AsyncSession, req: ServiceCreate) -> Service:
        employee = (await db.execute(
            select(Employee.emp_id).where(Employee.emp_id == req.emp_id)
        )).scalar_one_or_none()
        if employee is None:
            raise NotFound("Employee not found")

        service = Service(
            emp_id=req.emp_id,
            title=req.title,
            description=req.description,
            service_type=req.service_type,
            status="scheduled",
            customer_name=req.customer.name,
            customer_address=req.customer.address,
            customer_phone=req.customer.phone,
            customer_email=req.customer.email.strip().lower() if req.customer.email else None,
            scheduled_date=req.scheduled_date,
            time=req.time,
            duration=req.duration,
            estimated_earnings=req.estimated_earnings,
            payment_status="pending",
            notes=req.notes,
            priority=req.priority,
            created_at=utcnow()
        )
        await ServiceTracker._schedule(db, service)
        await db.commit()
        return service

    @staticmethod
    async def create_for_booking(db: AsyncSession, booking: Booking, emp_id: int) -> Service:
        """Work item for an assigned booking; joins the caller's transaction"""
        service = Service(
            emp_id=emp_id,
            booking_id=booking.id,
            title=booking.service_title,
            description=booking.special_instructions or "",
            service_type=service_type_for(booking.service_category),
            status="scheduled",
            customer_name=booking.full_name,
            customer_address=booking.complete_address,
            customer_phone=booking.phone_number,
            customer_email=booking.email,
            scheduled_date=booking.preferred_date,
            time=booking.time_slot,
            duration=booking.service_duration or 1,
            estimated_earnings=booking.payment_amount or 0,
            payment_status="pending",
            created_at=utcnow()
        )
        try:
            async with db.begin_nested():
                db.add(service)
        except IntegrityError:
            logger.info(f"Booking {booking.booking_id} already has a service")
            raise InvalidTransition(f"Booking {booking.booking_id} already has a service")
        await ServiceTracker._schedule(db, service)
        return service

    @staticmethod
    async def _schedule(db: AsyncSession, service: Service):
        db.add(service)
        await db.flush()
        await EarningsLedger.project_upcoming(db, service)
        await ActivityRepo.record(
            db,
            service.emp_id,
            "service_scheduled",
            f"Scheduled {service.service_type} service for {service.customer_name}",
            service.service_id,
            {"scheduledDate": service.scheduled_date.isoformat(), "time": service.time}
        )
        logger.info(f"Scheduled service {service.service_id} for employee {service.emp_id}")

    @staticmethod
    async def transition(db: AsyncSession, service_id: int, target: str, notes: Optional[str] = None) -> Service:
        if target == "completed":
            service, _ = await ServiceTracker.complete(db, service_id, notes=notes)
            return service
        service = await ServiceTracker.get_service(db, service_id, for_update=True)
        await ServiceTracker._apply(db, service, target, notes)
        await ServiceTracker._sync_linked_booking(db, service, notes)
        await db.commit()
        return service

    @staticmethod
    async def confirm(db: AsyncSession, service_id: int, notes: Optional[str] = None) -> Service:
        return await ServiceTracker.transition(db, service_id, "confirmed", notes)

    @staticmethod
    async def start(db: AsyncSession, service_id: int, notes: Optional[str] = None) -> Service:
        return await ServiceTracker.transition(db, service_id, "in_progress", notes)

    @staticmethod
    async def cancel(db: AsyncSession, service_id: int, notes: Optional[str] = None) -> Service:
        return await ServiceTracker.transition(db, service_id, "cancelled", notes)

    @staticmethod
    async def update_status(db: AsyncSession, service_id: int, status: str, notes: Optional[str] = None) -> Service:
        service = await ServiceTracker.get_service(db, service_id, for_update=True)
        if status == "completed":
            await ServiceTracker._finish(db, service, notes=notes, generic=True)
        else:
            await ServiceTracker._apply(db, service, status, notes, generic=True)
        await ServiceTracker._sync_linked_booking(db, service, notes)
        await db.commit()
        return service

    @staticmethod
    async def complete(
        db: AsyncSession,
        service_id: int,
        actual_earnings: Optional[float] = None,
        commission: Optional[float] = None,
        bonus: Optional[float] = None,
        payment_method: Optional[str] = None,
        completion_time: Optional[datetime] = None,
        notes: Optional[str] = None
    ) -> Tuple[Service, Payment]:
        service = await ServiceTracker.get_service(db, service_id, for_update=True)
        payment = await ServiceTracker._finish(
            db, service, actual_earnings, commission, bonus, payment_method, completion_time, notes
        )
        await ServiceTracker._sync_linked_booking(db, service, notes)
        await db.commit()
        return service, payment

    @staticmethod
    async def reschedule(db: AsyncSession, service_id: int, scheduled_date: Optional[date],
                         time: Optional[str], notes: Optional[str] = None) -> Service:
        errors = []
        if scheduled_date is None:
            errors.append("scheduledDate is required")
        if not time or not time.strip():
            errors.append("time is required")
        if errors:
            raise ValidationError(errors, "Scheduled date and time are required")

        service = await ServiceTracker.get_service(db, service_id, for_update=True)
        booking = await ServiceTracker.linked_booking(db, service)
        if booking is not None:
            await ServiceTracker._move_booking_slot(db, booking, scheduled_date, time)

        previous = service.status
        service.status = "scheduled"
        service.scheduled_date = scheduled_date
        service.time = " ".join(time.split())
        service.actual_earnings = None
        service.completed_date = None
        service.started_at = None
        service.payment_status = "pending"
        service.updated_at = utcnow()

        await EarningsLedger.project_upcoming(db, service)
        if notes:
            await ServiceTracker._append_note(
                db, service, f"Service rescheduled to {scheduled_date:%m/%d/%Y} at {service.time}: {notes}"
            )
        await ActivityRepo.record(
            db,
            service.emp_id,
            "service_scheduled",
            f"Rescheduled {service.service_type} service for {service.customer_name}",
            service.service_id,
            {"scheduledDate": scheduled_date.isoformat(), "time": service.time, "from": previous}
        )
        if previous == "completed":
            await ServiceTracker.recompute_employee_stats(db, service.emp_id)
        await db.commit()
        logger.info(f"Service {service.service_id} rescheduled from {previous} to {scheduled_date} {service.time}")
        return service

    @staticmethod
    async def _move_booking_slot(db: AsyncSession, booking: Booking, scheduled_date: date, time: str):
        """Re-reserve a linked booking on the new date and slot, back in the assigned state"""
        if booking.status not in ACTIVE_BOOKING_STATUSES:
            raise PreconditionFailed(f"Booking {booking.booking_id} is {booking.status} and cannot be rescheduled")
        time_slot = " ".join(time.split())
        holder = await SlotAllocator.slot_holder(
            db, scheduled_date, time_slot, booking.city, booking.area, exclude_id=booking.id
        )
        if holder:
            logger.info(f"Slot {scheduled_date} {time_slot} in {booking.area}, {booking.city} already held by {holder}")
            raise SlotConflict()

        booking.preferred_date = scheduled_date
        booking.time_slot = time_slot
        booking.time_slot_key = slot_key(time_slot)
        booking.status = "assigned"
        booking.updated_at = utcnow()
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise SlotConflict()
        logger.info(f"Booking {booking.booking_id} moved to {scheduled_date} {time_slot}")

    @staticmethod
    async def add_note(db: AsyncSession, service_id: int, req: NoteCreate) -> ServiceNote:
        if not req.note or not req.note.strip():
            raise ValidationError(["note is required"], "Note content is required")
        service = await ServiceTracker.get_service(db, service_id, for_update=True)
        note = await ServiceTracker._append_note(db, service, req.note.strip(), req.type, req.priority)
        await db.commit()
        return note

    @staticmethod
    async def list_notes(db: AsyncSession, service_id: int) -> List[ServiceNote]:
        await ServiceTracker.get_service(db, service_id)
        stmt = (
            select(ServiceNote)
            .where(ServiceNote.service_id == service_id)
            .order_by(ServiceNote.created_at.desc(), ServiceNote.note_id.desc())
        )
        return list((await db.execute(stmt)).scalars().all())

    @staticmethod
    async def apply_rating(db: AsyncSession, service: Service, rating: int, feedback: Optional[str] = None):
        """Record a customer rating on a completed service; joins the caller's transaction"""
        if service.status != "completed":
            raise PreconditionFailed("Only completed services can be rated")
        service.rating = rating
        service.feedback = feedback
        service.updated_at = utcnow()
        await ActivityRepo.record(
            db,
            service.emp_id,
            "rating_received",
            f"Received {rating}-star rating from {service.customer_name}",
            service.service_id,
            {"rating": rating}
        )
        await ServiceTracker.recompute_employee_stats(db, service.emp_id)

    @staticmethod
    async def rate(db: AsyncSession, service_id: int, rating: int, feedback: Optional[str] = None) -> Service:
        service = await ServiceTracker.get_service(db, service_id, for_update=True)
        await ServiceTracker.apply_rating(db, service, rating, feedback)
        await db.commit()
        return service

    @staticmethod
    async def recompute_employee_stats(db: AsyncSession, emp_id: int) -> Optional[Employee]:
        """Rebuild the cached technician figures from services and the ledger"""
        employee = (await db.execute(
            select(Employee).where(Employee.emp_id == emp_id)
        )).scalar_one_or_none()
        if employee is None:
            return None

        employee.completed_jobs = (await db.execute(
            select(func.count(Service.service_id)).where(
                Service.emp_id == emp_id,
                Service.status == "completed"
            )
        )).scalar_one()
        ratings = (await db.execute(
            select(Service.rating).where(Service.emp_id == emp_id, Service.rating.is_not(None))
        )).scalars().all()
        employee.rating = average_rating(list(ratings))

        totals = (await db.execute(
            select(
                func.coalesce(func.sum(Payment.amount), 0),
                func.coalesce(func.sum(Payment.hours), 0)
            ).where(Payment.emp_id == emp_id, Payment.status == "completed")
        )).one()
        employee.total_earnings = float(totals[0])
        employee.hours_worked = float(totals[1])
        return employee

    @staticmethod
    async def details(db: AsyncSession, service_id: int) -> ServiceDetails:
        service = await ServiceTracker.get_service(db, service_id)
        notes = await ServiceTracker.list_notes(db, service_id)
        base = ServiceRead.from_row(service)
        return ServiceDetails(
            **base.model_dump(),
            note_history=[NoteRead.model_validate(n) for n in notes],
            special_requirements=[service.notes] if service.notes else [],
            customer_phone=service.customer_phone or "N/A"
        )

    @staticmethod
    async def history(db: AsyncSession, service_id: int) -> List[HistoryEntry]:
        """Earlier completed services for the same customer"""
        service = await ServiceTracker.get_service(db, service_id)
        if not service.customer_email:
            return []
        stmt = (
            select(Service)
            .where(
                Service.customer_email == service.customer_email,
                Service.service_id != service_id,
                Service.status == "completed"
            )
            .order_by(Service.scheduled_date.desc())
            .limit(10)
        )
        rows = (await db.execute(stmt)).scalars().all()
        return [
            HistoryEntry(
                service_id=s.service_id,
                service_type=s.service_type,
                scheduled_date=s.scheduled_date,
                status=s.status,
                estimated_earnings=s.estimated_earnings or 0
            )
            for s in rows
        ]

    @staticmethod
    async def quick_actions(db: AsyncSession, service_id: int) -> QuickActions:
        service = await ServiceTracker.get_service(db, service_id)
        return QuickActions(
            id=service.service_id,
            service_id=service.service_id,
            service_type=service.service_type,
            status=service.status,
            customer=service.customer_name,
            customer_phone=service.customer_phone,
            scheduled_date=service.scheduled_date,
            time=service.time,
            duration=service.duration or 0,
            estimated_earnings=service.estimated_earnings or 0,
            address=service.customer_address
        )

    @staticmethod
    async def customer_contact(db: AsyncSession, service_id: int) -> CustomerContact:
        service = await ServiceTracker.get_service(db, service_id)
        return CustomerContact(
            customer=CustomerInfo(
                name=service.customer_name,
                address=service.customer_address,
                phone=service.customer_phone,
                email=service.customer_email
            ),
            service_type=service.service_type
        )

    @staticmethod
    async def update_info(db: AsyncSession, service_id: int, req: ServiceUpdate) -> Service:
        service = await ServiceTracker.get_service(db, service_id, for_update=True)
        for field, value in req.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(service, field, value)
        service.updated_at = utcnow()
        if service.status in ACTIVE_SERVICE_STATUSES:
            await EarningsLedger.project_upcoming(db, service)
        await db.commit()
        return service

    @staticmethod
    async def list_for_employee(db: AsyncSession, emp_id: int, status: Optional[str] = None,
                                limit: int = 50) -> List[Service]:
        stmt = select(Service).where(Service.emp_id == emp_id)
        if status:
            stmt = stmt.where(Service.status == status)
        stmt = stmt.order_by(Service.scheduled_date.desc(), Service.service_id.desc()).limit(limit)
        return list((await db.execute(stmt)).scalars().all())
