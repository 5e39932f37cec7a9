# repository/slots.py - Slot availability and atomic reservation
import logging
from datetime import date
from typing import List, Optional, Tuple
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError, InterfaceError
from sqlalchemy.ext.asyncio import AsyncSession
from config import DEFAULT_TIME_SLOTS, DEFAULT_CURRENCY, DEFAULT_PAYMENT_METHOD
from models.base import EMAIL_RE, PHONE_RE
from models.bookings import BookingCreate, AvailabilityResponse, BOOKING_PAYMENT_METHODS
from repository.reference import ReferenceStore
from repository.sequences import SequenceRepo
from tables.bookings import Booking, ACTIVE_BOOKING_STATUSES, slot_key
from utils.errors import ValidationError, SlotConflict, StorageUnavailable
from utils.timeutils import parse_date, utcnow

logger = logging.getLogger(__name__)

LOCATION_FIELDS = [
    ("country", "location.country"),
    ("state", "location.state"),
    ("city", "location.city"),
    ("area", "location.area"),
    ("complete_address", "location.completeAddress"),
]


def _blank(value) -> bool:
    return value is None or not str(value).strip()


class SlotAllocator:

    @staticmethod
    async def booked_slots(db: AsyncSession, slot_date: date, city: Optional[str] = None,
                           area: Optional[str] = None) -> List[str]:
        """Slots held by non-terminal bookings for the date and location filter"""
        stmt = select(Booking.time_slot).where(
            Booking.preferred_date == slot_date,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES)
        )
        if city and city.strip():
            stmt = stmt.where(Booking.city_key == slot_key(city))
        if area and area.strip():
            stmt = stmt.where(Booking.area_key == slot_key(area))
        try:
            rows = (await db.execute(stmt)).scalars().all()
        except (OperationalError, InterfaceError) as e:
            raise StorageUnavailable() from e
        return sorted(set(rows))

    @staticmethod
    async def slot_holder(db: AsyncSession, slot_date: date, time_slot: str, city: str, area: str,
                          exclude_id: Optional[int] = None) -> Optional[str]:
        """Booking id of the active booking holding the slot, if any"""
        stmt = select(Booking.booking_id).where(
            Booking.preferred_date == slot_date,
            Booking.time_slot_key == slot_key(time_slot),
            Booking.city_key == slot_key(city),
            Booking.area_key == slot_key(area),
            Booking.status.in_(ACTIVE_BOOKING_STATUSES)
        )
        if exclude_id is not None:
            stmt = stmt.where(Booking.id != exclude_id)
        return (await db.execute(stmt.limit(1))).scalar_one_or_none()

    @staticmethod
    async def query_availability(
        db: AsyncSession,
        reference: ReferenceStore,
        date_value: Optional[str],
        city: Optional[str] = None,
        area: Optional[str] = None,
        service_id: Optional[int] = None
    ) -> AvailabilityResponse:
        slot_date = parse_date(date_value)
        if slot_date is None:
            raise ValidationError(["date must be a valid date (YYYY-MM-DD)"])

        degraded = False
        candidates = None
        if service_id is not None:
            try:
                candidates = await reference.slots_for_service(service_id)
            except StorageUnavailable:
                logger.warning(f"Catalog unavailable, using default slots for service {service_id}")
                degraded = True
        if not candidates:
            candidates = list(DEFAULT_TIME_SLOTS)

        try:
            booked = await SlotAllocator.booked_slots(db, slot_date, city, area)
        except StorageUnavailable:
            logger.warning(f"Booking store unavailable, reporting {slot_date} without booked slots")
            degraded = True
            booked = []

        booked_keys = {slot_key(slot) for slot in booked}
        available = [slot for slot in candidates if slot_key(slot) not in booked_keys]
        return AvailabilityResponse(
            slot_date=slot_date,
            available_slots=available,
            booked_slots=booked,
            suggested_slot=available[0] if available else None,
            degraded=degraded
        )

    @staticmethod
    def validate_reservation(req: BookingCreate) -> Tuple[date, List[str]]:
        """Collect every problem with a reservation request instead of stopping at the first"""
        errors = []

        schedule = req.schedule
        slot_date = parse_date(schedule.preferred_date)
        if _blank(schedule.preferred_date):
            errors.append("schedule.preferredDate is required")
        elif slot_date is None:
            errors.append("schedule.preferredDate must be a valid date (YYYY-MM-DD)")
        if _blank(schedule.time_slot):
            errors.append("schedule.timeSlot is required")

        contact = req.contact_info
        if _blank(contact.full_name):
            errors.append("contactInfo.fullName is required")
        if _blank(contact.email):
            errors.append("contactInfo.email is required")
        elif not EMAIL_RE.match(contact.email.strip()):
            errors.append("contactInfo.email is not a valid email address")
        if _blank(contact.phone_number):
            errors.append("contactInfo.phoneNumber is required")
        elif not PHONE_RE.match(contact.phone_number.strip()):
            errors.append("contactInfo.phoneNumber is not a valid phone number")

        for attr, label in LOCATION_FIELDS:
            if _blank(getattr(req.location, attr)):
                errors.append(f"{label} is required")

        if req.service_id is None:
            details = req.service_details
            if details is None or _blank(details.title) or details.price is None:
                errors.append("serviceId or serviceDetails with title and price is required")
            elif details.price < 0:
                errors.append("serviceDetails.price cannot be negative")

        if req.payment_method is not None and req.payment_method not in BOOKING_PAYMENT_METHODS:
            errors.append(f"paymentMethod must be one of: {', '.join(BOOKING_PAYMENT_METHODS)}")

        if req.special_instructions and len(req.special_instructions) > 500:
            errors.append("specialInstructions cannot exceed 500 characters")

        return slot_date, errors

    @staticmethod
    async def reserve(db: AsyncSession, reference: ReferenceStore, req: BookingCreate) -> Booking:
        """Create a pending booking unless an active one already holds the same slot"""
        slot_date, errors = SlotAllocator.validate_reservation(req)
        if errors:
            raise ValidationError(errors)

        # A catalog entry, when referenced, wins over any inline snapshot
        if req.service_id is not None:
            catalog = await reference.get_catalog_service(req.service_id)
            if catalog is None or not catalog.is_active:
                raise ValidationError(["serviceId does not match an active catalog service"])
            title, price, duration, category = catalog.title, catalog.price, catalog.duration, catalog.category
        else:
            details = req.service_details
            title, price, duration, category = details.title.strip(), details.price, details.duration, details.category

        time_slot = " ".join(req.schedule.time_slot.split())
        city = " ".join(req.location.city.split())
        area = " ".join(req.location.area.split())

        existing = await SlotAllocator.slot_holder(db, slot_date, time_slot, city, area)
        if existing:
            logger.info(f"Slot {slot_date} {time_slot} in {area}, {city} already held by {existing}")
            raise SlotConflict()

        seq = await SequenceRepo.next_value(db, "booking")
        now = utcnow()
        booking = Booking(
            booking_id=f"BK{now:%y%m%d}{seq:05d}",
            customer_id=req.customer_id,
            catalog_service_id=req.service_id,
            service_title=title,
            service_price=price,
            service_duration=duration,
            service_category=category,
            full_name=req.contact_info.full_name.strip(),
            phone_number=req.contact_info.phone_number.strip(),
            email=req.contact_info.email.strip().lower(),
            country=req.location.country.strip(),
            state=req.location.state.strip(),
            city=city,
            area=area,
            complete_address=req.location.complete_address.strip(),
            preferred_date=slot_date,
            time_slot=time_slot,
            time_slot_key=slot_key(time_slot),
            city_key=slot_key(city),
            area_key=slot_key(area),
            special_instructions=req.special_instructions,
            payment_method=req.payment_method or DEFAULT_PAYMENT_METHOD,
            payment_amount=price,
            payment_currency=DEFAULT_CURRENCY,
            payment_status="pending",
            status="pending",
            created_at=now
        )
        db.add(booking)
        try:
            # the partial unique index is the final word under concurrent writers
            await db.flush()
        except IntegrityError:
            await db.rollback()
            logger.info(f"Concurrent reservation won slot {slot_date} {time_slot} in {area}, {city}")
            raise SlotConflict()

        await db.commit()
        await db.refresh(booking)
        logger.info(f"Reserved {booking.booking_id} for {slot_date} {time_slot} in {area}, {city}")
        return booking
