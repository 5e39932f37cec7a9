# tables/bookings.py - Customer bookings with the active-slot admission index
from sqlalchemy import Column, Integer, DateTime, Date, String, Float, ForeignKey, Text, Index, text
from config import Base
from utils.timeutils import utcnow

ACTIVE_BOOKING_STATUSES = ("pending", "confirmed", "assigned", "in_progress")
TERMINAL_BOOKING_STATUSES = ("completed", "cancelled")

_ACTIVE_SLOT_WHERE = text(
    "status IN ({})".format(", ".join(f"'{s}'" for s in ACTIVE_BOOKING_STATUSES))
)


def slot_key(value) -> str:
    """Case- and whitespace-insensitive form of a slot label or place name"""
    return " ".join(str(value or "").split()).lower()


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(String(32), unique=True, nullable=False, index=True)
    customer_id = Column(Integer, nullable=True, index=True)  # None for guest bookings
    catalog_service_id = Column(Integer, ForeignKey("catalog_services.id", ondelete="SET NULL"), nullable=True)

    # Service snapshot (copied from the catalog, or captured inline for temporary offers)
    service_title = Column(String(200), nullable=False)
    service_price = Column(Float, nullable=False)
    service_duration = Column(Float, nullable=True)
    service_category = Column(String(100), nullable=True)

    # Contact info
    full_name = Column(String(200), nullable=False)
    phone_number = Column(String(30), nullable=False, index=True)
    email = Column(String(200), nullable=False, index=True)

    # Location
    country = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    city = Column(String(100), nullable=False, index=True)
    area = Column(String(100), nullable=False, index=True)
    complete_address = Column(Text, nullable=False)

    # Schedule
    preferred_date = Column(Date, nullable=False, index=True)
    time_slot = Column(String(50), nullable=False)
    special_instructions = Column(String(500), nullable=True)

    # Normalized admission tuple, compared instead of the display values
    time_slot_key = Column(String(50), nullable=False)
    city_key = Column(String(100), nullable=False)
    area_key = Column(String(100), nullable=False)

    # Payment sub-record
    payment_method = Column(String(20), nullable=False, default="cash")  # online, cash, card, upi
    payment_amount = Column(Float, nullable=False)
    payment_currency = Column(String(10), nullable=False, default="INR")
    payment_status = Column(String(20), nullable=False, default="pending")  # pending, paid, failed, refunded
    transaction_id = Column(String(100), nullable=True)
    payment_date = Column(DateTime, nullable=True)

    status = Column(String(20), nullable=False, default="pending", index=True)
    assigned_emp_id = Column(Integer, nullable=True, index=True)
    cancellation_reason = Column(String(200), nullable=True)

    # Rating and review fields
    rating_score = Column(Integer, nullable=True)
    rating_review = Column(Text, nullable=True)
    rated_at = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    __table_args__ = (
        # At most one non-terminal booking per (date, slot, city, area)
        Index(
            "uq_bookings_active_slot",
            "preferred_date", "time_slot_key", "city_key", "area_key",
            unique=True,
            sqlite_where=_ACTIVE_SLOT_WHERE,
            postgresql_where=_ACTIVE_SLOT_WHERE,
        ),
    )
