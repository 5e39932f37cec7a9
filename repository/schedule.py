# repository/schedule.py - Technician schedule windows and counts
import calendar
from datetime import date, timedelta
from typing import Optional, List, Tuple, Dict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from models.services import SERVICE_STATUSES, ScheduleResponse, ScheduleStats, ServiceRead
from tables.services import Service, ACTIVE_SERVICE_STATUSES
from utils.errors import ValidationError
from utils.timeutils import utcnow, parse_date

SCHEDULE_VIEWS = ["day", "week", "month"]


def schedule_window(anchor: date, view: str) -> Tuple[date, date]:
    if view == "day":
        return anchor, anchor
    if view == "month":
        last = calendar.monthrange(anchor.year, anchor.month)[1]
        return anchor.replace(day=1), anchor.replace(day=last)
    # weeks start on Sunday
    start = anchor - timedelta(days=(anchor.weekday() + 1) % 7)
    return start, start + timedelta(days=6)


def count_statuses(services: List[Service]) -> Dict[str, int]:
    counts = {status: 0 for status in SERVICE_STATUSES}
    for service in services:
        counts[service.status] = counts.get(service.status, 0) + 1
    return counts


class ScheduleRepo:

    @staticmethod
    async def employee_schedule(
        db: AsyncSession,
        emp_id: int,
        date_value: Optional[str] = None,
        view: str = "week",
        status: Optional[str] = None
    ) -> ScheduleResponse:
        if view not in SCHEDULE_VIEWS:
            raise ValidationError([f"view must be one of: {', '.join(SCHEDULE_VIEWS)}"])
        anchor = utcnow().date()
        if date_value:
            anchor = parse_date(date_value)
            if anchor is None:
                raise ValidationError(["date must be a valid date (YYYY-MM-DD)"])

        start, end = schedule_window(anchor, view)
        stmt = (
            select(Service)
            .where(
                Service.emp_id == emp_id,
                Service.scheduled_date >= start,
                Service.scheduled_date <= end
            )
            .order_by(Service.scheduled_date, Service.time, Service.service_id)
        )
        services = list((await db.execute(stmt)).scalars().all())
        counts = count_statuses(services)
        if status and status != "all":
            services = [s for s in services if s.status == status]

        return ScheduleResponse(
            services=[ServiceRead.from_row(s) for s in services],
            status_counts=counts,
            start_date=start,
            end_date=end,
            view=view
        )

    @staticmethod
    async def today(db: AsyncSession, emp_id: int) -> List[Service]:
        stmt = (
            select(Service)
            .where(
                Service.emp_id == emp_id,
                Service.scheduled_date == utcnow().date(),
                Service.status.in_(ACTIVE_SERVICE_STATUSES)
            )
            .order_by(Service.time, Service.service_id)
        )
        return list((await db.execute(stmt)).scalars().all())

    @staticmethod
    async def upcoming(db: AsyncSession, emp_id: int, limit: int = 10) -> List[Service]:
        today = utcnow().date()
        stmt = (
            select(Service)
            .where(
                Service.emp_id == emp_id,
                Service.scheduled_date > today,
                Service.scheduled_date <= today + timedelta(days=7),
                Service.status.in_(("scheduled", "confirmed"))
            )
            .order_by(Service.scheduled_date, Service.time, Service.service_id)
            .limit(limit)
        )
        return list((await db.execute(stmt)).scalars().all())

    @staticmethod
    async def stats(db: AsyncSession, emp_id: int) -> ScheduleStats:
        stmt = select(Service).where(
            Service.emp_id == emp_id,
            Service.scheduled_date >= utcnow().date()
        )
        services = list((await db.execute(stmt)).scalars().all())
        return ScheduleStats(
            total=len(services),
            status_counts=count_statuses(services),
            estimated_earnings=sum(s.estimated_earnings or 0 for s in services)
        )
