# repository/activities.py - Append-only technician activity log
import logging
from typing import Optional, Dict, Any, List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from repository.sequences import SequenceRepo
from tables.activities import Activity
from utils.timeutils import utcnow

logger = logging.getLogger(__name__)

ACTIVITY_TYPES = [
    "service_completed", "rating_received", "service_scheduled",
    "payment_received", "profile_updated", "service_cancelled"
]


class ActivityRepo:

    @staticmethod
    async def record(
        db: AsyncSession,
        emp_id: int,
        activity_type: str,
        message: str,
        service_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Activity:
        """Add an activity entry to the caller's transaction; entries are never updated"""
        activity = Activity(
            activity_id=await SequenceRepo.next_value(db, "activity"),
            emp_id=emp_id,
            type=activity_type,
            message=message,
            service_id=service_id,
            meta=metadata,
            created_at=utcnow()
        )
        db.add(activity)
        logger.debug(f"Activity {activity.activity_id} for employee {emp_id}: {message}")
        return activity

    @staticmethod
    async def list_for_employee(db: AsyncSession, emp_id: int, limit: int = 20) -> List[Activity]:
        stmt = (
            select(Activity)
            .where(Activity.emp_id == emp_id)
            .order_by(Activity.created_at.desc(), Activity.activity_id.desc())
            .limit(limit)
        )
        return list((await db.execute(stmt)).scalars().all())
