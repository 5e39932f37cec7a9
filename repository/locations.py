# repository/locations.py - CRUD passthrough for the country/state/city/area hierarchy
import logging
from typing import Optional, List, Dict, Any
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError, InterfaceError
from sqlalchemy.ext.asyncio import AsyncSession
from tables.locations import Country, State, City, Area
from utils.errors import ValidationError, NotFound, PreconditionFailed, StorageUnavailable

logger = logging.getLogger(__name__)

# level -> (table, primary key, parent key, parent table, label)
LEVELS = {
    "country": (Country, "country_id", None, None, "Country"),
    "state": (State, "state_id", "country_id", Country, "State"),
    "city": (City, "city_id", "state_id", State, "City"),
    "area": (Area, "area_id", "city_id", City, "Area"),
}


class LocationRepo:

    @staticmethod
    async def _execute(db: AsyncSession, stmt):
        try:
            return await db.execute(stmt)
        except (OperationalError, InterfaceError) as e:
            logger.error(f"Location store unavailable: {e}")
            raise StorageUnavailable() from e

    @staticmethod
    async def list_level(db: AsyncSession, level: str, parent_id: Optional[int] = None) -> List[Any]:
        table, pk, parent_key, _, _ = LEVELS[level]
        stmt = select(table)
        if parent_key and parent_id is not None:
            stmt = stmt.where(getattr(table, parent_key) == parent_id)
        stmt = stmt.order_by(getattr(table, f"{level}_name"))
        return list((await LocationRepo._execute(db, stmt)).scalars().all())

    @staticmethod
    async def get_level(db: AsyncSession, level: str, row_id: int):
        table, pk, _, _, label = LEVELS[level]
        row = (await LocationRepo._execute(
            db, select(table).where(getattr(table, pk) == row_id)
        )).scalar_one_or_none()
        if row is None:
            raise NotFound(f"{label} not found")
        return row

    @staticmethod
    async def _check_parent(db: AsyncSession, level: str, data: Dict[str, Any]):
        _, _, parent_key, parent_table, _ = LEVELS[level]
        if not parent_key or parent_key not in data:
            return
        exists = (await LocationRepo._execute(
            db, select(getattr(parent_table, parent_key)).where(getattr(parent_table, parent_key) == data[parent_key])
        )).scalar_one_or_none()
        if exists is None:
            field = "".join(w.capitalize() if i else w for i, w in enumerate(parent_key.split("_")))
            raise ValidationError([f"{field} does not exist"])

    @staticmethod
    async def _commit(db: AsyncSession, label: str):
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise PreconditionFailed(f"{label} already exists")

    @staticmethod
    async def create_level(db: AsyncSession, level: str, data: Dict[str, Any]):
        table, _, _, _, label = LEVELS[level]
        await LocationRepo._check_parent(db, level, data)
        row = table(**data)
        db.add(row)
        await LocationRepo._commit(db, label)
        logger.info(f"Created {level} {data.get(f'{level}_name')}")
        return row

    @staticmethod
    async def update_level(db: AsyncSession, level: str, row_id: int, data: Dict[str, Any]):
        row = await LocationRepo.get_level(db, level, row_id)
        await LocationRepo._check_parent(db, level, data)
        for field, value in data.items():
            setattr(row, field, value)
        await LocationRepo._commit(db, LEVELS[level][4])
        return row

    @staticmethod
    async def delete_level(db: AsyncSession, level: str, row_id: int):
        row = await LocationRepo.get_level(db, level, row_id)
        await db.delete(row)
        await db.commit()
        logger.info(f"Deleted {level} {row_id}")
