# repository/sequences.py - Atomic id allocation backed by the sequences table
import logging
from sqlalchemy import update, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from config import SEQUENCE_STARTS
from tables.sequences import Sequence

logger = logging.getLogger(__name__)


class SequenceRepo:

    @staticmethod
    async def next_value(db: AsyncSession, name: str) -> int:
        """Increment-and-return in one statement; concurrent callers never share a value"""
        stmt = (
            update(Sequence)
            .where(Sequence.name == name)
            .values(value=Sequence.value + 1)
            .returning(Sequence.value)
        )
        value = (await db.execute(stmt)).scalar_one_or_none()
        if value is not None:
            return value

        # First use of this counter: seed it, tolerating a concurrent seeder
        try:
            async with db.begin_nested():
                db.add(Sequence(name=name, value=SEQUENCE_STARTS.get(name, 0)))
        except IntegrityError:
            logger.info(f"Sequence {name} seeded concurrently")
        return (await db.execute(stmt)).scalar_one()

    @staticmethod
    async def seed(db: AsyncSession):
        """Create any missing counter rows"""
        existing = set((await db.execute(select(Sequence.name))).scalars().all())
        for name, start in SEQUENCE_STARTS.items():
            if name not in existing:
                db.add(Sequence(name=name, value=start))
        await db.commit()
