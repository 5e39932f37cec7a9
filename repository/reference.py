# repository/reference.py - Read access to location and catalog reference data
import logging
from typing import Optional, List
from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import OperationalError, InterfaceError
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from tables.catalog import CatalogService
from tables.locations import Country, State, City, Area
from utils.errors import StorageUnavailable

logger = logging.getLogger(__name__)


class ReferenceStore:
    """Lookups the core performs against reference data; outages surface as StorageUnavailable"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _scalar(self, stmt):
        try:
            return (await self.db.execute(stmt)).scalar_one_or_none()
        except (OperationalError, InterfaceError) as e:
            logger.error(f"Reference store unavailable: {e}")
            raise StorageUnavailable("Reference data temporarily unavailable") from e

    async def get_catalog_service(self, service_id: int) -> Optional[CatalogService]:
        return await self._scalar(select(CatalogService).where(CatalogService.id == service_id))

    async def slots_for_service(self, service_id: int) -> Optional[List[str]]:
        """Service-specific slot labels, or None when the catalog defines none"""
        service = await self.get_catalog_service(service_id)
        if service is None or not service.time_slots:
            return None
        return list(service.time_slots)

    async def missing_location_ids(self, country_id: int, state_id: int, city_id: int, area_id: int) -> List[str]:
        """Names of the location id fields that point at nothing"""
        checks = [
            ("countryId", select(Country.country_id).where(Country.country_id == country_id)),
            ("stateId", select(State.state_id).where(State.state_id == state_id)),
            ("cityId", select(City.city_id).where(City.city_id == city_id)),
            ("areaId", select(Area.area_id).where(Area.area_id == area_id)),
        ]
        missing = []
        for field, stmt in checks:
            if await self._scalar(stmt) is None:
                missing.append(field)
        return missing


def get_reference_store(db: AsyncSession = Depends(get_db)) -> ReferenceStore:
    return ReferenceStore(db)
