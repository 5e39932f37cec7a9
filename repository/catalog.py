# repository/catalog.py - Service catalog maintenance
import logging
from typing import List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from models.catalog import CatalogServiceCreate
from tables.catalog import CatalogService
from utils.errors import NotFound
from utils.timeutils import utcnow

logger = logging.getLogger(__name__)


class CatalogRepo:

    @staticmethod
    async def list_services(db: AsyncSession, active_only: bool = True) -> List[CatalogService]:
        stmt = select(CatalogService)
        if active_only:
            stmt = stmt.where(CatalogService.is_active.is_(True))
        return list((await db.execute(stmt.order_by(CatalogService.id))).scalars().all())

    @staticmethod
    async def get_service(db: AsyncSession, service_id: int) -> CatalogService:
        service = (await db.execute(
            select(CatalogService).where(CatalogService.id == service_id)
        )).scalar_one_or_none()
        if service is None:
            raise NotFound("Catalog service not found")
        return service

    @staticmethod
    async def create_service(db: AsyncSession, req: CatalogServiceCreate) -> CatalogService:
        service = CatalogService(**req.model_dump(), created_at=utcnow())
        db.add(service)
        await db.commit()
        logger.info(f"Added catalog service {service.id}: {service.title}")
        return service
