# routes/catalog.py - Bookable service catalog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from models.catalog import CatalogServiceCreate, CatalogServiceRead
from repository.catalog import CatalogRepo
from utils.auth import require_admin
from typing import List

router = APIRouter(prefix="/catalog", tags=["Catalog"])


@router.get("", response_model=List[CatalogServiceRead])
async def list_catalog(
    include_inactive: bool = Query(False, alias="includeInactive"),
    db: AsyncSession = Depends(get_db)
):
    return await CatalogRepo.list_services(db, active_only=not include_inactive)


@router.get("/{service_id}", response_model=CatalogServiceRead)
async def get_catalog_service(service_id: int, db: AsyncSession = Depends(get_db)):
    return await CatalogRepo.get_service(db, service_id)


@router.post("", response_model=CatalogServiceRead, status_code=status.HTTP_201_CREATED)
async def create_catalog_service(
    req: CatalogServiceCreate,
    db: AsyncSession = Depends(get_db),
    admin: dict = Depends(require_admin)
):
    return await CatalogRepo.create_service(db, req)
