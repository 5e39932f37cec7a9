# routes/locations.py - Country / state / city / area reference data
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from models.locations import (
    CountryCreate, CountryRead, StateCreate, StateRead, CityCreate, CityRead, AreaCreate, AreaRead
)
from repository.locations import LocationRepo
from utils.rate_limiter import rate_limit
from typing import Optional, List

router = APIRouter(tags=["Locations"], dependencies=[Depends(rate_limit)])


# Countries
@router.get("/countries", response_model=List[CountryRead])
async def list_countries(db: AsyncSession = Depends(get_db)):
    return await LocationRepo.list_level(db, "country")


@router.get("/countries/{country_id}", response_model=CountryRead)
async def get_country(country_id: int, db: AsyncSession = Depends(get_db)):
    return await LocationRepo.get_level(db, "country", country_id)


@router.post("/countries", response_model=CountryRead, status_code=status.HTTP_201_CREATED)
async def create_country(req: CountryCreate, db: AsyncSession = Depends(get_db)):
    return await LocationRepo.create_level(db, "country", req.model_dump())


@router.put("/countries/{country_id}", response_model=CountryRead)
async def update_country(country_id: int, req: CountryCreate, db: AsyncSession = Depends(get_db)):
    return await LocationRepo.update_level(db, "country", country_id, req.model_dump())


@router.delete("/countries/{country_id}")
async def delete_country(country_id: int, db: AsyncSession = Depends(get_db)):
    await LocationRepo.delete_level(db, "country", country_id)
    return {"message": "Country deleted successfully"}


# States
@router.get("/states", response_model=List[StateRead])
async def list_states(
    country_id: Optional[int] = Query(None, alias="countryId"),
    db: AsyncSession = Depends(get_db)
):
    return await LocationRepo.list_level(db, "state", country_id)


@router.get("/states/{state_id}", response_model=StateRead)
async def get_state(state_id: int, db: AsyncSession = Depends(get_db)):
    return await LocationRepo.get_level(db, "state", state_id)


@router.post("/states", response_model=StateRead, status_code=status.HTTP_201_CREATED)
async def create_state(req: StateCreate, db: AsyncSession = Depends(get_db)):
    return await LocationRepo.create_level(db, "state", req.model_dump())


@router.put("/states/{state_id}", response_model=StateRead)
async def update_state(state_id: int, req: StateCreate, db: AsyncSession = Depends(get_db)):
    return await LocationRepo.update_level(db, "state", state_id, req.model_dump())


@router.delete("/states/{state_id}")
async def delete_state(state_id: int, db: AsyncSession = Depends(get_db)):
    await LocationRepo.delete_level(db, "state", state_id)
    return {"message": "State deleted successfully"}


# Cities
@router.get("/cities", response_model=List[CityRead])
async def list_cities(
    state_id: Optional[int] = Query(None, alias="stateId"),
    db: AsyncSession = Depends(get_db)
):
    return await LocationRepo.list_level(db, "city", state_id)


@router.get("/cities/{city_id}", response_model=CityRead)
async def get_city(city_id: int, db: AsyncSession = Depends(get_db)):
    return await LocationRepo.get_level(db, "city", city_id)


@router.post("/cities", response_model=CityRead, status_code=status.HTTP_201_CREATED)
async def create_city(req: CityCreate, db: AsyncSession = Depends(get_db)):
    return await LocationRepo.create_level(db, "city", req.model_dump())


@router.put("/cities/{city_id}", response_model=CityRead)
async def update_city(city_id: int, req: CityCreate, db: AsyncSession = Depends(get_db)):
    return await LocationRepo.update_level(db, "city", city_id, req.model_dump())


@router.delete("/cities/{city_id}")
async def delete_city(city_id: int, db: AsyncSession = Depends(get_db)):
    await LocationRepo.delete_level(db, "city", city_id)
    return {"message": "City deleted successfully"}


# Areas
@router.get("/areas", response_model=List[AreaRead])
async def list_areas(
    city_id: Optional[int] = Query(None, alias="cityId"),
    db: AsyncSession = Depends(get_db)
):
    return await LocationRepo.list_level(db, "area", city_id)


@router.get("/areas/{area_id}", response_model=AreaRead)
async def get_area(area_id: int, db: AsyncSession = Depends(get_db)):
    return await LocationRepo.get_level(db, "area", area_id)


@router.post("/areas", response_model=AreaRead, status_code=status.HTTP_201_CREATED)
async def create_area(req: AreaCreate, db: AsyncSession = Depends(get_db)):
    return await LocationRepo.create_level(db, "area", req.model_dump())


@router.put("/areas/{area_id}", response_model=AreaRead)
async def update_area(area_id: int, req: AreaCreate, db: AsyncSession = Depends(get_db)):
    return await LocationRepo.update_level(db, "area", area_id, req.model_dump())


@router.delete("/areas/{area_id}")
async def delete_area(area_id: int, db: AsyncSession = Depends(get_db)):
    await LocationRepo.delete_level(db, "area", area_id)
    return {"message": "Area deleted successfully"}
