# models/locations.py - Location hierarchy models
from pydantic import validator
from typing import Optional
from models.base import CamelModel


def _name(v):
    if not v or not v.strip():
        raise ValueError('Name is required')
    v = v.strip()
    if len(v) > 100:
        raise ValueError('Name cannot exceed 100 characters')
    return v


class CountryCreate(CamelModel):
    country_name: str

    @validator('country_name')
    def validate_name(cls, v):
        return _name(v)


class CountryRead(CamelModel):
    country_id: int
    country_name: str


class StateCreate(CamelModel):
    state_name: str
    country_id: int

    @validator('state_name')
    def validate_name(cls, v):
        return _name(v)


class StateRead(CamelModel):
    state_id: int
    state_name: str
    country_id: int


class CityCreate(CamelModel):
    city_name: str
    state_id: int

    @validator('city_name')
    def validate_name(cls, v):
        return _name(v)


class CityRead(CamelModel):
    city_id: int
    city_name: str
    state_id: int


class AreaCreate(CamelModel):
    area_name: str
    city_id: int
    pincode: Optional[str] = None
    description: Optional[str] = None

    @validator('area_name')
    def validate_name(cls, v):
        return _name(v)


class AreaRead(CamelModel):
    area_id: int
    area_name: str
    city_id: int
    pincode: Optional[str] = None
    description: Optional[str] = None
