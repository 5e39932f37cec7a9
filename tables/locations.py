# tables/locations.py - Country / state / city / area reference hierarchy
from sqlalchemy import Column, Integer, String
from config import Base


class Country(Base):
    __tablename__ = "countries"

    country_id = Column(Integer, primary_key=True)
    country_name = Column(String(100), unique=True, nullable=False)


class State(Base):
    __tablename__ = "states"

    state_id = Column(Integer, primary_key=True)
    state_name = Column(String(100), nullable=False)
    country_id = Column(Integer, nullable=False, index=True)


class City(Base):
    __tablename__ = "cities"

    city_id = Column(Integer, primary_key=True)
    city_name = Column(String(100), nullable=False)
    state_id = Column(Integer, nullable=False, index=True)


class Area(Base):
    __tablename__ = "areas"

    area_id = Column(Integer, primary_key=True)
    area_name = Column(String(100), nullable=False)
    city_id = Column(Integer, nullable=False, index=True)
    pincode = Column(String(20), nullable=True)
    description = Column(String(500), nullable=True)
