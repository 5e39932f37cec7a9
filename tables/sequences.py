# tables/sequences.py - Named counters for ledger / note / activity ids
from sqlalchemy import Column, Integer, String
from config import Base


class Sequence(Base):
    __tablename__ = "sequences"

    name = Column(String(50), primary_key=True)
    value = Column(Integer, nullable=False, default=0)
