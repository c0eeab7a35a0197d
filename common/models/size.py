from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from .base import Base


class Size(Base):
    __tablename__ = "size"

    id = Column(String(36), primary_key=True)
    name = Column(String(32), nullable=False, unique=True)
    russian_size = Column(String(32), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
