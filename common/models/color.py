from datetime import datetime

from sqlalchemy import Column, DateTime, String
from .base import Base


class Color(Base):
    __tablename__ = "color"

    id = Column(String(36), primary_key=True)
    name = Column(String(64), nullable=False, unique=True)
    hex_code = Column(String(16), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
