from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text
from .base import Base


class SiteSetting(Base):
    __tablename__ = "site_setting"

    id = Column(String(36), primary_key=True)
    key = Column(String(128), nullable=False, unique=True)
    value = Column(Text, nullable=False)
    type = Column(String(32), nullable=False, default="text")
    category = Column(String(32), nullable=False, default="general")
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
