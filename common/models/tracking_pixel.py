from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String, Text
from .base import Base


class TrackingPixel(Base):
    __tablename__ = "tracking_pixel"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    type = Column(String(32), nullable=False)
    pixel_id = Column(String(255), nullable=True)
    code = Column(Text, nullable=True)
    placement = Column(String(16), nullable=False, default="HEAD")
    is_active = Column(Boolean, nullable=False, default=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
