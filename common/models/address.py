from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from .base import Base


class Address(Base):
    __tablename__ = "address"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(255), nullable=True)
    street = Column(String(255), nullable=False)
    city = Column(String(128), nullable=False)
    postal_code = Column(String(32), nullable=True)
    country = Column(String(64), nullable=False, default="Россия")
    phone = Column(String(32), nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
