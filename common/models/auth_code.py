from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String
from .base import Base


class AuthCode(Base):
    __tablename__ = "auth_code"

    id = Column(String(36), primary_key=True)
    type = Column(String(16), nullable=False)
    # normalized phone digits or lower-cased email
    contact = Column(String(255), nullable=False, index=True)
    code = Column(String(16), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
