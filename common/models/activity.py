from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, JSON, String, Text
from .base import Base


class AuthLog(Base):
    __tablename__ = "auth_log"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    type = Column(String(32), nullable=False)
    success = Column(Boolean, nullable=False, default=False)
    ip = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)


class UserActivity(Base):
    __tablename__ = "user_activity"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    action = Column(String(64), nullable=False)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
