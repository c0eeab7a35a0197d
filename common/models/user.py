from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from .base import Base


class User(Base):
    __tablename__ = "user"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True, unique=True)
    phone = Column(String(32), nullable=True, unique=True)
    password = Column(String(255), nullable=True)
    role = Column(String(16), nullable=False, default="USER")
    image = Column(Text, nullable=True)
    email_verified = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


class Account(Base):
    __tablename__ = "account"
    __table_args__ = (UniqueConstraint("provider", "provider_account_id", name="uq_account_provider"),)

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    provider = Column(String(64), nullable=False)
    provider_account_id = Column(String(255), nullable=False)
    access_token = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
