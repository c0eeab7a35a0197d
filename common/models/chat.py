from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, JSON, String, Text
from .base import Base


class ChatSession(Base):
    __tablename__ = "chat_session"

    id = Column(String(36), primary_key=True)
    session_id = Column(String(64), nullable=False, unique=True)
    user_id = Column(String(36), ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    user_name = Column(String(255), nullable=True)
    user_email = Column(String(255), nullable=True)
    user_phone = Column(String(32), nullable=True)
    subject = Column(String(255), nullable=False)
    status = Column(String(16), nullable=False, default="ACTIVE")
    priority = Column(String(16), nullable=False, default="NORMAL")
    assigned_to = Column(String(36), nullable=True)
    client_info = Column(JSON, nullable=True)
    last_activity = Column(DateTime, nullable=False, default=datetime.utcnow)
    closed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class ChatMessage(Base):
    __tablename__ = "chat_message"

    id = Column(String(36), primary_key=True)
    session_id = Column(String(36), ForeignKey("chat_session.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_type = Column(String(16), nullable=False)
    sender_id = Column(String(36), nullable=True)
    sender_name = Column(String(255), nullable=True)
    content = Column(Text, nullable=False)
    message_type = Column(String(16), nullable=False, default="TEXT")
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
