from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from .base import Base


class CartItem(Base):
    __tablename__ = "cart_item"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(String(36), ForeignKey("product.id", ondelete="CASCADE"), nullable=False)
    size_id = Column(String(36), ForeignKey("size.id"), nullable=True)
    quantity = Column(Integer, nullable=False)
    added_at = Column(DateTime, nullable=False, default=datetime.utcnow)
