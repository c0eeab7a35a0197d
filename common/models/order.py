from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, Numeric, String, Text
from sqlalchemy.orm import relationship
from .base import Base


class Order(Base):
    __tablename__ = "order"

    id = Column(String(36), primary_key=True)
    order_number = Column(String(64), nullable=False, unique=True)
    user_id = Column(String(36), ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    address_id = Column(String(36), ForeignKey("address.id"), nullable=True)
    status = Column(String(32), nullable=False, default="PENDING")
    total = Column(Numeric(12, 2), nullable=False)
    shipping_cost = Column(Numeric(12, 2), nullable=False, default=0)
    shipping_method = Column(String(32), nullable=True)
    payment_method = Column(String(32), nullable=True)
    payment_status = Column(String(32), nullable=False, default="PENDING")
    payment_id = Column(String(128), nullable=True)
    payment_data = Column(JSON, nullable=True)
    customer_name = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(32), nullable=True)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship("OrderItem", cascade="all, delete-orphan", lazy="selectin")
    address = relationship("Address", lazy="joined")


class OrderItem(Base):
    __tablename__ = "order_item"

    id = Column(String(36), primary_key=True)
    order_id = Column(String(36), ForeignKey("order.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(String(36), ForeignKey("product.id"), nullable=False)
    size_id = Column(String(36), ForeignKey("size.id"), nullable=True)
    color_id = Column(String(36), ForeignKey("color.id"), nullable=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)

    product = relationship("Product", lazy="joined")
    size = relationship("Size", lazy="joined")
