from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, Numeric, String, Text
from sqlalchemy.orm import relationship
from .base import Base


class Product(Base):
    __tablename__ = "product"

    id = Column(String(36), primary_key=True)
    sku = Column(String(128), nullable=False, unique=True)
    slug = Column(String(128), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    sale_price = Column(Numeric(12, 2), nullable=True)
    images = Column(JSON, nullable=True)
    color_id = Column(String(36), ForeignKey("color.id"), nullable=True)
    stock = Column(Integer, nullable=False, default=0)
    published = Column(Boolean, nullable=False, default=True)
    view_count = Column(Integer, nullable=False, default=0)
    deleted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    color = relationship("Color", lazy="joined")
    sizes = relationship("ProductSize", cascade="all, delete-orphan", lazy="selectin")

    @property
    def effective_price(self):
        return self.sale_price if self.sale_price else self.price


class ProductSize(Base):
    __tablename__ = "product_size"

    id = Column(String(36), primary_key=True)
    product_id = Column(String(36), ForeignKey("product.id", ondelete="CASCADE"), nullable=False)
    size_id = Column(String(36), ForeignKey("size.id"), nullable=False)
    stock = Column(Integer, nullable=False, default=0)

    size = relationship("Size", lazy="joined")
