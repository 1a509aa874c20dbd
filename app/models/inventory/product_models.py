from decimal import Decimal

from sqlalchemy import Column, String, Numeric, Index
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.base.mixins import TimestampMixin, SoftDeleteMixin


class Product(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "products"

    product_id = Column(String(20), primary_key=True)  # e.g. PRD001
    name = Column(String(255), nullable=False, index=True)
    category = Column(String(100), nullable=True, index=True)
    price = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    stock = relationship("InventoryStock", back_populates="product", uselist=False, lazy="raise")

    __table_args__ = (Index("ix_product_name_category", "name", "category"),)

    def __repr__(self):
        return f"<Product product_id={self.product_id} name={self.name}>"
