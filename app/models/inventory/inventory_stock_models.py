from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.base.mixins import TimestampMixin


class InventoryStock(Base, TimestampMixin):
    """Authoritative on-hand and reserved counters for one product."""

    __tablename__ = "inventory_stock"

    product_id = Column(String(20), ForeignKey("products.product_id", ondelete="RESTRICT"), primary_key=True)
    current_stock = Column(Integer, nullable=False, default=0)
    reserved_stock = Column(Integer, nullable=False, default=0)

    product = relationship("Product", back_populates="stock", lazy="raise")

    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_inventory_current_non_negative"),
        CheckConstraint("reserved_stock >= 0", name="ck_inventory_reserved_non_negative"),
    )

    def __repr__(self):
        return (
            f"<InventoryStock product_id={self.product_id} "
            f"current={self.current_stock} reserved={self.reserved_stock}>"
        )
