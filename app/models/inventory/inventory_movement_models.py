from sqlalchemy import Column, Integer, String, CheckConstraint, ForeignKey, Index

from app.core.db import Base
from app.models.base.mixins import TimestampMixin


class InventoryMovement(Base, TimestampMixin):
    __tablename__ = "inventory_movements"

    id = Column(Integer, primary_key=True)
    product_id = Column(String(20), ForeignKey("products.product_id", ondelete="RESTRICT"), nullable=False, index=True)
    movement_type = Column(String(30), nullable=False)
    quantity_change = Column(Integer, nullable=False)
    reference_type = Column(String(50), nullable=False)
    reference_id = Column(String(50), nullable=False)
    performed_by = Column(String(100), nullable=True)

    __table_args__ = (
        CheckConstraint("quantity_change <> 0", name="ck_inventory_quantity_non_zero"),
        Index("ix_inventory_movement_reference", "reference_type", "reference_id"),
    )

    def __repr__(self):
        return f"<InventoryMovement id={self.id} product_id={self.product_id} {self.movement_type} qty={self.quantity_change} ref={self.reference_type}:{self.reference_id}>"
