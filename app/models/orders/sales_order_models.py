# app/models/orders/sales_order_models.py

from decimal import Decimal

from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    Enum,
    Index,
    Numeric,
    DateTime,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.base.mixins import TimestampMixin
from app.models.enums.sales_order_status import SalesOrderStatus
from app.models.enums.order_item_status import OrderItemStatus
from app.utils.datetime_utils import utc_now


class SalesOrder(Base, TimestampMixin):
    __tablename__ = "sales_orders"

    id = Column(Integer, primary_key=True)
    order_reference = Column(String(30), nullable=False, unique=True, index=True)

    customer_name = Column(String(100), nullable=False, index=True)
    destination = Column(String(255), nullable=False)

    status = Column(
        Enum(SalesOrderStatus, native_enum=False, length=30),
        nullable=False,
        default=SalesOrderStatus.PENDING,
        index=True,
    )

    order_date = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    estimated_delivery_date = Column(DateTime(timezone=True), nullable=False, index=True)
    delivery_date = Column(DateTime(timezone=True), nullable=True)
    last_update = Column(DateTime(timezone=True), nullable=True)

    # acting user ids as resolved by the identity provider
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)
    confirmed_by = Column(String(100), nullable=True)
    cancelled_by = Column(String(100), nullable=True)

    items = relationship(
        "SalesOrderItem",
        back_populates="sales_order",
        cascade="all, delete-orphan",
        order_by="SalesOrderItem.id",
        lazy="selectin",
    )
    qr_tokens = relationship(
        "SalesOrderQrToken",
        back_populates="sales_order",
        cascade="all, delete-orphan",
        lazy="raise",
    )

    __table_args__ = (
        Index("ix_sales_order_status_eta", "status", "estimated_delivery_date"),
    )

    def __repr__(self):
        return (
            f"<SalesOrder id={self.id} "
            f"ref={self.order_reference} "
            f"status={self.status}>"
        )


class SalesOrderItem(Base, TimestampMixin):
    __tablename__ = "sales_order_items"

    id = Column(Integer, primary_key=True)

    sales_order_id = Column(Integer, ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(20), ForeignKey("products.product_id", ondelete="RESTRICT"), nullable=False, index=True)

    quantity = Column(Integer, nullable=False)
    approved_quantity = Column(Integer, nullable=False, default=0)
    unit_price = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    status = Column(
        Enum(OrderItemStatus, native_enum=False, length=30),
        nullable=False,
        default=OrderItemStatus.PENDING,
    )

    sales_order = relationship("SalesOrder", back_populates="items")
    product = relationship("Product", lazy="joined")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_soi_quantity_positive"),
        CheckConstraint("approved_quantity >= 0", name="ck_soi_approved_non_negative"),
        CheckConstraint("approved_quantity <= quantity", name="ck_soi_approved_within_ordered"),
        UniqueConstraint("sales_order_id", "product_id", name="uq_soi_order_product"),
    )

    def __repr__(self):
        return (
            f"<SalesOrderItem id={self.id} "
            f"product_id={self.product_id} "
            f"ordered={self.quantity} "
            f"approved={self.approved_quantity}>"
        )
