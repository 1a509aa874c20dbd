from datetime import timedelta

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.utils.datetime_utils import utc_now, as_utc


class SalesOrderQrToken(Base):
    """Short-lived credential printed on the delivery note of one sales order."""

    __tablename__ = "sales_order_qr_tokens"

    id = Column(Integer, primary_key=True)
    token = Column(String(100), nullable=False, unique=True, index=True)
    sales_order_id = Column(Integer, ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False, index=True)

    issued_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    ttl_minutes = Column(Integer, nullable=False)

    # scan tracking
    last_scanned_at = Column(DateTime(timezone=True), nullable=True)
    scanned_by = Column(String(100), nullable=True)
    user_agent = Column(String(255), nullable=True)

    sales_order = relationship("SalesOrder", back_populates="qr_tokens", lazy="joined")

    @property
    def expires_at(self):
        return as_utc(self.issued_at) + timedelta(minutes=self.ttl_minutes)

    def is_expired(self, now) -> bool:
        return now > self.expires_at

    def __repr__(self):
        return f"<SalesOrderQrToken id={self.id} order_id={self.sales_order_id} issued_at={self.issued_at}>"
