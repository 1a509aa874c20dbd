# app/models/enums/sales_order_status.py
import enum


class SalesOrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    PARTIALLY_APPROVED = "PARTIALLY_APPROVED"
    APPROVED = "APPROVED"
    DELIVERY_IN_PROCESS = "DELIVERY_IN_PROCESS"
    PARTIALLY_DELIVERED = "PARTIALLY_DELIVERED"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
