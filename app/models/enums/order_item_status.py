import enum


class OrderItemStatus(str, enum.Enum):
    PENDING = "PENDING"
    PARTIALLY_APPROVED = "PARTIALLY_APPROVED"
    APPROVED = "APPROVED"
    CANCELLED = "CANCELLED"
