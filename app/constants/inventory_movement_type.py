# app/constants/inventory_movement_type.py

from enum import Enum


class InventoryMovementType(str, Enum):
    STOCK_OUT = "STOCK_OUT"
    RESERVATION_RELEASE = "RESERVATION_RELEASE"
    STOCK_OUT_REVERSAL = "STOCK_OUT_REVERSAL"
