from enum import Enum


class ErrorCode(str, Enum):
    # ---------------- GENERIC ----------------
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"

    # ---------------- AUTH ----------------
    UNAUTHENTICATED = "UNAUTHENTICATED"
    UNAUTHORIZED = "UNAUTHORIZED"

    # ---------------- FULFILLMENT ----------------
    QUANTITY_EXCEEDED = "QUANTITY_EXCEEDED"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    ORDER_BUSY = "ORDER_BUSY"
    INVENTORY_UNAVAILABLE = "INVENTORY_UNAVAILABLE"

    # ---------------- QR TOKENS ----------------
    TOKEN_NOT_FOUND = "TOKEN_NOT_FOUND"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
