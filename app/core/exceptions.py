from fastapi import HTTPException
from app.constants.error_codes import ErrorCode


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: ErrorCode,
        details: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.details = details

    @property
    def kind(self) -> ErrorCode:
        return self.error_code

    @property
    def message(self) -> str:
        return self.detail


# =====================================================
# FULFILLMENT ERROR TAXONOMY
# =====================================================
class ValidationError(AppException):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(400, message, ErrorCode.VALIDATION_ERROR, details)


class NotFound(AppException):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(404, message, ErrorCode.NOT_FOUND, details)


class QuantityExceeded(AppException):
    def __init__(self, violations: list[dict]):
        products = ", ".join(v["product_id"] for v in violations)
        super().__init__(
            409,
            f"Requested quantity exceeds remaining quantity for: {products}",
            ErrorCode.QUANTITY_EXCEEDED,
            {"violations": violations},
        )
        self.violations = violations


class InvalidTransition(AppException):
    def __init__(self, current, target):
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        super().__init__(
            409,
            f"Cannot transition from {current_value} to {target_value}",
            ErrorCode.INVALID_TRANSITION,
            {"current_status": current_value, "target_status": target_value},
        )


class Unauthorized(AppException):
    def __init__(self, message: str = "Permission denied"):
        super().__init__(403, message, ErrorCode.UNAUTHORIZED)


class TokenNotFound(AppException):
    def __init__(self):
        super().__init__(404, "QR token not found", ErrorCode.TOKEN_NOT_FOUND)


class TokenExpired(AppException):
    def __init__(self):
        super().__init__(410, "QR token has expired", ErrorCode.TOKEN_EXPIRED)


class OrderBusy(AppException):
    def __init__(self, order_id: int):
        super().__init__(
            423,
            f"Sales order {order_id} is being updated, re-fetch and try again",
            ErrorCode.ORDER_BUSY,
            {"order_id": order_id},
        )


class InventoryUnavailable(AppException):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(409, message, ErrorCode.INVENTORY_UNAVAILABLE, details)


class NetworkError(AppException):
    def __init__(self, message: str = "Service temporarily unreachable"):
        super().__init__(503, message, ErrorCode.NETWORK_ERROR)
