# app/routers/__init__.py

from .orders.sales_order_router import router as sales_order_router
from .orders.qr_code_router import router as qr_code_router


__all__ = [
"sales_order_router",
"qr_code_router",
]
