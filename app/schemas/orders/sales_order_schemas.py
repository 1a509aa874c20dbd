# app/schemas/orders/sales_order_schemas.py

from datetime import datetime
from decimal import Decimal
from typing import Generic, List, Optional, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictInt

from app.models.enums.order_item_status import OrderItemStatus
from app.models.enums.sales_order_status import SalesOrderStatus

T = TypeVar("T")


# -------------------------
# REQUESTS
# -------------------------
class StockOutRequest(BaseModel):
    order_id: int = Field(validation_alias=AliasChoices("orderId", "order_id"))
    item_quantities: dict[str, StrictInt] = Field(
        validation_alias=AliasChoices("itemQuantities", "item_quantities"),
        description="productId -> quantity to ship now",
    )


# -------------------------
# VIEWS
# -------------------------
class SalesOrderItemOut(BaseModel):
    id: int
    product_id: str
    product_name: Optional[str]
    product_category: Optional[str]
    status: OrderItemStatus
    quantity: int
    approved_quantity: int
    remaining_quantity: int
    unit_price: Decimal
    total_price: Decimal


class SalesOrderSummaryOut(BaseModel):
    id: int
    order_reference: str
    customer_name: str
    destination: str
    status: SalesOrderStatus

    order_date: datetime
    estimated_delivery_date: datetime
    delivery_date: Optional[datetime]

    total_ordered_quantity: int
    total_approved_quantity: int
    total_amount: Decimal
    is_urgent: bool


class DetailedSalesOrderOut(SalesOrderSummaryOut):
    items: List[SalesOrderItemOut]

    confirmed_by: Optional[str]
    cancelled_by: Optional[str]
    last_update: Optional[datetime]


class CancellationOut(BaseModel):
    already_cancelled: bool
    order: DetailedSalesOrderOut


class SalesOrderMetricsOut(BaseModel):
    total: int
    urgent: int
    by_status: dict[SalesOrderStatus, int]


# -------------------------
# PAGINATION
# -------------------------
class PaginatedData(BaseModel, Generic[T]):
    model_config = ConfigDict(populate_by_name=True)

    content: List[T]
    total_elements: int = Field(alias="totalElements")
    total_pages: int = Field(alias="totalPages")
    page: int
    size: int
