# app/services/orders/order_views.py

from datetime import datetime, timedelta

from app.core.config import URGENT_ORDER_DAYS
from app.models.orders.sales_order_models import SalesOrder, SalesOrderItem
from app.schemas.orders.sales_order_schemas import (
    DetailedSalesOrderOut,
    SalesOrderItemOut,
    SalesOrderSummaryOut,
)
from app.services.orders.allocation_ledger import order_totals, remaining_quantity
from app.services.orders.status_rules import OUTGOING_STATUSES
from app.utils.datetime_utils import as_utc, utc_now
from app.utils.decimal_utils import to_decimal


def urgent_cutoff(now: datetime) -> datetime:
    return now + timedelta(days=URGENT_ORDER_DAYS)


def is_urgent(order: SalesOrder, now: datetime) -> bool:
    return (
        order.status in OUTGOING_STATUSES
        and as_utc(order.estimated_delivery_date) < urgent_cutoff(now)
    )


def _map_item(item: SalesOrderItem) -> SalesOrderItemOut:
    unit_price = to_decimal(item.unit_price)
    return SalesOrderItemOut(
        id=item.id,
        product_id=item.product_id,
        product_name=item.product.name if item.product else None,
        product_category=item.product.category if item.product else None,
        status=item.status,
        quantity=item.quantity,
        approved_quantity=item.approved_quantity,
        remaining_quantity=remaining_quantity(item),
        unit_price=unit_price,
        total_price=to_decimal(unit_price * item.quantity),
    )


def _summary_fields(order: SalesOrder, now: datetime) -> dict:
    total_ordered, total_approved, total_amount = order_totals(order)
    return dict(
        id=order.id,
        order_reference=order.order_reference,
        customer_name=order.customer_name,
        destination=order.destination,
        status=order.status,
        order_date=as_utc(order.order_date),
        estimated_delivery_date=as_utc(order.estimated_delivery_date),
        delivery_date=as_utc(order.delivery_date),
        total_ordered_quantity=total_ordered,
        total_approved_quantity=total_approved,
        total_amount=total_amount,
        is_urgent=is_urgent(order, now),
    )


def map_summary(order: SalesOrder, now: datetime | None = None) -> SalesOrderSummaryOut:
    return SalesOrderSummaryOut(**_summary_fields(order, now or utc_now()))


def map_detailed(order: SalesOrder, now: datetime | None = None) -> DetailedSalesOrderOut:
    return DetailedSalesOrderOut(
        **_summary_fields(order, now or utc_now()),
        items=[_map_item(item) for item in order.items],
        confirmed_by=order.confirmed_by,
        cancelled_by=order.cancelled_by,
        last_update=as_utc(order.last_update),
    )
