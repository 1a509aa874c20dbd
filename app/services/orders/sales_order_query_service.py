# app/services/orders/sales_order_query_service.py

import math

from sqlalchemy import select, func, asc, desc, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFound, ValidationError
from app.models.enums.sales_order_status import SalesOrderStatus
from app.models.orders.sales_order_models import SalesOrder
from app.schemas.orders.sales_order_schemas import (
    DetailedSalesOrderOut,
    PaginatedData,
    SalesOrderMetricsOut,
    SalesOrderSummaryOut,
)
from app.services.orders.order_views import map_detailed, map_summary, urgent_cutoff
from app.services.orders.status_rules import OUTGOING_STATUSES, parse_status
from app.utils.datetime_utils import utc_now
from app.utils.logger import get_logger

logger = get_logger(__name__)

ALLOWED_SORT_FIELDS = {
    "orderReference": SalesOrder.order_reference,
    "orderDate": SalesOrder.order_date,
    "estimatedDeliveryDate": SalesOrder.estimated_delivery_date,
    "customerName": SalesOrder.customer_name,
    "status": SalesOrder.status,
}


# =====================================================
# ENTITY LOADING
# =====================================================
async def get_order_entity(
    db: AsyncSession,
    order_id: int,
    *,
    for_update: bool = False,
) -> SalesOrder:
    stmt = (
        select(SalesOrder)
        .where(SalesOrder.id == order_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()

    order = await db.scalar(stmt)
    if not order:
        raise NotFound(f"Sales order not found with ID: {order_id}")
    return order


# =====================================================
# PAGINATION
# =====================================================
async def _paginate(
    db: AsyncSession,
    *,
    filters: list,
    page: int,
    size: int,
    sort_by: str,
    sort_dir: str,
) -> PaginatedData[SalesOrderSummaryOut]:
    sort_col = ALLOWED_SORT_FIELDS.get(sort_by)
    if sort_col is None:
        raise ValidationError(
            "Invalid sort field",
            {"allowed": sorted(ALLOWED_SORT_FIELDS)},
        )
    if sort_dir.lower() not in {"asc", "desc"}:
        raise ValidationError("Sort direction must be asc or desc")

    order_by = desc(sort_col) if sort_dir.lower() == "desc" else asc(sort_col)

    total = await db.scalar(
        select(func.count()).select_from(
            select(SalesOrder.id).where(*filters).subquery()
        )
    ) or 0

    orders = (
        await db.execute(
            select(SalesOrder)
            .where(*filters)
            .order_by(order_by, SalesOrder.id)
            .offset(page * size)
            .limit(size)
        )
    ).scalars().all()

    now = utc_now()
    return PaginatedData[SalesOrderSummaryOut](
        content=[map_summary(order, now) for order in orders],
        total_elements=total,
        total_pages=math.ceil(total / size) if total else 0,
        page=page,
        size=size,
    )


# =====================================================
# METRICS
# =====================================================
async def get_sales_order_metrics(db: AsyncSession) -> SalesOrderMetricsOut:
    rows = await db.execute(
        select(SalesOrder.status, func.count(SalesOrder.id))
        .group_by(SalesOrder.status)
    )

    by_status = {status: 0 for status in SalesOrderStatus}
    for status, count in rows.all():
        by_status[status] = count

    urgent = await db.scalar(
        select(func.count(SalesOrder.id)).where(*_urgent_filters())
    ) or 0

    return SalesOrderMetricsOut(
        total=sum(by_status.values()),
        urgent=urgent,
        by_status=by_status,
    )


# =====================================================
# LISTS
# =====================================================
def _urgent_filters() -> list:
    return [
        SalesOrder.status.in_(OUTGOING_STATUSES),
        SalesOrder.estimated_delivery_date < urgent_cutoff(utc_now()),
    ]


async def list_sales_orders(
    db: AsyncSession,
    *,
    urgent_only: bool = False,
    page: int,
    size: int,
    sort_by: str,
    sort_dir: str,
) -> PaginatedData[SalesOrderSummaryOut]:
    filters = _urgent_filters() if urgent_only else []
    return await _paginate(
        db,
        filters=filters,
        page=page,
        size=size,
        sort_by=sort_by,
        sort_dir=sort_dir,
    )


async def search_sales_orders(
    db: AsyncSession,
    *,
    text: str | None,
    page: int,
    size: int,
    sort_by: str,
    sort_dir: str,
) -> PaginatedData[SalesOrderSummaryOut]:
    filters = []
    if text and text.strip():
        pattern = f"%{text.strip()}%"
        filters.append(
            or_(
                SalesOrder.order_reference.ilike(pattern),
                SalesOrder.customer_name.ilike(pattern),
            )
        )
    else:
        logger.debug("Empty search text, listing all sales orders")

    return await _paginate(
        db,
        filters=filters,
        page=page,
        size=size,
        sort_by=sort_by,
        sort_dir=sort_dir,
    )


async def filter_sales_orders(
    db: AsyncSession,
    *,
    status: str | None,
    page: int,
    size: int,
    sort_by: str,
    sort_dir: str,
) -> PaginatedData[SalesOrderSummaryOut]:
    return await _paginate(
        db,
        filters=[SalesOrder.status == parse_status(status)],
        page=page,
        size=size,
        sort_by=sort_by,
        sort_dir=sort_dir,
    )


# =====================================================
# DETAIL
# =====================================================
async def get_sales_order_detail(
    db: AsyncSession,
    order_id: int,
) -> DetailedSalesOrderOut:
    order = await get_order_entity(db, order_id)
    return map_detailed(order)
