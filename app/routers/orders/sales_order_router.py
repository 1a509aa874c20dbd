from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.auth.acting_user_schemas import ActingUser
from app.schemas.orders.sales_order_schemas import (
    CancellationOut,
    DetailedSalesOrderOut,
    PaginatedData,
    SalesOrderMetricsOut,
    SalesOrderSummaryOut,
    StockOutRequest,
)
from app.services.orders.fulfillment_service import cancel_order, stock_out
from app.services.orders.sales_order_query_service import (
    filter_sales_orders,
    get_sales_order_detail,
    get_sales_order_metrics,
    list_sales_orders,
    search_sales_orders,
)
from app.utils.check_roles import READ_ROLES, require_role
from app.utils.get_user import get_acting_user
from app.utils.response import APIResponse, success_response

router = APIRouter(prefix="/inventory/sales-orders", tags=["Sales Orders"])


class ListParams:
    def __init__(
        self,
        page: int = Query(0, ge=0),
        size: int = Query(20, ge=1, le=100),
        sort_by: str = Query("orderReference", alias="sortBy"),
        sort_dir: str = Query("asc", alias="sortDir"),
    ):
        self.page = page
        self.size = size
        self.sort_by = sort_by
        self.sort_dir = sort_dir

    def as_kwargs(self) -> dict:
        return {
            "page": self.page,
            "size": self.size,
            "sort_by": self.sort_by,
            "sort_dir": self.sort_dir,
        }


@router.get("", response_model=APIResponse[SalesOrderMetricsOut])
async def get_metrics_api(
    db: AsyncSession = Depends(get_db),
    _: ActingUser = Depends(require_role(READ_ROLES)),
):
    return success_response(
        "Sales order metrics fetched",
        await get_sales_order_metrics(db),
    )


@router.get("/all", response_model=APIResponse[PaginatedData[SalesOrderSummaryOut]])
async def list_sales_orders_api(
    params: ListParams = Depends(),
    db: AsyncSession = Depends(get_db),
    _: ActingUser = Depends(require_role(READ_ROLES)),
):
    return success_response(
        "Sales orders fetched",
        await list_sales_orders(db, **params.as_kwargs()),
    )


@router.get("/urgent", response_model=APIResponse[PaginatedData[SalesOrderSummaryOut]])
async def list_urgent_sales_orders_api(
    params: ListParams = Depends(),
    db: AsyncSession = Depends(get_db),
    _: ActingUser = Depends(require_role(READ_ROLES)),
):
    return success_response(
        "Urgent sales orders fetched",
        await list_sales_orders(db, urgent_only=True, **params.as_kwargs()),
    )


@router.get("/search", response_model=APIResponse[PaginatedData[SalesOrderSummaryOut]])
async def search_sales_orders_api(
    text: str | None = Query(None),
    params: ListParams = Depends(),
    db: AsyncSession = Depends(get_db),
    _: ActingUser = Depends(require_role(READ_ROLES)),
):
    return success_response(
        "Sales orders fetched",
        await search_sales_orders(db, text=text, **params.as_kwargs()),
    )


@router.get("/filter", response_model=APIResponse[PaginatedData[SalesOrderSummaryOut]])
async def filter_sales_orders_api(
    status: str | None = Query(None),
    params: ListParams = Depends(),
    db: AsyncSession = Depends(get_db),
    _: ActingUser = Depends(require_role(READ_ROLES)),
):
    return success_response(
        "Sales orders fetched",
        await filter_sales_orders(db, status=status, **params.as_kwargs()),
    )


@router.get("/{order_id}/items", response_model=APIResponse[DetailedSalesOrderOut])
async def get_sales_order_items_api(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    _: ActingUser = Depends(require_role(READ_ROLES)),
):
    return success_response(
        "Sales order fetched",
        await get_sales_order_detail(db, order_id),
    )


# role checks for mutations live in the fulfillment service
@router.put("/stocks/out", response_model=APIResponse[DetailedSalesOrderOut])
async def stock_out_api(
    payload: StockOutRequest,
    db: AsyncSession = Depends(get_db),
    actor: ActingUser = Depends(get_acting_user),
):
    return success_response(
        "Stock out processed",
        await stock_out(db, payload.order_id, payload.item_quantities, actor),
    )


@router.put("/{order_id}/cancel", response_model=APIResponse[CancellationOut])
async def cancel_sales_order_api(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    actor: ActingUser = Depends(get_acting_user),
):
    result = await cancel_order(db, order_id, actor)

    message = (
        "Sales order was already cancelled"
        if result.already_cancelled
        else "Sales order cancelled"
    )
    return success_response(
        message,
        CancellationOut(already_cancelled=result.already_cancelled, order=result.order),
    )
