from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.auth.acting_user_schemas import GUEST_USER_ID, ActingUser
from app.schemas.orders.qr_token_schemas import QrCodeOut
from app.schemas.orders.sales_order_schemas import DetailedSalesOrderOut
from app.services.orders.qr_token_service import (
    advance_order_status,
    issue_qr_token,
    verify_qr_token,
)
from app.utils.check_roles import READ_ROLES, require_role
from app.utils.get_user import get_acting_user
from app.utils.response import APIResponse, success_response

router = APIRouter(prefix="/sales-orders/qrcode", tags=["Sales Order QR Codes"])


@router.get("/{order_id}/view", response_model=APIResponse[QrCodeOut])
async def view_qr_code_api(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    _: ActingUser = Depends(require_role(READ_ROLES)),
):
    return success_response(
        "QR code generated",
        await issue_qr_token(db, order_id),
    )


# public: the QR code is scanned by whoever holds the parcel
@router.get("/{token}/verify", response_model=APIResponse[DetailedSalesOrderOut])
async def verify_qr_code_api(
    token: str,
    db: AsyncSession = Depends(get_db),
    x_user_id: str | None = Header(None, alias="X-User-ID"),
    user_agent: str | None = Header(None, alias="User-Agent"),
):
    return success_response(
        "QR code verified",
        await verify_qr_token(
            db,
            token,
            x_user_id or GUEST_USER_ID,
            user_agent=user_agent,
        ),
    )


@router.patch("/{token}", response_model=APIResponse[DetailedSalesOrderOut])
async def update_status_via_qr_api(
    token: str,
    status: str = Query(...),
    db: AsyncSession = Depends(get_db),
    x_user_id: str = Header(..., alias="X-User-ID"),
    user_agent: str | None = Header(None, alias="User-Agent"),
    caller: ActingUser = Depends(get_acting_user),
):
    # the role comes from the verified bearer token, the id from the scanning device
    actor = ActingUser(id=x_user_id, role=caller.role)

    return success_response(
        "Sales order status updated",
        await advance_order_status(db, token, status, actor, user_agent=user_agent),
    )
