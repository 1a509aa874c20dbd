# app/services/orders/qr_token_service.py

import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import PUBLIC_BASE_URL, QR_TOKEN_TTL_MINUTES
from app.core.exceptions import AppException, TokenExpired, TokenNotFound
from app.core.order_locks import order_locks
from app.models.enums.sales_order_status import SalesOrderStatus
from app.models.orders.qr_token_models import SalesOrderQrToken
from app.schemas.auth.acting_user_schemas import GUEST_USER_ID, ActingUser
from app.schemas.orders.qr_token_schemas import QrCodeOut
from app.schemas.orders.sales_order_schemas import DetailedSalesOrderOut
from app.services.orders.order_views import map_detailed
from app.services.orders.sales_order_query_service import get_order_entity
from app.services.orders.status_rules import parse_status, validate_explicit_advance
from app.utils.check_roles import STATUS_ADVANCE_ROLES, ensure_capability
from app.utils.datetime_utils import utc_now
from app.utils.logger import get_logger
from app.utils.qr_image import render_qr_data_url

logger = get_logger(__name__)

TOKEN_BYTES = 32
USER_AGENT_MAX_LENGTH = 255


def build_verify_url(token: str) -> str:
    return f"{PUBLIC_BASE_URL}/sales-orders/qrcode/{token}/verify"


# =====================================================
# TOKEN LOOKUP
# =====================================================
async def _get_live_token(db: AsyncSession, token: str) -> SalesOrderQrToken:
    qr_token = await db.scalar(
        select(SalesOrderQrToken)
        .where(SalesOrderQrToken.token == token)
        .execution_options(populate_existing=True)
    )
    if not qr_token:
        logger.warning("Unknown QR token")
        raise TokenNotFound()

    if qr_token.is_expired(utc_now()):
        logger.info(
            "Expired QR token presented",
            extra={"order_id": qr_token.sales_order_id},
        )
        raise TokenExpired()

    return qr_token


def _log_scan(qr_token: SalesOrderQrToken, user_id: str, user_agent: str | None) -> None:
    qr_token.last_scanned_at = utc_now()
    qr_token.scanned_by = user_id
    if user_agent:
        qr_token.user_agent = user_agent[:USER_AGENT_MAX_LENGTH]


# =====================================================
# ISSUE
# =====================================================
async def issue_qr_token(
    db: AsyncSession,
    order_id: int,
) -> QrCodeOut:
    """
    Mint a fresh token for an order's delivery QR code.

    Earlier tokens for the same order stay valid until their own TTL runs out;
    the newest one is simply what gets displayed.
    """
    order = await get_order_entity(db, order_id)

    qr_token = SalesOrderQrToken(
        token=secrets.token_urlsafe(TOKEN_BYTES),
        sales_order_id=order.id,
        issued_at=utc_now(),
        ttl_minutes=QR_TOKEN_TTL_MINUTES,
    )
    db.add(qr_token)
    await db.commit()

    verify_url = build_verify_url(qr_token.token)

    logger.info(
        "QR token issued",
        extra={"order_id": order.id, "order_reference": order.order_reference},
    )

    return QrCodeOut(
        qr_code_url=render_qr_data_url(verify_url),
        qr_token=qr_token.token,
        order_reference=order.order_reference,
        verify_url=verify_url,
        expires_in=qr_token.ttl_minutes,
    )


# =====================================================
# VERIFY (READ-ONLY FOR THE ORDER)
# =====================================================
async def verify_qr_token(
    db: AsyncSession,
    token: str,
    acting_user_id: str | None = None,
    *,
    user_agent: str | None = None,
) -> DetailedSalesOrderOut:
    acting_user_id = acting_user_id or GUEST_USER_ID

    qr_token = await _get_live_token(db, token)
    order = qr_token.sales_order

    _log_scan(qr_token, acting_user_id, user_agent)
    await db.commit()

    logger.info(
        "QR token verified",
        extra={"order_id": order.id, "scanned_by": acting_user_id},
    )
    return map_detailed(order)


# =====================================================
# ADVANCE STATUS
# =====================================================
async def advance_order_status(
    db: AsyncSession,
    token: str,
    target_status,
    actor: ActingUser,
    *,
    user_agent: str | None = None,
) -> DetailedSalesOrderOut:
    # role first: a caller without the capability learns nothing about the token
    ensure_capability(actor, STATUS_ADVANCE_ROLES)
    target = parse_status(target_status)

    qr_token = await _get_live_token(db, token)
    order_id = qr_token.sales_order_id

    async with order_locks.hold(order_id):
        order = await get_order_entity(db, order_id, for_update=True)

        try:
            previous = order.status
            order.status = validate_explicit_advance(previous, target)

            now = utc_now()
            order.confirmed_by = actor.id
            order.updated_by = actor.id
            order.last_update = now

            if target == SalesOrderStatus.DELIVERED or (
                target == SalesOrderStatus.COMPLETED and order.delivery_date is None
            ):
                order.delivery_date = now

            _log_scan(qr_token, actor.id, user_agent)
            await db.commit()

        except AppException as exc:
            await db.rollback()
            logger.warning(
                "QR status update rejected",
                extra={"order_id": order_id, "error_code": exc.error_code.value},
            )
            raise

        except Exception:
            await db.rollback()
            logger.exception("QR status update failed", extra={"order_id": order_id})
            raise

        logger.info(
            "Order status updated via QR",
            extra={
                "order_id": order_id,
                "from_status": previous.value,
                "to_status": target.value,
                "actor": actor.id,
            },
        )
        return map_detailed(order)
