# app/services/orders/fulfillment_service.py

from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AppException, InvalidTransition, InventoryUnavailable
from app.core.order_locks import order_locks
from app.models.enums.sales_order_status import SalesOrderStatus
from app.schemas.auth.acting_user_schemas import ActingUser
from app.schemas.orders.sales_order_schemas import DetailedSalesOrderOut
from app.services.inventory.inventory_stock_service import InventoryStore, SqlInventoryStore
from app.services.orders import allocation_ledger as ledger
from app.services.orders.order_views import map_detailed
from app.services.orders.sales_order_query_service import get_order_entity
from app.services.orders.status_rules import (
    derive_status_from_quantities,
    is_terminal,
    validate_cancellation,
)
from app.utils.check_roles import FULFILLMENT_ROLES, ensure_capability
from app.utils.datetime_utils import utc_now
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CancellationResult:
    order: DetailedSalesOrderOut
    already_cancelled: bool


# =====================================================
# STOCK OUT
# =====================================================
async def _revert_fulfilled(
    inventory: InventoryStore,
    lines: list[ledger.AllocationLine],
    reference: str,
    actor: ActingUser,
) -> None:
    """Hand back what a non-transactional store already shipped."""
    if inventory.joins_transaction:
        return

    for line in reversed(lines):
        try:
            await inventory.revert_fulfillment(
                line.product_id,
                line.quantity,
                reference=reference,
                actor_id=actor.id,
            )
        except Exception:
            # keep reverting the rest; the original failure is re-raised by the caller
            logger.exception(
                "Could not revert fulfillment",
                extra={"product_id": line.product_id, "quantity": line.quantity, "reference": reference},
            )


async def stock_out(
    db: AsyncSession,
    order_id: int,
    item_quantities: dict[str, int],
    actor: ActingUser,
    *,
    inventory: InventoryStore | None = None,
) -> DetailedSalesOrderOut:
    """
    Ship part or all of the remaining quantity of a sales order.

    Every requested line is validated against the current order before
    anything changes. Not idempotent: after a timeout, re-read the order and
    recompute remaining quantities instead of resending the same request.
    """
    ensure_capability(actor, FULFILLMENT_ROLES)
    inventory = inventory or SqlInventoryStore(db)

    logger.info(
        "Stock out requested",
        extra={"order_id": order_id, "items": len(item_quantities or {}), "actor": actor.id},
    )

    async with order_locks.hold(order_id):
        order = await get_order_entity(db, order_id, for_update=True)
        reference = order.order_reference
        fulfilled: list[ledger.AllocationLine] = []

        try:
            if is_terminal(order.status):
                raise InvalidTransition(order.status, "stock out")

            # validation reads the whole order before any item changes
            lines = ledger.plan_stock_out(order, item_quantities)
            ledger.apply_allocation(lines)

            total_ordered, total_approved, _ = ledger.order_totals(order)
            order.status = derive_status_from_quantities(
                order.status, total_ordered, total_approved
            )
            order.confirmed_by = actor.id
            order.last_update = utc_now()

            for line in lines:
                try:
                    await inventory.fulfill_reservation(
                        line.product_id,
                        line.quantity,
                        reference=reference,
                        actor_id=actor.id,
                    )
                    fulfilled.append(line)
                except (AppException, SQLAlchemyError):
                    raise
                except Exception as exc:
                    raise InventoryUnavailable(
                        f"Inventory store failed for product {line.product_id}",
                        {"product_id": line.product_id},
                    ) from exc

            await db.commit()

        except AppException as exc:
            await _revert_fulfilled(inventory, fulfilled, reference, actor)
            await db.rollback()
            logger.warning(
                "Stock out rejected",
                extra={"order_id": order_id, "error_code": exc.error_code.value},
            )
            raise

        except Exception:
            await _revert_fulfilled(inventory, fulfilled, reference, actor)
            await db.rollback()
            logger.exception("Stock out failed", extra={"order_id": order_id})
            raise

        logger.info(
            "Stock out complete",
            extra={
                "order_id": order_id,
                "order_reference": order.order_reference,
                "status": order.status.value,
            },
        )
        return map_detailed(order)


# =====================================================
# CANCEL
# =====================================================
async def cancel_order(
    db: AsyncSession,
    order_id: int,
    actor: ActingUser,
    *,
    inventory: InventoryStore | None = None,
) -> CancellationResult:
    """Cancel an order and hand its unshipped quantity back. Safe to retry."""
    ensure_capability(actor, FULFILLMENT_ROLES)
    inventory = inventory or SqlInventoryStore(db)

    async with order_locks.hold(order_id):
        order = await get_order_entity(db, order_id, for_update=True)

        if order.status == SalesOrderStatus.CANCELLED:
            logger.info(
                "Order already cancelled",
                extra={"order_id": order_id, "actor": actor.id},
            )
            view = map_detailed(order)
            # nothing changed; end the transaction to drop the row lock
            await db.commit()
            return CancellationResult(order=view, already_cancelled=True)

        try:
            validate_cancellation(order.status)

            for line in ledger.release_lines(order):
                await inventory.release_reservation(
                    line.product_id,
                    line.quantity,
                    reference=order.order_reference,
                    actor_id=actor.id,
                )

            ledger.mark_items_cancelled(order)
            order.status = SalesOrderStatus.CANCELLED
            order.cancelled_by = actor.id
            order.last_update = utc_now()

            await db.commit()

        except AppException as exc:
            await db.rollback()
            logger.warning(
                "Cancel rejected",
                extra={"order_id": order_id, "error_code": exc.error_code.value},
            )
            raise

        except Exception:
            await db.rollback()
            logger.exception("Cancel failed", extra={"order_id": order_id})
            raise

        logger.info(
            "Order cancelled",
            extra={"order_id": order_id, "order_reference": order.order_reference, "actor": actor.id},
        )
        return CancellationResult(order=map_detailed(order), already_cancelled=False)
