# app/services/inventory/inventory_stock_service.py

from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.inventory_movement_type import InventoryMovementType
from app.core.exceptions import InventoryUnavailable
from app.models.inventory.inventory_stock_models import InventoryStock
from app.models.inventory.inventory_movement_models import InventoryMovement
from app.utils.logger import get_logger

logger = get_logger(__name__)

SALES_ORDER_REFERENCE = "SALES_ORDER"


class InventoryStore(Protocol):
    """
    What fulfillment needs from the inventory store.

    Stores that write through the caller's session set ``joins_transaction``
    and are undone by its rollback. Any other store has every successful
    ``fulfill_reservation`` of a failed stock-out handed back through
    ``revert_fulfillment``.
    """

    joins_transaction: bool

    async def fulfill_reservation(self, product_id: str, quantity: int, *, reference: str, actor_id: str) -> None:
        ...

    async def release_reservation(self, product_id: str, quantity: int, *, reference: str, actor_id: str) -> None:
        ...

    async def revert_fulfillment(self, product_id: str, quantity: int, *, reference: str, actor_id: str) -> None:
        ...


class SqlInventoryStore:
    """
    Inventory counters kept in the same database as the orders.

    Changes are flushed, never committed: the caller owns the transaction so a
    failure on any product rolls back the whole fulfillment step.
    """

    joins_transaction = True

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _locked_stock(self, product_id: str) -> InventoryStock:
        stock = await self.db.scalar(
            select(InventoryStock)
            .where(InventoryStock.product_id == product_id)
            .with_for_update()
        )
        if stock is None:
            raise InventoryUnavailable(
                f"No inventory record for product {product_id}",
                {"product_id": product_id},
            )
        return stock

    async def _record(
        self,
        *,
        product_id: str,
        movement_type: InventoryMovementType,
        quantity_change: int,
        reference: str,
        actor_id: str,
    ) -> None:
        self.db.add(
            InventoryMovement(
                product_id=product_id,
                movement_type=movement_type.value,
                quantity_change=quantity_change,
                reference_type=SALES_ORDER_REFERENCE,
                reference_id=reference,
                performed_by=actor_id,
            )
        )
        try:
            await self.db.flush()
        except IntegrityError:
            raise InventoryUnavailable(
                "Concurrent inventory update detected",
                {"product_id": product_id},
            )

    # ------------------------------------
    # Ship: deduct from on-hand and reserved
    # ------------------------------------
    async def fulfill_reservation(self, product_id: str, quantity: int, *, reference: str, actor_id: str) -> None:
        if quantity <= 0:
            raise ValueError("Fulfilled quantity must be positive")

        stock = await self._locked_stock(product_id)

        if quantity > stock.current_stock:
            logger.warning(
                "Insufficient stock",
                extra={
                    "product_id": product_id,
                    "requested": quantity,
                    "current_stock": stock.current_stock,
                },
            )
            raise InventoryUnavailable(
                f"Insufficient stock for product {product_id}",
                {
                    "product_id": product_id,
                    "requested": quantity,
                    "current_stock": stock.current_stock,
                },
            )

        if quantity > stock.reserved_stock:
            raise InventoryUnavailable(
                f"Cannot fulfill more than reserved quantity for product {product_id}",
                {
                    "product_id": product_id,
                    "requested": quantity,
                    "reserved_stock": stock.reserved_stock,
                },
            )

        stock.current_stock -= quantity
        stock.reserved_stock -= quantity

        await self._record(
            product_id=product_id,
            movement_type=InventoryMovementType.STOCK_OUT,
            quantity_change=-quantity,
            reference=reference,
            actor_id=actor_id,
        )
        logger.info(
            "Fulfilled reservation",
            extra={"product_id": product_id, "quantity": quantity, "reference": reference},
        )

    # ------------------------------------
    # Cancel: hand reserved quantity back
    # ------------------------------------
    async def release_reservation(self, product_id: str, quantity: int, *, reference: str, actor_id: str) -> None:
        if quantity <= 0:
            raise ValueError("Released quantity must be positive")

        stock = await self._locked_stock(product_id)

        if stock.reserved_stock < quantity:
            logger.warning(
                "Releasing more than reserved",
                extra={
                    "product_id": product_id,
                    "requested": quantity,
                    "reserved_stock": stock.reserved_stock,
                },
            )

        stock.reserved_stock = max(0, stock.reserved_stock - quantity)

        await self._record(
            product_id=product_id,
            movement_type=InventoryMovementType.RESERVATION_RELEASE,
            quantity_change=quantity,
            reference=reference,
            actor_id=actor_id,
        )
        logger.info(
            "Released reservation",
            extra={"product_id": product_id, "quantity": quantity, "reference": reference},
        )

    # ------------------------------------
    # Undo a ship: on-hand and reserved come back
    # ------------------------------------
    async def revert_fulfillment(self, product_id: str, quantity: int, *, reference: str, actor_id: str) -> None:
        if quantity <= 0:
            raise ValueError("Reverted quantity must be positive")

        stock = await self._locked_stock(product_id)

        stock.current_stock += quantity
        stock.reserved_stock += quantity

        await self._record(
            product_id=product_id,
            movement_type=InventoryMovementType.STOCK_OUT_REVERSAL,
            quantity_change=quantity,
            reference=reference,
            actor_id=actor_id,
        )
        logger.info(
            "Reverted fulfillment",
            extra={"product_id": product_id, "quantity": quantity, "reference": reference},
        )
