"""Stock-out and cancellation against a real (in-memory) database."""

import pytest

from app.constants.inventory_movement_type import InventoryMovementType
from app.core.exceptions import (
    InvalidTransition,
    InventoryUnavailable,
    NotFound,
    OrderBusy,
    QuantityExceeded,
    Unauthorized,
)
from app.core.order_locks import order_locks
from app.models.enums.order_item_status import OrderItemStatus
from app.models.enums.sales_order_status import SalesOrderStatus
from app.services.inventory.inventory_stock_service import SqlInventoryStore
from app.services.orders.fulfillment_service import cancel_order, stock_out


def _approved(order):
    return {item.product_id: item.approved_quantity for item in order.items}


class ExplodingInventory:
    """Keeps its own counters outside the session and fails on the second product."""

    joins_transaction = False

    def __init__(self, on_hand=10):
        self.calls = []
        self.on_hand = {"PRD001": on_hand, "PRD002": on_hand}

    async def fulfill_reservation(self, product_id, quantity, *, reference, actor_id):
        self.calls.append(product_id)
        if len(self.calls) > 1:
            raise RuntimeError("inventory backend went away")
        self.on_hand[product_id] -= quantity

    async def release_reservation(self, product_id, quantity, *, reference, actor_id):
        raise AssertionError("not used")

    async def revert_fulfillment(self, product_id, quantity, *, reference, actor_id):
        self.on_hand[product_id] += quantity


# =====================================================
# STOCK OUT
# =====================================================
class TestStockOut:
    async def test_completing_the_last_item_approves_the_order(
        self, db, make_order, fetch_order, fetch_stock, count_movements, manager
    ):
        order_id = await make_order(
            [("PRD001", 5, 5), ("PRD002", 3, 1)],
            status=SalesOrderStatus.PARTIALLY_APPROVED,
            on_hand=10,
        )

        view = await stock_out(db, order_id, {"PRD002": 2}, manager)

        assert view.status == SalesOrderStatus.APPROVED
        assert view.total_approved_quantity == view.total_ordered_quantity == 8
        assert view.confirmed_by == "manager-1"

        order = await fetch_order(order_id)
        assert order.status == SalesOrderStatus.APPROVED
        assert _approved(order) == {"PRD001": 5, "PRD002": 3}

        stock = await fetch_stock("PRD002")
        assert (stock.current_stock, stock.reserved_stock) == (8, 0)
        assert await count_movements(InventoryMovementType.STOCK_OUT.value) == 1

    async def test_partial_shipment(self, db, make_order, fetch_order, manager):
        order_id = await make_order([("PRD001", 4, 0), ("PRD002", 2, 0)])

        view = await stock_out(db, order_id, {"PRD001": 1}, manager)

        assert view.status == SalesOrderStatus.PARTIALLY_APPROVED
        items = {item.product_id: item for item in view.items}
        assert items["PRD001"].remaining_quantity == 3
        assert items["PRD001"].status == OrderItemStatus.PARTIALLY_APPROVED
        assert items["PRD002"].status == OrderItemStatus.PENDING

    async def test_shipping_after_dispatch_is_partially_delivered(self, db, make_order, manager):
        order_id = await make_order(
            [("PRD001", 5, 2)],
            status=SalesOrderStatus.DELIVERY_IN_PROCESS,
        )

        view = await stock_out(db, order_id, {"PRD001": 1}, manager)

        assert view.status == SalesOrderStatus.PARTIALLY_DELIVERED

    async def test_exceeding_remaining_changes_nothing(
        self, db, make_order, fetch_order, fetch_stock, count_movements, manager
    ):
        order_id = await make_order(
            [("PRD001", 5, 5), ("PRD002", 3, 1)],
            status=SalesOrderStatus.PARTIALLY_APPROVED,
            on_hand=10,
        )

        with pytest.raises(QuantityExceeded) as exc:
            await stock_out(db, order_id, {"PRD002": 3}, manager)

        assert exc.value.violations == [{"product_id": "PRD002", "requested": 3, "remaining": 2}]

        order = await fetch_order(order_id)
        assert order.status == SalesOrderStatus.PARTIALLY_APPROVED
        assert _approved(order)["PRD002"] == 1
        assert (await fetch_stock("PRD002")).reserved_stock == 2
        assert await count_movements() == 0

    async def test_one_bad_line_rejects_the_whole_request(self, db, make_order, fetch_order, manager):
        order_id = await make_order([("PRD001", 4, 0), ("PRD002", 2, 0)])

        with pytest.raises(QuantityExceeded):
            await stock_out(db, order_id, {"PRD001": 2, "PRD002": 3}, manager)

        assert _approved(await fetch_order(order_id)) == {"PRD001": 0, "PRD002": 0}

    async def test_inventory_failure_rolls_back_every_line(
        self, db, make_order, fetch_order, fetch_stock, count_movements, manager
    ):
        order_id = await make_order(
            [("PRD001", 4, 0), ("PRD002", 2, 0)],
            without_stock=("PRD002",),
            on_hand=10,
        )

        with pytest.raises(InventoryUnavailable):
            await stock_out(db, order_id, {"PRD001": 2, "PRD002": 1}, manager)

        order = await fetch_order(order_id)
        assert order.status == SalesOrderStatus.PENDING
        assert _approved(order) == {"PRD001": 0, "PRD002": 0}

        stock = await fetch_stock("PRD001")
        assert (stock.current_stock, stock.reserved_stock) == (10, 4)
        assert await count_movements() == 0

    async def test_insufficient_stock(self, db, make_order, fetch_order, manager):
        order_id = await make_order([("PRD001", 5, 0)], on_hand=2)

        with pytest.raises(InventoryUnavailable):
            await stock_out(db, order_id, {"PRD001": 3}, manager)

        assert _approved(await fetch_order(order_id)) == {"PRD001": 0}

    async def test_store_crash_is_reported_as_unavailable(self, db, make_order, fetch_order, manager):
        order_id = await make_order([("PRD001", 4, 0), ("PRD002", 2, 0)])
        inventory = ExplodingInventory()

        with pytest.raises(InventoryUnavailable) as exc:
            await stock_out(db, order_id, {"PRD001": 1, "PRD002": 1}, manager, inventory=inventory)

        assert isinstance(exc.value.__cause__, RuntimeError)
        assert exc.value.details == {"product_id": "PRD002"}

        assert inventory.calls == ["PRD001", "PRD002"]
        assert _approved(await fetch_order(order_id)) == {"PRD001": 0, "PRD002": 0}

    async def test_store_outside_the_session_gets_shipped_lines_back(
        self, db, make_order, fetch_order, manager
    ):
        order_id = await make_order([("PRD001", 4, 0), ("PRD002", 2, 0)])
        inventory = ExplodingInventory(on_hand=10)

        with pytest.raises(InventoryUnavailable):
            await stock_out(db, order_id, {"PRD001": 2, "PRD002": 1}, manager, inventory=inventory)

        assert inventory.on_hand == {"PRD001": 10, "PRD002": 10}
        assert (await fetch_order(order_id)).status == SalesOrderStatus.PENDING

    async def test_revert_fulfillment_restores_stock(
        self, db, make_order, fetch_stock, count_movements
    ):
        await make_order([("PRD001", 4, 0)], on_hand=10)
        store = SqlInventoryStore(db)

        await store.fulfill_reservation("PRD001", 2, reference="SO-0001", actor_id="m-1")
        await store.revert_fulfillment("PRD001", 2, reference="SO-0001", actor_id="m-1")
        await db.commit()

        stock = await fetch_stock("PRD001")
        assert (stock.current_stock, stock.reserved_stock) == (10, 4)
        assert await count_movements(InventoryMovementType.STOCK_OUT_REVERSAL.value) == 1

    async def test_requires_fulfillment_role(self, db, make_order, fetch_order, staff, courier):
        order_id = await make_order()

        for actor in (staff, courier):
            with pytest.raises(Unauthorized):
                await stock_out(db, order_id, {"PRD001": 1}, actor)

        assert _approved(await fetch_order(order_id)) == {"PRD001": 0}

    async def test_unknown_order(self, db, manager):
        with pytest.raises(NotFound):
            await stock_out(db, 999, {"PRD001": 1}, manager)

    @pytest.mark.parametrize("status", [SalesOrderStatus.CANCELLED, SalesOrderStatus.COMPLETED])
    async def test_terminal_orders_are_rejected(self, db, make_order, manager, status):
        order_id = await make_order(status=status)

        with pytest.raises(InvalidTransition):
            await stock_out(db, order_id, {"PRD001": 1}, manager)

    async def test_busy_order_is_rejected(self, db, make_order, fetch_order, manager):
        order_id = await make_order()

        async with order_locks.hold(order_id):
            with pytest.raises(OrderBusy):
                await stock_out(db, order_id, {"PRD001": 1}, manager)

        assert _approved(await fetch_order(order_id)) == {"PRD001": 0}


# =====================================================
# CANCEL
# =====================================================
class TestCancelOrder:
    async def test_pending_order_releases_full_quantity(
        self, db, make_order, fetch_order, fetch_stock, count_movements, manager
    ):
        order_id = await make_order([("PRD001", 5, 0), ("PRD002", 3, 0)], on_hand=20)

        result = await cancel_order(db, order_id, manager)

        assert result.already_cancelled is False
        assert result.order.status == SalesOrderStatus.CANCELLED
        assert result.order.cancelled_by == "manager-1"

        order = await fetch_order(order_id)
        assert order.status == SalesOrderStatus.CANCELLED
        assert {item.status for item in order.items} == {OrderItemStatus.CANCELLED}

        for product_id in ("PRD001", "PRD002"):
            stock = await fetch_stock(product_id)
            assert (stock.current_stock, stock.reserved_stock) == (20, 0)
        assert await count_movements(InventoryMovementType.RESERVATION_RELEASE.value) == 2

    async def test_only_unshipped_quantity_is_released(
        self, db, make_order, fetch_order, fetch_stock, manager
    ):
        order_id = await make_order(
            [("PRD001", 5, 5), ("PRD002", 3, 1)],
            status=SalesOrderStatus.PARTIALLY_APPROVED,
        )

        await cancel_order(db, order_id, manager)

        order = await fetch_order(order_id)
        statuses = {item.product_id: item.status for item in order.items}
        assert statuses == {"PRD001": OrderItemStatus.APPROVED, "PRD002": OrderItemStatus.CANCELLED}
        assert _approved(order) == {"PRD001": 5, "PRD002": 1}
        assert (await fetch_stock("PRD002")).reserved_stock == 0

    async def test_second_cancel_is_a_no_op(
        self, db, make_order, fetch_stock, count_movements, manager
    ):
        order_id = await make_order([("PRD001", 5, 0)], on_hand=20)
        await cancel_order(db, order_id, manager)

        again = await cancel_order(db, order_id, manager)

        assert again.already_cancelled is True
        assert again.order.status == SalesOrderStatus.CANCELLED
        assert (await fetch_stock("PRD001")).reserved_stock == 0
        assert await count_movements() == 1

    async def test_release_never_goes_negative(self, db, make_order, session_factory, fetch_stock, manager):
        from app.models.inventory.inventory_stock_models import InventoryStock

        order_id = await make_order([("PRD001", 5, 0)])
        async with session_factory() as session:
            stock = await session.get(InventoryStock, "PRD001")
            stock.reserved_stock = 2
            await session.commit()

        await cancel_order(db, order_id, manager)

        assert (await fetch_stock("PRD001")).reserved_stock == 0

    @pytest.mark.parametrize("status", [SalesOrderStatus.DELIVERED, SalesOrderStatus.COMPLETED])
    async def test_delivered_orders_cannot_be_cancelled(
        self, db, make_order, fetch_order, count_movements, manager, status
    ):
        order_id = await make_order([("PRD001", 5, 5)], status=status)

        with pytest.raises(InvalidTransition):
            await cancel_order(db, order_id, manager)

        assert (await fetch_order(order_id)).status == status
        assert await count_movements() == 0

    async def test_requires_fulfillment_role(self, db, make_order, fetch_order, staff):
        order_id = await make_order()

        with pytest.raises(Unauthorized):
            await cancel_order(db, order_id, staff)

        assert (await fetch_order(order_id)).status == SalesOrderStatus.PENDING

    async def test_busy_order_is_rejected(self, db, make_order, manager):
        order_id = await make_order()

        async with order_locks.hold(order_id):
            with pytest.raises(OrderBusy):
                await cancel_order(db, order_id, manager)
