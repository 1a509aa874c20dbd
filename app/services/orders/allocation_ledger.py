# app/services/orders/allocation_ledger.py
"""
Ordered vs. approved (shipped) quantities of a sales order.

Pure bookkeeping: nothing here touches the database or inventory. A stock-out
is first planned against a full read of the order, and only a plan that
passes every bound is applied, so a rejected request leaves every item as it
was.
"""

from dataclasses import dataclass
from decimal import Decimal

from app.core.exceptions import NotFound, QuantityExceeded, ValidationError
from app.models.enums.order_item_status import OrderItemStatus
from app.models.orders.sales_order_models import SalesOrder, SalesOrderItem
from app.utils.decimal_utils import to_decimal


@dataclass(frozen=True)
class AllocationLine:
    item: SalesOrderItem
    quantity: int

    @property
    def product_id(self) -> str:
        return self.item.product_id


def remaining_quantity(item: SalesOrderItem) -> int:
    return item.quantity - item.approved_quantity


def _parse_quantity(product_id: str, value) -> int:
    # bool is an int subclass; "true" is not a quantity
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            f"Quantity for {product_id} must be a whole number",
            {"product_id": product_id, "quantity": value},
        )
    if value < 0:
        raise ValidationError(
            f"Cannot ship a negative quantity for {product_id}",
            {"product_id": product_id, "quantity": value},
        )
    return value


def plan_stock_out(
    order: SalesOrder,
    item_quantities: dict[str, int],
) -> list[AllocationLine]:
    if not item_quantities:
        raise ValidationError("Item quantities are required")

    items_by_product = {item.product_id: item for item in order.items}

    unknown = sorted(set(item_quantities) - set(items_by_product))
    if unknown:
        raise NotFound(
            f"Products not part of order {order.order_reference}: {', '.join(unknown)}",
            {"product_ids": unknown},
        )

    lines: list[AllocationLine] = []
    violations: list[dict] = []

    for product_id, raw_quantity in item_quantities.items():
        quantity = _parse_quantity(product_id, raw_quantity)
        if quantity == 0:
            continue

        item = items_by_product[product_id]
        remaining = remaining_quantity(item)
        if quantity > remaining:
            violations.append(
                {
                    "product_id": product_id,
                    "requested": quantity,
                    "remaining": remaining,
                }
            )
            continue

        lines.append(AllocationLine(item=item, quantity=quantity))

    if violations:
        raise QuantityExceeded(violations)

    if not lines:
        raise ValidationError("At least one item must have a quantity greater than zero")

    return lines


def item_status_for(item: SalesOrderItem) -> OrderItemStatus:
    if item.approved_quantity == 0:
        return OrderItemStatus.PENDING
    if item.approved_quantity < item.quantity:
        return OrderItemStatus.PARTIALLY_APPROVED
    return OrderItemStatus.APPROVED


def apply_allocation(lines: list[AllocationLine]) -> None:
    for line in lines:
        item = line.item
        new_approved = item.approved_quantity + line.quantity
        if not 0 <= new_approved <= item.quantity:
            # plan_stock_out guarantees this; a stale plan must not slip through
            raise QuantityExceeded(
                [
                    {
                        "product_id": item.product_id,
                        "requested": line.quantity,
                        "remaining": remaining_quantity(item),
                    }
                ]
            )
        item.approved_quantity = new_approved
        item.status = item_status_for(item)


def release_lines(order: SalesOrder) -> list[AllocationLine]:
    """Reserved-but-unshipped quantity per item, as handed back on cancel."""
    return [
        AllocationLine(item=item, quantity=remaining_quantity(item))
        for item in order.items
        if remaining_quantity(item) > 0
    ]


def mark_items_cancelled(order: SalesOrder) -> None:
    for item in order.items:
        if item.status != OrderItemStatus.APPROVED:
            item.status = OrderItemStatus.CANCELLED


def order_totals(order: SalesOrder) -> tuple[int, int, Decimal]:
    total_ordered = sum(item.quantity for item in order.items)
    total_approved = sum(item.approved_quantity for item in order.items)
    total_amount = to_decimal(
        sum((to_decimal(item.unit_price) * item.quantity for item in order.items), Decimal("0"))
    )
    return total_ordered, total_approved, total_amount
