# app/services/orders/status_rules.py
"""
Sales order status lifecycle.

Forward progress runs
PENDING -> PARTIALLY_APPROVED -> APPROVED -> DELIVERY_IN_PROCESS
-> PARTIALLY_DELIVERED -> DELIVERED -> COMPLETED.
CANCELLED is absorbing and can be reached from anything short of DELIVERED.

Two sources move an order forward: quantities shipped by stock-out
(``derive_status_from_quantities``) and explicit requests from the QR channel
(``validate_explicit_advance``). Neither ever moves an order backwards.
"""

from app.core.exceptions import InvalidTransition, ValidationError
from app.models.enums.sales_order_status import SalesOrderStatus
from app.utils.logger import get_logger

logger = get_logger(__name__)

FORWARD_ORDER = (
    SalesOrderStatus.PENDING,
    SalesOrderStatus.PARTIALLY_APPROVED,
    SalesOrderStatus.APPROVED,
    SalesOrderStatus.DELIVERY_IN_PROCESS,
    SalesOrderStatus.PARTIALLY_DELIVERED,
    SalesOrderStatus.DELIVERED,
    SalesOrderStatus.COMPLETED,
)

_RANK = {status: index for index, status in enumerate(FORWARD_ORDER)}

TERMINAL_STATUSES = frozenset({SalesOrderStatus.CANCELLED, SalesOrderStatus.COMPLETED})

# cancelling these would un-ship goods already with the customer
NON_CANCELLABLE_STATUSES = frozenset({SalesOrderStatus.DELIVERED, SalesOrderStatus.COMPLETED})

EXPLICIT_ADVANCE_TARGETS = frozenset({
    SalesOrderStatus.APPROVED,
    SalesOrderStatus.DELIVERY_IN_PROCESS,
    SalesOrderStatus.DELIVERED,
    SalesOrderStatus.COMPLETED,
})

# statuses still waiting on the warehouse
OUTGOING_STATUSES = (
    SalesOrderStatus.PENDING,
    SalesOrderStatus.PARTIALLY_APPROVED,
    SalesOrderStatus.PARTIALLY_DELIVERED,
)


def rank(status: SalesOrderStatus) -> int:
    return _RANK[status]


def is_terminal(status: SalesOrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def parse_status(value) -> SalesOrderStatus:
    if isinstance(value, SalesOrderStatus):
        return value
    if value is None or not str(value).strip():
        raise ValidationError("Status value is required")
    try:
        return SalesOrderStatus(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"Invalid status value provided: {value}")


def derive_status_from_quantities(
    current: SalesOrderStatus,
    total_ordered: int,
    total_approved: int,
) -> SalesOrderStatus:
    """Status implied by shipped quantities, never behind ``current``."""
    if is_terminal(current):
        raise InvalidTransition(current, "quantity update")

    if total_ordered <= 0 or not 0 <= total_approved <= total_ordered:
        raise ValidationError(
            "Approved quantity must lie between zero and the ordered quantity",
            {"total_ordered": total_ordered, "total_approved": total_approved},
        )

    if total_approved == 0:
        candidate = SalesOrderStatus.PENDING
    elif total_approved < total_ordered:
        if rank(current) > rank(SalesOrderStatus.APPROVED):
            candidate = SalesOrderStatus.PARTIALLY_DELIVERED
        else:
            candidate = SalesOrderStatus.PARTIALLY_APPROVED
    else:
        candidate = SalesOrderStatus.APPROVED

    if rank(candidate) < rank(current):
        logger.debug(
            "Keeping forward status",
            extra={"current": current.value, "derived": candidate.value},
        )
        return current
    return candidate


def validate_explicit_advance(
    current: SalesOrderStatus,
    target: SalesOrderStatus,
) -> SalesOrderStatus:
    if (
        target not in EXPLICIT_ADVANCE_TARGETS
        or is_terminal(current)
        or rank(target) <= rank(current)
    ):
        logger.warning(
            "Invalid status transition",
            extra={"current": current.value, "target": target.value},
        )
        raise InvalidTransition(current, target)
    return target


def validate_cancellation(current: SalesOrderStatus) -> bool:
    """True when the order still needs cancelling, False when it already is."""
    if current == SalesOrderStatus.CANCELLED:
        return False
    if current in NON_CANCELLABLE_STATUSES:
        raise InvalidTransition(current, SalesOrderStatus.CANCELLED)
    return True
