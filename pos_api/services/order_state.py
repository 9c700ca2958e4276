"""Status transitions for orders.

Statuses form the progression pending -> accepted -> preparing -> prepared
-> completed -> paid, but by default any status may be set from any other.
``apply_status`` is the single place that decides what a transition writes,
so callers never compute timestamps themselves.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from ..core.errors import ValidationError
from ..models.order import OrderStatus

STATUS_SEQUENCE = [
    OrderStatus.PENDING,
    OrderStatus.ACCEPTED,
    OrderStatus.PREPARING,
    OrderStatus.PREPARED,
    OrderStatus.COMPLETED,
    OrderStatus.PAID,
]

# Fields stamped with the transition time when the status is entered
STATUS_TIMESTAMPS = {
    OrderStatus.PREPARED: "prepared_at",
    OrderStatus.PAID: "paid_at",
}


def is_forward_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return STATUS_SEQUENCE.index(new) >= STATUS_SEQUENCE.index(current)


def apply_status(
    new_status: OrderStatus,
    now: datetime,
    current_status: Optional[OrderStatus] = None,
    strict: bool = False,
) -> Dict[str, Any]:
    """Return the column changes for moving an order into ``new_status``.

    With ``strict`` the move must not go backwards from ``current_status``.
    """
    if strict and current_status is not None and not is_forward_transition(current_status, new_status):
        raise ValidationError(
            f"Cannot change status from {current_status.value} to {new_status.value}"
        )

    changes: Dict[str, Any] = {"status": new_status, "updated_at": now}
    timestamp_field = STATUS_TIMESTAMPS.get(new_status)
    if timestamp_field:
        changes[timestamp_field] = now
    return changes
