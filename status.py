"""
Order status machine.

    PENDING -> CONFIRMED -> PREPARING -> READY -> DELIVERING -> DELIVERED

CANCELLED can be reached from any state that is not terminal. DELIVERED and
CANCELLED are terminal.

In strict mode a move must go forward along the path (skipping steps is
allowed, pickup orders never go through DELIVERING) or to CANCELLED. In
permissive mode any known status is accepted, matching an admin dashboard
that lets staff pick any status.
"""

from typing import Optional

from errors import InvalidTransitionError, ValidationError
from schemas import OrderStatus

HAPPY_PATH = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.DELIVERING,
    OrderStatus.DELIVERED,
)

TERMINAL_STATES = frozenset([OrderStatus.DELIVERED, OrderStatus.CANCELLED])

INITIAL_STATUS = OrderStatus.PENDING


def parse_status(value: Optional[str]) -> OrderStatus:
    if not value:
        raise ValidationError("Status is required")
    try:
        return OrderStatus(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationError(f"Invalid status {value!r}; expected one of {allowed}")


def next_status(current: OrderStatus) -> Optional[OrderStatus]:
    """The next step on the happy path, or None at the end of it."""
    current = OrderStatus(current)
    if current not in HAPPY_PATH:
        return None
    index = HAPPY_PATH.index(current)
    return HAPPY_PATH[index + 1] if index + 1 < len(HAPPY_PATH) else None


def can_transition(current: OrderStatus, target: OrderStatus, strict: bool = True) -> bool:
    current, target = OrderStatus(current), OrderStatus(target)
    if not strict:
        return True
    if current in TERMINAL_STATES:
        return False
    if target == OrderStatus.CANCELLED:
        return True
    return HAPPY_PATH.index(target) > HAPPY_PATH.index(current)


def check_transition(current: OrderStatus, target: OrderStatus, strict: bool = True) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is allowed."""
    if can_transition(current, target, strict=strict):
        return
    current, target = OrderStatus(current), OrderStatus(target)
    if current in TERMINAL_STATES:
        raise InvalidTransitionError(
            f"Order is {current.value} and can no longer change status"
        )
    raise InvalidTransitionError(
        f"Cannot move order from {current.value} to {target.value}"
    )
