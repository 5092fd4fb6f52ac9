# mealhub/domain/status.py
"""
Order status state machine.

Single source of truth for which status changes are legal and who may make
them. Pure: no I/O, no clock, no framework imports. The API service calls
`ensure_transition` before every write; client controllers use
`allowed_next` / `provider_actions` to decide what to offer.
"""
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY_FOR_PICKUP = "READY_FOR_PICKUP"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class Role(str, Enum):
    CUSTOMER = "CUSTOMER"
    PROVIDER = "PROVIDER"
    ADMIN = "ADMIN"


class PaymentMethod(str, Enum):
    CASH_ON_DELIVERY = "CASH_ON_DELIVERY"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class CancelWindow(str, Enum):
    """Statuses from which a customer may cancel their own order."""

    PENDING_ONLY = "PENDING_ONLY"
    PENDING_OR_CONFIRMED = "PENDING_OR_CONFIRMED"


# Display order of the tracker. CANCELLED is a side branch, not a step.
PROGRESSION: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY_FOR_PICKUP,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)

# Steps that may legitimately never appear in an order's history.
OPTIONAL_STEPS: frozenset[OrderStatus] = frozenset({OrderStatus.READY_FOR_PICKUP})

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
)

# current -> ordered targets the provider may pick.
# Nobody moves an order *into* READY_FOR_PICKUP; an order already there
# (set system-side) continues like PREPARING.
PROVIDER_TRANSITIONS: dict[OrderStatus, tuple[OrderStatus, ...]] = {
    OrderStatus.PENDING: (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    OrderStatus.CONFIRMED: (OrderStatus.PREPARING, OrderStatus.CANCELLED),
    OrderStatus.PREPARING: (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED),
    OrderStatus.READY_FOR_PICKUP: (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED),
    OrderStatus.OUT_FOR_DELIVERY: (OrderStatus.DELIVERED,),
    OrderStatus.DELIVERED: (),
    OrderStatus.CANCELLED: (),
}

CANCEL_WINDOWS: dict[CancelWindow, frozenset[OrderStatus]] = {
    CancelWindow.PENDING_ONLY: frozenset({OrderStatus.PENDING}),
    CancelWindow.PENDING_OR_CONFIRMED: frozenset(
        {OrderStatus.PENDING, OrderStatus.CONFIRMED}
    ),
}

DEFAULT_CANCEL_WINDOW = CancelWindow.PENDING_OR_CONFIRMED

PROVIDER_ACTION_LABELS: dict[OrderStatus, str] = {
    OrderStatus.CONFIRMED: "Confirm Order",
    OrderStatus.PREPARING: "Start Preparing",
    OrderStatus.OUT_FOR_DELIVERY: "Out for Delivery",
    OrderStatus.DELIVERED: "Mark as Delivered",
    OrderStatus.CANCELLED: "Cancel Order",
}

# label, visual variant
STATUS_BADGES: dict[OrderStatus, tuple[str, str]] = {
    OrderStatus.PENDING: ("Pending", "warning"),
    OrderStatus.CONFIRMED: ("Confirmed", "info"),
    OrderStatus.PREPARING: ("Preparing", "info"),
    OrderStatus.READY_FOR_PICKUP: ("Ready for Pickup", "info"),
    OrderStatus.OUT_FOR_DELIVERY: ("Out for Delivery", "info"),
    OrderStatus.DELIVERED: ("Delivered", "success"),
    OrderStatus.CANCELLED: ("Cancelled", "danger"),
}

OTHER_REASON = "Other"

CANCELLATION_REASONS: tuple[str, ...] = (
    "Changed my mind",
    "Ordered by mistake",
    "Found a better price elsewhere",
    "Delivery taking too long",
    "Wrong items ordered",
    OTHER_REASON,
)


class InvalidTransition(Exception):
    """A status change that the state machine does not allow."""

    def __init__(self, current: OrderStatus, target: OrderStatus, role: Role):
        self.current = current
        self.target = target
        self.role = role
        super().__init__(
            f"Invalid status transition for {role.value.lower()}: "
            f"{current.value} -> {target.value}"
        )


class InvalidCancellationReason(ValueError):
    """Cancellation reason missing, or 'Other' chosen without text."""


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def cancel_eligible(
    status: OrderStatus,
    window: CancelWindow = DEFAULT_CANCEL_WINDOW,
) -> bool:
    """True if a customer may cancel an order currently in `status`."""
    return status in CANCEL_WINDOWS[window]


def allowed_next(
    current: OrderStatus,
    role: Role,
    window: CancelWindow = DEFAULT_CANCEL_WINDOW,
) -> tuple[OrderStatus, ...]:
    """
    Ordered tuple of statuses `role` may move an order to from `current`.

      - PROVIDER: forward steps from PROVIDER_TRANSITIONS (plus CANCELLED
        where listed)
      - CUSTOMER: CANCELLED while inside the cancel window, else nothing
      - ADMIN:    nothing (read-only visibility)
    """
    if role is Role.PROVIDER:
        return PROVIDER_TRANSITIONS[current]
    if role is Role.CUSTOMER and cancel_eligible(current, window):
        return (OrderStatus.CANCELLED,)
    return ()


def can_transition(
    current: OrderStatus,
    target: OrderStatus,
    role: Role,
    window: CancelWindow = DEFAULT_CANCEL_WINDOW,
) -> bool:
    return target in allowed_next(current, role, window)


def ensure_transition(
    current: OrderStatus,
    target: OrderStatus,
    role: Role,
    window: CancelWindow = DEFAULT_CANCEL_WINDOW,
) -> None:
    """
    Raise InvalidTransition unless `role` may move `current` -> `target`.

    Re-applying the current status is not a transition and is rejected too.
    """
    if not can_transition(current, target, role, window):
        raise InvalidTransition(current, target, role)


def provider_actions(current: OrderStatus) -> tuple[tuple[OrderStatus, str], ...]:
    """(target, button label) pairs offered to the provider, in display order."""
    return tuple(
        (target, PROVIDER_ACTION_LABELS[target])
        for target in PROVIDER_TRANSITIONS[current]
    )


def status_badge(status: OrderStatus) -> tuple[str, str]:
    return STATUS_BADGES[status]


def resolve_reason(choice: str | None, other_text: str | None = None) -> str:
    """
    Turn a picked suggestion (and optional free text) into the stored reason.

      - one of the fixed suggestions -> stored verbatim
      - "Other" with non-empty text  -> the stripped free text
      - "Other" without text         -> "Other" is not accepted
      - anything else non-empty      -> treated as free text under "Other"

    Raises:
        InvalidCancellationReason: if nothing usable was provided.
    """
    choice = (choice or "").strip()
    other_text = (other_text or "").strip()

    if not choice:
        raise InvalidCancellationReason("Please select a reason for cancellation")

    if choice == OTHER_REASON:
        if not other_text:
            raise InvalidCancellationReason(
                "Please describe the reason for cancellation"
            )
        return other_text

    return choice
