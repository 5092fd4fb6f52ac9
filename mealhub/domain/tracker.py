# mealhub/domain/tracker.py
"""
Order status tracker.

Projects an order snapshot (status + status history) into the step-by-step
progression shown on order detail pages, and computes what the viewing role
may do next. Everything here is pure and safe to call on every render.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Protocol, Sequence

from mealhub.domain.status import (
    DEFAULT_CANCEL_WINDOW,
    OPTIONAL_STEPS,
    PROGRESSION,
    CancelWindow,
    OrderStatus,
    Role,
    cancel_eligible,
    provider_actions,
)

logger = logging.getLogger(__name__)

COMPLETED = "completed"
CURRENT = "current"
PENDING = "pending"
SKIPPED = "skipped"

# status -> (label, description)
STEP_TEXT: dict[OrderStatus, tuple[str, str]] = {
    OrderStatus.PENDING: ("Order Placed", "Your order has been received"),
    OrderStatus.CONFIRMED: ("Confirmed", "Restaurant confirmed your order"),
    OrderStatus.PREPARING: ("Preparing", "Your food is being prepared"),
    OrderStatus.READY_FOR_PICKUP: ("Ready", "Food is ready for delivery"),
    OrderStatus.OUT_FOR_DELIVERY: ("On the Way", "Your order is out for delivery"),
    OrderStatus.DELIVERED: ("Delivered", "Order delivered successfully"),
}


class HistoryEntryLike(Protocol):
    status: OrderStatus
    note: str | None
    created_at: datetime


class OrderLike(Protocol):
    status: OrderStatus
    status_history: Sequence[HistoryEntryLike]
    estimated_delivery_time: datetime | None


@dataclass(frozen=True)
class TrackerStep:
    status: OrderStatus
    label: str
    description: str
    state: str
    reached_at: datetime | None = None


@dataclass(frozen=True)
class TrackerView:
    cancelled: bool
    steps: tuple[TrackerStep, ...] = ()
    cancellation_note: str | None = None
    estimated_delivery: str | None = None
    progress: float = 0.0
    current_message: str | None = None
    integrity_warning: bool = False


@dataclass(frozen=True)
class Eligibility:
    can_cancel: bool = False
    can_review: bool = False
    next_actions: tuple[tuple[OrderStatus, str], ...] = ()


def _first_entry(
    history: Iterable[HistoryEntryLike],
    status: OrderStatus,
) -> HistoryEntryLike | None:
    for entry in history:
        if entry.status == status:
            return entry
    return None


def format_eta(value: datetime | None) -> str | None:
    """Short clock display for an estimated delivery time (e.g. '18:45')."""
    if value is None:
        return None
    return value.strftime("%H:%M")


def project_status(
    status: OrderStatus,
    history: Sequence[HistoryEntryLike] = (),
    estimated_delivery: str | None = None,
    cancelled: bool = False,
) -> TrackerView:
    """
    Build the tracker view from raw inputs.

    Rules:
      - CANCELLED (or the explicit flag) replaces the progression with a
        single cancelled view carrying the note of the CANCELLED entry.
      - Otherwise each PROGRESSION step is:
          before current -> completed (skipped if optional and never reached)
          == current     -> current
          after current  -> pending
      - An unknown current status yields no completed steps and sets
        `integrity_warning`; it is logged, never raised.
    """
    if cancelled or status == OrderStatus.CANCELLED:
        entry = _first_entry(history, OrderStatus.CANCELLED)
        return TrackerView(
            cancelled=True,
            cancellation_note=entry.note if entry is not None else None,
        )

    try:
        current_index = PROGRESSION.index(status)
    except ValueError:
        logger.warning("Order status %r is not part of the progression", status)
        current_index = -1

    steps: list[TrackerStep] = []
    for index, step_status in enumerate(PROGRESSION):
        entry = _first_entry(history, step_status)
        if current_index < 0 or index > current_index:
            state = PENDING
        elif index == current_index:
            state = CURRENT
        elif step_status in OPTIONAL_STEPS and entry is None:
            state = SKIPPED
        else:
            state = COMPLETED

        label, description = STEP_TEXT[step_status]
        steps.append(
            TrackerStep(
                status=step_status,
                label=label,
                description=description,
                state=state,
                reached_at=entry.created_at if entry is not None else None,
            )
        )

    delivered = status == OrderStatus.DELIVERED
    return TrackerView(
        cancelled=False,
        steps=tuple(steps),
        estimated_delivery=None if delivered else estimated_delivery,
        progress=max(current_index, 0) / (len(PROGRESSION) - 1),
        current_message=(
            None
            if delivered or current_index < 0
            else STEP_TEXT[PROGRESSION[current_index]][1]
        ),
        integrity_warning=current_index < 0,
    )


def project(order: OrderLike) -> TrackerView:
    """Tracker view for an order snapshot. Never mutates `order`."""
    return project_status(
        order.status,
        tuple(order.status_history or ()),
        estimated_delivery=format_eta(order.estimated_delivery_time),
        cancelled=order.status == OrderStatus.CANCELLED,
    )


def eligibility(
    status: OrderStatus,
    role: Role,
    window: CancelWindow = DEFAULT_CANCEL_WINDOW,
) -> Eligibility:
    """
    What `role` may do with an order in `status`.

    Customers get cancel/review flags; providers get their action list;
    admins get nothing.
    """
    if role is Role.CUSTOMER:
        return Eligibility(
            can_cancel=cancel_eligible(status, window),
            can_review=status == OrderStatus.DELIVERED,
        )
    if role is Role.PROVIDER:
        return Eligibility(next_actions=provider_actions(status))
    return Eligibility()
