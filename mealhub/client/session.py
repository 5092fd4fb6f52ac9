# mealhub/client/session.py
"""
Order session controllers.

One controller per open order view. Each owns its order snapshot; nothing
is shared between controllers, so several views (even of the same order)
can load and poll concurrently on one event loop.

Capabilities by role:

  - CustomerOrderSession: Load / Poll / Cancel
  - ProviderOrderSession: Load / Poll / AdvanceStatus
  - AdminOrderSession:    Load / Poll (read-only)

Snapshot writes follow one rule: a response is applied only if its
`updated_at` is newer than the snapshot on display. A late poll carrying
pre-mutation state therefore never overwrites a confirmed mutation.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from enum import Enum

import httpx

from mealhub.client.api import OrdersApi
from mealhub.client.errors import (
    ActionInProgress,
    ApiError,
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    OrderClientError,
    ValidationError,
    classify,
)
from mealhub.core.config import get_settings
from mealhub.domain.status import (
    CANCELLATION_REASONS,
    CancelWindow,
    InvalidCancellationReason,
    OrderStatus,
    Role,
    allowed_next,
    cancel_eligible,
    is_terminal,
    provider_actions,
    resolve_reason,
)
from mealhub.domain.tracker import Eligibility, TrackerView, eligibility, project
from mealhub.schemas.order import OrderDetailRead

logger = logging.getLogger(__name__)

CANCEL_REDIRECT_PATH = "/meals"
ORDER_LIST_PATH = "/orders"


class SessionState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"          # retryable failure of the initial load
    NOT_FOUND = "not_found"  # terminal: missing or not yours


class PollSubscription:
    """
    Periodic refresh of one order while it is non-terminal.

    Returned by `OrderSession.poll()`. The owner must call `stop()` (or use
    it as an async context manager) when the view goes away; the loop also
    ends by itself as soon as a terminal status is observed.
    """

    def __init__(self, session: "OrderSession", interval: float):
        self.session = session
        self.interval = interval
        self.ticks = 0
        self._task: asyncio.Task | None = asyncio.get_running_loop().create_task(
            self._run(), name=f"poll-order-{session.order_id}"
        )

    @property
    def stopped(self) -> bool:
        return self._task is None or self._task.done()

    def stop(self) -> None:
        task, self._task = self._task, None
        # From inside the loop itself the terminal check ends it.
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def wait(self) -> None:
        """Wait until the loop ends on its own (terminal status)."""
        task = self._task
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def __aenter__(self) -> "PollSubscription":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.stop()

    async def _run(self) -> None:
        session = self.session
        while not session.terminal:
            await asyncio.sleep(self.interval)
            if session.terminal or session.closed:
                break
            self.ticks += 1
            await session.refresh()
        logger.debug("Polling stopped for order %s", session.order_id)


class OrderSession:
    """
    Shared Load / Poll behaviour for a single order detail view.

    Attributes:
        order: last applied server snapshot (None until the first load)
        state: SessionState of the view
        error: classified error of the last failed load
        action_error: message of the last failed mutation (inline error)
        busy: a mutation is in flight; the trigger control is disabled
        banner_visible: the "order placed" banner is showing
    """

    role: Role = Role.ADMIN

    def __init__(
        self,
        api: OrdersApi,
        order_id: uuid.UUID | str,
        *,
        poll_interval: float | None = None,
        banner_seconds: float | None = None,
        just_placed: bool = False,
        cancel_window: CancelWindow | None = None,
    ):
        settings = get_settings()
        self.api = api
        self.order_id = str(order_id).strip() if order_id is not None else ""
        self.poll_interval = (
            poll_interval if poll_interval is not None else settings.POLL_INTERVAL_SECONDS
        )
        self.banner_seconds = (
            banner_seconds if banner_seconds is not None else settings.SUCCESS_BANNER_SECONDS
        )
        self.cancel_window = cancel_window or settings.CUSTOMER_CANCEL_WINDOW

        self.order: OrderDetailRead | None = None
        self.state = SessionState.IDLE
        self.error: OrderClientError | None = None
        self.action_error: str | None = None
        self.busy = False
        self.closed = False

        self.banner_visible = just_placed
        self._banner_task: asyncio.Task | None = None
        self._subscription: PollSubscription | None = None

    # -------- Derived view state --------

    @property
    def terminal(self) -> bool:
        return self.order is not None and is_terminal(self.order.status)

    @property
    def retryable(self) -> bool:
        return self.state == SessionState.ERROR and self.error is not None and self.error.retryable

    @property
    def fallback_path(self) -> str:
        """Where the "not found" view links back to."""
        return ORDER_LIST_PATH

    def view(self) -> TrackerView | None:
        if self.order is None:
            return None
        return project(self.order)

    def eligibility(self) -> Eligibility:
        if self.order is None:
            return Eligibility()
        return eligibility(self.order.status, self.role, self.cancel_window)

    # -------- Lifecycle --------

    async def open(self) -> "OrderSession":
        """
        Mount: start the banner timer (just-placed mode), Load, then Poll
        if the order is still active.
        """
        if self.banner_visible:
            self._start_banner()
        await self.load()
        if self.state == SessionState.READY:
            self.poll()
        return self

    async def close(self) -> None:
        """Unmount: release the poll timer and the banner timer."""
        self.closed = True
        if self._subscription is not None:
            self._subscription.stop()
            self._subscription = None
        if self._banner_task is not None:
            self._banner_task.cancel()
            self._banner_task = None

    async def __aenter__(self) -> "OrderSession":
        return await self.open()

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # -------- Load / Poll --------

    async def load(self) -> OrderDetailRead | None:
        """
        Fetch the order and make it the displayed snapshot.

        Failures become view state instead of exceptions:
          - transient       -> ERROR (retry offered)
          - not found / 401 / 403 -> NOT_FOUND (no retry)
        """
        if not self.order_id:
            self.error = ValidationError("Order id is required")
            self.state = SessionState.NOT_FOUND
            return None

        self.state = SessionState.LOADING
        self.error = None
        try:
            order = await self.api.get_order(self.role, self.order_id)
        except (httpx.HTTPError, ApiError) as e:
            error = classify(e)
            logger.error("Failed to load order %s: %s", self.order_id, error.message)
            self.error = error
            if isinstance(error, (NotFoundError, AuthorizationError)):
                self.state = SessionState.NOT_FOUND
            else:
                self.state = SessionState.ERROR
            return None

        self._apply(order)
        self.state = SessionState.READY
        return self.order

    async def retry(self) -> OrderDetailRead | None:
        """Re-run a failed initial load. Only transient failures qualify."""
        if not self.retryable:
            return self.order
        order = await self.load()
        if order is not None and not self.closed:
            self.poll()
        return order

    async def refresh(self) -> None:
        """
        Background re-fetch used by polling.

        Any failure, malformed responses included, is logged and swallowed;
        the last good snapshot stays and the next tick tries again.
        """
        try:
            order = await self.api.get_order(self.role, self.order_id)
        except (httpx.HTTPError, ApiError) as e:
            error = classify(e)
            logger.warning("Error refreshing order %s: %s", self.order_id, error.message)
            return
        self._apply(order)

    def poll(self) -> PollSubscription | None:
        """
        Start polling every `poll_interval` seconds while non-terminal.

        Returns the live subscription (existing one if already polling), or
        None when there is nothing to poll.
        """
        if self.closed or self.order is None or self.terminal:
            return None
        if self._subscription is not None and not self._subscription.stopped:
            return self._subscription
        self._subscription = PollSubscription(self, self.poll_interval)
        return self._subscription

    @property
    def polling(self) -> bool:
        return self._subscription is not None and not self._subscription.stopped

    # -------- Internals --------

    def _apply(self, order: OrderDetailRead) -> bool:
        """Apply `order` if it is newer than the displayed snapshot."""
        if self.order is not None and order.updated_at <= self.order.updated_at:
            logger.debug(
                "Discarding stale snapshot of order %s (%s <= %s)",
                self.order_id,
                order.updated_at,
                self.order.updated_at,
            )
            return False
        self.order = order
        if is_terminal(order.status) and self._subscription is not None:
            self._subscription.stop()
            self._subscription = None
        return True

    def _start_banner(self) -> None:
        async def hide_banner() -> None:
            await asyncio.sleep(self.banner_seconds)
            self.banner_visible = False

        self._banner_task = asyncio.get_running_loop().create_task(hide_banner())

    async def _mutate(self, call, *args) -> OrderDetailRead:
        """
        Run one mutation with the trigger disabled while in flight.

        Success applies the server's order; failure leaves the snapshot
        untouched, records `action_error` and re-raises the classified error.
        """
        if self.busy:
            raise ActionInProgress("A request for this order is already in progress")

        self.busy = True
        self.action_error = None
        try:
            order = await call(*args)
        except (httpx.HTTPError, ApiError) as e:
            error = classify(e)
            logger.warning("Action on order %s failed: %s", self.order_id, error.message)
            self.action_error = error.message
            raise error
        finally:
            self.busy = False

        self._apply(order)
        return self.order

    def _require_loaded(self) -> OrderDetailRead:
        if self.order is None:
            raise ValidationError("Order is not loaded")
        return self.order


class CustomerOrderSession(OrderSession):
    """Customer detail view: track the order and cancel it while allowed."""

    role = Role.CUSTOMER
    cancellation_reasons = CANCELLATION_REASONS

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.redirect_to: str | None = None
        self.redirect_after = get_settings().CANCEL_REDIRECT_SECONDS

    @property
    def can_cancel(self) -> bool:
        return self.order is not None and cancel_eligible(self.order.status, self.cancel_window)

    @property
    def can_review(self) -> bool:
        return self.eligibility().can_review

    async def cancel(self, choice: str | None, other_text: str | None = None) -> OrderDetailRead:
        """
        Cancel the order with a reason from `cancellation_reasons`
        (free text when "Other" is picked).

        Nothing is sent when the reason is missing or the order is outside
        the cancel window. The snapshot changes only once the server has
        answered.
        """
        try:
            reason = resolve_reason(choice, other_text)
        except InvalidCancellationReason as e:
            raise ValidationError(str(e))

        order = self._require_loaded()
        if not cancel_eligible(order.status, self.cancel_window):
            raise InvalidTransitionError(
                f"Orders that are {order.status.value} can no longer be cancelled"
            )

        order = await self._mutate(self.api.cancel_order, self.order_id, reason)
        self.redirect_to = CANCEL_REDIRECT_PATH
        logger.info("Order %s cancelled by customer", self.order_id)
        return order


class ProviderOrderSession(OrderSession):
    """Provider detail view: track the order and advance its status."""

    role = Role.PROVIDER

    def next_actions(self) -> tuple[tuple[OrderStatus, str], ...]:
        """Actions for the last server-confirmed status, in display order."""
        if self.order is None:
            return ()
        return provider_actions(self.order.status)

    async def advance_status(
        self,
        new_status: OrderStatus | str,
        *,
        note: str | None = None,
        confirm: bool = False,
    ) -> OrderDetailRead:
        """
        Move the order to `new_status`.

        Cancelling needs `confirm=True` and a non-empty `note`. Targets
        outside the legal next set are refused without a request.
        """
        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise ValidationError(f"Unknown order status: {new_status}")

        note = (note or "").strip() or None
        if target == OrderStatus.CANCELLED:
            if not confirm:
                raise ValidationError("Please confirm the cancellation")
            if note is None:
                raise ValidationError("A reason is required to cancel an order")

        order = self._require_loaded()
        if target not in allowed_next(order.status, Role.PROVIDER):
            raise InvalidTransitionError(
                f"Cannot move order from {order.status.value} to {target.value}"
            )

        order = await self._mutate(self.api.update_status, self.order_id, target, note)
        logger.info("Order %s moved to %s by provider", self.order_id, order.status.value)
        return order


class AdminOrderSession(OrderSession):
    """Admin detail view: read-only."""

    role = Role.ADMIN


SESSION_CLASSES: dict[Role, type[OrderSession]] = {
    Role.CUSTOMER: CustomerOrderSession,
    Role.PROVIDER: ProviderOrderSession,
    Role.ADMIN: AdminOrderSession,
}


def session_for(role: Role, api: OrdersApi, order_id: uuid.UUID | str, **kwargs) -> OrderSession:
    """Controller configured for `role`."""
    return SESSION_CLASSES[role](api, order_id, **kwargs)
