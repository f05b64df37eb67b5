from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable

from .auth import AuthSessionManager, SessionSnapshot
from .clients.base import require_id
from .clients.orders import OrdersClient
from .events import Observable
from .exceptions import ApiError, UnauthorizedError, ValidationError
from .models import TERMINAL_STATUSES, DeliveryStatus, Order, OrderDetail, utc_now
from .ui_errors import UserFacingError, classify_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliverySet:
    active: tuple[Order, ...] = ()
    history: tuple[Order, ...] = ()
    loading: bool = False
    refreshing: bool = False
    error: UserFacingError | None = None
    fetched_at: datetime | None = None

    def find(self, order_id: str) -> Order | None:
        for order in (*self.active, *self.history):
            if order.id == order_id:
                return order
        return None


def partition(orders: Iterable[Order]) -> tuple[tuple[Order, ...], tuple[Order, ...]]:
    """Split orders into (active, history) by status alone; first id wins."""
    seen: set[str] = set()
    active: list[Order] = []
    history: list[Order] = []
    for order in orders:
        if order.id in seen:
            continue
        seen.add(order.id)
        (history if order.is_terminal else active).append(order)
    return tuple(active), tuple(history)


def is_valid_transition(current: str | None, new: str) -> bool:
    if current in TERMINAL_STATUSES:
        return False
    return current != new


class DeliveryLifecycleManager:
    def __init__(self, auth: AuthSessionManager, orders: OrdersClient) -> None:
        self.auth = auth
        self.orders = orders
        self.changes: Observable[DeliverySet] = Observable()
        self._set = DeliverySet()
        self.auth.changes.subscribe(self._on_session_change)

    @property
    def deliveries(self) -> DeliverySet:
        return self._set

    @property
    def active(self) -> tuple[Order, ...]:
        return self._set.active

    @property
    def history(self) -> tuple[Order, ...]:
        return self._set.history

    async def fetch_all(self) -> bool:
        """Replace local state with the server's full order list."""
        rider_id = self.auth.rider_id
        if rider_id is None:
            return False
        self._update(loading=True, error=None)
        try:
            orders = await self.orders.list_rider_orders(rider_id)
        except ApiError as exc:
            logger.warning("fetch_deliveries_failed", extra={"error_code": exc.code})
            if self.auth.rider_id == rider_id:
                self._update(
                    loading=False,
                    error=classify_error(exc, fallback="Failed to fetch deliveries. Please try again."),
                )
            return False
        if self.auth.rider_id != rider_id:
            # Session ended while the request was in flight.
            return False
        active, history = partition(orders)
        self._set = DeliverySet(
            active=active,
            history=history,
            loading=False,
            refreshing=self._set.refreshing,
            fetched_at=utc_now(),
        )
        logger.info("deliveries_loaded", extra={"active": len(active), "history": len(history)})
        self.changes.publish(self._set)
        return True

    async def refresh(self) -> bool:
        self._update(refreshing=True)
        try:
            return await self.fetch_all()
        finally:
            self._update(refreshing=False)

    async def get_details(self, order_id: str) -> OrderDetail:
        order_id = require_id(order_id, "order_id")
        if self.auth.rider_id is None:
            raise UnauthorizedError(code="NOT_AUTHENTICATED", message="No rider session", status_code=401)
        return await self.orders.get_order_detail(order_id)

    async def update_status(self, order_id: str, new_status: str | DeliveryStatus) -> bool:
        if self.auth.rider_id is None:
            return False
        status = _status_value(new_status)
        try:
            order_id = require_id(order_id, "order_id")
            if not status:
                raise ValidationError(code="VALIDATION_ERROR", message="A delivery status is required")
            current = self._set.find(order_id)
            if current is not None and not is_valid_transition(current.status, status):
                raise ValidationError(
                    code="INVALID_TRANSITION",
                    message=f"Cannot change a {current.status} delivery to {status}",
                )
            await self.orders.update_order_status(order_id, status)
        except ApiError as exc:
            logger.warning(
                "update_delivery_status_failed",
                extra={"order_id": order_id, "status": status, "error_code": exc.code},
            )
            self._update(
                error=classify_error(exc, fallback="Failed to update delivery status. Please try again.")
            )
            return False

        logger.info("delivery_status_updated", extra={"order_id": order_id, "status": status})
        if status == DeliveryStatus.DELIVERED.value:
            self._move_to_history(order_id)
            await self.fetch_all()
        elif status in TERMINAL_STATUSES:
            await self.fetch_all()
        else:
            self._set_active_status(order_id, status)
        return True

    async def start_delivery(self, order_id: str) -> bool:
        return await self._run_transition("start", order_id)

    async def complete_delivery(self, order_id: str) -> bool:
        return await self._run_transition("complete", order_id)

    async def _run_transition(self, action: str, order_id: str) -> bool:
        if self.auth.rider_id is None:
            return False
        try:
            if action == "start":
                await self.orders.start_delivery(order_id)
            else:
                await self.orders.complete_delivery(order_id)
        except ApiError as exc:
            logger.warning(f"{action}_delivery_failed", extra={"order_id": order_id, "error_code": exc.code})
            self._update(error=classify_error(exc, fallback=f"Failed to {action} delivery. Please try again."))
            return False
        await self.fetch_all()
        return True

    def _move_to_history(self, order_id: str) -> None:
        moved: Order | None = None
        remaining: list[Order] = []
        for order in self._set.active:
            if order.id == order_id and moved is None:
                moved = order
            else:
                remaining.append(order)
        if moved is None:
            return
        # Local completion time; the reconciling fetch may replace it.
        completed = moved.model_copy(
            update={"status": DeliveryStatus.DELIVERED.value, "completed_at": utc_now()}
        )
        self._set = replace(self._set, active=tuple(remaining), history=(completed, *self._set.history))
        self.changes.publish(self._set)

    def _set_active_status(self, order_id: str, status: str) -> None:
        active = tuple(
            order.model_copy(update={"status": status}) if order.id == order_id else order
            for order in self._set.active
        )
        self._set = replace(self._set, active=active)
        self.changes.publish(self._set)

    def _update(self, **changes: object) -> None:
        self._set = replace(self._set, **changes)
        self.changes.publish(self._set)

    def _on_session_change(self, session: SessionSnapshot) -> None:
        if session.is_authenticated:
            return
        if self._set == DeliverySet():
            return
        self._set = DeliverySet()
        self.changes.publish(self._set)


def _status_value(status: str | DeliveryStatus) -> str:
    if isinstance(status, DeliveryStatus):
        return status.value
    return str(status or "").strip().lower()
