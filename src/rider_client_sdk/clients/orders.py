from __future__ import annotations

from ..exceptions import NotFoundError
from ..models import Order, OrderDetail
from .base import BaseClient, parse_model, parse_model_list, require_id


class OrdersClient(BaseClient):
    async def list_rider_orders(self, rider_id: str) -> list[Order]:
        rider_id = require_id(rider_id, "rider_id")
        data = await self.api.get(f"/riders/{rider_id}/orders")
        return parse_model_list(Order, data, "rider orders")

    async def get_order_detail(self, order_id: str) -> OrderDetail:
        order_id = require_id(order_id, "order_id")
        data = await self.api.get(f"/riders/delivery/{order_id}")
        if data is None:
            raise NotFoundError(
                code="ORDER_NOT_FOUND",
                message=f"Order {order_id} not found",
                status_code=404,
            )
        return parse_model(OrderDetail, data, "order detail")

    # Status transitions need the courier to re-confirm intent, so none of
    # them are queued on connectivity loss.

    async def update_order_status(self, order_id: str, status: str) -> None:
        order_id = require_id(order_id, "order_id")
        await self.api.put(
            f"/orders/{order_id}/rider-status",
            {"status": status},
            queue_on_failure=False,
        )

    async def start_delivery(self, order_id: str) -> None:
        order_id = require_id(order_id, "order_id")
        await self.api.post(f"/riders/delivery/{order_id}/start", queue_on_failure=False)

    async def complete_delivery(self, order_id: str) -> None:
        order_id = require_id(order_id, "order_id")
        await self.api.post(f"/riders/delivery/{order_id}/complete", queue_on_failure=False)
