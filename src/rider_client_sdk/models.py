from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

RIDER_ROLE = "rider"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UserResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    role: str | None = None
    email: str | None = None
    full_name: str | None = None
    rider_id: str | None = Field(default=None, alias="riderId")

    @model_validator(mode="before")
    @classmethod
    def _coerce_ids(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            for key in ("id", "riderId", "rider_id"):
                if data.get(key) is not None and not isinstance(data[key], str):
                    data[key] = str(data[key])
            if "rider_id" in data:
                data["riderId"] = data.pop("rider_id")
        return data

    @property
    def is_rider(self) -> bool:
        return (self.role or "").lower() == RIDER_ROLE


class LoginResult(BaseModel):
    token: str
    user: UserResponse


class RiderStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class RiderResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    status: str | None = None
    full_name: str | None = None
    is_available: bool | None = None

    @model_validator(mode="before")
    @classmethod
    def _coerce_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("id") is not None:
            data = {**data, "id": str(data["id"])}
        return data

    @property
    def is_active(self) -> bool:
        return (self.status or "").lower() == RiderStatus.ACTIVE.value


class RiderSettings(BaseModel):
    model_config = ConfigDict(extra="allow")

    is_available: bool | None = None
    max_concurrent_orders: int | None = None
    preferred_area: str | None = None
    notification_preferences: dict[str, Any] | None = None


class DeliveryStatus(str, Enum):
    ASSIGNED = "assigned"
    PICKED = "picked"
    PICKED_UP = "picked_up"
    IN_PROGRESS = "in_progress"
    DELIVERING = "delivering"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({DeliveryStatus.DELIVERED.value, DeliveryStatus.CANCELLED.value})


class Location(BaseModel):
    model_config = ConfigDict(extra="allow")

    latitude: float | None = None
    longitude: float | None = None
    address: str | None = None


class Order(BaseModel):
    """Read-through cache entry for a backend order.

    The backend reports the rider-facing state as ``delivery_status`` on list
    endpoints and ``status`` elsewhere; ``status`` always holds the effective
    value after validation.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    status: str
    pickup_location: Location | None = None
    delivery_location: Location | None = None
    assigned_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    total_amount: float | None = None
    delivery_fee: float | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if data.get("id") is None and data.get("order_id") is not None:
            data["id"] = data["order_id"]
        if data.get("id") is not None:
            data["id"] = str(data["id"])
        if data.get("delivery_status"):
            data["status"] = data["delivery_status"]
        if data.get("status"):
            data["status"] = str(data["status"]).lower()
        return data

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class OrderItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str | None = None
    quantity: int = 1
    price: float | None = None


class Contact(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str | None = None
    phone: str | None = None
    address: str | None = None


class OrderDetail(Order):
    items: list[OrderItem] = Field(default_factory=list)
    restaurant: Contact | None = None
    customer: Contact | None = None


class QueuedRequest(BaseModel):
    method: str
    url: str
    body: dict[str, Any] | None = None
    query_params: dict[str, Any] | None = None
    enqueued_at: datetime = Field(default_factory=utc_now)
