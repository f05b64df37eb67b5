from __future__ import annotations

from typing import Any

from ..models import RiderResponse, RiderSettings
from .base import BaseClient, parse_model, require_id


class RidersClient(BaseClient):
    async def get_rider(self, rider_id: str) -> RiderResponse:
        rider_id = require_id(rider_id, "rider_id")
        data = await self.api.get(f"/riders/{rider_id}")
        return parse_model(RiderResponse, data, "rider")

    async def update_rider(self, rider_id: str, fields: dict[str, Any]) -> RiderResponse:
        rider_id = require_id(rider_id, "rider_id")
        data = await self.api.put(f"/riders/{rider_id}", fields)
        return parse_model(RiderResponse, data, "rider")

    async def update_availability(self, rider_id: str, is_available: bool) -> None:
        rider_id = require_id(rider_id, "rider_id")
        # A late replay would contradict the confirmed online flag.
        await self.api.put(
            f"/riders/{rider_id}/availability",
            {"isAvailable": is_available},
            queue_on_failure=False,
        )

    async def get_settings(self, rider_id: str) -> RiderSettings:
        rider_id = require_id(rider_id, "rider_id")
        data = await self.api.get(f"/riders/{rider_id}/settings")
        return parse_model(RiderSettings, data, "rider settings")

    async def update_settings(self, rider_id: str, settings: RiderSettings) -> RiderSettings:
        rider_id = require_id(rider_id, "rider_id")
        data = await self.api.put(
            f"/riders/{rider_id}/settings",
            settings.model_dump(mode="json", exclude_none=True),
        )
        if data is None:
            return settings
        return parse_model(RiderSettings, data, "rider settings")

    async def report_position(self, latitude: float, longitude: float) -> None:
        await self.api.post("/riders/location", {"latitude": latitude, "longitude": longitude})
