from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Awaitable, Callable, Protocol

from .clients.riders import RidersClient
from .events import Observable
from .exceptions import ApiError, LocationPermissionError, TrackingError
from .models import utc_now
from .ui_errors import UserFacingError, classify_error

logger = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6_371_000.0


@dataclass(frozen=True)
class PositionSample:
    latitude: float
    longitude: float
    captured_at: datetime = field(default_factory=utc_now)


SampleCallback = Callable[[PositionSample], Awaitable[None]]


@dataclass(frozen=True)
class WatchOptions:
    time_interval_seconds: float
    distance_interval_meters: float
    high_accuracy: bool = True


class PositionSubscription(Protocol):
    @property
    def active(self) -> bool: ...

    async def remove(self) -> None: ...


class PositionSource(Protocol):
    """Device location provider (GPS, network provider, simulator)."""

    async def request_permission(self) -> bool: ...

    async def watch_position(self, callback: SampleCallback, options: WatchOptions) -> PositionSubscription: ...

    async def current_position(self) -> PositionSample: ...


def distance_meters(a: PositionSample, b: PositionSample) -> float:
    """Great-circle distance (haversine)."""
    lat1, lat2 = math.radians(a.latitude), math.radians(b.latitude)
    dlat = lat2 - lat1
    dlon = math.radians(b.longitude - a.longitude)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(h)))


@dataclass(frozen=True)
class SamplingPolicy:
    min_interval_seconds: float = 30.0
    min_distance_meters: float = 100.0

    def watch_options(self) -> WatchOptions:
        return WatchOptions(
            time_interval_seconds=self.min_interval_seconds,
            distance_interval_meters=self.min_distance_meters,
        )

    def should_forward(self, previous: PositionSample | None, sample: PositionSample) -> bool:
        if previous is None:
            return True
        elapsed = (sample.captured_at - previous.captured_at).total_seconds()
        if elapsed < self.min_interval_seconds:
            return False
        return distance_meters(previous, sample) >= self.min_distance_meters


@dataclass(frozen=True)
class TrackerSnapshot:
    active: bool
    last_sample: PositionSample | None
    warning: UserFacingError | None


class LocationTracker:
    """Owns the one position subscription and forwards qualifying samples."""

    def __init__(
        self,
        riders: RidersClient,
        source: PositionSource,
        policy: SamplingPolicy | None = None,
    ) -> None:
        self.riders = riders
        self.source = source
        self.policy = policy or SamplingPolicy()
        self.changes: Observable[TrackerSnapshot] = Observable()
        self._subscription: PositionSubscription | None = None
        self._generation = 0
        self._last_sample: PositionSample | None = None
        self._last_forwarded: PositionSample | None = None
        self._warning: UserFacingError | None = None
        self._lock = asyncio.Lock()

    @property
    def is_active(self) -> bool:
        return self._subscription is not None and self._subscription.active

    @property
    def last_sample(self) -> PositionSample | None:
        return self._last_sample

    @property
    def warning(self) -> UserFacingError | None:
        return self._warning

    def snapshot(self) -> TrackerSnapshot:
        return TrackerSnapshot(active=self.is_active, last_sample=self._last_sample, warning=self._warning)

    async def start(self) -> None:
        """Start streaming positions; a no-op while a live subscription exists.

        Raises ``LocationPermissionError`` when the device refuses access and
        ``TrackingError`` when the provider cannot be subscribed.
        """
        async with self._lock:
            if self.is_active:
                return
            await self._dispose()
            if not await self._request_permission():
                raise LocationPermissionError()
            self._generation += 1
            callback = partial(self._on_sample, self._generation)
            try:
                subscription = await self.source.watch_position(callback, self.policy.watch_options())
            except TrackingError:
                raise
            except Exception as exc:
                logger.exception("tracking_start_failed")
                raise TrackingError("Failed to start location tracking") from exc
            self._subscription = subscription
            self._last_forwarded = None
            logger.info("tracking_started", extra={"generation": self._generation})
        self.changes.publish(self.snapshot())

    async def stop(self) -> None:
        async with self._lock:
            if self._subscription is None:
                return
            await self._dispose()
            logger.info("tracking_stopped")
        self.changes.publish(self.snapshot())

    async def current_position(self) -> PositionSample:
        if not await self._request_permission():
            raise LocationPermissionError()
        try:
            sample = await self.source.current_position()
        except TrackingError:
            raise
        except Exception as exc:
            raise TrackingError("Failed to get current location") from exc
        self._last_sample = sample
        self.changes.publish(self.snapshot())
        return sample

    async def _request_permission(self) -> bool:
        try:
            return await self.source.request_permission()
        except TrackingError:
            raise
        except Exception as exc:
            logger.exception("location_permission_request_failed")
            raise TrackingError("Failed to request location permissions") from exc

    async def _dispose(self) -> None:
        subscription, self._subscription = self._subscription, None
        # Late samples from the old subscription are ignored from here on.
        self._generation += 1
        if subscription is None:
            return
        try:
            await subscription.remove()
        except Exception:
            logger.exception("tracking_stop_failed")

    async def _on_sample(self, generation: int, sample: PositionSample) -> None:
        if generation != self._generation:
            return
        self._last_sample = sample
        if not self.policy.should_forward(self._last_forwarded, sample):
            self.changes.publish(self.snapshot())
            return
        self._last_forwarded = sample
        try:
            await self.riders.report_position(sample.latitude, sample.longitude)
        except ApiError as exc:
            self._warning = classify_error(exc)
            logger.warning("position_forward_failed", extra={"error_code": exc.code})
        else:
            self._warning = None
        self.changes.publish(self.snapshot())
