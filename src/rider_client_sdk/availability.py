from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from .auth import AuthSessionManager, SessionSnapshot
from .clients.riders import RidersClient
from .events import Observable
from .exceptions import ApiError, TrackingError, UnauthorizedError
from .lifecycle import AppState, LifecycleEventSource
from .location import LocationTracker, TrackerSnapshot
from .ui_errors import UserFacingError, classify_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailabilitySnapshot:
    online: bool
    tracking_active: bool
    error: UserFacingError | None = None
    tracking_error: UserFacingError | None = None


def _not_authenticated() -> UserFacingError:
    return classify_error(UnauthorizedError(code="NOT_AUTHENTICATED", message="No rider session", status_code=401))


class AvailabilityController:
    """Keeps the rider's online flag and the location tracker in lockstep.

    Backend availability and the device's ability to stream positions are
    independent facts: a tracking failure after the backend confirmed
    ``active`` leaves ``online`` set and is reported as ``tracking_error``.
    """

    def __init__(
        self,
        auth: AuthSessionManager,
        riders: RidersClient,
        tracker: LocationTracker,
        lifecycle: LifecycleEventSource | None = None,
    ) -> None:
        self.auth = auth
        self.riders = riders
        self.tracker = tracker
        self.changes: Observable[AvailabilitySnapshot] = Observable()
        self._online = False
        self._error: UserFacingError | None = None
        self._tracking_error: UserFacingError | None = None
        self._background: set[asyncio.Task[None]] = set()
        self.auth.changes.subscribe(self._on_session_change)
        self.tracker.changes.subscribe(self._on_tracker_change)
        if lifecycle is not None:
            lifecycle.subscribe(self.handle_app_state)

    @property
    def online(self) -> bool:
        return self._online

    @property
    def tracking_active(self) -> bool:
        return self.tracker.is_active

    def snapshot(self) -> AvailabilitySnapshot:
        return AvailabilitySnapshot(
            online=self._online,
            tracking_active=self.tracker.is_active,
            error=self._error,
            tracking_error=self._tracking_error,
        )

    async def mark_online(self) -> bool:
        rider_id = self.auth.rider_id
        if rider_id is None:
            self._fail(_not_authenticated())
            return False
        try:
            await self.riders.update_availability(rider_id, True)
        except ApiError as exc:
            logger.warning("mark_online_failed", extra={"error_code": exc.code})
            self._fail(classify_error(exc))
            return False
        self._online = True
        self._error = None
        logger.info("rider_online", extra={"rider_id": rider_id})
        await self._start_tracking()
        self._publish()
        return True

    async def mark_offline(self) -> bool:
        rider_id = self.auth.rider_id
        if rider_id is None:
            self._fail(_not_authenticated())
            return False
        try:
            await self.riders.update_availability(rider_id, False)
        except ApiError as exc:
            logger.warning("mark_offline_failed", extra={"error_code": exc.code})
            self._fail(classify_error(exc))
            return False
        self._online = False
        self._error = None
        self._tracking_error = None
        await self.tracker.stop()
        logger.info("rider_offline", extra={"rider_id": rider_id})
        self._publish()
        return True

    async def retry_tracking(self) -> bool:
        if not self._online or self.auth.rider_id is None:
            return False
        started = await self._start_tracking()
        self._publish()
        return started

    async def load_online_status(self) -> bool:
        rider_id = self.auth.rider_id
        if rider_id is None:
            return False
        try:
            rider = await self.riders.get_rider(rider_id)
        except ApiError as exc:
            logger.warning("load_online_status_failed", extra={"error_code": exc.code})
            self._fail(classify_error(exc))
            return False
        self._online = rider.is_active
        self._error = None
        if self._online:
            await self._start_tracking()
        else:
            await self.tracker.stop()
        self._publish()
        return True

    async def handle_app_state(self, state: AppState) -> None:
        if state is not AppState.ACTIVE:
            # The subscription is expected to keep running in the background.
            return
        if not self._online or self.auth.rider_id is None or self.tracker.is_active:
            return
        logger.info("tracking_resumed_on_foreground")
        await self._start_tracking()
        self._publish()

    async def settle(self) -> None:
        """Wait for teardown work scheduled by session changes."""
        while self._background:
            await asyncio.gather(*list(self._background))

    async def _start_tracking(self) -> bool:
        try:
            await self.tracker.start()
        except TrackingError as exc:
            logger.warning("tracking_unavailable", extra={"error_code": exc.code})
            self._tracking_error = classify_error(exc)
            return False
        self._tracking_error = None
        return True

    def _fail(self, error: UserFacingError) -> None:
        self._error = error
        self._publish()

    def _on_session_change(self, session: SessionSnapshot) -> None:
        if session.is_authenticated:
            return
        if not self._online and not self.tracker.is_active:
            return
        self._online = False
        self._tracking_error = None
        task = asyncio.get_running_loop().create_task(self._teardown())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _teardown(self) -> None:
        await self.tracker.stop()
        self._publish()

    def _on_tracker_change(self, _: TrackerSnapshot) -> None:
        self._publish()

    def _publish(self) -> None:
        self.changes.publish(self.snapshot())
