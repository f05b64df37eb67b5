from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from .api_client import ReplayReport, RiderApiClient
from .auth import AuthSessionManager, AuthState
from .availability import AvailabilityController
from .clients.orders import OrdersClient
from .clients.riders import RidersClient
from .config import ClientConfig, load_config
from .deliveries import DeliveryLifecycleManager
from .http_client import HttpClient
from .lifecycle import AppState, LifecycleEventSource, ManualLifecycleSource
from .location import LocationTracker, PositionSource, SamplingPolicy
from .request_queue import JsonFileStorage, KeyValueStorage, RequestQueue
from .session_store import FileSecretStore, SecretStore, SessionStore

logger = logging.getLogger(__name__)


@dataclass
class RiderApp:
    """Wires the rider components together and drives startup."""

    config: ClientConfig
    api: RiderApiClient
    auth: AuthSessionManager
    tracker: LocationTracker
    availability: AvailabilityController
    deliveries: DeliveryLifecycleManager
    lifecycle: LifecycleEventSource

    @classmethod
    def create(
        cls,
        position_source: PositionSource,
        config: ClientConfig | None = None,
        *,
        secret_store: SecretStore | None = None,
        storage: KeyValueStorage | None = None,
        lifecycle: LifecycleEventSource | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "RiderApp":
        config = config or load_config()
        data_dir = config.resolved_data_dir()
        session_store = SessionStore(secret_store or FileSecretStore(data_dir))
        queue = RequestQueue(storage or JsonFileStorage(data_dir))
        api = RiderApiClient(HttpClient(config, transport=transport), session_store, queue)
        auth = AuthSessionManager(api, session_store)
        riders = RidersClient(api)
        tracker = LocationTracker(
            riders,
            position_source,
            SamplingPolicy(
                min_interval_seconds=config.tracking_min_interval_seconds,
                min_distance_meters=config.tracking_min_distance_meters,
            ),
        )
        lifecycle = lifecycle or ManualLifecycleSource()
        app = cls(
            config=config,
            api=api,
            auth=auth,
            tracker=tracker,
            availability=AvailabilityController(auth, riders, tracker, lifecycle),
            deliveries=DeliveryLifecycleManager(auth, OrdersClient(api)),
            lifecycle=lifecycle,
        )
        lifecycle.subscribe(app._on_app_state)
        return app

    async def start(self) -> AuthState:
        state = await self.auth.bootstrap()
        if state is AuthState.AUTHENTICATED:
            await self._activate()
        return state

    async def login(self, email: str, password: str) -> bool:
        if not await self.auth.login(email, password):
            return False
        await self._activate()
        return True

    async def logout(self) -> None:
        if self.availability.online:
            await self.availability.mark_offline()
        await self.auth.logout()
        await self.availability.settle()

    async def replay_queue(self) -> ReplayReport:
        return await self.api.replay_queue()

    async def aclose(self) -> None:
        await self.tracker.stop()
        await self.api.aclose()

    async def _activate(self) -> None:
        await self.api.replay_queue()
        await self.availability.load_online_status()
        await self.deliveries.fetch_all()

    async def _on_app_state(self, state: AppState) -> None:
        if state is AppState.ACTIVE and self.auth.is_authenticated:
            await self.api.replay_queue()
