from .api_client import ReplayReport, RiderApiClient
from .app import RiderApp
from .auth import AuthSessionManager, AuthState, SessionSnapshot
from .availability import AvailabilityController, AvailabilitySnapshot
from .config import ClientConfig, ConfigError, load_config
from .deliveries import DeliveryLifecycleManager, DeliverySet, partition
from .exceptions import (
    ApiError,
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    InvalidCredentialsError,
    LocationPermissionError,
    NetworkError,
    NotFoundError,
    RoleMismatchError,
    ServerError,
    TrackingError,
    UnauthorizedError,
    ValidationError,
)
from .http_client import HttpClient
from .lifecycle import AppState, LifecycleEventSource, ManualLifecycleSource
from .location import (
    LocationTracker,
    PositionSample,
    PositionSource,
    PositionSubscription,
    SamplingPolicy,
    TrackerSnapshot,
    WatchOptions,
)
from .models import (
    DeliveryStatus,
    LoginResult,
    Order,
    OrderDetail,
    QueuedRequest,
    RiderResponse,
    RiderSettings,
    UserResponse,
)
from .request_queue import JsonFileStorage, KeyValueStorage, MemoryStorage, RequestQueue
from .session_store import FileSecretStore, MemorySecretStore, SecretStore, SessionStore
from .ui_errors import ErrorKind, UserFacingError, classify_error

__version__ = "0.1.0"

__all__ = [
    "ApiError",
    "AppState",
    "AuthSessionManager",
    "AuthState",
    "AvailabilityController",
    "AvailabilitySnapshot",
    "ClientConfig",
    "ConfigError",
    "ConflictError",
    "DeliveryLifecycleManager",
    "DeliverySet",
    "DeliveryStatus",
    "ErrorKind",
    "FileSecretStore",
    "ForbiddenError",
    "HttpClient",
    "InvalidArgumentError",
    "InvalidCredentialsError",
    "JsonFileStorage",
    "KeyValueStorage",
    "LifecycleEventSource",
    "LocationPermissionError",
    "LocationTracker",
    "LoginResult",
    "ManualLifecycleSource",
    "MemorySecretStore",
    "MemoryStorage",
    "NetworkError",
    "NotFoundError",
    "Order",
    "OrderDetail",
    "PositionSample",
    "PositionSource",
    "PositionSubscription",
    "QueuedRequest",
    "ReplayReport",
    "RequestQueue",
    "RiderApiClient",
    "RiderApp",
    "RiderResponse",
    "RiderSettings",
    "RoleMismatchError",
    "SamplingPolicy",
    "SecretStore",
    "ServerError",
    "SessionSnapshot",
    "SessionStore",
    "TrackerSnapshot",
    "TrackingError",
    "UnauthorizedError",
    "UserFacingError",
    "UserResponse",
    "ValidationError",
    "WatchOptions",
    "classify_error",
    "load_config",
    "partition",
]
