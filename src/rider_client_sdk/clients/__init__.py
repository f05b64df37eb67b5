from .auth import AuthClient
from .orders import OrdersClient
from .riders import RidersClient

__all__ = [
    "AuthClient",
    "OrdersClient",
    "RidersClient",
]
