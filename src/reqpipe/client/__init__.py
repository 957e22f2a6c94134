from .base import Client
from .base import ClientFunc
from .base import Decorator
from .base import Director
from .base import decorate
from .transports import HttpxTransport

__all__ = [
    "Client",
    "ClientFunc",
    "Decorator",
    "Director",
    "HttpxTransport",
    "decorate",
]
