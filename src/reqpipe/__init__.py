"""Public API for reqpipe.

This module re-exports the stable, supported surface area of the library.
Import from here when possible.
"""

from reqpipe.client import (
    Client,
    ClientFunc,
    Decorator,
    Director,
    HttpxTransport,
    decorate,
)
from reqpipe.client.decorators import (
    body_contains,
    body_equals,
    fault_tolerance,
    logging_decorator,
    match,
    proxy,
)
from reqpipe.exceptions import (
    BodyReadError,
    DirectorError,
    InvalidEndpointError,
    PipelineError,
    TransportError,
)

__all__ = [
    # composition
    "Client",
    "ClientFunc",
    "Decorator",
    "Director",
    "decorate",
    # decorators
    "fault_tolerance",
    "logging_decorator",
    "match",
    "proxy",
    "body_contains",
    "body_equals",
    # transport
    "HttpxTransport",
    # errors
    "BodyReadError",
    "DirectorError",
    "InvalidEndpointError",
    "PipelineError",
    "TransportError",
]
