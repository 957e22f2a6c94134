from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PipelineError(Exception):
    """Base class for request pipeline exceptions with a canonical error shape."""

    code: int
    message: str
    data: Any | None = None
    cause: Exception | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", (self.message,))
        if self.cause is not None:
            object.__setattr__(self, "__cause__", self.cause)
            object.__setattr__(self, "__suppress_context__", True)

    def to_error_dict(self) -> dict[str, Any]:
        """Return a dict describing the error, suitable for logging."""
        return {"code": self.code, "message": self.message, "data": self.data}


@dataclass(frozen=True)
class DirectorError(PipelineError):
    """Raised when a director refuses to forward a request."""

    code: int = 1000
    message: str = "Director failed"


@dataclass(frozen=True)
class BodyReadError(DirectorError):
    """Raised when the request body cannot be read into memory."""

    code: int = 1001
    message: str = "Failed to read request body"


@dataclass(frozen=True)
class InvalidEndpointError(DirectorError):
    """Raised when a destination endpoint string is malformed."""

    code: int = 1002
    message: str = "Invalid endpoint"


@dataclass(frozen=True)
class TransportError(PipelineError):
    """Raised when the base transport fails to perform a request."""

    code: int = 2000
    message: str = "Transport error"


@dataclass(frozen=True)
class UpstreamTimeoutError(TransportError):
    """Raised when the upstream endpoint does not answer in time."""

    code: int = 2001
    message: str = "Upstream timeout"


@dataclass(frozen=True)
class UpstreamUnavailableError(TransportError):
    """Raised when the upstream endpoint cannot be reached."""

    code: int = 2002
    message: str = "Upstream unavailable"
