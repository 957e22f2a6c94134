from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, cast

from reqpipe.client.decorators.proxy import BodyPredicate, body_contains, body_equals, parse_endpoint
from reqpipe.exceptions import InvalidEndpointError
from reqpipe.observability.logging import LEVEL_NAME_TO_INT, LOG_FORMAT_CONSOLE, LOG_FORMAT_JSON


def _ensure_mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise TypeError(f"{field_name} must be a mapping")
    return cast(Mapping[str, Any], value)


def _coerce_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise TypeError(f"{field_name} must be an int")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    raise TypeError(f"{field_name} must be an int")


def _coerce_float(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise TypeError(f"{field_name} must be a float")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        return float(value.strip())
    raise TypeError(f"{field_name} must be a float")


def _coerce_str(value: Any, field_name: str) -> str:
    if isinstance(value, str):
        return value
    return str(value)


FieldSpec = tuple[str, Callable[[Any, str], Any], str]


def _optional(coerce: Callable[[Any, str], Any]) -> Callable[[Any, str], Any]:
    def _wrapped(value: Any, field_name: str) -> Any:
        if value is None:
            return None
        return coerce(value, field_name)

    return _wrapped


def _extract_fields(payload: Mapping[str, Any], specs: Sequence[FieldSpec]) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    for name, coerce, label in specs:
        if name in payload:
            kwargs[name] = coerce(payload[name], label)
    return kwargs


def _apply_field_specs(target: Any, specs: Sequence[FieldSpec]) -> None:
    for name, coerce, label in specs:
        setattr(target, name, coerce(getattr(target, name), label))


def _check_endpoint(value: str, field_name: str) -> None:
    try:
        parse_endpoint(value)
    except InvalidEndpointError as exc:
        raise ValueError(f"{field_name}: {exc.message}") from exc


_SERVER_FIELD_SPECS: tuple[FieldSpec, ...] = (
    ("host", _coerce_str, "server.host"),
    ("port", _coerce_int, "server.port"),
)


@dataclass
class ServerConfig:
    """Listening address of the front proxy."""

    host: str = "0.0.0.0"
    port: int = 8080

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "ServerConfig":
        if data is None:
            return cls()
        if isinstance(data, cls):
            return data
        payload = _ensure_mapping(data, "server")
        return cls(**_extract_fields(payload, _SERVER_FIELD_SPECS))

    def __post_init__(self) -> None:
        _apply_field_specs(self, _SERVER_FIELD_SPECS)
        if not 0 <= self.port <= 65535:
            raise ValueError("server.port must be between 0 and 65535")


_LOGGING_FIELD_SPECS: tuple[FieldSpec, ...] = (
    ("name", _coerce_str, "logging.name"),
    ("level", _coerce_str, "logging.level"),
    ("format", _optional(_coerce_str), "logging.format"),
)


@dataclass
class LoggingConfig:
    """Sink used by the logging decorator.

    An unset ``format`` defers to ``$REQPIPE_LOG_FORMAT`` and then console.
    """

    name: str = "client"
    level: str = "INFO"
    format: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "LoggingConfig":
        if data is None:
            return cls()
        if isinstance(data, cls):
            return data
        payload = _ensure_mapping(data, "logging")
        return cls(**_extract_fields(payload, _LOGGING_FIELD_SPECS))

    def __post_init__(self) -> None:
        _apply_field_specs(self, _LOGGING_FIELD_SPECS)
        self.level = self.level.strip().upper()
        if self.format is not None:
            self.format = self.format.strip().lower()
        if self.level not in LEVEL_NAME_TO_INT:
            raise ValueError(f"logging.level must be one of {sorted(LEVEL_NAME_TO_INT)}")
        if self.format is not None and self.format not in {LOG_FORMAT_JSON, LOG_FORMAT_CONSOLE}:
            raise ValueError("logging.format must be 'json' or 'console'")


_MATCH_FIELD_SPECS: tuple[FieldSpec, ...] = (
    ("if_url", _coerce_str, "match.if_url"),
    ("else_url", _coerce_str, "match.else_url"),
    ("body_equals", _optional(_coerce_str), "match.body_equals"),
    ("body_contains", _optional(_coerce_str), "match.body_contains"),
)


@dataclass
class MatchConfig:
    """Body-routed destination selection.

    At most one of ``body_equals`` and ``body_contains`` may be set. With
    neither, every request goes to ``else_url``.
    """

    if_url: str = "http://localhost:8090"
    else_url: str = "http://localhost:8091"
    body_equals: str | None = "hello world"
    body_contains: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "MatchConfig":
        if data is None:
            return cls()
        if isinstance(data, cls):
            return data
        payload = _ensure_mapping(data, "match")
        kwargs = _extract_fields(payload, _MATCH_FIELD_SPECS)
        if "body_contains" in kwargs and "body_equals" not in kwargs:
            kwargs["body_equals"] = None
        return cls(**kwargs)

    def __post_init__(self) -> None:
        _apply_field_specs(self, _MATCH_FIELD_SPECS)
        if self.body_equals is not None and self.body_contains is not None:
            raise ValueError("match.body_equals and match.body_contains are mutually exclusive")
        _check_endpoint(self.if_url, "match.if_url")
        _check_endpoint(self.else_url, "match.else_url")

    def predicate(self) -> BodyPredicate | None:
        if self.body_equals is not None:
            return body_equals(self.body_equals)
        if self.body_contains is not None:
            return body_contains(self.body_contains)
        return None


_FAULT_TOLERANCE_FIELD_SPECS: tuple[FieldSpec, ...] = (
    ("attempts", _coerce_int, "fault_tolerance.attempts"),
    ("backoff_s", _coerce_float, "fault_tolerance.backoff_s"),
)


@dataclass
class FaultToleranceConfig:
    attempts: int = 5
    backoff_s: float = 1.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "FaultToleranceConfig":
        if data is None:
            return cls()
        if isinstance(data, cls):
            return data
        payload = _ensure_mapping(data, "fault_tolerance")
        return cls(**_extract_fields(payload, _FAULT_TOLERANCE_FIELD_SPECS))

    def __post_init__(self) -> None:
        _apply_field_specs(self, _FAULT_TOLERANCE_FIELD_SPECS)
        if self.attempts < 1:
            raise ValueError("fault_tolerance.attempts must be >= 1")
        if self.backoff_s < 0:
            raise ValueError("fault_tolerance.backoff_s must be >= 0")


_TRANSPORT_FIELD_SPECS: tuple[FieldSpec, ...] = (
    ("timeout_s", _optional(_coerce_float), "transport.timeout_s"),
)


@dataclass
class TransportConfig:
    timeout_s: float | None = 60.0
    """Default request timeout for the base transport (seconds)."""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "TransportConfig":
        if data is None:
            return cls()
        if isinstance(data, cls):
            return data
        payload = _ensure_mapping(data, "transport")
        return cls(**_extract_fields(payload, _TRANSPORT_FIELD_SPECS))

    def __post_init__(self) -> None:
        _apply_field_specs(self, _TRANSPORT_FIELD_SPECS)
        if self.timeout_s is not None and self.timeout_s < 0:
            raise ValueError("transport.timeout_s must be >= 0")


@dataclass
class PipelineConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    match: MatchConfig = field(default_factory=MatchConfig)
    fault_tolerance: FaultToleranceConfig = field(default_factory=FaultToleranceConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "PipelineConfig":
        if data is None:
            return cls()
        if isinstance(data, cls):
            return data
        payload = _ensure_mapping(data, "config")
        kwargs: dict[str, Any] = {}
        if "server" in payload:
            kwargs["server"] = ServerConfig.from_dict(payload["server"])
        if "logging" in payload:
            kwargs["logging"] = LoggingConfig.from_dict(payload["logging"])
        if "match" in payload:
            kwargs["match"] = MatchConfig.from_dict(payload["match"])
        if "fault_tolerance" in payload:
            kwargs["fault_tolerance"] = FaultToleranceConfig.from_dict(payload["fault_tolerance"])
        if "transport" in payload:
            kwargs["transport"] = TransportConfig.from_dict(payload["transport"])
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "server": {"host": self.server.host, "port": self.server.port},
            "logging": {
                "name": self.logging.name,
                "level": self.logging.level,
                "format": self.logging.format,
            },
            "match": {
                "if_url": self.match.if_url,
                "else_url": self.match.else_url,
                "body_equals": self.match.body_equals,
                "body_contains": self.match.body_contains,
            },
            "fault_tolerance": {
                "attempts": self.fault_tolerance.attempts,
                "backoff_s": self.fault_tolerance.backoff_s,
            },
            "transport": {"timeout_s": self.transport.timeout_s},
        }
