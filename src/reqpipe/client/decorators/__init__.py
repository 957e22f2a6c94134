"""Decorators adding one concern each around a Client."""

from __future__ import annotations

from reqpipe.client.decorators.fault_tolerance import (
    RetryExecutor,
    RetryPolicy,
    fault_tolerance,
)
from reqpipe.client.decorators.logging import logging_decorator
from reqpipe.client.decorators.proxy import (
    BodyPredicate,
    body_contains,
    body_equals,
    capture_body,
    match,
    parse_endpoint,
    proxy,
    replay_body,
)

__all__ = [
    # Logging
    "logging_decorator",
    # Proxy
    "BodyPredicate",
    "body_contains",
    "body_equals",
    "capture_body",
    "match",
    "parse_endpoint",
    "proxy",
    "replay_body",
    # Fault tolerance
    "RetryExecutor",
    "RetryPolicy",
    "fault_tolerance",
]
