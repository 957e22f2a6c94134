"""Assembly of the configured request pipeline."""

from __future__ import annotations

import asyncio
import logging

from reqpipe.client.base import Client, decorate
from reqpipe.client.decorators.fault_tolerance import SleepFunc, fault_tolerance
from reqpipe.client.decorators.logging import logging_decorator
from reqpipe.client.decorators.proxy import match, proxy
from reqpipe.config.models import PipelineConfig
from reqpipe.observability.logging import LOG_FORMAT_CONSOLE, get_logger

__all__ = ["build_pipeline"]


def build_pipeline(
    config: PipelineConfig,
    client: Client,
    *,
    logger: logging.Logger | None = None,
    sleep: SleepFunc = asyncio.sleep,
) -> Client:
    """Composes the configured decorators around ``client``.

    The order is fixed: fault tolerance outermost, then proxying, then
    logging just before the transport. Each retry therefore re-runs the
    match and logs the routed destination.

    Args:
        config: Pipeline configuration.
        client: Base client performing the network call.
        logger: Sink for the logging decorator; built from ``config.logging``
            when omitted.
        sleep: Pause used between retries.
    """
    if logger is None:
        logger = get_logger(
            config.logging.name,
            log_format=config.logging.format,
            default_format=LOG_FORMAT_CONSOLE,
            level=config.logging.level,
        )
    return decorate(
        client,
        logging_decorator(logger),
        proxy(match(config.match.predicate(), config.match.if_url, config.match.else_url)),
        fault_tolerance(config.fault_tolerance.attempts, config.fault_tolerance.backoff_s, sleep=sleep),
    )
