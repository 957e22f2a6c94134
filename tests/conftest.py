from __future__ import annotations

import itertools
import logging

import httpx
import pytest

_LOGGER_COUNTER = itertools.count()


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)

    @property
    def total(self) -> float:
        return sum(self.delays)


class ListHandler(logging.Handler):
    """Collects emitted records in memory."""

    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    @property
    def messages(self) -> list[str]:
        return [record.getMessage() for record in self.records]


async def read_body(request: httpx.Request) -> bytes:
    """Read the request stream the way a transport would."""
    return b"".join([chunk async for chunk in request.stream])


def once_body(*chunks: bytes):
    """An async generator body, readable exactly once."""

    async def gen():
        for chunk in chunks:
            yield chunk

    return gen()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def log_handler() -> ListHandler:
    return ListHandler()


@pytest.fixture
def sink(log_handler: ListHandler) -> logging.Logger:
    logger = logging.getLogger(f"reqpipe.tests.sink.{next(_LOGGER_COUNTER)}")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    logger.addHandler(log_handler)
    yield logger
    logger.removeHandler(log_handler)
