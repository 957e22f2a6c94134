import asyncio
from datetime import timedelta

import httpx
import pytest

from reqpipe.client.base import ClientFunc, decorate
from reqpipe.client.decorators.fault_tolerance import RetryPolicy, fault_tolerance
from reqpipe.client.decorators.proxy import match, proxy
from reqpipe.exceptions import InvalidEndpointError, UpstreamUnavailableError


class _FlakyClient:
    """Fails the first ``failures`` calls, then succeeds."""

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0
        self.errors: list[Exception] = []

    async def send(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.calls <= self.failures:
            error = UpstreamUnavailableError(message=f"attempt {self.calls} failed")
            self.errors.append(error)
            raise error
        return httpx.Response(200, request=request, content=b"ok")


def _request() -> httpx.Request:
    return httpx.Request("GET", "http://example.com/")


@pytest.mark.asyncio
async def test_first_success_returns_without_retry(sleeper):
    base = _FlakyClient(failures=0)
    client = decorate(base, fault_tolerance(5, 1.0, sleep=sleeper))

    response = await client.send(_request())

    assert response.content == b"ok"
    assert base.calls == 1
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_success_after_failures_uses_linear_backoff(sleeper):
    base = _FlakyClient(failures=3)
    client = decorate(base, fault_tolerance(5, 2.0, sleep=sleeper))

    response = await client.send(_request())

    assert response.status_code == 200
    assert base.calls == 4
    assert sleeper.delays == [0.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_exhaustion_surfaces_last_error_verbatim(sleeper):
    base = _FlakyClient(failures=10)
    client = decorate(base, fault_tolerance(4, 1.0, sleep=sleeper))

    with pytest.raises(UpstreamUnavailableError) as excinfo:
        await client.send(_request())

    assert base.calls == 4
    assert excinfo.value is base.errors[-1]
    assert str(excinfo.value) == "attempt 4 failed"
    # no pause after the final attempt
    assert sleeper.delays == [0.0, 1.0, 2.0]


@pytest.mark.asyncio
async def test_single_attempt_never_sleeps(sleeper):
    base = _FlakyClient(failures=1)
    client = decorate(base, fault_tolerance(1, 5.0, sleep=sleeper))

    with pytest.raises(UpstreamUnavailableError):
        await client.send(_request())

    assert base.calls == 1
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_director_failure_is_retried_like_transport_failure(sleeper):
    transport = _FlakyClient(failures=10)
    via_transport = decorate(transport, fault_tolerance(3, 0.5, sleep=sleeper))
    with pytest.raises(UpstreamUnavailableError):
        await via_transport.send(_request())
    transport_delays = list(sleeper.delays)
    sleeper.delays.clear()

    director_calls = 0
    inner = _FlakyClient(failures=0)
    bad_match = match(None, "http://a.example", "http://b.example:notaport")

    async def counting_director(request):
        nonlocal director_calls
        director_calls += 1
        await bad_match(request)

    via_director = decorate(inner, proxy(counting_director), fault_tolerance(3, 0.5, sleep=sleeper))
    with pytest.raises(InvalidEndpointError):
        await via_director.send(httpx.Request("POST", "http://example.com/", content=b"x"))

    assert director_calls == transport.calls == 3
    assert inner.calls == 0
    assert sleeper.delays == transport_delays


@pytest.mark.asyncio
async def test_timedelta_backoff(sleeper):
    base = _FlakyClient(failures=2)
    client = decorate(base, fault_tolerance(3, timedelta(milliseconds=250), sleep=sleeper))

    await client.send(_request())

    assert sleeper.delays == [0.0, 0.25]


@pytest.mark.asyncio
async def test_pending_backoff_is_cancellable():
    base = _FlakyClient(failures=10)
    client = decorate(base, fault_tolerance(5, 60.0))

    task = asyncio.create_task(client.send(_request()))
    for _ in range(100):
        if base.calls >= 2:
            break
        await asyncio.sleep(0)
    assert base.calls == 2

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert base.calls == 2


@pytest.mark.asyncio
async def test_cancellation_from_inner_client_is_not_retried(sleeper):
    calls = 0

    async def cancelled(request):
        nonlocal calls
        calls += 1
        raise asyncio.CancelledError()

    client = decorate(ClientFunc(cancelled), fault_tolerance(5, 1.0, sleep=sleeper))

    with pytest.raises(asyncio.CancelledError):
        await client.send(_request())
    assert calls == 1
    assert sleeper.delays == []


@pytest.mark.parametrize(
    ("attempts", "backoff", "error"),
    [(0, 1.0, ValueError), (-1, 1.0, ValueError), (3, -0.1, ValueError), (True, 1.0, TypeError)],
)
def test_invalid_policy_is_rejected_at_construction(attempts, backoff, error):
    with pytest.raises(error):
        fault_tolerance(attempts, backoff)


def test_retry_policy_delay_is_linear_in_attempt_index():
    policy = RetryPolicy(max_attempts=5, backoff_s=1.5)
    assert [policy.delay_for(i) for i in range(4)] == [0.0, 1.5, 3.0, 4.5]
