import asyncio

import pytest

from order_processing.domain.exceptions import (
    CircuitBreakerOpenError, PaymentServiceError, PaymentDetailsNotFoundError
)
from order_processing.infrastructure.circuit_breaker import CircuitBreaker, CircuitState


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def breaker(clock):
    return CircuitBreaker(
        name="paymentService",
        window_size=4,
        minimum_calls=4,
        failure_rate_threshold=50.0,
        open_timeout=30.0,
        half_open_calls=2,
        clock=clock,
    )


async def _ok():
    return "ok"


async def _fail():
    raise PaymentServiceError("Payment service error: 500")


def _trip(breaker):
    for _ in range(4):
        breaker.record_failure()


class TestClosed:
    def test_starts_closed(self, breaker):
        assert breaker.state == CircuitState.CLOSED
        assert breaker.allow_request()

    def test_stays_closed_below_minimum_calls(self, breaker):
        for _ in range(3):
            breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED

    def test_stays_closed_below_failure_rate(self, breaker):
        breaker.record_failure()
        for _ in range(3):
            breaker.record_success()
        assert breaker.failure_rate == 25.0
        assert breaker.state == CircuitState.CLOSED

    def test_opens_at_failure_rate(self, breaker):
        breaker.record_success()
        breaker.record_success()
        breaker.record_failure()
        breaker.record_failure()
        assert breaker.state == CircuitState.OPEN
        assert not breaker.allow_request()

    def test_window_slides(self, breaker):
        breaker.record_failure()
        for _ in range(3):
            breaker.record_success()
        assert breaker.failure_rate == 25.0
        breaker.record_success()
        assert breaker.failure_rate == 0.0
        assert breaker.state == CircuitState.CLOSED


class TestOpenAndHalfOpen:
    def test_half_open_after_timeout(self, breaker, clock):
        _trip(breaker)
        clock.advance(29.9)
        assert breaker.state == CircuitState.OPEN
        clock.advance(0.1)
        assert breaker.state == CircuitState.HALF_OPEN

    def test_half_open_limits_trial_calls(self, breaker, clock):
        _trip(breaker)
        clock.advance(30)
        assert breaker.allow_request()
        assert breaker.allow_request()
        assert not breaker.allow_request()

    def test_trial_successes_close(self, breaker, clock):
        _trip(breaker)
        clock.advance(30)
        breaker.allow_request()
        breaker.record_success()
        assert breaker.state == CircuitState.HALF_OPEN
        breaker.allow_request()
        breaker.record_success()
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_rate == 0.0

    def test_trial_failure_reopens(self, breaker, clock):
        _trip(breaker)
        clock.advance(30)
        breaker.allow_request()
        breaker.record_failure()
        assert breaker.state == CircuitState.OPEN
        clock.advance(10)
        assert breaker.state == CircuitState.OPEN


@pytest.mark.asyncio
class TestCall:
    async def test_passes_result_through(self, breaker):
        assert await breaker.call(_ok) == "ok"
        assert breaker.failure_rate == 0.0

    async def test_records_and_reraises_failures(self, breaker):
        for _ in range(4):
            with pytest.raises(PaymentServiceError):
                await breaker.call(_fail)
        assert breaker.state == CircuitState.OPEN

    async def test_open_breaker_short_circuits(self, breaker):
        _trip(breaker)
        calls = []

        async def tracked():
            calls.append(1)

        with pytest.raises(CircuitBreakerOpenError):
            await breaker.call(tracked)
        assert calls == []

    async def test_ignored_exceptions_do_not_count(self, breaker):
        async def not_found():
            raise PaymentDetailsNotFoundError("missing")

        for _ in range(4):
            with pytest.raises(PaymentDetailsNotFoundError):
                await breaker.call(not_found, ignore=(PaymentDetailsNotFoundError,))
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_rate == 0.0

    async def test_cancelled_trial_call_returns_its_permit(self, breaker, clock):
        _trip(breaker)
        clock.advance(30)

        async def slow():
            await asyncio.sleep(5)

        first = asyncio.create_task(breaker.call(slow))
        second = asyncio.create_task(breaker.call(slow))
        await asyncio.sleep(0)
        assert not breaker.allow_request()

        first.cancel()
        second.cancel()
        await asyncio.gather(first, second, return_exceptions=True)
        assert breaker.allow_request()

    async def test_concurrent_failures_open_once(self, breaker):
        results = await asyncio.gather(*(breaker.call(_fail) for _ in range(8)), return_exceptions=True)

        assert breaker.state == CircuitState.OPEN
        assert sum(isinstance(r, CircuitBreakerOpenError) for r in results) == 4

    async def test_call_granted_before_opening_is_not_a_trial(self, clock):
        breaker = CircuitBreaker(
            name="paymentService", window_size=4, minimum_calls=4, half_open_calls=1, clock=clock
        )
        release = asyncio.Event()

        async def slow():
            await release.wait()
            return "late"

        in_flight = asyncio.create_task(breaker.call(slow))
        await asyncio.sleep(0)
        _trip(breaker)
        clock.advance(30)
        assert breaker.state == CircuitState.HALF_OPEN

        release.set()
        assert await in_flight == "late"

        assert breaker.state == CircuitState.HALF_OPEN
        assert breaker.allow_request()

    async def test_failure_granted_before_opening_does_not_reopen(self, clock):
        breaker = CircuitBreaker(
            name="paymentService", window_size=4, minimum_calls=4, half_open_calls=1, clock=clock
        )
        release = asyncio.Event()

        async def slow_failure():
            await release.wait()
            raise PaymentServiceError("Payment service error: 500")

        in_flight = asyncio.create_task(breaker.call(slow_failure))
        await asyncio.sleep(0)
        _trip(breaker)
        clock.advance(30)

        release.set()
        with pytest.raises(PaymentServiceError):
            await in_flight

        assert breaker.state == CircuitState.HALF_OPEN
