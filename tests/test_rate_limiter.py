from datetime import datetime, timedelta, timezone

from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from src.utils.rate_limiter import RateLimit, RateLimiter
from src.utils.validation_exception_handler import add_exception_handlers


def test_limiter_blocks_after_max_requests():
    limiter = RateLimiter(max_requests=2, window_seconds=60)

    assert limiter.is_allowed('1.2.3.4')
    assert limiter.is_allowed('1.2.3.4')
    assert not limiter.is_allowed('1.2.3.4')
    assert 0 < limiter.get_retry_after('1.2.3.4') <= 61


def test_clients_are_limited_separately():
    limiter = RateLimiter(max_requests=1, window_seconds=60)

    assert limiter.is_allowed('a')
    assert limiter.is_allowed('b')
    assert not limiter.is_allowed('a')


def test_reset():
    limiter = RateLimiter(max_requests=1, window_seconds=60)
    limiter.is_allowed('a')
    limiter.reset()

    assert limiter.is_allowed('a')
    assert limiter.get_retry_after('unknown') == 0


def test_dependency_returns_429_with_retry_after():
    limit = RateLimit('test', "Slow down", max_requests=1)
    app = FastAPI()
    add_exception_handlers(app)

    @app.get("/ping", dependencies=[Depends(limit)])
    def ping():
        return {'ok': True}

    client = TestClient(app)

    assert client.get("/ping").status_code == 200
    response = client.get("/ping")
    assert response.status_code == 429
    assert response.json() == {'success': False, 'error': "Slow down"}
    assert int(response.headers['Retry-After']) > 0


def test_idle_clients_are_evicted():
    now = [datetime(2024, 1, 1, tzinfo=timezone.utc)]
    limiter = RateLimiter(max_requests=5, window_seconds=60, clock=lambda: now[0])

    for client in ('a', 'b', 'c'):
        limiter.is_allowed(client)
    assert limiter.tracked_clients() == 3

    now[0] += timedelta(seconds=61)
    assert limiter.is_allowed('d')

    assert limiter.tracked_clients() == 1
    assert limiter.get_retry_after('a') == 0
