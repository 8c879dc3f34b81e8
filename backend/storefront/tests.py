from django.core.cache import cache
from django.test import RequestFactory

from storefront.ratelimit import RateLimiter, client_ip


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def test_rate_limiter_resets_each_window():
    clock = FakeClock()
    limiter = RateLimiter(cache, limit=2, window=60, prefix="test", clock=clock)

    assert [limiter.allow("1.2.3.4") for _ in range(3)] == [True, True, False]
    assert limiter.allow("5.6.7.8") is True

    clock.now = 60
    assert limiter.allow("1.2.3.4") is True


def test_client_ip_prefers_forwarded_header():
    factory = RequestFactory()

    assert client_ip(factory.get("/", HTTP_X_FORWARDED_FOR="10.0.0.1, 10.0.0.2")) == "10.0.0.1"
    assert client_ip(factory.get("/")) == "127.0.0.1"
