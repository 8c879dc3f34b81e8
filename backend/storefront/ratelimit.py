import time

from django.core.cache import caches


def client_ip(request):
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("HTTP_X_REAL_IP") or request.META.get("REMOTE_ADDR") or "unknown"


class RateLimiter:
    """
    Fixed-window request counter backed by a Django cache.

    The cache is passed in so each caller decides which store (and therefore
    which process or cluster scope) the counters live in.
    """

    def __init__(self, cache, limit, window=60, prefix="ratelimit", clock=time.time):
        self.cache = cache
        self.limit = limit
        self.window = window
        self.prefix = prefix
        self.clock = clock

    def _key(self, identifier):
        bucket = int(self.clock() // self.window)
        return f"{self.prefix}:{identifier}:{bucket}"

    def allow(self, identifier):
        key = self._key(identifier)
        # add() is a no-op when the bucket already exists
        self.cache.add(key, 0, timeout=self.window)
        try:
            count = self.cache.incr(key)
        except ValueError:
            self.cache.set(key, 1, timeout=self.window)
            count = 1
        return count <= self.limit


def rate_limiter(limit, prefix, window=60, alias="default"):
    return RateLimiter(caches[alias], limit=limit, window=window, prefix=prefix)
