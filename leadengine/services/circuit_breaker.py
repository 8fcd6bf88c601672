"""
Redis-backed circuit breakers for the outbound integrations.

One breaker per external service (Google Geocoding, Google Solar, the
messaging webhook). States:
  - CLOSED    → calls pass through
  - OPEN      → failure_threshold consecutive failures; calls raise CircuitOpenError
  - HALF_OPEN → reset_timeout elapsed since the last failure; one probe call allowed

Breaker state lives in Redis so every web process and RQ worker shares it.
If Redis itself is unreachable the breaker stays out of the way (calls pass).
"""
import logging
import time

import redis

logger = logging.getLogger('services.circuit_breaker')

CLOSED = 'closed'
OPEN = 'open'
HALF_OPEN = 'half_open'


def server_error(response):
    """Failure reason for a 5xx HTTP response, else None. 4xx is the caller's problem."""
    status = getattr(response, 'status_code', None)
    if isinstance(status, int) and status >= 500:
        return f"HTTP {status}"
    return None


# name → (failure_threshold, reset_timeout seconds)
SERVICE_DEFAULTS = {
    'google_geocoding': (5, 120),
    'google_solar': (3, 300),
    'messaging': (5, 60),
}


class CircuitOpenError(Exception):
    """Raised when calling through an open circuit breaker."""
    def __init__(self, name, retry_after=None):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker '{name}' is OPEN, service unavailable")


class CircuitBreaker:
    """
    Usage:
        cb = CircuitBreaker('google_solar', redis_client, failure_threshold=3, reset_timeout=300,
                            is_failure=server_error)
        response = cb.call(session.get, url, params=params, timeout=8)

    `is_failure` inspects a returned value: a 5xx response is still handed
    back to the caller but counts against the breaker like an exception.
    """

    PREFIX = 'cb'

    def __init__(self, name, redis_client, failure_threshold=3, reset_timeout=300, is_failure=None):
        self.name = name
        self.redis = redis_client
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.is_failure = is_failure

    def _key(self, suffix):
        return f'{self.PREFIX}:{self.name}:{suffix}'

    def _safe(self, op, default=None):
        """Run a Redis operation; a Redis outage degrades to `default`."""
        try:
            return op()
        except (redis.RedisError, OSError) as e:
            logger.debug("Circuit '%s': redis unavailable (%s)", self.name, e)
            return default

    # ── State ─────────────────────────────────────────────────────────

    @property
    def state(self):
        current = self._safe(lambda: self.redis.get(self._key('state')))
        if current is None:
            return CLOSED
        if current == OPEN and self._seconds_since_failure() > self.reset_timeout:
            self._safe(lambda: self.redis.set(self._key('state'), HALF_OPEN))
            return HALF_OPEN
        return current

    @property
    def failure_count(self):
        value = self._safe(lambda: self.redis.get(self._key('failures')))
        return int(value) if value else 0

    def _seconds_since_failure(self):
        last = self._safe(lambda: self.redis.get(self._key('last_failure')))
        if not last:
            return float('inf')
        return time.time() - float(last)

    # ── Calls ─────────────────────────────────────────────────────────

    def call(self, func, *args, **kwargs):
        """Execute func through the breaker; exceptions are counted then re-raised."""
        if self.state == OPEN:
            retry_after = max(0.0, self.reset_timeout - self._seconds_since_failure())
            raise CircuitOpenError(self.name, retry_after=retry_after)

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            self._on_failure(e)
            raise

        failure = self.is_failure(result) if self.is_failure else None
        if failure:
            self._on_failure(failure)
        else:
            self._on_success()
        return result

    def _on_success(self):
        def _write():
            pipe = self.redis.pipeline()
            pipe.set(self._key('state'), CLOSED)
            pipe.set(self._key('failures'), 0)
            pipe.hincrby(self._key('health'), 'success', 1)
            pipe.hset(self._key('health'), 'last_success', str(time.time()))
            pipe.execute()
        self._safe(_write)

    def _on_failure(self, error):
        count = self._safe(lambda: self.redis.incr(self._key('failures')), default=0)

        def _write():
            now = str(time.time())
            pipe = self.redis.pipeline()
            pipe.set(self._key('last_failure'), now)
            pipe.hincrby(self._key('health'), 'failure', 1)
            pipe.hset(self._key('health'), 'last_failure', now)
            pipe.hset(self._key('health'), 'last_error', str(error)[:200])
            if count >= self.failure_threshold:
                pipe.set(self._key('state'), OPEN)
            pipe.execute()
        self._safe(_write)

        if count >= self.failure_threshold:
            logger.warning("Circuit '%s' OPENED after %d failures: %s", self.name, count, error)
        else:
            logger.info("Circuit '%s' failure %d/%d: %s", self.name, count, self.failure_threshold, error)

    def reset(self):
        """Manually close the breaker."""
        def _write():
            pipe = self.redis.pipeline()
            pipe.set(self._key('state'), CLOSED)
            pipe.set(self._key('failures'), 0)
            pipe.delete(self._key('last_failure'))
            pipe.execute()
        self._safe(_write)
        logger.info("Circuit '%s' manually reset to CLOSED", self.name)

    def get_health(self):
        """Health metrics for /api/health."""
        data = self._safe(lambda: self.redis.hgetall(self._key('health')), default={}) or {}
        return {
            'name': self.name,
            'state': self.state,
            'failure_count': self.failure_count,
            'failure_threshold': self.failure_threshold,
            'reset_timeout': self.reset_timeout,
            'total_success': int(data.get('success', 0)),
            'total_failure': int(data.get('failure', 0)),
            'last_success': float(data['last_success']) if data.get('last_success') else None,
            'last_failure': float(data['last_failure']) if data.get('last_failure') else None,
            'last_error': data.get('last_error', ''),
        }


# ── Registry ──────────────────────────────────────────────────────────────────

_registry = {}


def get_breaker(name, redis_client=None):
    """Get or create the named breaker (one per process)."""
    if name not in _registry:
        if redis_client is None:
            from leadengine.extensions import redis_client
        threshold, timeout = SERVICE_DEFAULTS.get(name, (3, 300))
        _registry[name] = CircuitBreaker(
            name, redis_client, failure_threshold=threshold, reset_timeout=timeout, is_failure=server_error,
        )
    return _registry[name]


def get_all_breakers():
    return dict(_registry)


def init_breakers(redis_client):
    """Register a breaker for every known external service."""
    for name, (threshold, timeout) in SERVICE_DEFAULTS.items():
        _registry[name] = CircuitBreaker(
            name, redis_client, failure_threshold=threshold, reset_timeout=timeout, is_failure=server_error,
        )
    return dict(_registry)
