from __future__ import annotations
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from http.cookiejar import DefaultCookiePolicy
from typing import Callable, Iterator

import requests
from requests.adapters import HTTPAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoolSettings:
    max_idle_connections: int = 100
    max_idle_per_host: int = 10
    idle_timeout: float = 90.0  # seconds

    @property
    def host_pools(self) -> int:
        # urllib3 sizes pools per host; total idle = host_pools * max_idle_per_host
        return max(1, self.max_idle_connections // self.max_idle_per_host)


class HTTPClient:
    """A pooled requests session bound to a single timeout.

    timeout_ms of 0 means requests are sent without a timeout.
    """

    def __init__(self, timeout_ms: int, pool: PoolSettings | None = None):
        self.timeout_ms = timeout_ms
        self.timeout: float | None = timeout_ms / 1000 if timeout_ms else None
        self.pool = pool or PoolSettings()
        self.session = requests.Session()
        # No cookie jar, netrc credentials or proxies from the environment:
        # every GET goes out the same way, however often the client is reused
        self.session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
        self.session.trust_env = False
        adapter = HTTPAdapter(pool_connections=self.pool.host_pools, pool_maxsize=self.pool.max_idle_per_host)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)
        self._last_used = time.monotonic()
        self._idle_lock = threading.Lock()

    def _drop_idle(self) -> None:
        with self._idle_lock:
            now = time.monotonic()
            if now - self._last_used > self.pool.idle_timeout:
                logger.debug("dropping idle connections for client timeout=%sms", self.timeout_ms)
                # closing the adapters only clears their pools; they stay usable
                for adapter in self.session.adapters.values():
                    adapter.close()
            self._last_used = now

    def get(self, url: str) -> requests.Response:
        """Send a GET without a body. The caller must close the response."""
        self._drop_idle()
        return self.session.get(url, timeout=self.timeout, stream=True)


class _ReadWriteLock:
    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


ClientFactory = Callable[[int, PoolSettings], HTTPClient]


class ClientCache:
    """Reusable HTTP clients keyed by timeout in milliseconds.

    Entries are created on first use and kept for the lifetime of the
    cache. There is no eviction: every distinct timeout adds one client.
    """

    def __init__(self, pool: PoolSettings | None = None, factory: ClientFactory = HTTPClient):
        self.pool = pool or PoolSettings()
        self._factory = factory
        self._clients: dict[int, HTTPClient] = {}
        self._lock = _ReadWriteLock()

    def get(self, timeout_ms: int) -> HTTPClient:
        if timeout_ms < 0:
            raise ValueError(f"timeout must not be negative, got {timeout_ms}")

        with self._lock.read():
            client = self._clients.get(timeout_ms)
        if client is not None:
            return client

        with self._lock.write():
            # another caller may have created it while we waited
            client = self._clients.get(timeout_ms)
            if client is None:
                client = self._factory(timeout_ms, self.pool)
                self._clients[timeout_ms] = client
                logger.debug("created HTTP client for timeout=%sms (%d cached)", timeout_ms, len(self._clients))
            return client

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._clients)

    def __contains__(self, timeout_ms: object) -> bool:
        with self._lock.read():
            return timeout_ms in self._clients
