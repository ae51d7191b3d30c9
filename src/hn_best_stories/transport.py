from __future__ import annotations

import logging
import random
import threading
import time
from typing import Any, Callable
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter

from hn_best_stories.cancellation import OperationCancelled, raise_if_cancelled
from hn_best_stories.config import AppConfig

LOGGER = logging.getLogger("hn_best_stories")

USER_AGENT = "hn-best-stories/0.1"


class TransportError(RuntimeError):
    """Raised when a resource could not be fetched after all attempts."""


class CircuitOpenError(TransportError):
    """Raised without touching the network while the breaker is open."""


def _is_transient_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class CircuitBreaker:
    """Consecutive-failure breaker shared by every request of a transport.

    After ``failure_threshold`` transient failures in a row the breaker opens
    for ``reset_after_sec``. Once that window passes requests are let through
    again; the failure count is kept, so a single further failure re-opens it
    and a success closes it.
    """

    def __init__(
        self,
        failure_threshold: int = 8,
        reset_after_sec: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if failure_threshold <= 0:
            raise ValueError("failure_threshold must be > 0")
        self.failure_threshold = failure_threshold
        self.reset_after_sec = reset_after_sec
        self._clock = clock
        self._failures = 0
        self._opened_at: float | None = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self._blocking()

    def _blocking(self) -> bool:
        if self._opened_at is None:
            return False
        return self._clock() - self._opened_at < self.reset_after_sec

    def allow_request(self) -> bool:
        with self._lock:
            return not self._blocking()

    def record_success(self) -> None:
        with self._lock:
            self._failures = 0
            self._opened_at = None

    def record_failure(self) -> None:
        with self._lock:
            self._failures += 1
            # Late failures from requests already in flight must not extend the window.
            if self._failures >= self.failure_threshold and not self._blocking():
                self._opened_at = self._clock()


class HttpTransport:
    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        timeout_sec: float = 30.0,
        retries: int = 3,
        backoff_base_sec: float = 1.0,
        backoff_cap_sec: float = 10.0,
        breaker: CircuitBreaker | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
        owns_session: bool = False,
    ) -> None:
        if retries < 0:
            raise ValueError("retries must be >= 0")
        self.base_url = base_url
        self._owns_session = owns_session or session is None
        self.session = session or requests.Session()
        self.timeout_sec = timeout_sec
        self.retries = retries
        self.backoff_base_sec = backoff_base_sec
        self.backoff_cap_sec = backoff_cap_sec
        self.breaker = breaker or CircuitBreaker()
        self._sleep = sleep
        self._rng = rng or random.Random()

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def _next_delay(self, previous: float) -> float:
        # Decorrelated jitter: each delay is drawn relative to the previous one.
        upper = max(self.backoff_base_sec, previous * 3)
        return min(self.backoff_cap_sec, self._rng.uniform(self.backoff_base_sec, upper))

    def _wait(self, delay: float, cancel: threading.Event | None) -> None:
        if cancel is None:
            self._sleep(delay)
            return
        if cancel.wait(delay):
            raise OperationCancelled("operation cancelled during retry backoff")

    def fetch_json(self, resource_path: str, cancel: threading.Event | None = None) -> Any:
        url = urljoin(self.base_url, resource_path)
        attempts = self.retries + 1
        delay = self.backoff_base_sec
        last_error: str | None = None
        for attempt in range(1, attempts + 1):
            raise_if_cancelled(cancel)
            if not self.breaker.allow_request():
                raise CircuitOpenError(f"circuit open, refusing GET {url}")
            try:
                response = self.session.get(
                    url,
                    timeout=self.timeout_sec,
                    headers={"User-Agent": USER_AGENT},
                )
            except (requests.ConnectionError, requests.Timeout) as exc:
                self.breaker.record_failure()
                last_error = f"attempt {attempt}/{attempts}: {exc}"
            except requests.RequestException as exc:
                raise TransportError(f"GET {url} failed: {exc}") from exc
            else:
                if _is_transient_status(response.status_code):
                    self.breaker.record_failure()
                    last_error = f"attempt {attempt}/{attempts}: HTTP {response.status_code}"
                else:
                    self.breaker.record_success()
                    try:
                        response.raise_for_status()
                    except requests.HTTPError as exc:
                        raise TransportError(f"GET {url} failed: {exc}") from exc
                    try:
                        return response.json()
                    except ValueError as exc:
                        raise TransportError(f"GET {url} returned invalid JSON") from exc

            if attempt < attempts:
                delay = self._next_delay(delay)
                LOGGER.debug("retrying GET %s in %.2fs (%s)", url, delay, last_error)
                self._wait(delay, cancel)
        raise TransportError(f"GET {url} failed: {last_error or 'unknown error'}")


def build_transport(config: AppConfig) -> HttpTransport:
    session = requests.Session()
    # One pooled connection per detail worker.
    adapter = HTTPAdapter(pool_maxsize=max(config.max_parallelism, 10))
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return HttpTransport(
        base_url=config.base_url,
        session=session,
        timeout_sec=config.timeout_sec,
        retries=config.retries,
        backoff_base_sec=config.backoff_base_sec,
        backoff_cap_sec=config.backoff_cap_sec,
        breaker=CircuitBreaker(
            failure_threshold=config.breaker_failure_threshold,
            reset_after_sec=config.breaker_reset_sec,
        ),
        owns_session=True,
    )
