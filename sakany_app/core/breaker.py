import logging
import time
from typing import Any, Awaitable, Callable

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class CircuitOpenError(Exception):
    pass


class CircuitBreaker:
    """Fails fast once a dependency keeps failing.

    Only exceptions listed in ``trip_on`` count as failures; anything else
    (bad input, permission checks) passes straight through and leaves the
    circuit untouched.
    """

    def __init__(
        self,
        name: str = "default",
        failure_threshold: int = 3,
        base_recovery_time: int = 10,
        max_recovery_time: int = 60,
        trip_on: tuple[type[BaseException], ...] = (Exception,),
    ):
        self.name = name
        self.failure_count = 0
        self.failure_threshold = failure_threshold
        self.base_recovery_time = base_recovery_time
        self.max_recovery_time = max_recovery_time
        self.trip_on = trip_on
        self.last_failure_time = 0.0
        self.state = "CLOSED"

    @property
    def current_recovery_time(self) -> float:
        return min(
            self.base_recovery_time
            * (2 ** max(self.failure_count - self.failure_threshold, 0)),
            self.max_recovery_time,
        )

    def _open(self):
        self.state = "OPEN"
        self.last_failure_time = time.monotonic()
        logger.warning(
            "Circuit '%s' opened after %d failures.", self.name, self.failure_count
        )

    def _half_open(self):
        self.state = "HALF_OPEN"
        logger.info("Circuit '%s' half-open: testing...", self.name)

    def _close(self):
        if self.state != "CLOSED":
            logger.info("Circuit '%s' closed: stable again.", self.name)
        self.state = "CLOSED"
        self.failure_count = 0

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        if self.state == "OPEN":
            elapsed = time.monotonic() - self.last_failure_time
            cooldown = self.current_recovery_time
            if elapsed < cooldown:
                raise CircuitOpenError(
                    f"Circuit '{self.name}' still open, retry after {cooldown - elapsed:.1f}s"
                )
            self._half_open()

        try:
            result = await func(*args, **kwargs)
        except self.trip_on as e:
            self.failure_count += 1
            logger.error(
                "Circuit '%s' call failed (%d): %s", self.name, self.failure_count, e
            )
            if self.state == "HALF_OPEN" or self.failure_count >= self.failure_threshold:
                self._open()
            raise

        self._close()
        return result


breaker = CircuitBreaker(name="outbound", failure_threshold=3, base_recovery_time=10)
db_breaker = CircuitBreaker(
    name="database",
    failure_threshold=5,
    base_recovery_time=5,
    max_recovery_time=30,
    trip_on=(SQLAlchemyError, OSError),
)
