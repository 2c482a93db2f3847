"""
Circuit breaker for the push gateway.

After repeated transport failures the breaker opens and push sends fail fast
with CircuitBreakerOpenError until reset_timeout has elapsed; one trial call
is then let through (HALF_OPEN) and its result closes or reopens the circuit.
"""

import logging
import time
from typing import Any, Awaitable, Callable, Optional

from fleet_notify.errors import CollaboratorUnavailableError

logger = logging.getLogger(__name__)

CLOSED = "CLOSED"
OPEN = "OPEN"
HALF_OPEN = "HALF_OPEN"


class CircuitBreakerOpenError(CollaboratorUnavailableError):
    """Raised when circuit breaker is open"""
    pass


class CircuitBreaker:
    """
    Args:
        max_failures: Consecutive failures before opening the circuit
        reset_timeout: Seconds to stay open before a trial call
        name: Label used in log lines
    """

    def __init__(self, max_failures: int = 3, reset_timeout: float = 60, name: str = "push-gateway"):
        self.max_failures = max_failures
        self.reset_timeout = reset_timeout
        self.name = name

        self.state = CLOSED
        self.failure_count = 0
        self.opened_at: Optional[float] = None
        self._trial_in_flight = False

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """
        Await func(*args, **kwargs) through the breaker.

        Raises:
            CircuitBreakerOpenError: If the circuit is open
            Exception: Anything raised by func
        """
        if self.state == OPEN:
            if self._time_until_reset() > 0:
                raise CircuitBreakerOpenError(
                    f"Circuit breaker {self.name} is OPEN, retry in {self._time_until_reset():.0f}s"
                )
            self.state = HALF_OPEN
            logger.info(f"Circuit breaker {self.name} HALF_OPEN, allowing trial call")

        if self.state == HALF_OPEN:
            if self._trial_in_flight:
                raise CircuitBreakerOpenError(f"Circuit breaker {self.name} is HALF_OPEN with a trial in flight")
            self._trial_in_flight = True

        try:
            result = await func(*args, **kwargs)
        except Exception:
            self._on_failure()
            raise
        else:
            self._on_success()
            return result
        finally:
            self._trial_in_flight = False

    def _on_success(self) -> None:
        if self.state == HALF_OPEN or self.failure_count:
            logger.info(f"Circuit breaker {self.name} CLOSED after recovery")
        self.state = CLOSED
        self.failure_count = 0
        self.opened_at = None

    def _on_failure(self) -> None:
        self.failure_count += 1
        logger.warning(
            f"Circuit breaker {self.name} failure {self.failure_count}/{self.max_failures} in state {self.state}"
        )
        if self.state == HALF_OPEN or self.failure_count >= self.max_failures:
            self.state = OPEN
            self.opened_at = time.monotonic()
            logger.error(f"Circuit breaker {self.name} OPEN for {self.reset_timeout}s")

    def _time_until_reset(self) -> float:
        if self.opened_at is None:
            return 0
        return max(0.0, self.reset_timeout - (time.monotonic() - self.opened_at))

    def get_state(self) -> dict:
        return {
            "state": self.state,
            "failure_count": self.failure_count,
            "max_failures": self.max_failures,
            "reset_timeout": self.reset_timeout,
            "time_until_reset": round(self._time_until_reset()) if self.state == OPEN else 0
        }
