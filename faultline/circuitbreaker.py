"""Circuit breaker that protects callers from cascading failures."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, TypeVar

from .circuit_types import (
    CircuitBreakerConfig,
    CircuitBreakerObserver,
    CircuitMetrics,
    CircuitOperationType,
    CircuitState,
    CircuitTransitionEvent,
)
from .errors import (
    CircuitBreakerOpenError,
    FaultError,
    GeneralError,
    OperationTimeoutError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_HALF_OPEN_RETRY_AFTER = 0.1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _Inner:
    window_size: int
    state: CircuitState = CircuitState.CLOSED
    opened_at: Optional[float] = None
    half_open_entered_at: Optional[float] = None
    consecutive_failures: int = 0
    consecutive_successes: int = 0
    half_open_concurrency: int = 0
    results: deque = field(init=False)
    slow_calls: deque = field(init=False)
    metrics: CircuitMetrics = field(default_factory=CircuitMetrics)

    def __post_init__(self) -> None:
        # A window never holds less than the latest result.
        size = max(1, self.window_size)
        self.results = deque(maxlen=size)
        self.slow_calls = deque(maxlen=size)

    def failure_rate(self) -> Optional[float]:
        if not self.results:
            return None
        return sum(1 for ok in self.results if not ok) / len(self.results)

    def slow_rate(self) -> Optional[float]:
        if not self.slow_calls:
            return None
        return sum(1 for slow in self.slow_calls if slow) / len(self.slow_calls)

    def update_rates(self) -> None:
        self.metrics.failure_rate_in_window = self.failure_rate()
        self.metrics.slow_call_rate_in_window = self.slow_rate()


class CircuitBreaker:
    """Guards operations, rejecting them while a failing dependency recovers."""

    def __init__(self, name: str, config: Optional[CircuitBreakerConfig] = None) -> None:
        self.name = name
        self.config = config if config is not None else CircuitBreakerConfig()
        self._lock = threading.Lock()
        self._inner = _Inner(window_size=self.config.sliding_window_size)
        self._observers: list[CircuitBreakerObserver] = []
        self._observers_lock = threading.Lock()

    def __repr__(self) -> str:
        return f"CircuitBreaker(name={self.name!r}, state={self.state()})"

    def add_observer(self, observer: CircuitBreakerObserver) -> None:
        """Register an observer for state changes and operation results."""
        with self._observers_lock:
            self._observers.append(observer)

    def state(self) -> CircuitState:
        """Return the current state."""
        with self._lock:
            return self._inner.state

    def metrics(self) -> CircuitMetrics:
        """Return a snapshot of the collected metrics."""
        with self._lock:
            return replace(self._inner.metrics)

    def trip(self) -> None:
        """Open the circuit manually."""
        now = _utcnow()
        with self._lock:
            inner = self._inner
            previous = inner.state
            inner.state = CircuitState.OPEN
            inner.opened_at = time.monotonic()
            inner.consecutive_failures = self.config.failure_threshold
            inner.consecutive_successes = 0
            inner.metrics.state = CircuitState.OPEN
            inner.metrics.consecutive_failures = inner.consecutive_failures
            inner.metrics.consecutive_successes = 0
            inner.metrics.last_transition_timestamp = now
        self._notify_state_change(
            CircuitTransitionEvent(previous, CircuitState.OPEN, now, "Manual trip")
        )

    def reset(self) -> None:
        """Close the circuit manually and clear its sliding windows."""
        now = _utcnow()
        with self._lock:
            inner = self._inner
            previous = inner.state
            inner.state = CircuitState.CLOSED
            inner.opened_at = None
            inner.half_open_entered_at = None
            inner.consecutive_failures = 0
            inner.consecutive_successes = 0
            inner.half_open_concurrency = 0
            inner.metrics.state = CircuitState.CLOSED
            inner.metrics.consecutive_failures = 0
            inner.metrics.consecutive_successes = 0
            inner.metrics.last_transition_timestamp = now
            inner.results.clear()
            inner.slow_calls.clear()
        self._notify_state_change(
            CircuitTransitionEvent(previous, CircuitState.CLOSED, now, "Manual reset")
        )
        for observer in self._observer_snapshot():
            observer.on_reset(self.name)

    def execute(self, operation: Callable[[], T]) -> T:
        """Run ``operation`` through the breaker and return its result.

        Raises ``CircuitBreakerOpenError`` when the call is rejected and
        ``OperationTimeoutError`` when it exceeds the operation timeout;
        any error raised by ``operation`` is re-raised after being recorded.
        """
        start = time.monotonic()
        state = self._admit()
        half_open = state is CircuitState.HALF_OPEN
        if half_open:
            self._acquire_half_open_slot()
        try:
            try:
                result = self._call(operation)
            finally:
                duration = time.monotonic() - start
                if half_open:
                    self._release_half_open_slot()
        except Exception as exc:
            self._on_error(exc, duration, half_open)
            raise
        self._on_success(duration, half_open)
        return result

    async def execute_async(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Await ``operation()`` through the breaker and return its result."""
        start = time.monotonic()
        state = self._admit()
        half_open = state is CircuitState.HALF_OPEN
        if half_open:
            self._acquire_half_open_slot()
        try:
            try:
                result = await self._call_async(operation)
            finally:
                duration = time.monotonic() - start
                if half_open:
                    self._release_half_open_slot()
        except Exception as exc:
            self._on_error(exc, duration, half_open)
            raise
        self._on_success(duration, half_open)
        return result

    # Admission and execution

    def _admit(self) -> CircuitState:
        """Decide how a new call proceeds, raising if it is rejected."""
        state = self.state()
        self._notify_attempt(state)
        if state is not CircuitState.OPEN:
            return state

        with self._lock:
            opened_at = self._inner.opened_at
        elapsed = time.monotonic() - opened_at if opened_at is not None else 0.0
        if opened_at is not None and elapsed >= self.config.reset_timeout:
            self._transition(CircuitState.HALF_OPEN, "Reset timeout elapsed")
            return CircuitState.HALF_OPEN

        self._record_rejected()
        raise CircuitBreakerOpenError(
            name=self.name,
            retry_after=max(0.0, self.config.reset_timeout - elapsed),
        )

    def _acquire_half_open_slot(self) -> None:
        with self._lock:
            if self._inner.half_open_concurrency < self.config.half_open_max_concurrent_operations:
                self._inner.half_open_concurrency += 1
                return
        self._record_rejected()
        raise CircuitBreakerOpenError(name=self.name, retry_after=_HALF_OPEN_RETRY_AFTER)

    def _release_half_open_slot(self) -> None:
        with self._lock:
            self._inner.half_open_concurrency = max(0, self._inner.half_open_concurrency - 1)

    def _timeout_error(self, timeout: float) -> OperationTimeoutError:
        return OperationTimeoutError(
            operation=f"Operation in circuit breaker '{self.name}'", duration=timeout
        )

    def _call(self, operation: Callable[[], T]) -> T:
        timeout = self.config.operation_timeout
        if timeout is None:
            return operation()
        started = time.monotonic()
        try:
            result = operation()
        except Exception as exc:
            if time.monotonic() - started > timeout:
                self._record_timeout()
                raise self._timeout_error(timeout) from exc
            raise
        if time.monotonic() - started > timeout:
            self._record_timeout()
            raise self._timeout_error(timeout)
        return result

    async def _call_async(self, operation: Callable[[], Awaitable[T]]) -> T:
        timeout = self.config.operation_timeout
        if timeout is None:
            return await operation()
        try:
            return await asyncio.wait_for(operation(), timeout)
        except asyncio.TimeoutError as exc:
            self._record_timeout()
            raise self._timeout_error(timeout) from exc

    # Outcome handling

    def _on_success(self, duration: float, half_open: bool) -> None:
        self._record_success(duration)
        if not half_open:
            return
        with self._lock:
            close = self._inner.consecutive_successes >= self.config.success_threshold_to_close
        if close:
            self._transition(CircuitState.CLOSED, "Success threshold reached")

    def _on_error(self, exc: Exception, duration: float, half_open: bool) -> None:
        fault = exc if isinstance(exc, FaultError) else GeneralError(message=str(exc), source=exc)
        if not self.config.counts_as_failure(fault):
            self._record_success(duration)
            return
        self._record_failure(fault, duration)
        if half_open:
            self._transition(CircuitState.OPEN, "Failure in half-open state")
        elif self._should_open():
            self._transition(CircuitState.OPEN, "Failure threshold reached")

    def _should_open(self) -> bool:
        config = self.config
        with self._lock:
            inner = self._inner
            if inner.consecutive_failures >= config.failure_threshold:
                return True
            if len(inner.results) >= config.minimum_request_threshold_for_rate:
                rate = inner.failure_rate()
                if rate is not None and rate >= config.failure_rate_threshold:
                    return True
            if config.slow_call_rate_threshold is not None:
                slow = inner.slow_rate()
                if slow is not None and slow >= config.slow_call_rate_threshold:
                    return True
        return False

    def _is_slow(self, duration: float) -> bool:
        threshold = self.config.slow_call_duration_threshold
        return threshold is not None and duration >= threshold

    # State transitions

    def _transition(self, target: CircuitState, reason: str) -> None:
        now = _utcnow()
        with self._lock:
            inner = self._inner
            previous = inner.state
            inner.state = target
            if target is CircuitState.OPEN:
                inner.opened_at = time.monotonic()
                inner.consecutive_successes = 0
            elif target is CircuitState.HALF_OPEN:
                inner.half_open_entered_at = time.monotonic()
                inner.consecutive_successes = 0
                inner.half_open_concurrency = 0
            else:
                inner.opened_at = None
                inner.half_open_entered_at = None
                inner.consecutive_failures = 0
            inner.metrics.state = target
            inner.metrics.last_transition_timestamp = now
        logger.info("Circuit breaker '%s' transitioning to %s: %s", self.name, target, reason)
        self._notify_state_change(CircuitTransitionEvent(previous, target, now, reason))

    # Recording

    def _record_success(self, duration: float) -> None:
        with self._lock:
            inner = self._inner
            inner.consecutive_successes += 1
            inner.consecutive_failures = 0
            inner.results.append(True)
            inner.slow_calls.append(self._is_slow(duration))
            inner.metrics.total_requests += 1
            inner.metrics.successful_requests += 1
            inner.metrics.consecutive_successes = inner.consecutive_successes
            inner.metrics.consecutive_failures = 0
            inner.update_rates()
        self._notify_result(CircuitOperationType.SUCCESS, duration, None)

    def _record_failure(self, error: FaultError, duration: float) -> None:
        with self._lock:
            inner = self._inner
            inner.consecutive_failures += 1
            inner.consecutive_successes = 0
            inner.results.append(False)
            inner.slow_calls.append(self._is_slow(duration))
            inner.metrics.total_requests += 1
            inner.metrics.failed_requests += 1
            inner.metrics.consecutive_failures = inner.consecutive_failures
            inner.metrics.consecutive_successes = 0
            inner.metrics.last_error_timestamp = _utcnow()
            inner.update_rates()
        self._notify_result(CircuitOperationType.FAILURE, duration, error)

    def _record_rejected(self) -> None:
        with self._lock:
            self._inner.metrics.total_requests += 1
            self._inner.metrics.rejected_requests += 1
        self._notify_result(CircuitOperationType.REJECTED, 0.0, None)

    def _record_timeout(self) -> None:
        with self._lock:
            inner = self._inner
            inner.consecutive_failures += 1
            inner.consecutive_successes = 0
            inner.results.append(False)
            inner.metrics.total_requests += 1
            inner.metrics.timeout_requests += 1
            inner.metrics.consecutive_failures = inner.consecutive_failures
            inner.metrics.consecutive_successes = 0
            inner.metrics.last_error_timestamp = _utcnow()
            inner.update_rates()
        timeout = self.config.operation_timeout or 0.0
        self._notify_result(CircuitOperationType.TIMEOUT, timeout, self._timeout_error(timeout))

    # Observer notification

    def _observer_snapshot(self) -> list[CircuitBreakerObserver]:
        with self._observers_lock:
            return list(self._observers)

    def _notify_state_change(self, event: CircuitTransitionEvent) -> None:
        for observer in self._observer_snapshot():
            observer.on_state_change(self.name, event)

    def _notify_attempt(self, state: CircuitState) -> None:
        for observer in self._observer_snapshot():
            observer.on_operation_attempt(self.name, state)

    def _notify_result(
        self, op_type: CircuitOperationType, duration: float, error: Optional[FaultError]
    ) -> None:
        for observer in self._observer_snapshot():
            observer.on_operation_result(self.name, op_type, duration, error)