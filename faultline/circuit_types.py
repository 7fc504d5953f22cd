"""States, events, metrics and configuration used by circuit breakers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from .errors import FaultError


class CircuitState(Enum):
    """State of a circuit breaker."""

    CLOSED = "Closed"
    """Operations are allowed."""
    OPEN = "Open"
    """Operations are rejected immediately."""
    HALF_OPEN = "HalfOpen"
    """A limited number of trial operations is allowed."""

    def __str__(self) -> str:
        return self.value


class CircuitOperationType(Enum):
    """Outcome of an operation run through a circuit breaker."""

    SUCCESS = "Success"
    FAILURE = "Failure"
    REJECTED = "Rejected"
    TIMEOUT = "Timeout"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CircuitTransitionEvent:
    """A change of a circuit breaker from one state to another."""

    from_state: CircuitState
    to_state: CircuitState
    timestamp: datetime
    reason: str


class CircuitBreakerObserver(ABC):
    """Receives notifications from a circuit breaker.

    Subclasses implement every hook. Durations are given in seconds.
    """

    @abstractmethod
    def on_state_change(self, name: str, event: CircuitTransitionEvent) -> None:
        """Called when the breaker changes state."""

    @abstractmethod
    def on_operation_attempt(self, name: str, state: CircuitState) -> None:
        """Called before an operation is attempted."""

    @abstractmethod
    def on_operation_result(
        self,
        name: str,
        op_type: CircuitOperationType,
        duration: float,
        error: Optional[FaultError],
    ) -> None:
        """Called after an operation completed, failed, was rejected or timed out."""

    @abstractmethod
    def on_reset(self, name: str) -> None:
        """Called when the breaker is reset manually."""


@dataclass
class CircuitMetrics:
    """Counters and rates collected by a circuit breaker."""

    state: CircuitState = CircuitState.CLOSED
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    rejected_requests: int = 0
    timeout_requests: int = 0
    consecutive_failures: int = 0
    consecutive_successes: int = 0
    last_error_timestamp: Optional[datetime] = None
    last_transition_timestamp: Optional[datetime] = None
    failure_rate_in_window: Optional[float] = None
    slow_call_rate_in_window: Optional[float] = None


ErrorPredicate = Callable[[FaultError], bool]


@dataclass
class CircuitBreakerConfig:
    """Thresholds and timeouts controlling a circuit breaker.

    All durations are in seconds.
    """

    failure_threshold: int = 5
    """Consecutive failures after which the circuit opens."""
    failure_rate_threshold: float = 0.5
    """Failure rate in the sliding window (0.0 to 1.0) that opens the circuit."""
    minimum_request_threshold_for_rate: int = 10
    """Requests needed in the window before the failure rate is considered."""
    success_threshold_to_close: int = 3
    """Consecutive successes in half-open state needed to close the circuit."""
    reset_timeout: float = 30.0
    """Time the circuit stays open before moving to half-open."""
    half_open_max_concurrent_operations: int = 1
    """Operations allowed to run at once in half-open state."""
    operation_timeout: Optional[float] = 5.0
    """Time limit for each operation, or ``None`` for no limit."""
    sliding_window_size: int = 100
    """Number of recent results used to compute rates."""
    error_predicate: Optional[ErrorPredicate] = field(default=None, repr=False)
    """Decides whether an error counts as a failure; ``None`` counts every error."""
    metrics_history_size: int = 100
    """Size of the history kept for detailed metrics."""
    track_metrics: bool = True
    """Whether detailed metrics are tracked."""
    slow_call_duration_threshold: Optional[float] = None
    """Duration from which a call counts as slow."""
    slow_call_rate_threshold: Optional[float] = None
    """Rate of slow calls (0.0 to 1.0) in the window that opens the circuit."""

    def counts_as_failure(self, error: FaultError) -> bool:
        """Whether ``error`` counts as a failure for circuit breaking."""
        if self.error_predicate is None:
            return True
        return bool(self.error_predicate(error))