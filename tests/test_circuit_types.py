from dataclasses import FrozenInstanceError, replace
from datetime import datetime, timezone

import pytest

from faultline.circuit_types import (
    CircuitBreakerConfig,
    CircuitBreakerObserver,
    CircuitMetrics,
    CircuitOperationType,
    CircuitState,
    CircuitTransitionEvent,
)
from faultline.errors import InternalError, OperationTimeoutError


def test_state_display_matches_name():
    shown = [str(CircuitMetrics(state=state).state) for state in CircuitState]
    assert shown == ["Closed", "Open", "HalfOpen"]


def test_states_are_distinct():
    metrics = [CircuitMetrics(state=state) for state in CircuitState]
    assert len({m.state for m in metrics}) == 3
    assert {m.state for m in metrics} == {
        CircuitState.CLOSED,
        CircuitState.OPEN,
        CircuitState.HALF_OPEN,
    }


def test_operation_type_round_trip_by_value():
    for op in CircuitOperationType:
        assert CircuitOperationType(op.value) is op
        assert str(op) == op.value


def test_transition_event_is_immutable():
    now = datetime.now(timezone.utc)
    event = CircuitTransitionEvent(
        from_state=CircuitState.CLOSED,
        to_state=CircuitState.OPEN,
        timestamp=now,
        reason="Manual trip",
    )
    assert event.from_state is CircuitState.CLOSED
    assert event.to_state is CircuitState.OPEN
    assert event.timestamp == now
    with pytest.raises(FrozenInstanceError):
        event.reason = "other"  # type: ignore[misc]


def test_metrics_default_to_closed_and_empty():
    metrics = CircuitMetrics()
    assert metrics.state is CircuitState.CLOSED
    assert metrics.total_requests == 0
    assert metrics.failure_rate_in_window is None
    assert metrics.last_error_timestamp is None


def test_metrics_copy_is_independent():
    metrics = CircuitMetrics()
    copy = replace(metrics, total_requests=metrics.total_requests + 1)
    assert metrics.total_requests == 0
    assert copy.total_requests == metrics.total_requests + 1


def test_config_defaults_follow_source():
    config = CircuitBreakerConfig()
    assert config.failure_threshold == 5
    assert config.failure_rate_threshold == 0.5
    assert config.reset_timeout == 30.0
    assert config.sliding_window_size == config.metrics_history_size
    assert config.error_predicate is None
    assert config.slow_call_duration_threshold is None
    assert config.slow_call_rate_threshold is None
    assert config.track_metrics is True


def test_config_without_predicate_counts_every_error():
    config = CircuitBreakerConfig()
    assert config.counts_as_failure(InternalError(message="boom")) is True
    assert config.counts_as_failure(OperationTimeoutError(operation="op", duration=1.0)) is True


def test_config_predicate_decides_failures():
    config = CircuitBreakerConfig(
        error_predicate=lambda err: not isinstance(err, OperationTimeoutError)
    )
    assert config.counts_as_failure(InternalError(message="boom")) is True
    assert config.counts_as_failure(OperationTimeoutError(operation="op", duration=1.0)) is False


def test_config_overrides_keep_other_defaults():
    base = CircuitBreakerConfig()
    config = CircuitBreakerConfig(failure_threshold=2, operation_timeout=None)
    assert config.failure_threshold == 2
    assert config.operation_timeout is None
    assert config.success_threshold_to_close == base.success_threshold_to_close
    assert config.reset_timeout == base.reset_timeout


class _RecordingObserver(CircuitBreakerObserver):
    def __init__(self):
        self.calls = []

    def on_state_change(self, name, event):
        self.calls.append(("state", name, event.to_state))

    def on_reset(self, name):
        self.calls.append(("reset", name))