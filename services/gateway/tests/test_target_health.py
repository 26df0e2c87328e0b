import pytest
from hypothesis import given, strategies as st

from services.gateway.models.routing import HealthCheckSpec
from services.gateway.models.target_health import HealthReason, TargetHealth, TargetState

SPEC = HealthCheckSpec(healthy_threshold=2, unhealthy_threshold=2, interval=30, timeout=5)


def _run(results, spec=SPEC, start=None):
    health = start or TargetHealth()
    for i, ok in enumerate(results):
        health = health.advance(ok, spec, checked_at=float(i + 1))
    return health


def test_new_target_is_initial():
    health = TargetHealth()
    assert health.state is TargetState.INITIAL
    assert health.reason is HealthReason.INITIAL_HEALTH_CHECKING
    assert health.consecutive_successes == 0
    assert health.consecutive_failures == 0


def test_initial_becomes_healthy_after_threshold_successes():
    once = _run([True])
    assert once.state is TargetState.INITIAL
    assert once.reason is HealthReason.INITIAL_HEALTH_CHECKING

    twice = _run([True, True])
    assert twice.state is TargetState.HEALTHY
    assert twice.reason is None
    assert twice.consecutive_successes == 2


def test_initial_becomes_unhealthy_after_threshold_failures():
    health = _run([False, False])
    assert health.state is TargetState.UNHEALTHY
    assert health.reason is HealthReason.FAILED_HEALTH_CHECKS


def test_healthy_survives_a_single_failure():
    health = _run([True, True, False])
    assert health.state is TargetState.HEALTHY
    assert health.consecutive_failures == 1
    assert health.consecutive_successes == 0


def test_healthy_to_unhealthy_keeps_probe_reason():
    health = _run([True, True])
    health = health.advance(False, SPEC, 3.0, HealthReason.TIMEOUT)
    health = health.advance(False, SPEC, 4.0, HealthReason.TIMEOUT)
    assert health.state is TargetState.UNHEALTHY
    assert health.reason is HealthReason.TIMEOUT
    assert health.last_checked_at == 4.0


def test_unhealthy_recovers_after_threshold_successes():
    health = _run([False, False, True])
    assert health.state is TargetState.UNHEALTHY

    health = health.advance(True, SPEC, 10.0)
    assert health.state is TargetState.HEALTHY
    assert health.reason is None


def test_alternating_results_never_flip_state():
    health = _run([True, False] * 10)
    assert health.state is TargetState.INITIAL


def test_advance_does_not_mutate_snapshot():
    health = TargetHealth()
    health.advance(True, SPEC, 1.0)
    assert health.consecutive_successes == 0
    with pytest.raises(AttributeError):
        health.state = TargetState.HEALTHY


@given(
    results=st.lists(st.booleans(), max_size=60),
    healthy_threshold=st.integers(min_value=1, max_value=6),
    unhealthy_threshold=st.integers(min_value=1, max_value=6),
)
def test_state_changes_only_on_completed_streaks(results, healthy_threshold, unhealthy_threshold):
    spec = HealthCheckSpec(
        healthy_threshold=healthy_threshold, unhealthy_threshold=unhealthy_threshold
    )
    health = TargetHealth()
    for i, ok in enumerate(results):
        previous = health
        health = health.advance(ok, spec, float(i))

        if ok:
            assert health.consecutive_failures == 0
            assert health.consecutive_successes == previous.consecutive_successes + 1
        else:
            assert health.consecutive_successes == 0
            assert health.consecutive_failures == previous.consecutive_failures + 1

        if health.state is not previous.state:
            if health.state is TargetState.HEALTHY:
                assert ok and health.consecutive_successes >= healthy_threshold
            else:
                assert health.state is TargetState.UNHEALTHY
                assert not ok and health.consecutive_failures >= unhealthy_threshold

        assert health.state is not TargetState.INITIAL or (
            previous.state is TargetState.INITIAL
        )
