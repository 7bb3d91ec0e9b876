import threading
from datetime import datetime, timezone

import pytest

from tourist_safety.conditions import NoCandidateAvailable, TransitionRejected
from tourist_safety.lifecycle import AlertLifecycle, new_alert_id
from tourist_safety.models import Alert, AlertStatus, Coordinates, ResponderUnit

FIXED_NOW = datetime(2024, 3, 14, 9, 46, tzinfo=timezone.utc)
LOCATION = Coordinates(26.5775, 93.1711)

UNITS = [
    ResponderUnit("p1", "Kaziranga Patrol 1", Coordinates(26.5890, 93.1800), officers=4, vehicles=["Jeep"]),
    ResponderUnit("p3", "Tezpur Rapid Response", Coordinates(26.6338, 92.8000), officers=5),
]


def _lifecycle() -> AlertLifecycle:
    return AlertLifecycle(clock=lambda: FIXED_NOW)


def _alert(lifecycle: AlertLifecycle) -> Alert:
    return lifecycle.create("t1", "panic", LOCATION, "Panic button pressed")


def test_create_starts_new_with_clock_timestamp() -> None:
    alert = _alert(_lifecycle())

    assert alert.status is AlertStatus.NEW
    assert alert.created_at == FIXED_NOW
    assert alert.tourist_id == "t1"
    assert alert.location == LOCATION
    assert alert.alert_id.startswith("a-")


def test_ids_unique_under_burst_creation() -> None:
    lifecycle = _lifecycle()
    ids = {lifecycle.create("t1", "panic", LOCATION).alert_id for _ in range(2000)}
    assert len(ids) == 2000
    assert new_alert_id() != new_alert_id()


def test_acknowledge_then_resolve_then_reject() -> None:
    lifecycle = _lifecycle()
    alert = _alert(lifecycle)

    ack = lifecycle.acknowledge(alert)
    assert ack.accepted
    assert ack.previous is AlertStatus.NEW
    assert alert.status is AlertStatus.IN_PROGRESS

    assert lifecycle.resolve(alert).accepted
    assert alert.status is AlertStatus.RESOLVED

    again = lifecycle.acknowledge(alert)
    assert not again.accepted
    assert again.condition == TransitionRejected(alert_id=alert.alert_id, action="acknowledge", status=AlertStatus.RESOLVED)
    assert alert.status is AlertStatus.RESOLVED


def test_resolve_twice_is_rejected() -> None:
    lifecycle = _lifecycle()
    alert = _alert(lifecycle)
    lifecycle.acknowledge(alert)
    lifecycle.resolve(alert)

    result = lifecycle.resolve(alert)

    assert isinstance(result.condition, TransitionRejected)
    assert "resolved" in result.condition.message


def test_dispatch_reports_unit_and_distance() -> None:
    lifecycle = _lifecycle()
    alert = _alert(lifecycle)

    result = lifecycle.dispatch(alert, UNITS[:1])

    assert result.accepted
    assert alert.status is AlertStatus.DISPATCHED
    assert result.assignment.unit.unit_id == "p1"
    assert result.assignment.distance_km == pytest.approx(1.55, abs=0.05)
    assert not hasattr(alert, "assignment")


def test_dispatch_picks_nearest_of_several() -> None:
    lifecycle = _lifecycle()
    alert = _alert(lifecycle)

    result = lifecycle.dispatch(alert, list(reversed(UNITS)))

    assert result.assignment.unit.unit_id == "p1"


def test_dispatch_without_candidates_keeps_status() -> None:
    lifecycle = _lifecycle()
    alert = _alert(lifecycle)

    result = lifecycle.dispatch(alert, [])

    assert result.condition == NoCandidateAvailable(alert_id=alert.alert_id)
    assert result.assignment is None
    assert alert.status is AlertStatus.NEW


def test_dispatch_only_from_new() -> None:
    lifecycle = _lifecycle()
    alert = _alert(lifecycle)
    lifecycle.acknowledge(alert)

    result = lifecycle.dispatch(alert, UNITS)

    assert isinstance(result.condition, TransitionRejected)
    assert result.condition.action == "dispatch"
    assert alert.status is AlertStatus.IN_PROGRESS


def test_dispatched_alert_resolves_but_cannot_be_acknowledged() -> None:
    lifecycle = _lifecycle()
    alert = _alert(lifecycle)
    lifecycle.dispatch(alert, UNITS)

    assert isinstance(lifecycle.acknowledge(alert).condition, TransitionRejected)
    assert lifecycle.resolve(alert).accepted
    assert alert.status is AlertStatus.RESOLVED


def test_new_alert_cannot_be_resolved_directly() -> None:
    lifecycle = _lifecycle()
    alert = _alert(lifecycle)

    assert not lifecycle.resolve(alert).accepted
    assert alert.status is AlertStatus.NEW


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        (AlertStatus.NEW, AlertStatus.IN_PROGRESS, True),
        (AlertStatus.NEW, AlertStatus.DISPATCHED, True),
        (AlertStatus.IN_PROGRESS, AlertStatus.RESOLVED, True),
        (AlertStatus.DISPATCHED, AlertStatus.RESOLVED, True),
        (AlertStatus.IN_PROGRESS, AlertStatus.DISPATCHED, False),
        (AlertStatus.DISPATCHED, AlertStatus.IN_PROGRESS, False),
        (AlertStatus.RESOLVED, AlertStatus.NEW, False),
        (AlertStatus.RESOLVED, AlertStatus.IN_PROGRESS, False),
    ],
)
def test_transition_graph(current: AlertStatus, target: AlertStatus, allowed: bool) -> None:
    assert AlertLifecycle.can_transition(current, target) is allowed


def test_concurrent_acknowledge_accepts_exactly_once() -> None:
    lifecycle = _lifecycle()
    alert = _alert(lifecycle)
    results = []
    barrier = threading.Barrier(8)

    def worker() -> None:
        barrier.wait()
        results.append(lifecycle.acknowledge(alert))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert sum(1 for r in results if r.accepted) == 1
    assert alert.status is AlertStatus.IN_PROGRESS


def test_dispatch_state_check_precedes_candidate_check() -> None:
    lifecycle = _lifecycle()
    alert = _alert(lifecycle)
    lifecycle.acknowledge(alert)

    result = lifecycle.dispatch(alert, [])

    assert result.condition == TransitionRejected(
        alert_id=alert.alert_id, action="dispatch", status=AlertStatus.IN_PROGRESS
    )
    assert alert.status is AlertStatus.IN_PROGRESS
