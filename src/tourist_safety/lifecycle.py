from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, FrozenSet, Optional, Sequence, Union
from uuid import uuid4

from tourist_safety.conditions import NoCandidateAvailable, NotFound, TransitionRejected
from tourist_safety.dispatch import DispatchResolver
from tourist_safety.models import Alert, AlertStatus, Coordinates, NearestUnit, ResponderUnit

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[AlertStatus, FrozenSet[AlertStatus]] = {
    AlertStatus.NEW: frozenset({AlertStatus.IN_PROGRESS, AlertStatus.DISPATCHED}),
    AlertStatus.IN_PROGRESS: frozenset({AlertStatus.RESOLVED}),
    AlertStatus.DISPATCHED: frozenset({AlertStatus.RESOLVED}),
    AlertStatus.RESOLVED: frozenset(),
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_alert_id() -> str:
    return f"a-{uuid4().hex}"


@dataclass(frozen=True)
class TransitionResult:
    alert: Alert
    previous: AlertStatus
    condition: Optional[Union[TransitionRejected, NoCandidateAvailable]] = None
    assignment: Optional[NearestUnit] = None

    @property
    def accepted(self) -> bool:
        return self.condition is None


class AlertLifecycle:
    """Moves alerts along ``new -> in-progress|dispatched -> resolved``.

    Invalid edges never raise. The returned :class:`TransitionResult` carries
    a :class:`TransitionRejected` and the alert keeps its status. All
    mutation happens under one lock so callers on worker threads cannot
    interleave a check with another thread's write.
    """

    def __init__(
        self,
        resolver: Optional[DispatchResolver] = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = new_alert_id,
    ) -> None:
        self.resolver = resolver or DispatchResolver()
        self.clock = clock
        self.id_factory = id_factory
        self._lock = threading.RLock()

    @staticmethod
    def can_transition(current: AlertStatus, target: AlertStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[current]

    def create(self, tourist_id: str, category: str, location: Coordinates, description: str = "") -> Alert:
        alert = Alert(
            alert_id=self.id_factory(),
            tourist_id=tourist_id,
            category=category,
            location=location,
            created_at=self.clock(),
            description=description,
        )
        logger.info("Created %s alert %s for tourist %s", category, alert.alert_id, tourist_id)
        return alert

    def acknowledge(self, alert: Alert) -> TransitionResult:
        with self._lock:
            return self._move(alert, AlertStatus.IN_PROGRESS, "acknowledge")

    def resolve(self, alert: Alert) -> TransitionResult:
        with self._lock:
            return self._move(alert, AlertStatus.RESOLVED, "resolve")

    def dispatch(self, alert: Alert, units: Sequence[ResponderUnit]) -> TransitionResult:
        with self._lock:
            previous = alert.status
            if not self.can_transition(previous, AlertStatus.DISPATCHED):
                return self._reject(alert, "dispatch")

            nearest = self.resolver.resolve_nearest(alert.location, units)
            if isinstance(nearest, NotFound):
                logger.warning("Dispatch for alert %s skipped: no candidate units", alert.alert_id)
                return TransitionResult(
                    alert=alert,
                    previous=previous,
                    condition=NoCandidateAvailable(alert_id=alert.alert_id),
                )

            alert.status = AlertStatus.DISPATCHED
            logger.info(
                "Dispatching %s to alert %s (%.2f km away)",
                nearest.unit.name or nearest.unit.unit_id,
                alert.alert_id,
                nearest.distance_km,
            )
            return TransitionResult(alert=alert, previous=previous, assignment=nearest)

    def _move(self, alert: Alert, target: AlertStatus, action: str) -> TransitionResult:
        previous = alert.status
        if not self.can_transition(previous, target):
            return self._reject(alert, action)
        alert.status = target
        logger.info("Alert %s: %s -> %s", alert.alert_id, previous.value, target.value)
        return TransitionResult(alert=alert, previous=previous)

    @staticmethod
    def _reject(alert: Alert, action: str) -> TransitionResult:
        logger.warning("Rejected %s on alert %s in status %s", action, alert.alert_id, alert.status.value)
        return TransitionResult(
            alert=alert,
            previous=alert.status,
            condition=TransitionRejected(alert_id=alert.alert_id, action=action, status=alert.status),
        )
