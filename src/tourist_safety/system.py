from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Union

from tourist_safety.conditions import EmptyTrace, NotFound
from tourist_safety.dispatch import DispatchResolver
from tourist_safety.geo import zones_containing
from tourist_safety.lifecycle import AlertLifecycle, TransitionResult
from tourist_safety.models import Alert, AlertStatus, Coordinates, DashboardSummary, NearestUnit, Tourist
from tourist_safety.playback import PlaybackCursor, PlaybackState, TraceAnimator
from tourist_safety.snapshot import DataSnapshot

logger = logging.getLogger(__name__)

SIMULATED_ALERT_DESCRIPTION = "Simulated alert for demo purposes"


class UnknownEntity(LookupError):
    """Raised when a command names an alert or tourist not in the snapshot."""


@dataclass(frozen=True)
class OperatorSession:
    operator: str = "Officer"


@dataclass(frozen=True)
class PlaybackView:
    tourist_id: Optional[str]
    state: PlaybackState
    index: Optional[int]
    length: int


class DashboardSession:
    """Composition root wiring the snapshot to the lifecycle, resolver and animator."""

    def __init__(
        self,
        snapshot: DataSnapshot,
        session: Optional[OperatorSession] = None,
        lifecycle: Optional[AlertLifecycle] = None,
        animator: Optional[TraceAnimator] = None,
    ) -> None:
        self.snapshot = snapshot
        self.session = session or OperatorSession()
        self.resolver = DispatchResolver()
        self.lifecycle = lifecycle or AlertLifecycle(resolver=self.resolver)
        self.animator = animator or TraceAnimator()

    @property
    def operator(self) -> str:
        return self.session.operator

    def refresh(self, snapshot: DataSnapshot) -> None:
        selected = self.animator.cursor.tourist_id if self.animator.cursor else None
        self.snapshot = snapshot
        if selected is not None and snapshot.tourist(selected) is None:
            logger.info("Tourist %s left the snapshot; releasing playback", selected)
            self.animator.release()

    # Queries

    def tourist(self, tourist_id: str) -> Tourist:
        tourist = self.snapshot.tourist(tourist_id)
        if tourist is None:
            raise UnknownEntity(f"Tourist {tourist_id} not found")
        return tourist

    def alert(self, alert_id: str) -> Alert:
        alert = self.snapshot.alert(alert_id)
        if alert is None:
            raise UnknownEntity(f"Alert {alert_id} not found")
        return alert

    def alert_status(self, alert_id: str) -> AlertStatus:
        return self.alert(alert_id).status

    def nearest_unit(self, point: Coordinates) -> Union[NearestUnit, NotFound]:
        return self.resolver.resolve_nearest(point, self.snapshot.units)

    def search_tourists(self, query: str) -> List[Tourist]:
        needle = query.strip().lower()
        return [
            t for t in self.snapshot.tourists if needle in t.name.lower() or needle in t.passport.lower()
        ]

    def alerts_newest_first(self) -> List[Alert]:
        return sorted(self.snapshot.alerts, key=lambda alert: alert.created_at, reverse=True)

    def alerts_for_tourist(self, tourist_id: str) -> List[Alert]:
        return [alert for alert in self.alerts_newest_first() if alert.tourist_id == tourist_id]

    def new_alerts_for_tourist(self, tourist_id: str) -> List[Alert]:
        return [alert for alert in self.alerts_for_tourist(tourist_id) if alert.status is AlertStatus.NEW]

    def summary(self) -> DashboardSummary:
        zones = self.snapshot.risk_zones
        in_zones = sum(1 for t in self.snapshot.tourists if zones_containing(t.last_location, zones))
        return DashboardSummary(
            active_tourists=len(self.snapshot.tourists),
            active_alerts=sum(1 for alert in self.snapshot.alerts if alert.is_open),
            tourists_in_risk_zones=in_zones,
            high_risk_zones=len(zones),
        )

    def playback_state(self) -> PlaybackView:
        cursor = self.animator.cursor
        return PlaybackView(
            tourist_id=cursor.tourist_id if cursor else None,
            state=self.animator.state,
            index=self.animator.index,
            length=len(cursor.trace) if cursor else 0,
        )

    # Alert commands

    def create_alert(self, tourist_id: str, category: str, description: str = "") -> Alert:
        tourist = self.tourist(tourist_id)
        alert = self.lifecycle.create(tourist.tourist_id, category, tourist.last_location, description)
        self.snapshot.alerts.insert(0, alert)
        return alert

    def simulate_alert(self, rng: Optional[random.Random] = None) -> Optional[Alert]:
        if not self.snapshot.tourists:
            return None
        tourist = (rng or random).choice(self.snapshot.tourists)
        return self.create_alert(tourist.tourist_id, "simulated", SIMULATED_ALERT_DESCRIPTION)

    def acknowledge(self, alert_id: str) -> TransitionResult:
        return self.lifecycle.acknowledge(self.alert(alert_id))

    def dispatch(self, alert_id: str) -> TransitionResult:
        return self.lifecycle.dispatch(self.alert(alert_id), self.snapshot.units)

    def resolve(self, alert_id: str) -> TransitionResult:
        return self.lifecycle.resolve(self.alert(alert_id))

    # Playback commands

    def select_trace(self, tourist_id: str) -> Union[PlaybackCursor, EmptyTrace]:
        return self.animator.select(self.tourist(tourist_id))

    def start_playback(self, tourist_id: str) -> Union[PlaybackCursor, EmptyTrace]:
        tourist = self.tourist(tourist_id)
        return self.animator.start(tourist.trace, tourist_id=tourist.tourist_id)

    def pause(self) -> None:
        self.animator.pause()

    def resume(self) -> None:
        self.animator.resume()

    def step_forward(self) -> None:
        self.animator.step_forward()

    def step_backward(self) -> None:
        self.animator.step_backward()

    def cancel_playback(self) -> None:
        self.animator.cancel()

    def clear_selection(self) -> None:
        self.animator.release()

    def close(self) -> None:
        self.animator.release()
