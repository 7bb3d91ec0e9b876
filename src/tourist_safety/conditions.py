"""Recoverable conditions reported by the engine.

None of these are raised. Lifecycle commands, the resolver and the animator
return them as values so callers can branch on ``isinstance`` and show the
operator what went wrong.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from tourist_safety.models import AlertStatus, Coordinates


@dataclass(frozen=True)
class TransitionRejected:
    alert_id: str
    action: str
    status: AlertStatus

    @property
    def message(self) -> str:
        return f"Cannot {self.action} alert {self.alert_id} while it is {self.status.value}."


@dataclass(frozen=True)
class NoCandidateAvailable:
    alert_id: str

    @property
    def message(self) -> str:
        return f"No responder unit available to dispatch to alert {self.alert_id}."


@dataclass(frozen=True)
class EmptyTrace:
    tourist_id: Optional[str]

    @property
    def message(self) -> str:
        who = self.tourist_id or "selection"
        return f"No recorded trace to play back for {who}."


@dataclass(frozen=True)
class NotFound:
    point: Coordinates

    @property
    def message(self) -> str:
        return f"No responder unit found near {self.point.latitude:.4f}, {self.point.longitude:.4f}."


Condition = Union[TransitionRejected, NoCandidateAvailable, EmptyTrace, NotFound]
