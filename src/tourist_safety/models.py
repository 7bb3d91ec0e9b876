from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class IoTBand:
    battery: int
    heart_rate: int
    last_signal: datetime

    @property
    def battery_low(self) -> bool:
        return self.battery <= 30


@dataclass(frozen=True)
class TracePoint:
    location: Coordinates
    timestamp: datetime


@dataclass(frozen=True)
class EmergencyContact:
    name: str
    phone: str


@dataclass(frozen=True)
class Tourist:
    tourist_id: str
    name: str
    passport: str
    last_location: Coordinates
    last_seen: datetime
    safety_score: int
    iot_band: Optional[IoTBand] = None
    trace: Tuple[TracePoint, ...] = ()
    emergency_contacts: Tuple[EmergencyContact, ...] = ()
    kyc_hash: str = ""

    @property
    def safety_status(self) -> str:
        if self.safety_score > 75:
            return "Safe"
        if self.safety_score > 40:
            return "Caution"
        return "Risk"


@dataclass(frozen=True)
class ResponderUnit:
    unit_id: str
    name: str
    location: Coordinates
    officers: int = 0
    vehicles: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class RiskZone:
    zone_id: str
    name: str
    center: Coordinates
    radius_km: float
    level: str


class AlertStatus(str, Enum):
    NEW = "new"
    IN_PROGRESS = "in-progress"
    DISPATCHED = "dispatched"
    RESOLVED = "resolved"


@dataclass
class Alert:
    alert_id: str
    tourist_id: str
    category: str
    location: Coordinates
    created_at: datetime
    description: str = ""
    status: AlertStatus = AlertStatus.NEW

    @property
    def is_open(self) -> bool:
        return self.status in (AlertStatus.NEW, AlertStatus.IN_PROGRESS)


@dataclass(frozen=True)
class NearestUnit:
    unit: ResponderUnit
    distance_km: float


@dataclass(frozen=True)
class DashboardSummary:
    active_tourists: int
    active_alerts: int
    tourists_in_risk_zones: int
    high_risk_zones: int
