from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from tourist_safety.models import (
    Alert,
    AlertStatus,
    Coordinates,
    EmergencyContact,
    IoTBand,
    ResponderUnit,
    RiskZone,
    Tourist,
    TracePoint,
)

logger = logging.getLogger(__name__)

BUNDLED_DATA_DIR = Path(__file__).parent / "data"
TOURISTS_FILE = "tourists.json"
ALERTS_FILE = "alerts.json"
UNITS_FILE = "police_units.json"
RISK_ZONES_FILE = "risk_zones.json"


class SnapshotError(ValueError):
    """Raised when a snapshot file cannot be parsed into entities."""


@dataclass
class DataSnapshot:
    """One wholesale copy of the collections the dashboard works from.

    A refresh swaps the whole snapshot. Nothing is merged.
    """

    tourists: List[Tourist] = field(default_factory=list)
    alerts: List[Alert] = field(default_factory=list)
    units: List[ResponderUnit] = field(default_factory=list)
    risk_zones: List[RiskZone] = field(default_factory=list)
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def tourist(self, tourist_id: str) -> Optional[Tourist]:
        return next((t for t in self.tourists if t.tourist_id == tourist_id), None)

    def alert(self, alert_id: str) -> Optional[Alert]:
        return next((a for a in self.alerts if a.alert_id == alert_id), None)

    @classmethod
    def from_payloads(
        cls,
        tourists: List[Mapping[str, Any]],
        alerts: List[Mapping[str, Any]],
        units: List[Mapping[str, Any]],
        risk_zones: Optional[List[Mapping[str, Any]]] = None,
    ) -> "DataSnapshot":
        try:
            return cls(
                tourists=[parse_tourist(item) for item in tourists],
                alerts=[parse_alert(item) for item in alerts],
                units=[parse_unit(item) for item in units],
                risk_zones=[parse_risk_zone(item) for item in risk_zones or []],
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise SnapshotError(f"Invalid snapshot payload: {exc}") from exc


def parse_timestamp(value: str) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be an ISO 8601 string, got {value!r}")
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _coordinates(data: Mapping[str, Any]) -> Coordinates:
    return Coordinates(latitude=float(data["lat"]), longitude=float(data["lng"]))


def parse_tourist(data: Mapping[str, Any]) -> Tourist:
    last = data["lastLocation"]
    band = data.get("iotBand")
    return Tourist(
        tourist_id=str(data["id"]),
        name=data.get("name", ""),
        passport=data.get("passport", ""),
        last_location=_coordinates(last),
        last_seen=parse_timestamp(last["timestamp"]),
        safety_score=int(data.get("safetyScore", 0)),
        iot_band=(
            IoTBand(
                battery=int(band["battery"]),
                heart_rate=int(band["heartRate"]),
                last_signal=parse_timestamp(band["lastSignal"]),
            )
            if band
            else None
        ),
        trace=tuple(
            TracePoint(location=_coordinates(point), timestamp=parse_timestamp(point["timestamp"]))
            for point in data.get("track") or []
        ),
        emergency_contacts=tuple(
            EmergencyContact(name=c.get("name", ""), phone=c.get("phone", ""))
            for c in data.get("emergencyContacts") or []
        ),
        kyc_hash=data.get("kycHash", ""),
    )


def parse_alert(data: Mapping[str, Any]) -> Alert:
    return Alert(
        alert_id=str(data["id"]),
        tourist_id=str(data["touristId"]),
        category=data.get("type", "unknown"),
        location=_coordinates(data["location"]),
        created_at=parse_timestamp(data["timestamp"]),
        description=data.get("description", ""),
        status=AlertStatus(data.get("status", AlertStatus.NEW.value)),
    )


def parse_unit(data: Mapping[str, Any]) -> ResponderUnit:
    return ResponderUnit(
        unit_id=str(data["id"]),
        name=data.get("name", ""),
        location=_coordinates(data),
        officers=int(data.get("officers", 0)),
        vehicles=list(data.get("vehicles") or []),
    )


def parse_risk_zone(data: Mapping[str, Any]) -> RiskZone:
    lat, lng = data["center"]
    return RiskZone(
        zone_id=str(data["id"]),
        name=data.get("name", ""),
        center=Coordinates(latitude=float(lat), longitude=float(lng)),
        radius_km=float(data["radiusKm"]),
        level=data.get("level", "high"),
    )


def _read_json(path: Path) -> List[Dict[str, Any]]:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"{path.name} is not valid JSON: {exc}") from exc


def load_snapshot(data_dir: Union[str, Path] = BUNDLED_DATA_DIR) -> DataSnapshot:
    data_dir = Path(data_dir)
    zones_path = data_dir / RISK_ZONES_FILE
    snapshot = DataSnapshot.from_payloads(
        tourists=_read_json(data_dir / TOURISTS_FILE),
        alerts=_read_json(data_dir / ALERTS_FILE),
        units=_read_json(data_dir / UNITS_FILE),
        risk_zones=_read_json(zones_path) if zones_path.exists() else [],
    )
    logger.info(
        "Loaded snapshot from %s: %d tourists, %d alerts, %d units",
        data_dir,
        len(snapshot.tourists),
        len(snapshot.alerts),
        len(snapshot.units),
    )
    return snapshot


def serialize_alert(alert: Alert) -> Dict[str, Any]:
    return {
        "id": alert.alert_id,
        "touristId": alert.tourist_id,
        "type": alert.category,
        "location": {"lat": alert.location.latitude, "lng": alert.location.longitude},
        "timestamp": alert.created_at.isoformat(),
        "status": alert.status.value,
        "description": alert.description,
    }


def serialize_unit(unit: ResponderUnit) -> Dict[str, Any]:
    return {
        "id": unit.unit_id,
        "name": unit.name,
        "lat": unit.location.latitude,
        "lng": unit.location.longitude,
        "officers": unit.officers,
        "vehicles": list(unit.vehicles),
    }


def serialize_tourist(tourist: Tourist) -> Dict[str, Any]:
    band = tourist.iot_band
    return {
        "id": tourist.tourist_id,
        "name": tourist.name,
        "passport": tourist.passport,
        "lastLocation": {
            "lat": tourist.last_location.latitude,
            "lng": tourist.last_location.longitude,
            "timestamp": tourist.last_seen.isoformat(),
        },
        "safetyScore": tourist.safety_score,
        "safetyStatus": tourist.safety_status,
        "iotBand": (
            {"battery": band.battery, "heartRate": band.heart_rate, "lastSignal": band.last_signal.isoformat()}
            if band
            else None
        ),
        "track": [serialize_point(point) for point in tourist.trace],
        "emergencyContacts": [{"name": c.name, "phone": c.phone} for c in tourist.emergency_contacts],
        "kycHash": tourist.kyc_hash,
    }


def serialize_point(point: TracePoint) -> Dict[str, Any]:
    return {
        "lat": point.location.latitude,
        "lng": point.location.longitude,
        "timestamp": point.timestamp.isoformat(),
    }
