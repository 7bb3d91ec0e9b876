from __future__ import annotations

import math
from typing import Iterable, List

from tourist_safety.models import Coordinates, RiskZone

EARTH_RADIUS_KM = 6371.0


def haversine_km(origin: Coordinates, target: Coordinates) -> float:
    lat1, lon1 = math.radians(origin.latitude), math.radians(origin.longitude)
    lat2, lon2 = math.radians(target.latitude), math.radians(target.longitude)
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # Rounding can push a just past 1.0 for antipodal points.
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def within_zone(point: Coordinates, zone: RiskZone) -> bool:
    return haversine_km(point, zone.center) <= zone.radius_km


def zones_containing(point: Coordinates, zones: Iterable[RiskZone]) -> List[RiskZone]:
    return [zone for zone in zones if within_zone(point, zone)]
