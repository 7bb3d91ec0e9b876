from __future__ import annotations

import logging
from typing import List, Sequence, Union

from tourist_safety.conditions import NotFound
from tourist_safety.geo import haversine_km
from tourist_safety.models import Coordinates, NearestUnit, ResponderUnit

logger = logging.getLogger(__name__)


class DispatchResolver:
    """Picks responder units for a point by great-circle distance.

    Unit positions move between calls in a live deployment, so nothing is
    cached: every call rescans the candidates it is given.
    """

    def resolve_nearest(
        self, point: Coordinates, units: Sequence[ResponderUnit]
    ) -> Union[NearestUnit, NotFound]:
        nearest = None
        for unit in units:
            distance = haversine_km(point, unit.location)
            # Strict comparison keeps the first unit on ties.
            if nearest is None or distance < nearest.distance_km:
                nearest = NearestUnit(unit=unit, distance_km=distance)

        if nearest is None:
            logger.debug("No candidate units near %s", point)
            return NotFound(point=point)
        return nearest

    def rank(self, point: Coordinates, units: Sequence[ResponderUnit], limit: int = 3) -> List[NearestUnit]:
        ranked = [NearestUnit(unit=unit, distance_km=haversine_km(point, unit.location)) for unit in units]
        ranked.sort(key=lambda item: item.distance_km)
        return ranked[:limit]
