"""
Great-circle distance and radius membership for sites and postcode targets.
"""

import math
from typing import Sequence

from models.data_models import Site, PostcodeTarget


EARTH_RADIUS_METERS = 6371000.0


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Great-circle distance between two points in meters.

    NaN coordinates produce a NaN distance.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2)
    # a can be NaN here; clamp only real values
    if a > 1.0:
        a = 1.0
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def is_within_radius(site: Site, targets: Sequence[PostcodeTarget], radius_meters: float) -> bool:
    """
    Check whether a site lies within radius_meters of any target.

    An empty target list places no constraint. A zero radius with targets
    present excludes every site.
    """
    if not targets:
        return True

    if radius_meters == 0:
        return False

    return any(
        haversine_distance(target.lat, target.lng, site.lat, site.lng) <= radius_meters
        for target in targets
    )
