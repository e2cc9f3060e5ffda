"""
Geo helpers for the nearby-worker search
==========================================

``bounding_box`` turns a search radius into latitude/longitude ranges the
``ix_workers_lat_lon`` index can serve; ``haversine_distance`` then gives
the exact great-circle distance for the candidates inside the box.
"""

from __future__ import annotations

import math
from typing import NamedTuple

# Mean Earth radius, km
EARTH_RADIUS_KM: float = 6371.0


class BoundingBox(NamedTuple):
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    @property
    def wraps_longitude(self) -> bool:
        """True when the box spans every longitude (near the poles or huge radii)."""
        return self.max_lon - self.min_lon >= 360.0

    def longitude_ranges(self) -> list[tuple[float, float]]:
        """Longitude intervals inside [-180, 180] covered by the box.

        A box that crosses the antimeridian comes back as two intervals.
        """
        if self.wraps_longitude:
            return [(-180.0, 180.0)]
        if self.min_lon < -180.0:
            return [(self.min_lon + 360.0, 180.0), (-180.0, self.max_lon)]
        if self.max_lon > 180.0:
            return [(self.min_lon, 180.0), (-180.0, self.max_lon - 360.0)]
        return [(self.min_lon, self.max_lon)]


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in km between two points given in degrees."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    half_dphi = math.radians(lat2 - lat1) / 2
    half_dlambda = math.radians(lon2 - lon1) / 2

    h = math.sin(half_dphi) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(half_dlambda) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def bounding_box(latitude: float, longitude: float, radius_km: float) -> BoundingBox:
    """Smallest lat/lon box containing every point within ``radius_km``.

    The longitude half-width is ``asin(sin(r) / cos(lat))`` for the angular
    radius ``r``.  When the circle reaches a pole the box covers every
    longitude.  Longitude bounds may run past +/-180; use
    ``BoundingBox.longitude_ranges`` to query them.
    """
    angular = radius_km / EARTH_RADIUS_KM
    lat_delta = math.degrees(angular)
    min_lat = latitude - lat_delta
    max_lat = latitude + lat_delta

    if min_lat <= -90.0 or max_lat >= 90.0:
        return BoundingBox(max(min_lat, -90.0), min(max_lat, 90.0), -180.0, 180.0)

    ratio = math.sin(angular) / math.cos(math.radians(latitude))
    if ratio >= 1.0:
        return BoundingBox(min_lat, max_lat, -180.0, 180.0)

    lon_delta = math.degrees(math.asin(ratio))
    return BoundingBox(
        min_lat=min_lat,
        max_lat=max_lat,
        min_lon=longitude - lon_delta,
        max_lon=longitude + lon_delta,
    )
