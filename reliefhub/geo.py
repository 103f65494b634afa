"""
Geospatial helpers for proximity search.

- haversine_distance: great-circle distance between two points (km)
- haversine_distances: the same formula vectorized over many points with NumPy
- BoundingBox: coarse lat/lng box around a center, used as a SQL prefilter
  before the exact distance test
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

EARTH_RADIUS_KM = 6371.0


def haversine_distance(
    lat1: float, lng1: float,
    lat2: float, lng2: float
) -> float:
    """
    Calculate great-circle distance between two points in kilometers.

    a = sin²(Δlat/2) + cos(lat1)·cos(lat2)·sin²(Δlng/2)
    c = 2·atan2(√a, √(1−a))
    d = R·c
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(delta_lat / 2) ** 2 +
        math.cos(lat1_rad) * math.cos(lat2_rad) *
        math.sin(delta_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def haversine_distances(
    center_lat: float,
    center_lng: float,
    lats: Sequence[float],
    lngs: Sequence[float],
) -> np.ndarray:
    """
    Distances in km from one center to many points.

    Same formula as haversine_distance, evaluated in a single pass so a
    disaster with thousands of resources filters without a Python loop.
    """
    lats = np.asarray(lats, dtype=float)
    lngs = np.asarray(lngs, dtype=float)

    lat1_rad = np.radians(center_lat)
    lat2_rad = np.radians(lats)
    delta_lat = np.radians(lats - center_lat)
    delta_lng = np.radians(lngs - center_lng)

    a = (
        np.sin(delta_lat / 2) ** 2 +
        np.cos(lat1_rad) * np.cos(lat2_rad) *
        np.sin(delta_lng / 2) ** 2
    )
    # Guard against a drifting a hair above 1.0 for antipodal points
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


@dataclass
class BoundingBox:
    """
    Geographic bounding box around a search center.

    Longitude bounds are None when the box would wrap the antimeridian or
    reach a pole; callers then filter on latitude only.
    """
    lat_min: float
    lat_max: float
    lng_min: Optional[float]
    lng_max: Optional[float]

    @classmethod
    def from_center_radius(
        cls,
        center_lat: float,
        center_lng: float,
        radius_km: float
    ) -> 'BoundingBox':
        """
        Create the smallest lat/lng box enclosing a spherical cap.

        With angular radius r = radius_km / R:
            lat range = center_lat +/- r
            lng half-width = asin(sin r / cos(center_lat))

        The longitude half-width is the meridian through the cap's
        tangent points, which lie poleward of the center, so every point
        within radius_km is inside the box. When sin r >= cos(center_lat)
        the cap contains a pole and all longitudes qualify. The angular
        radius is padded by 1% so rounding never drops an in-radius point.
        """
        angular = (radius_km / EARTH_RADIUS_KM) * 1.01
        if angular >= math.pi:
            return cls(-90.0, 90.0, None, None)

        lat_delta = math.degrees(angular)
        lat_min = max(-90.0, center_lat - lat_delta)
        lat_max = min(90.0, center_lat + lat_delta)

        cos_lat = math.cos(math.radians(center_lat))
        sin_angular = math.sin(angular) if angular < math.pi / 2 else 1.0
        if lat_min <= -90.0 or lat_max >= 90.0 or sin_angular >= cos_lat:
            return cls(lat_min, lat_max, None, None)

        lng_delta = math.degrees(math.asin(sin_angular / cos_lat))
        lng_min = center_lng - lng_delta
        lng_max = center_lng + lng_delta
        if lng_min < -180.0 or lng_max > 180.0:
            return cls(lat_min, lat_max, None, None)

        return cls(lat_min, lat_max, lng_min, lng_max)

    @property
    def has_longitude_bounds(self) -> bool:
        return self.lng_min is not None and self.lng_max is not None


def parse_point(lat, lng) -> Optional[Tuple[float, float]]:
    """
    Parse an optional (lat, lng) pair from request input.

    Returns None when both are absent. Raises ValueError when only one is
    given, either is not numeric, or either is out of range.
    """
    lat_missing = lat is None or lat == ''
    lng_missing = lng is None or lng == ''
    if lat_missing and lng_missing:
        return None
    if lat_missing or lng_missing:
        raise ValueError('lat and lng must be provided together')

    if isinstance(lat, bool) or isinstance(lng, bool):
        raise ValueError('Invalid latitude or longitude')
    try:
        lat = float(lat)
        lng = float(lng)
    except (ValueError, TypeError):
        raise ValueError('Invalid latitude or longitude')

    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise ValueError('Invalid latitude or longitude')
    if not (-90 <= lat <= 90):
        raise ValueError('Latitude must be between -90 and 90')
    if not (-180 <= lng <= 180):
        raise ValueError('Longitude must be between -180 and 180')

    return (lat, lng)
