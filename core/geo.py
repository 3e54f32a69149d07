"""
Great-circle distance helpers.

All distances are in kilometers on a spherical Earth.
"""

import math

EARTH_RADIUS_KM = 6371.0

# ~111 km per degree of latitude
KM_PER_DEGREE = 111.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Distance between two points using the haversine formula.

    Inputs are not range checked; call validate_coordinates() first when
    values come from user input.

    Args:
        lat1: Latitude of the first point
        lon1: Longitude of the first point
        lat2: Latitude of the second point
        lon2: Longitude of the second point

    Returns:
        float: Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = lat2_rad - lat1_rad
    dlon = math.radians(lon2 - lon1)

    a = (math.sin(dlat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2)
    # Rounding can push a a hair outside [0, 1] for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def validate_coordinates(lat, lon):
    """
    Check that a latitude/longitude pair is usable.

    Raises:
        ValueError: If either value is not a finite number or out of range
    """
    for name, value in (('latitude', lat), ('longitude', lon)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f'{name} must be a number.')
        if math.isnan(value) or math.isinf(value):
            raise ValueError(f'{name} must be a finite number.')

    if not -90 <= lat <= 90:
        raise ValueError('latitude must be between -90 and 90.')
    if not -180 <= lon <= 180:
        raise ValueError('longitude must be between -180 and 180.')


def bounding_box(lat: float, lon: float, radius_km: float):
    """
    Lat/lon rectangle enclosing every point within radius_km of the center.

    The box is a coarse pre-filter. Latitudes are clamped to [-90, 90]; near
    the poles or across the antimeridian the box spans every longitude.

    Returns:
        tuple: (min_lat, min_lon, max_lat, max_lon)
    """
    lat_delta = radius_km / KM_PER_DEGREE
    min_lat = max(-90.0, lat - lat_delta)
    max_lat = min(90.0, lat + lat_delta)

    cos_lat = math.cos(math.radians(max(abs(min_lat), abs(max_lat))))
    if cos_lat < 1e-6:
        return (min_lat, -180.0, max_lat, 180.0)

    lon_delta = radius_km / (KM_PER_DEGREE * cos_lat)
    min_lon = lon - lon_delta
    max_lon = lon + lon_delta
    # Crossing the antimeridian: fall back to the full longitude span
    if min_lon < -180.0 or max_lon > 180.0:
        return (min_lat, -180.0, max_lat, 180.0)

    return (min_lat, min_lon, max_lat, max_lon)
