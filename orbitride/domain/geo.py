"""
Geo helpers for ride search.

1. **Spatial binning** -- every ride stores the H3 cell of its origin.
2. **Prefilter** -- a search around a point expands to the grid disk of
   cells that can contain origins within the radius.  Wide searches use
   a lat/lng bounding box instead.
3. **Refine** -- candidates are kept only if their great-circle distance
   is within the radius.

Distances are Haversine (great-circle) rather than road distances; the
mapping provider owns real routing.
"""

from __future__ import annotations

import math

import h3

EARTH_RADIUS_KM = 6_371.0

# Larger disks fall back to a lat/lng box; keeps the IN list well under
# the driver's bind-parameter limit.
MAX_PREFILTER_CELLS = 1_000


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def origin_cell(lat: float, lng: float, resolution: int = 8) -> str:
    """Map a geo-point to an H3 hexagonal cell index."""
    return h3.latlng_to_cell(lat, lng, resolution)


def disk_size(k: int) -> int:
    """Number of cells in an H3 grid disk of *k* rings."""
    return 3 * k * (k + 1) + 1


def cells_within(
    lat: float,
    lng: float,
    radius_km: float,
    resolution: int = 8,
    max_cells: int = MAX_PREFILTER_CELLS,
) -> set[str] | None:
    """
    H3 cells that may hold points within *radius_km* of (lat, lng).

    The ring count is the radius divided by the average edge length,
    plus one ring of slack for points near a cell border.  Returns
    ``None`` when the disk would exceed *max_cells*; callers then fall
    back to :func:`bounding_box`.
    """
    edge_km = h3.average_hexagon_edge_length(resolution, unit="km")
    k = max(1, math.ceil(radius_km / edge_km) + 1)
    if disk_size(k) > max_cells:
        return None
    return set(h3.grid_disk(origin_cell(lat, lng, resolution), k))


def bounding_box(
    lat: float, lng: float, radius_km: float
) -> tuple[float, float, float | None, float | None]:
    """
    (min_lat, max_lat, min_lng, max_lng) enclosing the circle of
    *radius_km* around (lat, lng).

    The longitude bounds are ``None`` when the box reaches a pole or
    crosses the antimeridian; only latitude is bounded then.
    """
    dlat = math.degrees(radius_km / EARTH_RADIUS_KM)
    min_lat, max_lat = lat - dlat, lat + dlat
    if min_lat <= -90.0 or max_lat >= 90.0:
        return max(min_lat, -90.0), min(max_lat, 90.0), None, None

    # Widest longitude offset of the circle, not the arc along the parallel
    dlng = math.degrees(
        math.asin(
            math.sin(radius_km / EARTH_RADIUS_KM) / math.cos(math.radians(lat))
        )
    )
    min_lng, max_lng = lng - dlng, lng + dlng
    if min_lng < -180.0 or max_lng > 180.0:
        return min_lat, max_lat, None, None
    return min_lat, max_lat, min_lng, max_lng