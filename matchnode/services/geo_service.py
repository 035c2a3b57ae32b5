from __future__ import annotations

from math import radians, cos, sin, asin, sqrt
from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import PostalCode

Coordinates = Tuple[float, float]


def normalize_postal_code(code: str) -> str:
    return "".join(code.split()).upper()


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute great-circle distance between two points in kilometers using the Haversine formula."""
    lat1_r, lon1_r, lat2_r, lon2_r = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2_r - lat1_r
    dlon = lon2_r - lon1_r
    a = sin(dlat / 2) ** 2 + cos(lat1_r) * cos(lat2_r) * sin(dlon / 2) ** 2
    c = 2 * asin(sqrt(a))
    earth_radius_km = 6371.0
    return earth_radius_km * c


def postal_code_distance(
    code_a: str,
    code_b: str,
    coordinates: Dict[str, Coordinates],
) -> Optional[float]:
    """
    Distance in km between two postal codes.

    Identical codes are 0 km apart even without coordinates. Returns None
    when the distance cannot be known.
    """
    code_a = normalize_postal_code(code_a)
    code_b = normalize_postal_code(code_b)
    if code_a == code_b:
        return 0.0
    a = coordinates.get(code_a)
    b = coordinates.get(code_b)
    if a is None or b is None:
        return None
    return haversine_distance(a[0], a[1], b[0], b[1])


async def load_coordinates(db: AsyncSession, codes: Iterable[str]) -> Dict[str, Coordinates]:
    """Return {postal_code: (lat, lng)} for the codes that are known."""
    normalized = {normalize_postal_code(c) for c in codes if c}
    if not normalized:
        return {}
    result = await db.execute(
        select(PostalCode.code, PostalCode.latitude, PostalCode.longitude)
        .where(PostalCode.code.in_(normalized))
    )
    return {row.code: (row.latitude, row.longitude) for row in result.all()}
