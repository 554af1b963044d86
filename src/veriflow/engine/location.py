"""
VeriFlow Location Check

Compares a photo's capture coordinates with the insured property's
location. The result is advisory: it is attached to the submission for the
reviewer and never blocks submitting.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from ..models import GeoPoint, PolicyType


EARTH_RADIUS_METERS = 6371000.0
DEFAULT_TOLERANCE_METERS = 100.0

GPS_POLICY_TYPES = frozenset({PolicyType.HOME_INSURANCE})


def haversine_distance(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points, in metres."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def requires_gps(policy_type: PolicyType) -> bool:
    return policy_type in GPS_POLICY_TYPES


@dataclass
class LocationCheck:
    """Outcome of comparing captured and expected coordinates."""
    valid: bool
    within_tolerance: bool
    distance_m: Optional[int]
    message: str


def check_evidence_location(
    captured: Optional[GeoPoint],
    expected: Optional[GeoPoint],
    tolerance_m: float = DEFAULT_TOLERANCE_METERS,
) -> LocationCheck:
    """
    Check a capture location against the expected property location.

    Missing capture coordinates are invalid. Missing expected coordinates
    pass, since there is nothing to compare against.
    """
    if captured is None:
        return LocationCheck(
            valid=False,
            within_tolerance=False,
            distance_m=None,
            message="No GPS data captured",
        )
    if expected is None:
        return LocationCheck(
            valid=True,
            within_tolerance=True,
            distance_m=None,
            message="No property coordinates to validate against",
        )

    distance = round(haversine_distance(captured, expected))
    within = distance <= tolerance_m
    if within:
        message = f"Within {tolerance_m:g}m of expected location ({distance}m)"
    else:
        message = f"Outside tolerance: {distance}m away (max: {tolerance_m:g}m)"
    return LocationCheck(
        valid=True,
        within_tolerance=within,
        distance_m=distance,
        message=message,
    )
