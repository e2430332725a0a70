"""Spherical distance helpers."""

from __future__ import annotations

import numpy as np

# Radius used by spherical geo queries, in meters.
EARTH_RADIUS_M = 6_378_100.0


def haversine_m(
    longitudes: np.ndarray,
    latitudes: np.ndarray,
    origin_lng: float,
    origin_lat: float,
) -> np.ndarray:
    """Great-circle distance in meters from one point to many."""
    phi1 = np.radians(origin_lat)
    phi2 = np.radians(latitudes)
    dphi = phi2 - phi1
    dlambda = np.radians(longitudes) - np.radians(origin_lng)
    a = np.sin(dphi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(dlambda / 2) ** 2
    # Rounding can push a slightly past 1 for near-antipodal points.
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    return EARTH_RADIUS_M * c
