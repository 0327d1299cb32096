"""
Domain value objects.

``Coordinate`` and ``ServiceArea`` carry no identity; bookings, drivers and
vehicles live in the persistence layer and are mutated only through the
service functions.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, point: Coordinate) -> bool:
        return (
            self.min_lat <= point.latitude <= self.max_lat
            and self.min_lng <= point.longitude <= self.max_lng
        )


@dataclass(frozen=True)
class ServiceArea:
    north: float
    south: float
    east: float
    west: float

    def contains(self, point: Coordinate) -> bool:
        """Edges are inclusive."""
        return BoundingBox(
            min_lat=self.south,
            max_lat=self.north,
            min_lng=self.west,
            max_lng=self.east,
        ).contains(point)
