"""Segment computation and stationing along pipe paths."""

import math
from typing import NamedTuple, Sequence

from .geometry import XY, distance_point_to_segment, haversine_distance
from .models import Coordinate, PathSegment


class Station(NamedTuple):
    """Closest approach of a point to a path, measured along the path."""

    station: float
    total: float
    distance: float
    closest: XY

    @property
    def remaining(self) -> float:
        return self.total - self.station


def compute_segments(coordinates: Sequence[Coordinate]) -> list[PathSegment]:
    """Compute segments between consecutive path vertices with great-circle lengths."""
    segments: list[PathSegment] = []
    cumulative_m = 0.0

    for i in range(1, len(coordinates)):
        p1, p2 = coordinates[i - 1], coordinates[i]
        length_m = haversine_distance(p1, p2)
        segments.append(
            PathSegment(
                index=i - 1,
                start=p1,
                end=p2,
                length_m=length_m,
                cumulative_m_start=cumulative_m,
                cumulative_m_end=cumulative_m + length_m,
            )
        )
        cumulative_m += length_m

    return segments


def path_length(coordinates: Sequence[Coordinate]) -> float:
    """Cumulative great-circle length of a path in meters."""
    return sum(haversine_distance(coordinates[i - 1], coordinates[i]) for i in range(1, len(coordinates)))


def planar_length(path: Sequence[XY]) -> float:
    return sum(math.hypot(path[i][0] - path[i - 1][0], path[i][1] - path[i - 1][1]) for i in range(1, len(path)))


def station_on_path(p: XY, path: Sequence[XY]) -> Station:
    """Station of the closest point on ``path`` to ``p``.

    Zero-length segments are skipped.
    """
    best_station = 0.0
    best_dist = math.inf
    best_point = path[0]
    cumulative = 0.0
    for i in range(1, len(path)):
        a, b = path[i - 1], path[i]
        seg_len = math.hypot(b[0] - a[0], b[1] - a[1])
        if seg_len == 0:
            continue
        dist, closest = distance_point_to_segment(p, a, b)
        if dist < best_dist:
            best_dist = dist
            best_point = closest
            best_station = cumulative + math.hypot(closest[0] - a[0], closest[1] - a[1])
        cumulative += seg_len
    if best_dist == math.inf:
        best_dist = math.hypot(p[0] - path[0][0], p[1] - path[0][1])
    return Station(best_station, cumulative, best_dist, best_point)


def point_at_station(path: Sequence[XY], station: float) -> XY:
    """Interpolate the point ``station`` meters along ``path`` (clamped to its ends)."""
    if station <= 0:
        return path[0]
    cumulative = 0.0
    for i in range(1, len(path)):
        a, b = path[i - 1], path[i]
        seg_len = math.hypot(b[0] - a[0], b[1] - a[1])
        if seg_len and cumulative + seg_len >= station:
            t = (station - cumulative) / seg_len
            return (a[0] + t * (b[0] - a[0]), a[1] + t * (b[1] - a[1]))
        cumulative += seg_len
    return path[-1]


def turn_angles(path: Sequence[XY]) -> list[float]:
    """Absolute heading change at each internal vertex, in radians.

    Vertices next to a zero-length segment report 0.
    """
    angles: list[float] = []
    for i in range(1, len(path) - 1):
        ax = path[i][0] - path[i - 1][0]
        ay = path[i][1] - path[i - 1][1]
        bx = path[i + 1][0] - path[i][0]
        by = path[i + 1][1] - path[i][1]
        if (ax == 0 and ay == 0) or (bx == 0 and by == 0):
            angles.append(0.0)
            continue
        angles.append(abs(math.atan2(ax * by - ay * bx, ax * bx + ay * by)))
    return angles
