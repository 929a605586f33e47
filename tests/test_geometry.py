"""Tests for the geometry kernel and path stationing."""

import math

import pytest

from irrigation_layout.geometry import (
    METERS_PER_DEG_LAT,
    coordinate_in_polygon,
    distance_point_to_segment,
    distance_to_polyline,
    haversine_distance,
    point_in_polygon,
    polygon_edges,
    polyline_intersections,
    rotate,
    segment_intersection,
    to_lat_lng,
    to_local_meters,
)
from irrigation_layout.models import Coordinate
from irrigation_layout.segments import (
    compute_segments,
    path_length,
    point_at_station,
    station_on_path,
    turn_angles,
)

SQUARE = [(0, 0), (10, 0), (10, 10), (0, 10)]


class TestProjection:
    def test_round_trip(self, origin):
        p = Coordinate(lat=13.7512, lng=100.5031)
        back = to_lat_lng(to_local_meters(p, origin), origin)
        assert back.lat == pytest.approx(p.lat, abs=1e-12)
        assert back.lng == pytest.approx(p.lng, abs=1e-12)

    def test_one_degree_latitude(self, origin):
        p = Coordinate(lat=origin.lat + 1, lng=origin.lng)
        x, y = to_local_meters(p, origin)
        assert x == 0
        assert y == pytest.approx(METERS_PER_DEG_LAT)

    def test_longitude_scaled_by_latitude(self, origin):
        p = Coordinate(lat=origin.lat, lng=origin.lng + 1)
        x, _ = to_local_meters(p, origin)
        assert x == pytest.approx(METERS_PER_DEG_LAT * math.cos(math.radians(origin.lat)))

    def test_rotate_quarter_turn(self):
        x, y = rotate((1, 0), math.pi / 2)
        assert x == pytest.approx(0, abs=1e-12)
        assert y == pytest.approx(1)


class TestPointInPolygon:
    def test_inside_and_outside(self):
        assert point_in_polygon((5, 5), SQUARE)
        assert not point_in_polygon((15, 5), SQUARE)
        assert not point_in_polygon((5, -1), SQUARE)

    def test_closed_ring_same_answer(self):
        closed = SQUARE + [SQUARE[0]]
        for p in [(5, 5), (15, 5), (9.9, 0.1)]:
            assert point_in_polygon(p, closed) == point_in_polygon(p, SQUARE)

    def test_concave(self):
        u_shape = [(0, 0), (30, 0), (30, 30), (20, 30), (20, 10), (10, 10), (10, 30), (0, 30)]
        assert point_in_polygon((5, 20), u_shape)
        assert not point_in_polygon((15, 20), u_shape)

    def test_degenerate_polygon(self):
        assert not point_in_polygon((0, 0), [(0, 0), (1, 1)])

    def test_coordinates(self, at):
        field = [at(0, 0), at(10, 0), at(10, 10), at(0, 10)]
        assert coordinate_in_polygon(at(5, 5), field)
        assert not coordinate_in_polygon(at(-5, 5), field)


class TestSegments:
    def test_distance_to_interior(self):
        dist, closest = distance_point_to_segment((5, 3), (0, 0), (10, 0))
        assert dist == pytest.approx(3)
        assert closest == pytest.approx((5, 0))

    def test_distance_clamps_to_end(self):
        dist, closest = distance_point_to_segment((13, 4), (0, 0), (10, 0))
        assert dist == pytest.approx(5)
        assert closest == (10, 0)

    def test_zero_length_segment(self):
        dist, closest = distance_point_to_segment((3, 4), (0, 0), (0, 0))
        assert dist == pytest.approx(5)
        assert closest == (0, 0)

    def test_intersection(self):
        p = segment_intersection((0, 0), (10, 10), (0, 10), (10, 0))
        assert p == pytest.approx((5, 5))

    def test_intersection_is_symmetric(self):
        a = ((0, 0), (10, 4))
        b = ((3, -2), (5, 8))
        p = segment_intersection(*a, *b)
        q = segment_intersection(*b, *a)
        assert p is not None
        assert p == pytest.approx(q)

    def test_endpoints_inclusive(self):
        assert segment_intersection((0, 0), (10, 0), (10, 0), (10, 5)) == pytest.approx((10, 0))

    def test_parallel_and_collinear(self):
        assert segment_intersection((0, 0), (10, 0), (0, 1), (10, 1)) is None
        assert segment_intersection((0, 0), (10, 0), (5, 0), (15, 0)) is None

    def test_miss(self):
        assert segment_intersection((0, 0), (1, 0), (5, -1), (5, 1)) is None

    def test_polyline_hit_on_shared_vertex_counted_once(self):
        hits = polyline_intersections([(-1, 0), (0, 0), (1, 0)], [(0, -1), (0, 1)])
        assert len(hits) == 1
        assert hits[0] == pytest.approx((0, 0))

    def test_distance_to_polyline_segment_index(self):
        dist, closest, index = distance_to_polyline((15, 2), [(0, 0), (10, 0), (20, 0)])
        assert dist == pytest.approx(2)
        assert closest == pytest.approx((15, 0))
        assert index == 1

    def test_polygon_edges_close_ring(self):
        edges = polygon_edges(SQUARE)
        assert len(edges) == 4
        assert edges[-1] == ((0, 10), (0, 0))


class TestStationing:
    def test_haversine_one_degree(self):
        d = haversine_distance(Coordinate(lat=0, lng=0), Coordinate(lat=1, lng=0))
        assert d == pytest.approx(111_195, rel=1e-4)

    def test_compute_segments(self, at):
        path = [at(0, 0), at(100, 0), at(100, 50)]
        segments = compute_segments(path)
        assert len(segments) == len(path) - 1
        assert segments[0].cumulative_m_start == 0
        assert segments[1].cumulative_m_start == segments[0].cumulative_m_end
        assert segments[-1].cumulative_m_end == pytest.approx(path_length(path))
        assert segments[-1].cumulative_m_end == pytest.approx(150, rel=1e-2)

    def test_station_on_path(self):
        st = station_on_path((15, 3), [(0, 0), (10, 0), (10, 0), (30, 0)])
        assert st.station == pytest.approx(15)
        assert st.total == pytest.approx(30)
        assert st.distance == pytest.approx(3)
        assert st.remaining == pytest.approx(15)

    def test_point_at_station_clamps(self):
        path = [(0, 0), (10, 0), (10, 10)]
        assert point_at_station(path, 15) == pytest.approx((10, 5))
        assert point_at_station(path, -1) == (0, 0)
        assert point_at_station(path, 99) == (10, 10)

    def test_turn_angles(self):
        angles = turn_angles([(0, 0), (10, 0), (10, 10), (20, 10)])
        assert angles == pytest.approx([math.pi / 2, math.pi / 2])
        assert turn_angles([(0, 0), (0, 0), (5, 0)]) == [0.0]
