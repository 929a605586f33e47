"""Tests for grid sampling inside field polygons."""

import pytest

from irrigation_layout.geometry import (
    distance_point_to_segment,
    point_in_polygon,
    polygon_centroid,
    polygon_edges,
    project,
)
from irrigation_layout.models import Obstacle, ObstacleType
from irrigation_layout.sampler import (
    effective_spacing_for_radius,
    iter_sample_batches,
    plant_spacing_m,
    sample_points,
    sample_points_async,
)


def _local(points, boundary):
    return project(points, polygon_centroid(boundary))


@pytest.fixture
def pond(at):
    return Obstacle(
        id="pond",
        type=ObstacleType.WATER_SOURCE,
        coordinates=[at(-15, -15), at(15, -15), at(15, 15), at(-15, 15)],
    )


class TestSamplePoints:
    def test_square_grid(self, square_100m):
        points = sample_points(square_100m, spacing=10)
        # columns and rows at -40..40; the +-50 lines are inside the 3 m edge buffer
        assert len(points) == 81

    def test_points_inside_and_clear_of_edges(self, square_100m):
        points = sample_points(square_100m, spacing=10)
        ring = _local(square_100m, square_100m)
        for p in _local(points, square_100m):
            assert point_in_polygon(p, ring)
            for a, b in polygon_edges(ring):
                assert distance_point_to_segment(p, a, b)[0] >= 3 - 1e-6

    def test_sloped_edges_keep_clearance(self, at, pond):
        triangle = [at(-50, -50), at(50, -50), at(0, 50)]
        points = sample_points(triangle, [pond], spacing=5)
        assert points
        edges = polygon_edges(_local(triangle, triangle)) + polygon_edges(_local(pond.coordinates, triangle))
        for p in _local(points, triangle):
            assert min(distance_point_to_segment(p, a, b)[0] for a, b in edges) >= 1.5 - 1e-6

    def test_center_row_first(self, square_100m):
        points = sample_points(square_100m, spacing=10)
        first = _local(points[:9], square_100m)
        assert all(y == pytest.approx(0, abs=1e-6) for _, y in first)

    def test_obstacle_excluded(self, square_100m, pond):
        points = sample_points(square_100m, [pond], spacing=10)
        assert len(points) == 72
        hole = _local(pond.coordinates, square_100m)
        assert not any(point_in_polygon(p, hole) for p in _local(points, square_100m))

    def test_degenerate_obstacle_ignored(self, square_100m, at):
        stake = Obstacle(id="stake", coordinates=[at(0, 0), at(1, 1)])
        assert len(sample_points(square_100m, [stake], spacing=10)) == 81

    def test_rotated_field(self, at):
        diamond = [at(0, -50), at(50, 0), at(0, 50), at(-50, 0)]
        points = sample_points(diamond, spacing=7, rotation_deg=45)
        assert points
        ring = _local(diamond, diamond)
        for p in _local(points, diamond):
            assert point_in_polygon(p, ring)
            for a, b in polygon_edges(ring):
                assert distance_point_to_segment(p, a, b)[0] >= 0.3 * 7 - 1e-6

    def test_row_spacing(self, square_100m):
        points = sample_points(square_100m, spacing=10, row_spacing=20)
        assert len(points) == 45

    def test_buffer_ratio_zero_keeps_more(self, square_100m):
        assert len(sample_points(square_100m, spacing=10, buffer_ratio=0)) > 81

    @pytest.mark.parametrize("spacing", [0, -5])
    def test_invalid_spacing(self, square_100m, spacing):
        assert sample_points(square_100m, spacing=spacing) == []

    def test_too_few_vertices(self, at):
        assert sample_points([at(0, 0), at(10, 0)], spacing=1) == []

    def test_deterministic(self, square_100m, pond):
        assert sample_points(square_100m, [pond], spacing=10) == sample_points(square_100m, [pond], spacing=10)


class TestBatches:
    def test_batches_concatenate_to_full_result(self, square_100m):
        batches = list(iter_sample_batches(square_100m, spacing=10, rows_per_batch=2))
        assert len(batches) > 1
        assert [p for batch in batches for p in batch] == sample_points(square_100m, spacing=10)

    def test_generation_can_stop_early(self, square_100m):
        batches = iter_sample_batches(square_100m, spacing=10, rows_per_batch=1)
        first = next(batches)
        batches.close()
        assert len(first) == 9

    @pytest.mark.asyncio
    async def test_async_matches_sync(self, square_100m, pond):
        points = await sample_points_async(square_100m, [pond], spacing=10)
        assert points == sample_points(square_100m, [pond], spacing=10)


class TestSpacing:
    def test_effective_spacing(self):
        assert effective_spacing_for_radius(5) == 10
        assert effective_spacing_for_radius(5, 0.2) == pytest.approx(8)

    def test_plant_spacing(self):
        assert plant_spacing_m(75, 25) == (0.75, 0.25)
