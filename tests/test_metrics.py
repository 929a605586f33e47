"""Tests for zone area, planting points and yield estimates."""

import pytest

from irrigation_layout.geometry import to_lat_lng
from irrigation_layout.metrics import (
    estimate_yield_and_price,
    geodesic_area_m2,
    planting_points_from_area,
    planting_points_from_laterals,
    round_half_up,
    summarize_zone,
    summarize_zones,
    water_requirement,
    zone_area_m2,
)
from irrigation_layout.models import Coordinate, CropParameters, PipeType, Zone, ZonePipeStats


@pytest.fixture
def zone_1600m2(at):
    return Zone(id="z", name="One rai", coordinates=[at(0, 0), at(40, 0), at(40, 40), at(0, 40)], crop_type="corn")


class TestArea:
    def test_square_100m(self, square_100m):
        assert zone_area_m2(square_100m) == pytest.approx(10_000, rel=0.01)

    def test_geodesic_square_100m(self, square_100m):
        assert geodesic_area_m2(square_100m) == pytest.approx(10_000, rel=0.01)

    def test_square_100m_at_equator(self):
        origin = Coordinate(lat=0.0, lng=0.0)
        square = [to_lat_lng(xy, origin) for xy in ((-50, -50), (50, -50), (50, 50), (-50, 50))]
        assert zone_area_m2(square) == pytest.approx(10_000, rel=0.01)
        assert geodesic_area_m2(square) == pytest.approx(10_000, rel=0.01)

    def test_orientation_independent(self, square_100m):
        assert zone_area_m2(square_100m[::-1]) == pytest.approx(zone_area_m2(square_100m))
        assert geodesic_area_m2(square_100m[::-1]) == pytest.approx(geodesic_area_m2(square_100m))

    def test_closed_ring(self, square_100m):
        closed = square_100m + [square_100m[0]]
        assert zone_area_m2(closed) == pytest.approx(zone_area_m2(square_100m), rel=1e-5)

    def test_degenerate(self, at):
        assert zone_area_m2([at(0, 0), at(10, 0)]) == 0
        assert geodesic_area_m2([]) == 0


class TestPlantingPoints:
    def test_from_area(self):
        assert planting_points_from_area(1600, 0.75, 0.25) == 8533

    def test_from_area_invalid_spacing(self):
        assert planting_points_from_area(1600, 0, 0.25) == 0

    def test_from_laterals(self, make_pipe):
        laterals = [
            make_pipe("a", PipeType.LATERAL, (0, 0), (0, 10.2)),
            make_pipe("b", PipeType.LATERAL, (5, 0), (5, 10.2)),
        ]
        assert planting_points_from_laterals(laterals, 0.5) == 2 * 21

    def test_from_no_laterals(self):
        assert planting_points_from_laterals([], 0.5) == 0


class TestYield:
    def test_yield_and_price(self, corn):
        assert estimate_yield_and_price(3200, corn) == (3000, 24000)

    def test_rounds_half_up(self):
        crop = CropParameters(value="x", name="X", row_spacing_cm=50, plant_spacing_cm=50, yield_per_rai=2.5, price_per_kg=0.5)
        assert estimate_yield_and_price(1600, crop) == (3, 2)

    def test_no_crop(self):
        assert estimate_yield_and_price(3200, None) == (0, 0)

    def test_water_requirement(self, corn):
        assert water_requirement(100, corn) == 200
        assert water_requirement(0, corn) == 0

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(0.125, 2) == pytest.approx(0.13)


class TestSummaries:
    def test_area_based_before_pipes(self, zone_1600m2, corn):
        summary = summarize_zone(zone_1600m2, corn)
        area = zone_area_m2(zone_1600m2.coordinates)
        assert summary.crop_value == "corn"
        assert summary.zone_area_m2 == round_half_up(area)
        assert summary.zone_area_rai == pytest.approx(area / 1600, abs=0.01)
        assert summary.total_planting_points == planting_points_from_area(area, 0.75, 0.25)
        assert summary.water_requirement_per_day == summary.total_planting_points * 2

    def test_lateral_based_once_drawn(self, zone_1600m2, corn, make_pipe):
        laterals = [make_pipe("a", PipeType.LATERAL, (5, 0), (5, 10.2))]
        summary = summarize_zone(zone_1600m2, corn, laterals=laterals)
        assert summary.total_planting_points == 41

    def test_spacing_override(self, zone_1600m2, corn):
        default = summarize_zone(zone_1600m2, corn)
        wider = summarize_zone(zone_1600m2, corn, row_spacing_cm=150)
        assert wider.total_planting_points == pytest.approx(default.total_planting_points / 2, abs=1)

    def test_no_crop(self, zone_1600m2):
        summary = summarize_zone(zone_1600m2)
        assert summary.crop_value is None
        assert summary.zone_area_m2 > 0
        assert summary.total_planting_points == 0
        assert summary.estimated_price == 0

    def test_summarize_zones_looks_up_crops(self, zone_1600m2, corn, at):
        bare = Zone(id="b", name="Bare", coordinates=[at(100, 0), at(120, 0), at(120, 20)], crop_type="rice")
        stats = {"z": ZonePipeStats(total=3)}
        summaries = summarize_zones([zone_1600m2, bare], {"corn": corn}, stats_by_zone=stats)
        assert [s.zone_id for s in summaries] == ["z", "b"]
        assert summaries[0].crop_name == "Corn"
        assert summaries[0].pipe_stats.total == 3
        assert summaries[1].crop_value is None
        assert summaries[1].pipe_stats.total == 0
