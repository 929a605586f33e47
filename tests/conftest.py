import pytest

from irrigation_layout.geometry import to_lat_lng
from irrigation_layout.models import Coordinate, CropParameters, Pipe, PipeType, Zone

ORIGIN = Coordinate(lat=13.75, lng=100.5)


def _at(x: float, y: float) -> Coordinate:
    return to_lat_lng((x, y), ORIGIN)


@pytest.fixture
def origin():
    return ORIGIN


@pytest.fixture
def at():
    """Build a Coordinate from local meters east/north of ``ORIGIN``."""
    return _at


@pytest.fixture
def make_pipe():
    def make(pipe_id, pipe_type, *xy, zone_id=None):
        return Pipe(id=pipe_id, type=pipe_type, coordinates=[_at(x, y) for x, y in xy], zone_id=zone_id)

    return make


@pytest.fixture
def square_100m():
    return [_at(-50, -50), _at(50, -50), _at(50, 50), _at(-50, 50)]


@pytest.fixture
def zone_100m(square_100m):
    return Zone(id="z1", name="North field", coordinates=square_100m, crop_type="corn")


@pytest.fixture
def crossing_laterals(make_pipe):
    """One submain along the x axis with two laterals crossing it 5 m apart."""
    return [
        make_pipe("sub", PipeType.SUBMAIN, (0, 0), (30, 0)),
        make_pipe("lat-a", PipeType.LATERAL, (10, -10), (10, 10)),
        make_pipe("lat-b", PipeType.LATERAL, (15, -10), (15, 10)),
    ]


@pytest.fixture
def corn():
    return CropParameters(
        value="corn",
        name="Corn",
        row_spacing_cm=75,
        plant_spacing_cm=25,
        yield_per_rai=1500,
        price_per_kg=8,
        water_requirement=2,
    )
