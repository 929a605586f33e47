"""Pydantic data models for the irrigation layout engine."""

from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field


class Coordinate(BaseModel):
    """A WGS84 position in degrees. Immutable and hashable."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class PipeType(str, Enum):
    MAIN = "main"
    SUBMAIN = "submain"
    LATERAL = "lateral"


class ObstacleType(str, Enum):
    WATER_SOURCE = "water_source"
    BUILDING = "building"
    ROCK = "rock"
    OTHER = "other"


class ConnectionType(str, Enum):
    SINGLE = "single"
    JUNCTION = "junction"
    CROSSING = "crossing"
    L_SHAPE = "l_shape"
    T_SHAPE = "t_shape"
    CROSS_SHAPE = "cross_shape"


class DetectionStage(str, Enum):
    """Which rung of the tolerance ladder located a connection."""

    INTERSECTION = "intersection"
    SNAP = "snap"
    ENDPOINT = "endpoint"
    MIDPOINT = "midpoint"
    VERTEX = "vertex"


class CurveMode(str, Enum):
    SPLINE = "spline"
    CIRCULAR = "circular"


class Pipe(BaseModel):
    """A rendered pipe path. ``coordinates`` is the dense path, not the anchors."""

    id: str
    type: PipeType
    coordinates: list[Coordinate] = Field(min_length=2)
    zone_id: str | None = None
    color: str | None = None


class PathSegment(BaseModel):
    """A straight piece between consecutive path vertices."""

    index: int
    start: Coordinate
    end: Coordinate
    length_m: float
    cumulative_m_start: float
    cumulative_m_end: float


class Zone(BaseModel):
    id: str
    name: str
    color: str | None = None
    coordinates: list[Coordinate] = Field(min_length=3)
    crop_type: str | None = None


class Obstacle(BaseModel):
    id: str
    type: ObstacleType = ObstacleType.OTHER
    coordinates: list[Coordinate]


class ConnectionPoint(BaseModel):
    """A derived connection between pipe tiers. Never authoritative state."""

    id: str
    position: Coordinate
    connected_laterals: list[str] = Field(default_factory=list)
    submain_id: str
    main_id: str | None = None
    type: ConnectionType
    detection: DetectionStage


class FittingCounts(BaseModel):
    two_way: int = 0
    three_way: int = 0
    four_way: int = 0

    @computed_field
    @property
    def total(self) -> int:
        return self.two_way + self.three_way + self.four_way


class TierFittings(BaseModel):
    main: FittingCounts = Field(default_factory=FittingCounts)
    submain: FittingCounts = Field(default_factory=FittingCounts)
    lateral: FittingCounts = Field(default_factory=FittingCounts)


class FittingsBreakdown(BaseModel):
    """Fitting counts per tier and as a grand total."""

    two_way: int
    three_way: int
    four_way: int
    total: int
    breakdown: TierFittings


class PipeStats(BaseModel):
    count: int = 0
    total_length: float = 0.0
    longest_length: float = 0.0


class ZonePipeStats(BaseModel):
    main: PipeStats = Field(default_factory=PipeStats)
    submain: PipeStats = Field(default_factory=PipeStats)
    lateral: PipeStats = Field(default_factory=PipeStats)
    total: int = 0
    total_length: float = 0.0
    total_longest_length: float = 0.0


class CropParameters(BaseModel):
    """One row of the external crop-parameter table.

    Accepts the table's own camelCase column names as well.
    """

    value: str
    name: str
    row_spacing_cm: float = Field(gt=0, validation_alias=AliasChoices("row_spacing_cm", "rowSpacing"))
    plant_spacing_cm: float = Field(gt=0, validation_alias=AliasChoices("plant_spacing_cm", "plantSpacing"))
    yield_per_rai: float = Field(ge=0, validation_alias=AliasChoices("yield_per_rai", "yield"))
    price_per_kg: float = Field(ge=0, validation_alias=AliasChoices("price_per_kg", "price"))
    water_requirement: float | None = Field(
        default=None, validation_alias=AliasChoices("water_requirement", "waterRequirement")
    )


class ZoneSummary(BaseModel):
    zone_id: str
    zone_name: str
    crop_value: str | None = None
    crop_name: str | None = None
    zone_area_m2: float
    zone_area_rai: float
    total_planting_points: int
    estimated_yield: int
    estimated_price: int
    water_requirement_per_day: int
    pipe_stats: ZonePipeStats


class TopologyResult(BaseModel):
    """Output of the pipe topology analysis."""

    pipes: list[Pipe]
    connection_points: list[ConnectionPoint]
    fittings: FittingsBreakdown
    zone_stats: dict[str, ZonePipeStats] = Field(default_factory=dict)

    def stats_for_zone(self, zone_id: str) -> ZonePipeStats:
        return self.zone_stats.get(zone_id, ZonePipeStats())


class LayoutSettings(BaseModel):
    row_spacing_cm: float | None = Field(default=None, gt=0)
    plant_spacing_cm: float | None = Field(default=None, gt=0)
    sprinkler_radius_m: float | None = Field(default=None, gt=0)
    sprinkler_overlap: float = Field(default=0.0, ge=0, lt=1)
    rotation_deg: float = 0.0


class FieldSnapshot(BaseModel):
    """The JSON document persisted by the host's snapshot store."""

    boundary: list[Coordinate] = Field(default_factory=list)
    zones: list[Zone] = Field(default_factory=list)
    pipes: list[Pipe] = Field(default_factory=list)
    obstacles: list[Obstacle] = Field(default_factory=list)
    sprinklers: list[Coordinate] = Field(default_factory=list)
    settings: LayoutSettings = Field(default_factory=LayoutSettings)


class LayoutResult(BaseModel):
    """Everything derived from a snapshot in one pass."""

    pipes: list[Pipe]
    connection_points: list[ConnectionPoint]
    connection_counts: dict[str, int]
    fittings: FittingsBreakdown
    zone_summaries: list[ZoneSummary]
    sprinklers: list[Coordinate] = Field(default_factory=list)
