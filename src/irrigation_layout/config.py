"""Named tolerances and defaults for the layout engine.

The numbers were tuned against hand-drawn field layouts. They are kept as
overridable settings rather than constants so callers can adjust them per field.
"""

import math

from pydantic import BaseModel, Field


class TopologyTolerances(BaseModel):
    """Distances in meters used when connecting pipe tiers.

    Submain-to-main detection walks a ladder of increasingly generous
    tolerances: exact intersection or ``connection_snap_m`` snap, then
    ``endpoint_fallback_m``, ``midpoint_fallback_m`` and finally
    ``vertex_fallback_m``. The first rung that matches wins.
    """

    junction_merge_m: float = Field(default=1.0, gt=0)
    lateral_attach_m: float = Field(default=2.0, gt=0)
    connection_snap_m: float = Field(default=2.0, gt=0)
    endpoint_fallback_m: float = Field(default=8.0, gt=0)
    midpoint_fallback_m: float = Field(default=10.0, gt=0)
    vertex_fallback_m: float = Field(default=15.0, gt=0)
    cross_shape_min_fraction: float = Field(default=0.3, ge=0, le=0.5)
    endpoint_window_m: float = Field(default=0.5, ge=0)
    zone_buffer_m: float = Field(default=10.0, ge=0)
    station_snap_m: float = Field(default=0.5, gt=0)
    station_cluster_m: float = Field(default=1.0, ge=0)
    sprinkler_attach_m: float = Field(default=1.5, ge=0)
    corner_min_turn_rad: float = Field(default=1e-3, ge=0)


class CurveSettings(BaseModel):
    """Corner blending parameters. Radii are in meters."""

    min_corner_radius: float = Field(default=2.5, ge=0)
    max_corner_radius: float = Field(default=8.5, ge=0)
    min_turn_angle: float = 0.12
    fillet_angle_margin: float = 0.1
    default_tension: float = Field(default=0.3, ge=0, le=1)
    default_segments: int = Field(default=30, ge=1)

    @property
    def fillet_angle_range(self) -> tuple[float, float]:
        return self.fillet_angle_margin, math.pi - self.fillet_angle_margin


class SamplerSettings(BaseModel):
    buffer_ratio: float = Field(default=0.3, ge=0)
    rows_per_batch: int = Field(default=20, ge=1)


DEFAULT_TOLERANCES = TopologyTolerances()
DEFAULT_CURVE_SETTINGS = CurveSettings()
DEFAULT_SAMPLER_SETTINGS = SamplerSettings()
