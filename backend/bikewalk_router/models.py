from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .distance_breakdown import DistanceBreakdown

LatLonPair = tuple[float, float]


class RouteRuns(BaseModel):
    """Per-mode polylines, each at least two ``[lat, lon]`` points long."""

    model_config = ConfigDict(populate_by_name=True)

    bike_preferred: list[list[LatLonPair]] = Field(default_factory=list, alias="bikePreferred")
    bike_non_preferred: list[list[LatLonPair]] = Field(default_factory=list, alias="bikeNonPreferred")
    walk: list[list[LatLonPair]] = Field(default_factory=list)


class RouteBreakdown(DistanceBreakdown):
    distance_text: str = Field(default="0.0 km", alias="distanceText")
    duration_text: str = Field(default="0s", alias="durationText")


class RouteResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: list[int] = Field(default_factory=list)
    coords: list[LatLonPair] = Field(default_factory=list)
    modes: list[int] = Field(default_factory=list)
    distance_m: float = Field(default=0.0, alias="distanceM")
    duration_s: float = Field(default=0.0, alias="durationS")
    distance_bike_preferred: float = Field(default=0.0, alias="distanceBikePreferred")
    distance_bike_non_preferred: float = Field(default=0.0, alias="distanceBikeNonPreferred")
    distance_walk: float = Field(default=0.0, alias="distanceWalk")
    start_coord: LatLonPair | None = Field(default=None, alias="startCoord")
    end_coord: LatLonPair | None = Field(default=None, alias="endCoord")
    runs: RouteRuns = Field(default_factory=RouteRuns)
    breakdown: RouteBreakdown = Field(default_factory=RouteBreakdown)


class SnapResponse(BaseModel):
    idx: int = Field(..., ge=0)
    lat: float
    lon: float


class AddonStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    kd_snap: bool = Field(default=False, alias="kdSnap")
    router: bool = False


class HealthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool
    addons: AddonStatus
    total_nodes: int = Field(default=0, alias="totalNodes")
    graph_error: str | None = Field(default=None, alias="graphError")
