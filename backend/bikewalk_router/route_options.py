from __future__ import annotations

import math
import threading
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .errors import IndexOutOfRange, NotInteger
from .settings import Settings, settings

U16_MASK = 0xFFFF
NEUTRAL_SURFACE_FACTOR = 1.0


def _is_number(v: object) -> bool:
    # bool is an int subclass but never a number on the wire
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def to_index(v: object) -> int | None:
    """Integer, integer-valued float, or integer-valued numeric string; else None."""
    if _is_number(v):
        if isinstance(v, int):
            return v
        return int(v) if math.isfinite(v) and float(v).is_integer() else None
    if isinstance(v, str):
        text = v.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            f = float(text)
        except ValueError:
            return None
        return int(f) if math.isfinite(f) and f.is_integer() else None
    return None


def clamp_u16(v: object, fallback: int) -> int:
    if _is_number(v):
        if isinstance(v, int):
            return v & U16_MASK
        if math.isfinite(v) and float(v).is_integer():
            return int(v) & U16_MASK
    return fallback


def _as_float(v: object) -> float | None:
    if not _is_number(v):
        return None
    try:
        f = float(v)  # type: ignore[arg-type]
    except OverflowError:
        return None
    return f if math.isfinite(f) else None


def finite_or(v: object, fallback: float, *, minimum: float | None = None, strict: bool = False) -> float:
    f = _as_float(v)
    if f is None:
        return fallback
    if minimum is not None and (f <= minimum if strict else f < minimum):
        return fallback
    return f


def _factor(v: object) -> float:
    f = _as_float(v)
    if f is not None:
        return f
    if isinstance(v, str):
        try:
            f = float(v.strip())
        except ValueError:
            return NEUTRAL_SURFACE_FACTOR
        return f if math.isfinite(f) else NEUTRAL_SURFACE_FACTOR
    return NEUTRAL_SURFACE_FACTOR


def sanitize_factors(v: object) -> tuple[float, ...] | None:
    if not isinstance(v, (list, tuple)):
        return None
    return tuple(_factor(x) for x in v)


class RouteDefaults(BaseModel):
    """Server-side tuning defaults. Replaced as a whole, never mutated."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: int = 1
    bike_surface_mask: int = Field(default=U16_MASK, ge=0, le=U16_MASK, alias="bikeSurfaceMask")
    bike_speed_mps: float = Field(default=6.0, gt=0.0, alias="bikeSpeedMps")
    walk_speed_mps: float = Field(default=1.5, gt=0.0, alias="walkSpeedMps")
    ride_to_walk_penalty_s: float = Field(default=5.0, ge=0.0, alias="rideToWalkPenaltyS")
    walk_to_ride_penalty_s: float = Field(default=3.0, ge=0.0, alias="walkToRidePenaltyS")
    surface_penalty_s_per_km: float = Field(default=0.0, ge=0.0, alias="surfacePenaltySPerKm")

    @classmethod
    def from_settings(cls, cfg: Settings) -> RouteDefaults:
        return cls(
            bike_surface_mask=cfg.default_bike_surface_mask,
            bike_speed_mps=cfg.default_bike_speed_mps,
            walk_speed_mps=cfg.default_walk_speed_mps,
            ride_to_walk_penalty_s=cfg.default_ride_to_walk_penalty_s,
            walk_to_ride_penalty_s=cfg.default_walk_to_ride_penalty_s,
            surface_penalty_s_per_km=cfg.default_surface_penalty_s_per_km,
        )


class RoutingRequest(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source_idx: int = Field(..., ge=0, le=0xFFFFFFFF, alias="sourceIdx")
    target_idx: int = Field(..., ge=0, le=0xFFFFFFFF, alias="targetIdx")
    bike_surface_mask: int = Field(..., ge=0, le=U16_MASK, alias="bikeSurfaceMask")
    bike_speed_mps: float = Field(..., gt=0.0, alias="bikeSpeedMps")
    walk_speed_mps: float = Field(..., gt=0.0, alias="walkSpeedMps")
    ride_to_walk_penalty_s: float = Field(..., ge=0.0, alias="rideToWalkPenaltyS")
    walk_to_ride_penalty_s: float = Field(..., ge=0.0, alias="walkToRidePenaltyS")
    surface_penalty_s_per_km: float = Field(..., ge=0.0, alias="surfacePenaltySPerKm")
    bike_surface_factor: tuple[float, ...] | None = Field(default=None, alias="bikeSurfaceFactor")
    walk_surface_factor: tuple[float, ...] | None = Field(default=None, alias="walkSurfaceFactor")

    def to_engine_options(self) -> dict[str, Any]:
        opts = self.model_dump(by_alias=True, exclude_none=True)
        for key in ("bikeSurfaceFactor", "walkSurfaceFactor"):
            if key in opts:
                opts[key] = list(opts[key])
        return opts

    def to_body(self) -> dict[str, Any]:
        """Client-side body that normalizes back to this request."""
        body = self.to_engine_options()
        body["startIdx"] = body.pop("sourceIdx")
        body["endIdx"] = body.pop("targetIdx")
        return body


class RouteOptionsBody(BaseModel):
    """Wire shape of ``POST /route``.

    Values stay untyped here: each field is coerced by ``normalize_route_options``
    so a malformed tuning knob falls back to its default instead of failing the
    request.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    start_idx: Any = Field(default=None, alias="startIdx")
    end_idx: Any = Field(default=None, alias="endIdx")
    bike_surface_mask: Any = Field(default=None, alias="bikeSurfaceMask")
    bike_speed_mps: Any = Field(default=None, alias="bikeSpeedMps")
    walk_speed_mps: Any = Field(default=None, alias="walkSpeedMps")
    ride_to_walk_penalty_s: Any = Field(default=None, alias="rideToWalkPenaltyS")
    walk_to_ride_penalty_s: Any = Field(default=None, alias="walkToRidePenaltyS")
    surface_penalty_s_per_km: Any = Field(default=None, alias="surfacePenaltySPerKm")
    bike_surface_factor: Any = Field(default=None, alias="bikeSurfaceFactor")
    walk_surface_factor: Any = Field(default=None, alias="walkSurfaceFactor")

    def raw(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)


def _checked_index(v: object, num_nodes: int) -> int:
    idx = to_index(v)
    if idx is None:
        raise NotInteger()
    if idx < 0 or idx >= num_nodes:
        raise IndexOutOfRange(idx, num_nodes)
    return idx


def normalize_route_options(
    raw: Mapping[str, Any] | RoutingRequest | None,
    defaults: RouteDefaults,
    *,
    num_nodes: int,
) -> RoutingRequest:
    if isinstance(raw, RoutingRequest):
        raw = raw.to_body()
    body: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}

    start = _checked_index(body.get("startIdx"), num_nodes)
    end = _checked_index(body.get("endIdx"), num_nodes)

    return RoutingRequest(
        source_idx=start,
        target_idx=end,
        bike_surface_mask=clamp_u16(body.get("bikeSurfaceMask"), defaults.bike_surface_mask),
        bike_speed_mps=finite_or(body.get("bikeSpeedMps"), defaults.bike_speed_mps, minimum=0.0, strict=True),
        walk_speed_mps=finite_or(body.get("walkSpeedMps"), defaults.walk_speed_mps, minimum=0.0, strict=True),
        ride_to_walk_penalty_s=finite_or(
            body.get("rideToWalkPenaltyS"), defaults.ride_to_walk_penalty_s, minimum=0.0
        ),
        walk_to_ride_penalty_s=finite_or(
            body.get("walkToRidePenaltyS"), defaults.walk_to_ride_penalty_s, minimum=0.0
        ),
        surface_penalty_s_per_km=finite_or(
            body.get("surfacePenaltySPerKm"), defaults.surface_penalty_s_per_km, minimum=0.0
        ),
        bike_surface_factor=sanitize_factors(body.get("bikeSurfaceFactor")),
        walk_surface_factor=sanitize_factors(body.get("walkSurfaceFactor")),
    )


# GET /route short query names -> body keys
QUERY_ALIASES: dict[str, str] = {
    "startIdx": "startIdx",
    "endIdx": "endIdx",
    "bikeMask": "bikeSurfaceMask",
    "bikeSpeed": "bikeSpeedMps",
    "walkSpeed": "walkSpeedMps",
    "dismount": "rideToWalkPenaltyS",
    "remount": "walkToRidePenaltyS",
    "surfacePenalty": "surfacePenaltySPerKm",
}


def _query_number(text: str) -> int | float | str:
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return text


def body_from_query(params: Mapping[str, str]) -> dict[str, Any]:
    body: dict[str, Any] = {}
    for query_key, body_key in QUERY_ALIASES.items():
        value = params.get(query_key)
        if value is None:
            continue
        body[body_key] = _query_number(value.strip())
    return body


class DefaultsStore:
    """Copy-on-write holder of the current ``RouteDefaults``.

    Readers take one snapshot per request; writers swap in a whole new value
    with a bumped version, so no request ever sees a half-applied update.
    """

    def __init__(self, initial: RouteDefaults) -> None:
        self._lock = threading.Lock()
        self._initial = initial
        self._current = initial

    def current(self) -> RouteDefaults:
        return self._current

    def update(self, raw: Mapping[str, Any]) -> RouteDefaults:
        with self._lock:
            cur = self._current
            updated = RouteDefaults(
                version=cur.version + 1,
                bike_surface_mask=clamp_u16(raw.get("bikeSurfaceMask"), cur.bike_surface_mask),
                bike_speed_mps=finite_or(raw.get("bikeSpeedMps"), cur.bike_speed_mps, minimum=0.0, strict=True),
                walk_speed_mps=finite_or(raw.get("walkSpeedMps"), cur.walk_speed_mps, minimum=0.0, strict=True),
                ride_to_walk_penalty_s=finite_or(
                    raw.get("rideToWalkPenaltyS"), cur.ride_to_walk_penalty_s, minimum=0.0
                ),
                walk_to_ride_penalty_s=finite_or(
                    raw.get("walkToRidePenaltyS"), cur.walk_to_ride_penalty_s, minimum=0.0
                ),
                surface_penalty_s_per_km=finite_or(
                    raw.get("surfacePenaltySPerKm"), cur.surface_penalty_s_per_km, minimum=0.0
                ),
            )
            self._current = updated
            return updated

    def reset(self) -> RouteDefaults:
        with self._lock:
            self._current = self._initial.model_copy(update={"version": self._current.version + 1})
            return self._current


DEFAULTS = DefaultsStore(RouteDefaults.from_settings(settings))
