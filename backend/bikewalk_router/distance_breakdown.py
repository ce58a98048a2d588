from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field

# Smallest bar width (percent) kept for a nonzero segment.
VISIBILITY_FLOOR_PCT = 1.5


class DistanceBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    bike_preferred_pct: float = Field(default=0.0, ge=0.0, le=100.0, alias="bikePreferredPct")
    bike_non_preferred_pct: float = Field(default=0.0, ge=0.0, le=100.0, alias="bikeNonPreferredPct")
    walk_pct: float = Field(default=0.0, ge=0.0, le=100.0, alias="walkPct")

    def total(self) -> float:
        return self.bike_preferred_pct + self.bike_non_preferred_pct + self.walk_pct


def _non_negative(v: float | None) -> float:
    if v is None:
        return 0.0
    f = float(v)
    return f if math.isfinite(f) and f > 0 else 0.0


def distance_breakdown(
    bike_preferred: float | None,
    bike_non_preferred: float | None,
    walk: float | None,
    total_distance: float | None,
) -> DistanceBreakdown:
    """Percent widths of the three modes for a stacked bar.

    Tiny nonzero parts are lifted to the visibility floor when the bar still has
    room for all of them; the result is then rescaled to sum to 100.
    """
    parts = [_non_negative(bike_preferred), _non_negative(bike_non_preferred), _non_negative(walk)]
    total = _non_negative(total_distance)
    base = total if total > 0 else sum(parts)
    if base <= 0:
        return DistanceBreakdown()

    pct = [p / base * 100.0 for p in parts]

    tiny = [i for i, p in enumerate(pct) if 0 < p < VISIBILITY_FLOOR_PCT]
    if tiny and VISIBILITY_FLOOR_PCT * len(tiny) <= 100.0 - sum(pct):
        for i in tiny:
            pct[i] = VISIBILITY_FLOOR_PCT

    total_pct = sum(pct)
    if total_pct > 0:
        pct = [p / total_pct * 100.0 for p in pct]

    return DistanceBreakdown(
        bike_preferred_pct=min(pct[0], 100.0),
        bike_non_preferred_pct=min(pct[1], 100.0),
        walk_pct=min(pct[2], 100.0),
    )


def format_km(meters: float | None) -> str:
    km = (meters or 0.0) / 1000.0
    if km == 0:
        return "0.0 km"
    return f"{km:.2f} km" if km < 10 else f"{km:.1f} km"


def format_duration(seconds: float | None) -> str:
    total = max(0, math.floor(seconds or 0))
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h}h {m:02d}m {s:02d}s"
    if m > 0:
        return f"{m}m {s:02d}s"
    return f"{s}s"
