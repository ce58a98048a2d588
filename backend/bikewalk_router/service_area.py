from __future__ import annotations

import json
import math
from functools import lru_cache
from pathlib import Path
from typing import Any

BBox = tuple[float, float, float, float]

_GEOMETRY_TYPES = frozenset(
    {"Point", "MultiPoint", "LineString", "MultiLineString", "Polygon", "MultiPolygon"}
)


class _Extent:
    def __init__(self) -> None:
        self.min_lon = math.inf
        self.min_lat = math.inf
        self.max_lon = -math.inf
        self.max_lat = -math.inf

    def push(self, coords: Any) -> None:
        # coords is either a single [lon, lat] position or nested lists of them
        if not isinstance(coords, (list, tuple)) or not coords:
            return
        if isinstance(coords[0], (list, tuple)):
            for c in coords:
                self.push(c)
            return
        if len(coords) >= 2 and all(isinstance(v, (int, float)) for v in coords[:2]):
            lon, lat = float(coords[0]), float(coords[1])
            self.min_lon = min(self.min_lon, lon)
            self.min_lat = min(self.min_lat, lat)
            self.max_lon = max(self.max_lon, lon)
            self.max_lat = max(self.max_lat, lat)

    def walk(self, obj: Any) -> None:
        if not obj:
            return
        kind = obj.get("type")
        if kind == "FeatureCollection":
            for feature in obj.get("features", []):
                self.walk(feature)
        elif kind == "Feature":
            self.walk(obj.get("geometry"))
        elif kind == "GeometryCollection":
            for geom in obj.get("geometries", []):
                self.walk(geom)
        elif kind in _GEOMETRY_TYPES:
            self.push(obj.get("coordinates"))
        else:
            raise ValueError(f"Unsupported GeoJSON type: {kind}")


def compute_bbox(geojson: dict[str, Any]) -> BBox:
    """Return ``(min_lon, min_lat, max_lon, max_lat)`` for any GeoJSON object."""
    extent = _Extent()
    extent.walk(geojson)
    if not math.isfinite(extent.min_lon):
        raise ValueError("No coordinates found in GeoJSON")
    return extent.min_lon, extent.min_lat, extent.max_lon, extent.max_lat


def _fmt(v: float) -> str:
    return str(int(v)) if v.is_integer() else repr(v)


def service_area_config(bbox: BBox) -> dict[str, Any]:
    min_lon, min_lat, max_lon, max_lat = bbox
    # geocoder viewbox order: left, top, right, bottom
    viewbox = [min_lon, max_lat, max_lon, min_lat]
    return {
        "bbox": {"minLon": min_lon, "minLat": min_lat, "maxLon": max_lon, "maxLat": max_lat},
        "viewbox": viewbox,
        "viewboxString": ",".join(_fmt(v) for v in viewbox),
    }


@lru_cache(maxsize=4)
def load_service_area(path: str) -> dict[str, Any]:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"expected a GeoJSON object in {path}")
    return service_area_config(compute_bbox(raw))
