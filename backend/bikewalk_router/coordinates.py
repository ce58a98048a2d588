from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, NamedTuple

import numpy as np

from .logging_utils import log_event


class Coordinate(NamedTuple):
    lat: float
    lon: float


@dataclass(frozen=True)
class CoordinateTable:
    """Bulk node coordinates: two parallel arrays indexed by node index."""

    lat: np.ndarray
    lon: np.ndarray

    @classmethod
    def from_arrays(cls, lat: Sequence[float], lon: Sequence[float]) -> CoordinateTable:
        lat_arr = np.asarray(lat, dtype=np.float64)
        lon_arr = np.asarray(lon, dtype=np.float64)
        if lat_arr.ndim != 1 or lon_arr.shape != lat_arr.shape:
            raise ValueError("lat/lon tables must be 1-D arrays of equal length")
        return cls(lat=lat_arr, lon=lon_arr)

    def __len__(self) -> int:
        return int(self.lat.shape[0])

    def get(self, idx: int) -> Coordinate | None:
        if idx < 0 or idx >= len(self):
            return None
        return Coordinate(float(self.lat[idx]), float(self.lon[idx]))


def as_coordinate(node: Any) -> Coordinate:
    if isinstance(node, Mapping):
        return Coordinate(float(node["lat"]), float(node["lon"]))
    lat = getattr(node, "lat", None)
    lon = getattr(node, "lon", None)
    if lat is not None and lon is not None:
        return Coordinate(float(lat), float(lon))
    lat, lon = node
    return Coordinate(float(lat), float(lon))


def _project_bulk(path: Sequence[int], num_nodes: int, table: CoordinateTable) -> list[Coordinate] | None:
    idx = np.asarray(path, dtype=np.int64)
    # indices past the header's node count (or the table itself) mean a corrupt result
    limit = min(num_nodes, len(table))
    if idx.size and (int(idx.min()) < 0 or int(idx.max()) >= limit):
        log_event(
            "coords_bulk_corrupt",
            level=logging.WARNING,
            max_index=int(idx.max()),
            num_nodes=num_nodes,
            table_size=len(table),
        )
        return None
    lat = table.lat[idx]
    lon = table.lon[idx]
    return [Coordinate(float(a), float(b)) for a, b in zip(lat.tolist(), lon.tolist())]


def project_path(
    path: Sequence[int],
    num_nodes: int,
    *,
    table: CoordinateTable | None = None,
    lookup: Callable[[int], Any] | None = None,
) -> list[Coordinate]:
    """Resolve node indices to coordinates.

    The bulk table is tried first. When it is missing or the path addresses
    nodes outside it, each node is looked up one at a time instead. Any lookup
    failure yields ``[]``: partially resolved geometry is never returned.
    """
    if not path:
        return []

    if table is not None:
        coords = _project_bulk(path, num_nodes, table)
        if coords is not None:
            return coords

    if lookup is None:
        return []

    def _lookup(i: int) -> Coordinate:
        if i < 0 or i >= num_nodes:
            raise IndexError(f"node index {i} out of range (0..{num_nodes - 1})")
        return as_coordinate(lookup(i))

    try:
        return [_lookup(int(i)) for i in path]
    except Exception as e:
        log_event("coords_fallback_failed", level=logging.WARNING, path_len=len(path), error=str(e))
        return []


def endpoint_coords(
    table: CoordinateTable | None, source_idx: int, target_idx: int
) -> tuple[Coordinate | None, Coordinate | None]:
    if table is None:
        return None, None
    return table.get(source_idx), table.get(target_idx)
