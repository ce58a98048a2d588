from __future__ import annotations

import asyncio
import importlib
import logging
import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from .coordinates import CoordinateTable
from .errors import CorruptResult, EngineError, EngineUnavailable
from .logging_utils import log_event
from .route_options import RoutingRequest

EngineCallback = Callable[[Any, Any], None]

NO_ROUTE_MARKER = "no route"


class PathfindingEngine(Protocol):
    """Native two-mode router.

    ``find_path`` is error-first callback style: exactly one of ``err`` and
    ``result`` is set, and the callback may fire on any thread.
    """

    def find_path(self, options: dict[str, Any], callback: EngineCallback) -> None: ...

    def get_node(self, idx: int) -> Any: ...


class SpatialIndex(Protocol):
    def find_nearest(self, lat: float, lon: float) -> int: ...

    def get_node(self, idx: int) -> Any: ...

    def get_lat_array(self) -> Sequence[float]: ...

    def get_lon_array(self) -> Sequence[float]: ...


class RoutingResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    path: tuple[int, ...] = ()
    modes: tuple[int, ...] = ()
    distance_m: float = Field(default=0.0, ge=0.0, alias="distanceM")
    duration_s: float = Field(default=0.0, ge=0.0, alias="durationS")
    distance_bike_preferred: float = Field(default=0.0, ge=0.0, alias="distanceBikePreferred")
    distance_bike_non_preferred: float = Field(default=0.0, ge=0.0, alias="distanceBikeNonPreferred")
    distance_walk: float = Field(default=0.0, ge=0.0, alias="distanceWalk")

    @classmethod
    def empty(cls) -> RoutingResult:
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.path


_STAT_FIELDS: tuple[tuple[str, str], ...] = (
    ("distanceM", "distance_m"),
    ("durationS", "duration_s"),
    ("distanceBikePreferred", "distance_bike_preferred"),
    ("distanceBikeNonPreferred", "distance_bike_non_preferred"),
    ("distanceWalk", "distance_walk"),
)


def _int_list(raw: object, name: str, *, upper: int | None = None) -> tuple[int, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, (list, tuple)):
        raise CorruptResult(f"{name} is not a list")
    out: list[int] = []
    for v in raw:
        if isinstance(v, bool):
            raise CorruptResult(f"{name} contains a boolean")
        if isinstance(v, float) and v.is_integer():
            v = int(v)
        if not isinstance(v, int) or v < 0 or (upper is not None and v > upper):
            raise CorruptResult(f"{name} contains {v!r}")
        out.append(v)
    return tuple(out)


def _stat(raw: Mapping[str, Any], key: str) -> float:
    v = raw.get(key)
    if v is None:
        # engines built before the per-mode split omit some aggregates
        return 0.0
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise CorruptResult(f"{key} is not a number")
    f = float(v)
    if not math.isfinite(f) or f < 0:
        raise CorruptResult(f"{key}={v!r}")
    return f


def parse_engine_result(raw: object) -> RoutingResult:
    """Validate an untrusted engine payload.

    Node indices are only checked for shape here; bounds against the graph
    size are enforced where coordinates get resolved.
    """
    if not isinstance(raw, Mapping):
        raise CorruptResult("result is not an object")

    path = _int_list(raw.get("path"), "path", upper=0xFFFFFFFF)
    if len(path) < 2:
        # a single node (start == end) or nothing: no segments, no distance
        return RoutingResult(path=path)

    modes = _int_list(raw.get("modes"), "modes", upper=0xFF)
    stats = {attr: _stat(raw, key) for key, attr in _STAT_FIELDS}
    return RoutingResult(path=path, modes=modes, **stats)


def is_no_route_error(err: object) -> bool:
    # case-insensitive: engine builds differ in how they capitalize the message
    return NO_ROUTE_MARKER in str(err).lower()


def _resolve(future: asyncio.Future[Any], err: Any, result: Any) -> None:
    # Runs on the loop thread. The awaiting request may be gone already.
    if future.done():
        log_event(
            "engine_response_discarded",
            level=logging.DEBUG,
            cancelled=future.cancelled(),
            had_error=err is not None,
        )
        return
    if err is not None:
        future.set_exception(err if isinstance(err, BaseException) else EngineError.from_engine(err))
    else:
        future.set_result(result)


async def find_path_async(engine: PathfindingEngine, request: RoutingRequest) -> RoutingResult:
    """Run one engine search and await its callback.

    "no route" failures become an empty result; every other failure is raised
    as ``EngineError``. Cancelling the awaiting task does not stop the engine.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[Any] = loop.create_future()

    def _callback(err: Any, result: Any = None) -> None:
        try:
            loop.call_soon_threadsafe(_resolve, future, err, result)
        except RuntimeError:
            # loop closed (shutdown while the engine was still searching)
            pass

    try:
        engine.find_path(request.to_engine_options(), _callback)
        raw = await future
    except Exception as e:
        if is_no_route_error(e):
            return RoutingResult.empty()
        if isinstance(e, EngineError):
            raise
        raise EngineError.from_engine(e) from e

    return parse_engine_result(raw)


def node_lookup(source: Any) -> Callable[[int], Any] | None:
    get_node = getattr(source, "get_node", None)
    return get_node if callable(get_node) else None


@dataclass
class EngineAddons:
    router: PathfindingEngine | None = None
    snap: SpatialIndex | None = None
    table: CoordinateTable | None = None

    def has_router(self) -> bool:
        return self.router is not None

    def has_snap(self) -> bool:
        return self.snap is not None

    def is_available(self) -> bool:
        return self.has_router() and self.has_snap()

    def require_router(self) -> PathfindingEngine:
        if self.router is None:
            raise EngineUnavailable(reason_code="router_unavailable", message="route addon not loaded")
        return self.router

    def require_snap(self) -> SpatialIndex:
        if self.snap is None:
            raise EngineUnavailable(reason_code="snap_unavailable", message="kdSnap addon not loaded")
        return self.snap

    def coordinate_table(self) -> CoordinateTable | None:
        return self.table


def _import_addon(dotted: str, kind: str) -> Any | None:
    if not dotted:
        log_event("addon_unavailable", level=logging.WARNING, addon=kind, reason="not configured")
        return None
    try:
        module = importlib.import_module(dotted)
    except Exception as e:
        log_event("addon_unavailable", level=logging.WARNING, addon=kind, module_path=dotted, error=str(e))
        return None
    log_event("addon_loaded", addon=kind, module_path=dotted)
    return module


def _table_from_snap(snap: Any) -> CoordinateTable | None:
    try:
        return CoordinateTable.from_arrays(snap.get_lat_array(), snap.get_lon_array())
    except Exception as e:
        log_event("addon_unavailable", level=logging.WARNING, addon="coordinate_table", error=str(e))
        return None


def load_addons(engine_module: str, snap_module: str) -> EngineAddons:
    """Import the configured native modules; a missing one only disables its endpoints."""
    router = _import_addon(engine_module, "router")
    snap = _import_addon(snap_module, "kdSnap")
    table = _table_from_snap(snap) if snap is not None else None
    return EngineAddons(router=router, snap=snap, table=table)
