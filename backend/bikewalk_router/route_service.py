from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Mapping
from typing import Any

from .coordinates import Coordinate, endpoint_coords, project_path
from .distance_breakdown import distance_breakdown, format_duration, format_km
from .engine import EngineAddons, RoutingResult, find_path_async, node_lookup
from .errors import EngineError, EngineUnavailable
from .graph_header import GraphState
from .logging_utils import log_event
from .metrics_store import record_route_outcome
from .models import RouteBreakdown, RouteResponse, RouteRuns
from .route_options import RouteDefaults, RoutingRequest, normalize_route_options
from .segments import mode_runs


def _pair(c: Coordinate | None) -> tuple[float, float] | None:
    return (c.lat, c.lon) if c is not None else None


def build_route_response(
    result: RoutingResult,
    request: RoutingRequest,
    *,
    num_nodes: int,
    addons: EngineAddons,
) -> RouteResponse:
    """Turn a raw engine result into renderable geometry plus statistics.

    Geometry degrades to empty when node indices cannot be resolved; the
    indices and numeric statistics are returned either way.
    """
    table = addons.coordinate_table()
    lookup = node_lookup(addons.router)
    coords = project_path(result.path, num_nodes, table=table, lookup=lookup)
    start, end = endpoint_coords(table, request.source_idx, request.target_idx)

    pairs = [(c.lat, c.lon) for c in coords]
    runs = mode_runs(pairs, result.modes)

    pct = distance_breakdown(
        result.distance_bike_preferred,
        result.distance_bike_non_preferred,
        result.distance_walk,
        result.distance_m,
    )
    return RouteResponse(
        path=list(result.path),
        coords=pairs,
        modes=list(result.modes),
        distance_m=result.distance_m,
        duration_s=result.duration_s,
        distance_bike_preferred=result.distance_bike_preferred,
        distance_bike_non_preferred=result.distance_bike_non_preferred,
        distance_walk=result.distance_walk,
        start_coord=_pair(start),
        end_coord=_pair(end),
        runs=RouteRuns(
            bike_preferred=runs["bikePreferred"],
            bike_non_preferred=runs["bikeNonPreferred"],
            walk=runs["walk"],
        ),
        breakdown=RouteBreakdown(
            **pct.model_dump(),
            distance_text=format_km(result.distance_m),
            duration_text=format_duration(result.duration_s),
        ),
    )


async def compute_route(
    raw: Mapping[str, Any] | None,
    *,
    addons: EngineAddons,
    graph: GraphState,
    defaults: RouteDefaults,
) -> RouteResponse:
    request_id = str(uuid.uuid4())
    t0 = time.perf_counter()

    router = addons.require_router()
    header = graph.header
    if header is None:
        raise EngineUnavailable(
            reason_code="graph_unavailable",
            message="graph not loaded",
            details={"graph_error": graph.error} if graph.error else None,
        )

    request = normalize_route_options(raw, defaults, num_nodes=header.num_nodes)

    try:
        result = await find_path_async(router, request)
    except EngineError as e:
        record_route_outcome("engine_error")
        log_event(
            "route_engine_error",
            level=logging.ERROR,
            request_id=request_id,
            source_idx=request.source_idx,
            target_idx=request.target_idx,
            error=str(e),
        )
        raise

    response = build_route_response(result, request, num_nodes=header.num_nodes, addons=addons)

    if result.is_empty:
        outcome = "no_route"
        log_event(
            "route_no_route",
            request_id=request_id,
            source_idx=request.source_idx,
            target_idx=request.target_idx,
        )
    elif not response.coords:
        outcome = "coords_degraded"
    else:
        outcome = "ok"
    record_route_outcome(outcome)

    log_event(
        "route_request",
        request_id=request_id,
        source_idx=request.source_idx,
        target_idx=request.target_idx,
        defaults_version=defaults.version,
        outcome=outcome,
        path_len=len(response.path),
        distance_m=response.distance_m,
        duration_s=response.duration_s,
        duration_ms=round((time.perf_counter() - t0) * 1000, 2),
    )
    return response
