from __future__ import annotations

import logging
import math
import time
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Body, Depends, FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .coordinates import as_coordinate
from .engine import EngineAddons, load_addons
from .errors import EngineError, FacadeError, FormatError, InvalidCoordinate
from .graph_header import GRAPH_STATE, GraphState, load_graph_header
from .logging_utils import log_event
from .metrics_store import metrics_snapshot, record_request, reset_metrics
from .models import AddonStatus, HealthResponse, RouteResponse, SnapResponse
from .route_options import DEFAULTS, RouteDefaults, RouteOptionsBody, body_from_query
from .route_service import compute_route
from .service_area import load_service_area
from .settings import settings
from .surfaces import surface_names


def load_graph_state(path: str) -> None:
    try:
        header = load_graph_header(path)
    except (FormatError, OSError) as e:
        GRAPH_STATE.set_error(str(e), path=path)
        log_event("graph_header_failed", level=logging.ERROR, path=path, error=str(e))
        return
    GRAPH_STATE.set_header(header, path=path)
    log_event("graph_header_loaded", path=path, **header.to_dict())


@asynccontextmanager
async def lifespan(app: FastAPI):
    load_graph_state(settings.graph_nodes_path)
    app.state.addons = load_addons(settings.router_engine_module, settings.snap_index_module)
    yield


app = FastAPI(title="Bike + Walk Router", version="0.3.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    t0 = time.perf_counter()
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        return response
    finally:
        record_request(
            f"{request.method} {request.url.path}",
            duration_ms=(time.perf_counter() - t0) * 1000,
            error=status >= 500,
        )


@app.exception_handler(FacadeError)
async def facade_error_handler(request: Request, exc: FacadeError) -> JSONResponse:
    if exc.status_code >= 500:
        log_event(
            "request_failed",
            level=logging.ERROR,
            path=request.url.path,
            reason_code=exc.reason_code,
            error=str(exc),
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def engine_addons(request: Request) -> EngineAddons:
    addons: EngineAddons | None = getattr(request.app.state, "addons", None)
    return addons if addons is not None else EngineAddons()


def graph_state() -> GraphState:
    return GRAPH_STATE


AddonsDep = Annotated[EngineAddons, Depends(engine_addons)]
GraphDep = Annotated[GraphState, Depends(graph_state)]


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "Backend is running. Visit /docs for the API UI.", "docs": "/docs"}


@app.get("/healthz", response_model=HealthResponse)
async def healthz(addons: AddonsDep, graph: GraphDep) -> JSONResponse:
    total_nodes = graph.total_nodes()
    ok = addons.is_available() and total_nodes > 0
    body = HealthResponse(
        ok=ok,
        addons=AddonStatus(kd_snap=addons.has_snap(), router=addons.has_router()),
        total_nodes=total_nodes,
        graph_error=graph.error,
    )
    return JSONResponse(
        status_code=200 if ok else 503,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


def _parse_coordinate(value: str | None) -> float:
    try:
        f = float(value) if value is not None else math.nan
    except ValueError:
        f = math.nan
    if not math.isfinite(f):
        raise InvalidCoordinate()
    return f


@app.get("/snap", response_model=SnapResponse)
async def snap(addons: AddonsDep, lat: str | None = None, lon: str | None = None) -> SnapResponse:
    index = addons.require_snap()
    lat_f = _parse_coordinate(lat)
    lon_f = _parse_coordinate(lon)
    try:
        idx = int(index.find_nearest(lat_f, lon_f))
        lat_n, lon_n = as_coordinate(index.get_node(idx))
    except Exception as e:
        raise EngineError.from_engine(e) from e

    out = SnapResponse(idx=idx, lat=lat_n, lon=lon_n)
    log_event("snap_request", lat=lat_f, lon=lon_f, idx=out.idx)
    return out


@app.post(
    "/route",
    response_model=RouteResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def post_route(
    addons: AddonsDep,
    graph: GraphDep,
    body: Annotated[RouteOptionsBody | None, Body()] = None,
) -> RouteResponse:
    raw = body.raw() if body is not None else {}
    return await compute_route(raw, addons=addons, graph=graph, defaults=DEFAULTS.current())


@app.get(
    "/route",
    response_model=RouteResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def get_route(request: Request, addons: AddonsDep, graph: GraphDep) -> RouteResponse:
    # quick manual testing without crafting JSON; short option names
    raw = body_from_query(request.query_params)
    return await compute_route(raw, addons=addons, graph=graph, defaults=DEFAULTS.current())


def _defaults_view(defaults: RouteDefaults) -> dict[str, Any]:
    return {**defaults.model_dump(by_alias=True), "surfaces": surface_names(defaults.bike_surface_mask)}


@app.get("/filter")
async def get_filter() -> dict[str, Any]:
    return _defaults_view(DEFAULTS.current())


@app.post("/filter", status_code=204)
async def post_filter(body: Annotated[dict[str, Any] | None, Body()] = None) -> Response:
    updated = DEFAULTS.update(body or {})
    log_event("route_defaults_updated", **_defaults_view(updated))
    return Response(status_code=204)


@app.get("/config/service-area")
async def get_service_area() -> dict[str, Any]:
    try:
        return load_service_area(settings.service_area_geojson)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail="service area not configured") from e
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.get("/metrics")
async def get_metrics() -> dict[str, object]:
    return metrics_snapshot()


@app.delete("/metrics")
async def delete_metrics() -> dict[str, str]:
    reset_metrics()
    return {"status": "reset"}


@app.get("/full")
async def full() -> JSONResponse:
    return JSONResponse(status_code=410, content={"error": "Deprecated in A*/mmap build"})
