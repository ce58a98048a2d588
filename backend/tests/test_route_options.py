from __future__ import annotations

from typing import Any

import pytest

from bikewalk_router.errors import IndexOutOfRange, NotInteger
from bikewalk_router.route_options import (
    DefaultsStore,
    RouteDefaults,
    RouteOptionsBody,
    RoutingRequest,
    body_from_query,
    clamp_u16,
    finite_or,
    normalize_route_options,
    sanitize_factors,
    to_index,
)

DEFAULTS = RouteDefaults()


def _normalize(body: dict[str, Any], *, num_nodes: int = 100) -> RoutingRequest:
    return normalize_route_options(body, DEFAULTS, num_nodes=num_nodes)


def test_defaults_fill_missing_fields() -> None:
    req = _normalize({"startIdx": 3, "endIdx": 7})
    assert req.source_idx == 3
    assert req.target_idx == 7
    assert req.bike_surface_mask == 0xFFFF
    assert req.bike_speed_mps == 6.0
    assert req.walk_speed_mps == 1.5
    assert req.ride_to_walk_penalty_s == 5.0
    assert req.walk_to_ride_penalty_s == 3.0
    assert req.surface_penalty_s_per_km == 0.0
    assert req.bike_surface_factor is None
    assert req.walk_surface_factor is None


@pytest.mark.parametrize("value, expected", [(5, 5), (5.0, 5), ("5", 5), (" 12 ", 12), ("1e2", 100), ("7.0", 7)])
def test_indices_accept_integer_like_values(value: object, expected: int) -> None:
    assert to_index(value) == expected
    assert _normalize({"startIdx": value, "endIdx": 0}, num_nodes=1000).source_idx == expected


@pytest.mark.parametrize("value", [None, True, 1.5, "abc", "", "2.5", float("nan"), float("inf"), [1], {"v": 1}])
def test_non_integer_indices_fail(value: object) -> None:
    with pytest.raises(NotInteger) as exc:
        _normalize({"startIdx": value, "endIdx": 1})
    assert exc.value.status_code == 400
    with pytest.raises(NotInteger):
        _normalize({"startIdx": 1, "endIdx": value})


@pytest.mark.parametrize("value", [-1, 100, 1000])
def test_out_of_range_indices_fail(value: int) -> None:
    with pytest.raises(IndexOutOfRange) as exc:
        _normalize({"startIdx": value, "endIdx": 0})
    assert "0..99" in str(exc.value)
    with pytest.raises(IndexOutOfRange):
        _normalize({"startIdx": 0, "endIdx": value})


@pytest.mark.parametrize("value", [0, 99])
def test_boundary_indices_succeed(value: int) -> None:
    req = _normalize({"startIdx": value, "endIdx": value})
    assert req.source_idx == value == req.target_idx


def test_mask_truncates_to_sixteen_bits() -> None:
    assert _normalize({"startIdx": 0, "endIdx": 1, "bikeSurfaceMask": 0x1FFFF}).bike_surface_mask == 0xFFFF
    assert _normalize({"startIdx": 0, "endIdx": 1, "bikeSurfaceMask": 0x10003}).bike_surface_mask == 0x0003
    assert _normalize({"startIdx": 0, "endIdx": 1, "bikeSurfaceMask": 255.0}).bike_surface_mask == 255


@pytest.mark.parametrize("value", ["0xFF", 1.5, True, None, [1]])
def test_bad_mask_falls_back_to_default(value: object) -> None:
    assert clamp_u16(value, 0x00F0) == 0x00F0
    assert _normalize({"startIdx": 0, "endIdx": 1, "bikeSurfaceMask": value}).bike_surface_mask == 0xFFFF


@pytest.mark.parametrize("value", ["8", float("nan"), float("inf"), None, True, 0, -3.0, 10**400])
def test_bad_speed_falls_back_to_default(value: object) -> None:
    req = _normalize({"startIdx": 0, "endIdx": 1, "bikeSpeedMps": value, "walkSpeedMps": value})
    assert req.bike_speed_mps == 6.0
    assert req.walk_speed_mps == 1.5


def test_penalties_accept_zero_but_not_negative() -> None:
    req = _normalize(
        {
            "startIdx": 0,
            "endIdx": 1,
            "rideToWalkPenaltyS": 0,
            "walkToRidePenaltyS": -1,
            "surfacePenaltySPerKm": 12.5,
        }
    )
    assert req.ride_to_walk_penalty_s == 0.0
    assert req.walk_to_ride_penalty_s == 3.0
    assert req.surface_penalty_s_per_km == 12.5


def test_finite_or_helper() -> None:
    assert finite_or(2, 9.0) == 2.0
    assert finite_or("2", 9.0) == 9.0
    assert finite_or(0.0, 9.0, minimum=0.0) == 0.0
    assert finite_or(0.0, 9.0, minimum=0.0, strict=True) == 9.0


def test_surface_factors_sanitized_elementwise() -> None:
    req = _normalize(
        {
            "startIdx": 0,
            "endIdx": 1,
            "bikeSurfaceFactor": [1.2, "0.5", None, "x", float("nan"), True, 3],
        }
    )
    assert req.bike_surface_factor == (1.2, 0.5, 1.0, 1.0, 1.0, 1.0, 3.0)
    assert req.walk_surface_factor is None


def test_non_list_surface_factors_are_omitted() -> None:
    assert sanitize_factors("1,2,3") is None
    assert sanitize_factors(None) is None
    assert sanitize_factors([]) == ()
    req = _normalize({"startIdx": 0, "endIdx": 1, "walkSurfaceFactor": {"0": 1.0}})
    assert "walkSurfaceFactor" not in req.to_engine_options()


def test_engine_options_use_wire_names() -> None:
    req = _normalize({"startIdx": 4, "endIdx": 9, "walkSurfaceFactor": [0.8]})
    opts = req.to_engine_options()
    assert opts == {
        "sourceIdx": 4,
        "targetIdx": 9,
        "bikeSurfaceMask": 0xFFFF,
        "bikeSpeedMps": 6.0,
        "walkSpeedMps": 1.5,
        "rideToWalkPenaltyS": 5.0,
        "walkToRidePenaltyS": 3.0,
        "surfacePenaltySPerKm": 0.0,
        "walkSurfaceFactor": [0.8],
    }


def test_normalizing_a_normalized_request_is_idempotent() -> None:
    req = _normalize(
        {
            "startIdx": "12",
            "endIdx": 40.0,
            "bikeSurfaceMask": 0x1F00F,
            "bikeSpeedMps": 7.25,
            "walkSpeedMps": "bad",
            "bikeSurfaceFactor": [2, "x"],
        }
    )
    assert _normalize(req.to_body()) == req
    assert normalize_route_options(req, DEFAULTS, num_nodes=100) == req


def test_request_is_immutable() -> None:
    req = _normalize({"startIdx": 0, "endIdx": 1})
    with pytest.raises(Exception):
        req.source_idx = 5  # type: ignore[misc]


def test_body_model_keeps_only_sent_fields() -> None:
    body = RouteOptionsBody.model_validate({"startIdx": "3", "endIdx": 4, "unknown": 1, "bikeSpeedMps": "x"})
    assert body.raw() == {"startIdx": "3", "endIdx": 4, "bikeSpeedMps": "x"}


def test_body_from_query_maps_short_names() -> None:
    body = body_from_query(
        {"startIdx": "1", "endIdx": "2", "bikeMask": "255", "bikeSpeed": "7.5", "dismount": "abc", "other": "9"}
    )
    assert body == {"startIdx": 1, "endIdx": 2, "bikeSurfaceMask": 255, "bikeSpeedMps": 7.5, "rideToWalkPenaltyS": "abc"}
    req = _normalize(body)
    assert req.bike_speed_mps == 7.5
    assert req.ride_to_walk_penalty_s == 5.0


def test_defaults_store_is_copy_on_write() -> None:
    store = DefaultsStore(RouteDefaults())
    before = store.current()

    after = store.update({"bikeSpeedMps": 8.0, "bikeSurfaceMask": 0x1FFFF, "walkSpeedMps": "fast"})

    assert before.version == 1
    assert before.bike_speed_mps == 6.0
    assert after is store.current()
    assert after.version == 2
    assert after.bike_speed_mps == 8.0
    assert after.bike_surface_mask == 0xFFFF
    assert after.walk_speed_mps == 1.5

    req = normalize_route_options({"startIdx": 0, "endIdx": 1}, store.current(), num_nodes=10)
    assert req.bike_speed_mps == 8.0

    reset = store.reset()
    assert reset.version == 3
    assert reset.bike_speed_mps == 6.0
