from __future__ import annotations

from types import SimpleNamespace

import pytest

from bikewalk_router.coordinates import Coordinate, CoordinateTable, as_coordinate, endpoint_coords, project_path

LAT = [60.0, 60.1, 60.2, 60.3, 60.4]
LON = [24.0, 24.1, 24.2, 24.3, 24.4]


def _table() -> CoordinateTable:
    return CoordinateTable.from_arrays(LAT, LON)


def _lookup(i: int) -> dict[str, float]:
    return {"lat": LAT[i], "lon": LON[i]}


def test_bulk_projection_uses_table() -> None:
    coords = project_path([0, 2, 4], 5, table=_table())
    assert coords == [Coordinate(60.0, 24.0), Coordinate(60.2, 24.2), Coordinate(60.4, 24.4)]
    assert all(isinstance(c.lat, float) for c in coords)


def test_empty_path_projects_to_nothing() -> None:
    assert project_path([], 5, table=_table(), lookup=_lookup) == []


def test_corrupt_bulk_index_falls_back_to_lookup() -> None:
    # header says 8 nodes but the bulk table only holds 5
    calls: list[int] = []

    def lookup(i: int) -> dict[str, float]:
        calls.append(i)
        return {"lat": 1.0 * i, "lon": 2.0 * i}

    coords = project_path([1, 7], 8, table=_table(), lookup=lookup)
    assert coords == [Coordinate(1.0, 2.0), Coordinate(7.0, 14.0)]
    assert calls == [1, 7]


def test_out_of_range_index_yields_empty_geometry() -> None:
    assert project_path([0, 5], 5, table=_table(), lookup=_lookup) == []


def test_lookup_failure_yields_empty_geometry() -> None:
    def broken(i: int) -> dict[str, float]:
        if i == 3:
            raise RuntimeError("node read failed")
        return _lookup(i)

    assert project_path([2, 3, 4], 5, lookup=broken) == []


def test_no_table_and_no_lookup_yields_empty_geometry() -> None:
    assert project_path([0, 1], 5) == []


def test_as_coordinate_accepts_node_shapes() -> None:
    assert as_coordinate({"lat": 1, "lon": 2, "idx": 9}) == Coordinate(1.0, 2.0)
    assert as_coordinate(SimpleNamespace(lat=3.5, lon=4.5)) == Coordinate(3.5, 4.5)
    assert as_coordinate((5, 6)) == Coordinate(5.0, 6.0)


def test_table_rejects_mismatched_arrays() -> None:
    with pytest.raises(ValueError):
        CoordinateTable.from_arrays([1.0, 2.0], [1.0])


def test_endpoint_coords() -> None:
    table = _table()
    assert endpoint_coords(table, 1, 3) == (Coordinate(60.1, 24.1), Coordinate(60.3, 24.3))
    assert endpoint_coords(table, 1, 99) == (Coordinate(60.1, 24.1), None)
    assert endpoint_coords(None, 1, 3) == (None, None)
