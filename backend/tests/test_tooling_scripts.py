from __future__ import annotations

import json
from pathlib import Path

import pytest

from bikewalk_router.graph_header import encode_header
from scripts.inspect_graph_header import build_parser, main, run_inspect


def test_inspect_parser_defaults() -> None:
    args = build_parser().parse_args(["--graph", "data/graph_nodes.bin"])
    assert args.graph == "data/graph_nodes.bin"
    assert args.write_modern is None
    assert args.write_legacy is None
    assert args.coord_type == 0


def test_inspect_reads_existing_header(tmp_path: Path) -> None:
    graph = tmp_path / "graph_nodes.bin"
    graph.write_bytes(encode_header(321, coord_type=1) + b"\x00" * 64)

    record = run_inspect(build_parser().parse_args(["--graph", str(graph)]))
    assert record["format"] == "modern"
    assert record["numNodes"] == 321
    assert record["coordType"] == 1
    assert record["size_bytes"] == 84


def test_inspect_writes_legacy_header(tmp_path: Path) -> None:
    graph = tmp_path / "nested" / "graph_nodes.bin"
    record = run_inspect(build_parser().parse_args(["--graph", str(graph), "--write-legacy", "9"]))
    assert record["format"] == "legacy"
    assert record["numNodes"] == 9
    assert graph.stat().st_size == 4


def test_inspect_rejects_missing_file_and_conflicting_flags(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="not found"):
        run_inspect(build_parser().parse_args(["--graph", str(tmp_path / "missing.bin")]))
    with pytest.raises(ValueError, match="mutually exclusive"):
        run_inspect(
            build_parser().parse_args(
                ["--graph", str(tmp_path / "g.bin"), "--write-modern", "1", "--write-legacy", "1"]
            )
        )


def test_inspect_main_prints_json(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    graph = tmp_path / "graph_nodes.bin"
    main(["--graph", str(graph), "--write-modern", "12"])
    out = json.loads(capsys.readouterr().out)
    assert out["numNodes"] == 12
    assert out["magic"] == "MMAPNODE"
