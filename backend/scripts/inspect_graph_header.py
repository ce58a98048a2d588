from __future__ import annotations

import argparse
import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from bikewalk_router.graph_header import encode_header, encode_legacy_header, load_graph_header


def run_inspect(args: argparse.Namespace) -> dict[str, Any]:
    graph = Path(args.graph)

    if args.write_modern is not None and args.write_legacy is not None:
        raise ValueError("--write-modern and --write-legacy are mutually exclusive")
    if args.write_modern is not None:
        graph.parent.mkdir(parents=True, exist_ok=True)
        graph.write_bytes(encode_header(int(args.write_modern), coord_type=int(args.coord_type)))
    elif args.write_legacy is not None:
        graph.parent.mkdir(parents=True, exist_ok=True)
        graph.write_bytes(encode_legacy_header(int(args.write_legacy)))

    if not graph.exists():
        raise ValueError(f"graph file not found: {graph}")

    header = load_graph_header(graph)
    return {
        "graph": str(graph.resolve()),
        "size_bytes": graph.stat().st_size,
        **header.to_dict(),
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Print (or write) the header of a graph_nodes.bin file.")
    parser.add_argument("--graph", required=True, help="e.g. data/graph_nodes.bin")
    parser.add_argument("--write-modern", type=int, default=None, metavar="NUM_NODES")
    parser.add_argument("--write-legacy", type=int, default=None, metavar="NUM_NODES")
    parser.add_argument("--coord-type", type=int, default=0)
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    print(json.dumps(run_inspect(args), indent=2))


if __name__ == "__main__":
    main()
