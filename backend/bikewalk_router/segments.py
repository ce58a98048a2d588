from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

# Per-segment travel mode bits reported by the engine.
MODE_BIKE_PREFERRED = 0x1
MODE_BIKE_NON_PREFERRED = 0x2
MODE_WALK = 0x4

MODE_BITS: dict[str, int] = {
    "bikePreferred": MODE_BIKE_PREFERRED,
    "bikeNonPreferred": MODE_BIKE_NON_PREFERRED,
    "walk": MODE_WALK,
}

P = TypeVar("P")


def split_runs(coords: Sequence[P], modes: Sequence[int], mode_bit: int) -> list[list[P]]:
    """Split a path into the maximal runs whose segments carry ``mode_bit``.

    Segment ``i`` joins ``coords[i]`` and ``coords[i + 1]``. Every run has at
    least two points. A path that alternates modes on every segment yields one
    two-point run per alternation.
    """
    if len(coords) < 2 or len(modes) != len(coords) - 1:
        return []

    runs: list[list[P]] = []
    run: list[P] = []
    for i, mode in enumerate(modes):
        if mode & mode_bit:
            if not run:
                run.append(coords[i])
            run.append(coords[i + 1])
        else:
            if len(run) > 1:
                runs.append(run)
            run = []
    if len(run) > 1:
        runs.append(run)
    return runs


def mode_runs(coords: Sequence[P], modes: Sequence[int]) -> dict[str, list[list[P]]]:
    return {name: split_runs(coords, modes, bit) for name, bit in MODE_BITS.items()}
