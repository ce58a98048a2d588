from __future__ import annotations

from enum import IntFlag


class Surface(IntFlag):
    """OSM surface categories; bit positions are shared with the graph ingest."""

    PAVED = 1 << 0
    ASPHALT = 1 << 1
    CONCRETE = 1 << 2
    PAVING_STONES = 1 << 3
    SETT = 1 << 4
    UNHEWN_COBBLESTONES = 1 << 5
    COBBLESTONES = 1 << 6
    BRICKS = 1 << 7

    UNPAVED = 1 << 8
    COMPACTED = 1 << 9
    FINE_GRAVEL = 1 << 10
    GRAVEL = 1 << 11
    GROUND = 1 << 12
    DIRT = 1 << 13
    EARTH = 1 << 14
    UNKNOWN = 1 << 15


SURFACE_GROUPS: dict[str, tuple[Surface, ...]] = {
    "paved": (
        Surface.PAVED,
        Surface.ASPHALT,
        Surface.CONCRETE,
        Surface.PAVING_STONES,
        Surface.SETT,
        Surface.UNHEWN_COBBLESTONES,
        Surface.COBBLESTONES,
        Surface.BRICKS,
    ),
    "unpaved": (
        Surface.UNPAVED,
        Surface.COMPACTED,
        Surface.FINE_GRAVEL,
        Surface.GRAVEL,
        Surface.GROUND,
        Surface.DIRT,
        Surface.EARTH,
    ),
}


def _group_mask(name: str) -> int:
    mask = 0
    for bit in SURFACE_GROUPS[name]:
        mask |= int(bit)
    return mask


PAVED_BITS_MASK = _group_mask("paved")
UNPAVED_BITS_MASK = _group_mask("unpaved")
ALL_SURFACES_MASK = 0xFFFF


def surface_names(mask: int) -> list[str]:
    """Names of the surface categories enabled in a 16-bit mask, lowest bit first."""
    return [s.name for s in Surface if s.name and int(mask) & int(s)]
