"""Display colours for meshes and tool paths."""

from __future__ import annotations

from itertools import cycle, islice

# Mesh colours are darker than path colours.
MESH_PALETTE = (
    0xCC0000,
    0xCC6500,
    0xCCCC00,
    0x65CC00,
    0x00CC00,
    0x00CC65,
    0x00CCCC,
    0x0065CC,
    0x0000CC,
    0x6500CC,
    0xCC00CC,
    0xCC0065,
)

PATH_PALETTE = (
    0xFF0000,
    0xFF8000,
    0xFFFF00,
    0x80FF00,
    0x00FF00,
    0x00FF80,
    0x00FFFF,
    0x0080FF,
    0x0000FF,
    0x8000FF,
    0xFF00FF,
    0xFF0080,
)

CUTTING_MESH_COLOR = (0.9, 0.9, 0.9)
DERIVATIVE_COLOR = (0.9, 0.9, 0.2)


def hex_to_rgb(value: int) -> tuple[float, float, float]:
    """Convert a 0xRRGGBB integer to red, green and blue components in [0, 1]."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"colour must be an integer, not {type(value).__name__}")
    if not 0 <= value <= 0xFFFFFF:
        raise ValueError(f"colour {value:#x} is outside 0x000000..0xffffff")
    return (
        ((value >> 16) & 0xFF) / 255.0,
        ((value >> 8) & 0xFF) / 255.0,
        (value & 0xFF) / 255.0,
    )


def _colors(palette: tuple[int, ...], count: int) -> list[tuple[float, float, float]]:
    if count < 0:
        raise ValueError("count must not be negative")
    return [hex_to_rgb(value) for value in islice(cycle(palette), count)]


def mesh_colors(count: int) -> list[tuple[float, float, float]]:
    """Return ``count`` mesh colours, cycling through the mesh palette."""
    return _colors(MESH_PALETTE, count)


def path_colors(count: int) -> list[tuple[float, float, float]]:
    """Return ``count`` path colours, cycling through the path palette."""
    return _colors(PATH_PALETTE, count)