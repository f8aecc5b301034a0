"""
Colour helpers: CSS colour names, HSL hues and the static gradient.
"""

import colorsys
from typing import Sequence, Union

import numpy as np
import pygame

# CSS named colours the gradients use
CSS_COLORS = {
    "black": (0, 0, 0),
    "white": (255, 255, 255),
    "red": (255, 0, 0),
    "lime": (0, 255, 0),
    "green": (0, 128, 0),
    "blue": (0, 0, 255),
    "yellow": (255, 255, 0),
    "cyan": (0, 255, 255),
    "magenta": (255, 0, 255),
    "orange": (255, 165, 0),
    "purple": (128, 0, 128),
    "gray": (128, 128, 128),
}

ColorLike = Union[str, Sequence[int]]


def parse_color(color: ColorLike) -> tuple[int, int, int]:
    """Resolve a CSS name, ``#rrggbb`` string or RGB tuple."""
    if isinstance(color, str):
        name = color.strip().lower()
        if name in CSS_COLORS:
            return CSS_COLORS[name]
        if name.startswith("#") and len(name) == 7:
            return tuple(int(name[i:i + 2], 16) for i in (1, 3, 5))
        raise ValueError(f"Unknown colour: {color!r}")
    r, g, b = color[:3]
    return (int(r), int(g), int(b))


def hsl_color(hue_degrees: float, saturation: float, lightness: float) -> tuple[int, int, int]:
    """
    CSS ``hsl()`` to an RGB tuple.

    The hue wraps for any value, so an unbounded rotation maps cleanly.
    """
    h = (hue_degrees % 360.0) / 360.0
    r, g, b = colorsys.hls_to_rgb(h, lightness, saturation)
    return (int(round(r * 255)), int(round(g * 255)), int(round(b * 255)))


def rgba(color: Sequence[float]) -> tuple[int, int, int, int]:
    """(r, g, b, alpha 0-1) to a pygame RGBA tuple."""
    r, g, b, a = color
    return (int(r), int(g), int(b), int(round(max(0.0, min(1.0, a)) * 255)))


def vertical_gradient(
    width: int,
    height: int,
    stops: Sequence[tuple[float, ColorLike]],
) -> pygame.Surface:
    """
    Build a top-to-bottom linear gradient surface.

    Args:
        width: Surface width.
        height: Surface height.
        stops: (percent 0-1, colour) pairs in ascending percent order.

    Returns:
        Opaque pygame Surface of the given size.
    """
    percents = np.array([p for p, _ in stops], dtype=np.float64)
    colors = np.array([parse_color(c) for _, c in stops], dtype=np.float64)

    t = (np.arange(height, dtype=np.float64) + 0.5) / max(height, 1)
    rows = np.stack(
        [np.interp(t, percents, colors[:, ch]) for ch in range(3)],
        axis=-1,
    )

    # surfarray expects (width, height, 3)
    arr = np.broadcast_to(rows[np.newaxis, :, :], (width, height, 3))
    return pygame.surfarray.make_surface(np.round(arr).astype(np.uint8))
