"""
Geometric draw passes.

Each pass paints onto the shared pygame drawing surface; later passes
draw over earlier ones. Translucent fills go through temporary SRCALPHA
surfaces so they blend like canvas ``source-over`` compositing, and
shapes whose size scales to zero are skipped rather than drawn.
"""

import math
from datetime import datetime

import numpy as np
import pygame

from wavescope.config import EffectConfig
from wavescope.visualizers.color import hsl_color, rgba
from wavescope.visualizers.pixels import pixel_echo, read_pixels, write_pixels


def _center(surface: pygame.Surface) -> tuple[float, float]:
    w, h = surface.get_size()
    return (w / 2, h / 2)


def _blit_circle(
    surface: pygame.Surface,
    center: tuple[float, float],
    radius: float,
    color: tuple[int, int, int, int],
):
    """Alpha-blend one filled circle onto the surface."""
    size = int(math.ceil(radius * 2)) + 2
    stamp = pygame.Surface((size, size), pygame.SRCALPHA)
    pygame.draw.circle(stamp, color, (size / 2, size / 2), radius)
    surface.blit(stamp, (round(center[0] - size / 2), round(center[1] - size / 2)))


def fill_background(surface: pygame.Surface, color: tuple[int, int, int], alpha: float):
    """Fade the whole frame toward the background colour."""
    veil = pygame.Surface(surface.get_size(), pygame.SRCALPHA)
    veil.fill((*color, int(round(alpha * 255))))
    surface.blit(veil, (0, 0))


def draw_gradient(surface: pygame.Surface, gradient: pygame.Surface, alpha: float):
    gradient.set_alpha(int(round(alpha * 255)))
    surface.blit(gradient, (0, 0))


def bar_circle_corners(
    center: tuple[float, float],
    angle: float,
    radius: float,
    bar_width: float,
    bar_height: float,
) -> list[tuple[float, float]]:
    """
    Corners of a bar standing on a circle.

    The bar is the rect (0, 0, bar_width, bar_height) after translating to
    the centre, rotating by ``angle`` and pushing ``radius`` out along the
    rotated y axis.
    """
    cos_a, sin_a = math.cos(angle), math.sin(angle)
    corners = []
    for px, py in ((0, 0), (bar_width, 0), (bar_width, bar_height), (0, bar_height)):
        ly = py + radius
        corners.append((
            center[0] + px * cos_a - ly * sin_a,
            center[1] + px * sin_a + ly * cos_a,
        ))
    return corners


def draw_bar_circle(
    surface: pygame.Surface,
    magnitudes: np.ndarray,
    radius: float,
    rotation: float,
    cfg: EffectConfig,
):
    """One radial bar per bin around the centre, hue following its angle."""
    num_bars = len(magnitudes)
    if num_bars == 0:
        return

    theta = 2 * math.pi / num_bars
    bar_width = 2 * math.pi * radius / num_bars
    center = _center(surface)
    current_angle = math.pi + rotation

    for i in range(num_bars):
        percent = magnitudes[i] / cfg.max_magnitude
        bar_height = cfg.bar_circle_height * percent
        if bar_height > 0:
            color_percent = abs((current_angle - math.pi) / (2 * math.pi) + rotation)
            color = hsl_color(360 * color_percent, cfg.bar_circle_saturation, cfg.bar_circle_lightness)
            pygame.draw.polygon(
                surface,
                color,
                bar_circle_corners(center, current_angle, radius, bar_width, bar_height),
            )
        current_angle += theta


def linear_bar_rects(
    magnitudes: np.ndarray,
    surface_width: int,
    cfg: EffectConfig,
) -> list[tuple[float, float, float, float]]:
    """(x, y, width, height) of each linear bar, left to right."""
    n = len(magnitudes)
    if n == 0:
        return []
    usable = surface_width - n * cfg.bar_spacing - cfg.bar_margin * 2
    bar_width = usable / n
    rects = []
    for i in range(n):
        height = float(magnitudes[i])
        rects.append((
            cfg.bar_margin + i * (bar_width + cfg.bar_spacing),
            cfg.bar_baseline - height,
            bar_width,
            height,
        ))
    return rects


def draw_bars(surface: pygame.Surface, magnitudes: np.ndarray, cfg: EffectConfig):
    overlay = pygame.Surface(surface.get_size(), pygame.SRCALPHA)
    color = rgba(cfg.bar_color)
    drawn = False
    for x, y, w, h in linear_bar_rects(magnitudes, surface.get_width(), cfg):
        if h <= 0 or w == 0:
            continue
        if w < 0:
            # a negative width mirrors the bar to the left of x
            x, w = x + w, -w
        pygame.draw.polygon(overlay, color, [(x, y), (x + w, y), (x + w, y + h), (x, y + h)])
        drawn = True
    if drawn:
        surface.blit(overlay, (0, 0))


def waveform_offsets(magnitudes: np.ndarray, waveform_height: float) -> np.ndarray:
    """Per-bin vertical offset: (magnitude / bin count) * (height / 2) / 2."""
    n = len(magnitudes)
    if n == 0:
        return np.zeros(0)
    v = magnitudes.astype(np.float64) / n
    return v * (waveform_height / 2) / 2


def waveform_points(
    magnitudes: np.ndarray,
    surface_width: int,
    waveform_height: float,
) -> list[tuple[float, float]]:
    """Polyline vertices: one per bin, then a closing point at the right edge."""
    n = len(magnitudes)
    if n == 0:
        return []
    slice_width = surface_width / n
    mid = waveform_height / 2
    points = [(i * slice_width, mid - y) for i, y in enumerate(waveform_offsets(magnitudes, waveform_height))]
    points.append((float(surface_width), mid))
    return points


def draw_waveform(
    surface: pygame.Surface,
    magnitudes: np.ndarray,
    waveform_height: float,
    cfg: EffectConfig,
):
    points = waveform_points(magnitudes, surface.get_width(), waveform_height)
    if len(points) >= 2:
        pygame.draw.lines(surface, cfg.waveform_color, False, points, cfg.waveform_line_width)


def circle_waveform_points(
    magnitudes: np.ndarray,
    center: tuple[float, float],
    radius: float,
    waveform_height: float,
    rotation: float,
) -> list[tuple[float, float]]:
    """Waveform offsets plotted outward from a circle, one vertex per bin."""
    n = len(magnitudes)
    if n == 0:
        return []
    theta = 2 * math.pi / n
    points = []
    for i, offset in enumerate(waveform_offsets(magnitudes, waveform_height)):
        angle = math.pi + rotation + i * theta
        r = radius + offset
        points.append((center[0] - r * math.sin(angle), center[1] + r * math.cos(angle)))
    return points


def draw_circle_waveform(
    surface: pygame.Surface,
    magnitudes: np.ndarray,
    radius: float,
    waveform_height: float,
    rotation: float,
    cfg: EffectConfig,
):
    points = circle_waveform_points(magnitudes, _center(surface), radius, waveform_height, rotation)
    if len(points) >= 3:
        pygame.draw.lines(surface, cfg.waveform_color, True, points, cfg.waveform_line_width)


def draw_circles(surface: pygame.Surface, magnitudes: np.ndarray, cfg: EffectConfig):
    """Every ``circle_step``-th bin stacks its colour variants at the centre."""
    center = _center(surface)
    colors = [rgba(c) for c in cfg.circle_colors]
    for i in range(0, len(magnitudes), cfg.circle_step):
        circle_radius = magnitudes[i] / cfg.max_magnitude * cfg.circle_max_radius
        if circle_radius <= 0:
            continue
        for color in colors:
            _blit_circle(surface, center, circle_radius, color)


def progress_fraction(position: float, duration: float | None) -> float:
    """position / duration clamped to [0, 1]; 0 when duration is not positive."""
    if not duration or duration <= 0:
        return 0.0
    return min(1.0, max(0.0, position / duration))


def progress_arc_points(
    center: tuple[float, float],
    radius: float,
    fraction: float,
    rotation: float,
) -> list[tuple[float, float]]:
    """Points along an arc of ``2*pi*fraction`` starting at ``rotation``."""
    sweep = 2 * math.pi * fraction
    segments = max(2, int(math.ceil(96 * fraction)) + 1)
    return [
        (
            center[0] + radius * math.cos(rotation + sweep * k / (segments - 1)),
            center[1] + radius * math.sin(rotation + sweep * k / (segments - 1)),
        )
        for k in range(segments)
    ]


def draw_progress(surface: pygame.Surface, fraction: float, rotation: float, cfg: EffectConfig):
    if fraction <= 0:
        return
    points = progress_arc_points(_center(surface), cfg.progress_radius, fraction, rotation)
    pygame.draw.lines(surface, cfg.progress_color, False, points, cfg.progress_width)


def format_date(now: datetime) -> str:
    """Zero-based month, so January reads 00 and December 11."""
    return f"{now.month - 1:02d}/{now.day:02d}/{now.year}"


def format_time(now: datetime) -> str:
    """Clock time where only hours above 12 wrap, so noon reads 12 and midnight 00."""
    hours = now.hour % 12 if now.hour > 12 else now.hour
    return f"{hours:02d}:{now.minute:02d}:{now.second:02d}"


def draw_date(
    surface: pygame.Surface,
    font: pygame.font.Font,
    now: datetime,
    rotation: float,
    cfg: EffectConfig,
):
    """Date above and time below the centre, hue drifting with rotation."""
    color = hsl_color(360 * (rotation / 2), cfg.date_saturation, cfg.date_lightness)
    cx, cy = _center(surface)
    for text, y in ((format_date(now), cy - cfg.date_spacing), (format_time(now), cy + cfg.date_spacing)):
        label = font.render(text, True, color)
        surface.blit(label, label.get_rect(center=(cx, y)))


def echo_pixels(
    surface: pygame.Surface,
    magnitudes: np.ndarray,
    waveform_height: float,
    cfg: EffectConfig,
):
    """
    Ghost the rendered frame along the waveform.

    For each bin, the slice of already-drawn pixels under the waveform
    vertex is colour-inverted and stamped a few pixels lower. Slices are
    processed in bin order on the live frame, so a stamp can be picked up
    by a later slice.
    """
    n = len(magnitudes)
    if n == 0:
        return
    w, h = surface.get_size()
    frame = read_pixels(surface).reshape(h, w, 4)

    slice_width = w / n
    mid = waveform_height / 2
    for i, offset in enumerate(waveform_offsets(magnitudes, waveform_height)):
        x0 = int(math.floor(i * slice_width))
        x1 = int(math.floor((i + 1) * slice_width))
        pixel_echo(
            frame,
            x0,
            int(mid - offset),
            max(1, x1 - x0),
            cfg.echo_slice_height,
            cfg.echo_offset,
        )

    write_pixels(surface, frame.reshape(-1))
