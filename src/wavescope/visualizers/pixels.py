"""
Whole-frame pixel processing.

Operates on a PixelBuffer: a flat uint8 array of width * height * 4
bytes, RGBA per pixel, row-major. All arithmetic is done in wider
integers and stored back modulo 256, so out-of-range results wrap the
way unclamped byte storage does (e.g. sepia R of 275 stores 19).
"""

import numpy as np
import pygame

GRAY_WEIGHTS = (0.2126, 0.7152, 0.0722)
SEPIA_WEIGHTS = (0.3, 0.59, 0.11)
SEPIA_OFFSETS = (75, 50, 25)


def read_pixels(surface: pygame.Surface) -> np.ndarray:
    """Copy a surface into a flat RGBA PixelBuffer."""
    # pygame uses (width, height) but the buffer is row-major
    rgb = np.transpose(pygame.surfarray.array3d(surface), (1, 0, 2))
    alpha = pygame.surfarray.array_alpha(surface).T
    frame = np.concatenate([rgb, alpha[:, :, np.newaxis]], axis=2)
    return np.ascontiguousarray(frame, dtype=np.uint8).reshape(-1)


def write_pixels(surface: pygame.Surface, buffer: np.ndarray):
    """Replace the surface contents with a PixelBuffer, alpha included, without blending."""
    w, h = surface.get_size()
    frame = buffer.reshape(h, w, 4)
    pixels = pygame.surfarray.pixels3d(surface)
    pixels[:] = np.transpose(frame[:, :, :3], (1, 0, 2))
    del pixels
    alpha = pygame.surfarray.pixels_alpha(surface)
    alpha[:] = frame[:, :, 3].T
    del alpha


def emboss(buffer: np.ndarray, width: int) -> np.ndarray:
    """
    Emboss in place: ``127 + 2*self - right - below`` for every colour byte.

    "right" is the byte 4 positions on and "below" the byte one row on, in
    flat indexing, so the last column reads into the next row. Reads past
    the end of the buffer yield 0. Bytes are processed front to back and
    only ever read bytes that come later, so using the unmodified values
    for the neighbours is equivalent to the sequential in-place loop.
    """
    n = len(buffer)
    row = width * 4
    src = buffer.astype(np.int32)
    padded = np.concatenate([src, np.zeros(row + 4, dtype=np.int32)])

    embossed = 127 + 2 * src - padded[4:n + 4] - padded[row:n + row]
    color = np.arange(n) % 4 != 3
    buffer[color] = (embossed[color] & 0xFF).astype(np.uint8)
    return buffer


def noise(buffer: np.ndarray, rng: np.random.Generator, probability: float = 0.05,
          color: tuple[int, int, int] = (255, 255, 0)) -> np.ndarray:
    """Force each pixel, with independent probability, to an opaque colour."""
    px = buffer.reshape(-1, 4)
    hit = rng.random(len(px)) < probability
    px[hit, 0] = color[0]
    px[hit, 1] = color[1]
    px[hit, 2] = color[2]
    px[hit, 3] = 255
    return buffer


def invert(buffer: np.ndarray) -> np.ndarray:
    px = buffer.reshape(-1, 4)
    px[:, :3] = 255 - px[:, :3]
    return buffer


def grayscale(buffer: np.ndarray) -> np.ndarray:
    """ITU-R BT.709 luminance into R, G and B."""
    px = buffer.reshape(-1, 4)
    rgb = px[:, :3].astype(np.float64)
    lum = rgb[:, 0] * GRAY_WEIGHTS[0] + rgb[:, 1] * GRAY_WEIGHTS[1] + rgb[:, 2] * GRAY_WEIGHTS[2]
    value = (np.rint(lum).astype(np.int64) & 0xFF).astype(np.uint8)
    px[:, 0] = value
    px[:, 1] = value
    px[:, 2] = value
    return buffer


def sepia(buffer: np.ndarray) -> np.ndarray:
    """Sepia tone with no clamping: results above 255 wrap modulo 256."""
    px = buffer.reshape(-1, 4)
    rgb = px[:, :3].astype(np.float64)
    base = rgb[:, 0] * SEPIA_WEIGHTS[0] + rgb[:, 1] * SEPIA_WEIGHTS[1] + rgb[:, 2] * SEPIA_WEIGHTS[2]
    for ch, offset in enumerate(SEPIA_OFFSETS):
        px[:, ch] = (np.rint(base + offset).astype(np.int64) & 0xFF).astype(np.uint8)
    return buffer


def pixel_echo(
    frame: np.ndarray,
    x: int,
    y: int,
    slice_width: int,
    slice_height: int,
    offset: int,
):
    """
    Invert a slice of an (H, W, 4) frame and stamp it ``offset`` pixels lower.

    Like ``getImageData``/``putImageData``, source pixels outside the frame
    read as transparent black and destination pixels outside it are dropped.
    """
    h, w = frame.shape[:2]
    piece = np.zeros((slice_height, slice_width, 4), dtype=np.uint8)

    sx0, sx1 = max(0, x), min(w, x + slice_width)
    sy0, sy1 = max(0, y), min(h, y + slice_height)
    if sx0 < sx1 and sy0 < sy1:
        piece[sy0 - y:sy1 - y, sx0 - x:sx1 - x] = frame[sy0:sy1, sx0:sx1]
    piece[:, :, :3] = 255 - piece[:, :, :3]

    dy = y + offset
    ty0, ty1 = max(0, dy), min(h, dy + slice_height)
    if sx0 < sx1 and ty0 < ty1:
        frame[ty0:ty1, sx0:sx1] = piece[ty0 - dy:ty1 - dy, sx0 - x:sx1 - x]

