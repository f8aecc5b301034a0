"""
Frame renderer.

Pulls byte magnitudes from a frequency data source each tick, runs the
geometric draw passes in painter's order, then the whole-frame pixel
stage, and finally advances the colour rotation. Which passes run is
decided per frame by RenderParameters, restricted to the passes the
EffectConfig variant supports.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Iterator, Mapping, Union

import numpy as np
import pygame

from wavescope.config import EffectConfig, RenderParameters
from wavescope.core.bounce import BounceTracker
from wavescope.core.source import AudioFileSource, FrequencyDataSource
from wavescope.visualizers import passes, pixels
from wavescope.visualizers.color import vertical_gradient

logger = logging.getLogger(__name__)

ParamsLike = Union[RenderParameters, Mapping[str, Any], None]


@dataclass
class FrameResult:
    """What a single render_frame call produced."""

    frame_index: int
    magnitudes: np.ndarray
    bounce_radius: float | None = None
    bounce_target_radius: float | None = None
    circle_waveform_radius: float | None = None


class FrameRenderer:
    """
    Renders audio-reactive frames onto a pygame surface.

    Usage::

        renderer = FrameRenderer(EffectConfig())
        renderer.initialize(surface, source)
        renderer.render_frame({"showBars": True})
    """

    def __init__(
        self,
        config: EffectConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.cfg = config or EffectConfig()
        self.clock = clock

        self.surface: pygame.Surface | None = None
        self.source: FrequencyDataSource | None = None
        self.gradient: pygame.Surface | None = None
        self.magnitudes: np.ndarray | None = None
        self.width = 0
        self.height = 0

        # Animation state
        self.color_rotation = 0.0
        self.bounce = BounceTracker(self.cfg)
        self.frame_index = 0

        self.rng = np.random.default_rng(self.cfg.seed)
        self._font: pygame.font.Font | None = None

    @property
    def initialized(self) -> bool:
        return self.surface is not None

    @property
    def bounce_lerp_percent(self) -> float:
        return self.bounce.lerp_percent

    def initialize(self, surface: pygame.Surface, source: FrequencyDataSource):
        """
        Bind the drawing surface and data source.

        The surface must carry per-pixel alpha (SRCALPHA). Sizes come from
        it; the source is configured to the renderer's FFT size and must
        produce exactly as many bins as the magnitude buffer holds.
        """
        cfg = self.cfg
        if not surface.get_flags() & pygame.SRCALPHA:
            raise ValueError("Drawing surface needs per-pixel alpha (create it with pygame.SRCALPHA)")
        self.surface = surface
        self.width, self.height = surface.get_size()
        self.gradient = vertical_gradient(self.width, self.height, cfg.gradient_stops)

        self.source = source
        source.configure(cfg.fft_size)
        self.magnitudes = np.zeros(cfg.bin_count, dtype=np.uint8)
        if source.frequency_bin_count != len(self.magnitudes):
            raise ValueError(
                f"Source produces {source.frequency_bin_count} bins, "
                f"renderer expects {len(self.magnitudes)}"
            )

        self.color_rotation = 0.0
        self.bounce.reset()
        self.frame_index = 0
        self.rng = np.random.default_rng(cfg.seed)

        logger.debug(
            "renderer initialized: %dx%d, %d bins, passes=%s",
            self.width, self.height, len(self.magnitudes), ",".join(cfg.passes),
        )

    def _active(self, params: RenderParameters, name: str) -> bool:
        return self.cfg.enabled(name) and params.is_on(name)

    def _get_font(self) -> pygame.font.Font:
        if self._font is None:
            if not pygame.font.get_init():
                pygame.font.init()
            self._font = pygame.font.Font(None, self.cfg.date_font_size)
        return self._font

    def render_frame(self, params: ParamsLike = None) -> FrameResult:
        """
        Render one frame onto the bound surface.

        Args:
            params: RenderParameters, a mapping of flag names (snake_case
                or camelCase), or None for everything off.

        Returns:
            FrameResult with a snapshot of this frame's magnitudes.
        """
        if not self.initialized:
            raise RuntimeError("render_frame called before initialize")
        if not isinstance(params, RenderParameters):
            params = RenderParameters.from_mapping(params)

        cfg = self.cfg
        surface = self.surface
        data = self.magnitudes
        rotation = self.color_rotation

        # 1 - fresh magnitudes
        self.source.refresh(data)
        result = FrameResult(frame_index=self.frame_index, magnitudes=data.copy())

        # 2 - background fade, always
        passes.fill_background(surface, cfg.background_color, cfg.background_alpha)

        # 3 - gradient
        if self._active(params, "gradient"):
            passes.draw_gradient(surface, self.gradient, cfg.gradient_alpha)

        # Bounce state advances once per frame, shared by both circular passes
        bouncing = params.show_bounce and (
            self._active(params, "bar_circle") or self._active(params, "circle_waveform")
        )
        if bouncing:
            self.bounce.update(data)

        # 4 - circular bars
        if self._active(params, "bar_circle"):
            radius = cfg.bar_circle_radius
            if bouncing:
                result.bounce_target_radius = self.bounce.target_radius(radius)
                radius = self.bounce.radius(radius)
            result.bounce_radius = radius
            passes.draw_bar_circle(surface, data, radius, rotation, cfg)

        # 5 - linear bars
        if self._active(params, "bars"):
            passes.draw_bars(surface, data, cfg)

        # 6 - waveform
        if self._active(params, "waveform") and params.waveform_height is not None:
            passes.draw_waveform(surface, data, params.waveform_height, cfg)

        # 7 - circular waveform
        if self._active(params, "circle_waveform"):
            radius = cfg.circle_waveform_radius
            if bouncing:
                radius = self.bounce.radius(radius)
            result.circle_waveform_radius = radius
            height = params.waveform_height if params.waveform_height is not None else self.height
            passes.draw_circle_waveform(surface, data, radius, height, rotation, cfg)

        # 8 - concentric circles
        if self._active(params, "circles"):
            passes.draw_circles(surface, data, cfg)

        # 9 - progress ring
        if self._active(params, "progress"):
            fraction = passes.progress_fraction(params.playback_position, params.playback_duration)
            passes.draw_progress(surface, fraction, rotation, cfg)

        # 10 - date and time
        if self._active(params, "date"):
            passes.draw_date(surface, self._get_font(), self.clock(), rotation, cfg)

        # 11 - pixel echo
        if self._active(params, "pixels") and params.waveform_height is not None:
            passes.echo_pixels(surface, data, params.waveform_height, cfg)

        # 12 - whole-frame pixel stage
        buffer = pixels.read_pixels(surface)
        if self._active(params, "emboss"):
            pixels.emboss(buffer, self.width)
        if self._active(params, "noise"):
            pixels.noise(buffer, self.rng, cfg.noise_probability, cfg.noise_color)
        if self._active(params, "invert"):
            pixels.invert(buffer)
        if self._active(params, "grayscale"):
            pixels.grayscale(buffer)
        if self._active(params, "sepia"):
            pixels.sepia(buffer)
        pixels.write_pixels(surface, buffer)

        # 13 - animation state
        self.color_rotation += cfg.rotation_delta
        self.frame_index += 1

        return result

    def frame_rgb(self) -> np.ndarray:
        """Current surface contents as an (H, W, 3) uint8 array."""
        if not self.initialized:
            raise RuntimeError("frame_rgb called before initialize")
        # pygame uses (width, height) but numpy expects (height, width)
        return np.ascontiguousarray(np.transpose(pygame.surfarray.array3d(self.surface), (1, 0, 2)))

    def render_audio(
        self,
        params: ParamsLike,
        fps: int = 60,
        max_frames: int | None = None,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> Iterator[np.ndarray]:
        """
        Render an AudioFileSource from start to end as a generator.

        The playback position advances by 1 / fps per frame and feeds the
        progress ring.

        Yields:
            (H, W, 3) uint8 RGB arrays, one per frame.
        """
        if not self.initialized:
            raise RuntimeError("render_audio called before initialize")
        source = self.source
        if not isinstance(source, AudioFileSource):
            raise TypeError("render_audio needs an AudioFileSource")
        if isinstance(params, RenderParameters):
            params = replace(params)
        else:
            params = RenderParameters.from_mapping(params)

        total = int(source.duration * fps)
        if max_frames is not None:
            total = min(total, max_frames)

        source.seek(0.0)
        source.start()
        dt = 1.0 / fps
        for i in range(total):
            source.advance(dt)
            params.playback_position = source.position
            params.playback_duration = source.duration
            self.render_frame(params)
            yield self.frame_rgb()

            if progress_callback:
                progress_callback(i + 1, total)
        source.stop()
