"""Tests for the frame renderer."""

from dataclasses import replace
from datetime import datetime

import numpy as np
import pygame
import pytest

from wavescope.config import ALL_PASSES, EffectConfig, RenderParameters
from wavescope.core.source import ArraySource, AudioFileSource, SilentSource
from wavescope.visualizers.pixels import read_pixels
from wavescope.visualizers.renderer import FrameRenderer

N_BINS = 128


def surface_rgba(surf: pygame.Surface) -> np.ndarray:
    w, h = surf.get_size()
    return read_pixels(surf).reshape(h, w, 4)


def _canvas(color=(0, 0, 0)) -> pygame.Surface:
    surf = pygame.Surface((160, 120), pygame.SRCALPHA)
    surf.fill((*color, 255))
    return surf


def _renderer(source=None, color=(0, 0, 0), **cfg) -> FrameRenderer:
    renderer = FrameRenderer(EffectConfig(**cfg))
    renderer.initialize(_canvas(color), source or SilentSource())
    return renderer


class _LyingSource(SilentSource):
    @property
    def frequency_bin_count(self) -> int:
        return 64


class TestInitialize:
    def test_render_before_initialize(self):
        with pytest.raises(RuntimeError):
            FrameRenderer().render_frame()

    def test_bin_mismatch(self):
        with pytest.raises(ValueError):
            FrameRenderer().initialize(_canvas(), _LyingSource())

    def test_sizes_and_buffer(self):
        renderer = _renderer()
        assert (renderer.width, renderer.height) == (160, 120)
        assert renderer.magnitudes.shape == (N_BINS,)
        assert renderer.magnitudes.dtype == np.uint8
        assert renderer.source.frequency_bin_count == N_BINS

    def test_rejects_surface_without_alpha(self):
        renderer = FrameRenderer()
        with pytest.raises(ValueError, match="SRCALPHA"):
            renderer.initialize(pygame.Surface((160, 120)), SilentSource())
        assert not renderer.initialized

    def test_reinitialize_resets_state(self):
        renderer = _renderer()
        for _ in range(3):
            renderer.render_frame()
        renderer.initialize(_canvas(), SilentSource())
        assert renderer.color_rotation == 0.0
        assert renderer.frame_index == 0
        assert renderer.bounce_lerp_percent == 0.0


class TestFrame:
    def test_fade_only(self):
        renderer = _renderer(color=(255, 255, 255))
        result = renderer.render_frame()
        r = surface_rgba(renderer.surface)[60, 80, 0]
        assert 0 < r < 255
        assert renderer.color_rotation == pytest.approx(0.001)
        assert result.frame_index == 0

    def test_rotation_accumulates(self):
        renderer = _renderer()
        for _ in range(50):
            renderer.render_frame()
        assert renderer.color_rotation == pytest.approx(0.05)
        assert renderer.frame_index == 50

    def test_magnitudes_snapshot(self):
        renderer = _renderer(ArraySource([[7] * N_BINS, [9] * N_BINS]))
        first = renderer.render_frame()
        second = renderer.render_frame()
        assert (first.magnitudes == 7).all()
        assert (second.magnitudes == 9).all()

    def test_all_effects_on_silence(self):
        renderer = _renderer()
        params = RenderParameters(
            **{f"show_{name}": True for name in ALL_PASSES},
            show_bounce=True,
            waveform_height=120.0,
            playback_position=1.0,
            playback_duration=2.0,
        )
        for _ in range(3):
            renderer.render_frame(params)
        assert renderer.frame_index == 3

    def test_all_effects_loud(self, loud_frame):
        renderer = _renderer(ArraySource([loud_frame], loop=True), seed=1)
        params = RenderParameters(
            **{f"show_{name}": True for name in ALL_PASSES},
            show_bounce=True,
            waveform_height=120.0,
        )
        renderer.render_frame(params)
        renderer.render_frame(params)

    def test_large_rotation(self, loud_frame):
        renderer = _renderer(ArraySource([loud_frame], loop=True))
        renderer.color_rotation = 1e6
        renderer.render_frame({"showBarCircle": True, "showDate": True})
        assert renderer.color_rotation == pytest.approx(1e6 + 0.001)

    def test_camel_case_mapping(self, loud_frame):
        renderer = _renderer(ArraySource([loud_frame]), background_alpha=0.0)
        renderer.render_frame({"showWaveform": True, "waveformHeight": 120})
        assert surface_rgba(renderer.surface)[:, :, :3].any()

    def test_bars_at_narrow_width(self):
        renderer = FrameRenderer(EffectConfig(background_alpha=0.0))
        surf = pygame.Surface((400, 300), pygame.SRCALPHA)
        surf.fill((0, 0, 0, 255))
        renderer.initialize(surf, ArraySource([[200] * N_BINS]))
        renderer.render_frame({"showBars": True})
        assert surface_rgba(renderer.surface)[56:256, :, 0].any()

    def test_unknown_parameter(self):
        renderer = _renderer()
        with pytest.raises(ValueError):
            renderer.render_frame({"showLasers": True})

    def test_waveform_needs_height(self, loud_frame):
        renderer = _renderer(ArraySource([loud_frame]), background_alpha=0.0)
        renderer.render_frame(RenderParameters(show_waveform=True))
        assert not surface_rgba(renderer.surface)[:, :, :3].any()

    def test_gradient(self):
        renderer = _renderer(background_alpha=0.0)
        renderer.render_frame(RenderParameters(show_gradient=True))
        top = surface_rgba(renderer.surface)[0, 0]
        assert top[0] > 50

    def test_pass_not_in_variant(self):
        renderer = _renderer(background_alpha=0.0, passes=("bars",))
        renderer.render_frame(RenderParameters(show_gradient=True))
        assert not surface_rgba(renderer.surface)[:, :, :3].any()

    def test_fixed_clock_date(self):
        renderer = FrameRenderer(
            EffectConfig(background_alpha=0.0),
            clock=lambda: datetime(2024, 1, 2, 15, 30, 0),
        )
        renderer.initialize(_canvas(), SilentSource())
        renderer.render_frame(RenderParameters(show_date=True))
        assert surface_rgba(renderer.surface)[:, :, :3].any()


class TestPixelStage:
    def _render(self, color, **flags):
        renderer = _renderer(color=color, background_alpha=0.0)
        renderer.render_frame(RenderParameters(**flags))
        return surface_rgba(renderer.surface)[60, 80]

    def test_grayscale(self):
        px = self._render((100, 150, 200), show_grayscale=True)
        assert tuple(px) == (143, 143, 143, 255)

    def test_sepia_wraps(self):
        px = self._render((200, 200, 200), show_sepia=True)
        assert tuple(px) == (19, 250, 225, 255)

    def test_invert(self):
        px = self._render((100, 150, 200), show_invert=True)
        assert tuple(px) == (155, 105, 55, 255)

    def test_emboss_flat(self):
        # interior of a flat frame embosses to 127
        px = self._render((40, 80, 120), show_emboss=True)
        assert tuple(px) == (127, 127, 127, 255)

    def test_untouched_without_flags(self):
        px = self._render((100, 150, 200))
        assert tuple(px) == (100, 150, 200, 255)

    def test_noise_seeded(self):
        frames = []
        for _ in range(2):
            renderer = _renderer(background_alpha=0.0, seed=7)
            renderer.render_frame(RenderParameters(show_noise=True))
            frames.append(surface_rgba(renderer.surface))
        np.testing.assert_array_equal(frames[0], frames[1])
        yellow = (frames[0][:, :, :3] == (255, 255, 0)).all(axis=2)
        assert 0 < yellow.sum() < yellow.size


class TestBounce:
    def _params(self):
        return RenderParameters(show_bar_circle=True, show_bounce=True)

    def test_silence_keeps_base_radius(self):
        renderer = _renderer()
        result = renderer.render_frame(self._params())
        assert result.bounce_radius == 100.0
        assert result.bounce_target_radius == 100.0

    def test_saturated_kick_targets_base(self, kick_frame):
        # avg 255 gives 100 + (100 - 100 * 255 / 255) == 100
        renderer = _renderer(ArraySource([kick_frame]))
        result = renderer.render_frame(self._params())
        assert result.bounce_target_radius == pytest.approx(100.0)
        assert result.bounce_radius == pytest.approx(100.0)

    def test_partial_kick(self):
        frame = np.zeros(N_BINS, dtype=np.uint8)
        frame[:6] = 230
        renderer = _renderer(ArraySource([frame]))
        result = renderer.render_frame(self._params())

        target = 200 - 100 * 230 / 255
        percent = (target - 100) / 100
        assert result.bounce_target_radius == pytest.approx(target)
        assert result.bounce_radius == pytest.approx((1 - percent) * target + percent * 100)
        assert renderer.bounce_lerp_percent == pytest.approx(percent)

    def test_without_bounce_flag(self, kick_frame):
        renderer = _renderer(ArraySource([kick_frame]))
        result = renderer.render_frame(RenderParameters(show_bar_circle=True))
        assert result.bounce_radius == 100.0
        assert result.bounce_target_radius is None

    def test_shared_by_circle_waveform(self):
        frame = np.zeros(N_BINS, dtype=np.uint8)
        frame[:6] = 230
        renderer = _renderer(ArraySource([frame]))
        result = renderer.render_frame(
            RenderParameters(show_bar_circle=True, show_circle_waveform=True, show_bounce=True)
        )
        assert result.circle_waveform_radius == pytest.approx(result.bounce_radius)


class TestRenderAudio:
    def test_frames(self, sine_wav):
        renderer = FrameRenderer(EffectConfig())
        source = AudioFileSource(sine_wav)
        renderer.initialize(_canvas(), source)

        calls = []
        frames = list(renderer.render_audio(
            {"showBars": True, "showProgress": True},
            fps=30,
            max_frames=5,
            progress_callback=lambda i, n: calls.append((i, n)),
        ))
        assert len(frames) == 5
        assert frames[0].shape == (120, 160, 3)
        assert frames[0].dtype == np.uint8
        assert calls[-1] == (5, 5)
        assert source.position == pytest.approx(5 / 30)
        assert not source.started

    def test_params_not_mutated(self, sine_wav):
        renderer = FrameRenderer()
        renderer.initialize(_canvas(), AudioFileSource(sine_wav))
        params = RenderParameters(show_progress=True)
        original = replace(params)
        list(renderer.render_audio(params, fps=10, max_frames=2))
        assert params == original

    def test_needs_audio_file_source(self):
        renderer = _renderer()
        with pytest.raises(TypeError):
            next(renderer.render_audio(None))
