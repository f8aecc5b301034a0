"""
Effect configuration and per-frame render parameters.

EffectConfig carries every tunable of the frame renderer (the constants
that used to differ between near-duplicate renderers). RenderParameters
is the flat set of effect toggles supplied fresh each frame.
"""

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Union

# Geometric passes in painter's order, followed by the whole-frame pixel stage.
ALL_PASSES = (
    "gradient",
    "bar_circle",
    "bars",
    "waveform",
    "circle_waveform",
    "circles",
    "progress",
    "date",
    "pixels",
    "emboss",
    "noise",
    "invert",
    "grayscale",
    "sepia",
)

BOUNCE_MODES = ("ratio", "ratchet")


@dataclass
class EffectConfig:
    """Configuration for the frame renderer."""

    # Analysis resolution; magnitude buffer holds fft_size // 2 bins
    fft_size: int = 256

    # Background fade (always runs)
    background_color: tuple[int, int, int] = (0, 0, 0)
    background_alpha: float = 0.1

    # Static top-to-bottom gradient
    gradient_stops: tuple[tuple[float, str], ...] = (
        (0.0, "magenta"),
        (0.25, "green"),
        (0.5, "yellow"),
        (0.75, "green"),
        (1.0, "magenta"),
    )
    gradient_alpha: float = 0.3

    # Circular bars
    bar_circle_radius: float = 100.0
    bar_circle_height: float = 75.0
    bar_circle_saturation: float = 0.9
    bar_circle_lightness: float = 0.65

    # Linear bars
    bar_spacing: float = 4.0
    bar_margin: float = 5.0
    bar_baseline: float = 256.0
    bar_color: tuple[int, int, int, float] = (255, 255, 255, 0.5)

    # Waveforms
    waveform_color: tuple[int, int, int] = (255, 255, 255)
    waveform_line_width: int = 3
    circle_waveform_radius: float = 100.0

    # Concentric circles; three stacked variants per selected bin
    circle_max_radius: float = 100.0
    circle_step: int = 4
    circle_colors: tuple[tuple[int, int, int, float], ...] = (
        (246, 246, 246, 0.3),
        (246, 246, 246, 0.3),
        (246, 246, 246, 0.3),
    )

    # Progress ring
    progress_radius: float = 120.0
    progress_width: int = 4
    progress_color: tuple[int, int, int] = (255, 255, 255)

    # Date / time text
    date_font_size: int = 22
    date_spacing: int = 11
    date_saturation: float = 0.75
    date_lightness: float = 0.5

    # Pixel echo
    echo_slice_height: int = 10
    echo_offset: int = 5

    # Noise
    noise_probability: float = 0.05
    noise_color: tuple[int, int, int] = (255, 255, 0)

    # Bounce (kick detection)
    kick_start: int = 1
    kick_end: int = 6
    bounce_threshold: float = 220.0
    max_magnitude: float = 255.0
    bounce_mode: str = "ratio"  # "ratio" or "ratchet"
    bounce_step: float = 0.05

    # Animation
    rotation_delta: float = 0.001

    # Passes this renderer variant supports, in painter's order
    passes: tuple[str, ...] = ALL_PASSES

    # Noise RNG seed (None for nondeterministic)
    seed: int | None = None

    def __post_init__(self):
        if self.fft_size < 32 or self.fft_size & (self.fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 32, got {self.fft_size}")
        if self.bounce_mode not in BOUNCE_MODES:
            raise ValueError(
                f"bounce_mode must be one of {BOUNCE_MODES}, got {self.bounce_mode!r}"
            )
        if not 0 <= self.kick_start < self.kick_end:
            raise ValueError(
                f"invalid kick range [{self.kick_start}, {self.kick_end})"
            )
        unknown = [p for p in self.passes if p not in ALL_PASSES]
        if unknown:
            raise ValueError(f"Unknown passes: {', '.join(unknown)}")
        # Keep painter's order regardless of how the caller listed them
        self.passes = tuple(p for p in ALL_PASSES if p in self.passes)

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    def enabled(self, name: str) -> bool:
        return name in self.passes


PRESETS: dict[str, dict[str, Any]] = {
    "classic": {},
    "pulse": {
        "kick_start": 0,
        "kick_end": 4,
        "bounce_threshold": 200.0,
        "bounce_mode": "ratchet",
        "bounce_step": 0.05,
        "background_alpha": 0.2,
        "gradient_alpha": 0.2,
        "circle_colors": (
            (255, 111, 145, 0.3),
            (111, 180, 255, 0.2),
            (255, 230, 111, 0.4),
        ),
    },
    "minimal": {
        "passes": ("bar_circle", "waveform", "progress", "date"),
        "background_alpha": 0.25,
    },
}


def get_preset(name: str) -> EffectConfig:
    """Return a fresh EffectConfig for a named preset."""
    try:
        overrides = PRESETS[name]
    except KeyError:
        raise KeyError(
            f"Unknown preset {name!r} (available: {', '.join(sorted(PRESETS))})"
        ) from None
    return EffectConfig(**overrides)


def _coerce(value: Any) -> Any:
    """JSON lists become tuples so they match the dataclass defaults."""
    if isinstance(value, list):
        return tuple(_coerce(v) for v in value)
    return value


def load_config(path: Union[str, Path], preset: str | None = None) -> EffectConfig:
    """
    Load an EffectConfig from a JSON file.

    Args:
        path: JSON file whose keys are EffectConfig field names.
        preset: Optional preset the file overrides.

    Returns:
        Merged EffectConfig.
    """
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a JSON object: {path}")

    names = {f.name for f in fields(EffectConfig)}
    unknown = sorted(set(data) - names)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    base = get_preset(preset) if preset else EffectConfig()
    return replace(base, **{k: _coerce(v) for k, v in data.items()})


# camelCase names accepted alongside the field names
_CAMEL_ALIASES = {
    "showGradient": "show_gradient",
    "showBarCircle": "show_bar_circle",
    "showBounce": "show_bounce",
    "showBars": "show_bars",
    "showWaveform": "show_waveform",
    "showCircleWaveform": "show_circle_waveform",
    "showCircles": "show_circles",
    "showProgress": "show_progress",
    "showDate": "show_date",
    "showPixels": "show_pixels",
    "showEmboss": "show_emboss",
    "showNoise": "show_noise",
    "showInvert": "show_invert",
    "showGrayscale": "show_grayscale",
    "showSepia": "show_sepia",
    "waveformHeight": "waveform_height",
    "currentTime": "playback_position",
    "duration": "playback_duration",
}


@dataclass
class RenderParameters:
    """Per-frame effect toggles. Everything defaults to off."""

    show_gradient: bool = False
    show_bar_circle: bool = False
    show_bounce: bool = False
    show_bars: bool = False
    show_waveform: bool = False
    show_circle_waveform: bool = False
    show_circles: bool = False
    show_progress: bool = False
    show_date: bool = False
    show_pixels: bool = False
    show_emboss: bool = False
    show_noise: bool = False
    show_invert: bool = False
    show_grayscale: bool = False
    show_sepia: bool = False

    waveform_height: float | None = None
    playback_position: float = 0.0
    playback_duration: float | None = None

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> "RenderParameters":
        """Build parameters from snake_case or camelCase keys."""
        if not mapping:
            return cls()
        names = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in mapping.items():
            name = _CAMEL_ALIASES.get(key, key)
            if name not in names:
                raise ValueError(f"Unknown render parameter: {key!r}")
            kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def from_effects(cls, effects: str, **extra) -> "RenderParameters":
        """Build parameters from a comma-separated list such as "bars,circles"."""
        kwargs = dict(extra)
        names = {f.name for f in fields(cls)}
        for name in filter(None, (e.strip() for e in effects.split(","))):
            flag = f"show_{name}"
            if flag not in names:
                raise ValueError(f"Unknown effect: {name!r}")
            kwargs[flag] = True
        return cls(**kwargs)

    def is_on(self, flag: str) -> bool:
        return bool(getattr(self, f"show_{flag}"))

