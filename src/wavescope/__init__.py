"""Real-time audio frequency visualizer."""

from wavescope.config import EffectConfig, RenderParameters, get_preset, load_config
from wavescope.core.bounce import BounceTracker, lerp
from wavescope.core.source import ArraySource, AudioFileSource, FrequencyDataSource, SilentSource
from wavescope.visualizers.renderer import FrameRenderer, FrameResult

__version__ = "0.1.0"
__all__ = [
    "EffectConfig",
    "RenderParameters",
    "get_preset",
    "load_config",
    "BounceTracker",
    "lerp",
    "FrequencyDataSource",
    "SilentSource",
    "ArraySource",
    "AudioFileSource",
    "FrameRenderer",
    "FrameResult",
]
