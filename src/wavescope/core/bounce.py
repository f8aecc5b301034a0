"""
Kick-driven radius bounce shared by the circular passes.

The average magnitude of a low-frequency "kick" band is compared to a
threshold; when it is exceeded the circle's target radius expands and
the drawn radius is blended toward it with a persistent lerp percentage.
"""

import logging

import numpy as np

from wavescope.config import EffectConfig

logger = logging.getLogger(__name__)


def lerp(value1: float, value2: float, percent: float) -> float:
    """Linear interpolation with the blend factor clamped to [0, 1]."""
    if percent < 0:
        percent = 0.0
    elif percent > 1:
        percent = 1.0
    return (1 - percent) * value1 + percent * value2


class BounceTracker:
    """
    Persistent bounce state for one renderer.

    ``update`` runs once per frame; ``target_radius`` and ``radius`` can then
    be asked for any base radius, so passes with different base sizes share
    the same kick reaction.

    Two update strategies exist:

    - ``"ratio"``: the lerp percentage is recomputed as
      ``(target - base) / base`` whenever that difference is non-zero and is
      otherwise left where it was.
    - ``"ratchet"``: while kicking, the percentage steps by ``bounce_step``,
      saturating at 1 and then reversing; without a kick it steps back
      down to 0.
    """

    def __init__(self, config: EffectConfig):
        self.cfg = config
        self.lerp_percent = 0.0
        self.kick_avg = 0.0
        self.kicking = False
        self._direction = 1.0

    def reset(self):
        self.lerp_percent = 0.0
        self.kick_avg = 0.0
        self.kicking = False
        self._direction = 1.0

    def kick_average(self, magnitudes: np.ndarray) -> float:
        """Mean magnitude over the kick band [kick_start, kick_end)."""
        band = magnitudes[self.cfg.kick_start:self.cfg.kick_end]
        if len(band) == 0:
            return 0.0
        return float(np.sum(band, dtype=np.int64)) / (self.cfg.kick_end - self.cfg.kick_start)

    def update(self, magnitudes: np.ndarray) -> float:
        """Advance the bounce state from this frame's magnitudes."""
        cfg = self.cfg
        self.kick_avg = self.kick_average(magnitudes)
        self.kicking = self.kick_avg > cfg.bounce_threshold

        if cfg.bounce_mode == "ratio":
            # Relative delta is independent of the base radius
            delta = self.target_radius(1.0) - 1.0
            if delta != 0:
                self.lerp_percent = delta
        else:
            if self.kicking:
                self.lerp_percent += cfg.bounce_step * self._direction
                if self.lerp_percent >= 1.0:
                    self.lerp_percent = 1.0
                    self._direction = -1.0
                elif self.lerp_percent <= 0.0:
                    self.lerp_percent = 0.0
                    self._direction = 1.0
            else:
                self.lerp_percent = max(0.0, self.lerp_percent - cfg.bounce_step)
                self._direction = 1.0

        if self.kicking:
            logger.debug("kick avg %.1f > %.1f, lerp %.3f", self.kick_avg, cfg.bounce_threshold, self.lerp_percent)
        return self.kick_avg

    def target_radius(self, base_radius: float) -> float:
        """Radius to bounce toward; equals the base radius when not kicking."""
        if not self.kicking:
            return base_radius
        return base_radius + (base_radius - base_radius * (self.kick_avg / self.cfg.max_magnitude))

    def radius(self, base_radius: float) -> float:
        """Final radius: lerp between target and base by the lerp percentage."""
        target = self.target_radius(base_radius)
        if target == base_radius:
            return base_radius
        return lerp(target, base_radius, self.lerp_percent)
