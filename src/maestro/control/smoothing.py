"""
Smoothing engine: eases actual volume and rate toward their targets.

Called once per fixed-period tick. Each tick moves a value by a fixed step
toward its target when the gap is larger than the tolerance, so a full-range
volume change settles in 50 ticks and a full-range rate change in 55.
"""

import logging
from dataclasses import dataclass
from typing import NamedTuple

from maestro.core.types import (
    RATE_MAX,
    RATE_MIN,
    VOLUME_MAX,
    VOLUME_MIN,
    ControllerState,
    clamp,
)
from maestro.utils.config import config_value

logger = logging.getLogger(__name__)


@dataclass
class SmoothingConfig:
    volume_step: float = 0.02
    volume_tolerance: float = 0.01
    rate_step: float = 0.05
    rate_tolerance: float = 0.02

    @classmethod
    def from_dict(cls, config: dict) -> "SmoothingConfig":
        return cls(
            volume_step=config_value(config, "volume_step", 0.02),
            volume_tolerance=config_value(config, "volume_tolerance", 0.01),
            rate_step=config_value(config, "rate_step", 0.05),
            rate_tolerance=config_value(config, "rate_tolerance", 0.02),
        )


class SmoothingResult(NamedTuple):
    volume_changed: bool
    rate_changed: bool

    @property
    def changed(self) -> bool:
        return self.volume_changed or self.rate_changed


def _approach(value: float, target: float, step: float, tolerance: float,
              low: float, high: float) -> float:
    """Move ``value`` one step toward ``target``.

    A step that would cross the target, or land within ``tolerance`` of it,
    settles exactly on the target instead.
    """
    moved = value + step if target > value else value - step
    # Snapping lands exactly on the target (0.60 toward 0.625 ends at 0.625,
    # not 0.62), so full-range moves settle in 50 volume / 55 rate ticks.
    if abs(target - moved) <= tolerance or (moved - target) * (value - target) < 0:
        moved = target
    return clamp(moved, low, high)


class SmoothingEngine:
    """Linear-step easing of ControllerState volume/rate toward targets."""

    def __init__(self, config: SmoothingConfig = None):
        self.config = config or SmoothingConfig()

    def step(self, state: ControllerState) -> SmoothingResult:
        """Advance ``state`` by one tick. No-op while a fade is running."""
        if state.fading:
            return SmoothingResult(False, False)

        volume_changed = False
        rate_changed = False

        if abs(state.target_volume - state.volume) > self.config.volume_tolerance:
            state.volume = _approach(state.volume, state.target_volume,
                                     self.config.volume_step, self.config.volume_tolerance,
                                     VOLUME_MIN, VOLUME_MAX)
            volume_changed = True

        if abs(state.target_rate - state.rate) > self.config.rate_tolerance:
            state.rate = _approach(state.rate, state.target_rate,
                                   self.config.rate_step, self.config.rate_tolerance,
                                   RATE_MIN, RATE_MAX)
            rate_changed = True

        return SmoothingResult(volume_changed, rate_changed)
